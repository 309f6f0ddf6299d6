"""
Plugin configuration.

Module Contents:
    DEFAULT_CDN_URL: MathJax library URL used when loading from a CDN
    MathJaxConfig: site-wide settings, with page-level overrides via merge()
    load_config: read settings from a JSON file

The layout mirrors the site configuration the plugin has always read:

    {
        "enabled": true,
        "weight": -5,
        "built_in_css": true,
        "built_in_js": true,
        "CDN": {"enabled": true, "url": "https://cdn.mathjax.org/..."}
    }

Flat keys (`cdn_enabled`, `cdn_url`) are accepted as well.

Example:
    >>> config = load_config(Path("mathjax.json"))
    >>> page_config = config.merge({"process": False})
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

from mathshield.errors import ConfigError
from mathshield.models import Representation

logger = logging.getLogger("mathshield.config")

DEFAULT_CDN_URL = "https://cdn.mathjax.org/mathjax/latest/MathJax.js?config=TeX-AMS-MML_HTMLorMML"

# Runs right after SmartyPants by default
DEFAULT_WEIGHT = -5


@dataclass(frozen=True)
class MathJaxConfig:
    """Settings consumed (read-only) by the content pipeline.

    Attributes:
        enabled: Master switch for math processing
        process: Page-level switch; pages can opt out through their header
        weight: Where restoration runs relative to other content processors
        built_in_css: Add the plugin stylesheet to modified pages
        built_in_js: Add the plugin MathJax configuration script
        cdn_enabled: Load the MathJax library from `cdn_url`
        cdn_url: CDN location of the MathJax library
        data_dir: User data directory searched for a local MathJax copy
        renderer: Renderer mode (see render.create_renderer)
        representation: Representation emitted on restore
        namespace: Token namespace marker
    """
    enabled: bool = True
    process: bool = True
    weight: int = DEFAULT_WEIGHT
    built_in_css: bool = True
    built_in_js: bool = True
    cdn_enabled: bool = True
    cdn_url: str = DEFAULT_CDN_URL
    data_dir: Path = Path("user/data")
    renderer: str = "span"
    representation: str = Representation.RENDERED.value
    namespace: str = "mathjax"

    def __post_init__(self):
        for name in ("enabled", "process", "built_in_css", "built_in_js", "cdn_enabled"):
            if not isinstance(getattr(self, name), bool):
                raise ConfigError(f"{name} must be a boolean, got {getattr(self, name)!r}")
        if isinstance(self.weight, bool) or not isinstance(self.weight, int):
            raise ConfigError(f"weight must be an integer, got {self.weight!r}")
        try:
            Representation.coerce(self.representation)
        except ValueError as e:
            raise ConfigError(str(e)) from None
        if not isinstance(self.data_dir, Path):
            object.__setattr__(self, "data_dir", Path(self.data_dir))

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> MathJaxConfig:
        return cls().merge(data or {})

    def merge(self, overrides: Optional[dict[str, Any]]) -> MathJaxConfig:
        """Return a copy with `overrides` applied (page headers, CLI flags)."""
        if not overrides:
            return self
        known = {f.name for f in fields(self)}
        changes: dict[str, Any] = {}
        for key, value in overrides.items():
            if key == "CDN" and isinstance(value, dict):
                if "enabled" in value:
                    changes["cdn_enabled"] = value["enabled"]
                if "url" in value:
                    changes["cdn_url"] = value["url"]
            elif key in known:
                changes[key] = value
            else:
                logger.debug(f"Ignoring unknown config key: {key}")
        return replace(self, **changes)

    def to_dict(self) -> dict:
        """Serialize config for logging/debugging."""
        data = asdict(self)
        data["data_dir"] = str(self.data_dir)
        return data


def load_config(path: Optional[Path]) -> MathJaxConfig:
    """Load configuration from a JSON file; defaults when the file is absent."""
    if path is None or not Path(path).exists():
        return MathJaxConfig()
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from None
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a JSON object in {path}")
    # Accept both a bare section and {"mathjax": {...}}
    section = data.get("mathjax", data)
    return MathJaxConfig.from_dict(section)
