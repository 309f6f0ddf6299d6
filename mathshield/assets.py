"""
Asset resolution for pages that contain math.

Stylesheets and scripts are only attached to pages where protection actually
found something (engine.modified()); pages without math stay untouched.

Functions:
    local_library_path: where a locally installed MathJax copy is expected
    local_library_installed: whether that copy exists
    resolve_assets: ordered list of asset URLs for a page
    page_metadata: metadata entries to add to a modified page
"""

from __future__ import annotations

from pathlib import Path

from mathshield.config import MathJaxConfig

CSS_ASSET = "plugin://mathjax/assets/css/mathjax.css"
JS_ASSET = "plugin://mathjax/assets/js/mathjax.js"
LOCAL_LIBRARY_ASSET = "user://data/mathjax/MathJax.js"


def local_library_path(config: MathJaxConfig) -> Path:
    return config.data_dir / "mathjax" / "MathJax.js"


def local_library_installed(config: MathJaxConfig) -> bool:
    return local_library_path(config).is_file()


def resolve_assets(config: MathJaxConfig, modified: bool) -> list[str]:
    """Return the assets to add to a page, in load order.

    The CDN is used when enabled, and also as a fallback when no local copy
    of the library is installed.
    """
    if not (config.enabled and config.process and modified):
        return []

    assets = []
    if config.built_in_css:
        assets.append(CSS_ASSET)
    if config.built_in_js:
        assets.append(JS_ASSET)

    if config.cdn_enabled or not local_library_installed(config):
        assets.append(config.cdn_url)
    else:
        assets.append(LOCAL_LIBRARY_ASSET)
    return assets


def page_metadata(modified: bool) -> dict[str, dict[str, str]]:
    """Metadata entries for a modified page (IE needs edge mode for MathJax)."""
    if not modified:
        return {}
    return {
        "X-UA-Compatible": {
            "http_equiv": "X-UA-Compatible",
            "content": "IE=edge",
        }
    }
