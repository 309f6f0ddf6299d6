"""
Content pipeline for pages with math.

This module plays the host's role around the engine:
1. Protect: replace math in the raw page content (before anything else runs)
2. Run content processors weighted above the configured weight; they only see tokens
3. Restore: swap tokens back (only if something was protected)
4. Run the remaining processors, which see the restored markup
5. Collect the assets and metadata a page with math needs

Processors run highest weight first, the same ordering event priorities use.
With the default weight of -5 restoration happens after every processor
registered at weight 0 (markdown, SmartyPants, ...).

Design Philosophy:
- A fresh engine per page; sessions never leak between documents
- Ordering is configuration, not hard-coded
- Lost tokens are reported in the result instead of raised
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Union

from mathshield.assets import page_metadata, resolve_assets
from mathshield.config import MathJaxConfig
from mathshield.diagnostics import count_tokens, find_lost_tokens, validate_tokens
from mathshield.engine import MathJax

logger = logging.getLogger("mathshield.pipeline")

# Type alias for content processors (markdown renderers, filters, ...)
Processor = Callable[[str], str]


@dataclass
class Page:
    """A content unit as the host sees it.

    `header` holds page-level overrides of the site configuration,
    e.g. {"process": False} to opt a page out.
    """
    id: Optional[Union[str, int]]
    raw_content: str
    header: dict = field(default_factory=dict)


@dataclass
class PageResult:
    """Result of running one page through the pipeline."""
    content: str
    modified: bool = False
    assets: list[str] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)
    stats: dict = field(default_factory=dict)
    lost_tokens: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.lost_tokens


@dataclass(frozen=True)
class _Registered:
    name: str
    fn: Processor
    weight: int
    order: int


class ContentPipeline:
    """Runs content processors around math protection.

    Usage:
        pipeline = ContentPipeline(MathJaxConfig())
        pipeline.register("markdown", markdown.markdown)
        result = pipeline.process(Page(id="intro", raw_content=text))
        print(result.content, result.assets)
    """

    def __init__(
        self,
        config: Optional[MathJaxConfig] = None,
        engine_factory: Optional[Callable[[MathJaxConfig], MathJax]] = None,
    ):
        self.config = config or MathJaxConfig()
        self.engine_factory = engine_factory or _default_engine
        self._processors: list[_Registered] = []

    def register(self, name: str, fn: Processor, weight: int = 0) -> None:
        """Register a content processor; higher weights run earlier."""
        if any(p.name == name for p in self._processors):
            raise ValueError(f"Processor already registered: {name}")
        self._processors.append(_Registered(name, fn, weight, len(self._processors)))

    @property
    def processors(self) -> list[str]:
        return [p.name for p in self._ordered()]

    def _ordered(self) -> list[_Registered]:
        return sorted(self._processors, key=lambda p: (-p.weight, p.order))

    def process(self, page: Page) -> PageResult:
        """Process a page.

        Args:
            page: Page with raw content and optional header overrides

        Returns:
            PageResult with final content, assets and stats
        """
        config = self.config.merge(page.header)
        stats = {
            "processors": len(self._processors),
            "spans_protected": 0,
            "representation": config.representation,
        }

        if not (config.enabled and config.process):
            content = page.raw_content
            for proc in self._ordered():
                content = proc.fn(content)
            stats["skipped"] = True
            return PageResult(content=content, stats=stats)

        engine = self.engine_factory(config)
        protected = engine.protect(page.raw_content, page.id)
        modified = engine.modified()
        stats["spans_protected"] = len(engine.vault)
        stats["tokens"] = count_tokens(protected, engine.vault.namespace)

        content = protected
        restored = False
        lost: list[str] = []
        for proc in self._ordered():
            if not restored and proc.weight <= config.weight:
                content, lost = self._restore(engine, protected, content, modified)
                restored = True
            content = proc.fn(content)
        if not restored:
            content, lost = self._restore(engine, protected, content, modified)

        engine.reset()
        logger.debug(f"Page {page.id!r}: {stats['spans_protected']} span(s) protected")

        return PageResult(
            content=content,
            modified=modified,
            assets=resolve_assets(config, modified),
            metadata=page_metadata(modified),
            stats=stats,
            lost_tokens=lost,
        )

    def _restore(self, engine: MathJax, protected: str, content: str, modified: bool):
        if not modified:
            return content, []
        missing = validate_tokens(protected, content, engine.vault.namespace)
        result = engine.restore(content)
        lost = missing + [f for f in find_lost_tokens(result, engine.vault.namespace) if f not in missing]
        return result, lost


def _default_engine(config: MathJaxConfig) -> MathJax:
    return MathJax(
        renderer=config.renderer,
        namespace=config.namespace,
        representation=config.representation,
    )


def process_page(
    page: Page,
    processors: Optional[list[Processor]] = None,
    config: Optional[MathJaxConfig] = None,
) -> PageResult:
    """Quick processing of a single page.

    All `processors` run at weight 0, i.e. before restoration with the
    default configuration.

        result = process_page(Page("p1", text), [markdown.markdown])

    For more control, use ContentPipeline directly.
    """
    pipeline = ContentPipeline(config)
    for i, fn in enumerate(processors or []):
        pipeline.register(getattr(fn, "__name__", f"processor{i}") + f"#{i}", fn)
    return pipeline.process(page)
