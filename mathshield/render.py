"""
Renderer capability used by the protector.

The protector never knows which rendering library will eventually display the
math. It only asks a MathRenderer to turn the protected source into the markup
that should reappear after restoration.

Design Philosophy:
- Renderers are small and stateless
- The host supplies its own renderer by subclassing MathRenderer
- create_renderer() maps config strings to the built-in renderers
"""

from __future__ import annotations

import html
from abc import ABC, abstractmethod
from typing import Union

from mathshield.models import Category


class MathRenderer(ABC):
    """Abstract base class for payload renderers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the renderer name."""
        pass

    @abstractmethod
    def render_block(self, body: str) -> str:
        """Render display math (delimiters included) to markup."""
        pass

    @abstractmethod
    def render_inline(self, body: str) -> str:
        """Render in-line math (delimiters included) to markup."""
        pass

    def render(self, category: Union[Category, str], body: str) -> str:
        if Category.coerce(category) is Category.BLOCK:
            return self.render_block(body)
        return self.render_inline(body)


class IdentityRenderer(MathRenderer):
    """Stores the math source unchanged."""

    @property
    def name(self) -> str:
        return "identity"

    def render_block(self, body: str) -> str:
        return body

    def render_inline(self, body: str) -> str:
        return body


class MathJaxSpanRenderer(MathRenderer):
    """Wraps math in a classified <span> for MathJax and the plugin stylesheet.

    Output:
        <span class="mathjax inline">$E=mc^2$</span>
        <span class="mathjax block">\\[F=ma\\]</span>

    MathJax reads the text content of the page, so escaping `<`, `>` and `&`
    in the body keeps formulas such as `$a<b$` from being parsed as HTML
    without changing what MathJax sees.
    """

    def __init__(self, escape: bool = False, css_class: str = "mathjax"):
        self.escape = escape
        self.css_class = css_class

    @property
    def name(self) -> str:
        return "span-escaped" if self.escape else "span"

    def _wrap(self, kind: str, body: str) -> str:
        if self.escape:
            body = html.escape(body, quote=False)
        return f'<span class="{self.css_class} {kind}">{body}</span>'

    def render_block(self, body: str) -> str:
        return self._wrap("block", body)

    def render_inline(self, body: str) -> str:
        return self._wrap("inline", body)


def create_renderer(mode: Union[str, MathRenderer] = "span") -> MathRenderer:
    """Factory function to create a renderer by name.

    Modes:
    - 'identity' or 'none': store the math source as is
    - 'span' or 'default': wrap in <span class="mathjax ...">
    - 'span-escaped' or 'html': same, with the body HTML-escaped

    Args:
        mode: Renderer name, or an existing renderer (returned unchanged)
    """
    if isinstance(mode, MathRenderer):
        return mode

    mode_lower = (mode or "span").lower()

    if mode_lower in ("identity", "none"):
        return IdentityRenderer()
    elif mode_lower in ("span", "default"):
        return MathJaxSpanRenderer()
    elif mode_lower in ("span-escaped", "html"):
        return MathJaxSpanRenderer(escape=True)
    else:
        raise ValueError(f"Unknown renderer mode: {mode}")
