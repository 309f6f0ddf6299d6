"""
mathshield: keep TeX math intact through markdown and other text filters

Math regions ($$...$$, $...$, \\[...\\], \\(...\\)) are replaced by opaque
tokens before an uncontrolled text transformation runs, and swapped back
for rendering-ready markup afterwards.

Core components:
1. DelimiterScanner - finds math spans by prioritized delimiter rules
2. TokenVault - session-scoped token -> payload store
3. MathJax engine - protect / modified / restore / reset

License: MIT
"""

__version__ = "1.2.0"

from mathshield.models import Category, Representation, Span, PayloadRecord, ContentUnit
from mathshield.errors import (
    MathShieldError,
    ScanError,
    TokenNotFound,
    SessionError,
    LostTokenError,
    ConfigError,
)
from mathshield.scanner import DelimiterRule, DelimiterScanner, DEFAULT_RULES
from mathshield.vault import TokenVault
from mathshield.session import derive_session_id
from mathshield.render import MathRenderer, IdentityRenderer, MathJaxSpanRenderer, create_renderer
from mathshield.engine import MathJax, Protector, Restorer

__all__ = [
    "Category",
    "Representation",
    "Span",
    "PayloadRecord",
    "ContentUnit",
    "MathShieldError",
    "ScanError",
    "TokenNotFound",
    "SessionError",
    "LostTokenError",
    "ConfigError",
    "DelimiterRule",
    "DelimiterScanner",
    "DEFAULT_RULES",
    "TokenVault",
    "derive_session_id",
    "MathRenderer",
    "IdentityRenderer",
    "MathJaxSpanRenderer",
    "create_renderer",
    "MathJax",
    "Protector",
    "Restorer",
]
