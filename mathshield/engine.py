"""
Protect/restore engine.

This module ties the scanner, the vault and the renderer together:
1. protect: replace every math span with an opaque token
2. (the host runs its markdown renderer / punctuation filter / ...)
3. restore: swap every token back for the chosen representation

Design Philosophy:
- One engine instance per content unit; reset() before reusing it
- Protecting already-protected text never nests tokens inside payloads
- Restoration is a single pass; replacement text is never rescanned
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Union

from mathshield.diagnostics import find_lost_tokens
from mathshield.errors import LostTokenError, SessionError, TokenNotFound
from mathshield.models import PayloadRecord, Representation, Span
from mathshield.render import MathRenderer, create_renderer
from mathshield.scanner import DelimiterScanner
from mathshield.session import UnitLike, as_content_unit, derive_session_id, stable_session_id
from mathshield.vault import DEFAULT_NAMESPACE, TokenVault

logger = logging.getLogger("mathshield.engine")


class Protector:
    """Replaces math spans with tokens, storing their payloads in the vault."""

    def __init__(
        self,
        vault: TokenVault,
        scanner: Optional[DelimiterScanner] = None,
        renderer: Optional[MathRenderer] = None,
    ):
        self.vault = vault
        self.scanner = scanner or DelimiterScanner()
        self.renderer = renderer or create_renderer("span")

    def protect(self, text: str) -> str:
        """Return `text` with every math span replaced by a token.

        Raises:
            SessionError: if the vault has no active session
        """
        if not self.vault.active:
            raise SessionError("Cannot protect without an active session")

        pieces = []
        cursor = 0
        for span in self.scanner.scan(text):
            pieces.append(text[cursor:span.start])
            pieces.append(self._hash(span))
            cursor = span.end
        pieces.append(text[cursor:])
        return "".join(pieces)

    def _hash(self, span: Span) -> str:
        raw = self._flatten(span.raw_text)
        rendered = self.renderer.render(span.category, raw)
        return self.vault.put(PayloadRecord(rendered=rendered, raw=raw, category=span.category))

    def _flatten(self, text: str) -> str:
        """Swap enclosed tokens back to their raw source.

        The enclosed records are removed: their content now lives inside the
        outer record, and their tokens no longer occur in the text. Token-like
        text this vault never issued is ordinary content and stays as it is.
        """
        def unwrap(match: re.Match) -> str:
            token = match.group(0)
            return self.vault.pop(token).raw if token in self.vault else token

        return self.vault.pattern.sub(unwrap, text)


class Restorer:
    """Replaces tokens with one representation of their payload."""

    def __init__(self, vault: TokenVault):
        self.vault = vault

    def modified(self) -> bool:
        return self.vault.has_any()

    def restore(
        self,
        text: str,
        representation: Union[Representation, str] = Representation.RENDERED,
    ) -> str:
        """Substitute every token in one pass.

        Token-like text from other sessions is left untouched; the engine
        reports it as lost after restoring.

        Raises:
            TokenNotFound: if `text` contains a token of the current session
                that the vault does not hold
        """
        representation = Representation.coerce(representation)
        for match in self.vault.pattern.finditer(text):
            if match.group("session") == self.vault.session_id and match.group(0) not in self.vault:
                raise TokenNotFound(match.group(0))

        if not self.vault.has_any():
            return text

        tokens = sorted(self.vault.tokens(), key=len, reverse=True)
        pattern = re.compile("|".join(re.escape(t) for t in tokens))
        return pattern.sub(lambda m: self.vault.get(m.group(0)).select(representation), text)


class MathJax:
    """Engine exposing the four host operations: protect, modified, restore, reset.

    Usage:
        engine = MathJax()
        text = engine.protect(page.raw_content, page.id)
        html = markdown(text)
        if engine.modified():
            html = engine.restore(html)
        engine.reset()
    """

    def __init__(
        self,
        scanner: Optional[DelimiterScanner] = None,
        renderer: Union[str, MathRenderer] = "span",
        namespace: str = DEFAULT_NAMESPACE,
        representation: Union[Representation, str] = Representation.RENDERED,
        strict: bool = False,
    ):
        self.vault = TokenVault(namespace=namespace)
        self.scanner = scanner or DelimiterScanner()
        self.renderer = create_renderer(renderer)
        self.representation = Representation.coerce(representation)
        self.strict = strict
        self.protector = Protector(self.vault, self.scanner, self.renderer)
        self.restorer = Restorer(self.vault)

    @property
    def session_id(self) -> Optional[str]:
        return self.vault.session_id

    def protect(self, raw_text: str, content_unit: UnitLike = None) -> str:
        """Replace all math in `raw_text` by tokens.

        The first call (after construction or reset) starts a session derived
        from `content_unit`; later calls continue it, so text that already
        holds tokens can be protected again safely.

        Raises:
            SessionError: if a different stable document id is given while
                the current session still holds records
        """
        unit = as_content_unit(content_unit, raw_text)
        if not self.vault.has_any():
            self.vault.begin(derive_session_id(unit))
        elif unit.has_stable_id and stable_session_id(unit.id) != self.vault.session_id:
            raise SessionError(
                f"Engine holds session {self.vault.session_id!r}; "
                f"call reset() before processing document {unit.id!r}"
            )

        before = len(self.vault)
        result = self.protector.protect(raw_text)
        logger.debug(
            f"Session {self.vault.session_id}: {len(self.vault) - before:+d} record(s), "
            f"{len(self.vault)} total"
        )
        return result

    def modified(self) -> bool:
        """True when at least one math span was protected."""
        return self.restorer.modified()

    def restore(
        self,
        transformed_text: str,
        representation: Union[Representation, str, None] = None,
    ) -> str:
        """Swap tokens back for their payload.

        Args:
            transformed_text: Output of the hostile transformation
            representation: 'rendered' or 'raw' (defaults to the engine's)

        Raises:
            TokenNotFound: on an unknown token of the current session
            LostTokenError: in strict mode, when token fragments survive
        """
        result = self.restorer.restore(
            transformed_text,
            self.representation if representation is None else representation,
        )
        lost = find_lost_tokens(result, self.vault.namespace)
        if lost:
            logger.warning(
                f"Session {self.vault.session_id}: {len(lost)} token fragment(s) "
                f"could not be restored: {', '.join(lost[:3])}"
            )
            if self.strict:
                raise LostTokenError(lost)
        return result

    def reset(self) -> None:
        """Discard the session before processing an unrelated document."""
        self.vault.clear()
