"""
Session identity for token namespacing.

Every content unit is processed in its own session, and the session id is
embedded in every token. Two documents processed back-to-back therefore never
share a token, even when their text is byte-identical.

The id must itself be token-safe (alphanumeric only), since it ends up inside
text that a markdown renderer or punctuation filter will walk over.
"""

from __future__ import annotations

import hashlib
import re
import secrets
import time
from typing import Callable, Optional, Union

from mathshield.models import ContentUnit

_SAFE_ID = re.compile(r"[0-9A-Za-z]+")

UnitLike = Union[ContentUnit, str, int, None]


def as_content_unit(unit: UnitLike, content: str = "") -> ContentUnit:
    """Normalize the accepted unit forms (unit, bare id, None) to a ContentUnit."""
    if isinstance(unit, ContentUnit):
        if not unit.content and content:
            return ContentUnit(id=unit.id, content=content)
        return unit
    return ContentUnit(id=unit, content=content)


def stable_session_id(unit_id: Union[str, int]) -> str:
    """Map a persistent document id to a token-safe session id.

    Alphanumeric ids are used as they are; anything else (paths, slugs with
    dashes or underscores) is replaced by its md5 digest so the result stays
    deterministic.
    """
    text = str(unit_id)
    if _SAFE_ID.fullmatch(text):
        return text
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def derive_session_id(
    unit: UnitLike,
    content: str = "",
    *,
    clock: Callable[[], int] = time.time_ns,
    nonce: Optional[Callable[[], str]] = None,
) -> str:
    """Derive the session id for a content unit.

    Args:
        unit: ContentUnit, a bare stable id, or None for anonymous content
        content: Content used for the fallback digest when `unit` carries none
        clock: Wall-clock source in nanoseconds (injectable for tests)
        nonce: Extra entropy source (injectable for tests)

    Returns:
        The stable id when one is available, otherwise wall-clock time
        combined with a digest of the content.

    Example:
        >>> derive_session_id("sess1")
        'sess1'
    """
    unit = as_content_unit(unit, content)
    if unit.has_stable_id:
        return stable_session_id(unit.id)

    digest = hashlib.md5(unit.content.encode("utf-8")).hexdigest()[:16]
    # Coarse clocks can tick identically for two back-to-back calls
    salt = nonce() if nonce is not None else secrets.token_hex(4)
    return f"{clock():x}{digest}{salt}"
