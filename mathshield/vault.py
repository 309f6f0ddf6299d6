"""
Token vault: session-scoped mapping from placeholder token to payload.

Token format:
    mathjax::<category>::<session_id>::<sequence>::M

- `mathjax` is a fixed namespace marker unlikely to be typed in prose
- `::` separates fields; neither markdown nor SmartyPants rewrite it
- the trailing `M` terminates the sequence number, so token 1 is never a
  prefix of token 10
- only [0-9A-Za-z:] characters appear, nothing a markdown engine escapes

The sequence counter is strictly increasing within a session and is reset by
clear(), which also ends the session.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Optional, Union

from mathshield.errors import SessionError, TokenNotFound
from mathshield.models import Category, PayloadRecord

DEFAULT_NAMESPACE = "mathjax"
SEPARATOR = "::"
TERMINATOR = "M"

_NAMESPACE_RE = re.compile(r"[A-Za-z][0-9A-Za-z]*")


def token_pattern(namespace: str = DEFAULT_NAMESPACE) -> re.Pattern:
    """Regex matching well-formed tokens of a namespace."""
    return re.compile(
        re.escape(namespace)
        + r"::(?P<category>block|inline)::(?P<session>[0-9A-Za-z]+)::(?P<seq>[0-9]+)::M"
    )


TOKEN_PATTERN = token_pattern()


@dataclass(frozen=True)
class TokenParts:
    """Decomposed token."""
    namespace: str
    category: Category
    session_id: str
    sequence: int


def format_token(namespace: str, category: Category, session_id: str, sequence: int) -> str:
    return SEPARATOR.join((namespace, category.value, session_id, str(sequence), TERMINATOR))


def parse_token(token: str, namespace: str = DEFAULT_NAMESPACE) -> Optional[TokenParts]:
    """Split a token into its parts, or return None when it is not well-formed."""
    match = token_pattern(namespace).fullmatch(token)
    if not match:
        return None
    return TokenParts(
        namespace=namespace,
        category=Category(match.group("category")),
        session_id=match.group("session"),
        sequence=int(match.group("seq")),
    )


class TokenVault:
    """Stores payloads behind tokens for one session at a time.

    Usage:
        vault = TokenVault()
        vault.begin("sess1")
        token = vault.put(PayloadRecord("<span>..</span>", "$x$"))
        vault.get(token)
        vault.clear()
    """

    def __init__(self, session_id: Optional[str] = None, namespace: str = DEFAULT_NAMESPACE):
        if not _NAMESPACE_RE.fullmatch(namespace):
            raise ValueError(f"Namespace must be alphanumeric, got {namespace!r}")
        self.namespace = namespace
        self.pattern = token_pattern(namespace)
        self._records: dict[str, PayloadRecord] = {}
        self._counter = 0
        self._session_id: Optional[str] = None
        if session_id is not None:
            self.begin(session_id)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def active(self) -> bool:
        return self._session_id is not None

    def begin(self, session_id: str) -> None:
        """Start a fresh session."""
        if not re.fullmatch(r"[0-9A-Za-z]+", session_id or ""):
            raise SessionError(f"Session id must be alphanumeric, got {session_id!r}")
        self.clear()
        self._session_id = session_id

    def clear(self) -> None:
        """Drop all records, reset the sequence counter and end the session."""
        self._records.clear()
        self._counter = 0
        self._session_id = None

    # ------------------------------------------------------------------
    # Core API
    # ------------------------------------------------------------------

    def put(self, record: PayloadRecord, category: Union[Category, str, None] = None) -> str:
        """Store a record under a new token and return the token."""
        if self._session_id is None:
            raise SessionError("No active session; call begin() first")
        cat = Category.coerce(category) if category is not None else record.category
        self._counter += 1
        token = format_token(self.namespace, cat, self._session_id, self._counter)
        self._records[token] = record
        return token

    def get(self, token: str) -> PayloadRecord:
        try:
            return self._records[token]
        except KeyError:
            raise TokenNotFound(token) from None

    def pop(self, token: str) -> PayloadRecord:
        """Remove and return a record (used when an outer span absorbs it)."""
        try:
            return self._records.pop(token)
        except KeyError:
            raise TokenNotFound(token) from None

    def has_any(self) -> bool:
        return bool(self._records)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, token: object) -> bool:
        return token in self._records

    def tokens(self) -> list[str]:
        return list(self._records)

    def items(self) -> Iterator[tuple[str, PayloadRecord]]:
        return iter(list(self._records.items()))

    def dump(self) -> dict[str, PayloadRecord]:
        """Return a copy of the token -> record mapping (for debugging)."""
        return dict(self._records)
