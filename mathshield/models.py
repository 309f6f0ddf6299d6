"""
Core data models for mathshield.

These models describe what the scanner finds and what the vault stores:
- Span: a located math region in source text
- PayloadRecord: the content a token stands for (rendered + raw)
- ContentUnit: the document being processed (stable id + content)

Design Philosophy:
- Spans and records are frozen dataclasses; nothing mutates them after creation
- Categories travel with every span, record and token
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class Category(Enum):
    """Classification of a math region.

    The value is embedded verbatim in tokens and in the CSS class of the
    default rendered markup.
    """
    BLOCK = "block"      # display math: $$...$$, \[...\]
    INLINE = "inline"    # in-line math: $...$, \(...\)

    @classmethod
    def coerce(cls, value: Union[Category, str]) -> Category:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown math category: {value!r}") from None


class Representation(Enum):
    """Which stored form of a payload the restorer emits."""
    RENDERED = "rendered"   # rendering-ready markup (default)
    RAW = "raw"             # original source, delimiters included

    @classmethod
    def coerce(cls, value: Union[Representation, str]) -> Representation:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown representation: {value!r}") from None


@dataclass(frozen=True)
class Span:
    """A located match of math markup.

    Attributes:
        start: Offset of the first character of the region
        end: Offset one past the last character of the region
        raw_text: Matched text (delimiters included, whitespace trimmed)
        category: Block or inline
        rule: Name of the delimiter rule that produced the match
    """
    start: int
    end: int
    raw_text: str
    category: Category
    rule: str = ""

    def __len__(self) -> int:
        return self.end - self.start

    def overlaps(self, other: Span) -> bool:
        return self.start < other.end and other.start < self.end


@dataclass(frozen=True)
class PayloadRecord:
    """Stored value behind a token."""
    rendered: str
    raw: str
    category: Category = Category.INLINE

    def select(self, representation: Union[Representation, str] = Representation.RENDERED) -> str:
        if Representation.coerce(representation) is Representation.RAW:
            return self.raw
        return self.rendered


@dataclass
class ContentUnit:
    """A document handed to the engine.

    `id` is the document's persistent identifier when it has one; anonymous
    or ephemeral content leaves it as None.
    """
    id: Optional[Union[str, int]] = None
    content: str = ""

    @property
    def has_stable_id(self) -> bool:
        return self.id is not None and str(self.id) != ""
