"""
Delimiter scanner: locates math regions in raw text.

Rules are applied in a fixed priority order so that the more specific forms
win over looser ones ($$...$$ must never be split into two $...$ matches):

1. $$ ... $$   block, same-character delimiters (doubled)
2. $ ... $     inline, same-character delimiters (single)
3. \\[ ... \\]   block, closing delimiter must end its line
4. \\( ... \\)   inline, non-greedy so adjacent formulas stay separate

Regions claimed by higher-priority rules are opaque to the rules after them:
their delimiters are masked out, so a later match can never start or end
inside one. A later match that encloses claimed regions absorbs them, e.g.
\\[ f(x) = \\text{if $x>0$} \\] becomes one block span.

Delimiters preceded by a backslash are escaped and never open or close a
match. Unterminated delimiters simply produce no span.
"""

from __future__ import annotations

import bisect
import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional, Sequence

from mathshield.errors import ScanError
from mathshield.models import Category, Span

logger = logging.getLogger("mathshield.scanner")

_ESCAPE_GUARD = r"(?<!\\)"
# Opener must start the line or follow whitespace
_LINE_START_GUARD = r"(?<!\S)"
# Closer may only be followed by spaces/tabs up to the end of the line
_LINE_END_GUARD = r"(?=[ \t\r]*$)"
# Stands in for claimed text; never part of a delimiter, never whitespace
_MASK_CHAR = "\x00"


@dataclass(frozen=True)
class DelimiterRule:
    """A paired-delimiter recognition rule.

    Attributes:
        name: Unique rule name (e.g. 'latex-block')
        category: Category given to every span the rule produces
        opener: Literal opening delimiter
        closer: Literal closing delimiter
        line_anchored: Closer must end a line, opener must start one
            (or follow whitespace)
        escapable: A backslash before a delimiter disables it
        allow_empty: Whether an empty body still counts as a match
    """
    name: str
    category: Category
    opener: str
    closer: str
    line_anchored: bool = False
    escapable: bool = True
    allow_empty: bool = True
    pattern: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not self.opener or not self.closer:
            raise ScanError(f"Rule {self.name!r} needs a non-empty opener and closer")
        try:
            category = Category.coerce(self.category)
        except ValueError as e:
            raise ScanError(f"Rule {self.name!r}: {e}") from None
        object.__setattr__(self, "category", category)
        object.__setattr__(self, "pattern", self._compile())

    def _compile(self) -> re.Pattern:
        guard = _ESCAPE_GUARD if self.escapable else ""
        body = ".*?" if self.allow_empty else ".+?"
        source = (
            (_LINE_START_GUARD if self.line_anchored else "")
            + guard + re.escape(self.opener)
            + f"(?P<body>{body})"
            + guard + re.escape(self.closer)
            + (_LINE_END_GUARD if self.line_anchored else "")
        )
        try:
            return re.compile(source, re.DOTALL | re.MULTILINE)
        except re.error as e:
            raise ScanError(f"Rule {self.name!r} does not compile: {e}") from None


# ============================================================================
# Default Rules
# ============================================================================

LATEX_BLOCK = DelimiterRule("latex-block", Category.BLOCK, "$$", "$$")
LATEX_INLINE = DelimiterRule("latex-inline", Category.INLINE, "$", "$", allow_empty=False)
TEX_BLOCK = DelimiterRule("block", Category.BLOCK, "\\[", "\\]", line_anchored=True)
TEX_INLINE = DelimiterRule("inline", Category.INLINE, "\\(", "\\)")

DEFAULT_RULES: tuple[DelimiterRule, ...] = (LATEX_BLOCK, LATEX_INLINE, TEX_BLOCK, TEX_INLINE)


# ============================================================================
# Validation
# ============================================================================

def validate_rules(rules: Sequence[DelimiterRule]) -> None:
    """Reject rule sets that cannot be applied consistently.

    Raises:
        ScanError: on an empty rule set, duplicate names, duplicate
            delimiter pairs, or a rule shadowed by a looser rule ahead of it
    """
    if not rules:
        raise ScanError("At least one delimiter rule is required")

    seen_names: set[str] = set()
    seen_pairs: dict[tuple[str, str], str] = {}
    for index, rule in enumerate(rules):
        if not isinstance(rule, DelimiterRule):
            raise ScanError(f"Not a DelimiterRule: {rule!r}")
        if rule.name in seen_names:
            raise ScanError(f"Duplicate rule name: {rule.name!r}")
        seen_names.add(rule.name)

        pair = (rule.opener, rule.closer)
        if pair in seen_pairs:
            raise ScanError(
                f"Rules {seen_pairs[pair]!r} and {rule.name!r} both use "
                f"{rule.opener!r}...{rule.closer!r}"
            )
        seen_pairs[pair] = rule.name

        # '$' ahead of '$$' would split every display formula in two
        for earlier in rules[:index]:
            if (
                rule.opener != earlier.opener
                and rule.opener.startswith(earlier.opener)
                and rule.closer.startswith(earlier.closer)
            ):
                raise ScanError(
                    f"Rule {rule.name!r} ({rule.opener!r}) is shadowed by "
                    f"higher-priority rule {earlier.name!r} ({earlier.opener!r}); "
                    f"list the longer delimiter first"
                )


# ============================================================================
# Scanner
# ============================================================================

class DelimiterScanner:
    """Finds math spans using an ordered list of delimiter rules.

    Usage:
        scanner = DelimiterScanner()
        for span in scanner.scan("Einstein: $E=mc^2$"):
            print(span.start, span.end, span.category)
    """

    def __init__(self, rules: Optional[Iterable[DelimiterRule]] = None):
        self.rules: tuple[DelimiterRule, ...] = tuple(DEFAULT_RULES if rules is None else rules)
        validate_rules(self.rules)

    def scan(self, text: str) -> Iterator[Span]:
        """Yield non-overlapping spans in left-to-right order."""
        if not text:
            return
        accepted: list[Span] = []
        for rule in self.rules:
            masked = _mask(text, accepted)
            found = [_make_span(rule, text, m) for m in rule.pattern.finditer(masked)]
            absorbed = 0
            for span in found:
                lo = bisect.bisect_left([s.start for s in accepted], span.start)
                hi = lo
                while hi < len(accepted) and accepted[hi].end <= span.end:
                    hi += 1
                absorbed += hi - lo
                accepted[lo:hi] = [span]
            if found:
                logger.debug(f"Rule {rule.name}: {len(found)} span(s), {absorbed} absorbed")
        yield from accepted


def _mask(text: str, spans: list[Span]) -> str:
    """Blank out claimed regions, keeping offsets and line breaks intact."""
    if not spans:
        return text
    pieces = []
    cursor = 0
    for span in spans:
        pieces.append(text[cursor:span.start])
        pieces.append(re.sub(r"[^\n]", _MASK_CHAR, text[span.start:span.end]))
        cursor = span.end
    pieces.append(text[cursor:])
    return "".join(pieces)


def _make_span(rule: DelimiterRule, text: str, match: re.Match) -> Span:
    raw = text[match.start():match.end()]
    lead = len(raw) - len(raw.lstrip())
    trail = len(raw) - len(raw.rstrip())
    start = match.start() + lead
    end = match.end() - trail
    return Span(
        start=start,
        end=max(start, end),
        raw_text=raw.strip(),
        category=rule.category,
        rule=rule.name,
    )


def scan(text: str, rules: Optional[Iterable[DelimiterRule]] = None) -> list[Span]:
    """Convenience wrapper returning all spans of `text` as a list."""
    return list(DelimiterScanner(rules).scan(text))
