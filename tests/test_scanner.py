"""
Tests for the delimiter scanner.

Tests cover:
- Recognition of $$...$$, $...$, \\[...\\] and \\(...\\)
- Priority between rules (block before inline)
- Escaped and unterminated delimiters
- Empty math bodies
- Rule validation at construction time
"""

import pytest

from mathshield.errors import ScanError
from mathshield.models import Category
from mathshield.scanner import (
    DEFAULT_RULES,
    LATEX_BLOCK,
    LATEX_INLINE,
    DelimiterRule,
    DelimiterScanner,
    scan,
)


@pytest.fixture
def scanner():
    return DelimiterScanner()


class TestRecognition:
    """Each default rule finds its own form."""

    def test_example_sentence(self, scanner):
        """Inline dollars and a trailing bracket block are both found, in order."""
        text = "Einstein: $E=mc^2$ and \\[F=ma\\]"
        spans = list(scanner.scan(text))

        assert [s.raw_text for s in spans] == ["$E=mc^2$", "\\[F=ma\\]"]
        assert [s.category for s in spans] == [Category.INLINE, Category.BLOCK]
        assert spans[0].start == text.index("$")
        assert text[spans[1].start:spans[1].end] == "\\[F=ma\\]"

    def test_double_dollar_block(self, scanner):
        """$$...$$ is a block span."""
        spans = scan("Consider $$\\int_0^1 x\\,dx$$ here.")

        assert len(spans) == 1
        assert spans[0].category is Category.BLOCK
        assert spans[0].rule == "latex-block"

    def test_paren_inline_is_non_greedy(self, scanner):
        """Adjacent \\(...\\) formulas stay separate."""
        spans = list(scanner.scan("\\(a\\) and \\(b\\)"))

        assert [s.raw_text for s in spans] == ["\\(a\\)", "\\(b\\)"]
        assert all(s.category is Category.INLINE for s in spans)

    def test_bracket_block_spanning_lines(self, scanner):
        """A multi-line \\[...\\] block excludes the trailing whitespace."""
        text = "Text\n\\[\n  x^2\n\\]  \nMore"
        spans = list(scanner.scan(text))

        assert len(spans) == 1
        assert spans[0].raw_text == "\\[\n  x^2\n\\]"
        assert text[spans[0].end:] == "  \nMore"

    def test_bracket_block_needs_line_end(self, scanner):
        """\\[...\\] followed by more text on the same line is not a block."""
        assert scan("see \\[x\\] here") == []

    def test_bracket_block_not_glued_to_word(self, scanner):
        """The opening bracket must start a line or follow whitespace."""
        assert scan("a\\[x\\]") == []

    def test_inline_dollar_spans_newline(self, scanner):
        """Inline math may wrap across lines."""
        spans = scan("$a +\nb$")

        assert len(spans) == 1
        assert spans[0].raw_text == "$a +\nb$"

    def test_custom_environment_rule(self):
        """Additional rules can be supplied."""
        rule = DelimiterRule("equation", Category.BLOCK, "\\begin{equation}", "\\end{equation}")
        scanner = DelimiterScanner(DEFAULT_RULES + (rule,))
        spans = list(scanner.scan("\\begin{equation}x=1\\end{equation}"))

        assert len(spans) == 1
        assert spans[0].rule == "equation"


class TestPriority:
    """Higher-priority rules claim text first."""

    def test_block_precedence_over_inline(self, scanner):
        """$$a$$ is one block span, never two inline spans."""
        spans = list(scanner.scan("$$a$$"))

        assert len(spans) == 1
        assert spans[0].category is Category.BLOCK
        assert spans[0].raw_text == "$$a$$"

    def test_inline_after_block_not_desynchronised(self, scanner):
        """A block earlier in the text does not hide later inline math."""
        spans = list(scanner.scan("$$a$$ and $b$"))

        assert [s.raw_text for s in spans] == ["$$a$$", "$b$"]

    def test_enclosing_inline_absorbs_block(self, scanner):
        """An inline span around a display formula takes it over."""
        spans = list(scanner.scan("$a $$b$$ c$"))

        assert [s.raw_text for s in spans] == ["$a $$b$$ c$"]
        assert spans[0].category is Category.INLINE

    def test_bracket_block_absorbs_inline(self, scanner):
        """\\text{...} with inline math inside a display block stays one span."""
        text = "\\[ f(x) = \\text{if $x>0$} \\]"
        spans = list(scanner.scan(text))

        assert len(spans) == 1
        assert spans[0].raw_text == text
        assert spans[0].category is Category.BLOCK
        assert spans[0].rule == "block"

    def test_absorbs_several_spans(self, scanner):
        text = "Pick \\(a = $x$ + $$y$$\\) and $z$"
        spans = list(scanner.scan(text))

        assert [s.raw_text for s in spans] == ["\\(a = $x$ + $$y$$\\)", "$z$"]

    def test_claimed_region_is_not_cut(self, scanner):
        """A later rule cannot close inside a region an earlier rule claimed."""
        spans = list(scanner.scan("\\(a $b\\) c$"))

        assert [s.raw_text for s in spans] == ["$b\\) c$"]

    def test_spans_sorted_and_disjoint(self, scanner):
        """Spans come out left to right without overlaps."""
        text = "\\(p\\) $q$ $$r$$\n\\[s\\]\n$t$ \\(u\\)"
        spans = list(scanner.scan(text))

        assert len(spans) == 6
        for left, right in zip(spans, spans[1:]):
            assert left.end <= right.start
            assert not left.overlaps(right)


class TestEdgeCases:
    """Escapes, unterminated delimiters and empty bodies."""

    def test_escaped_dollars_produce_no_span(self, scanner):
        """\\$x=1\\$ is literal text."""
        assert list(scanner.scan("\\$x=1\\$")) == []

    def test_escaped_closing_dollar(self, scanner):
        """An escaped dollar cannot close a formula."""
        spans = scan("$a\\$b$")

        assert len(spans) == 1
        assert spans[0].raw_text == "$a\\$b$"

    @pytest.mark.parametrize("text", ["$x + y", "\\(a", "$$a", "\\[x", "price: $5"])
    def test_unterminated_delimiters(self, scanner, text):
        """An opening marker without a close never matches."""
        assert list(scanner.scan(text)) == []

    def test_empty_bracket_block(self, scanner):
        """\\[\\] yields one span with an empty body."""
        spans = list(scanner.scan("\\[\\]"))

        assert len(spans) == 1
        assert spans[0].raw_text == "\\[\\]"
        assert spans[0].category is Category.BLOCK

    def test_empty_double_dollar(self, scanner):
        """$$$$ is an empty block."""
        spans = scan("$$$$")

        assert len(spans) == 1
        assert spans[0].category is Category.BLOCK

    def test_empty_text(self, scanner):
        assert list(scanner.scan("")) == []

    def test_tokens_are_plain_text(self, scanner):
        """Tokens from an earlier pass contain no delimiter characters."""
        assert scan("before mathjax::inline::s1::1::M after") == []


class TestValidation:
    """Malformed rule sets fail at construction time."""

    def test_no_rules(self):
        with pytest.raises(ScanError):
            DelimiterScanner([])

    def test_duplicate_names(self):
        """Two rules with the same name conflict."""
        twin = DelimiterRule("latex-block", Category.BLOCK, "@@", "@@")
        with pytest.raises(ScanError, match="Duplicate rule name"):
            DelimiterScanner([LATEX_BLOCK, twin])

    def test_duplicate_delimiters(self):
        """Two rules with the same delimiter pair conflict."""
        twin = DelimiterRule("display", Category.BLOCK, "$$", "$$")
        with pytest.raises(ScanError, match="both use"):
            DelimiterScanner([LATEX_BLOCK, twin])

    def test_shadowed_rule(self):
        """$ listed ahead of $$ would split display math."""
        with pytest.raises(ScanError, match="shadowed"):
            DelimiterScanner([LATEX_INLINE, LATEX_BLOCK])

    def test_empty_delimiter(self):
        with pytest.raises(ScanError):
            DelimiterRule("broken", Category.INLINE, "", "$")

    def test_unknown_category(self):
        with pytest.raises(ScanError):
            DelimiterRule("broken", "display", "@", "@")

    def test_string_category_accepted(self):
        """Categories may be given by value."""
        rule = DelimiterRule("at", "inline", "@", "@")
        assert rule.category is Category.INLINE
