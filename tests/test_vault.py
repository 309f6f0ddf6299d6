"""
Tests for the token vault and session identity.

Tests cover:
- Token format and sequencing
- Lookup, removal and session lifecycle
- Session id derivation (stable ids, anonymous content)
"""

import hashlib
import re

import pytest

from mathshield.errors import SessionError, TokenNotFound
from mathshield.models import Category, ContentUnit, PayloadRecord
from mathshield.session import derive_session_id, stable_session_id
from mathshield.vault import TOKEN_PATTERN, TokenVault, parse_token


def record(raw="$x$", category=Category.INLINE):
    return PayloadRecord(rendered=f"<span>{raw}</span>", raw=raw, category=category)


class TestTokenVault:
    """Tests for TokenVault."""

    def test_token_format(self):
        """Tokens carry namespace, category, session and sequence."""
        vault = TokenVault("sess1")
        token = vault.put(record())

        assert token == "mathjax::inline::sess1::1::M"

    def test_category_embedded(self):
        """Block records produce block tokens."""
        vault = TokenVault("sess1")
        token = vault.put(record("$$x$$", Category.BLOCK))

        assert "::block::" in token

    def test_category_override(self):
        vault = TokenVault("sess1")
        token = vault.put(record(), "block")

        assert token.startswith("mathjax::block::")

    def test_identical_payloads_get_distinct_tokens(self):
        """The same content stored twice yields two tokens."""
        vault = TokenVault("s")
        first = vault.put(record("$x=1$"))
        second = vault.put(record("$x=1$"))

        assert first != second
        assert len(vault) == 2

    def test_sequence_strictly_increasing(self):
        vault = TokenVault("s")
        tokens = [vault.put(record()) for _ in range(12)]

        sequences = [parse_token(t).sequence for t in tokens]
        assert sequences == list(range(1, 13))

    def test_tokens_use_safe_characters(self):
        """Nothing a markdown engine would escape appears in a token."""
        vault = TokenVault("abc123")
        token = vault.put(record())

        assert re.fullmatch(r"[0-9A-Za-z:]+", token)
        assert TOKEN_PATTERN.fullmatch(token)

    def test_get_and_has_any(self):
        vault = TokenVault("s")
        assert not vault.has_any()

        token = vault.put(record("$y$"))

        assert vault.has_any()
        assert vault.get(token).raw == "$y$"
        assert token in vault

    def test_get_unknown_token(self):
        """Unknown tokens are a hard failure."""
        vault = TokenVault("s")
        with pytest.raises(TokenNotFound):
            vault.get("mathjax::inline::s::99::M")

    def test_token_not_found_is_key_error(self):
        vault = TokenVault("s")
        with pytest.raises(KeyError):
            vault.get("nope")

    def test_pop_removes_record(self):
        vault = TokenVault("s")
        token = vault.put(record())

        assert vault.pop(token).raw == "$x$"
        assert token not in vault
        with pytest.raises(TokenNotFound):
            vault.pop(token)

    def test_put_without_session(self):
        """A vault without a session refuses to allocate tokens."""
        vault = TokenVault()
        with pytest.raises(SessionError):
            vault.put(record())

    def test_clear_resets_counter_and_session(self):
        """clear() starts from scratch."""
        vault = TokenVault("s")
        vault.put(record())
        vault.put(record())

        vault.clear()

        assert not vault.has_any()
        assert vault.session_id is None
        vault.begin("s")
        assert vault.put(record()).endswith("::1::M")

    def test_begin_rejects_unsafe_id(self):
        vault = TokenVault()
        with pytest.raises(SessionError):
            vault.begin("blog/post-1")

    def test_custom_namespace(self):
        vault = TokenVault("s", namespace="texmath")
        token = vault.put(record())

        assert token.startswith("texmath::")
        assert vault.pattern.fullmatch(token)

    def test_invalid_namespace(self):
        with pytest.raises(ValueError):
            TokenVault(namespace="math jax")

    def test_items_snapshot(self):
        vault = TokenVault("s")
        token = vault.put(record())

        assert list(vault.items()) == [(token, record())]
        assert vault.dump() == {token: record()}


class TestParseToken:
    """Tests for token parsing."""

    def test_parse(self):
        parts = parse_token("mathjax::block::sess1::7::M")

        assert parts.category is Category.BLOCK
        assert parts.session_id == "sess1"
        assert parts.sequence == 7

    @pytest.mark.parametrize("text", ["mathjax::inline::s::1", "mathjax::display::s::1::M", "plain"])
    def test_malformed(self, text):
        assert parse_token(text) is None


class TestSessionIdentity:
    """Tests for session id derivation."""

    def test_stable_alphanumeric_id(self):
        assert derive_session_id("sess1") == "sess1"

    def test_numeric_id(self):
        assert derive_session_id(42) == "42"

    def test_unsafe_id_is_hashed(self):
        """Ids with punctuation become a deterministic digest."""
        expected = hashlib.md5(b"blog/post-1").hexdigest()

        assert derive_session_id("blog/post-1") == expected
        assert stable_session_id("blog/post-1") == expected

    def test_content_unit(self):
        assert derive_session_id(ContentUnit(id="page7", content="x")) == "page7"

    def test_anonymous_uses_clock_and_digest(self):
        """Without a stable id, time and a content digest are combined."""
        sid = derive_session_id(None, "abc", clock=lambda: 255, nonce=lambda: "00000000")

        assert sid == "ff" + "900150983cd24fb0" + "00000000"

    def test_empty_id_is_anonymous(self):
        sid = derive_session_id(ContentUnit(id="", content="abc"), clock=lambda: 1, nonce=lambda: "n")

        assert sid == "1900150983cd24fb0n"

    def test_anonymous_back_to_back_differ(self):
        """Identical anonymous content processed twice gets two sessions."""
        frozen = lambda: 1_000_000  # noqa: E731

        first = derive_session_id(None, "same", clock=frozen)
        second = derive_session_id(None, "same", clock=frozen)

        assert first != second

    def test_anonymous_id_is_token_safe(self):
        sid = derive_session_id(ContentUnit(content="$x$ and <b>html</b>"))

        assert re.fullmatch(r"[0-9a-f]+", sid)
