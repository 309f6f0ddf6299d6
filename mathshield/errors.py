"""Exceptions raised by mathshield.

Unterminated delimiters are deliberately absent: they are not an error, the
text simply passes through unchanged.
"""


class MathShieldError(Exception):
    """Base class for all mathshield errors."""


class ScanError(MathShieldError):
    """Malformed delimiter rule configuration (raised at construction time)."""


class TokenNotFound(MathShieldError, KeyError):
    """A token was looked up that the current session never produced."""

    def __init__(self, token: str):
        super().__init__(token)
        self.token = token

    def __str__(self) -> str:
        return f"Token not found in vault: {self.token}"


class SessionError(MathShieldError):
    """The engine was used outside of (or across) a session."""


class LostTokenError(MathShieldError):
    """Tokens survived restoration (only raised by strict engines)."""

    def __init__(self, fragments: list[str]):
        self.fragments = list(fragments)
        super().__init__(
            f"{len(self.fragments)} token(s) survived restoration: "
            + ", ".join(self.fragments[:5])
        )


class ConfigError(MathShieldError, ValueError):
    """Invalid configuration value."""
