"""Single CSRF token bound to a context."""

import secrets

from pydantic import BaseModel

from formguard.exceptions import TokenConfigurationError

NEVER_EXPIRES = 0
DEFAULT_TOKEN_SIZE = 64


def generate_token_value(size: int = DEFAULT_TOKEN_SIZE) -> str:
    """Generate a cryptographically secure hex token.

    Args:
        size: Length of the token in hex characters; must be positive and even

    Returns:
        Hex string of ``size`` characters (``size // 2`` random bytes)

    Raises:
        TokenConfigurationError: If size is not a positive even number
    """
    if isinstance(size, bool) or not isinstance(size, int) or size <= 0 or size % 2:
        raise TokenConfigurationError(
            f"Invalid token size: {size!r}. Must be a positive even number of hex characters"
        )
    return secrets.token_hex(size // 2)


class Token(BaseModel):
    """An issued token, immutable once created.

    ``expires_at`` is a Unix timestamp in seconds, or ``NEVER_EXPIRES``.
    """

    model_config = {"frozen": True}

    value: str
    context: str = ""
    expires_at: int = NEVER_EXPIRES

    @classmethod
    def issue(
        cls, context: str = "", ttl: int = 0, size: int = DEFAULT_TOKEN_SIZE, now: float = 0
    ) -> "Token":
        """Create a token with a fresh random value.

        A ttl of zero or less produces a token that never expires.
        """
        expires_at = int(now) + ttl if ttl > 0 else NEVER_EXPIRES
        return cls(value=generate_token_value(size), context=context, expires_at=expires_at)

    def has_expired(self, now: float) -> bool:
        if self.expires_at == NEVER_EXPIRES or self.expires_at > now:
            return False
        return True

    def in_context(self, context: str = "") -> bool:
        return self.context == context

    def verify(self, value: str, context: str, now: float) -> bool:
        """Check value and context against this token, ignoring expired tokens."""
        if not self.in_context(context) or self.has_expired(now):
            return False
        return secrets.compare_digest(
            self.value.encode("utf-8", "surrogatepass"), value.encode("utf-8", "surrogatepass")
        )

    def __repr__(self):
        return f"<Token(value='{self.value[:8]}...', context='{self.context}', expires_at={self.expires_at})>"
