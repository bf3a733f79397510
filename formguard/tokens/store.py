"""Ordered collection of issued tokens.

Tokens are kept in generation order, oldest first. Every scan below walks the
list from the newest token backward, so the most recent token wins wherever
more than one could match.
"""

import time
from typing import Callable, Iterator, List, Optional

from pydantic import TypeAdapter, ValidationError

from formguard.logging_config import get_logger
from formguard.tokens.token import Token

Clock = Callable[[], float]

_token_list = TypeAdapter(List[Token])


class TokenStore:
    """In-memory view of a persisted token list."""

    def __init__(self, tokens: Optional[List[Token]] = None, clock: Clock = time.time):
        self._tokens: List[Token] = list(tokens) if tokens else []
        self.clock = clock

    def __len__(self) -> int:
        return len(self._tokens)

    def __iter__(self) -> Iterator[Token]:
        return iter(list(self._tokens))

    @property
    def tokens(self) -> List[Token]:
        return list(self._tokens)

    def append(self, token: Token) -> None:
        self._tokens.append(token)

    def list_by_context(self, context: str = "", limit: int = -1) -> List[str]:
        """Return token values of a context, most recent first.

        Args:
            context: Context to list
            limit: Maximum number of values to return; zero or less means all

        Returns:
            List of token values
        """
        values = []
        for token in reversed(self._tokens):
            if limit > 0 and len(values) >= limit:
                break
            if token.in_context(context):
                values.append(token.value)
        return values

    def cap_context(self, context: str = "", max_keep: int = 0) -> int:
        """Remove all but the ``max_keep`` most recent tokens of a context.

        Args:
            context: Context to cap
            max_keep: Number of recent tokens to keep; zero or less removes all

        Returns:
            Number of tokens removed
        """
        kept = 0
        survivors = []
        removed = 0
        for token in reversed(self._tokens):
            if token.in_context(context):
                if kept < max_keep:
                    kept += 1
                else:
                    removed += 1
                    continue
            survivors.append(token)
        if removed:
            survivors.reverse()
            self._tokens = survivors
        return removed

    def verify_and_consume(self, context: str, value: str) -> bool:
        """Remove the newest live token matching context and value.

        Returns:
            True if a token was found and consumed, False otherwise
        """
        now = self.clock()
        for index in range(len(self._tokens) - 1, -1, -1):
            if self._tokens[index].verify(value, context, now):
                del self._tokens[index]
                return True
        return False

    def prune_expired_prefix(self) -> List[Token]:
        """Drop the first expired token found from the newest end, and all older ones.

        Tokens newer than the cut are kept whatever their own expiry. This
        assumes tokens expire in the order they were generated, which does not
        hold when ttls are mixed.

        Returns:
            The surviving tokens, oldest first
        """
        now = self.clock()
        cut = 0
        for index in range(len(self._tokens) - 1, -1, -1):
            if self._tokens[index].has_expired(now):
                cut = index + 1
                break
        if cut:
            self._tokens = self._tokens[cut:]
        return list(self._tokens)

    def dumps(self) -> str:
        """Serialize the whole store to a JSON string."""
        return _token_list.dump_json(self._tokens).decode("utf-8")

    @classmethod
    def loads(cls, blob, clock: Clock = time.time) -> "TokenStore":
        """Rebuild a store from a blob produced by ``dumps``.

        Raises:
            ValueError: If the blob is not a serialized token list
        """
        if isinstance(blob, bytes):
            blob = blob.decode("utf-8")
        if not isinstance(blob, str):
            raise ValueError(f"Token store blob must be a string, got {type(blob).__name__}")
        try:
            tokens = _token_list.validate_json(blob)
        except ValidationError as e:
            get_logger().debug(f"Rejected token store blob: {e.error_count()} errors")
            raise ValueError("Malformed token store blob") from e
        return cls(tokens, clock=clock)
