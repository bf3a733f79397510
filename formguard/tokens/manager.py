"""Request-scoped CSRF token manager.

A manager is built for every request from the persisted session state, serves
generate/validate calls against an in-memory TokenStore, and writes the store
back to the session state whenever it changes.

Usage:
    manager = TokenManager(request.session)
    field = manager.input("my-form")           # render into the form
    ...
    if not manager.validate("my-form", params=params):
        raise HTTPException(status_code=403, detail="Request forbidden")
"""

import time
from typing import Any, List, MutableMapping, Optional

from formguard.config import Settings, get_settings
from formguard.logging_config import get_logger, log_csrf_event
from formguard.presentation import render_input, render_javascript, render_script
from formguard.tokens.params import ParameterSource
from formguard.tokens.store import Clock, TokenStore
from formguard.tokens.token import DEFAULT_TOKEN_SIZE, Token

DEFAULT_SESSION_NAME = "default"
DEFAULT_INPUT_NAME = "key-awesome"
DEFAULT_RETENTION_CAP = 5


class TokenManager:
    """Generate and validate one-time tokens grouped by context."""

    def __init__(
        self,
        state: MutableMapping[str, Any],
        session_name: str = DEFAULT_SESSION_NAME,
        input_name: str = DEFAULT_INPUT_NAME,
        ttl: int = 0,
        token_size: int = DEFAULT_TOKEN_SIZE,
        retention_cap: int = DEFAULT_RETENTION_CAP,
        clock: Clock = time.time,
    ):
        """Load the token store kept in ``state[session_name]``.

        Args:
            state: Persisted session state (request.session, a dict, ...)
            session_name: Key of the token store within the session state
            input_name: Form field the token is submitted under
            ttl: Default seconds before a token expires; 0 never expires
            token_size: Default token length in hex characters
            retention_cap: Default number of tokens kept per context
            clock: Source of the current Unix time
        """
        self.state = state
        self.session_name = session_name
        self.input_name = input_name
        self.ttl = ttl
        self.token_size = token_size
        self.retention_cap = retention_cap
        self.clock = clock
        self.store = self._load()

    @classmethod
    def from_settings(
        cls, state: MutableMapping[str, Any], settings: Optional[Settings] = None, **overrides
    ) -> "TokenManager":
        settings = settings or get_settings()
        options = {
            "session_name": settings.session_name,
            "input_name": settings.input_name,
            "ttl": settings.token_ttl,
            "token_size": settings.token_size,
            "retention_cap": settings.max_tokens,
        }
        options.update(overrides)
        return cls(state, **options)

    def _load(self) -> TokenStore:
        blob = self.state.get(self.session_name)
        if blob is None:
            return TokenStore(clock=self.clock)

        try:
            store = TokenStore.loads(blob, clock=self.clock)
        except ValueError:
            get_logger().warning(
                f"Discarding unreadable token store '{self.session_name}' from session state"
            )
            store = TokenStore(clock=self.clock)
            self._save(store)
            return store

        loaded = len(store)
        store.prune_expired_prefix()
        if len(store) != loaded:
            log_csrf_event("prune", "", True, extra_data={"removed": loaded - len(store)})
            self._save(store)
        return store

    def _save(self, store: Optional[TokenStore] = None) -> None:
        if store is None:
            store = self.store
        self.state[self.session_name] = store.dumps()

    def generate(self, context: str = "", ttl: int = -1, retention_cap: Optional[int] = None) -> str:
        """Issue a new token for a context.

        Args:
            context: Context (usually the form name) the token is bound to
            ttl: Seconds before expiration; negative uses the manager default
            retention_cap: Tokens kept for the context, older ones are evicted;
                None uses the manager default, zero or less keeps all

        Returns:
            The token value
        """
        if ttl < 0:
            ttl = self.ttl
        if retention_cap is None:
            retention_cap = self.retention_cap

        token = Token.issue(context, ttl, self.token_size, self.clock())
        self.store.append(token)

        removed = 0
        if retention_cap > 0:
            removed = self.store.cap_context(context, retention_cap)
        self._save()

        log_csrf_event("generate", context, True, extra_data={"evicted": removed, "ttl": ttl})
        return token.value

    def validate(
        self,
        context: str = "",
        value: Optional[str] = None,
        params: Optional[ParameterSource] = None,
    ) -> bool:
        """Check a submitted token and consume it.

        If no value is passed it is looked up under ``input_name`` in
        ``params``. The result never says why validation failed.

        Returns:
            True if the token was valid for the context, False otherwise
        """
        if value is None and params is not None:
            value = params.get(self.input_name)
        if not isinstance(value, str):
            log_csrf_event("validate", context, False, extra_data={"reason": "missing"})
            return False

        if not self.store.verify_and_consume(context, value):
            log_csrf_event("validate", context, False)
            return False

        self._save()
        log_csrf_event("validate", context, True)
        return True

    def list_tokens(self, context: str = "", limit: int = -1) -> List[str]:
        """Return the token values of a context, most recent first."""
        return self.store.list_by_context(context, limit)

    def clear_tokens(self, context: str = "", retention_cap: int = 0) -> int:
        """Remove the tokens of a context, keeping the ``retention_cap`` most recent.

        Returns:
            Number of removed tokens
        """
        removed = self.store.cap_context(context, retention_cap)
        if removed > 0:
            self._save()
            log_csrf_event("clear", context, True, extra_data={"removed": removed})
        return removed

    def input(self, context: str = "", ttl: int = -1, retention_cap: Optional[int] = None) -> str:
        """Generate a token and return it as a hidden input element."""
        return render_input(self.input_name, self.generate(context, ttl, retention_cap))

    def script(
        self,
        context: str = "",
        name: str = "",
        declaration: str = "var",
        ttl: int = -1,
        retention_cap: Optional[int] = None,
    ) -> str:
        """Generate a token and return a script element declaring it as a variable."""
        value = self.generate(context, ttl, retention_cap)
        return render_script(name or self.input_name, value, declaration)

    def javascript(
        self,
        context: str = "",
        name: str = "",
        declaration: str = "var",
        ttl: int = -1,
        retention_cap: Optional[int] = None,
    ) -> str:
        value = self.generate(context, ttl, retention_cap)
        return render_javascript(name or self.input_name, value, declaration)

    def string(self, context: str = "", ttl: int = -1, retention_cap: Optional[int] = None) -> str:
        return self.generate(context, ttl, retention_cap)
