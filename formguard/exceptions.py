"""Exception types raised by formguard."""


class FormguardError(Exception):
    """Base class for all formguard errors."""


class TokenConfigurationError(FormguardError, ValueError):
    """Raised when token generation is configured with an unusable size."""


class StaleTokenStoreError(FormguardError):
    """Raised when a persisted token store changed since it was loaded.

    Two requests for the same session loaded the same version of the store and
    both tried to write it back; the later writer loses.
    """

    def __init__(self, session_id: str, name: str):
        self.session_id = session_id
        self.name = name
        super().__init__(
            f"Token store '{name}' for session {session_id[:8]}... was modified concurrently"
        )
