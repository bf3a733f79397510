"""Context-bound, one-time CSRF tokens for FastAPI and Starlette applications."""

from .exceptions import FormguardError, StaleTokenStoreError, TokenConfigurationError
from .tokens import RequestParameters, Token, TokenManager, TokenStore

__all__ = [
    "TokenManager",
    "TokenStore",
    "Token",
    "RequestParameters",
    "FormguardError",
    "TokenConfigurationError",
    "StaleTokenStoreError",
]
