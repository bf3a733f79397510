"""CSRF token lifecycle: issue, store, validate and consume."""

from .manager import TokenManager
from .params import ParameterSource, RequestParameters
from .store import TokenStore
from .token import NEVER_EXPIRES, Token, generate_token_value

__all__ = [
    "TokenManager",
    "TokenStore",
    "Token",
    "NEVER_EXPIRES",
    "generate_token_value",
    "ParameterSource",
    "RequestParameters",
]
