"""FastAPI dependencies for CSRF protection."""

import secrets
from typing import Callable

from fastapi import HTTPException, Request, status

from formguard.logging_config import log_csrf_event
from formguard.tokens.manager import TokenManager
from formguard.tokens.params import RequestParameters

SESSION_KEY_FIELD = "formguard_session_key"


def get_session_key(request: Request) -> str:
    """Get the key identifying this browser session in the token store table.

    The key is created on first use and kept in the cookie session.
    """
    key = request.session.get(SESSION_KEY_FIELD)
    if not key:
        key = secrets.token_urlsafe(32)
        request.session[SESSION_KEY_FIELD] = key
    return key


def get_csrf_manager(request: Request) -> TokenManager:
    """Get the token manager of the current request.

    The manager works on Starlette's cookie session (SessionMiddleware must be
    installed) and is built once per request.
    """
    manager = getattr(request.state, "csrf_manager", None)
    if manager is None:
        manager = TokenManager.from_settings(request.session)
        request.state.csrf_manager = manager
    return manager


def require_csrf(context: str = "") -> Callable:
    """Build a dependency that rejects requests without a valid token for ``context``.

    Example:
        @router.post("/profile", dependencies=[Depends(require_csrf("profile"))])
        async def update_profile(...): ...
    """

    async def dependency(request: Request) -> None:
        manager = get_csrf_manager(request)
        params = await RequestParameters.from_request(request)
        if not manager.validate(context, params=params):
            log_csrf_event("reject", context, False, request=request)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Request forbidden")

    return dependency
