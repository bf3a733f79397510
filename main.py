"""Example FastAPI application protected by formguard.

Renders a form carrying a one-time token and validates it on submission, plus
two small JSON endpoint pairs for script clients: one keeping tokens in the
cookie session, one keeping them in the database.

"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.middleware.sessions import SessionMiddleware

from formguard.config import get_settings
from formguard.database import create_tables, get_db
from formguard.dependencies import get_csrf_manager, get_session_key, require_csrf
from formguard.exception_handlers import (
    forbidden_handler,
    internal_server_error_handler,
    templates,
)
from formguard.logging_config import get_logger
from formguard.middleware import LoggingMiddleware
from formguard.persistence import database_session_state
from formguard.tokens.manager import TokenManager
from formguard.tokens.params import RequestParameters

FORM_CONTEXT = "my-form"
API_CONTEXT = "api"
DB_CONTEXT = "db-action"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Creates the token store table on startup if it doesn't exist.
    """
    logger = get_logger()
    logger.info("Starting formguard example application")
    await create_tables()
    yield
    logger.info("Shutting down formguard example application")


settings = get_settings()

app = FastAPI(
    title="formguard example",
    description="One-time CSRF tokens grouped by form",
    version="0.1.0",
    lifespan=lifespan,
)

# Add middleware (order matters - last added runs first)
app.add_middleware(LoggingMiddleware)
app.add_middleware(SessionMiddleware, secret_key=settings.session_secret_key, same_site="lax")

# Exception handlers
app.add_exception_handler(403, forbidden_handler)
app.add_exception_handler(500, internal_server_error_handler)
app.add_exception_handler(Exception, internal_server_error_handler)


@app.get("/health")
def health_check():
    return {"status": "ok", "service": "formguard"}


@app.get("/", response_class=HTMLResponse)
async def form_page(request: Request, manager: TokenManager = Depends(get_csrf_manager)):
    """Display the example form with a fresh token."""
    return templates.TemplateResponse(
        request, "form.html", {"csrf_input": manager.input(FORM_CONTEXT), "message": None}
    )


@app.post("/", response_class=HTMLResponse)
async def submit_form(request: Request, manager: TokenManager = Depends(get_csrf_manager)):
    """Validate the submitted token and report the outcome."""
    params = await RequestParameters.from_request(request)
    if manager.validate(FORM_CONTEXT, params=params):
        message = "The message was submitted!"
    else:
        message = "Error, action was prevented."

    return templates.TemplateResponse(
        request, "form.html", {"csrf_input": manager.input(FORM_CONTEXT), "message": message}
    )


@app.get("/token")
async def issue_token(manager: TokenManager = Depends(get_csrf_manager)):
    """Issue a token for script clients."""
    return {"field": manager.input_name, "token": manager.string(API_CONTEXT)}


@app.post("/action", dependencies=[Depends(require_csrf(API_CONTEXT))])
async def protected_action():
    return {"status": "ok"}


@app.get("/db/token")
async def issue_db_token(request: Request, db: AsyncSession = Depends(get_db)):
    """Issue a token kept in the database instead of the session cookie."""
    async with database_session_state(db, get_session_key(request)) as state:
        manager = TokenManager.from_settings(state)
        token = manager.string(DB_CONTEXT)
    return {"field": manager.input_name, "token": token}


@app.post("/db/action")
async def db_protected_action(request: Request, db: AsyncSession = Depends(get_db)):
    params = await RequestParameters.from_request(request)
    async with database_session_state(db, get_session_key(request)) as state:
        valid = TokenManager.from_settings(state).validate(DB_CONTEXT, params=params)

    if not valid:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Request forbidden")
    return {"status": "ok"}
