"""Global exception handlers for applications using formguard."""

from pathlib import Path

from fastapi import HTTPException, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from formguard.logging_config import get_logger, log_error

logger = get_logger()
templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))


async def forbidden_handler(request: Request, exc: HTTPException) -> HTMLResponse:
    """Handle 403 Forbidden errors without revealing which check failed."""
    logger.warning(f"403 error: {request.method} {request.url.path}")

    return templates.TemplateResponse(
        request=request, name="403.html", context={"message": "Request forbidden"}, status_code=403
    )


async def internal_server_error_handler(request: Request, exc: Exception) -> HTMLResponse:
    """Handle 500 Internal Server Error with a generic page."""
    log_error(exc, request, context="unhandled exception")

    return templates.TemplateResponse(
        request=request, name="500.html", context={}, status_code=500
    )
