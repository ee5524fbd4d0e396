"""
FastAPI application factory
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.sessions import SessionMiddleware

from hourbook.config import get_settings
from hourbook.errors import (
    HourbookError, ValidationError, NotFoundError, ConflictError,
    AuthorizationError, AuthenticationError, ExternalServiceError,
)
from hourbook.infrastructure.db.session import check_db_connection
from hourbook.api.v1 import (
    auth, users, projects, categories, quotas, time_entries,
    invoices, odoo, reports, audit_logs,
)

logger = logging.getLogger(__name__)

# Most specific first; anything else derived from HourbookError is a 400
ERROR_STATUS = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (AuthorizationError, 403),
    (AuthenticationError, 401),
    (ExternalServiceError, 502),
)


def status_for(exc: HourbookError) -> int:
    for exc_type, code in ERROR_STATUS:
        if isinstance(exc, exc_type):
            return code
    return 400


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Catches everything the exception handlers did not, including sync routes"""

    async def dispatch(self, request, call_next):
        try:
            return await call_next(request)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return JSONResponse({"detail": "Internal Server Error"}, status_code=500)


def create_app() -> FastAPI:
    """
    Application factory - creates and configures the FastAPI app

    Returns:
        Configured FastAPI app
    """
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    app = FastAPI(
        title="Hourbook",
        debug=settings.DEBUG,
    )

    @app.exception_handler(HourbookError)
    async def hourbook_error_handler(request: Request, exc: HourbookError):
        code = status_for(exc)
        if code == 502:
            logger.warning("External service error on %s: %s", request.url.path, exc)
        return JSONResponse({"detail": str(exc)}, status_code=code)

    app.add_middleware(ErrorLoggingMiddleware)

    # Middleware
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SECRET_KEY
    )

    # Routers
    app.include_router(auth.router)
    app.include_router(users.router)
    app.include_router(projects.router)
    app.include_router(categories.router)
    app.include_router(quotas.router)
    app.include_router(time_entries.router)
    app.include_router(invoices.router)
    app.include_router(odoo.router)
    app.include_router(reports.router)
    app.include_router(audit_logs.router)

    # Health checks
    @app.get("/health", response_class=PlainTextResponse, tags=["system"])
    def health():
        """Health check endpoint"""
        return "ok"

    @app.get("/ready", response_class=PlainTextResponse, tags=["system"])
    def ready():
        """Readiness check endpoint (database must answer)"""
        check_db_connection()
        return "ok"

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "hourbook.main:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
