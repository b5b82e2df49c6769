import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .api import auth, links, redirect
from .config import settings
from .core.errors import ShortLinkError
from .database import Database
from .logger import setup_logging

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str, detail=None, **extra) -> JSONResponse:
    """Structured failure body. Internal detail only in diagnostic mode."""
    content = {"success": False, "message": message, **extra}
    if settings.DEBUG and detail is not None:
        content["error"] = detail
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


async def shortlink_error_handler(request: Request, exc: ShortLinkError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.detail)
    return error_response(exc.status_code, exc.message, exc.detail)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(400, "Validation failed", errors=exc.errors())


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(500, "Internal server error", detail=str(exc))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store client at startup and dispose it at shutdown"""
    database: Database = app.state.database
    logger.info("Starting short link service...")
    database.open()
    try:
        yield
    finally:
        logger.info("Shutting down short link service...")
        database.close()


def create_app(database: Optional[Database] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        database: Store client to use; defaults to one built from settings.
            It is opened and closed by the application lifespan.
    """
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    app = FastAPI(
        title="Short Links",
        description="URL shortening service with click analytics",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.database = database or Database(settings.DATABASE_URL, timeout=settings.STORE_TIMEOUT_SECONDS)

    # Setup rate limiter
    app.state.limiter = links.limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_exception_handler(ShortLinkError, shortlink_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Include routers
    app.include_router(auth.router, prefix="/api", tags=["auth"])
    app.include_router(links.router, prefix="/api", tags=["links"])
    app.include_router(redirect.router, tags=["redirect"])

    @app.get("/health")
    def health_check(request: Request):
        """Health check endpoint"""
        database_ok = request.app.state.database.ping()
        return {
            "status": "healthy" if database_ok else "degraded",
            "service": "Short Links",
            "database": database_ok,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
