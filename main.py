"""User Accounts API - registration, login, password reset and profiles."""

import logging
import sys
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.config import Settings, get_settings
from app.database import Database
from app.rate_limit import limiter
from app.routers import auth_router, users_router
from app.services.accounts import AccountService
from app.services.passwords import PasswordHasher
from app.services.reset_tokens import ResetTokenManager

__version__ = "0.1.0"

# Logging
logger = logging.getLogger("user_accounts")
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


# --- Security headers middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        return response


# --- Request size limit middleware ---
class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    MAX_BODY_SIZE = 64 * 1024  # account payloads are tiny

    async def dispatch(self, request: Request, call_next) -> Response:
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.MAX_BODY_SIZE:
            return JSONResponse(status_code=413, content={"success": False, "error": "Request body too large"})
        return await call_next(request)


# --- Audit logging middleware ---
class AuditLogMiddleware(BaseHTTPMiddleware):
    AUDIT_PATHS = ("/register", "/login", "/forget-password", "/reset-password/", "/profile/")

    async def dispatch(self, request: Request, call_next) -> Response:
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        path = request.url.path
        method = request.method
        if method in ("POST", "PUT", "DELETE") and path.startswith(self.AUDIT_PATHS):
            # Reset tokens are credentials, keep them out of the log
            if path.startswith("/reset-password/"):
                path = "/reset-password/<token>"
            logger.info(
                "AUDIT %s %s -> %d (%.0fms) from %s",
                method,
                path,
                response.status_code,
                duration_ms,
                request.client.host if request.client else "unknown",
            )

        return response


def error_response(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    """Render a failure in the standard error envelope."""
    content: dict = {"success": False, "error": error}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return "; ".join(parts)


def create_app(settings: Settings) -> FastAPI:
    """Build the application and everything it owns from explicit settings."""
    logger.setLevel(settings.LOG_LEVEL)

    database = Database(settings)
    hasher = PasswordHasher(rounds=settings.BCRYPT_ROUNDS)
    reset_tokens = ResetTokenManager(ttl=timedelta(minutes=settings.RESET_TOKEN_TTL_MINUTES))

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if settings.DB_AUTO_CREATE:
            database.create_all()
        database.ping()
        logger.info("Database ready (%s)", database.engine.url.render_as_string(hide_password=True))
        yield
        database.dispose()

    app = FastAPI(title="User Accounts", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.account_service = AccountService(settings, hasher=hasher, reset_tokens=reset_tokens)

    app.state.limiter = limiter

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware)
    app.add_middleware(AuditLogMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    app.include_router(auth_router)
    app.include_router(users_router)

    # --- Rate limit error handler ---
    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        """Handle rate limit exceeded."""
        logger.warning("Rate limit exceeded on %s from %s", request.url.path, request.client)
        return error_response(429, "Rate limit exceeded. Try again later.")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Render HTTP errors in the error envelope."""
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Malformed or missing input is a 400."""
        details = _format_validation_errors(exc)
        logger.info("Validation failed on %s %s: %s", request.method, request.url.path, details)
        return error_response(400, "Validation error", details)

    @app.exception_handler(Exception)
    async def unexpected_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Anything else is logged with its traceback and reported as a 500."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(500, "Internal server error")

    @app.get("/")
    def root() -> dict:
        return {"message": "Welcome to the User Accounts API"}

    @app.get("/hello")
    def hello() -> dict:
        return {"message": "Hello, world!"}

    # --- Health checks ---
    @app.get("/ping")
    def ping() -> dict:
        """Liveness check."""
        return {"pong": "it worked!"}

    @app.get("/health")
    def health_check() -> JSONResponse:
        """Readiness check including database connectivity."""
        try:
            database.ping()
        except SQLAlchemyError as exc:
            logger.error("Health check failed: %s", exc)
            return JSONResponse(status_code=503, content={"status": "unavailable", "database": "disconnected"})
        return JSONResponse(
            content={"status": "ok", "app": "user-accounts", "version": __version__, "database": "connected"}
        )

    return app


def main() -> None:
    """Validate configuration and serve the API. Exits on unusable settings."""
    settings = get_settings()
    errors = settings.validate()
    if errors:
        for error in errors:
            logger.critical("Invalid configuration: %s", error)
        sys.exit(1)

    uvicorn.run(create_app(settings), host=settings.HOST, port=settings.port, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
