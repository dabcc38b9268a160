"""
Travel API - travel agency backend.

FastAPI application exposing auth, profile, feedback and admin endpoints,
protected by per-client rate limiting and role-gated JWT authentication.
"""

import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from travel_api.auth.tokens import TokenService
from travel_api.config import settings, validate_security_settings
from travel_api.database import init_db, ping_db
from travel_api.errors import ServiceUnavailableError, TravelAPIError, error_body, error_response
from travel_api.logging import configure_logging, get_logger, set_request_id
from travel_api.middleware.rate_limit import RateLimiters, global_rate_limit
from travel_api.routers.admin import router as admin_router
from travel_api.routers.admin import upload_router
from travel_api.routers.auth import router as auth_router
from travel_api.routers.feedback import router as feedback_router
from travel_api.routers.profile import router as profile_router

# Import models to register them with Base.metadata
from travel_api.models import Feedback, User  # noqa: F401

configure_logging("travel_api", settings.log_level)
logger = get_logger("travel_api.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup: refuse insecure secrets, migrate, make sure sweepers run
    validate_security_settings(app.state.settings)
    await init_db()
    app.state.rate_limiters.start_all()
    logger.info("travel api started", environment=app.state.settings.environment)
    yield
    # Shutdown
    app.state.rate_limiters.stop_all()
    logger.info("travel api stopped")


app = FastAPI(
    title="Travel API",
    description="Travel agency backend",
    version="1.0.0",
    docs_url="/swagger",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
    lifespan=lifespan,
)

app.state.settings = settings
app.state.token_service = TokenService(settings.jwt_secret)
app.state.rate_limiters = RateLimiters.from_settings(settings)

# Include routers
app.include_router(auth_router)
app.include_router(profile_router)
app.include_router(feedback_router)
app.include_router(admin_router)
app.include_router(upload_router)

app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")


# --- Middleware ---
# Last registered runs first: CORS -> request ID -> global rate limit -> routes

app.middleware("http")(global_rate_limit)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add a unique request ID to each request."""
    request_id = set_request_id(str(uuid.uuid4()))
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Accept", "Authorization", "Content-Type"],
    max_age=300,
)


# --- Exception Handlers ---


def _sanitize_error_detail(error: dict[str, Any]) -> dict[str, Any]:
    """Sanitize Pydantic error detail to be JSON-serializable."""
    sanitized = {}
    for key, value in error.items():
        if key == "ctx":
            # Context may hold exception instances
            sanitized[key] = {k: str(v) for k, v in value.items()} if isinstance(value, dict) else str(value)
        elif key == "loc":
            sanitized[key] = [str(loc) for loc in value]
        elif key == "input":
            continue
        else:
            sanitized[key] = value
    return sanitized


@app.exception_handler(TravelAPIError)
async def travel_api_exception_handler(request: Request, exc: TravelAPIError) -> JSONResponse:
    """Render domain errors (401, 403, 404, 409, 429...) in the common envelope."""
    return error_response(exc, getattr(request.state, "request_id", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors with consistent error format."""
    request_id = getattr(request.state, "request_id", None)

    errors = [_sanitize_error_detail(e) for e in exc.errors()]
    if errors:
        first_error = errors[0]
        field = ".".join(str(loc) for loc in first_error.get("loc", []))
        msg = first_error.get("msg", "Validation error")
        message = f"{field}: {msg}" if field else msg
    else:
        message = "Validation error"

    body = error_body("VALIDATION_ERROR", message, request_id)
    body["error"]["details"] = errors
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=body)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework errors (unknown route, wrong method) in the common envelope."""
    codes = {
        status.HTTP_404_NOT_FOUND: "NOT_FOUND",
        status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
    }
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(
            codes.get(exc.status_code, "HTTP_ERROR"),
            str(exc.detail),
            getattr(request.state, "request_id", None),
        ),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions with consistent error format."""
    logger.error("unhandled exception", path=request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(
            "INTERNAL_ERROR",
            "An unexpected error occurred",
            getattr(request.state, "request_id", None),
        ),
    )


# --- Health Check ---


@app.get("/api/v1/health", tags=["System"])
async def health_check() -> dict[str, str]:
    """
    Health check endpoint.

    Returns 200 OK if the API is running.
    """
    return {"status": "healthy"}


@app.get("/healthz", tags=["System"], status_code=status.HTTP_204_NO_CONTENT)
async def healthz() -> Response:
    """Liveness check for load balancers."""
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.get("/readyz", tags=["System"], status_code=status.HTTP_204_NO_CONTENT)
async def readyz() -> Response:
    """Readiness check: 204 when the database answers, 503 otherwise."""
    try:
        await ping_db()
    except Exception as exc:
        logger.warning("readiness check failed", error=str(exc))
        raise ServiceUnavailableError() from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
