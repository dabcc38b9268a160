"""Error types shared by the auth, rate limiting and router layers."""

from fastapi import status
from fastapi.responses import JSONResponse


class TravelAPIError(Exception):
    """Base exception rendered as ``{"error": {"code", "message"}}``."""

    code = "INTERNAL_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def headers(self) -> dict[str, str] | None:
        return None


class TokenError(TravelAPIError):
    """Any failure to authenticate a bearer token."""

    code = "UNAUTHORIZED"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "invalid token"
    # Internal failure kind, used in logs only
    kind = "unauthenticated"


class MissingTokenError(TokenError):
    kind = "missing"


class InvalidSignatureError(TokenError):
    kind = "invalid_signature"


class TokenExpiredError(TokenError):
    kind = "expired"


class MalformedTokenError(TokenError):
    kind = "malformed"


class ForbiddenError(TravelAPIError):
    code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Insufficient role"


class NotFoundError(TravelAPIError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(TravelAPIError):
    code = "CONFLICT"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class InvalidCredentialsError(TravelAPIError):
    code = "UNAUTHORIZED"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "invalid email or password"


class PayloadTooLargeError(TravelAPIError):
    code = "PAYLOAD_TOO_LARGE"
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    default_message = "File is too large"


class ServiceUnavailableError(TravelAPIError):
    code = "SERVICE_UNAVAILABLE"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "db down"


class RateLimitExceeded(TravelAPIError):
    """Bucket exhausted. Recoverable by retrying after ``retry_after`` seconds."""

    code = "RATE_LIMITED"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "rate limit exceeded"

    def __init__(self, retry_after: int = 1, message: str | None = None):
        self.retry_after = max(1, int(retry_after))
        super().__init__(message)

    @property
    def headers(self) -> dict[str, str]:
        return {"Retry-After": str(self.retry_after)}


def error_body(code: str, message: str, request_id: str | None) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "request_id": request_id,
        }
    }


def error_response(exc: TravelAPIError, request_id: str | None = None) -> JSONResponse:
    """Render ``exc`` in the standard error envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.message, request_id),
        headers=exc.headers,
    )
