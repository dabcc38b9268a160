"""Authentication dependencies for FastAPI endpoints."""

from fastapi import Header, Request

from travel_api.auth.tokens import Principal, TokenService
from travel_api.errors import MissingTokenError, TokenError
from travel_api.logging import get_logger

logger = get_logger("travel_api.auth")

BEARER_PREFIX = "Bearer "


def get_token_service(request: Request) -> TokenService:
    """Return the token service owned by the running application."""
    return request.app.state.token_service


async def get_principal(
    request: Request,
    authorization: str | None = Header(default=None),
) -> Principal:
    """
    Verify the bearer token and return the caller's principal.

    Every failure kind surfaces as the same 401; the kind is only logged.

    Raises:
        TokenError: token is missing, malformed, expired or badly signed
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        logger.info("authentication failed", kind=MissingTokenError.kind, path=request.url.path)
        raise MissingTokenError()

    token = authorization[len(BEARER_PREFIX):].strip()
    try:
        principal = get_token_service(request).verify(token)
    except TokenError as exc:
        logger.info("authentication failed", kind=exc.kind, path=request.url.path)
        raise TokenError() from exc

    request.state.principal = principal
    return principal
