"""Signed session tokens (HS256 JWT) carrying subject identity and role."""

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta

from jose import jwt
from jose.exceptions import JWTError

from travel_api.errors import InvalidSignatureError, MalformedTokenError, TokenExpiredError

DEFAULT_ALGORITHM = "HS256"


def _now() -> float:
    return time.time()


@dataclass(frozen=True)
class Principal:
    """Verified identity of the caller, threaded explicitly through handlers."""

    subject_id: int
    role: int
    issued_at: int
    expires_at: int


class TokenService:
    """
    Issue and verify stateless session tokens.

    Tokens are never stored server-side, so there is no revocation: a token
    stays valid until its ``exp`` claim passes.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = DEFAULT_ALGORITHM,
        clock: Callable[[], float] | None = None,
    ):
        if not secret:
            raise ValueError("Token signing secret must not be empty")
        self._secret = secret
        self._algorithm = algorithm
        self._clock = clock or _now

    def issue(self, subject_id: int, role: int, ttl: timedelta) -> str:
        """Create a token for ``subject_id`` that expires ``ttl`` after issuance."""
        if ttl < timedelta(0):
            raise ValueError("Token TTL must not be negative")

        issued_at = int(self._clock())
        payload = {
            "sub": str(subject_id),
            "user_id": int(subject_id),
            "role_id": int(role),
            "iat": issued_at,
            "exp": issued_at + int(ttl.total_seconds()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Principal:
        """
        Verify ``token`` and return its principal.

        Raises:
            MalformedTokenError: token or claims cannot be decoded
            InvalidSignatureError: MAC mismatch or unexpected algorithm
            TokenExpiredError: current time is at or past ``exp``
        """
        try:
            header = jwt.get_unverified_header(token)
            jwt.get_unverified_claims(token)
        except (JWTError, AttributeError, TypeError) as exc:
            raise MalformedTokenError() from exc

        if header.get("alg") != self._algorithm:
            raise InvalidSignatureError()

        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": False, "verify_iat": False, "verify_nbf": False},
            )
        except JWTError as exc:
            raise InvalidSignatureError() from exc

        principal = self._principal_from_claims(claims)
        if self._clock() >= principal.expires_at:
            raise TokenExpiredError()
        return principal

    @staticmethod
    def _principal_from_claims(claims: dict) -> Principal:
        fields = {}
        for claim in ("user_id", "role_id", "exp"):
            value = claims.get(claim)
            # bool is an int subclass but never a valid claim value here
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise MalformedTokenError()
            fields[claim] = int(value)

        issued_at = claims.get("iat", fields["exp"])
        if isinstance(issued_at, bool) or not isinstance(issued_at, (int, float)):
            raise MalformedTokenError()

        return Principal(
            subject_id=fields["user_id"],
            role=fields["role_id"],
            issued_at=int(issued_at),
            expires_at=fields["exp"],
        )
