import logging
import secrets
import time
from typing import Optional

from fastapi import Header
from jose import jwt, JWTError

from app.core.config import settings
from app.core.errors import ForbiddenError, UnauthorizedError

logger = logging.getLogger(__name__)

INTERNAL_JWT_ALGORITHM = "HS256"
INTERNAL_JWT_MAX_AGE_SECONDS = 120
INTERNAL_JWT_CLOCK_SKEW_SECONDS = 30


class InternalTokenError(Exception):
    """Internal JWT rejected; ``reason`` is a short machine-readable code."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def looks_like_jwt(token: str) -> bool:
    return token.count(".") == 2 and all(token.split("."))


def create_internal_token(
    signing_key: str,
    audience: str,
    request_id: str,
    issuer: Optional[str] = None,
    subject: Optional[str] = None,
    now: Optional[float] = None,
    expires_in: int = 60,
) -> str:
    """Sign a short-lived internal service JWT (used by callers and tests)."""
    issued_at = int(now if now is not None else time.time())
    claims = {
        "aud": audience,
        "internal": True,
        "requestId": request_id,
        "iat": issued_at,
        "exp": issued_at + expires_in,
    }
    if issuer:
        claims["iss"] = issuer
    if subject:
        claims["sub"] = subject
    return jwt.encode(claims, signing_key, algorithm=INTERNAL_JWT_ALGORITHM)


def verify_internal_token(
    token: str,
    signing_key: str,
    audience: str,
    now: Optional[float] = None,
    max_age_seconds: int = INTERNAL_JWT_MAX_AGE_SECONDS,
    clock_skew_seconds: int = INTERNAL_JWT_CLOCK_SKEW_SECONDS,
) -> dict:
    """
    Verify an internal service JWT and return its claims.

    The signature is checked by python-jose; time-based claims are checked
    here against ``now`` so the window is explicit.

    Raises:
        InternalTokenError: With the reason the token was rejected
    """
    try:
        header = jwt.get_unverified_header(token)
    except JWTError:
        raise InternalTokenError("invalid_header")
    if header.get("alg") != INTERNAL_JWT_ALGORITHM:
        raise InternalTokenError("unsupported_algorithm")

    try:
        claims = jwt.decode(
            token,
            signing_key,
            algorithms=[INTERNAL_JWT_ALGORITHM],
            options={"verify_aud": False, "verify_exp": False, "verify_iat": False, "verify_nbf": False},
        )
    except JWTError:
        raise InternalTokenError("invalid_signature")

    current = now if now is not None else time.time()

    if claims.get("internal") is not True:
        raise InternalTokenError("not_internal")

    aud = claims.get("aud")
    audiences = aud if isinstance(aud, list) else [aud]
    if audience not in audiences:
        raise InternalTokenError("invalid_audience")

    iat = claims.get("iat")
    if not isinstance(iat, (int, float)):
        raise InternalTokenError("missing_iat")
    if iat > current + clock_skew_seconds:
        raise InternalTokenError("iat_in_future")
    if current - iat > max_age_seconds + clock_skew_seconds:
        raise InternalTokenError("token_too_old")

    exp = claims.get("exp")
    if exp is not None:
        if not isinstance(exp, (int, float)):
            raise InternalTokenError("invalid_exp")
        if current > exp + clock_skew_seconds:
            raise InternalTokenError("expired")

    request_id = claims.get("requestId")
    if not isinstance(request_id, str) or not request_id.strip():
        raise InternalTokenError("missing_request_id")

    return claims


def _static_token_matches(provided: str, expected: Optional[str]) -> bool:
    if not expected:
        return False
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def require_internal_service_auth(
    x_internal_service_token: Optional[str] = Header(None, alias="X-Internal-Service-Token"),
) -> None:
    """
    FastAPI dependency guarding internal endpoints.

    Accepts the shared static token, or an internal JWT when a signing key is
    configured. A missing header is 401; a wrong token is 403.
    """
    if not x_internal_service_token:
        raise UnauthorizedError("Missing internal service token")

    signing_key = settings.INTERNAL_JWT_SIGNING_KEY
    if signing_key and looks_like_jwt(x_internal_service_token):
        try:
            verify_internal_token(x_internal_service_token, signing_key, settings.SERVICE_NAME)
        except InternalTokenError as exc:
            logger.warning("Rejected internal JWT: %s", exc.reason)
            raise ForbiddenError("Invalid internal service token")
        return

    if not _static_token_matches(x_internal_service_token, settings.INTERNAL_SERVICE_TOKEN):
        logger.warning("Rejected internal service token")
        raise ForbiddenError("Invalid internal service token")
