"""JWT access tokens.

Learn: The token carries only the user id (sub) and an expiry. There is
no refresh flow — clients log in again when the token expires (one day
by default, see CHATHUB_ACCESS_TOKEN_EXPIRE_MINUTES).
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from chathub.config import settings


class TokenError(Exception):
    """Raised when a token is missing, malformed, expired or forged."""


def create_access_token(user_id: str, expires_minutes: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "type": "access",
        "iat": now,
        "exp": now + timedelta(
            minutes=expires_minutes or settings.access_token_expire_minutes
        ),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Decode and validate a token. Returns the payload, raises TokenError."""
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")

    if payload.get("type") != "access" or not payload.get("sub"):
        raise TokenError("Invalid token: not an access token")
    return payload


class JWTAuthVerifier:
    """Resolves a bearer token to the user id it was issued for."""

    def identity_from_token(self, token: str) -> str:
        return verify_token(token)["sub"]


def get_auth_verifier() -> JWTAuthVerifier:
    """FastAPI dependency — overridable in tests."""
    return JWTAuthVerifier()
