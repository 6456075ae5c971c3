"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract
and validate the current user from the Authorization header.
"""

import uuid
from typing import Optional

from fastapi import Depends, Header, HTTPException

from chathub.auth.jwt import JWTAuthVerifier, TokenError, get_auth_verifier


class CurrentUser:
    """The authenticated caller of a request."""

    def __init__(self, user_id: str):
        self.user_id = user_id

    @property
    def uuid(self) -> uuid.UUID:
        return uuid.UUID(self.user_id)


async def get_current_user_optional(
    authorization: Optional[str] = Header(None),
    verifier: JWTAuthVerifier = Depends(get_auth_verifier),
) -> Optional[CurrentUser]:
    """Soft auth — None when no bearer token is present."""
    if not authorization or not authorization.startswith("Bearer "):
        return None

    try:
        user_id = verifier.identity_from_token(authorization[7:])
        uuid.UUID(user_id)
    except (TokenError, ValueError) as e:
        raise HTTPException(
            status_code=401,
            detail=str(e) if isinstance(e, TokenError) else "Invalid token subject",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return CurrentUser(user_id)


async def get_current_user(
    user: Optional[CurrentUser] = Depends(get_current_user_optional),
) -> CurrentUser:
    """Hard auth — 401 if no valid bearer token."""
    if not user:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
