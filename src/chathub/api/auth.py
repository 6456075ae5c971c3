"""Auth API — registration and login.

Learn: Both routes are open (no token required):
- POST /users/register → create an account
- POST /users/login    → username/password → JWT access token
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from chathub.auth.jwt import create_access_token
from chathub.config import settings
from chathub.db.engine import get_db
from chathub.schemas.user import LoginRequest, RegisterRequest, TokenResponse, UserRead
from chathub.services.errors import UsernameTakenError
from chathub.services.user_service import UserService

logger = structlog.get_logger()
router = APIRouter(prefix="/users")


def _user_svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


@router.post("/register", response_model=UserRead, status_code=201)
async def register(body: RegisterRequest, svc: UserService = Depends(_user_svc)):
    """Create a new user account."""
    try:
        user = await svc.register(
            username=body.username,
            password=body.password,
            profile_picture=body.profile_picture,
        )
    except UsernameTakenError as e:
        raise HTTPException(status_code=409, detail=str(e))
    logger.info("auth.registered", user_id=str(user.id))
    return UserRead.from_model(user)


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, svc: UserService = Depends(_user_svc)):
    """Exchange username and password for an access token."""
    user = await svc.authenticate(body.username, body.password)
    if not user:
        logger.info("auth.login_failed", username=body.username)
        raise HTTPException(status_code=401, detail="Invalid credentials")

    return TokenResponse(
        token=create_access_token(str(user.id)),
        expires_in=settings.access_token_expire_minutes * 60,
    )
