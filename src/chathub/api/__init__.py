"""API route aggregation.

All routers registered here get mounted in main.py under /api.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter, so every users/conversations route is protected
without repeating it per handler. Health, register and login are open.
"""

from fastapi import APIRouter, Depends

from chathub.api.auth import router as auth_router
from chathub.api.conversations import router as conversations_router
from chathub.api.health import router as health_router
from chathub.api.users import router as users_router
from chathub.auth.dependencies import get_current_user

_auth = [Depends(get_current_user)]

api_router = APIRouter(prefix="/api")

# Open routes — no auth required
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])

# Protected routes — require a valid bearer token
api_router.include_router(users_router, tags=["users"], dependencies=_auth)
api_router.include_router(
    conversations_router, tags=["conversations", "messages"], dependencies=_auth
)
