"""User API — directory and per-user conversation list.

All routes require a bearer token. /users/me and /users/conversations are
declared before /users/{user_id} so the literal paths win.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from chathub.api.conversations import conversation_view
from chathub.auth.dependencies import CurrentUser, get_current_user
from chathub.db.engine import get_db
from chathub.schemas.conversation import ConversationRead
from chathub.schemas.user import UserRead
from chathub.services.conversation_service import ConversationService
from chathub.services.message_service import MessageService
from chathub.services.user_service import UserService

router = APIRouter(prefix="/users")


def _user_svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


@router.get("", response_model=list[UserRead])
async def list_users(
    current: CurrentUser = Depends(get_current_user),
    svc: UserService = Depends(_user_svc),
):
    """Everyone except the caller — the "start a chat" list."""
    users = await svc.list_users(exclude_id=current.uuid)
    return [UserRead.from_model(u) for u in users]


@router.get("/me", response_model=UserRead)
async def get_me(
    current: CurrentUser = Depends(get_current_user),
    svc: UserService = Depends(_user_svc),
):
    user = await svc.get(current.uuid)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return UserRead.from_model(user)


@router.get("/conversations", response_model=list[ConversationRead])
async def list_my_conversations(
    page: int = Query(0, ge=0, description="Rows to skip"),
    limit: Optional[int] = Query(None, ge=1, le=100),
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Conversations of the caller, newest first, each with its latest message."""
    conversations = await ConversationService(db).list_for_user(
        current.uuid, page=page, limit=limit
    )
    messages = MessageService(db)
    return [
        conversation_view(c, current.uuid, await messages.latest(c.id))
        for c in conversations
    ]


@router.get("/{user_id}", response_model=UserRead)
async def get_user(user_id: uuid.UUID, svc: UserService = Depends(_user_svc)):
    user = await svc.get(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return UserRead.from_model(user)
