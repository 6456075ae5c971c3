"""Conversation and message API routes.

Learn: The REST side of chat. Live delivery happens over /ws; these
routes are what a client uses to open a conversation and to (re)load
history — including messages that arrived while it was offline.

- POST /conversations                                 open (or reopen) a 1:1 chat
- POST /conversations/:id/join                        add the caller as a member
- POST /conversations/:id/messages                    send via REST (no live push)
- GET  /conversations/:id/messages                    full history, oldest first
- GET  /conversations/:id/messages/pagination         newest first, offset/limit
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from chathub.auth.dependencies import CurrentUser, get_current_user
from chathub.db.engine import get_db
from chathub.db.models import Conversation, Message
from chathub.schemas.conversation import ConversationCreate, ConversationRead
from chathub.schemas.message import MessageCreate, MessageRead
from chathub.schemas.user import UserRead
from chathub.services.conversation_service import ConversationService
from chathub.services.errors import InvalidRecipientError, NotFoundError
from chathub.services.message_service import MessageService

router = APIRouter(prefix="/conversations")


def _conv_svc(db: AsyncSession = Depends(get_db)) -> ConversationService:
    return ConversationService(db)


def _msg_svc(db: AsyncSession = Depends(get_db)) -> MessageService:
    return MessageService(db)


def conversation_view(
    conversation: Conversation,
    viewer_id: uuid.UUID,
    latest: Optional[Message] = None,
) -> ConversationRead:
    """Render a conversation from one member's point of view."""
    members = [UserRead.from_model(m) for m in conversation.members]
    recipient = next((m for m in members if m.id != viewer_id), None)
    return ConversationRead(
        id=conversation.id,
        members=members,
        create_at=conversation.created_at,
        latest_message=MessageRead.from_model(latest) if latest else None,
        recipient=recipient,
    )


# ═══════════════════════════════════════════════════════════
# Conversations
# ═══════════════════════════════════════════════════════════


@router.post("", response_model=ConversationRead, status_code=201)
async def create_conversation(
    body: ConversationCreate,
    response: Response,
    current: CurrentUser = Depends(get_current_user),
    svc: ConversationService = Depends(_conv_svc),
    messages: MessageService = Depends(_msg_svc),
):
    """Open a conversation with another user.

    Returns 201 for a new conversation, 200 when the pair already had one.
    """
    try:
        conversation, created = await svc.get_or_create_pair(
            current.uuid, body.recipient_id
        )
    except InvalidRecipientError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if not created:
        response.status_code = 200
    return conversation_view(
        conversation,
        current.uuid,
        None if created else await messages.latest(conversation.id),
    )


@router.post("/{conversation_id}/join", response_model=ConversationRead)
async def join_conversation(
    conversation_id: uuid.UUID,
    current: CurrentUser = Depends(get_current_user),
    svc: ConversationService = Depends(_conv_svc),
    messages: MessageService = Depends(_msg_svc),
):
    try:
        conversation = await svc.join(conversation_id, current.uuid)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return conversation_view(
        conversation, current.uuid, await messages.latest(conversation.id)
    )


# ═══════════════════════════════════════════════════════════
# Messages
# ═══════════════════════════════════════════════════════════


@router.post(
    "/{conversation_id}/messages", response_model=MessageRead, status_code=201
)
async def create_message(
    conversation_id: uuid.UUID,
    body: MessageCreate,
    current: CurrentUser = Depends(get_current_user),
    svc: MessageService = Depends(_msg_svc),
):
    """Store a message sent by the caller."""
    try:
        message = await svc.create_message(
            conversation_id=conversation_id,
            sender_id=current.uuid,
            text=body.text,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return MessageRead.from_model(message)


@router.get("/{conversation_id}/messages", response_model=list[MessageRead])
async def list_messages(
    conversation_id: uuid.UUID,
    svc: MessageService = Depends(_msg_svc),
):
    messages = await svc.list_for_conversation(conversation_id)
    return [MessageRead.from_model(m) for m in messages]


@router.get(
    "/{conversation_id}/messages/pagination", response_model=list[MessageRead]
)
async def paginate_messages(
    conversation_id: uuid.UUID,
    page: int = Query(..., ge=0, description="Rows to skip"),
    limit: int = Query(..., ge=1, le=100),
    svc: MessageService = Depends(_msg_svc),
):
    """Newest messages first — page through history as the user scrolls up."""
    messages = await svc.paginate(conversation_id, page=page, limit=limit)
    return [MessageRead.from_model(m) for m in messages]
