"""Pydantic schemas for pairwise conversations."""

import uuid
from datetime import datetime
from typing import Optional

from chathub.schemas.base import CamelModel
from chathub.schemas.message import MessageRead
from chathub.schemas.user import UserRead


class ConversationCreate(CamelModel):
    recipient_id: uuid.UUID


class ConversationRead(CamelModel):
    """Conversation as shown in a user's inbox.

    recipient is "the other member" from the caller's point of view;
    latest_message is None for a conversation with no messages yet.
    """

    id: uuid.UUID
    members: list[UserRead]
    create_at: datetime
    latest_message: Optional[MessageRead] = None
    recipient: Optional[UserRead] = None
