"""Message schemas — shared by the REST API and the WebSocket hub."""

import uuid
from datetime import datetime, timezone

from pydantic import Field

from chathub.db.models import Message
from chathub.schemas.base import CamelModel


class MessageCreate(CamelModel):
    text: str = Field(..., min_length=1, max_length=2000)


class MessageRead(CamelModel):
    """A chat message as clients see it.

    Ids are strings on the wire: the hub forwards whatever ids the sender
    supplied, before (and regardless of whether) the store accepted them.
    """

    id: str
    conversation_id: str
    sender: str
    text: str
    create_at: datetime

    @classmethod
    def from_model(cls, message: Message) -> "MessageRead":
        return cls(
            id=str(message.id),
            conversation_id=str(message.conversation_id),
            sender=str(message.sender_id),
            text=message.text,
            create_at=message.created_at,
        )

    @classmethod
    def new(cls, conversation_id: str, sender: str, text: str) -> "MessageRead":
        """A fresh, not-yet-persisted message with a new id and timestamp."""
        return cls(
            id=str(uuid.uuid4()),
            conversation_id=conversation_id,
            sender=sender,
            text=text,
            create_at=datetime.now(timezone.utc),
        )
