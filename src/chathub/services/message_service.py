"""Message service — chat history persistence.

Learn: Two entry points write messages:
1. REST  POST /conversations/:id/messages  → MessageService (request session)
2. WebSocket sendMessage                   → DatabaseMessageStore (own session)

The hub generates the message id and timestamp itself so the live copy
pushed to the recipient and the stored row are the same message.
"""

import uuid
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chathub.db.models import Conversation, Message
from chathub.schemas.message import MessageRead
from chathub.services.errors import NotFoundError, StoreError

logger = structlog.get_logger()


class MessageService:
    """Business logic for chat messages."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_message(
        self,
        conversation_id: uuid.UUID,
        sender_id: uuid.UUID,
        text: str,
        message_id: uuid.UUID | None = None,
        created_at: datetime | None = None,
    ) -> Message:
        if not await self.db.get(Conversation, conversation_id):
            raise NotFoundError(f"Conversation {conversation_id} not found")

        message = Message(
            id=message_id or uuid.uuid4(),
            conversation_id=conversation_id,
            sender_id=sender_id,
            text=text,
        )
        if created_at is not None:
            message.created_at = created_at
        self.db.add(message)
        await self.db.commit()
        return message

    async def list_for_conversation(self, conversation_id: uuid.UUID) -> list[Message]:
        """Full history, oldest first."""
        result = await self.db.execute(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at)
        )
        return list(result.scalars().all())

    async def paginate(
        self, conversation_id: uuid.UUID, page: int, limit: int
    ) -> list[Message]:
        """Newest first. page is an offset in rows, not a page number."""
        result = await self.db.execute(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.desc())
            .offset(page)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def latest(self, conversation_id: uuid.UUID) -> Message | None:
        result = await self.db.execute(
            select(Message)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.desc())
            .limit(1)
        )
        return result.scalars().first()


class DatabaseMessageStore:
    """Message store used by the WebSocket hub.

    Opens a short-lived session per write so a slow or failed write never
    holds a connection for the lifetime of a socket. Every failure surfaces
    as StoreError.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def create_message(self, message: MessageRead) -> None:
        try:
            message_id = uuid.UUID(message.id)
            conversation_id = uuid.UUID(message.conversation_id)
            sender_id = uuid.UUID(message.sender)
        except ValueError as e:
            raise StoreError(f"Malformed id in message {message.id}: {e}") from e

        try:
            async with self.session_factory() as db:
                await MessageService(db).create_message(
                    conversation_id=conversation_id,
                    sender_id=sender_id,
                    text=message.text,
                    message_id=message_id,
                    created_at=message.create_at,
                )
        except NotFoundError as e:
            raise StoreError(str(e)) from e
        except SQLAlchemyError as e:
            raise StoreError(f"Database write failed: {e}") from e

        logger.debug(
            "store.message_created",
            message_id=message.id,
            conversation_id=message.conversation_id,
        )
