"""Conversation service — pairwise conversations and membership.

Learn: A conversation is created lazily the first time one user opens a
chat with another. Creating it again for the same pair returns the
existing row, so clients can call create unconditionally.
"""

import uuid

from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from chathub.db.models import Conversation, User, conversation_members
from chathub.services.errors import InvalidRecipientError, NotFoundError


class ConversationService:
    """Business logic for conversations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_or_create_pair(
        self, user_id: uuid.UUID, recipient_id: uuid.UUID
    ) -> tuple[Conversation, bool]:
        """Find the conversation between two users or create it.

        Returns (conversation, created).
        """
        if user_id == recipient_id:
            raise InvalidRecipientError("Cannot start a conversation with yourself")

        existing = await self.find_by_pair(user_id, recipient_id)
        if existing:
            return existing, False

        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        recipient = await self.db.get(User, recipient_id)
        if not recipient:
            raise InvalidRecipientError(f"Recipient {recipient_id} not found")

        conversation = Conversation(members=[user, recipient])
        self.db.add(conversation)
        await self.db.commit()
        return await self.get(conversation.id), True

    async def find_by_pair(
        self, user_id: uuid.UUID, recipient_id: uuid.UUID
    ) -> Conversation | None:
        mine = conversation_members.alias("mine")
        theirs = conversation_members.alias("theirs")
        result = await self.db.execute(
            select(Conversation)
            .join(mine, mine.c.conversation_id == Conversation.id)
            .join(theirs, theirs.c.conversation_id == Conversation.id)
            .where(mine.c.user_id == user_id, theirs.c.user_id == recipient_id)
            .limit(1)
        )
        return result.scalars().first()

    async def get(self, conversation_id: uuid.UUID) -> Conversation | None:
        result = await self.db.execute(
            select(Conversation)
            .where(Conversation.id == conversation_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def list_for_user(
        self,
        user_id: uuid.UUID,
        page: int = 0,
        limit: int | None = None,
    ) -> list[Conversation]:
        """Conversations the user is a member of, newest first.

        page is the number of rows to skip, as in the message pagination.
        """
        query = (
            select(Conversation)
            .join(
                conversation_members,
                conversation_members.c.conversation_id == Conversation.id,
            )
            .where(conversation_members.c.user_id == user_id)
            .order_by(Conversation.created_at.desc())
            .offset(page)
        )
        if limit is not None:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def join(self, conversation_id: uuid.UUID, user_id: uuid.UUID) -> Conversation:
        """Add a member. Joining twice is a no-op."""
        conversation = await self.get(conversation_id)
        if not conversation:
            raise NotFoundError(f"Conversation {conversation_id} not found")
        if not await self.db.get(User, user_id):
            raise NotFoundError(f"User {user_id} not found")

        if all(member.id != user_id for member in conversation.members):
            await self.db.execute(
                insert(conversation_members).values(
                    conversation_id=conversation_id, user_id=user_id
                )
            )
            await self.db.commit()
            conversation = await self.get(conversation_id)
        return conversation
