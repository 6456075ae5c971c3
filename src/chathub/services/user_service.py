"""User service — registration, credential checks and lookups."""

import uuid

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from chathub.auth.password import hash_password, verify_password
from chathub.db.models import User
from chathub.services.errors import UsernameTakenError


class UserService:
    """Business logic for user accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def register(
        self, username: str, password: str, profile_picture: str = ""
    ) -> User:
        if await self.get_by_username(username):
            raise UsernameTakenError(f"Username '{username}' already exists")

        user = User(
            username=username,
            password_hash=hash_password(password),
            profile_picture=profile_picture,
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration of the same name
            await self.db.rollback()
            raise UsernameTakenError(f"Username '{username}' already exists")
        await self.db.refresh(user)
        return user

    async def authenticate(self, username: str, password: str) -> User | None:
        """Return the user if the credentials match, else None."""
        user = await self.get_by_username(username)
        if not user or not verify_password(password, user.password_hash):
            return None
        return user

    async def get_by_username(self, username: str) -> User | None:
        result = await self.db.execute(select(User).where(User.username == username))
        return result.scalars().first()

    async def get(self, user_id: uuid.UUID) -> User | None:
        return await self.db.get(User, user_id)

    async def list_users(self, exclude_id: uuid.UUID | None = None) -> list[User]:
        """All users ordered by username, optionally leaving out the caller."""
        query = select(User).order_by(User.username)
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        result = await self.db.execute(query)
        return list(result.scalars().all())
