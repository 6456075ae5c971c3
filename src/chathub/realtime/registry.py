"""Session registry — which live connection belongs to which user.

Learn: Every open WebSocket is a Session. A Session becomes addressable
only after it sends addUser, at which point the registry binds it to a
ConnectedUser (user id + a per-connection token). Two indexes are kept:

    session → ConnectedUser      (presence list, unregister)
    user_id → {sessions}         (recipient lookup, multi-device fan-out)

Both live behind one asyncio.Lock, so a reader never observes one index
updated and the other not. Sends never happen under the lock: callers take
a copy and write to sockets afterwards.
"""

import asyncio
import enum
import uuid
from typing import Any, Optional

from chathub.realtime.envelopes import (
    ConnectedUser,
    NewMessageEnvelope,
    UserListEnvelope,
    encode_outbound,
)
from chathub.realtime.errors import DeliveryError


class SessionState(str, enum.Enum):
    CONNECTED = "connected"    # socket open, no identity yet
    IDENTIFIED = "identified"  # ConnectedUser bound
    CLOSED = "closed"


class Session:
    """One live connection.

    websocket is anything with ``async send_text(str)`` and
    ``async close(code)`` — a Starlette WebSocket in production.
    """

    def __init__(self, websocket: Any, requested_user_id: Optional[str] = None):
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self.requested_user_id = requested_user_id
        self.user: Optional[ConnectedUser] = None
        self.state = SessionState.CONNECTED

    async def send(self, envelope: UserListEnvelope | NewMessageEnvelope) -> None:
        try:
            await self.websocket.send_text(encode_outbound(envelope))
        except Exception as e:
            raise DeliveryError(self.id, e) from e

    async def close(self, code: int = 1001) -> None:
        self.state = SessionState.CLOSED
        await self.websocket.close(code=code)

    def __repr__(self) -> str:
        user = self.user.user_id if self.user else None
        return f"<Session {self.id[:8]} {self.state.value} user={user}>"


class SessionRegistry:
    """Concurrency-safe session ↔ user bookkeeping."""

    def __init__(self):
        self._lock = asyncio.Lock()
        self._users: dict[Session, ConnectedUser] = {}
        self._sessions_by_user: dict[str, set[Session]] = {}

    async def register(self, session: Session, user_id: str) -> ConnectedUser:
        """Bind a session to a user. Re-registering replaces the old binding."""
        async with self._lock:
            self._detach(session)
            user = ConnectedUser(user_id=user_id, connection_token=str(uuid.uuid4()))
            self._users[session] = user
            self._sessions_by_user.setdefault(user_id, set()).add(session)
            session.user = user
            session.state = SessionState.IDENTIFIED
            return user

    async def unregister(self, session: Session) -> Optional[ConnectedUser]:
        """Drop a session's binding. Unknown sessions are ignored."""
        async with self._lock:
            previous = self._detach(session)
            session.user = None
            return previous

    async def list_connected(self) -> list[ConnectedUser]:
        async with self._lock:
            return list(self._users.values())

    async def sessions_for_user(self, user_id: str) -> set[Session]:
        async with self._lock:
            return set(self._sessions_by_user.get(user_id, ()))

    def __len__(self) -> int:
        return len(self._users)

    def _detach(self, session: Session) -> Optional[ConnectedUser]:
        # Caller holds the lock.
        previous = self._users.pop(session, None)
        if previous is not None:
            peers = self._sessions_by_user.get(previous.user_id)
            if peers is not None:
                peers.discard(session)
                if not peers:
                    del self._sessions_by_user[previous.user_id]
        return previous
