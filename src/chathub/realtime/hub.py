"""Connection hub — lifecycle of every WebSocket connection.

Learn: One hub per process. Each connection runs serve() in its own task:

    connect      → Session(CONNECTED): sees presence, not yet addressable
    addUser      → registry.register → presence broadcast (IDENTIFIED)
    sendMessage  → router.route
    disconnect   → registry.unregister → presence broadcast (CLOSED)

Frames from one connection are handled strictly in order because serve()
awaits each frame before reading the next. A bad frame, a failed write or
a dead peer only ever affects that frame or that peer.
"""

import asyncio
from typing import Any, Optional

import structlog

from chathub.realtime.envelopes import AddUserEvent, SendMessageEvent, decode_inbound
from chathub.realtime.errors import DecodeError
from chathub.realtime.presence import PresenceBroadcaster
from chathub.realtime.registry import Session, SessionRegistry, SessionState
from chathub.realtime.router import MessageRouter, MessageStore

logger = structlog.get_logger()


class ConnectionHub:
    def __init__(
        self,
        store: MessageStore,
        enforce_sender_identity: bool = False,
        max_message_size: Optional[int] = None,
    ):
        self.registry = SessionRegistry()
        self.presence = PresenceBroadcaster(self.registry, lambda: self._live)
        self.router = MessageRouter(
            self.registry, store, enforce_sender_identity=enforce_sender_identity
        )
        self.max_message_size = max_message_size
        # Every open session, identified or not: presence targets.
        self._live: set[Session] = set()
        # In-flight disconnect cleanups; they may outlive a cancelled handler.
        self._cleanups: set[asyncio.Task] = set()

    def connect(self, websocket: Any, user_id: Optional[str] = None) -> Session:
        """Track a freshly accepted connection. No identity is bound yet."""
        session = Session(websocket, requested_user_id=user_id)
        self._live.add(session)
        logger.info("hub.session_connected", session_id=session.id, user_id=user_id)
        return session

    async def receive(self, session: Session, raw: str | bytes) -> None:
        """Decode one inbound frame and dispatch it by event."""
        size = len(raw.encode("utf-8")) if isinstance(raw, str) else len(raw)
        if self.max_message_size is not None and size > self.max_message_size:
            logger.warning(
                "hub.frame_dropped",
                session_id=session.id,
                reason="too_large",
                size=size,
            )
            return

        try:
            envelope = decode_inbound(raw)
        except DecodeError as e:
            logger.warning(
                "hub.frame_dropped",
                session_id=session.id,
                reason="malformed",
                error=str(e),
            )
            return

        if isinstance(envelope, AddUserEvent):
            await self._add_user(session)
        elif isinstance(envelope, SendMessageEvent):
            await self.router.route(session, envelope.message)

    async def disconnect(self, session: Session) -> None:
        """Forget a session and tell the remaining peers."""
        self._live.discard(session)
        session.state = SessionState.CLOSED
        previous = await self.registry.unregister(session)
        logger.info(
            "hub.session_disconnected",
            session_id=session.id,
            user_id=previous.user_id if previous else None,
        )
        await self.presence.broadcast()

    async def serve(self, websocket: Any, user_id: Optional[str] = None) -> None:
        """Run one accepted connection until the client goes away."""
        session = self.connect(websocket, user_id)
        structlog.contextvars.bind_contextvars(session_id=session.id)
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes")
                if raw is None:
                    continue
                await self.receive(session, raw)
        finally:
            # Shielded: a cancelled handler must still unregister and tell
            # the peers, or the dead session stays online for good.
            cleanup = asyncio.ensure_future(self.disconnect(session))
            self._cleanups.add(cleanup)
            cleanup.add_done_callback(self._cleanups.discard)
            await asyncio.shield(cleanup)

    async def shutdown(self) -> None:
        """Close every open connection. Used on application shutdown.

        Sessions are marked CLOSED and dropped from the registry even when
        their close() fails. A serve() loop still parked in receive() ends
        when the server delivers the disconnect; its own cleanup is then a
        no-op apart from an empty presence broadcast.
        """
        if self._cleanups:
            await asyncio.gather(*self._cleanups, return_exceptions=True)
        sessions = list(self._live)
        logger.info("hub.shutdown", sessions=len(sessions))
        for session in sessions:
            self._live.discard(session)
            session.state = SessionState.CLOSED
            await self.registry.unregister(session)
            try:
                await session.close(code=1001)
            except Exception as e:
                logger.warning(
                    "hub.close_failed", session_id=session.id, error=str(e)
                )

    async def _add_user(self, session: Session) -> None:
        if not session.requested_user_id:
            logger.warning(
                "hub.frame_dropped",
                session_id=session.id,
                reason="no_user_id",
            )
            return

        user = await self.registry.register(session, session.requested_user_id)
        logger.info(
            "hub.user_added",
            session_id=session.id,
            user_id=user.user_id,
            online=len(self.registry),
        )
        await self.presence.broadcast()

    def __len__(self) -> int:
        return len(self._live)


# Process-wide hub (initialized in lifespan)
_hub: Optional[ConnectionHub] = None


def init_hub(hub: ConnectionHub) -> ConnectionHub:
    global _hub
    _hub = hub
    return _hub


def get_hub() -> ConnectionHub:
    """FastAPI dependency — the hub must have been initialized first."""
    if _hub is None:
        raise RuntimeError("Hub not initialized. Call init_hub() first.")
    return _hub
