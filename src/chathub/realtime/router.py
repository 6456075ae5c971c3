"""Message routing — persist a chat message and push it to the recipient.

Learn: sendMessage is fire-and-forget. The sender gets no ack and no
error frame; every failure below is logged and swallowed:

  malformed payload  → dropped before anything happens
  store write fails  → logged, live delivery still goes ahead
  recipient offline  → nothing pushed; they read history over REST later
  one socket fails   → that session is skipped, the others still get it

Persisting and delivering are independent effects: a recipient can
receive a live message whose durable write failed.
"""

import asyncio
from collections.abc import Mapping
from typing import Any, Protocol

import structlog
from pydantic import ValidationError

from chathub.realtime.envelopes import ChatMessagePayload, NewMessageEnvelope
from chathub.realtime.errors import DeliveryError, PersistenceError
from chathub.realtime.registry import Session, SessionRegistry
from chathub.schemas.message import MessageRead

logger = structlog.get_logger()


class MessageStore(Protocol):
    """Durable message storage. Raises on failure."""

    async def create_message(self, message: MessageRead) -> None: ...


class MessageRouter:
    def __init__(
        self,
        registry: SessionRegistry,
        store: MessageStore,
        enforce_sender_identity: bool = False,
    ):
        self.registry = registry
        self.store = store
        self.enforce_sender_identity = enforce_sender_identity

    async def route(
        self, session: Session, payload: ChatMessagePayload | Mapping[str, Any]
    ) -> int:
        """Handle one sendMessage. Returns the number of live deliveries."""
        if not isinstance(payload, ChatMessagePayload):
            try:
                payload = ChatMessagePayload.model_validate(payload)
            except ValidationError as e:
                logger.warning(
                    "router.payload_invalid",
                    session_id=session.id,
                    errors=e.error_count(),
                )
                return 0

        if self.enforce_sender_identity and not self._sender_matches(session, payload):
            logger.warning(
                "router.sender_mismatch",
                session_id=session.id,
                claimed_sender=payload.sender_id,
                bound_user=session.user.user_id if session.user else session.requested_user_id,
            )
            return 0

        message = MessageRead.new(
            conversation_id=payload.conversation_id,
            sender=payload.sender_id,
            text=payload.text,
        )

        try:
            await self._persist(message)
        except PersistenceError as e:
            logger.error(
                "router.persist_failed",
                message_id=message.id,
                conversation_id=message.conversation_id,
                error=str(e),
            )

        recipients = await self.registry.sessions_for_user(payload.recipient_id)
        if not recipients:
            logger.debug(
                "router.recipient_offline",
                message_id=message.id,
                recipient_id=payload.recipient_id,
            )
            return 0

        envelope = NewMessageEnvelope(message=message)
        results = await asyncio.gather(
            *(self._deliver(peer, envelope) for peer in recipients)
        )
        delivered = sum(results)
        logger.info(
            "router.message_delivered",
            message_id=message.id,
            recipient_id=payload.recipient_id,
            sessions=len(recipients),
            delivered=delivered,
        )
        return delivered

    async def _persist(self, message: MessageRead) -> None:
        # Shielded: the write finishes even if the sender's socket drops
        # and its handler task is cancelled mid-await.
        try:
            await asyncio.shield(self.store.create_message(message))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise PersistenceError(str(e)) from e

    async def _deliver(self, session: Session, envelope: NewMessageEnvelope) -> bool:
        try:
            await session.send(envelope)
            return True
        except DeliveryError as e:
            logger.warning(
                "router.delivery_failed",
                session_id=session.id,
                message_id=envelope.message.id,
                error=str(e.cause),
            )
            return False

    @staticmethod
    def _sender_matches(session: Session, payload: ChatMessagePayload) -> bool:
        # Before addUser, fall back to the id the connection was opened with.
        bound = session.user.user_id if session.user else session.requested_user_id
        return bound is not None and bound == payload.sender_id
