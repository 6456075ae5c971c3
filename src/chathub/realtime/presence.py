"""Presence broadcasting — tell everyone who is online.

Learn: After every registry change the full user list is pushed to every
open session: identified ones, the one that just joined, and connections
that have not sent addUser yet. There are no deltas and no
acknowledgements: a peer that misses one update is corrected by the next.
"""

import asyncio
from collections.abc import Callable, Iterable

import structlog

from chathub.realtime.envelopes import UserListEnvelope
from chathub.realtime.errors import DeliveryError
from chathub.realtime.registry import Session, SessionRegistry

logger = structlog.get_logger()


class PresenceBroadcaster:
    """Pushes the registry's user list to every session `sessions()` yields."""

    def __init__(
        self,
        registry: SessionRegistry,
        sessions: Callable[[], Iterable[Session]],
    ):
        self.registry = registry
        self.sessions = sessions

    async def broadcast(self) -> int:
        """Push the current user list to all open sessions. Returns deliveries made."""
        envelope = UserListEnvelope(message=await self.registry.list_connected())
        targets = list(self.sessions())
        results = await asyncio.gather(
            *(self._deliver(session, envelope) for session in targets)
        )
        return sum(results)

    async def _deliver(self, session: Session, envelope: UserListEnvelope) -> bool:
        try:
            await session.send(envelope)
            return True
        except DeliveryError as e:
            logger.warning(
                "presence.delivery_failed",
                session_id=session.id,
                error=str(e.cause),
            )
            return False
