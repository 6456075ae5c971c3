"""Failure taxonomy for the real-time hub.

None of these ever escape the hub: each is caught at the point where the
failed unit of work (one frame, one store write, one peer send) ends, logged,
and the connection loop carries on.
"""


class RealtimeError(Exception):
    """Base class for hub-internal failures."""


class DecodeError(RealtimeError):
    """Inbound frame is not a valid envelope."""


class PersistenceError(RealtimeError):
    """The message store rejected or failed a write."""


class DeliveryError(RealtimeError):
    """Writing a frame to one peer socket failed."""

    def __init__(self, session_id: str, cause: Exception):
        super().__init__(f"delivery to session {session_id} failed: {cause}")
        self.session_id = session_id
        self.cause = cause
