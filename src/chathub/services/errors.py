"""Domain errors raised by the service layer.

Routes translate these into HTTP status codes; the WebSocket hub logs
StoreError as a persistence failure and carries on with live delivery.
"""


class ServiceError(Exception):
    """Base class for service-layer failures."""


class NotFoundError(ServiceError):
    """The referenced user or conversation does not exist."""


class UsernameTakenError(ServiceError):
    """Registration with a username that already exists."""


class InvalidRecipientError(ServiceError):
    """Conversation target is the caller or an unknown user."""


class StoreError(ServiceError):
    """A write to the message store failed."""
