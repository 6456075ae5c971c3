"""Wire envelopes for the /ws channel.

Inbound frames are decoded in one step into a tagged union keyed on
``event``; an unknown tag or a payload of the wrong shape is a DecodeError.
Outbound envelopes are plain pydantic models serialized with camelCase keys.

    → {"event": "addUser"}
    → {"event": "sendMessage", "message": {"conversationId", "senderId", "recipientId", "text"}}
    ← {"event": "getUsers",   "message": [{"id", "connectionToken"}, ...]}
    ← {"event": "getMessage", "message": {"id", "conversationId", "sender", "text", "createAt"}}
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from chathub.realtime.errors import DecodeError
from chathub.schemas.base import CamelModel
from chathub.schemas.message import MessageRead

ADD_USER = "addUser"
SEND_MESSAGE = "sendMessage"
GET_USERS = "getUsers"
GET_MESSAGE = "getMessage"


# ─── Payloads ────────────────────────────────────────────


class ConnectedUser(BaseModel):
    """The identity bound to one live session."""

    user_id: str = Field(alias="id")
    connection_token: str = Field(alias="connectionToken")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class ChatMessagePayload(CamelModel):
    conversation_id: str
    sender_id: str
    recipient_id: str
    text: str


# ─── Inbound ─────────────────────────────────────────────


class AddUserEvent(BaseModel):
    event: Literal["addUser"]


class SendMessageEvent(BaseModel):
    event: Literal["sendMessage"]
    message: ChatMessagePayload


InboundEnvelope = Annotated[
    Union[AddUserEvent, SendMessageEvent],
    Field(discriminator="event"),
]

_inbound = TypeAdapter(InboundEnvelope)


def decode_inbound(raw: str | bytes) -> AddUserEvent | SendMessageEvent:
    """Parse one raw frame. Raises DecodeError on anything malformed."""
    try:
        return _inbound.validate_json(raw)
    except ValidationError as e:
        raise DecodeError(
            "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or '<frame>'}: {err['msg']}"
                for err in e.errors()
            )
        ) from e


# ─── Outbound ────────────────────────────────────────────


class UserListEnvelope(BaseModel):
    event: Literal["getUsers"] = GET_USERS
    message: list[ConnectedUser]


class NewMessageEnvelope(BaseModel):
    event: Literal["getMessage"] = GET_MESSAGE
    message: MessageRead


def encode_outbound(envelope: UserListEnvelope | NewMessageEnvelope) -> str:
    return envelope.model_dump_json(by_alias=True)
