"""Wire envelope tests — inbound decoding and outbound shapes."""

import json
from datetime import datetime, timezone

import pytest

from chathub.realtime.envelopes import (
    AddUserEvent,
    ConnectedUser,
    NewMessageEnvelope,
    SendMessageEvent,
    UserListEnvelope,
    decode_inbound,
    encode_outbound,
)
from chathub.realtime.errors import DecodeError
from chathub.schemas.message import MessageRead


def test_decode_add_user():
    envelope = decode_inbound('{"event": "addUser"}')
    assert isinstance(envelope, AddUserEvent)


def test_decode_add_user_ignores_extra_keys():
    """Clients sometimes send an empty message alongside addUser."""
    envelope = decode_inbound('{"event": "addUser", "message": null}')
    assert isinstance(envelope, AddUserEvent)


def test_decode_send_message():
    raw = json.dumps({
        "event": "sendMessage",
        "message": {
            "conversationId": "c1",
            "senderId": "u1",
            "recipientId": "u2",
            "text": "hi",
        },
    })
    envelope = decode_inbound(raw)
    assert isinstance(envelope, SendMessageEvent)
    assert envelope.message.conversation_id == "c1"
    assert envelope.message.sender_id == "u1"
    assert envelope.message.recipient_id == "u2"
    assert envelope.message.text == "hi"


def test_decode_accepts_bytes():
    assert isinstance(decode_inbound(b'{"event": "addUser"}'), AddUserEvent)


@pytest.mark.parametrize(
    "raw",
    [
        "not json at all",
        "[]",
        '{"message": {}}',
        '{"event": "deleteEverything"}',
        '{"event": "sendMessage"}',
        '{"event": "sendMessage", "message": {"conversationId": "c1", "text": "hi"}}',
        '{"event": "sendMessage", "message": {"conversationId": "c1", '
        '"senderId": "u1", "recipientId": "u2", "text": 42}}',
    ],
)
def test_decode_rejects_malformed(raw):
    with pytest.raises(DecodeError):
        decode_inbound(raw)


def test_user_list_wire_shape():
    envelope = UserListEnvelope(
        message=[ConnectedUser(user_id="u1", connection_token="tok-1")]
    )
    assert json.loads(encode_outbound(envelope)) == {
        "event": "getUsers",
        "message": [{"id": "u1", "connectionToken": "tok-1"}],
    }


def test_new_message_wire_shape():
    message = MessageRead(
        id="m1",
        conversation_id="c1",
        sender="u1",
        text="hi",
        create_at=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
    )
    frame = json.loads(encode_outbound(NewMessageEnvelope(message=message)))
    assert frame["event"] == "getMessage"
    assert frame["message"] == {
        "id": "m1",
        "conversationId": "c1",
        "sender": "u1",
        "text": "hi",
        "createAt": "2024-01-02T03:04:05Z",
    }
