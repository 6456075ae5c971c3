"""DatabaseMessageStore + MessageService tests against in-memory SQLite."""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from chathub.schemas.message import MessageRead
from chathub.services.conversation_service import ConversationService
from chathub.services.errors import NotFoundError, StoreError
from chathub.services.message_service import DatabaseMessageStore, MessageService
from chathub.services.user_service import UserService


@pytest.fixture
async def pair(db_session):
    """Two users and the conversation between them."""
    users = UserService(db_session)
    alice = await users.register("alice", "password_123")
    bob = await users.register("bob", "password_123")
    conv, _ = await ConversationService(db_session).get_or_create_pair(alice.id, bob.id)
    return alice, bob, conv


async def test_store_persists_with_hub_generated_id(pair, session_factory, db_session):
    alice, _, conv = pair
    live = MessageRead.new(str(conv.id), str(alice.id), "hello")

    await DatabaseMessageStore(session_factory).create_message(live)

    stored = await MessageService(db_session).list_for_conversation(conv.id)
    assert len(stored) == 1
    assert str(stored[0].id) == live.id
    assert stored[0].sender_id == alice.id
    assert stored[0].text == "hello"


async def test_store_rejects_non_uuid_ids(session_factory):
    bad = MessageRead.new("c1", "u1", "hi")

    with pytest.raises(StoreError):
        await DatabaseMessageStore(session_factory).create_message(bad)


async def test_store_rejects_unknown_conversation(pair, session_factory):
    alice, _, _ = pair
    orphan = MessageRead.new(str(uuid.uuid4()), str(alice.id), "into the void")

    with pytest.raises(StoreError):
        await DatabaseMessageStore(session_factory).create_message(orphan)


async def test_create_message_unknown_conversation(db_session):
    with pytest.raises(NotFoundError):
        await MessageService(db_session).create_message(uuid.uuid4(), uuid.uuid4(), "hi")


async def test_history_and_pagination_order(pair, db_session):
    alice, bob, conv = pair
    svc = MessageService(db_session)
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for i in range(5):
        sender = alice if i % 2 == 0 else bob
        await svc.create_message(
            conv.id, sender.id, f"m{i}", created_at=start + timedelta(minutes=i)
        )

    history = await svc.list_for_conversation(conv.id)
    assert [m.text for m in history] == ["m0", "m1", "m2", "m3", "m4"]

    newest = await svc.paginate(conv.id, page=0, limit=2)
    assert [m.text for m in newest] == ["m4", "m3"]

    # page is an offset: skip 3 rows, not 3 pages
    older = await svc.paginate(conv.id, page=3, limit=10)
    assert [m.text for m in older] == ["m1", "m0"]

    latest = await svc.latest(conv.id)
    assert latest.text == "m4"


async def test_latest_of_empty_conversation(pair, db_session):
    _, _, conv = pair
    assert await MessageService(db_session).latest(conv.id) is None
