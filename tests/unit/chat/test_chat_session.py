"""
Tests for chat session echo reconciliation and read receipts.
"""

import httpx
import pytest
import pytest_asyncio

from spicebite.chat.session import ChatSession, ConnectionState, support_room
from spicebite.core.errors import ApiError, ChatUnavailable, ValidationError
from spicebite.schemas.chat import MessageStatus

ROOM = support_room(7)
HISTORY = f"/api/chat/history/{ROOM}/"
MARK_READ = "/api/chat/mark-read/"

HISTORY_PAYLOAD = [
    {
        "id": 1,
        "room": ROOM,
        "user": "admin",
        "message": "Namaste! How can we help?",
        "timestamp": "2026-01-01T10:00:00Z",
        "read_by": [],
    },
    {
        "id": 2,
        "room": ROOM,
        "user": "asha",
        "message": "My momo is late",
        "timestamp": "2026-01-01T10:01:00Z",
        "read_by": ["asha", "admin"],
    },
    {
        "id": 3,
        "room": ROOM,
        "user": "admin",
        "message": "Checking with the kitchen",
        "timestamp": "2026-01-01T10:02:00Z",
        "read_by": [],
    },
]


def _echo(message_id, body, *, user="asha", client_id=None):
    frame = {"id": message_id, "room": ROOM, "user": user, "message": body, "read_by": []}
    if client_id is not None:
        frame["client_id"] = client_id
    return frame


@pytest.fixture
def chat_backend(backend):
    backend.add("GET", HISTORY, httpx.Response(200, json=HISTORY_PAYLOAD))
    backend.add("POST", MARK_READ, httpx.Response(200, json={"status": "ok"}))
    return backend


@pytest_asyncio.fixture
async def session(client, chat_backend, stored_tokens, fake_transport):
    chat = ChatSession(client, ROOM, "asha", transport=fake_transport)
    yield chat
    await chat.close()


@pytest_asyncio.fixture
async def opened(session):
    await session.open()
    await session.wait_read_receipts()
    return session


@pytest.mark.asyncio
async def test_open_loads_history_and_connects_with_token(opened, fake_transport):
    assert opened.is_connected
    assert [message.id for message in opened.messages] == [1, 2, 3]
    assert fake_transport.connected_url == f"ws://testserver/ws/chat/{ROOM}/?token=stale-access"


@pytest.mark.asyncio
async def test_open_marks_unread_history_in_one_batch(opened, chat_backend):
    calls = chat_backend.calls("POST", MARK_READ)

    assert len(calls) == 1
    assert chat_backend.body(calls[0]) == {"message_ids": [1, 3]}
    assert all(message.is_read_by("asha") for message in opened.messages)


@pytest.mark.asyncio
async def test_send_appends_pending_message(opened, fake_transport):
    message = await opened.send("Where is my order?")

    assert message.status is MessageStatus.PENDING
    assert message.id == message.client_id
    assert opened.messages[-1] == message
    assert fake_transport.sent == [
        {"message": "Where is my order?", "client_id": message.client_id}
    ]


@pytest.mark.asyncio
async def test_echo_with_client_id_replaces_pending(opened, fake_transport, run_pending):
    pending = await opened.send("Where is my order?")

    fake_transport.push(_echo(10, "Where is my order?", client_id=pending.client_id))
    await run_pending()

    assert len(opened.messages) == 4
    committed = opened.messages[-1]
    assert committed.id == 10
    assert committed.status is MessageStatus.COMMITTED


@pytest.mark.asyncio
async def test_identical_bodies_reconcile_to_their_own_echo(opened, fake_transport, run_pending):
    first = await opened.send("ok")
    second = await opened.send("ok")

    # Server echoes out of order
    fake_transport.push(_echo(21, "ok", client_id=second.client_id))
    fake_transport.push(_echo(20, "ok", client_id=first.client_id))
    await run_pending()

    assert [message.id for message in opened.messages[3:]] == [20, 21]
    assert not any(message.is_pending for message in opened.messages)


@pytest.mark.asyncio
async def test_echo_without_client_id_matches_by_sender_and_body(opened, fake_transport, run_pending):
    await opened.send("hello")

    fake_transport.push(_echo(30, "hello"))
    await run_pending()

    assert len(opened.messages) == 4
    assert opened.messages[-1].id == 30
    assert opened.messages[-1].status is MessageStatus.COMMITTED


@pytest.mark.asyncio
async def test_nested_echo_frame_carries_client_id(opened, fake_transport, run_pending):
    pending = await opened.send("hi")

    fake_transport.push(
        {"message": {"id": 31, "user": "asha", "message": "hi"}, "client_id": pending.client_id}
    )
    await run_pending()

    assert [message.id for message in opened.messages[3:]] == [31]


@pytest.mark.asyncio
async def test_duplicate_committed_message_is_ignored(opened, fake_transport, run_pending):
    fake_transport.push(_echo(3, "Checking with the kitchen", user="admin"))
    await run_pending()

    assert [message.id for message in opened.messages] == [1, 2, 3]


@pytest.mark.asyncio
async def test_incoming_message_from_other_user_is_acknowledged(
    opened, fake_transport, chat_backend, run_pending
):
    fake_transport.push(_echo(40, "Rider is on the way", user="admin"))
    await run_pending()
    await opened.wait_read_receipts()

    calls = chat_backend.calls("POST", MARK_READ)
    assert chat_backend.body(calls[-1]) == {"message_ids": [40]}
    assert opened.messages[-1].is_read_by("asha")


@pytest.mark.asyncio
async def test_typing_indicator_tracks_other_user(opened, fake_transport, run_pending):
    fake_transport.push({"type": "typing", "user_id": "admin", "is_typing": True})
    await run_pending()
    assert opened.typing_users == {"admin"}

    fake_transport.push({"type": "typing", "user_id": "admin", "is_typing": False})
    await run_pending()
    assert opened.typing_users == set()


@pytest.mark.asyncio
async def test_malformed_frame_is_dropped(opened, fake_transport, run_pending):
    fake_transport.push({"id": 60})
    fake_transport.push({"hello": "world"})
    await run_pending()

    assert len(opened.messages) == 3
    assert opened.is_connected


@pytest.mark.asyncio
async def test_failed_send_stays_flagged(opened, fake_transport):
    fake_transport.fail_send = True

    message = await opened.send("are you there?")

    assert message.status is MessageStatus.FAILED
    assert opened.messages[-1].status is MessageStatus.FAILED


@pytest.mark.asyncio
async def test_send_requires_connection(session):
    with pytest.raises(ChatUnavailable):
        await session.send("hello")

    assert session.messages == []


@pytest.mark.asyncio
@pytest.mark.parametrize("body", ["", "   "])
async def test_send_rejects_blank_body(opened, fake_transport, body):
    with pytest.raises(ValidationError):
        await opened.send(body)

    assert fake_transport.sent == []


@pytest.mark.asyncio
async def test_send_typing_is_best_effort(opened, fake_transport):
    await opened.send_typing(True)
    fake_transport.fail_send = True
    await opened.send_typing(False)

    assert fake_transport.sent == [{"type": "typing", "is_typing": True}]


@pytest.mark.asyncio
async def test_server_hang_up_disconnects(opened, fake_transport, run_pending):
    fake_transport.push({"type": "typing", "user_id": "admin", "is_typing": True})
    fake_transport.hang_up()
    await run_pending()

    assert opened.connection is ConnectionState.DISCONNECTED
    assert opened.typing_users == set()

    with pytest.raises(ChatUnavailable):
        await opened.send("hello?")


@pytest.mark.asyncio
async def test_close_is_idempotent(opened, fake_transport):
    await opened.close()
    await opened.close()

    assert fake_transport.closed
    assert opened.connection is ConnectionState.DISCONNECTED


@pytest.mark.asyncio
async def test_close_cancels_unsent_read_receipts(session, chat_backend):
    await session.open()
    await session.close()

    assert chat_backend.calls("POST", MARK_READ) == []


@pytest.mark.asyncio
async def test_connect_failure_raises_chat_unavailable(session, fake_transport):
    fake_transport.fail_connect = True

    with pytest.raises(ChatUnavailable):
        await session.open()

    assert not session.is_connected


@pytest.mark.asyncio
async def test_history_failure_propagates_without_connecting(session, backend, fake_transport):
    backend.add("GET", HISTORY, httpx.Response(500, json={"detail": "boom"}))

    with pytest.raises(ApiError):
        await session.open()

    assert fake_transport.connected_url is None


@pytest.mark.asyncio
async def test_read_receipt_failure_is_not_fatal(session, backend):
    backend.add("POST", MARK_READ, httpx.Response(500, json={"detail": "boom"}))

    await session.open()
    await session.wait_read_receipts()

    assert session.is_connected
    assert not session.messages[0].is_read_by("asha")


@pytest.mark.asyncio
async def test_listeners_notified_on_changes(opened, fake_transport, run_pending):
    seen = []
    opened.add_listener(lambda chat: seen.append(len(chat.messages)))

    await opened.send("hi")
    fake_transport.push(_echo(70, "Hello!", user="admin"))
    await run_pending()

    assert seen[0] == 4
    assert seen[-1] == 5
