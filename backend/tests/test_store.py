import json

import pytest
from starlette.websockets import WebSocketState

from interview.channel import ChannelHub
from interview.store import SessionStore
from models.schemas import SessionStatus
from utils.errors import SessionMissing


def test_create_get_update_remove():
    store = SessionStore()
    session = store.create(company="Acme", role="QA Engineer", max_turns=4)
    assert store.get(session.session_id) is session
    assert session.session_id in store
    assert len(store) == 1

    store.update(session.session_id, current_question="Why testing?")
    assert session.current_question == "Why testing?"
    with pytest.raises(AttributeError):
        store.update(session.session_id, phase="wrapup")
    with pytest.raises(AttributeError):
        store.update(session.session_id, not_a_field=1)

    assert store.remove(session.session_id)
    assert not store.remove(session.session_id)
    assert store.get(session.session_id) is None
    with pytest.raises(SessionMissing):
        store.require(session.session_id)


def test_lock_is_per_session():
    store = SessionStore()
    first = store.create()
    second = store.create()
    assert store.lock(first.session_id) is store.lock(first.session_id)
    assert store.lock(first.session_id) is not store.lock(second.session_id)
    with pytest.raises(SessionMissing):
        store.lock("unknown")


def test_cleanup_evicts_idle_completed_sessions():
    store = SessionStore()
    active = store.create()
    done = store.create()
    fresh = store.create()
    done.complete()
    done.updated_at -= 7200
    fresh.complete()

    assert store.cleanup_inactive(3600, idle_ttl_sec=6 * 3600) == 1
    assert done.session_id not in store
    assert active.session_id in store
    assert fresh.session_id in store
    assert fresh.status == SessionStatus.COMPLETED


def test_cleanup_evicts_abandoned_sessions_but_not_running_turns():
    store = SessionStore()
    abandoned = [store.create() for _ in range(100)]
    for session in abandoned:
        session.updated_at -= 10 * 24 * 3600
    pending = store.create()
    pending.status = SessionStatus.TRANSCRIBING
    pending.answer_pending = True
    pending.updated_at -= 10 * 24 * 3600
    recent = store.create()
    recent.updated_at -= 3600

    assert store.cleanup_inactive(3600, idle_ttl_sec=6 * 3600) == 100
    assert len(store) == 2
    assert pending.session_id in store
    assert recent.session_id in store
    with pytest.raises(SessionMissing):
        store.lock(abandoned[0].session_id)

    # Without a separate idle TTL the completed TTL applies to everything
    assert store.cleanup_inactive(3600) == 1
    assert list(store) == [pending.session_id]


class FakeSocket:
    def __init__(self, connected=True):
        self.client_state = WebSocketState.CONNECTED if connected else WebSocketState.DISCONNECTED
        self.frames = []

    async def send_text(self, text):
        self.frames.append(json.loads(text))


@pytest.mark.asyncio
async def test_hub_broadcasts_to_room_members():
    hub = ChannelHub()
    a, b, other, gone = FakeSocket(), FakeSocket(), FakeSocket(), FakeSocket(connected=False)
    await hub.join(a, "s1")
    await hub.join(b, "s1")
    await hub.join(gone, "s1")
    await hub.join(other, "s2")

    await hub.notify("s1", "evaluation", {"nextQuestion": None})
    assert a.frames == b.frames == [{"event": "evaluation", "data": {"nextQuestion": None}}]
    assert other.frames == []
    assert gone.frames == []


@pytest.mark.asyncio
async def test_hub_rejoin_and_disconnect():
    hub = ChannelHub()
    ws = FakeSocket()
    await hub.join(ws, "s1")
    await hub.join(ws, "s2")
    assert hub.room_size("s1") == 0
    assert hub.room_of(ws) == "s2"

    assert await hub.disconnect(ws) == "s2"
    assert hub.room_size("s2") == 0
    await hub.notify("s2", "question", {"question": "Hi?"})
    assert ws.frames == []
