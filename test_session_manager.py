"""Tests for the bounded session window."""

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from switchboard.agents.session_manager import (
    SessionHandle,
    SessionManager,
    parse_state,
    window_messages,
)
from switchboard.errors import StoreError
from switchboard.llm import Message, MessageRole
from switchboard.storage import MemoryAgentStore, SupabaseAgentStore


def turns(count: int, start: int = 0) -> list[Message]:
    roles = (MessageRole.USER, MessageRole.ASSISTANT)
    return [
        Message(role=roles[i % 2], content=f"message {i}")
        for i in range(start, start + count)
    ]


class BrokenStore(MemoryAgentStore):
    async def find_session(self, user_id, agent_id, conversation_id):
        raise StoreError("supabase unavailable")

    async def get_or_create_session(self, user_id, agent_id, conversation_id):
        raise StoreError("supabase unavailable")

    async def update_session_state(self, session_id, state):
        raise StoreError("supabase unavailable")


class SlowStore(MemoryAgentStore):
    async def get_or_create_session(self, user_id, agent_id, conversation_id):
        await asyncio.sleep(1)
        return await super().get_or_create_session(user_id, agent_id, conversation_id)


def test_window_keeps_newest_and_stamps():
    window = window_messages(turns(24), turns(1, start=24), max_messages=20)

    assert len(window) == 20
    assert window[0].content == "message 5"
    assert window[-1].content == "message 24"
    assert all(message.timestamp is not None for message in window)


def test_window_keeps_existing_timestamps():
    captured = datetime(2025, 3, 1, tzinfo=timezone.utc)
    prior = [Message(role=MessageRole.USER, content="old", timestamp=captured)]

    window = window_messages(prior, turns(1))

    assert window[0].timestamp == captured
    assert window[1].timestamp is not None


def test_save_then_load_round_trip():
    store = MemoryAgentStore()
    manager = SessionManager(store, max_messages=20)

    async def scenario():
        handle, history = await manager.load("user_1", "agent_1", "conv_1")
        assert history == []
        await manager.save(handle, history, turns(25))
        return await manager.load("user_1", "agent_1", "conv_1")

    handle, history = asyncio.run(scenario())

    assert len(history) == 20
    assert history[0].content == "message 5"
    assert all(message.timestamp for message in history)
    session = store.sessions[("user_1", "agent_1", "conv_1")]
    assert session.state["version"] == 1
    assert session.id == handle.session_id


def test_sessions_are_scoped_by_conversation():
    store = MemoryAgentStore()
    manager = SessionManager(store)

    async def scenario():
        first, _ = await manager.load("user_1", "agent_1", "conv_1")
        again, _ = await manager.load("user_1", "agent_1", "conv_1")
        other, _ = await manager.load("user_1", "agent_1", "conv_2")
        return first, again, other

    first, again, other = asyncio.run(scenario())

    assert first.session_id == again.session_id
    assert first.session_id != other.session_id


def test_clear_resets_history():
    manager = SessionManager(MemoryAgentStore())

    async def scenario():
        handle, _ = await manager.load("u", "a", "c")
        await manager.save(handle, [], turns(4))
        handle = await manager.find("u", "a", "c")
        await manager.clear(handle)
        return await manager.load("u", "a", "c")

    _, history = asyncio.run(scenario())
    assert history == []


def test_find_does_not_create_missing_session():
    store = MemoryAgentStore()
    manager = SessionManager(store)

    assert asyncio.run(manager.find("u", "a", "never")) is None
    assert store.sessions == {}


def test_parse_state_drops_unreadable_entries():
    state = {
        "version": 1,
        "messages": [
            {"role": "user", "content": "hi"},
            {"role": "narrator", "content": "bad role"},
            "not a message",
        ],
    }
    parsed = parse_state(state)
    assert [m.content for m in parsed.messages] == ["hi"]
    assert parse_state(None).messages == []
    assert parse_state({"messages": "oops"}).messages == []


def test_try_variants_tolerate_store_failure():
    manager = SessionManager(BrokenStore())
    handle = SessionHandle("s", "u", "a", "c")

    async def scenario():
        return (
            await manager.try_load("u", "a", "c"),
            await manager.try_save(handle, [], turns(2)),
            await manager.try_find("u", "a", "c"),
            await manager.try_clear(handle),
        )

    loaded, saved, found, cleared = asyncio.run(scenario())

    assert not loaded.ok and "supabase unavailable" in loaded.error
    assert not saved.ok
    assert not found.ok
    assert not cleared.ok


def test_try_load_times_out():
    manager = SessionManager(SlowStore(), timeout=0.01)
    outcome = asyncio.run(manager.try_load("u", "a", "c"))
    assert outcome.ok is False
    assert outcome.error == "timeout"


class FakePostgrest:
    """Minimal PostgREST stand-in holding ``agent_sessions`` rows."""

    def __init__(self):
        self.rows = []
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        assert request.headers["apikey"] == "service-key"
        assert request.url.path == "/rest/v1/agent_sessions"
        params = request.url.params

        if request.method == "GET":
            matches = [
                row for row in self.rows
                if all(params.get(k) == f"eq.{row[k]}" for k in ("user_id", "agent_id", "conversation_id"))
            ]
            return httpx.Response(200, json=matches[:1])

        if request.method == "POST":
            row = {**json.loads(request.content), "id": f"sess_{len(self.rows) + 1}",
                   "created_at": None, "last_active": None}
            self.rows.append(row)
            return httpx.Response(201, json=[row])

        if request.method == "PATCH":
            session_id = params["id"].removeprefix("eq.")
            for row in self.rows:
                if row["id"] == session_id:
                    row.update(json.loads(request.content))
                    return httpx.Response(200, json=[row])
            return httpx.Response(200, json=[])

        return httpx.Response(405)


def test_supabase_session_round_trip():
    backend = FakePostgrest()
    store = SupabaseAgentStore("https://project.supabase.co", "service-key",
                               transport=httpx.MockTransport(backend))
    manager = SessionManager(store)

    async def scenario():
        async with store:
            handle, history = await manager.load("u", "a", "c")
            await manager.save(handle, history, turns(3))
            return await manager.load("u", "a", "c")

    handle, history = asyncio.run(scenario())

    assert handle.session_id == "sess_1"
    assert [m.content for m in history] == ["message 0", "message 1", "message 2"]
    assert len(backend.rows) == 1
    assert backend.rows[0]["state"]["version"] == 1


def test_supabase_find_missing_session_only_reads():
    backend = FakePostgrest()
    store = SupabaseAgentStore("https://project.supabase.co", "service-key",
                               transport=httpx.MockTransport(backend))

    async def scenario():
        async with store:
            return await SessionManager(store).find("u", "a", "missing")

    assert asyncio.run(scenario()) is None
    assert [request.method for request in backend.requests] == ["GET"]
    assert backend.rows == []


def test_supabase_verify_connection():
    async def verify(status):
        transport = httpx.MockTransport(lambda request: httpx.Response(status, json=[]))
        async with SupabaseAgentStore("https://project.supabase.co", "service-key",
                                      transport=transport) as store:
            return await store.verify_connection()

    assert asyncio.run(verify(200)) is True
    assert asyncio.run(verify(503)) is False


def test_supabase_error_is_store_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(500, text="boom"))
    store = SupabaseAgentStore("https://project.supabase.co", "service-key", transport=transport)

    async def scenario():
        async with store:
            await store.get_agent("agent_1")

    with pytest.raises(StoreError):
        asyncio.run(scenario())


if __name__ == "__main__":
    raise SystemExit(pytest.main([__file__, "-v"]))
