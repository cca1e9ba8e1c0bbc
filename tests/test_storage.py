"""
Unit tests for session stores and the session manager.
"""

import asyncio

import pytest

from ai_onboarding.core.exceptions import NoActiveSession
from ai_onboarding.core.session_manager import SESSION_SLOTS, SessionKeys, SessionManager
from ai_onboarding.models import ChatMessage, FieldSpec, MessageRole, Session
from ai_onboarding.storage import (
    KeyedLocks, LocalSessionStore, MemorySessionStore, create_session_store
)


@pytest.fixture(params=["memory", "local"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return MemorySessionStore()
    return LocalSessionStore(str(tmp_path / "sessions"))


def make_session(session_id="s1"):
    return Session(
        session_id=session_id,
        fields=[FieldSpec(name="name"), FieldSpec(name="email", rules=["required", "email"])],
        current_index=0,
        current_field="name",
        history=[ChatMessage(role=MessageRole.ASSISTANT, content="Hi! What is your name?", session_id=session_id)],
    )


class TestSessionStores:
    """Contract tests shared by every store implementation."""

    @pytest.mark.asyncio
    async def test_get_missing_returns_default(self, any_store):
        assert await any_store.get("missing") is None
        assert await any_store.get("missing", []) == []

    @pytest.mark.asyncio
    async def test_put_and_get(self, any_store):
        await any_store.put("onboarding_fields_s1", [{"name": "email", "rules": ["email"]}])
        assert await any_store.get("onboarding_fields_s1") == [{"name": "email", "rules": ["email"]}]

    @pytest.mark.asyncio
    async def test_put_replaces(self, any_store):
        await any_store.put("k", 1)
        await any_store.put("k", 2)
        assert await any_store.get("k") == 2

    @pytest.mark.asyncio
    async def test_has(self, any_store):
        assert await any_store.has("k") is False
        await any_store.put("k", None)
        assert await any_store.has("k") is True

    @pytest.mark.asyncio
    async def test_delete(self, any_store):
        await any_store.put("k", "v")
        assert await any_store.delete("k") is True
        assert await any_store.delete("k") is False
        assert await any_store.get("k") is None

    @pytest.mark.asyncio
    async def test_values_are_not_shared(self, any_store):
        value = {"name": "Jane"}
        await any_store.put("k", value)
        value["name"] = "changed"
        loaded = await any_store.get("k")
        loaded["email"] = "x"
        assert await any_store.get("k") == {"name": "Jane"}


class TestLocalSessionStore:
    """Tests specific to the filesystem store."""

    @pytest.mark.asyncio
    async def test_one_file_per_key(self, tmp_path):
        store = LocalSessionStore(str(tmp_path))
        await store.put("onboarding_fields_abc", ["name"])
        assert (tmp_path / "onboarding_fields_abc.json").exists()

    @pytest.mark.asyncio
    async def test_unsafe_keys_stay_inside_base_dir(self, tmp_path):
        store = LocalSessionStore(str(tmp_path / "sessions"))
        await store.put("../../etc/passwd", "x")
        assert await store.get("../../etc/passwd") == "x"
        assert not (tmp_path / "etc").exists()
        assert len(list((tmp_path / "sessions").iterdir())) == 1

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path):
        await LocalSessionStore(str(tmp_path)).put("k", {"a": 1})
        assert await LocalSessionStore(str(tmp_path)).get("k") == {"a": 1}

    @pytest.mark.asyncio
    async def test_keys_differing_in_unsafe_characters_are_distinct(self, tmp_path):
        store = LocalSessionStore(str(tmp_path))
        await store.put("onboarding_extracted_fields_alice@x", {"name": "Alice"})
        await store.put("onboarding_extracted_fields_alice_x", {"name": "Mallory"})
        await store.put("onboarding_extracted_fields_alice%40x", {"name": "Eve"})

        assert await store.get("onboarding_extracted_fields_alice@x") == {"name": "Alice"}
        assert await store.get("onboarding_extracted_fields_alice_x") == {"name": "Mallory"}
        assert await store.get("onboarding_extracted_fields_alice%40x") == {"name": "Eve"}

        assert await store.delete("onboarding_extracted_fields_alice@x") is True
        assert await store.get("onboarding_extracted_fields_alice_x") == {"name": "Mallory"}

    @pytest.mark.asyncio
    async def test_long_keys(self, tmp_path):
        store = LocalSessionStore(str(tmp_path))
        long_a = "onboarding_conversation_" + "a" * 300
        long_b = "onboarding_conversation_" + "a" * 299 + "b"
        await store.put(long_a, ["first"])
        await store.put(long_b, ["second"])
        assert await store.get(long_a) == ["first"]
        assert await store.get(long_b) == ["second"]

    @pytest.mark.asyncio
    async def test_key_locks_are_released(self, tmp_path):
        store = LocalSessionStore(str(tmp_path))
        await store.put("k", 1)
        await store.get("k")
        await store.delete("k")
        assert len(store._locks) == 0

    def test_empty_key_rejected(self, tmp_path):
        store = LocalSessionStore(str(tmp_path))
        with pytest.raises(ValueError):
            store._get_full_path("")


class TestStoreFactory:
    """Tests for create_session_store."""

    def test_memory(self):
        assert isinstance(create_session_store("memory"), MemorySessionStore)

    def test_local(self, tmp_path):
        store = create_session_store("local", str(tmp_path))
        assert isinstance(store, LocalSessionStore)

    def test_unsupported(self):
        with pytest.raises(ValueError, match="Unsupported storage type"):
            create_session_store("redis")


class TestSessionManager:
    """Tests for the slot layout and the Session aggregate."""

    def test_slot_keys(self):
        assert SessionKeys.FIELDS.with_session_id("abc") == "onboarding_fields_abc"
        assert SessionKeys.LAST_QUESTION.with_session_id("abc") == "onboarding_last_question_abc"
        assert SessionKeys.CURRENT_SESSION_ID.value == "onboarding_current_session_id"

    @pytest.mark.asyncio
    async def test_create_and_load(self, any_store):
        manager = SessionManager(any_store)
        await manager.create(make_session())

        session = await manager.load("s1")
        assert [f.name for f in session.fields] == ["name", "email"]
        assert session.fields[1].rules == ["required", "email"]
        assert session.current_index == 0
        assert session.current_field == "name"
        assert session.history[0].content == "Hi! What is your name?"
        assert session.extracted == {}
        assert session.completed is False
        assert await manager.get_active_session_id() == "s1"

    @pytest.mark.asyncio
    async def test_load_missing(self, session_manager):
        with pytest.raises(NoActiveSession):
            await session_manager.load("missing")

    @pytest.mark.asyncio
    async def test_resolve_session_id(self, session_manager):
        with pytest.raises(NoActiveSession):
            await session_manager.resolve_session_id()

        await session_manager.create(make_session("s1"))
        assert await session_manager.resolve_session_id() == "s1"
        assert await session_manager.resolve_session_id("s1") == "s1"
        with pytest.raises(NoActiveSession, match="'other'"):
            await session_manager.resolve_session_id("other")

    @pytest.mark.asyncio
    async def test_position_index_written_before_field(self, session_manager, store):
        await session_manager.create(make_session())
        writes = []
        original_put = store.put

        async def recording_put(key, value):
            writes.append(key)
            await original_put(key, value)

        store.put = recording_put
        await session_manager.set_position("s1", 1, "email")

        assert writes == [
            SessionKeys.LAST_QUESTION.with_session_id("s1"),
            SessionKeys.CURRENT_FIELD.with_session_id("s1"),
        ]

    @pytest.mark.asyncio
    async def test_append_message_and_extracted(self, session_manager):
        await session_manager.create(make_session())
        await session_manager.append_message(
            "s1", ChatMessage(role=MessageRole.USER, content="Jane", session_id="s1")
        )
        await session_manager.store_extracted_field("s1", "name", "Jane")

        history = await session_manager.get_history("s1")
        assert [m.content for m in history] == ["Hi! What is your name?", "Jane"]
        assert history[1].is_user
        assert await session_manager.get_extracted("s1") == {"name": "Jane"}

    @pytest.mark.asyncio
    async def test_delete_removes_every_slot(self, session_manager, store):
        await session_manager.create(make_session())
        await session_manager.mark_completed("s1")

        await session_manager.delete("s1")

        for slot in SESSION_SLOTS:
            assert not await store.has(slot.with_session_id("s1"))
        assert await session_manager.get_active_session_id() is None
        assert await session_manager.exists("s1") is False

    @pytest.mark.asyncio
    async def test_sessions_with_similar_ids_do_not_collide(self, tmp_path):
        manager = SessionManager(LocalSessionStore(str(tmp_path)))
        await manager.create(make_session("user 1"))
        await manager.store_extracted_field("user 1", "name", "Alice")
        await manager.create(make_session("user_1"))

        assert await manager.get_extracted("user 1") == {"name": "Alice"}
        assert await manager.get_extracted("user_1") == {}

    @pytest.mark.asyncio
    async def test_lock_registry_is_emptied(self, session_manager):
        for i in range(5):
            async with session_manager.lock(f"s{i}"):
                assert f"s{i}" in session_manager._locks
        assert len(session_manager._locks) == 0

    @pytest.mark.asyncio
    async def test_lock_is_exclusive_per_session(self, session_manager):
        events = []
        release = asyncio.Event()

        async def holder():
            async with session_manager.lock("s1"):
                events.append("holder-in")
                await release.wait()
                events.append("holder-out")

        async def waiter(name):
            async with session_manager.lock("s1"):
                events.append(f"{name}-in")
                await asyncio.sleep(0)
                events.append(f"{name}-out")

        first = asyncio.create_task(holder())
        await asyncio.sleep(0)
        queued = asyncio.create_task(waiter("queued"))
        await asyncio.sleep(0)
        release.set()
        late = asyncio.create_task(waiter("late"))
        await asyncio.gather(first, queued, late)

        assert len(events) == 6
        for i in range(0, len(events), 2):
            name = events[i].rsplit("-", 1)[0]
            assert events[i:i + 2] == [f"{name}-in", f"{name}-out"]
        assert len(session_manager._locks) == 0


class TestKeyedLocks:
    """Tests for the reference-counted lock registry."""

    @pytest.mark.asyncio
    async def test_entry_kept_while_waiters_remain(self):
        locks = KeyedLocks()
        release = asyncio.Event()

        async def holder():
            async with locks.hold("k"):
                await release.wait()

        async def waiter():
            async with locks.hold("k"):
                pass

        first = asyncio.create_task(holder())
        await asyncio.sleep(0)
        second = asyncio.create_task(waiter())
        await asyncio.sleep(0)
        assert "k" in locks

        release.set()
        await asyncio.gather(first, second)
        assert "k" not in locks

    @pytest.mark.asyncio
    async def test_entry_released_on_error(self):
        locks = KeyedLocks()
        with pytest.raises(RuntimeError):
            async with locks.hold("k"):
                raise RuntimeError("boom")
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_distinct_keys_do_not_block(self):
        locks = KeyedLocks()
        async with locks.hold("a"):
            async with locks.hold("b"):
                assert len(locks) == 2
