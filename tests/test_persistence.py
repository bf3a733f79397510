"""Tests for the database-backed session state."""

import pytest
from sqlalchemy import select

from formguard.exceptions import StaleTokenStoreError
from formguard.models.token_store import TokenStoreRecord
from formguard.persistence import (
    DatabaseSessionState,
    database_session_state,
    delete_session_state,
)
from formguard.tokens.manager import TokenManager

SESSION_ID = "b0f3c1d2e4a5968778695a4b3c2d1e0f"


async def fetch_record(db, session_id=SESSION_ID, name="default"):
    result = await db.execute(
        select(TokenStoreRecord)
        .where(TokenStoreRecord.session_id == session_id)
        .where(TokenStoreRecord.name == name)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


@pytest.mark.asyncio
async def test_load_empty_session(test_db):
    state = await DatabaseSessionState.load(test_db, SESSION_ID)
    assert len(state) == 0
    assert state.get("default") is None


@pytest.mark.asyncio
async def test_flush_inserts_new_store(test_db):
    state = await DatabaseSessionState.load(test_db, SESSION_ID)
    state["default"] = "[]"
    await state.flush(test_db)

    record = await fetch_record(test_db)
    assert record.payload == "[]"
    assert record.version == 1
    assert state.versions == {"default": 1}
    assert not state.dirty


@pytest.mark.asyncio
async def test_flush_without_changes_is_noop(test_db):
    state = await DatabaseSessionState.load(test_db, SESSION_ID)
    await state.flush(test_db)
    assert await fetch_record(test_db) is None


@pytest.mark.asyncio
async def test_flush_updates_and_bumps_version(test_db):
    state = await DatabaseSessionState.load(test_db, SESSION_ID)
    state["default"] = "[]"
    await state.flush(test_db)

    state = await DatabaseSessionState.load(test_db, SESSION_ID)
    assert state["default"] == "[]"
    state["default"] = '[{"value": "ab", "context": "", "expires_at": 0}]'
    await state.flush(test_db)

    record = await fetch_record(test_db)
    assert record.version == 2
    assert "ab" in record.payload


@pytest.mark.asyncio
async def test_rejects_non_string_payload(test_db):
    state = await DatabaseSessionState.load(test_db, SESSION_ID)
    with pytest.raises(TypeError):
        state["default"] = ["not", "serialized"]


@pytest.mark.asyncio
async def test_stale_update_is_rejected(session_factory):
    """Test that the second of two overlapping requests cannot overwrite the first."""
    async with session_factory() as db:
        seed = await DatabaseSessionState.load(db, SESSION_ID)
        seed["default"] = "[]"
        await seed.flush(db)

    async with session_factory() as db_a, session_factory() as db_b:
        state_a = await DatabaseSessionState.load(db_a, SESSION_ID)
        state_b = await DatabaseSessionState.load(db_b, SESSION_ID)

        state_a["default"] = '["a"]'
        await state_a.flush(db_a)

        state_b["default"] = '["b"]'
        with pytest.raises(StaleTokenStoreError):
            await state_b.flush(db_b)

    async with session_factory() as db:
        record = await fetch_record(db)
        assert record.payload == '["a"]'
        assert record.version == 2


@pytest.mark.asyncio
async def test_concurrent_creation_is_rejected(session_factory):
    async with session_factory() as db_a, session_factory() as db_b:
        state_a = await DatabaseSessionState.load(db_a, SESSION_ID)
        state_b = await DatabaseSessionState.load(db_b, SESSION_ID)

        state_a["default"] = '["a"]'
        await state_a.flush(db_a)

        state_b["default"] = '["b"]'
        with pytest.raises(StaleTokenStoreError):
            await state_b.flush(db_b)


@pytest.mark.asyncio
async def test_manager_round_trip_through_database(test_db):
    async with database_session_state(test_db, SESSION_ID) as state:
        value = TokenManager(state).generate("login")

    async with database_session_state(test_db, SESSION_ID) as state:
        manager = TokenManager(state)
        assert manager.list_tokens("login") == [value]
        assert manager.validate("login", value) is True

    async with database_session_state(test_db, SESSION_ID) as state:
        assert TokenManager(state).validate("login", value) is False

    record = await fetch_record(test_db)
    assert record.version == 2


@pytest.mark.asyncio
async def test_sessions_are_isolated(test_db):
    async with database_session_state(test_db, SESSION_ID) as state:
        value = TokenManager(state).generate("login")

    async with database_session_state(test_db, "another-session") as state:
        assert TokenManager(state).validate("login", value) is False


@pytest.mark.asyncio
async def test_delete_session_state(test_db):
    async with database_session_state(test_db, SESSION_ID) as state:
        manager = TokenManager(state)
        manager.generate("login")
        TokenManager(state, session_name="other").generate("login")

    await delete_session_state(test_db, SESSION_ID)

    state = await DatabaseSessionState.load(test_db, SESSION_ID)
    assert len(state) == 0
