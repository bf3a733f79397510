"""Database-backed session state for token stores.

Starlette's cookie session is read at the start of a request and overwritten
wholesale at the end, so two concurrent requests for one session can clobber
each other's tokens. This backend keeps each token store in its own row with a
version number and only writes a row back if nobody else wrote it since it was
loaded.

Usage:
    async with database_session_state(db, session_id) as state:
        manager = TokenManager.from_settings(state)
        ok = manager.validate("my-form", params=params)
"""

from collections.abc import MutableMapping
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterator, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from formguard.exceptions import StaleTokenStoreError
from formguard.logging_config import get_logger
from formguard.models.token_store import TokenStoreRecord


class DatabaseSessionState(MutableMapping):
    """Token store blobs of one session, loaded from the database.

    Behaves like a dict of store name -> serialized store. Writes are kept in
    memory until ``flush`` is awaited.
    """

    def __init__(
        self,
        session_id: str,
        data: Optional[Dict[str, str]] = None,
        versions: Optional[Dict[str, int]] = None,
    ):
        self.session_id = session_id
        self._data: Dict[str, str] = dict(data or {})
        self.versions: Dict[str, int] = dict(versions or {})
        self.dirty: set = set()

    def __getitem__(self, name: str) -> str:
        return self._data[name]

    def __setitem__(self, name: str, payload: str) -> None:
        if not isinstance(payload, str):
            raise TypeError(f"Session state values must be strings, got {type(payload).__name__}")
        self._data[name] = payload
        self.dirty.add(name)

    def __delitem__(self, name: str) -> None:
        raise TypeError("Token stores are removed with delete_session_state()")

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    @classmethod
    async def load(cls, db: AsyncSession, session_id: str) -> "DatabaseSessionState":
        """Load every token store row belonging to a session."""
        result = await db.execute(
            select(TokenStoreRecord).where(TokenStoreRecord.session_id == session_id)
        )
        records = result.scalars().all()
        return cls(
            session_id,
            data={record.name: record.payload for record in records},
            versions={record.name: record.version for record in records},
        )

    async def flush(self, db: AsyncSession) -> None:
        """Write changed token stores back.

        Raises:
            StaleTokenStoreError: If a store was written by someone else since
                it was loaded. Nothing from this flush is committed.
        """
        if not self.dirty:
            return

        new_versions = {}
        for name in sorted(self.dirty):
            payload = self._data[name]
            expected = self.versions.get(name)

            if expected is None:
                db.add(TokenStoreRecord(session_id=self.session_id, name=name, payload=payload, version=1))
                try:
                    await db.flush()
                except IntegrityError:
                    await db.rollback()
                    get_logger().warning(
                        f"Concurrent creation of token store '{name}' for session {self.session_id[:8]}..."
                    )
                    raise StaleTokenStoreError(self.session_id, name)
                new_versions[name] = 1
                continue

            result = await db.execute(
                update(TokenStoreRecord)
                .where(TokenStoreRecord.session_id == self.session_id)
                .where(TokenStoreRecord.name == name)
                .where(TokenStoreRecord.version == expected)
                .values(payload=payload, version=expected + 1)
            )
            if result.rowcount != 1:
                await db.rollback()
                get_logger().warning(
                    f"Stale write to token store '{name}' for session {self.session_id[:8]}..."
                )
                raise StaleTokenStoreError(self.session_id, name)
            new_versions[name] = expected + 1

        await db.commit()
        self.versions.update(new_versions)
        self.dirty.clear()


@asynccontextmanager
async def database_session_state(
    db: AsyncSession, session_id: str
) -> AsyncIterator[DatabaseSessionState]:
    """Load a session's token stores and flush them back on a clean exit."""
    state = await DatabaseSessionState.load(db, session_id)
    yield state
    await state.flush(db)


async def delete_session_state(db: AsyncSession, session_id: str) -> None:
    """Delete every token store of a session, e.g. when the session is destroyed."""
    await db.execute(delete(TokenStoreRecord).where(TokenStoreRecord.session_id == session_id))
    await db.commit()
