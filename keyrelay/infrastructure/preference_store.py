"""SQL Preference Store — user_preferences table behind the PreferenceStore protocol.

Invariants:
    - Each call opens its own session: reads always see the latest committed value
    - Blank values are never stored; set("") behaves like delete
    - get() of an unknown key returns None (never raises for absence)

Design Decisions:
    - Session manager injected, not the module singleton: tests pass an in-memory engine
    - Upsert via session.get + mutate: portable across SQLite and PostgreSQL
"""

import logging

from keyrelay.infrastructure.database import DatabaseSessionManager
from keyrelay.models.user_preference import UserPreference

logger = logging.getLogger(__name__)


class SqlPreferenceStore:
    """PreferenceStore backed by SQLAlchemy async sessions."""

    def __init__(self, manager: DatabaseSessionManager):
        self._manager = manager

    async def get(self, key: str) -> str | None:
        async with self._manager.session() as db:
            row = await db.get(UserPreference, key)
            return row.value if row else None

    async def set(self, key: str, value: str) -> None:
        if not value or not value.strip():
            await self.delete(key)
            return
        async with self._manager.session() as db:
            row = await db.get(UserPreference, key)
            if row:
                row.value = value.strip()
            else:
                db.add(UserPreference(key=key, value=value.strip()))
            await db.commit()
        logger.info(f"Preference '{key}' updated")

    async def delete(self, key: str) -> bool:
        async with self._manager.session() as db:
            row = await db.get(UserPreference, key)
            if not row:
                return False
            await db.delete(row)
            await db.commit()
        logger.info(f"Preference '{key}' cleared")
        return True


# Singleton (initialized on startup)
preference_store: SqlPreferenceStore | None = None


def init_preference_store(manager: DatabaseSessionManager) -> SqlPreferenceStore:
    global preference_store
    preference_store = SqlPreferenceStore(manager)
    return preference_store


def get_preference_store() -> SqlPreferenceStore:
    """FastAPI dependency for the preference store."""
    if not preference_store:
        raise RuntimeError("Preference store not initialized")
    return preference_store
