"""Database Infrastructure — SQLAlchemy Base for the preference store.

Invariants:
    - Single async engine per process (initialized via init_db)
    - All sessions are async (AsyncSession)

Design Decisions:
    - aiosqlite by default, asyncpg when DATABASE_URL points at PostgreSQL
"""
