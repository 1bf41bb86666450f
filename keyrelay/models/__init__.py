"""ORM Models — SQLAlchemy declarative models for persisted state.

Invariants:
    - All models inherit from Base (db/base.py)
    - Credential pool state is NEVER persisted; only user preferences are

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all/autogenerate
"""

from keyrelay.models.user_preference import UserPreference  # noqa: F401
