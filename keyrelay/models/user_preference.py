"""User Preference ORM — persisted key/value settings chosen by the end user.

Invariants:
    - key is the primary key (one value per preference)
    - value is non-nullable text; clearing a preference deletes the row
    - updated_at refreshed on every write

Design Decisions:
    - Generic key/value table over a column per setting: the override credential
      is the only consumer today and new preferences need no migration
"""

from datetime import datetime, timezone

from sqlalchemy import String, Text, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from keyrelay.db.base import Base


class UserPreference(Base):
    """Single persisted preference value."""
    __tablename__ = "user_preferences"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
