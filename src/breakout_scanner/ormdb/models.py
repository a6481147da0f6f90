"""SQLAlchemy ORM models for the breakout scanner."""

import datetime

from sqlalchemy import Column, DateTime, String, Text

from .database import Base


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class KeyValueEntry(Base):
    """Raw key/value row backing the persistent store."""

    __tablename__ = "key_value_store"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    def __repr__(self):
        return f"<KeyValueEntry(key='{self.key}')>"
