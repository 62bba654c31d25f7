"""
Core DB models: durable string slots backing the offline cache and the session store.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Text

from masjid_board.core.db import Base


def _utc_now() -> datetime:
    """UTC now as naive datetime for DateTime(timezone=False) columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class StoredSlot(Base):
    """One named slot holding a serialized value (JSON text)."""
    __tablename__ = "stored_slots"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=False), default=_utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=False), default=_utc_now, onupdate=_utc_now, nullable=False)
