"""
String-keyed durable slots. One store is built per process and handed to the
sync coordinator (offline cache) and the session store.
"""
import logging
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy import select, delete

from masjid_board.core.db import session_scope
from masjid_board.core.models import StoredSlot, _utc_now

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """get/set/clear over named string slots."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def clear(self, key: str) -> None:
        pass


class SqlKeyValueStore(KeyValueStore):
    """Slots persisted in the StoredSlot table. Requires init_db() first."""

    def get(self, key: str) -> Optional[str]:
        with session_scope() as session:
            row = session.execute(
                select(StoredSlot).where(StoredSlot.key == key)
            ).scalars().first()
            return row.value if row else None

    def set(self, key: str, value: str) -> None:
        with session_scope() as session:
            row = session.execute(
                select(StoredSlot).where(StoredSlot.key == key)
            ).scalars().first()
            now = _utc_now()
            if row:
                row.value = value
                row.updated_at = now
            else:
                session.add(StoredSlot(key=key, value=value, created_at=now, updated_at=now))
        logger.debug(f"Stored slot {key} ({len(value)} chars)")

    def clear(self, key: str) -> None:
        with session_scope() as session:
            session.execute(delete(StoredSlot).where(StoredSlot.key == key))
