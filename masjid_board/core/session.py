"""
Single-slot admin session with an inactivity timeout.

Stored shape: {"user": {...without password}, "expiry": <epoch milliseconds>}.
Older clients stored the bare user object with no expiry; decode_session() migrates those.
"""
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from pydantic import ValidationError

from masjid_board.core.state import User
from masjid_board.core.store import KeyValueStore

logger = logging.getLogger(__name__)

SESSION_KEY = "masjid_session_active_v2"
DEFAULT_TIMEOUT = timedelta(minutes=20)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _to_epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def _from_epoch_ms(value: float) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


@dataclass
class SessionRecord:
    user: User
    expiry: datetime
    legacy: bool = False

    def is_valid(self, now: datetime) -> bool:
        return now < self.expiry

    def encode(self) -> str:
        return json.dumps({
            "user": self.user.without_password().model_dump(mode="json", by_alias=True, exclude_none=True),
            "expiry": _to_epoch_ms(self.expiry),
        })


def decode_session(raw: Optional[str], now: datetime, timeout: timedelta = DEFAULT_TIMEOUT) -> Optional[SessionRecord]:
    """
    Strict {user, expiry} record first; then a legacy bare-user record, which gets a fresh
    expiry and legacy=True; anything else (absent, bad JSON, unknown shape) is no session.
    """
    if not raw:
        return None
    try:
        parsed: Any = json.loads(raw)
    except ValueError:
        logger.warning("Session slot holds invalid JSON, treating as no session")
        return None
    if not isinstance(parsed, dict):
        return None

    expiry = parsed.get("expiry")
    if isinstance(parsed.get("user"), dict) and isinstance(expiry, (int, float)) and not isinstance(expiry, bool):
        try:
            return SessionRecord(user=User.model_validate(parsed["user"]), expiry=_from_epoch_ms(expiry))
        except (ValidationError, OverflowError, OSError):
            return None

    if "expiry" not in parsed and parsed.get("email"):
        try:
            user = User.model_validate(parsed)
        except ValidationError:
            return None
        return SessionRecord(user=user.without_password(), expiry=now + timeout, legacy=True)

    return None


class SessionStore:
    def __init__(
        self,
        store: KeyValueStore,
        timeout: timedelta = DEFAULT_TIMEOUT,
        clock: Callable[[], datetime] = _utc_now,
        key: str = SESSION_KEY,
    ):
        self.store = store
        self.timeout = timeout
        self.clock = clock
        self.key = key

    def _read(self) -> Optional[SessionRecord]:
        return decode_session(self.store.get(self.key), self.clock(), self.timeout)

    def _write(self, user: User) -> SessionRecord:
        record = SessionRecord(user=user.without_password(), expiry=self.clock() + self.timeout)
        self.store.set(self.key, record.encode())
        return record

    def open(self, user: User) -> SessionRecord:
        logger.info(f"Session opened for {user.email}")
        return self._write(user)

    def active_user(self) -> Optional[User]:
        """Current user if the session is valid; extends it. Expired sessions are cleared."""
        record = self._read()
        if record is None:
            if self.store.get(self.key) is not None:
                self.clear()
            return None
        if not record.is_valid(self.clock()):
            logger.info("Session expired")
            self.clear()
            return None
        return self._write(record.user).user

    def is_valid(self) -> bool:
        """Validity check without extending, used by the background checker."""
        raw = self.store.get(self.key)
        record = decode_session(raw, self.clock(), self.timeout)
        if record is None:
            return False
        if record.legacy:
            return True
        return record.is_valid(self.clock())

    def extend(self) -> None:
        """Reset the inactivity timer; called on user activity."""
        record = self._read()
        if record is not None and record.is_valid(self.clock()):
            self._write(record.user)

    def replace_user(self, user: User) -> None:
        self._write(user)

    def clear(self) -> None:
        self.store.clear(self.key)

    def evict_if_expired(self) -> bool:
        """Clear a stored but no longer valid session. True when something was evicted."""
        if self.store.get(self.key) is None or self.is_valid():
            return False
        self.clear()
        return True
