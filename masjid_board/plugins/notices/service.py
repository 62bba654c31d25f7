"""
Notice visibility and notice mutations on a working copy of AppState.
"""
import threading
import time
from datetime import date, datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional

from masjid_board.core.state import AppState, Notice


def visible_notices(notices: Iterable[Notice], today: date) -> List[Notice]:
    """Notices without expiry or expiring today or later, most recent first.
    Compares calendar days, so a notice expiring today shows all day."""
    kept = [n for n in notices if n.expiry_date is None or n.expiry_date >= today]
    return sorted(kept, key=lambda n: n.date, reverse=True)


def publish_notice(
    state: AppState,
    title: str,
    message: str,
    expiry_date: Optional[date] = None,
    is_important: bool = False,
    notice_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Notice:
    """Create (prepended) or, with notice_id, replace an existing notice in place."""
    if not title or not title.strip() or not message or not message.strip():
        raise ValueError("Title and message are required.")
    now = now or datetime.now(timezone.utc)

    if notice_id is not None:
        index = next((i for i, n in enumerate(state.notices) if n.id == notice_id), None)
        if index is None:
            raise LookupError("Notice not found.")
    notice = Notice(
        id=notice_id or str(int(now.timestamp() * 1000)),
        title=title,
        message=message,
        date=now,
        expiry_date=expiry_date,
        is_important=is_important,
    )
    if notice_id is not None:
        state.notices[index] = notice
    else:
        state.notices.insert(0, notice)
    return notice


def remove_notice(state: AppState, notice_id: str) -> bool:
    before = len(state.notices)
    state.notices = [n for n in state.notices if n.id != notice_id]
    return len(state.notices) != before


class DeleteConfirmation:
    """
    Two-step delete: the first request for an id arms it, a second request for the same id
    within `window` seconds confirms. Arming another id replaces the pending one.
    """

    def __init__(self, window: float = 3.0, clock: Callable[[], float] = time.monotonic):
        self.window = window
        self.clock = clock
        self._pending: Dict[str, float] = {}
        self._lock = threading.Lock()

    def request(self, item_id: str) -> bool:
        """True when this request confirms the delete."""
        now = self.clock()
        with self._lock:
            armed_at = self._pending.pop(item_id, None)
            if armed_at is not None and now - armed_at <= self.window:
                return True
            self._pending = {item_id: now}
            return False

    def cancel(self) -> None:
        with self._lock:
            self._pending.clear()
