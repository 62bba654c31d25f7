"""
Next-prayer resolution and countdown. Both are pure functions of (schedule, now)
and are re-evaluated on every display tick.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Sequence

from masjid_board.core.timeutil import MINUTES_PER_DAY, parse_time, to_minutes
from masjid_board.plugins.prayer.schedule import EntryKind, ScheduleEntry

COUNTDOWN_PLACEHOLDER = "--:--:--"


@dataclass(frozen=True)
class NextPrayer:
    name: str
    azan: str
    iqamah: str
    kind: EntryKind
    is_tomorrow: bool
    progress: float  # percent of the interval since the previous iqamah, 0..100


def _minutes_of_day(now: datetime) -> float:
    return now.hour * 60 + now.minute + (now.second + now.microsecond / 1_000_000) / 60


def resolve_next_prayer(schedule: Sequence[ScheduleEntry], now: datetime) -> NextPrayer:
    """
    The next prayer is the first entry whose iqamah is strictly after now; when every
    iqamah has passed it is the first entry (Fajr) tomorrow. Progress runs from the
    previous entry's iqamah (cyclic, Isha wraps to Fajr) to the next one's.
    Raises ValueError for an empty schedule or malformed times.
    """
    if not schedule:
        raise ValueError("Schedule is empty")

    iqamahs = [to_minutes(entry.iqamah) for entry in schedule]
    current = _minutes_of_day(now)
    next_index = next((i for i, minutes in enumerate(iqamahs) if minutes > current), None)
    last = len(schedule) - 1

    if next_index is None:
        next_index, is_tomorrow = 0, True
        # Previous is today's last prayer; next crosses midnight
        prev_minutes = iqamahs[last]
        next_minutes = iqamahs[0] + MINUTES_PER_DAY
    else:
        is_tomorrow = False
        prev_index = last if next_index == 0 else next_index - 1
        prev_minutes = iqamahs[prev_index]
        next_minutes = iqamahs[next_index]
        if next_index == 0:
            # Next is today's Fajr, so previous was yesterday's Isha
            prev_minutes -= MINUTES_PER_DAY

    total = next_minutes - prev_minutes
    elapsed = current - prev_minutes
    progress = 0.0
    if total > 0:
        progress = min(100.0, max(0.0, elapsed / total * 100))

    entry = schedule[next_index]
    return NextPrayer(
        name=entry.name,
        azan=entry.azan,
        iqamah=entry.iqamah,
        kind=entry.kind,
        is_tomorrow=is_tomorrow,
        progress=progress,
    )


def format_countdown(next_prayer: NextPrayer, now: datetime) -> str:
    """Remaining time to the next iqamah as HH:MM:SS, floored to the second, never negative."""
    target = datetime.combine(now.date(), parse_time(next_prayer.iqamah), tzinfo=now.tzinfo)
    if next_prayer.is_tomorrow:
        target += timedelta(days=1)

    remaining = int((target - now).total_seconds() // 1)
    if remaining < 0:
        return "00:00:00"
    hours, rest = divmod(remaining, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
