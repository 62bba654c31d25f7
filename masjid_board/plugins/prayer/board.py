"""
Display snapshot: everything the board renders for one tick, computed from AppState and now.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional

from masjid_board.core.state import AppState, ExternalLink, MasjidProfile, Notice, RamadanTime
from masjid_board.core.timeutil import PLACEHOLDER, format_12h
from masjid_board.plugins.notices.service import visible_notices
from masjid_board.plugins.prayer.resolver import (
    COUNTDOWN_PLACEHOLDER,
    NextPrayer,
    format_countdown,
    resolve_next_prayer,
)
from masjid_board.plugins.prayer.schedule import build_schedule, is_friday

logger = logging.getLogger(__name__)


@dataclass
class PrayerRow:
    name: str
    azan: str
    iqamah: str
    is_next: bool = False


@dataclass
class BoardSnapshot:
    generated_at: datetime
    profile: MasjidProfile
    rows: List[PrayerRow]
    jumma_row: Optional[PrayerRow]
    next_prayer: Optional[NextPrayer]
    countdown: str
    ramadan: RamadanTime
    notices: List[Notice] = field(default_factory=list)
    links: List[ExternalLink] = field(default_factory=list)


def display_time(value: str) -> str:
    """12-hour display string; malformed stored values show as the placeholder."""
    try:
        return format_12h(value)
    except ValueError:
        return PLACEHOLDER


def build_snapshot(state: AppState, now: datetime, today: Optional[date] = None) -> BoardSnapshot:
    """
    The daily table always lists the five regular prayers; on Fridays a separate Jumma row is
    shown and the next-prayer card follows the substituted schedule. A malformed time leaves
    next_prayer empty instead of failing the tick.
    """
    today = today or now.date()
    friday = is_friday(now.date())
    schedule = build_schedule(state.prayers, state.jumma, now.date())

    next_prayer = None
    countdown = COUNTDOWN_PLACEHOLDER
    try:
        next_prayer = resolve_next_prayer(schedule, now)
        countdown = format_countdown(next_prayer, now)
    except ValueError as e:
        logger.error(f"Cannot resolve next prayer: {e}")

    next_name = next_prayer.name if next_prayer else None
    rows = [
        PrayerRow(
            name=name,
            azan=display_time(getattr(state.prayers, name.lower()).azan),
            iqamah=display_time(getattr(state.prayers, name.lower()).iqamah),
            is_next=(name == next_name),
        )
        for name in ("Fajr", "Zuhr", "Asr", "Maghrib", "Isha")
    ]
    jumma_row = None
    if friday:
        jumma_row = PrayerRow(
            name="Jumma",
            azan=display_time(state.jumma.khutbah),
            iqamah=display_time(state.jumma.jamaat),
            is_next=(next_name == "Jumma"),
        )

    return BoardSnapshot(
        generated_at=now,
        profile=state.profile,
        rows=rows,
        jumma_row=jumma_row,
        next_prayer=next_prayer,
        countdown=countdown,
        ramadan=state.ramadan,
        notices=visible_notices(state.notices, today),
        links=list(state.links),
    )
