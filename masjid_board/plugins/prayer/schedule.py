"""
Ordered daily schedule with the Friday substitution (Jumma takes Zuhr's slot).
"""
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import List, Optional

from masjid_board.core.state import DailyPrayers, JummaTime, RamadanTime
from masjid_board.core.timeutil import to_minutes

PRAYER_ORDER = ("Fajr", "Zuhr", "Asr", "Maghrib", "Isha")
FRIDAY = 4  # date.weekday()


class EntryKind(str, Enum):
    DAILY = "daily"
    JUMMA = "jumma"


@dataclass(frozen=True)
class ScheduleEntry:
    name: str
    azan: str
    iqamah: str
    kind: EntryKind = EntryKind.DAILY


def is_friday(day: date) -> bool:
    return day.weekday() == FRIDAY


def build_schedule(prayers: DailyPrayers, jumma: JummaTime, day: date) -> List[ScheduleEntry]:
    """Five entries in chronological order. On Fridays the Zuhr entry becomes Jumma (khutbah/jamaat)."""
    entries = []
    for name in PRAYER_ORDER:
        times = getattr(prayers, name.lower())
        entries.append(ScheduleEntry(name=name, azan=times.azan, iqamah=times.iqamah))

    if is_friday(day):
        entries = [
            ScheduleEntry(name="Jumma", azan=jumma.khutbah, iqamah=jumma.jamaat, kind=EntryKind.JUMMA)
            if entry.name == "Zuhr" else entry
            for entry in entries
        ]
    return entries


def validate_times(prayers: DailyPrayers, jumma: JummaTime, ramadan: Optional[RamadanTime] = None) -> None:
    """Raise ValueError naming the first field that is not a valid HH:MM time."""
    fields = []
    for name in PRAYER_ORDER:
        times = getattr(prayers, name.lower())
        fields += [(f"{name} azan", times.azan), (f"{name} iqamah", times.iqamah)]
    fields += [("Jumma khutbah", jumma.khutbah), ("Jumma jamaat", jumma.jamaat)]
    if ramadan is not None and ramadan.enabled:
        fields += [("Suhoor", ramadan.suhoor), ("Iftar", ramadan.iftar)]

    for label, value in fields:
        try:
            to_minutes(value)
        except ValueError:
            raise ValueError(f"{label}: invalid time {value!r}, expected HH:MM")
