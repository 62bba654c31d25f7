"""
AppState aggregate: the unit of synchronization between the local cache and the remote store.
Wire format is camelCase JSON so payloads from other clients of the same bucket decode unchanged.
"""
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, List, Optional

from dateutil import parser as dateutil_parser
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PrayerTime(WireModel):
    azan: str
    iqamah: str


class DailyPrayers(WireModel):
    fajr: PrayerTime
    zuhr: PrayerTime
    asr: PrayerTime
    maghrib: PrayerTime
    isha: PrayerTime


class JummaTime(WireModel):
    khutbah: str = "13:15"
    jamaat: str = "13:45"


class RamadanTime(WireModel):
    enabled: bool = False
    suhoor: str = "04:45"
    iftar: str = "19:55"


class MasjidProfile(WireModel):
    name: str = "Masjid Al-Noor"
    area: str = "Downtown Community"


class Notice(WireModel):
    id: str
    title: str
    message: str
    date: datetime
    expiry_date: Optional[date] = None
    is_important: bool = False

    @field_validator("date")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Mixed naive/aware values would break ordering by date
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("expiry_date", mode="before")
    @classmethod
    def _calendar_day(cls, value: Any) -> Any:
        if value in (None, ""):
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str):
            return dateutil_parser.parse(value).date()
        return value


class ExternalLink(WireModel):
    id: str
    title: str
    url: str


class Role(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"


class User(WireModel):
    id: str
    email: str
    password: Optional[str] = None
    role: Role = Role.ADMIN
    enabled: bool = True

    def without_password(self) -> "User":
        return self.model_copy(update={"password": None})


class AppState(WireModel):
    """Whole-aggregate state. prayers and users are required; the rest back-fills from defaults."""

    profile: MasjidProfile = Field(default_factory=MasjidProfile)
    prayers: DailyPrayers
    jumma: JummaTime = Field(default_factory=JummaTime)
    ramadan: RamadanTime = Field(default_factory=RamadanTime)
    notices: List[Notice] = Field(default_factory=list)
    users: List[User]
    links: List[ExternalLink] = Field(default_factory=list)
    last_updated: Optional[datetime] = None

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def find_user(self, user_id: str) -> Optional[User]:
        return next((u for u in self.users if u.id == user_id), None)


def default_state(
    admin_email: str = "admin@masjid.local",
    admin_password: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AppState:
    """Built-in state used when neither the remote store nor the local cache has data."""
    now = now or _utc_now()
    return AppState(
        profile=MasjidProfile(),
        prayers=DailyPrayers(
            fajr=PrayerTime(azan="05:30", iqamah="06:00"),
            zuhr=PrayerTime(azan="13:00", iqamah="13:30"),
            asr=PrayerTime(azan="16:30", iqamah="17:00"),
            maghrib=PrayerTime(azan="19:45", iqamah="19:55"),
            isha=PrayerTime(azan="21:00", iqamah="21:30"),
        ),
        jumma=JummaTime(),
        ramadan=RamadanTime(),
        notices=[
            Notice(
                id="welcome-msg",
                title="System Connected",
                message="The prayer display system is online and synced.",
                date=now,
                is_important=False,
            )
        ],
        links=[],
        users=[
            User(
                id="root-super-admin",
                email=admin_email,
                password=admin_password,
                role=Role.SUPER_ADMIN,
                enabled=True,
            )
        ],
        last_updated=now,
    )
