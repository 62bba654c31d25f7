"""
Per-plugin API for the prayer board. Mounted at /api/components/prayer/.
- /board: the current display snapshot (public).
- /schedule: daily times, Jumma and Ramadan overlay; PUT is an explicit save & push (admin).
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import model_validator

from masjid_board.api.security import SyncResponse, explicit_push, require_user
from masjid_board.core.state import (
    AppState,
    DailyPrayers,
    ExternalLink,
    JummaTime,
    MasjidProfile,
    Notice,
    RamadanTime,
    User,
    WireModel,
)
from .board import BoardSnapshot, PrayerRow, display_time
from .schedule import EntryKind, validate_times


class PrayerRowResponse(WireModel):
    name: str
    azan: str
    iqamah: str
    is_next: bool = False


class NextPrayerResponse(WireModel):
    name: str
    azan_label: str
    azan: str
    iqamah: str
    is_tomorrow: bool
    progress: float


class BoardResponse(WireModel):
    generated_at: datetime
    profile: MasjidProfile
    rows: List[PrayerRowResponse]
    jumma_row: Optional[PrayerRowResponse] = None
    next_prayer: Optional[NextPrayerResponse] = None
    countdown: str
    ramadan: RamadanTime
    notices: List[Notice]
    links: List[ExternalLink]

    @classmethod
    def from_snapshot(cls, snapshot: BoardSnapshot) -> "BoardResponse":
        def row(r: PrayerRow) -> PrayerRowResponse:
            return PrayerRowResponse(name=r.name, azan=r.azan, iqamah=r.iqamah, is_next=r.is_next)

        next_prayer = None
        if snapshot.next_prayer:
            np = snapshot.next_prayer
            next_prayer = NextPrayerResponse(
                name=np.name,
                azan_label="Khutbah" if np.kind == EntryKind.JUMMA else "Azan",
                azan=display_time(np.azan),
                iqamah=display_time(np.iqamah),
                is_tomorrow=np.is_tomorrow,
                progress=round(np.progress, 2),
            )
        return cls(
            generated_at=snapshot.generated_at,
            profile=snapshot.profile,
            rows=[row(r) for r in snapshot.rows],
            jumma_row=row(snapshot.jumma_row) if snapshot.jumma_row else None,
            next_prayer=next_prayer,
            countdown=snapshot.countdown,
            ramadan=snapshot.ramadan,
            notices=snapshot.notices,
            links=snapshot.links,
        )


class ScheduleResponse(WireModel):
    """Stored schedule as-is; malformed stored times are returned, not rejected."""

    prayers: DailyPrayers
    jumma: JummaTime
    ramadan: RamadanTime


class ScheduleBody(ScheduleResponse):
    @model_validator(mode="after")
    def _check_times(self) -> "ScheduleBody":
        validate_times(self.prayers, self.jumma, self.ramadan)
        return self


def get_router(board_app) -> Optional[APIRouter]:
    """Return router for this plugin; mounted with prefix /api/components/prayer."""
    router = APIRouter(tags=["Prayer Times"])
    current_user = require_user(board_app)

    @router.get("/board", response_model=BoardResponse)
    def get_board() -> BoardResponse:
        """Latest snapshot from the display tick."""
        if board_app.snapshot is None:
            board_app.tick()
        return BoardResponse.from_snapshot(board_app.snapshot)

    @router.get("/schedule", response_model=ScheduleResponse)
    def get_schedule() -> ScheduleResponse:
        state = board_app.coordinator.state
        return ScheduleResponse(prayers=state.prayers, jumma=state.jumma, ramadan=state.ramadan)

    @router.put("/schedule", response_model=SyncResponse)
    def put_schedule(body: ScheduleBody, user: User = Depends(current_user)) -> SyncResponse:
        def apply(state: AppState) -> None:
            state.prayers = body.prayers
            state.jumma = body.jumma
            state.ramadan = body.ramadan

        _, result = board_app.coordinator.mutate(apply)
        board_app.tick()
        board_app.logger.info(f"Schedule updated by {user.email}")
        return explicit_push(result)

    return router
