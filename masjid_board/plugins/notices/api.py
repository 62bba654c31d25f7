"""
Per-plugin API for community notices. Mounted at /api/components/notices/.
Deleting is a two-step gesture: the first DELETE arms it (202), a second within 3 seconds removes the notice.
"""
import logging
from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from masjid_board.api.security import SyncResponse, http_errors, require_user
from masjid_board.core.state import AppState, Notice, User, WireModel
from .service import publish_notice, remove_notice, visible_notices

logger = logging.getLogger(__name__)


class NoticeBody(WireModel):
    title: str
    message: str
    expiry_date: Optional[date] = None
    is_important: bool = False


class NoticeResponse(WireModel):
    notice: Notice
    sync: SyncResponse


def get_router(board_app) -> Optional[APIRouter]:
    """Return router for this plugin; mounted with prefix /api/components/notices."""
    router = APIRouter(tags=["Notices"])
    current_user = require_user(board_app)

    @router.get("/", response_model=List[Notice], response_model_exclude_none=True)
    def list_visible() -> List[Notice]:
        """Notices currently shown on the board, most recent first."""
        return visible_notices(board_app.coordinator.state.notices, datetime.now().date())

    @router.get("/all", response_model=List[Notice], response_model_exclude_none=True)
    def list_all(user: User = Depends(current_user)) -> List[Notice]:
        return list(board_app.coordinator.state.notices)

    def _save(body: NoticeBody, notice_id: Optional[str]) -> NoticeResponse:
        created = {}

        def apply(state: AppState) -> None:
            created["notice"] = publish_notice(
                state,
                title=body.title,
                message=body.message,
                expiry_date=body.expiry_date,
                is_important=body.is_important,
                notice_id=notice_id,
            )

        with http_errors():
            _, result = board_app.coordinator.mutate(apply)
        board_app.tick()
        return NoticeResponse(notice=created["notice"], sync=SyncResponse.from_result(result))

    @router.post("/", response_model=NoticeResponse, status_code=201)
    def create_notice(body: NoticeBody, user: User = Depends(current_user)) -> NoticeResponse:
        logger.info(f"Notice published by {user.email}: {body.title}")
        return _save(body, None)

    @router.put("/{notice_id}", response_model=NoticeResponse)
    def edit_notice(notice_id: str, body: NoticeBody, user: User = Depends(current_user)) -> NoticeResponse:
        return _save(body, notice_id)

    @router.delete("/{notice_id}")
    def delete_notice(notice_id: str, user: User = Depends(current_user)):
        if not any(n.id == notice_id for n in board_app.coordinator.state.notices):
            raise HTTPException(status_code=404, detail="Notice not found.")
        if not board_app.notice_deletes.request(notice_id):
            return JSONResponse(status_code=202, content={"status": "pending", "detail": "Delete again to confirm."})

        def apply(state: AppState) -> None:
            remove_notice(state, notice_id)

        _, result = board_app.coordinator.mutate(apply)
        board_app.tick()
        # Background sync: a failed remote write is reported, not raised
        return {"status": "deleted", "sync": SyncResponse.from_result(result).model_dump(mode="json")}

    return router
