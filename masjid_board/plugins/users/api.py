"""
Per-plugin API for admin users. Mounted at /api/components/users/.
Only the super admin may register or enable/disable admins; anyone may edit their own credentials.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends

from masjid_board.api.security import SyncResponse, UserView, http_errors, require_user
from masjid_board.core.state import User, WireModel


class NewAdminBody(WireModel):
    email: str
    password: str


class UserUpdateBody(WireModel):
    email: Optional[str] = None
    password: Optional[str] = None
    enabled: Optional[bool] = None


def get_router(board_app) -> Optional[APIRouter]:
    """Return router for this plugin; mounted with prefix /api/components/users."""
    router = APIRouter(tags=["Users"])
    current_user = require_user(board_app)

    @router.get("/", response_model=List[UserView])
    def list_users(user: User = Depends(current_user)) -> List[UserView]:
        return [UserView.from_user(u) for u in board_app.coordinator.state.users]

    @router.post("/", response_model=SyncResponse, status_code=201)
    def register_admin(body: NewAdminBody, user: User = Depends(current_user)) -> SyncResponse:
        with http_errors():
            result = board_app.auth.register_admin(user, body.email, body.password)
        return SyncResponse.from_result(result)

    @router.patch("/{user_id}", response_model=SyncResponse)
    def update_user(user_id: str, body: UserUpdateBody, user: User = Depends(current_user)) -> SyncResponse:
        result = None
        with http_errors():
            # Both parts are authorized before either is saved
            if body.email is not None or body.password is not None:
                board_app.auth.check_can_edit(user, user_id)
            if body.enabled is not None:
                board_app.auth.check_can_toggle(user, user_id)
            if body.email is not None or body.password is not None:
                result = board_app.auth.update_user(user, user_id, email=body.email, password=body.password)
            if body.enabled is not None:
                result = board_app.auth.set_user_enabled(user, user_id, body.enabled)
            if result is None:
                raise ValueError("Nothing to update.")
        return SyncResponse.from_result(result)

    return router
