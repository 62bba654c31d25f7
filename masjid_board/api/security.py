"""
Request dependencies and error mapping shared by the core API and plugin routers.
"""
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional

from fastapi import HTTPException
from pydantic import BaseModel

from masjid_board.core.auth import PermissionDeniedError
from masjid_board.core.state import Role, User, WireModel
from masjid_board.core.sync import SyncResult, SyncStatus

SYNC_FAILED_MESSAGE = "Network error. Could not sync with the cloud."


class UserView(WireModel):
    """User as exposed over the API: never carries the password."""

    id: str
    email: str
    role: Role
    enabled: bool

    @classmethod
    def from_user(cls, user: User) -> "UserView":
        return cls(id=user.id, email=user.email, role=user.role, enabled=user.enabled)


class SyncResponse(BaseModel):
    status: SyncStatus
    error: Optional[str] = None

    @classmethod
    def from_result(cls, result: SyncResult) -> "SyncResponse":
        return cls(status=result.status, error=result.error)


def require_user(board_app: Any) -> Callable[[], User]:
    """Dependency: the signed-in user. Each call counts as activity and extends the session."""

    def dependency() -> User:
        user = board_app.auth.current_user()
        if user is None:
            raise HTTPException(status_code=401, detail="Not signed in or session expired.")
        return user

    return dependency


@contextmanager
def http_errors() -> Iterator[None]:
    """Map domain errors to HTTP status codes with their human-readable reason."""
    try:
        yield
    except PermissionDeniedError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def explicit_push(result: SyncResult) -> SyncResponse:
    """Explicit "push changes" actions surface a failed remote write; background ones don't."""
    if result.status == SyncStatus.FAILED:
        raise HTTPException(status_code=502, detail=SYNC_FAILED_MESSAGE)
    return SyncResponse.from_result(result)
