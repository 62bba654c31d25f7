"""
FastAPI server for the board and its admin surface. Run with run_api_server(app) in a background thread.
Central endpoints: session, state push, sync, tasks, status. Per-plugin routes are mounted
from masjid_board.plugins.<package>.api (get_router(board_app)) under /api/components/<package>/.
Docs when enabled: http://<host>:<port>/docs
"""
import importlib
import logging
import pkgutil
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Response
from pydantic import BaseModel, model_validator

from masjid_board.api.security import (
    SyncResponse,
    UserView,
    explicit_push,
    http_errors,
    require_user,
)
from masjid_board.core.auth import AuthenticationError
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
from masjid_board.plugins.prayer.schedule import validate_times

logger = logging.getLogger(__name__)


def _serialize_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Serialize datetime to ISO string (UTC)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


class LoginRequest(BaseModel):
    email: str
    password: str


class StatePush(WireModel):
    """Admin edits pushed in one go. Users are managed through the users endpoints."""

    profile: MasjidProfile
    prayers: DailyPrayers
    jumma: JummaTime
    ramadan: RamadanTime
    notices: List[Notice] = []
    links: List[ExternalLink] = []

    @model_validator(mode="after")
    def _check_times(self) -> "StatePush":
        validate_times(self.prayers, self.jumma, self.ramadan)
        return self


class StatusResponse(WireModel):
    last_updated: Optional[datetime] = None
    last_sync: Optional[SyncResponse] = None
    signed_in: bool = False


def _public_state(state: AppState) -> AppState:
    return state.model_copy(update={"users": [u.without_password() for u in state.users]})


def create_app(board_app: Any) -> FastAPI:
    """Create FastAPI app with routes that use the given MasjidBoardApp instance."""
    app = FastAPI(title="Masjid Board API", description="Prayer board, notices and admin API")
    current_user = require_user(board_app)

    @app.get("/api/tasks")
    def list_tasks() -> Dict[str, Any]:
        """Active in-memory timers (display tick, background reload, session check)."""
        active = board_app.task_manager.get_active_timers()
        return {
            "active_timers": [
                {"name": t["name"], "next_run_at": _serialize_datetime(t["next_run_at"])}
                for t in active
            ]
        }

    @app.get("/api/status", response_model=StatusResponse)
    def status() -> StatusResponse:
        last = board_app.coordinator.last_result
        return StatusResponse(
            last_updated=board_app.coordinator.state.last_updated,
            last_sync=SyncResponse.from_result(last) if last else None,
            signed_in=board_app.sessions.is_valid(),
        )

    @app.post("/api/session", response_model=UserView)
    def login(body: LoginRequest) -> UserView:
        try:
            user = board_app.auth.authenticate(body.email, body.password)
        except AuthenticationError as e:
            raise HTTPException(status_code=401, detail=str(e))
        return UserView.from_user(user)

    @app.get("/api/session", response_model=UserView)
    def session(user: User = Depends(current_user)) -> UserView:
        return UserView.from_user(user)

    @app.delete("/api/session", status_code=204)
    def logout() -> Response:
        board_app.auth.logout()
        return Response(status_code=204)

    @app.get("/api/state", response_model=AppState, response_model_exclude_none=True)
    def get_state(user: User = Depends(current_user)) -> AppState:
        return _public_state(board_app.coordinator.state)

    @app.put("/api/state", response_model=SyncResponse)
    def push_state(body: StatePush, user: User = Depends(current_user)) -> SyncResponse:
        """Save & push: replace everything except users with the submitted working copy."""

        def apply(state: AppState) -> None:
            state.profile = body.profile
            state.prayers = body.prayers
            state.jumma = body.jumma
            state.ramadan = body.ramadan
            state.notices = list(body.notices)
            state.links = list(body.links)

        with http_errors():
            _, result = board_app.coordinator.mutate(apply)
        board_app.tick()
        logger.info(f"State pushed by {user.email}: {result.status.value}")
        return explicit_push(result)

    @app.post("/api/sync", response_model=StatusResponse)
    def sync_now(user: User = Depends(current_user)) -> StatusResponse:
        """Pull the latest state from the remote store now."""
        board_app.reload()
        return status()

    # Mount per-plugin API routers from masjid_board.plugins.<name>.api (get_router(board_app))
    try:
        plugins_pkg = importlib.import_module("masjid_board.plugins")
        for _mod, name, is_pkg in pkgutil.iter_modules(plugins_pkg.__path__):
            if not is_pkg:
                continue
            try:
                api_module = importlib.import_module(f"masjid_board.plugins.{name}.api")
            except ImportError:
                continue
            if not hasattr(api_module, "get_router") or not callable(api_module.get_router):
                continue
            try:
                router = api_module.get_router(board_app)
                if router is not None:
                    app.include_router(router, prefix=f"/api/components/{name}")
            except Exception as e:
                logger.warning(f"Failed to mount API router for plugin {name}: {e}", exc_info=True)
    except ImportError as e:
        logger.warning(f"Plugin API discovery failed: {e}", exc_info=True)

    return app


def run_api_server(board_app: Any) -> None:
    """
    Start the API server in a daemon thread if api.enabled is true.
    Reads api.host (default 127.0.0.1) and api.port (default 8765) from config.
    """
    api_config = board_app.config.data.get("api") or {}
    if not api_config.get("enabled", False):
        logger.info("API server not started: set api.enabled to true in your config file to enable.")
        return
    host = api_config.get("host", "127.0.0.1")
    port = int(api_config.get("port", 8765))
    fastapi_app = create_app(board_app)

    def run_uvicorn():
        try:
            import uvicorn
            logger.info(f"API server listening at http://{host}:{port} (docs at /docs)")
            uvicorn.run(fastapi_app, host=host, port=port)
        except Exception as e:
            logger.exception(f"API server thread failed: {e}")

    thread = threading.Thread(target=run_uvicorn, daemon=True)
    thread.start()
    logger.info("API server thread started.")
