from datetime import datetime, timedelta
from typing import Any, Dict, Optional
import logging
import sys
import threading

from .auth import AuthService
from .config import Config
from .db import dispose_db, init_db
from .remote import RemoteStore
from .session import SessionStore
from .state import AppState, default_state
from .store import SqlKeyValueStore
from .sync import SyncCoordinator
from .task_manager import TaskManager


class MasjidBoardApp:
    """
    Wires config, durable store, sync coordinator, session/auth and the timers:
    1 Hz display tick, periodic background reload, session expiry checker.
    """

    def __init__(self, config_path: Optional[str] = None, watch_config: bool = True,
                 configure_logging: bool = True):
        self.logger = logging.getLogger(self.__class__.__name__)

        self.config = Config(config_path=config_path, watch=watch_config)
        self.config.register_change_callback(self.handle_config_change)

        if configure_logging:
            self._setup_logging()

        # Database first: the store, coordinator and sessions all persist through it
        init_db(self.config.data)
        self.store = SqlKeyValueStore()

        self.coordinator = SyncCoordinator(
            remote=RemoteStore.from_config(self.config.data),
            cache=self.store,
            default_factory=self._default_state,
        )
        session_cfg = self.config.section("session")
        self.sessions = SessionStore(
            self.store,
            timeout=timedelta(minutes=float(session_cfg.get("timeout_minutes", 20))),
        )
        self.auth = AuthService(self.coordinator, self.sessions)

        from masjid_board.plugins.notices.service import DeleteConfirmation
        from masjid_board.plugins.wisdom.service import DailyWisdomService
        self.notice_deletes = DeleteConfirmation()
        self.wisdom = DailyWisdomService(
            self.config.section("wisdom"),
            cache_dir=self.config.section("cache").get("directory"),
        )

        self.task_manager = TaskManager()
        self.snapshot = None
        self._stop_event = threading.Event()

    def _setup_logging(self) -> None:
        """Configure logging to write to both file and stdout"""
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
        log_cfg = self.config.section("logging")
        root_logger.setLevel(getattr(logging, str(log_cfg.get("level", "INFO")).upper(), logging.INFO))

        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
        )

        if log_cfg.get("file"):
            file_handler = logging.FileHandler(log_cfg["file"])
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        logging.info("Masjid board starting...")

    def _default_state(self) -> AppState:
        admin = (self.config.section("masjid").get("bootstrap_admin") or {})
        return default_state(
            admin_email=admin.get("email") or "admin@masjid.local",
            admin_password=admin.get("password"),
        )

    def handle_config_change(self, data: Dict[str, Any]) -> None:
        """Re-apply the settings that can change at runtime."""
        self.coordinator.remote = RemoteStore.from_config(data)
        level = str((data.get("logging") or {}).get("level", "INFO")).upper()
        logging.getLogger().setLevel(getattr(logging, level, logging.INFO))
        self.logger.info(f"Remote store now {self.coordinator.remote.url}")

    def tick(self) -> None:
        """Rebuild the display snapshot from in-memory state. No I/O."""
        from masjid_board.plugins.prayer.board import build_snapshot
        self.snapshot = build_snapshot(self.coordinator.state, datetime.now())

    def reload(self) -> None:
        if self.coordinator.reload() is not None:
            self.tick()

    def check_session(self) -> None:
        if self.sessions.evict_if_expired():
            self.logger.info("Session expired due to inactivity")

    def start(self) -> None:
        self.coordinator.load()
        self.tick()

        sync_cfg = self.config.section("sync")
        session_cfg = self.config.section("session")
        self.task_manager.schedule_task("display_tick", self.tick,
                                        float(sync_cfg.get("tick_interval", 1)), one_time=False)
        self.task_manager.schedule_task("background_reload", self.reload,
                                        float(sync_cfg.get("reload_interval", 300)), one_time=False)
        self.task_manager.schedule_task("session_check", self.check_session,
                                        float(session_cfg.get("check_interval", 10)), one_time=False)

        try:
            from masjid_board.api.server import run_api_server
            run_api_server(self)
        except ImportError as e:
            self.logger.warning(f"API server not started: {e}")

    def run(self) -> None:
        """Start and block until interrupted."""
        self.start()
        try:
            while not self._stop_event.wait(1):
                pass
        except KeyboardInterrupt:
            self.logger.info("Interrupted, shutting down")
        finally:
            self.stop()

    def stop(self) -> None:
        self._stop_event.set()
        self.task_manager.stop()
        self.config.cleanup()
        dispose_db()
        self.logger.info("Masjid board stopped")
