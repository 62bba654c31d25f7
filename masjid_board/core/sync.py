"""
Read-through / write-through coordination between the local durable cache and the remote store.

The coordinator owns the authoritative in-memory AppState. Callers edit a working copy
and hand it back through save() or mutate(); they never touch the authoritative copy.
Writes replace the whole remote aggregate (last write wins across clients).
"""
import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional, Tuple

import requests
from pydantic import ValidationError

from masjid_board.core.remote import RemoteNotProvisionedError, RemoteStore
from masjid_board.core.state import AppState
from masjid_board.core.store import KeyValueStore

CACHE_KEY = "masjid_offline_sync_cache"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SyncStatus(str, Enum):
    SYNCED = "synced"
    LOCAL_ONLY = "local_only"
    FAILED = "failed"


@dataclass
class SyncResult:
    status: SyncStatus
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != SyncStatus.FAILED


class SyncCoordinator:
    def __init__(
        self,
        remote: RemoteStore,
        cache: KeyValueStore,
        default_factory: Callable[[], AppState],
        clock: Callable[[], datetime] = _utc_now,
        cache_key: str = CACHE_KEY,
    ):
        self.remote = remote
        self.cache = cache
        self.default_factory = default_factory
        self.clock = clock
        self.cache_key = cache_key
        self.logger = logging.getLogger(self.__class__.__name__)
        self.last_result: Optional[SyncResult] = None
        self._state: Optional[AppState] = None
        self._generation = 0
        self._state_lock = threading.RLock()
        self._write_lock = threading.RLock()
        self._reload_lock = threading.Lock()

    @property
    def state(self) -> AppState:
        """Authoritative copy; loads on first access."""
        with self._state_lock:
            current = self._state
        if current is None:
            return self.load()
        return current

    def working_copy(self) -> AppState:
        return self.state.model_copy(deep=True)

    def load(self) -> AppState:
        """Remote first, then local cache, then built-in default. Never raises."""
        with self._state_lock:
            started_at = self._generation

        state = self._load_remote()
        from_remote = state is not None
        if state is None:
            state = self._load_cached()
        if state is None:
            self.logger.info("No remote or cached state, using built-in default")
            state = self.default_factory()

        with self._state_lock:
            if self._generation != started_at and self._state is not None:
                # A save landed while we were fetching; keep the newer local state and cache
                self.logger.info("Discarding loaded state: a newer save happened during load")
                return self._state
            if from_remote:
                self._write_cache(state)
            self._state = state
        return state

    def reload(self) -> Optional[AppState]:
        """Background refresh. Returns None when another reload is already running."""
        if not self._reload_lock.acquire(blocking=False):
            self.logger.debug("Reload already in flight, skipping")
            return None
        try:
            return self.load()
        finally:
            self._reload_lock.release()

    def save(self, state: AppState) -> SyncResult:
        """Stamp lastUpdated, write the local cache, then push to the remote store."""
        stamped = state.model_copy(update={"last_updated": self.clock()})
        with self._state_lock:
            # Cache and in-memory copy change together
            self._write_cache(stamped)
            self._state = stamped
            self._generation += 1

        try:
            self.remote.push(stamped.to_wire())
            result = SyncResult(SyncStatus.SYNCED)
        except RemoteNotProvisionedError as e:
            self.logger.warning(f"Cloud sync skipped ({e}). Data saved locally.")
            result = SyncResult(SyncStatus.LOCAL_ONLY, str(e))
        except requests.RequestException as e:
            self.logger.error(f"Non-critical sync error: {e}")
            result = SyncResult(SyncStatus.FAILED, str(e))
        self.last_result = result
        return result

    def mutate(
        self,
        change: Callable[[AppState], Optional[AppState]],
        refresh: bool = False,
    ) -> Tuple[AppState, SyncResult]:
        """
        Single-writer edit: clone the authoritative state (after a fresh load when refresh=True),
        apply change to the clone, then save it. change may edit in place or return a new state.
        Exceptions raised by change propagate and nothing is saved.
        """
        with self._write_lock:
            if refresh:
                self.load()
            working = self.working_copy()
            replaced = change(working)
            if isinstance(replaced, AppState):
                working = replaced
            result = self.save(working)
            return self.state, result

    def _load_remote(self) -> Optional[AppState]:
        try:
            payload = self.remote.fetch()
        except (requests.RequestException, ValueError) as e:
            self.logger.warning(f"Cloud fetch failed, checking offline cache: {e}")
            return None
        if not payload:
            return None
        try:
            return AppState.model_validate(payload)
        except ValidationError as e:
            self.logger.warning(f"Remote payload rejected: {e.error_count()} validation errors")
            return None

    def _load_cached(self) -> Optional[AppState]:
        cached = self.cache.get(self.cache_key)
        if not cached:
            return None
        try:
            return AppState.model_validate(json.loads(cached))
        except (ValueError, ValidationError) as e:
            self.logger.warning(f"Corrupt local cache, ignoring it: {e}")
            return None

    def _write_cache(self, state: AppState) -> None:
        self.cache.set(self.cache_key, json.dumps(state.to_wire()))
