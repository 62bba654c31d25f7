import json

import pytest
import responses

from masjid_board.core.remote import RemoteStore
from masjid_board.core.state import MasjidProfile, default_state
from masjid_board.core.sync import CACHE_KEY, SyncStatus

from .conftest import FIXED_NOW, REMOTE_URL, ROOT_EMAIL


def remote_payload(name="Remote Masjid"):
    payload = default_state("remote@masjid.test", "pw", now=FIXED_NOW).to_wire()
    payload["profile"]["name"] = name
    return payload


def test_load_prefers_remote_and_refreshes_cache(coordinator, store, mocked):
    mocked.add(responses.GET, REMOTE_URL, json=remote_payload())

    state = coordinator.load()

    assert state.profile.name == "Remote Masjid"
    assert json.loads(store.get(CACHE_KEY))["profile"]["name"] == "Remote Masjid"
    assert coordinator.state is state


def test_server_error_falls_back_to_cache(coordinator, mocked):
    mocked.add(responses.GET, REMOTE_URL, json=remote_payload())
    first = coordinator.load()

    mocked.replace(responses.GET, REMOTE_URL, status=500)
    second = coordinator.load()

    assert second == first


def test_missing_remote_and_cache_uses_default(coordinator, mocked):
    mocked.add(responses.GET, REMOTE_URL, status=404)

    state = coordinator.load()

    assert state.users[0].email == ROOT_EMAIL
    assert state.notices[0].id == "welcome-msg"


def test_offline_uses_default(coordinator, mocked):
    # nothing registered: requests fail as if the network were down
    state = coordinator.load()
    assert state.users[0].id == "root-super-admin"


def test_corrupt_cache_is_treated_as_absent(coordinator, store, mocked):
    store.set(CACHE_KEY, "{not json")

    state = coordinator.load()

    assert state.users[0].email == ROOT_EMAIL


def test_remote_without_users_is_rejected(coordinator, mocked):
    payload = remote_payload()
    del payload["users"]
    mocked.add(responses.GET, REMOTE_URL, json=payload)

    state = coordinator.load()

    assert state.profile.name != "Remote Masjid"


def test_older_payload_back_fills_missing_sections(coordinator, mocked):
    payload = remote_payload()
    for key in ("links", "profile", "ramadan", "jumma"):
        del payload[key]
    mocked.add(responses.GET, REMOTE_URL, json=payload)

    state = coordinator.load()

    assert state.links == []
    assert state.profile.name == "Masjid Al-Noor"
    assert state.jumma.jamaat == "13:45"
    assert state.ramadan.enabled is False


def test_save_writes_cache_then_pushes(coordinator, store, clock, mocked):
    mocked.add(responses.GET, REMOTE_URL, json=remote_payload())
    mocked.add(responses.POST, REMOTE_URL, status=200)
    working = coordinator.working_copy()
    working.profile.name = "Edited"
    clock.advance(minutes=5)

    result = coordinator.save(working)

    assert result.status == SyncStatus.SYNCED
    assert coordinator.state.profile.name == "Edited"
    assert coordinator.state.last_updated == clock.now
    cached = json.loads(store.get(CACHE_KEY))
    assert cached["profile"]["name"] == "Edited"
    pushed = json.loads(mocked.calls[-1].request.body)
    assert pushed["profile"]["name"] == "Edited"
    assert "lastUpdated" in pushed


def test_working_copy_is_detached(coordinator, mocked):
    working = coordinator.working_copy()
    working.profile.name = "Unsaved"
    assert coordinator.state.profile.name == "Masjid Al-Noor"


def test_unprovisioned_bucket_is_local_only(coordinator, store, mocked):
    mocked.add(responses.POST, REMOTE_URL, status=404)

    result = coordinator.save(coordinator.working_copy())

    assert result.status == SyncStatus.LOCAL_ONLY
    assert result.ok
    assert store.get(CACHE_KEY) is not None


def test_push_failure_keeps_local_save(coordinator, store, mocked):
    mocked.add(responses.POST, REMOTE_URL, status=500)
    working = coordinator.working_copy()
    working.profile.area = "Eastside"

    result = coordinator.save(working)

    assert result.status == SyncStatus.FAILED
    assert not result.ok
    assert coordinator.last_result is result
    assert coordinator.state.profile.area == "Eastside"
    assert json.loads(store.get(CACHE_KEY))["profile"]["area"] == "Eastside"


def test_offline_save_then_load_round_trips(coordinator, mocked):
    working = coordinator.working_copy()
    working.profile.name = "Offline Edit"
    coordinator.save(working)
    saved = coordinator.state

    assert coordinator.load() == saved


def test_failed_change_saves_nothing(coordinator, store, mocked):
    def broken(state):
        state.profile.name = "Half done"
        raise ValueError("boom")

    with pytest.raises(ValueError):
        coordinator.mutate(broken)

    assert store.get(CACHE_KEY) is None
    assert coordinator.state.profile.name == "Masjid Al-Noor"


def test_mutate_accepts_replacement_state(coordinator, mocked):
    def replace(state):
        return state.model_copy(update={"profile": MasjidProfile(name="Replaced")}, deep=True)

    state, result = coordinator.mutate(replace)

    assert state.profile.name == "Replaced"
    assert result.status == SyncStatus.FAILED


class RacingRemote(RemoteStore):
    """Runs `during_fetch` while the fetch is in flight, then returns a stale payload."""

    def __init__(self, during_fetch):
        super().__init__(base_url="https://kv.test", bucket="bucket", key="key")
        self.during_fetch = during_fetch

    def fetch(self):
        self.during_fetch()
        return remote_payload("Stale Remote")

    def push(self, payload):
        return None


def test_load_during_save_keeps_newer_local_state(coordinator, remote, store, mocked):
    coordinator.load()

    def save_elsewhere():
        working = coordinator.working_copy()
        working.profile.name = "Saved mid-load"
        coordinator.save(working)

    coordinator.remote = RacingRemote(save_elsewhere)
    state = coordinator.load()

    assert state.profile.name == "Saved mid-load"
    assert coordinator.state.profile.name == "Saved mid-load"
    assert json.loads(store.get(CACHE_KEY))["profile"]["name"] == "Saved mid-load"

    # back offline: the cache still holds the save, not the stale fetch
    coordinator.remote = remote
    assert coordinator.load().profile.name == "Saved mid-load"


def test_reload_skips_when_one_is_in_flight(coordinator, mocked):
    coordinator._reload_lock.acquire()
    try:
        assert coordinator.reload() is None
    finally:
        coordinator._reload_lock.release()
    assert coordinator.reload() is not None
