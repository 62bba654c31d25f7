from datetime import datetime, timedelta, timezone

import pytest
import responses
import yaml

from masjid_board.core.db import dispose_db, init_db
from masjid_board.core.remote import RemoteStore
from masjid_board.core.state import default_state
from masjid_board.core.store import SqlKeyValueStore
from masjid_board.core.sync import SyncCoordinator

REMOTE_URL = "https://kv.test/bucket/key"
ROOT_EMAIL = "root@masjid.test"
ROOT_PASSWORD = "secret"
FIXED_NOW = datetime(2024, 5, 6, 10, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mocked():
    """Requests to anything not registered fail with ConnectionError (network down)."""
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


@pytest.fixture
def db(tmp_path):
    init_db(db_url=f"sqlite:///{tmp_path / 'test.db'}")
    yield
    dispose_db()


@pytest.fixture
def store(db):
    return SqlKeyValueStore()


@pytest.fixture
def remote():
    return RemoteStore(base_url="https://kv.test", bucket="bucket", key="key", timeout=1)


@pytest.fixture
def coordinator(remote, store, clock):
    return SyncCoordinator(
        remote=remote,
        cache=store,
        default_factory=lambda: default_state(ROOT_EMAIL, ROOT_PASSWORD, now=FIXED_NOW),
        clock=clock,
    )


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "masjid": {
            "remote": {"base_url": "https://kv.test", "bucket": "bucket", "key": "key", "timeout": 1},
            "bootstrap_admin": {"email": ROOT_EMAIL, "password": ROOT_PASSWORD},
        },
        "database": {"path": str(tmp_path / "board.db")},
        "cache": {"directory": str(tmp_path / "cache")},
        "api": {"enabled": False},
        "logging": {"level": "DEBUG", "file": None},
    }))
    return path


@pytest.fixture
def board_app(config_file, mocked):
    from masjid_board.core.app import MasjidBoardApp

    app = MasjidBoardApp(config_path=str(config_file), watch_config=False, configure_logging=False)
    yield app
    app.stop()
