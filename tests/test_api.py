import re

import pytest
import responses
from fastapi.testclient import TestClient

from masjid_board.api.security import SYNC_FAILED_MESSAGE
from masjid_board.api.server import create_app
from masjid_board.core.auth import INVALID_CREDENTIALS_MESSAGE

from .conftest import REMOTE_URL, ROOT_EMAIL, ROOT_PASSWORD


@pytest.fixture
def client(board_app):
    return TestClient(create_app(board_app))


@pytest.fixture
def signed_in(client):
    response = client.post("/api/session", json={"email": ROOT_EMAIL, "password": ROOT_PASSWORD})
    assert response.status_code == 200
    return client


def test_board_is_public(client):
    response = client.get("/api/components/prayer/board")

    assert response.status_code == 200
    board = response.json()
    assert [row["name"] for row in board["rows"]] == ["Fajr", "Zuhr", "Asr", "Maghrib", "Isha"]
    assert re.fullmatch(r"\d{2}:\d{2}:\d{2}", board["countdown"])
    assert board["nextPrayer"]["azanLabel"] in ("Azan", "Khutbah")
    assert board["profile"]["name"] == "Masjid Al-Noor"


def test_visible_notices_are_public(client):
    response = client.get("/api/components/notices/")
    assert [n["id"] for n in response.json()] == ["welcome-msg"]


def test_login_rejects_bad_password(client):
    response = client.post("/api/session", json={"email": ROOT_EMAIL, "password": "nope"})

    assert response.status_code == 401
    assert response.json()["detail"] == INVALID_CREDENTIALS_MESSAGE


def test_admin_routes_require_session(client):
    assert client.get("/api/state").status_code == 401
    assert client.get("/api/components/users/").status_code == 401
    assert client.post("/api/components/notices/", json={"title": "t", "message": "m"}).status_code == 401


def test_session_lifecycle(signed_in):
    me = signed_in.get("/api/session").json()
    assert me == {"id": "root-super-admin", "email": ROOT_EMAIL, "role": "SUPER_ADMIN", "enabled": True}
    assert signed_in.get("/api/status").json()["signedIn"] is True

    assert signed_in.delete("/api/session").status_code == 204
    assert signed_in.get("/api/session").status_code == 401


def test_state_never_exposes_passwords(signed_in):
    state = signed_in.get("/api/state").json()

    assert state["users"][0]["email"] == ROOT_EMAIL
    assert all("password" not in user for user in state["users"])


def test_push_state_reports_cloud_failure(signed_in, mocked):
    mocked.add(responses.POST, REMOTE_URL, status=500)
    body = signed_in.get("/api/state").json()
    body["profile"]["name"] = "Masjid As-Salam"

    response = signed_in.put("/api/state", json=body)

    assert response.status_code == 502
    assert response.json()["detail"] == SYNC_FAILED_MESSAGE
    # saved locally regardless
    assert signed_in.get("/api/state").json()["profile"]["name"] == "Masjid As-Salam"


def test_push_state_keeps_users(signed_in, board_app, mocked):
    mocked.add(responses.POST, REMOTE_URL, status=200)
    body = signed_in.get("/api/state").json()
    body["users"] = []

    response = signed_in.put("/api/state", json=body)

    assert response.status_code == 200
    assert response.json()["status"] == "synced"
    assert board_app.coordinator.state.users[0].password == ROOT_PASSWORD


def test_push_state_rejects_bad_time(signed_in):
    body = signed_in.get("/api/state").json()
    body["prayers"]["asr"]["iqamah"] = "25:00"

    assert signed_in.put("/api/state", json=body).status_code == 422


def test_unprovisioned_bucket_saves_locally(signed_in, mocked):
    mocked.add(responses.POST, REMOTE_URL, status=404)
    schedule = signed_in.get("/api/components/prayer/schedule").json()
    schedule["prayers"]["fajr"]["iqamah"] = "06:15"

    response = signed_in.put("/api/components/prayer/schedule", json=schedule)

    assert response.status_code == 200
    assert response.json()["status"] == "local_only"
    board = signed_in.get("/api/components/prayer/board").json()
    assert board["rows"][0]["iqamah"] == "6:15 AM"


def test_notice_publish_and_two_step_delete(signed_in):
    created = signed_in.post("/api/components/notices/", json={
        "title": "Fundraiser", "message": "After Isha on Saturday", "isImportant": True,
    })
    assert created.status_code == 201
    notice = created.json()["notice"]
    assert notice["isImportant"] is True
    assert created.json()["sync"]["status"] == "failed"

    first = signed_in.delete(f"/api/components/notices/{notice['id']}")
    assert first.status_code == 202
    assert first.json()["status"] == "pending"

    second = signed_in.delete(f"/api/components/notices/{notice['id']}")
    assert second.status_code == 200
    assert second.json()["status"] == "deleted"

    ids = [n["id"] for n in signed_in.get("/api/components/notices/all").json()]
    assert notice["id"] not in ids


def test_notice_errors(signed_in):
    assert signed_in.delete("/api/components/notices/missing").status_code == 404
    assert signed_in.put("/api/components/notices/missing",
                         json={"title": "t", "message": "m"}).status_code == 404
    response = signed_in.post("/api/components/notices/", json={"title": " ", "message": "m"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Title and message are required."


def test_links(signed_in, client):
    created = signed_in.post("/api/components/links/", json={"title": "Donate", "url": "https://masjid.test/give"})
    assert created.status_code == 201
    link_id = created.json()["link"]["id"]

    assert [link["id"] for link in client.get("/api/components/links/").json()] == [link_id]
    assert signed_in.delete(f"/api/components/links/{link_id}").status_code == 200
    assert signed_in.delete(f"/api/components/links/{link_id}").status_code == 404


def test_user_administration(signed_in):
    created = signed_in.post("/api/components/users/", json={"email": "imam@masjid.test", "password": "pw"})
    assert created.status_code == 201

    duplicate = signed_in.post("/api/components/users/", json={"email": "IMAM@masjid.test", "password": "x"})
    assert duplicate.status_code == 400

    users = signed_in.get("/api/components/users/").json()
    imam = next(u for u in users if u["email"] == "imam@masjid.test")
    assert imam["role"] == "ADMIN"

    disabled = signed_in.patch(f"/api/components/users/{imam['id']}", json={"enabled": False})
    assert disabled.status_code == 200
    assert signed_in.patch(f"/api/components/users/{imam['id']}", json={}).status_code == 400
    assert signed_in.patch("/api/components/users/root-super-admin", json={"enabled": False}).status_code == 400
    assert signed_in.patch("/api/components/users/nobody", json={"password": "x"}).status_code == 404


def test_admin_cannot_register_others(signed_in):
    signed_in.post("/api/components/users/", json={"email": "imam@masjid.test", "password": "pw"})
    signed_in.delete("/api/session")
    assert signed_in.post("/api/session", json={"email": "imam@masjid.test", "password": "pw"}).status_code == 200

    response = signed_in.post("/api/components/users/", json={"email": "x@masjid.test", "password": "pw"})

    assert response.status_code == 403


def test_wisdom_without_provider(client):
    assert client.get("/api/components/wisdom/").json() == {"text": "Indeed, with hardship comes ease."}


def test_tasks_endpoint(client):
    assert client.get("/api/tasks").json() == {"active_timers": []}


def test_malformed_stored_times_do_not_break_public_reads(client, board_app, mocked):
    payload = board_app.coordinator.state.to_wire()
    for times in payload["prayers"].values():
        times["azan"] = "5pm"
    mocked.add(responses.GET, REMOTE_URL, json=payload)
    board_app.reload()

    board = client.get("/api/components/prayer/board")
    assert board.status_code == 200
    assert {row["azan"] for row in board.json()["rows"]} == {"--:--"}
    next_prayer = board.json()["nextPrayer"]
    assert next_prayer["name"] == "Jumma" or next_prayer["azan"] == "--:--"

    schedule = client.get("/api/components/prayer/schedule")
    assert schedule.status_code == 200
    assert schedule.json()["prayers"]["fajr"]["azan"] == "5pm"


def test_patch_with_rejected_toggle_saves_nothing(signed_in):
    response = signed_in.patch("/api/components/users/root-super-admin",
                               json={"password": "changed", "enabled": False})
    assert response.status_code == 400

    signed_in.delete("/api/session")
    assert signed_in.post("/api/session", json={"email": ROOT_EMAIL, "password": ROOT_PASSWORD}).status_code == 200


def test_admin_patch_with_forbidden_toggle_saves_nothing(signed_in):
    signed_in.post("/api/components/users/", json={"email": "imam@masjid.test", "password": "pw"})
    signed_in.delete("/api/session")
    me = signed_in.post("/api/session", json={"email": "imam@masjid.test", "password": "pw"}).json()

    response = signed_in.patch(f"/api/components/users/{me['id']}", json={"password": "new-pw", "enabled": True})
    assert response.status_code == 403

    signed_in.delete("/api/session")
    assert signed_in.post("/api/session", json={"email": "imam@masjid.test", "password": "pw"}).status_code == 200
