"""Tests for the HTTP API."""

import asyncio
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text

from photobooth.main import create_app

JANE = {"name": "Jane Doe", "email": "jane@x.com", "phone": "081234567890"}


@pytest.fixture
def app(settings, fake_capture, sleep, fake_runner):
    return create_app(
        settings=settings,
        capture_factory=fake_capture,
        camera_sleep=sleep,
        print_runner=fake_runner,
    )


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def _finalize_racing(client: TestClient) -> None:
    assert client.post("/api/session/theme", json={"theme": "f1"}).status_code == 200
    assert client.post("/api/camera/start").json()["is_active"] is True
    assert client.post("/api/camera/capture").json()["photo_count"] == 1
    assert client.post("/api/camera/advance").status_code == 200
    assert client.post("/api/session/user-info", json=JANE).status_code == 200
    response = client.post("/api/session/finalize", json={})
    assert response.status_code == 200
    assert response.json()["final_photo"].startswith("data:image/png;base64,")


def test_health(client) -> None:
    response = client.get("/health")
    assert response.json() == {"status": "healthy", "camera_active": False}


def test_complete_persists_exactly_one_record(client) -> None:
    _finalize_racing(client)

    response = client.post("/api/session/complete", params={"auto_print": False})
    assert response.status_code == 200
    body = response.json()
    assert body["printed"] is False

    records = client.get("/api/records").json()["data"]
    assert len(records) == 1
    assert records[0]["user_info"] == JANE
    assert records[0]["selection"] == {"theme": "f1"}
    assert Path(records[0]["photo_path"]).is_file()

    # Completing again returns the stored record instead of writing a new one
    again = client.post("/api/session/complete", params={"auto_print": False}).json()
    assert again["record"]["id"] == body["record"]["id"]
    assert len(client.get("/api/records").json()["data"]) == 1


def test_complete_prints_after_saving(client, fake_runner) -> None:
    _finalize_racing(client)

    body = client.post("/api/session/complete").json()

    assert body["printed"] is True
    assert len(fake_runner.calls) == 1
    saved = Path(body["record"]["photo_path"])
    assert fake_runner.calls[0][-1] == str(saved.parent / f"print-temp-{saved.stem}.png")


def test_complete_requires_final_photo(client) -> None:
    client.post("/api/session/theme", json={"theme": "f1"})
    assert client.post("/api/session/complete").status_code == 400


def test_camera_start_failure_is_reported(settings, fake_capture, sleep) -> None:
    app = create_app(
        settings=settings,
        capture_factory=lambda index: fake_capture(index, opened=False),
        camera_sleep=sleep,
    )
    client = TestClient(app)

    status = client.post("/api/camera/start").json()
    assert status["is_active"] is False
    assert status["error"]

    status = client.post("/api/camera/capture").json()
    assert status["photo_count"] == 0
    assert status["can_capture"] is False


def test_quiz_flow_composites_two_photos(client) -> None:
    questions = client.get("/api/session/quiz").json()
    assert [q["id"] for q in questions] == ["1", "2", "3", "4"]

    status = client.post(
        "/api/session/quiz",
        json={"answers": {"1": ["1"], "2": ["1"], "3": ["4"], "4": ["6"]}},
    ).json()
    assert status["selection"] == {"archetype": "morning"}
    assert status["required_photos"] == 2

    client.post("/api/camera/start")
    client.post("/api/camera/capture")
    assert client.post("/api/camera/advance").status_code == 400
    assert client.post("/api/camera/capture").json()["can_advance"] is True
    assert client.post("/api/camera/advance").status_code == 200

    assert client.post("/api/session/finalize", json={}).status_code == 200
    assert client.get("/api/session/status").json()["has_final_photo"] is True


def test_selection_cannot_change_mid_session(client) -> None:
    client.post("/api/session/theme", json={"theme": "f1"})
    assert client.post("/api/session/theme", json={"theme": "motogp"}).status_code == 400

    session_id = client.get("/api/session/status").json()["session_id"]
    reset = client.delete("/api/session/reset").json()
    assert reset["session_id"] != session_id
    assert reset["selection"] is None
    assert client.post("/api/session/theme", json={"theme": "motogp"}).status_code == 200


def test_submit_without_api_key_is_unavailable(client) -> None:
    _finalize_racing(client)
    client.post("/api/session/complete", params={"auto_print": False})

    assert client.post("/api/session/submit").status_code == 503


def test_photos_endpoints(client, data_uri) -> None:
    saved = client.post("/api/photos", json={"image": data_uri(), "file_name": "abc.png"}).json()
    assert saved["success"] is True
    assert Path(saved["file_path"]).is_file()

    listing = client.get("/api/photos").json()["photos"]
    assert [p["filename"] for p in listing] == ["abc.png"]

    download = client.get("/api/photos/abc.png")
    assert download.status_code == 200
    assert download.headers["content-type"] == "image/png"
    assert client.get("/api/photos/missing.png").status_code == 404

    bad = client.post("/api/photos", json={"image": "nope", "file_name": "x.png"}).json()
    assert bad["success"] is False
    assert bad["error"]


def test_records_endpoints_and_export(client) -> None:
    payload = {
        "photo_path": "/photos/a.png",
        "selection": {"archetype": "chill"},
        "user_info": {"name": "Doe, Jane", "email": "jane@x.com", "phone": "081234567890"},
    }
    saved = client.post("/api/records", json=payload).json()
    assert saved["success"] is True
    record_id = saved["data"]["id"]

    fetched = client.get(f"/api/records/{record_id}").json()
    assert fetched["data"]["selection"] == {"archetype": "chill"}
    assert client.get("/api/records/unknown").json() == {"success": True, "data": None, "file_path": None}

    export = client.get("/api/records/export")
    assert export.headers["content-type"].startswith("text/csv")
    assert "photobooth-data-" in export.headers["content-disposition"]
    lines = export.text.split("\n")
    assert lines[0].startswith("ID,Name,Email")
    assert '"Doe, Jane"' in lines[1]


def test_print_endpoints(client, fake_runner, data_uri) -> None:
    saved = client.post("/api/photos", json={"image": data_uri(), "file_name": "p.png"}).json()

    printed = client.post("/api/print", json={"path": saved["file_path"]}).json()
    assert printed["success"] is True
    assert len(fake_runner.calls) == 1

    pdf = client.post("/api/print/pdf", json={"image": data_uri()}).json()
    assert pdf["success"] is True
    assert Path(pdf["file_path"]).is_file()


def test_navigation_broadcasts(client) -> None:
    with client.websocket_connect("/ws") as websocket:
        assert client.post("/api/navigate/data").json() == {"success": True}
        assert websocket.receive_json() == {"type": "navigate-to-data"}

    assert client.post("/api/navigate/elsewhere").status_code == 404


def test_unreadable_record_becomes_failure_result(app, client) -> None:
    payload = {
        "id": "old",
        "photo_path": "/photos/old.png",
        "selection": {"theme": "f1"},
        "user_info": JANE,
    }
    client.post("/api/records", json=payload)
    with app.state.records.engine.begin() as conn:
        conn.execute(text("UPDATE photo_results SET selected_theme = '{\"theme\": \"sunset\"}'"))

    listing = client.get("/api/records")
    assert listing.status_code == 200
    assert listing.json()["data"] == []

    single = client.get("/api/records/old")
    assert single.status_code == 200
    assert single.json()["success"] is False
    assert "old" in single.json()["error"]

    assert client.get("/api/records/export").status_code == 200


def test_finalize_and_save_run_off_the_event_loop(app, client) -> None:
    calls = []
    compositor = app.state.compositor
    bridge = app.state.bridge
    original_composite = compositor.composite
    original_save = bridge.save_photo_file

    def in_worker_thread() -> bool:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return True
        return False

    def composite(*args, **kwargs):
        calls.append(("composite", in_worker_thread()))
        return original_composite(*args, **kwargs)

    def save_photo_file(*args, **kwargs):
        calls.append(("save", in_worker_thread()))
        return original_save(*args, **kwargs)

    compositor.composite = composite
    bridge.save_photo_file = save_photo_file

    _finalize_racing(client)
    client.post("/api/session/complete", params={"auto_print": False})

    assert calls == [("composite", True), ("save", True)]
