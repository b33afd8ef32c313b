import io
import os

import routers.admin as admin_routes


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_public_browse_hides_drafts(client):
    data = client.get("/beats").json()
    titles = [b["title"] for b in data["beats"]]
    assert len(titles) == 5
    assert "Slow Burn" not in titles
    assert data["beats"][0]["duration_display"] == "3:03"


def test_browse_filters_and_sorts(client):
    data = client.get("/beats", params={"genre": "hip hop", "sort": "bpm-desc"}).json()
    assert [b["bpm"] for b in data["beats"]] == [100, 95]
    data = client.get("/beats", params={"search": "FLOW"}).json()
    assert [b["title"] for b in data["beats"]] == ["Urban Flow"]


def test_browse_rejects_unknown_sort(client):
    assert client.get("/beats", params={"sort": "loudest"}).status_code == 400


def test_draft_not_fetchable_publicly(client):
    assert client.get("/beats/6").status_code == 404
    assert client.get("/beats/1").json()["title"] == "Midnight Dreams"


def test_genres_and_featured(client):
    assert client.get("/beats/genres").json()["genres"][0] == "all"
    assert len(client.get("/beats/featured").json()["beats"]) == 3


def test_refresh_reports_failure_and_keeps_catalog(client, fake_backend):
    fake_backend.fail_fetch = True
    data = client.post("/catalog/refresh").json()
    assert data["ok"] is False
    assert data["count"] == 6
    status = client.get("/catalog/status").json()
    assert status["is_loading"] is False
    assert status["error"]


def test_admin_routes_require_login(client):
    assert client.get("/admin/beats").status_code == 401
    assert client.delete("/admin/beats/1").status_code == 401


def test_login_failure_is_generic(client):
    wrong_user = client.post("/admin/login", json={"username": "ghost", "password": "secret"})
    wrong_pass = client.post("/admin/login", json={"username": "admin", "password": "nope"})
    assert wrong_user.status_code == wrong_pass.status_code == 401
    assert wrong_user.json()["detail"] == wrong_pass.json()["detail"] == "Invalid username or password"


def test_login_backend_failure(client, fake_backend):
    fake_backend.fail_writes = True
    resp = client.post("/admin/login", json={"username": "admin", "password": "secret"})
    assert resp.status_code == 503


def test_login_sets_session_cookies(admin_client):
    session = admin_client.get("/admin/session").json()
    assert session == {"authenticated": True, "admin_username": "admin"}
    admin_client.post("/admin/logout")
    assert admin_client.get("/admin/session").json()["authenticated"] is False


def test_admin_sees_drafts(admin_client):
    assert len(admin_client.get("/admin/beats").json()["beats"]) == 6
    drafts = admin_client.get("/admin/beats", params={"tab": "drafts"}).json()["beats"]
    assert [b["title"] for b in drafts] == ["Slow Burn"]


def test_toggle_published_sends_exact_update(admin_client, fake_backend):
    resp = admin_client.post("/admin/beats/2/toggle-published")
    assert resp.status_code == 200
    assert resp.json()["is_published"] is False
    assert ("update_beat", "2", {"is_published": False}) in fake_backend.calls
    titles = [b["title"] for b in admin_client.get("/beats").json()["beats"]]
    assert "Urban Flow" not in titles


def test_toggle_published_backend_failure_leaves_store(admin_client, fake_backend):
    fake_backend.fail_writes = True
    resp = admin_client.post("/admin/beats/2/toggle-published")
    assert resp.status_code == 502
    assert admin_client.get("/beats/2").json()["is_published"] is True


def test_patch_beat(admin_client, fake_backend):
    resp = admin_client.patch("/admin/beats/3", json={"title": "Ethereal Vibes II", "bpm": 82})
    assert resp.status_code == 200
    assert resp.json()["bpm"] == 82
    assert ("update_beat", "3", {"title": "Ethereal Vibes II", "bpm": 82}) in fake_backend.calls


def test_patch_rejects_empty_and_duration(admin_client):
    assert admin_client.patch("/admin/beats/3", json={}).status_code == 400
    assert admin_client.patch("/admin/beats/3", json={"duration": 10}).status_code == 400
    assert admin_client.patch("/admin/beats/404", json={"title": "x"}).status_code == 404


def test_delete_selected_beat_stops_player(admin_client, registry):
    admin_client.post("/player/select", json={"beat_id": "1"})
    admin_client.post("/player/toggle")
    assert admin_client.delete("/admin/beats/1").status_code == 200

    player = admin_client.get("/player").json()
    assert player["beat"] is None
    assert player["is_open"] is False
    assert player["is_playing"] is False
    assert registry.alive == []


def test_add_beat_requires_audio(admin_client, fake_backend):
    resp = admin_client.post("/admin/beats", data={"title": "No audio"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Please upload an audio file"
    assert not [c for c in fake_backend.calls if c[0] == "insert_beat"]


def test_add_beat_uploads_then_inserts(admin_client, fake_backend, storage, monkeypatch):
    monkeypatch.setattr(admin_routes, "probe_duration", lambda path: 95.0)
    monkeypatch.setattr(admin_routes, "estimate_tempo", lambda path: 128)

    resp = admin_client.post(
        "/admin/beats",
        data={"title": "Night Drive", "genre": "Synthwave", "is_published": "true"},
        files={
            "audio": ("night drive.mp3", io.BytesIO(b"ID3fake"), "audio/mpeg"),
            "cover": ("cover.png", io.BytesIO(b"\x89PNG"), "image/png"),
        },
    )
    assert resp.status_code == 201
    beat = resp.json()
    assert beat["duration"] == 95.0
    assert beat["bpm"] == 128
    assert beat["audio_url"].startswith("/media/beats/")
    assert beat["audio_url"].endswith("_night_drive.mp3")
    assert beat["cover_art"].startswith("/media/covers/")
    assert storage.resolve(beat["audio_url"]) is not None

    listed = admin_client.get("/admin/beats").json()["beats"]
    assert listed[0]["title"] == "Night Drive"


def test_add_beat_insert_failure_keeps_upload(admin_client, fake_backend, storage, monkeypatch):
    monkeypatch.setattr(admin_routes, "probe_duration", lambda path: 60.0)
    fake_backend.fail_writes = True
    resp = admin_client.post(
        "/admin/beats",
        data={"title": "Orphan", "bpm": "90"},
        files={"audio": ("orphan.wav", io.BytesIO(b"RIFF"), "audio/wav")},
    )
    assert resp.status_code == 502
    assert len(os.listdir(storage.bucket_dir("beats"))) == 1


def test_add_beat_rejects_bad_extension(admin_client):
    resp = admin_client.post(
        "/admin/beats",
        files={"audio": ("notes.txt", io.BytesIO(b"hi"), "text/plain")},
    )
    assert resp.status_code == 400


def test_submissions_inbox(admin_client, client):
    client.post("/contact", json={"name": "Jo", "email": "jo@example.com", "message": "Need a trap beat asap"})
    subs = admin_client.get("/admin/submissions").json()["submissions"]
    assert len(subs) == 1
    resp = admin_client.post(f"/admin/submissions/{subs[0]['id']}/processed", json={"processed": True})
    assert resp.status_code == 200
    assert admin_client.get("/admin/submissions").json()["submissions"][0]["processed"] is True


def test_contact_short_message_never_reaches_backend(client, fake_backend):
    resp = client.post("/contact", json={"name": "Jo", "email": "jo@example.com", "message": "too short"})
    assert resp.status_code == 422
    assert "Message must be at least 10 characters." in resp.text
    assert not [c for c in fake_backend.calls if c[0] == "insert_contact_submission"]


def test_contact_validates_name_and_email(client):
    resp = client.post("/contact", json={"name": "J", "email": "not-an-email", "message": "long enough message"})
    assert resp.status_code == 422
    assert "Name must be at least 2 characters." in resp.text
    assert "Please enter a valid email address." in resp.text


def test_contact_backend_failure(client, fake_backend):
    fake_backend.fail_writes = True
    resp = client.post("/contact", json={"name": "Jo", "email": "jo@example.com", "message": "long enough message"})
    assert resp.status_code == 502


def test_player_flow(client, registry):
    state = client.post("/player/select", json={"beat_id": "2"}).json()
    assert state["is_open"] is True
    assert state["duration_display"] == "3:35"

    client.post("/player/select", json={"beat_id": "3"})
    assert registry.max_alive == 1

    client.post("/player/seek", json={"seconds": 65})
    state = client.post("/player/skip-forward").json()
    assert state["current_time_display"] == "1:15"

    state = client.post("/player/volume", json={"volume": 0.3}).json()
    assert state["volume"] == 0.3
    assert client.post("/player/volume", json={"volume": 1.5}).status_code == 422

    state = client.post("/player/close").json()
    assert state["beat"] is None
    assert state["is_open"] is False
    assert registry.alive == []


def test_public_cannot_play_drafts(client):
    assert client.post("/player/select", json={"beat_id": "6"}).status_code == 404
    assert client.post("/player/select", json={"beat_id": "missing"}).status_code == 404


def test_admin_can_play_drafts(admin_client):
    resp = admin_client.post("/player/select", json={"beat_id": "6"})
    assert resp.status_code == 200
    assert resp.json()["beat"]["title"] == "Slow Burn"
