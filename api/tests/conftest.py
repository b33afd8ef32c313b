from dataclasses import replace
from datetime import datetime, timezone

import database
import pytest
from backend import BackendError
from fastapi.testclient import TestClient
from models import DEFAULT_COVER_ART, Beat, ContactSubmission
from storage import MediaStorage
from store import SAMPLE_BEATS


@pytest.fixture
def tmp_db(tmp_path, monkeypatch):
    monkeypatch.setattr(database, "DB_PATH", str(tmp_path / "beats.db"))
    monkeypatch.delenv("ADMIN_USERNAME", raising=False)
    monkeypatch.delenv("ADMIN_PASSWORD", raising=False)
    database.init_db()
    return database.DB_PATH


class FakeBackend:
    """In-memory stand-in for Backend that records every write."""

    def __init__(self, beats=SAMPLE_BEATS):
        self.beats = list(beats)
        self.submissions: list[ContactSubmission] = []
        self.calls: list[tuple] = []
        self.fail_fetch = False
        self.fail_writes = False
        self.admins = {"admin": "secret"}

    def _maybe_fail(self):
        if self.fail_writes:
            raise BackendError("backend unavailable")

    def fetch_beats(self):
        self.calls.append(("fetch_beats",))
        if self.fail_fetch:
            raise BackendError("Network request failed")
        return sorted(self.beats, key=lambda b: b.date_created, reverse=True)

    def insert_beat(self, **values):
        self.calls.append(("insert_beat", values))
        self._maybe_fail()
        beat = Beat(
            id=f"new-{len(self.beats) + 1}",
            title=values["title"],
            artist=values["artist"],
            genre=values["genre"],
            bpm=values["bpm"],
            duration=values["duration"],
            cover_art=values["cover_art_url"] or DEFAULT_COVER_ART,
            audio_url=values["audio_url"],
            date_created=datetime.now(timezone.utc),
            is_published=values["is_published"],
        )
        self.beats.append(beat)
        return beat

    def update_beat(self, beat_id, changes):
        self.calls.append(("update_beat", beat_id, dict(changes)))
        self._maybe_fail()
        self.beats = [replace(b, **changes) if b.id == beat_id else b for b in self.beats]

    def delete_beat(self, beat_id):
        self.calls.append(("delete_beat", beat_id))
        self._maybe_fail()
        self.beats = [b for b in self.beats if b.id != beat_id]

    def insert_contact_submission(self, name, email, message):
        self.calls.append(("insert_contact_submission", name, email, message))
        self._maybe_fail()
        submission = ContactSubmission(
            id=str(len(self.submissions) + 1),
            name=name,
            email=email,
            message=message,
            created_at="2024-05-01T12:00:00+00:00",
            processed=False,
        )
        self.submissions.append(submission)
        return submission

    def list_contact_submissions(self):
        self._maybe_fail()
        return list(self.submissions)

    def set_submission_processed(self, submission_id, processed):
        self.calls.append(("set_submission_processed", submission_id, processed))
        self._maybe_fail()
        self.submissions = [replace(s, processed=processed) if s.id == submission_id else s for s in self.submissions]

    def verify_admin_credentials(self, username, password):
        self.calls.append(("verify_admin_credentials", username))
        self._maybe_fail()
        return self.admins.get(username) == password


class FakeResource:
    def __init__(self, beat, registry):
        self.beat = beat
        self.registry = registry
        self.playing = False
        self.pos = 0.0
        self.volume = None
        self.released = False
        self.finished = False
        self.fail_load = False

    def load(self):
        if self.fail_load:
            raise RuntimeError("cannot decode")
        return float(self.beat.duration)

    def play(self):
        self.playing = True

    def pause(self):
        self.playing = False

    def seek(self, seconds):
        self.pos = min(max(seconds, 0.0), float(self.beat.duration))

    def position(self):
        return self.pos

    def set_volume(self, volume):
        self.volume = volume

    def ended(self):
        return self.finished

    def release(self):
        self.released = True
        self.playing = False
        self.registry.alive.remove(self)
        self.registry.events.append(("release", self.beat.id))


class ResourceRegistry:
    """Factory for FakeResource that tracks how many are alive at once."""

    def __init__(self):
        self.alive: list[FakeResource] = []
        self.created: list[FakeResource] = []
        self.events: list[tuple] = []
        self.max_alive = 0
        self.fail_ids: set[str] = set()

    def __call__(self, beat):
        resource = FakeResource(beat, self)
        resource.fail_load = beat.id in self.fail_ids
        self.alive.append(resource)
        self.created.append(resource)
        self.events.append(("create", beat.id))
        self.max_alive = max(self.max_alive, len(self.alive))
        return resource


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def registry():
    return ResourceRegistry()


@pytest.fixture
def storage(tmp_path):
    return MediaStorage(str(tmp_path / "media"))


@pytest.fixture
def app(fake_backend, storage, registry):
    from main import create_app

    return create_app(backend=fake_backend, storage=storage, resource_factory=registry)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_client(client):
    resp = client.post("/admin/login", json={"username": "admin", "password": "secret"})
    assert resp.status_code == 200
    return client
