"""Data access for the hosted tables and the credential-verification procedure.

Everything the site persists goes through a Backend instance. Callers get
plain model objects back and see BackendError for any storage failure.
"""

import hmac
import logging
import sqlite3
import uuid
from datetime import datetime, timezone

from database import db, hash_password
from models import DEFAULT_AUDIO_URL, DEFAULT_COVER_ART, UPDATABLE_FIELDS, Beat, ContactSubmission

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """A backend read or write failed."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_timestamp(value: str) -> datetime:
    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def row_to_beat(row) -> Beat:
    return Beat(
        id=row["id"],
        title=row["title"],
        artist=row["artist"],
        genre=row["genre"],
        bpm=int(row["bpm"]),
        duration=float(row["duration"] or 0),
        cover_art=row["cover_art_url"] or DEFAULT_COVER_ART,
        audio_url=row["audio_url"] or DEFAULT_AUDIO_URL,
        date_created=_parse_timestamp(row["created_at"]),
        is_published=bool(row["is_published"]),
    )


def row_to_submission(row) -> ContactSubmission:
    return ContactSubmission(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        message=row["message"],
        created_at=row["created_at"],
        processed=bool(row["processed"]),
    )


class Backend:
    def fetch_beats(self) -> list[Beat]:
        try:
            with db() as conn:
                rows = conn.execute("SELECT * FROM beats ORDER BY created_at DESC").fetchall()
        except sqlite3.Error as e:
            raise BackendError(f"Failed to load beats: {e}") from e
        return [row_to_beat(r) for r in rows]

    def insert_beat(
        self,
        title: str,
        artist: str,
        genre: str,
        bpm: int,
        duration: float,
        audio_url: str,
        cover_art_url: str | None,
        is_published: bool,
    ) -> Beat:
        beat_id = uuid.uuid4().hex
        try:
            with db() as conn:
                conn.execute(
                    """
                    INSERT INTO beats (id, title, artist, genre, bpm, duration,
                                       cover_art_url, audio_url, created_at, is_published)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        beat_id,
                        title,
                        artist,
                        genre,
                        bpm,
                        duration,
                        cover_art_url,
                        audio_url,
                        _now(),
                        int(is_published),
                    ),
                )
                row = conn.execute("SELECT * FROM beats WHERE id=?", (beat_id,)).fetchone()
        except sqlite3.Error as e:
            raise BackendError(f"Failed to save beat: {e}") from e
        logger.info(f"Inserted beat {beat_id} ({title!r})")
        return row_to_beat(row)

    def update_beat(self, beat_id: str, changes: dict) -> None:
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise BackendError(f"Unknown column(s): {', '.join(sorted(unknown))}")
        if not changes:
            return
        columns = list(changes)
        values = [int(v) if isinstance(v, bool) else v for v in changes.values()]
        assignments = ", ".join(f"{c}=?" for c in columns)
        try:
            with db() as conn:
                cur = conn.execute(f"UPDATE beats SET {assignments} WHERE id=?", (*values, beat_id))
        except sqlite3.Error as e:
            raise BackendError(f"Failed to update beat: {e}") from e
        if cur.rowcount == 0:
            raise BackendError(f"Beat {beat_id} not found")
        logger.info(f"Updated beat {beat_id}: {changes}")

    def delete_beat(self, beat_id: str) -> None:
        try:
            with db() as conn:
                conn.execute("DELETE FROM beats WHERE id=?", (beat_id,))
        except sqlite3.Error as e:
            raise BackendError(f"Failed to delete beat: {e}") from e
        logger.info(f"Deleted beat {beat_id}")

    def insert_contact_submission(self, name: str, email: str, message: str) -> ContactSubmission:
        submission_id = uuid.uuid4().hex
        try:
            with db() as conn:
                conn.execute(
                    """
                    INSERT INTO contact_submissions (id, name, email, message, created_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (submission_id, name, email, message, _now()),
                )
                row = conn.execute("SELECT * FROM contact_submissions WHERE id=?", (submission_id,)).fetchone()
        except sqlite3.Error as e:
            raise BackendError(f"Failed to store submission: {e}") from e
        return row_to_submission(row)

    def list_contact_submissions(self) -> list[ContactSubmission]:
        try:
            with db() as conn:
                rows = conn.execute("SELECT * FROM contact_submissions ORDER BY created_at DESC").fetchall()
        except sqlite3.Error as e:
            raise BackendError(f"Failed to load submissions: {e}") from e
        return [row_to_submission(r) for r in rows]

    def set_submission_processed(self, submission_id: str, processed: bool) -> None:
        try:
            with db() as conn:
                cur = conn.execute(
                    "UPDATE contact_submissions SET processed=? WHERE id=?",
                    (int(processed), submission_id),
                )
        except sqlite3.Error as e:
            raise BackendError(f"Failed to update submission: {e}") from e
        if cur.rowcount == 0:
            raise BackendError(f"Submission {submission_id} not found")

    def verify_admin_credentials(self, username: str, password: str) -> bool:
        try:
            with db() as conn:
                row = conn.execute(
                    "SELECT password_salt, password_hash FROM admin_users WHERE username=?",
                    (username,),
                ).fetchone()
        except sqlite3.Error as e:
            raise BackendError(f"Credential check failed: {e}") from e
        if not row:
            return False
        candidate = hash_password(password, row["password_salt"])
        return hmac.compare_digest(candidate, row["password_hash"])
