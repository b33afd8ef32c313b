from dataclasses import dataclass, fields, replace
from datetime import datetime
from typing import Optional

DEFAULT_ARTIST = "Beat Alchemy"
DEFAULT_COVER_ART = "/images/beat-cover-1.jpg"
DEFAULT_AUDIO_URL = "/audio/beat-1.mp3"

# Fields an admin may change after creation. duration is fixed at upload time.
UPDATABLE_FIELDS = ("title", "genre", "bpm", "is_published")


@dataclass(frozen=True)
class Beat:
    id: str
    title: str
    artist: str
    genre: str
    bpm: int
    duration: float  # seconds, from decoded audio metadata
    cover_art: str
    audio_url: str
    date_created: datetime
    is_published: bool

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "genre": self.genre,
            "bpm": self.bpm,
            "duration": self.duration,
            "cover_art": self.cover_art,
            "audio_url": self.audio_url,
            "date_created": self.date_created.isoformat(),
            "is_published": self.is_published,
        }


@dataclass(frozen=True)
class ContactSubmission:
    id: str
    name: str
    email: str
    message: str
    created_at: str
    processed: bool

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class PlaybackState:
    beat_id: Optional[str] = None
    is_playing: bool = False
    is_loading: bool = False
    current_time: float = 0.0
    duration: float = 0.0
    volume: float = 0.7
    error: Optional[str] = None


def merge_beat(beat: Beat, changes: dict) -> Beat:
    """Return a copy of ``beat`` with ``changes`` applied.

    Only fields listed in UPDATABLE_FIELDS are accepted; anything else raises
    ValueError so callers cannot rewrite ids, timestamps or durations.
    """
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
    return replace(beat, **changes)
