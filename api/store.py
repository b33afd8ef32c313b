"""Catalog state shared by the browser, the admin dashboard and the player.

The application builds one CatalogStore and hands it to whatever needs it.
State snapshots are immutable; every mutation swaps in a new CatalogState
and notifies subscribers with it.
"""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Optional

from backend import Backend
from models import Beat, merge_beat

logger = logging.getLogger(__name__)


def _date(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


SAMPLE_BEATS: tuple[Beat, ...] = (
    Beat("1", "Midnight Dreams", "Beat Alchemy", "Hip Hop", 95, 183,
         "/images/beat-cover-1.jpg", "/audio/beat-1.mp3", _date(2024, 3, 15), True),
    Beat("2", "Urban Flow", "Beat Alchemy", "Trap", 140, 215,
         "/images/beat-cover-2.jpg", "/audio/beat-2.mp3", _date(2024, 2, 22), True),
    Beat("3", "Ethereal Vibes", "Beat Alchemy", "Ambient", 80, 197,
         "/images/beat-cover-3.jpg", "/audio/beat-3.mp3", _date(2024, 1, 5), True),
    Beat("4", "Street Anthem", "Beat Alchemy", "Hip Hop", 100, 224,
         "/images/beat-cover-4.jpg", "/audio/beat-4.mp3", _date(2023, 12, 12), True),
    Beat("5", "Future Bass", "Beat Alchemy", "Electronic", 150, 208,
         "/images/beat-cover-5.jpg", "/audio/beat-5.mp3", _date(2023, 11, 30), True),
    Beat("6", "Slow Burn", "Beat Alchemy", "R&B", 70, 240,
         "/images/beat-cover-6.jpg", "/audio/beat-6.mp3", _date(2023, 10, 22), False),
)


@dataclass(frozen=True)
class CatalogState:
    beats: tuple[Beat, ...] = SAMPLE_BEATS
    current_beat: Optional[Beat] = None
    is_player_open: bool = False
    is_loading: bool = False
    error: Optional[str] = None


Listener = Callable[[CatalogState], None]


class CatalogStore:
    def __init__(self, backend: Backend | None, beats: tuple[Beat, ...] | None = None):
        self.backend = backend
        self._state = CatalogState() if beats is None else CatalogState(beats=tuple(beats))
        self._lock = threading.RLock()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> CatalogState:
        return self._state

    @property
    def beats(self) -> tuple[Beat, ...]:
        return self._state.beats

    @property
    def current_beat(self) -> Optional[Beat]:
        return self._state.current_beat

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _set(self, **changes):
        with self._lock:
            self._state = replace(self._state, **changes)
            state = self._state
            listeners = list(self._listeners)
            # Notify under the lock so listeners observe states in order
            for listener in listeners:
                listener(state)

    def get(self, beat_id: str) -> Optional[Beat]:
        return next((b for b in self._state.beats if b.id == beat_id), None)

    def fetch_all(self):
        """Replace the list with the backend's beats, newest first.

        On failure the current list stays in place and ``error`` holds the
        reason. Never raises.
        """
        if self.backend is None:
            logger.info("No backend configured; keeping sample catalog")
            return
        self._set(is_loading=True, error=None)
        try:
            beats = self.backend.fetch_beats()
        except Exception as e:
            logger.warning(f"Failed to fetch beats: {e}")
            self._set(is_loading=False, error=str(e) or "Failed to load beats")
            return
        logger.info(f"Fetched {len(beats)} beat(s)")
        self._set(beats=tuple(beats), is_loading=False, error=None)

    def create(self, beat: Beat):
        with self._lock:
            if self.get(beat.id) is not None:
                raise ValueError(f"Beat {beat.id} already exists")
            self._set(beats=(beat,) + self._state.beats)
        logger.info(f"Added beat {beat.id} to catalog")

    def update(self, beat_id: str, **changes):
        with self._lock:
            state = self._state
            beats = tuple(merge_beat(b, changes) if b.id == beat_id else b for b in state.beats)
            current = state.current_beat
            if current is not None and current.id == beat_id:
                current = merge_beat(current, changes)
            self._set(beats=beats, current_beat=current)

    def remove(self, beat_id: str):
        with self._lock:
            state = self._state
            beats = tuple(b for b in state.beats if b.id != beat_id)
            if state.current_beat is not None and state.current_beat.id == beat_id:
                self._set(beats=beats, current_beat=None, is_player_open=False)
            else:
                self._set(beats=beats)
        logger.info(f"Removed beat {beat_id} from catalog")

    def select(self, beat: Optional[Beat]):
        self._set(current_beat=beat, is_player_open=beat is not None)

    def toggle_player(self, open: Optional[bool] = None):
        with self._lock:
            self._set(is_player_open=(not self._state.is_player_open) if open is None else open)
