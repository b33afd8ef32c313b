"""Single-track playback bound to the catalog store's selection."""

import logging
import threading
from typing import Callable, Optional, Protocol

from models import Beat, PlaybackState
from store import CatalogState, CatalogStore

logger = logging.getLogger(__name__)

SKIP_SECONDS = 10.0
DEFAULT_VOLUME = 0.7


class AudioResource(Protocol):
    def load(self) -> float: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def seek(self, seconds: float) -> None: ...

    def position(self) -> float: ...

    def set_volume(self, volume: float) -> None: ...

    def ended(self) -> bool: ...

    def release(self) -> None: ...


ResourceFactory = Callable[[Beat], AudioResource]


def _clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)


class PlaybackController:
    """Owns at most one AudioResource, rebinding it whenever the selection changes.

    The old resource is always released before the new one is created.
    Volume carries over between beats; position does not.
    """

    def __init__(self, store: CatalogStore, resource_factory: ResourceFactory, volume: float = DEFAULT_VOLUME):
        self._store = store
        self._factory = resource_factory
        self._lock = threading.RLock()
        self._resource: Optional[AudioResource] = None
        self._beat_id: Optional[str] = None
        self._is_playing = False
        self._is_loading = False
        self._current_time = 0.0
        self._duration = 0.0
        self._volume = _clamp(volume, 0.0, 1.0)
        self._error: Optional[str] = None
        self._closed = False
        self._unsubscribe = store.subscribe(self._on_store_change)
        self._on_store_change(store.state)

    @property
    def resource(self) -> Optional[AudioResource]:
        return self._resource

    @property
    def is_idle(self) -> bool:
        return self._resource is None

    def _on_store_change(self, state: CatalogState):
        with self._lock:
            if self._closed:
                return
            beat = state.current_beat
            beat_id = beat.id if beat is not None else None
            if beat_id == self._beat_id:
                return
            self._release_locked()
            if beat is not None:
                self._bind_locked(beat)

    def _release_locked(self):
        if self._resource is not None:
            self._resource.pause()
            self._resource.release()
            logger.info(f"Released audio for beat {self._beat_id}")
        self._resource = None
        self._beat_id = None
        self._is_playing = False
        self._is_loading = False
        self._current_time = 0.0
        self._duration = 0.0
        self._error = None

    def _bind_locked(self, beat: Beat):
        self._beat_id = beat.id
        self._is_loading = True
        resource = self._factory(beat)
        self._resource = resource
        try:
            self._duration = float(resource.load())
        except Exception as e:
            logger.warning(f"Could not load audio for beat {beat.id}: {e}")
            resource.release()
            self._resource = None
            self._beat_id = None
            self._is_loading = False
            self._error = f"Could not load audio: {e}"
            return
        resource.set_volume(self._volume)
        self._is_loading = False
        logger.info(f"Bound audio for beat {beat.id} ({self._duration:.1f}s)")

    def _check_ended_locked(self):
        if self._resource is None:
            return
        if self._is_playing and self._resource.ended():
            self._resource.pause()
            self._resource.seek(0.0)
            self._is_playing = False
            self._current_time = 0.0
            logger.info(f"Beat {self._beat_id} finished")
        else:
            self._current_time = self._resource.position()

    def toggle_play(self):
        with self._lock:
            if self._resource is None:
                return
            self._check_ended_locked()
            if self._is_playing:
                self._resource.pause()
            else:
                self._resource.play()
            self._is_playing = not self._is_playing

    def seek(self, seconds: float):
        with self._lock:
            if self._resource is None:
                return
            self._check_ended_locked()
            target = _clamp(seconds, 0.0, self._duration)
            self._resource.seek(target)
            self._current_time = target

    def skip_forward(self):
        with self._lock:
            if self._resource is not None:
                self._check_ended_locked()
                self.seek(self._current_time + SKIP_SECONDS)

    def skip_backward(self):
        with self._lock:
            if self._resource is not None:
                self._check_ended_locked()
                self.seek(self._current_time - SKIP_SECONDS)

    def set_volume(self, volume: float):
        with self._lock:
            self._volume = _clamp(volume, 0.0, 1.0)
            if self._resource is not None:
                self._resource.set_volume(self._volume)

    def snapshot(self) -> PlaybackState:
        with self._lock:
            self._check_ended_locked()
            return PlaybackState(
                beat_id=self._beat_id if self._resource is not None else None,
                is_playing=self._is_playing,
                is_loading=self._is_loading,
                current_time=self._current_time,
                duration=self._duration,
                volume=self._volume,
                error=self._error,
            )

    def close(self):
        self._unsubscribe()
        with self._lock:
            self._release_locked()
            self._closed = True
