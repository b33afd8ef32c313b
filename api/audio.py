import logging
import threading
import time

import librosa  # ty: ignore[unresolved-import]
import numpy as np

logger = logging.getLogger(__name__)


def probe_duration(file_path: str) -> float:
    """Decode an audio file's metadata and return its duration in seconds."""
    duration = float(librosa.get_duration(path=file_path))
    logger.info(f"Decoded duration of {file_path}: {duration:.2f}s")
    return duration


def estimate_tempo(file_path: str) -> int:
    """Estimate BPM from the percussive part of the first two minutes."""
    logger.info(f"Estimating tempo of {file_path}")

    y, sr = librosa.load(file_path, sr=None, mono=True, duration=120.0)

    # Harmonic/percussive separation for cleaner beat tracking
    _, y_percussive = librosa.effects.hpss(y)

    tempo, _ = librosa.beat.beat_track(y=y_percussive, sr=sr)
    tempo_bpm = float(np.atleast_1d(tempo)[0])
    logger.info(f"Tempo estimate: {tempo_bpm:.1f} BPM")
    return max(1, int(round(tempo_bpm)))


class ClockedAudioResource:
    """Server-side playback cursor over one audio asset.

    Duration comes from the decoded file when it is stored locally and from
    the catalog record otherwise. While playing, the position advances with
    the clock; nothing is streamed from here.
    """

    def __init__(self, file_path: str | None, fallback_duration: float = 0.0, clock=time.monotonic):
        self.file_path = file_path
        self.fallback_duration = fallback_duration
        self._clock = clock
        self._lock = threading.Lock()
        self._duration = 0.0
        self._offset = 0.0
        self._started_at: float | None = None
        self.volume = 1.0
        self.released = False

    def load(self) -> float:
        if self.file_path:
            self._duration = probe_duration(self.file_path)
        else:
            self._duration = float(self.fallback_duration)
        return self._duration

    def _position_locked(self) -> float:
        pos = self._offset
        if self._started_at is not None:
            pos += self._clock() - self._started_at
        return min(max(pos, 0.0), self._duration)

    def position(self) -> float:
        with self._lock:
            return self._position_locked()

    def play(self):
        with self._lock:
            if self._started_at is None:
                self._started_at = self._clock()

    def pause(self):
        with self._lock:
            self._offset = self._position_locked()
            self._started_at = None

    def seek(self, seconds: float):
        with self._lock:
            self._offset = min(max(seconds, 0.0), self._duration)
            if self._started_at is not None:
                self._started_at = self._clock()

    def set_volume(self, volume: float):
        self.volume = volume

    def ended(self) -> bool:
        with self._lock:
            return self._started_at is not None and self._position_locked() >= self._duration

    def release(self):
        with self._lock:
            self._started_at = None
            self._offset = 0.0
            self.released = True
