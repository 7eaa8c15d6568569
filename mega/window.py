import enum
import logging

import numpy as np

from . import config

log = logging.getLogger(__name__)


class SampleWindow:
    """
    Fixed-capacity FIFO of float32 audio samples.

    Backed by a preallocated ring buffer so pushes never reallocate. Pushing
    past capacity drops the oldest samples; the newest ``capacity`` samples
    are always kept in arrival order.
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._buf   = np.zeros(capacity, dtype=np.float32)
        self._start = 0   # index of the oldest sample
        self._len   = 0

    @property
    def capacity(self) -> int:
        return self._buf.size

    def __len__(self) -> int:
        return self._len

    def push(self, chunk) -> None:
        chunk = np.asarray(chunk, dtype=np.float32).ravel()
        cap = self.capacity
        n = chunk.size
        if n == 0:
            return
        if n >= cap:
            self._buf[:] = chunk[-cap:]
            self._start = 0
            self._len   = cap
            return

        end   = (self._start + self._len) % cap
        first = min(n, cap - end)
        self._buf[end:end + first] = chunk[:first]
        self._buf[:n - first]      = chunk[first:]

        new_len = self._len + n
        if new_len > cap:
            self._start = (self._start + new_len - cap) % cap
            new_len = cap
        self._len = new_len

    def tail(self, count: int) -> np.ndarray:
        """Return a copy of the newest ``min(count, len)`` samples, oldest first."""
        count = max(0, min(count, self._len))
        first = self._start + self._len - count
        idx = np.arange(first, first + count) % self.capacity
        return self._buf[idx]

    def snapshot(self) -> np.ndarray:
        return self.tail(self._len)

    def loudness(self, window_size: int) -> float:
        """Mean absolute amplitude of the newest ``window_size`` samples."""
        recent = self.tail(window_size)
        if recent.size == 0:
            return 0.0
        return float(np.mean(np.abs(recent), dtype=np.float64))


class SpeechEvent(enum.Enum):
    NONE  = "none"
    START = "start"
    END   = "end"


class VoiceActivityDetector:
    """Edge-triggered loudness latch: one START, then one END, then repeat."""

    def __init__(self, threshold: float = config.ACTIVATION_THRESHOLD):
        self.threshold = threshold
        self.crossed_loudness = False

    def update(self, loudness: float) -> SpeechEvent:
        if not self.crossed_loudness and loudness >= self.threshold:
            self.crossed_loudness = True
            log.debug("VAD: speech started (loudness=%.4f)", loudness)
            return SpeechEvent.START
        if self.crossed_loudness and loudness < self.threshold:
            self.crossed_loudness = False
            log.debug("VAD: speech ended (loudness=%.4f)", loudness)
            return SpeechEvent.END
        return SpeechEvent.NONE
