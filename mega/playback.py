import logging
import queue
from collections import deque
from typing import Deque, Optional

import numpy as np
import pyaudio

from . import config

log = logging.getLogger(__name__)


class SpeakerOutput:
    """
    Plays float32 mono arrays put on ``self.queue``.

    PortAudio pulls audio from the callback; whatever has been queued is
    played in order, each sample duplicated across the device's channels,
    and silence fills the gaps. Producers never wait.
    """

    def __init__(self):
        self.queue: queue.Queue = queue.Queue()
        self._pending: Deque[np.ndarray] = deque()
        self._pa = pyaudio.PyAudio()
        self._stream: Optional[pyaudio.Stream] = None

        if config.SPK_DEVICE_INDEX >= 0:
            info = self._pa.get_device_info_by_index(config.SPK_DEVICE_INDEX)
        else:
            info = self._pa.get_default_output_device_info()
        self._device_index = int(info["index"])
        self._channels = max(1, int(info["maxOutputChannels"]))
        self.sample_rate = int(info["defaultSampleRate"])
        log.info(
            "Audio out: %s (%d ch @ %d Hz)", info["name"], self._channels, self.sample_rate
        )

    def _next_samples(self, frame_count: int) -> np.ndarray:
        while True:
            try:
                self._pending.append(np.asarray(self.queue.get_nowait(), dtype=np.float32))
            except queue.Empty:
                break

        out = np.zeros(frame_count, dtype=np.float32)
        filled = 0
        while filled < frame_count and self._pending:
            head = self._pending[0]
            take = min(frame_count - filled, head.size)
            out[filled:filled + take] = head[:take]
            filled += take
            if take == head.size:
                self._pending.popleft()
            else:
                self._pending[0] = head[take:]
        return out

    def _callback(self, in_data, frame_count, time_info, status):
        if status:
            log.debug("Speaker stream status flags: %d", status)
        mono = self._next_samples(frame_count)
        frames = np.repeat(mono, self._channels)
        return frames.tobytes(), pyaudio.paContinue

    # ── lifecycle ────────────────────────────────────────────────────────────

    def start(self):
        self._stream = self._pa.open(
            format=pyaudio.paFloat32,
            channels=self._channels,
            rate=self.sample_rate,
            output=True,
            output_device_index=self._device_index,
            stream_callback=self._callback,
        )
        self._stream.start_stream()
        log.info("Speaker output started.")

    def is_alive(self) -> bool:
        return self._stream is not None and self._stream.is_active()

    def terminate(self):
        if self._stream is not None:
            try:
                self._stream.stop_stream()
                self._stream.close()
            finally:
                self._stream = None
        self._pa.terminate()
        log.info("Speaker output stopped.")
