import logging
import queue
from typing import Optional

import numpy as np
import pyaudio

from . import config

log = logging.getLogger(__name__)


class MicrophoneCapture:
    """
    Continuously reads from the microphone on PortAudio's callback thread.

    Every callback's frames are averaged down to one channel and put on
    ``self.queue`` as a float32 array. The queue is unbounded: the controller
    drains it whenever it gets around to it, and nothing here ever waits on
    the controller.
    """

    def __init__(self):
        self.queue: queue.Queue = queue.Queue()
        self._pa = pyaudio.PyAudio()
        self._stream: Optional[pyaudio.Stream] = None

        if config.MIC_DEVICE_INDEX >= 0:
            info = self._pa.get_device_info_by_index(config.MIC_DEVICE_INDEX)
        else:
            info = self._pa.get_default_input_device_info()
        self._device_index = int(info["index"])
        self._channels = max(1, int(info["maxInputChannels"]))
        self.sample_rate = config.MIC_SAMPLE_RATE or int(info["defaultSampleRate"])
        log.info(
            "Audio in: %s (%d ch @ %d Hz)", info["name"], self._channels, self.sample_rate
        )

    def _callback(self, in_data, frame_count, time_info, status):
        if status:
            log.debug("Mic stream status flags: %d", status)
        frames = np.frombuffer(in_data, dtype=np.float32)
        mono = frames.reshape(-1, self._channels).mean(axis=1)
        self.queue.put(mono.astype(np.float32))
        return None, pyaudio.paContinue

    # ── lifecycle ────────────────────────────────────────────────────────────

    def start(self):
        self._stream = self._pa.open(
            format=pyaudio.paFloat32,
            channels=self._channels,
            rate=self.sample_rate,
            input=True,
            input_device_index=self._device_index,
            frames_per_buffer=max(1, self.sample_rate * config.MIC_CHUNK_MS // 1000),
            stream_callback=self._callback,
        )
        self._stream.start_stream()
        log.info("Microphone capture started.")

    def is_alive(self) -> bool:
        return self._stream is not None and self._stream.is_active()

    def stop(self):
        if self._stream:
            self._stream.stop_stream()
            self._stream.close()
            self._stream = None
        self._pa.terminate()
        log.info("Microphone capture stopped.")
