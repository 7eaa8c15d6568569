import logging
import queue
import re
import threading
import wave
from typing import Callable, Optional

import numpy as np
import requests

from . import config
from .audio import wav_to_samples
from .errors import ChannelClosedError
from .preprocess import resample_linear

log = logging.getLogger(__name__)


class TTSClient:
    """Send text to the TTS service and return WAV bytes."""

    def __init__(self, session: Optional[requests.Session] = None):
        self._session = session or requests.Session()

    def synthesize(self, text: str, timeout: Optional[int] = None) -> Optional[bytes]:
        payload = {
            "target_text": text,
            "voice_type": config.TTS_VOICE,
            "stream": False,
        }
        try:
            resp = self._session.post(
                config.TTS_ENDPOINT,
                json=payload,
                timeout=timeout if timeout is not None else config.TTS_TIMEOUT,
            )
            resp.raise_for_status()
            log.debug("TTS received %d bytes", len(resp.content))
            return resp.content
        except requests.RequestException as exc:
            log.error("TTS request failed: %s", exc)
            return None

    def close(self):
        self._session.close()


class SpeechSynthesizer:
    """
    Owns the TTS client on a single dedicated thread.

    ``speak()`` only enqueues: messages are synthesized in FIFO order and the
    resulting audio is pushed onto the speaker queue as float32 at the
    speaker's rate. There is no delivery acknowledgement; a message that fails
    to synthesize is logged and dropped.
    """

    def __init__(
        self,
        speaker_queue: queue.Queue,
        speaker_rate: int,
        client_factory: Callable[[], TTSClient] = TTSClient,
        speaker_alive: Optional[Callable[[], bool]] = None,
    ):
        self._speaker_queue  = speaker_queue
        self._speaker_rate   = speaker_rate
        self._client_factory = client_factory
        self._speaker_alive  = speaker_alive
        self._messages: queue.Queue = queue.Queue()
        self._thread = threading.Thread(target=self._run, name="tts", daemon=True)

    def start(self):
        self._thread.start()
        log.info("Speech synthesizer started (speaker rate %d Hz)", self._speaker_rate)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def speak(self, message: str) -> None:
        if not self._thread.is_alive():
            raise ChannelClosedError("speech synthesizer thread is not running")
        if self._speaker_alive is not None and not self._speaker_alive():
            raise ChannelClosedError("speaker output is no longer running")
        log.info("Speaking: %s", message)
        self._messages.put(message)

    def stop(self, timeout: float = 3.0):
        if self._thread.is_alive():
            self._messages.put(None)
            self._thread.join(timeout=timeout)
        log.info("Speech synthesizer stopped.")

    @staticmethod
    def _normalize(text: str) -> str:
        # Flatten newlines and runs of whitespace; engines read them oddly.
        return re.sub(r"\s+", " ", text).strip()

    def _run(self):
        client = self._client_factory()
        try:
            while True:
                message = self._messages.get()
                if message is None:
                    break
                text = self._normalize(str(message))
                if not text:
                    continue
                wav_bytes = client.synthesize(text)
                if not wav_bytes:
                    continue
                try:
                    pcm, rate = wav_to_samples(wav_bytes)
                except (wave.Error, EOFError) as exc:
                    log.error("TTS returned unreadable audio: %s", exc)
                    continue
                samples = resample_linear(pcm / 32768.0, rate, self._speaker_rate)
                self._speaker_queue.put(samples.astype(np.float32))
        finally:
            client.close()
