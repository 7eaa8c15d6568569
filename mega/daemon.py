import logging
import signal
import threading
from pathlib import Path

import numpy as np

from . import config
from .audio import save_wav_sequential, wav_to_samples_at
from .capture import MicrophoneCapture
from .controller import VoiceSessionController
from .playback import SpeakerOutput
from .preprocess import resample_linear
from .stt import STTClient
from .tts import SpeechSynthesizer

log = logging.getLogger(__name__)


class MegaAssistant:
    """
    Wires the devices, speech services and the controller together:
      Mic → Controller (VAD → STT → command) → TTS → Speaker
    """

    def __init__(self):
        self._speaker = SpeakerOutput()
        self._mic     = MicrophoneCapture()
        self._stt     = STTClient()
        self._voice   = SpeechSynthesizer(
            self._speaker.queue, self._speaker.sample_rate, speaker_alive=self._speaker.is_alive
        )
        self._stop    = threading.Event()

        recorder = None
        if config.SAVE_UTTERANCES_DIR:
            log.info("Saving utterances to %s", config.SAVE_UTTERANCES_DIR)
            recorder = self._save_utterance

        echo = None
        if config.ECHO_UTTERANCES:
            log.info("Echoing utterances to the speaker.")
            echo = self._echo_utterance

        self._controller = VoiceSessionController(
            mic_queue=self._mic.queue,
            mic_sample_rate=self._mic.sample_rate,
            stt=self._stt,
            speak=self._voice.speak,
            commands_dir=config.COMMANDS_DIR,
            mic_alive=self._mic.is_alive,
            recorder=recorder,
            echo=echo,
        )

    @staticmethod
    def _save_utterance(pcm):
        save_wav_sequential(config.SAVE_UTTERANCES_DIR, pcm, config.STT_SAMPLE_RATE)

    def _echo_utterance(self, samples):
        resampled = resample_linear(samples, self._mic.sample_rate, self._speaker.sample_rate)
        self._speaker.queue.put(resampled.astype(np.float32))

    def _selftest(self):
        """Transcribe a known recording once so a broken STT setup shows up early."""
        path = Path(config.STT_SELFTEST_WAV)
        pcm = wav_to_samples_at(path.read_bytes(), config.STT_SAMPLE_RATE)
        hypotheses = self._stt.speech_to_text(pcm, 1)
        log.info("STT self-test (%s): %r", path.name, hypotheses[0] if hypotheses else "")

    # ── lifecycle ─────────────────────────────────────────────────────────────

    def run(self):
        log.info("Mega starting …")
        for sig in (signal.SIGINT, signal.SIGTERM):
            signal.signal(sig, self._signal_handler)

        try:
            if config.STT_SELFTEST_WAV:
                self._selftest()

            self._speaker.start()
            self._voice.start()
            self._mic.start()

            log.info("Listening for '%s'. Press Ctrl-C to stop.", config.WAKE_WORD)
            self._controller.run(self._stop)
        finally:
            self._shutdown()

    def _signal_handler(self, signum, frame):
        log.info("Received signal %d, shutting down …", signum)
        self._stop.set()

    def _shutdown(self):
        log.info("Shutting down …")
        self._mic.stop()
        self._voice.stop()
        self._speaker.terminate()
        self._stt.close()
        log.info("Mega stopped.")
