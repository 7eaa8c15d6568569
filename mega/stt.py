import base64
import logging
from typing import List, Optional

import requests

from . import config
from .audio import samples_to_wav
from .errors import SpeechEngineError

log = logging.getLogger(__name__)


class STTClient:
    """Send 16 kHz int16 audio to the STT service and return N-best hypotheses."""

    def __init__(self, session: Optional[requests.Session] = None):
        self._session = session or requests.Session()

    def speech_to_text(self, samples, n_best: int) -> List[str]:
        wav_bytes = samples_to_wav(samples, config.STT_SAMPLE_RATE)
        b64 = base64.b64encode(wav_bytes).decode()
        try:
            resp = self._session.post(
                config.STT_ENDPOINT,
                json={"wav_base64": b64, "n_best": n_best},
                timeout=config.STT_TIMEOUT,
            )
            resp.raise_for_status()
            data = resp.json()
        except requests.RequestException as exc:
            raise SpeechEngineError(f"STT request failed: {exc}") from exc
        except ValueError as exc:
            raise SpeechEngineError(f"STT returned invalid JSON: {exc}") from exc

        hypotheses = self._parse(data)
        log.debug("STT: %d hypotheses, best %r", len(hypotheses), hypotheses[:1])
        return hypotheses[:n_best]

    @staticmethod
    def _parse(data) -> List[str]:
        if not isinstance(data, dict):
            raise SpeechEngineError(f"STT unexpected response: {data!r}")
        if "hypotheses" in data:
            hypotheses = data["hypotheses"]
        else:
            # 1-best services only return the top transcript
            text = data.get("text")
            hypotheses = [text] if text else []
        if not isinstance(hypotheses, list) or not all(isinstance(h, str) for h in hypotheses):
            raise SpeechEngineError(f"STT unexpected hypotheses: {hypotheses!r}")
        return [h.strip() for h in hypotheses]

    def close(self):
        self._session.close()
