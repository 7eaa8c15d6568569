import io
import logging
import wave
from pathlib import Path
from typing import Tuple

import numpy as np

from .preprocess import resample_linear

log = logging.getLogger(__name__)


def samples_to_wav(samples, sample_rate: int) -> bytes:
    """Wrap mono int16 samples in a WAV container."""
    pcm = np.asarray(samples, dtype=np.int16)
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(1)
        wf.setsampwidth(2)   # 16-bit
        wf.setframerate(sample_rate)
        wf.writeframes(pcm.tobytes())
    return buf.getvalue()


def wav_to_samples(wav_bytes: bytes) -> Tuple[np.ndarray, int]:
    """Decode a 16-bit PCM WAV into mono int16 samples and its sample rate."""
    with wave.open(io.BytesIO(wav_bytes), "rb") as wf:
        if wf.getsampwidth() != 2:
            raise wave.Error(f"expected 16-bit PCM, got {wf.getsampwidth() * 8}-bit")
        channels = wf.getnchannels()
        rate = wf.getframerate()
        raw = wf.readframes(wf.getnframes())

    pcm = np.frombuffer(raw, dtype=np.int16)
    # Mix to mono if stereo
    if channels > 1:
        pcm = pcm.reshape(-1, channels).mean(axis=1).astype(np.int16)
    return pcm, rate


def wav_to_samples_at(wav_bytes: bytes, sample_rate: int) -> np.ndarray:
    """Decode a WAV like ``wav_to_samples`` and resample it to ``sample_rate``."""
    pcm, rate = wav_to_samples(wav_bytes)
    if rate == sample_rate:
        return pcm
    log.debug("Resampling WAV %d Hz → %d Hz", rate, sample_rate)
    resampled = resample_linear(pcm, rate, sample_rate)
    return np.clip(np.round(resampled), -32768, 32767).astype(np.int16)


def save_wav_sequential(directory, samples, sample_rate: int) -> Path:
    """Write samples to the first unused ``<n>.wav`` in ``directory``."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    wav_bytes = samples_to_wav(samples, sample_rate)
    idx = 0
    while True:
        path = directory / f"{idx}.wav"
        try:
            # "xb" so an existing recording is never overwritten
            with open(path, "xb") as f:
                f.write(wav_bytes)
            log.debug("Saved utterance to %s", path)
            return path
        except FileExistsError:
            idx += 1
