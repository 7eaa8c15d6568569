"""
Audio preprocessing: raw microphone floats → 16 kHz int16 for the STT engine.

The pipeline is fixed: total-variation denoise (lambda 0.05), quantize to a
single 16-bit channel, linear resample to 16 kHz. Recognition quality was
tuned against exactly this chain, so the order and parameters stay put.
"""

import logging
import math
from typing import List

import numpy as np

from . import config

log = logging.getLogger(__name__)


def _fill(out: List[float], start: int, stop: int, value: float) -> int:
    # Writes out[start..stop] inclusive, and always at least out[start].
    end = max(start, stop) + 1
    out[start:end] = [value] * (end - start)
    return end


def denoise_tv(samples, lam: float = config.DENOISE_LAMBDA) -> np.ndarray:
    """
    Exact 1-D total-variation denoising.

    Minimizes ``0.5 * ||x - y||² + lam * Σ|x[i+1] - x[i]|`` with Condat's
    direct algorithm (IEEE SPL 2013). Output has the same length as the input.
    """
    values = np.asarray(samples, dtype=np.float64).ravel().tolist()
    n = len(values)
    if n == 0:
        return np.zeros(0, dtype=np.float32)

    out = [0.0] * n
    k = k0 = kplus = kminus = 0
    umin, umax = lam, -lam
    vmin, vmax = values[0] - lam, values[0] + lam
    twolam = 2.0 * lam

    while True:
        while k == n - 1:
            if umin < 0.0:
                k0 = _fill(out, k0, kminus, vmin)
                k = kminus = k0
                vmin = values[k0]
                umin = lam
                umax = vmin + umin - vmax
            elif umax > 0.0:
                k0 = _fill(out, k0, kplus, vmax)
                k = kplus = k0
                vmax = values[k0]
                umax = -lam
                umin = vmax + umax - vmin
            else:
                vmin += umin / (k - k0 + 1)
                _fill(out, k0, k, vmin)
                return np.asarray(out, dtype=np.float32)

        umin += values[k + 1] - vmin
        if umin < -lam:
            k0 = _fill(out, k0, kminus, vmin)
            k = kminus = kplus = k0
            vmin = values[k0]
            vmax = vmin + twolam
            umin, umax = lam, -lam
            continue

        umax += values[k + 1] - vmax
        if umax > lam:
            k0 = _fill(out, k0, kplus, vmax)
            k = kminus = kplus = k0
            vmax = values[k0]
            vmin = vmax - twolam
            umin, umax = lam, -lam
            continue

        k += 1
        if umin >= lam:
            kminus = k
            vmin += (umin - lam) / (kminus - k0 + 1)
            umin = lam
        if umax <= -lam:
            kplus = k
            vmax += (umax + lam) / (kplus - k0 + 1)
            umax = -lam


def to_int16(samples) -> np.ndarray:
    """Quantize [-1, 1] floats to int16, saturating at the rails."""
    scaled = np.asarray(samples, dtype=np.float64) * 32768.0
    return np.clip(scaled, -32768, 32767).astype(np.int16)


def resample_linear(samples, rate_in: int, rate_out: int) -> np.ndarray:
    """
    Linear-interpolation sample-rate conversion.

    Output sample ``n`` reads source position ``n * rate_in / rate_out``;
    positions past the last source sample hold its value. Returns float64;
    callers pick the output dtype.
    """
    src = np.asarray(samples, dtype=np.float64).ravel()
    if src.size == 0:
        return np.zeros(0, dtype=np.float64)
    n_out = int(math.ceil(src.size * rate_out / rate_in))
    positions = np.arange(n_out, dtype=np.float64) * (rate_in / rate_out)
    return np.interp(positions, np.arange(src.size, dtype=np.float64), src)


def preprocess(samples, rate_in: int) -> np.ndarray:
    """Run the fixed denoise → int16 mono → 16 kHz chain; returns int16."""
    denoised  = denoise_tv(samples, config.DENOISE_LAMBDA)
    signal    = to_int16(denoised)
    resampled = resample_linear(signal, rate_in, config.STT_SAMPLE_RATE)
    out = np.clip(np.round(resampled), -32768, 32767).astype(np.int16)
    log.debug(
        "Preprocessed %d samples @ %d Hz → %d samples @ %d Hz",
        len(signal), rate_in, out.size, config.STT_SAMPLE_RATE,
    )
    return out
