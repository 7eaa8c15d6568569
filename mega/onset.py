import numpy as np

from . import config
from .errors import OnsetNotFoundError


def locate_onset(samples, window_size: int, threshold: float = config.ACTIVATION_THRESHOLD) -> int:
    """
    Find where speech begins in a buffer already known to contain some.

    Slides a ``window_size`` window over the buffer keeping a running sum of
    absolute amplitudes (samples before index 0 count as silence) and returns
    the first index whose running mean reaches ``threshold``, moved back by
    half a window so the start of the word is kept.
    """
    if window_size <= 0:
        raise ValueError(f"window_size must be positive, got {window_size}")

    magnitudes = np.abs(np.asarray(samples, dtype=np.float64))
    running = np.cumsum(magnitudes)
    if running.size > window_size:
        running[window_size:] -= running[:-window_size].copy()
    means = running / window_size

    crossings = np.flatnonzero(means >= threshold)
    if crossings.size == 0:
        raise OnsetNotFoundError(
            f"no sample window of {window_size} reaches loudness {threshold} "
            f"in {magnitudes.size} samples"
        )
    return max(0, int(crossings[0]) - window_size // 2)
