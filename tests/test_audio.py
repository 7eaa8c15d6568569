"""Tests for the WAV helpers."""

import numpy as np

from mega.audio import save_wav_sequential, samples_to_wav, wav_to_samples, wav_to_samples_at


def test_wav_round_trip_keeps_rate_and_samples():
    samples = np.array([0, 1, -1, 32767, -32768], dtype=np.int16)
    pcm, rate = wav_to_samples(samples_to_wav(samples, 22050))
    assert rate == 22050
    np.testing.assert_array_equal(pcm, samples)


def test_save_never_overwrites(tmp_path):
    out = tmp_path / "outputs"
    first = save_wav_sequential(out, np.zeros(10, dtype=np.int16), 16000)
    second = save_wav_sequential(out, np.ones(10, dtype=np.int16), 16000)
    assert first.name == "0.wav"
    assert second.name == "1.wav"
    pcm, _ = wav_to_samples(first.read_bytes())
    assert not pcm.any()


def test_wav_resampled_to_requested_rate():
    wav = samples_to_wav(np.full(800, 1000, dtype=np.int16), 8000)
    pcm = wav_to_samples_at(wav, 16000)
    assert pcm.dtype == np.int16
    assert pcm.size == 1600
    assert (pcm == 1000).all()


def test_wav_at_native_rate_left_alone():
    samples = np.arange(-5, 5, dtype=np.int16)
    pcm = wav_to_samples_at(samples_to_wav(samples, 16000), 16000)
    np.testing.assert_array_equal(pcm, samples)
