"""Tests for voice feature extraction."""

import numpy as np
import pytest

from conftest import sine
from voiceid.enrollment.features import (
    VoiceFeatures,
    calculate_average_energy,
    calculate_pitch_variance,
    calculate_spectral_centroid,
    calculate_zero_crossing_rate,
    estimate_pitch,
    extract_features,
)


def test_silent_buffer_features_are_zero():
    """All-zero input has no energy, crossings, pitch or spectrum."""
    features = extract_features(np.zeros(44100), 44100)
    assert features.avg_energy == 0
    assert features.zero_crossing_rate == 0
    assert features.avg_pitch == 0
    assert features.spectral_centroid == 0
    assert features.pitch_variance == 0
    assert features.sample_duration_sec == pytest.approx(1.0)


def test_empty_buffer_features_are_zero():
    """Empty input yields a zeroed vector, never NaN."""
    features = extract_features([], 16000)
    values = features.to_dict().values()
    assert all(v == 0 for v in values)


def test_non_finite_samples_do_not_produce_nan():
    """NaN and inf samples are treated as silence."""
    data = sine(150, 8000, 8000)
    data[10] = np.nan
    data[20] = np.inf
    features = extract_features(data, 8000)
    assert all(np.isfinite(v) for v in features.to_dict().values())


@pytest.mark.parametrize(
    "freq,sample_rate",
    [(100, 8000), (200, 8000), (150, 44100), (220, 44100), (60, 8000), (390, 16000)],
)
def test_estimate_pitch_sine(freq, sample_rate):
    """Pitch of a pure tone is within one bin width (sample_rate / max_period)."""
    bin_width = sample_rate / (sample_rate // 50)
    pitch = estimate_pitch(sine(freq, sample_rate // 2, sample_rate), sample_rate)
    assert abs(pitch - freq) <= bin_width


def test_estimate_pitch_exact_period():
    """A tone whose period is a whole number of samples is recovered exactly."""
    assert estimate_pitch(sine(150, 44100, 44100), 44100) == pytest.approx(150.0)


def test_estimate_pitch_short_buffer():
    """Buffer shorter than the smallest candidate period has no pitch."""
    assert estimate_pitch(np.ones(10), 8000) == 0


def test_pitch_variance_steady_tone():
    """A steady tone has the same pitch in every window."""
    assert calculate_pitch_variance(sine(150, 3 * 44100), 44100) == pytest.approx(
        0.0, abs=1e-9
    )


def test_pitch_variance_two_tones():
    """Five windows at 100 Hz and four at 200 Hz (the last full window is not used)."""
    data = np.concatenate([sine(100, 4000, 8000), sine(200, 4000, 8000, offset=4000)])
    assert calculate_pitch_variance(data, 8000) == pytest.approx(
        100 * np.sqrt(20) / 9, rel=1e-6
    )


def test_average_energy():
    """RMS of a constant and of a sine."""
    assert calculate_average_energy(np.full(100, 0.5)) == pytest.approx(0.5)
    assert calculate_average_energy(sine(150, 44100, amplitude=0.4)) == pytest.approx(
        0.4 / np.sqrt(2), rel=1e-3
    )


def test_zero_crossing_rate():
    """Sign changes per sample; zero counts as non-negative."""
    assert calculate_zero_crossing_rate([1.0, -1.0, 1.0, -1.0]) == pytest.approx(0.75)
    assert calculate_zero_crossing_rate([0.0, 1.0, -1.0]) == pytest.approx(1 / 3)
    assert calculate_zero_crossing_rate([0.0, 0.0, 0.0]) == 0


def test_spectral_centroid_impulse():
    """An impulse has a flat spectrum: centroid is the mean bin frequency."""
    data = np.zeros(2048)
    data[0] = 1.0
    expected = 8000 * 511.5 / 2048
    assert calculate_spectral_centroid(data, 8000) == pytest.approx(expected)


def test_spectral_centroid_uses_first_window_only():
    """Samples after the first 2048 do not contribute."""
    head = np.zeros(2048)
    head[0] = 1.0
    tail = sine(3000, 4096, 8000)
    assert calculate_spectral_centroid(
        np.concatenate([head, tail]), 8000
    ) == pytest.approx(calculate_spectral_centroid(head, 8000))


def test_spectral_centroid_bin_aligned_tones():
    """A tone on an exact DFT bin has its own frequency as centroid."""
    low = calculate_spectral_centroid(sine(250, 2048, 16000), 16000)
    high = calculate_spectral_centroid(sine(2000, 2048, 16000), 16000)
    assert low == pytest.approx(250.0, rel=1e-6)
    assert high == pytest.approx(2000.0, rel=1e-6)


def test_voice_features_dict_round_trip():
    """to_dict/from_dict keep every field."""
    features = extract_features(sine(150, 8820), 44100)
    assert VoiceFeatures.from_dict(features.to_dict()) == features
