"""
Voice features from mono float PCM: pitch, pitch variance, energy, zero-crossing rate,
spectral centroid and duration. Pure functions; no I/O and no state.
Empty, silent or malformed input yields zeros rather than NaN.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Any

import numpy as np

from .constants import (
    PITCH_MAX_HZ,
    PITCH_MIN_HZ,
    PITCH_WINDOW_SEC,
    SPECTRAL_WINDOW,
)


@dataclass(frozen=True)
class VoiceFeatures:
    """Numeric summary of a voice sample used for matching."""

    avg_pitch: float
    pitch_variance: float
    avg_energy: float
    zero_crossing_rate: float
    spectral_centroid: float
    sample_duration_sec: float

    def to_dict(self) -> dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VoiceFeatures:
        """Build from a to_dict() mapping. Raises KeyError/TypeError/ValueError on bad data."""
        return cls(
            avg_pitch=float(data["avg_pitch"]),
            pitch_variance=float(data["pitch_variance"]),
            avg_energy=float(data["avg_energy"]),
            zero_crossing_rate=float(data["zero_crossing_rate"]),
            spectral_centroid=float(data["spectral_centroid"]),
            sample_duration_sec=float(data["sample_duration_sec"]),
        )


def as_samples(data: Any) -> np.ndarray:
    """Flatten to a float64 array; non-finite values become 0."""
    arr = np.asarray(data, dtype=np.float64).reshape(-1)
    if arr.size and not np.all(np.isfinite(arr)):
        arr = np.nan_to_num(arr, nan=0.0, posinf=0.0, neginf=0.0)
    return arr


def estimate_pitch(samples: Any, sample_rate: int) -> float:
    """
    Autocorrelation pitch estimate in the 50-400 Hz voice band.

    For every candidate period p (sample_rate/400 .. sample_rate/50) the unnormalized
    correlation sum(x[i] * x[i + p]) is computed over the whole buffer; the period with the
    largest positive correlation wins. Returns 0.0 when no period correlates positively.
    """
    x = as_samples(samples)
    if sample_rate <= 0:
        return 0.0
    n = x.size
    min_period = int(sample_rate // PITCH_MAX_HZ)
    max_period = int(sample_rate // PITCH_MIN_HZ)
    best_corr = 0.0
    best_period = 0
    for period in range(max(1, min_period), min(max_period, n - 1) + 1):
        corr = float(np.dot(x[: n - period], x[period:]))
        if corr > best_corr:
            best_corr = corr
            best_period = period
    return sample_rate / best_period if best_period > 0 else 0.0


def calculate_pitch_variance(samples: Any, sample_rate: int) -> float:
    """Population std-dev of pitch over contiguous 100 ms windows (voiced windows only)."""
    x = as_samples(samples)
    window = int(sample_rate * PITCH_WINDOW_SEC)
    if window <= 0:
        return 0.0
    pitches = []
    start = 0
    while start < x.size - window:
        pitch = estimate_pitch(x[start : start + window], sample_rate)
        if pitch > 0:
            pitches.append(pitch)
        start += window
    if not pitches:
        return 0.0
    return float(np.std(pitches))


def calculate_average_energy(samples: Any) -> float:
    """Root-mean-square amplitude."""
    x = as_samples(samples)
    if x.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(x * x)))


def calculate_zero_crossing_rate(samples: Any) -> float:
    """Sign changes between adjacent samples per sample; 0 counts as non-negative."""
    x = as_samples(samples)
    if x.size == 0:
        return 0.0
    non_negative = x >= 0
    crossings = int(np.count_nonzero(non_negative[1:] != non_negative[:-1]))
    return crossings / x.size


@lru_cache(maxsize=1)
def _dft_basis(size: int) -> tuple[np.ndarray, np.ndarray]:
    bins = np.arange(size // 2).reshape(-1, 1)
    n = np.arange(size).reshape(1, -1)
    angles = 2.0 * np.pi * bins * n / size
    return np.cos(angles), np.sin(angles)


def calculate_spectral_centroid(samples: Any, sample_rate: int) -> float:
    """
    Magnitude-weighted mean frequency from a direct DFT of the first 2048 samples.
    Shorter buffers contribute only the samples they have (no padding). Returns 0.0 for
    a flat spectrum of zeros.
    """
    x = as_samples(samples)[:SPECTRAL_WINDOW]
    if x.size == 0 or sample_rate <= 0:
        return 0.0
    cos_basis, sin_basis = _dft_basis(SPECTRAL_WINDOW)
    m = x.size
    real = cos_basis[:, :m] @ x
    imag = sin_basis[:, :m] @ x
    magnitude = np.sqrt(real * real + imag * imag)
    total = float(magnitude.sum())
    if total <= 0:
        return 0.0
    freqs = np.arange(SPECTRAL_WINDOW // 2) * sample_rate / SPECTRAL_WINDOW
    return float(np.dot(freqs, magnitude) / total)


def extract_features(samples: Any, sample_rate: int) -> VoiceFeatures:
    """Compute the full feature vector for one buffer."""
    x = as_samples(samples)
    duration = x.size / sample_rate if sample_rate > 0 else 0.0
    return VoiceFeatures(
        avg_pitch=estimate_pitch(x, sample_rate),
        pitch_variance=calculate_pitch_variance(x, sample_rate),
        avg_energy=calculate_average_energy(x),
        zero_crossing_rate=calculate_zero_crossing_rate(x),
        spectral_centroid=calculate_spectral_centroid(x, sample_rate),
        sample_duration_sec=duration,
    )
