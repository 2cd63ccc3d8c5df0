"""
Distance between two voice feature vectors. Lower = more similar; 0 for identical features.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .constants import (
    EPSILON_HZ,
    EPSILON_UNITLESS,
    MATCH_THRESHOLD_DEFAULT,
    WEIGHT_ENERGY,
    WEIGHT_PITCH,
    WEIGHT_PITCH_VARIANCE,
    WEIGHT_SPECTRAL_CENTROID,
    WEIGHT_ZERO_CROSSING_RATE,
)
from .features import VoiceFeatures


@dataclass(frozen=True)
class FeatureWeights:
    """Per-feature weights; pitch dominates speaker identity."""

    pitch: float = WEIGHT_PITCH
    pitch_variance: float = WEIGHT_PITCH_VARIANCE
    energy: float = WEIGHT_ENERGY
    zero_crossing_rate: float = WEIGHT_ZERO_CROSSING_RATE
    spectral_centroid: float = WEIGHT_SPECTRAL_CENTROID

    @classmethod
    def from_config(cls, cfg: dict[str, Any] | None) -> FeatureWeights:
        """Build from a config dict; missing or invalid entries keep the default, negatives clamp to 0."""
        defaults = cls()
        if not cfg:
            return defaults
        values: dict[str, float] = {}
        for key in (
            "pitch",
            "pitch_variance",
            "energy",
            "zero_crossing_rate",
            "spectral_centroid",
        ):
            try:
                values[key] = max(0.0, float(cfg.get(key, getattr(defaults, key))))
            except (TypeError, ValueError):
                values[key] = getattr(defaults, key)
        return cls(**values)


DEFAULT_WEIGHTS = FeatureWeights()


def _relative_difference(a: float, b: float, epsilon: float) -> float:
    return abs(a - b) / max(a, b, epsilon)


def calculate_similarity_score(
    a: VoiceFeatures,
    b: VoiceFeatures,
    weights: FeatureWeights = DEFAULT_WEIGHTS,
) -> float:
    """Weighted sum of relative differences over the five non-duration features."""
    return (
        _relative_difference(a.avg_pitch, b.avg_pitch, EPSILON_HZ) * weights.pitch
        + _relative_difference(a.pitch_variance, b.pitch_variance, EPSILON_HZ)
        * weights.pitch_variance
        + _relative_difference(a.avg_energy, b.avg_energy, EPSILON_UNITLESS)
        * weights.energy
        + _relative_difference(
            a.zero_crossing_rate, b.zero_crossing_rate, EPSILON_UNITLESS
        )
        * weights.zero_crossing_rate
        + _relative_difference(a.spectral_centroid, b.spectral_centroid, EPSILON_HZ)
        * weights.spectral_centroid
    )


def is_match(score: float, threshold: float = MATCH_THRESHOLD_DEFAULT) -> bool:
    """True if score is strictly below the match threshold."""
    return score < threshold
