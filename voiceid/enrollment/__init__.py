"""
Voice enrollment: record a participant, turn the sample into voice features, keep profiles.
Includes the similarity score used to match live audio against enrolled profiles.
"""

from __future__ import annotations

from .constants import ENROLLMENT_DURATION_SEC, MATCH_THRESHOLD_DEFAULT
from .features import VoiceFeatures, extract_features
from .recorder import EnrollmentSession
from .registry import ProfileRegistry, VoiceProfile
from .similarity import FeatureWeights, calculate_similarity_score

__all__ = [
    "ENROLLMENT_DURATION_SEC",
    "MATCH_THRESHOLD_DEFAULT",
    "EnrollmentSession",
    "FeatureWeights",
    "ProfileRegistry",
    "VoiceFeatures",
    "VoiceProfile",
    "calculate_similarity_score",
    "extract_features",
]
