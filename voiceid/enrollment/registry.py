"""
Voice profile registry: in-memory id -> profile store and best-match lookup.
Profiles can be saved to / loaded from a settings repository as JSON (features only, no audio).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from ..errors import ProfileNotFound
from .constants import MATCH_THRESHOLD_DEFAULT, SETTINGS_KEY_PROFILES
from .features import VoiceFeatures
from .similarity import DEFAULT_WEIGHTS, FeatureWeights, calculate_similarity_score

logger = logging.getLogger(__name__)


@dataclass
class VoiceProfile:
    """
    One participant's voice profile. enrolled is True exactly when features is set;
    both change together through commit().
    """

    id: str
    name: str
    enrolled: bool = False
    features: VoiceFeatures | None = None
    sample_audio: bytes | None = field(default=None, repr=False)

    def commit(self, features: VoiceFeatures, sample_audio: bytes | None = None) -> None:
        """Replace the enrollment in one step."""
        self.features = features
        self.sample_audio = sample_audio
        self.enrolled = True


class ProfileRegistry:
    """Owns all voice profiles until clear(). Not thread-safe; one writer (enrollment stop)."""

    def __init__(
        self,
        match_threshold: float = MATCH_THRESHOLD_DEFAULT,
        weights: FeatureWeights = DEFAULT_WEIGHTS,
    ) -> None:
        self._profiles: dict[str, VoiceProfile] = {}
        self.match_threshold = match_threshold
        self.weights = weights

    def create_profile(self, profile_id: str, name: str) -> VoiceProfile:
        """Insert a fresh, unenrolled profile; an existing profile with this id is replaced."""
        profile = VoiceProfile(id=profile_id, name=name)
        self._profiles[profile_id] = profile
        return profile

    def get_profile(self, profile_id: str) -> VoiceProfile | None:
        return self._profiles.get(profile_id)

    def require_profile(self, profile_id: str) -> VoiceProfile:
        profile = self._profiles.get(profile_id)
        if profile is None:
            raise ProfileNotFound(profile_id)
        return profile

    def list_profiles(self) -> list[VoiceProfile]:
        return list(self._profiles.values())

    def list_enrolled(self) -> list[VoiceProfile]:
        return [
            p for p in self._profiles.values() if p.enrolled and p.features is not None
        ]

    def enrolled_count(self) -> int:
        return len(self.list_enrolled())

    def clear(self) -> None:
        self._profiles.clear()

    def commit_enrollment(
        self,
        profile_id: str,
        features: VoiceFeatures,
        sample_audio: bytes | None = None,
    ) -> VoiceProfile:
        """Store new features on an existing profile and mark it enrolled."""
        profile = self.require_profile(profile_id)
        profile.commit(features, sample_audio)
        logger.info(
            "Voice profile enrolled: %s (pitch=%.1f Hz, %.1fs)",
            profile.name,
            features.avg_pitch,
            features.sample_duration_sec,
        )
        return profile

    def best_match(self, features: VoiceFeatures) -> tuple[VoiceProfile | None, float]:
        """Return (closest enrolled profile, its score); (None, inf) when nothing is enrolled."""
        best: VoiceProfile | None = None
        best_score = float("inf")
        for profile in self.list_enrolled():
            score = calculate_similarity_score(features, profile.features, self.weights)
            if score < best_score:
                best_score = score
                best = profile
        return best, best_score

    def match_voice(
        self, features: VoiceFeatures, threshold: float | None = None
    ) -> VoiceProfile | None:
        """Closest enrolled profile if its score is under the threshold, else None."""
        limit = self.match_threshold if threshold is None else threshold
        best, score = self.best_match(features)
        if best is not None and score < limit:
            logger.debug("Matched %s (score %.3f)", best.name, score)
            return best
        logger.debug("No voice match (best score %.3f)", score)
        return None

    def save(self, settings_repo: Any | None) -> None:
        """Persist id, name and features of every profile as JSON."""
        if settings_repo is None:
            return
        data = [
            {
                "id": p.id,
                "name": p.name,
                "features": p.features.to_dict() if p.features is not None else None,
            }
            for p in self._profiles.values()
        ]
        settings_repo.set(SETTINGS_KEY_PROFILES, json.dumps(data))

    def load(self, settings_repo: Any | None) -> int:
        """
        Replace current profiles with those stored in settings_repo.
        Returns the number loaded. Missing or invalid data leaves the registry unchanged.
        """
        if settings_repo is None:
            return 0
        raw = settings_repo.get(SETTINGS_KEY_PROFILES)
        if not raw or not raw.strip():
            return 0
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                return 0
            loaded: dict[str, VoiceProfile] = {}
            for item in data:
                profile = VoiceProfile(id=str(item["id"]), name=str(item["name"]))
                if item.get("features") is not None:
                    profile.commit(VoiceFeatures.from_dict(item["features"]))
                loaded[profile.id] = profile
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.debug("Stored voice profiles are invalid, ignoring: %s", e)
            return 0
        self._profiles = loaded
        return len(loaded)
