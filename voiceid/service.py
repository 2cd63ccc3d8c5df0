"""
VoiceIdService: one object exposing profile management, enrollment and realtime
identification. Each service owns its own registry and sessions; nothing is global.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from .audio.capture import AudioSource
from .audio.decode import AudioDecoder
from .enrollment.features import VoiceFeatures
from .enrollment.recorder import ProgressCallback
from .enrollment.registry import VoiceProfile
from .speaker.identifier import SpeakerChangeCallback

if TYPE_CHECKING:
    from . import VoiceIdComponents

logger = logging.getLogger(__name__)


class VoiceIdService:
    """Facade over VoiceIdComponents."""

    def __init__(self, components: VoiceIdComponents, settings_repo: Any = None) -> None:
        self._components = components
        self._settings_repo = settings_repo

    @classmethod
    def from_config(
        cls,
        config: dict | None = None,
        settings_repo: Any = None,
        source: AudioSource | None = None,
        decoder: AudioDecoder | None = None,
    ) -> VoiceIdService:
        from . import VoiceIdFactory

        factory = VoiceIdFactory(config, settings_repo, source=source, decoder=decoder)
        return cls(factory.create_components(), settings_repo)

    @property
    def components(self) -> VoiceIdComponents:
        return self._components

    # --- Profiles ---

    def create_voice_profile(self, profile_id: str, name: str) -> VoiceProfile:
        return self._components.registry.create_profile(profile_id, name)

    def get_voice_profile(self, profile_id: str) -> VoiceProfile | None:
        return self._components.registry.get_profile(profile_id)

    def list_voice_profiles(self) -> list[VoiceProfile]:
        return self._components.registry.list_profiles()

    def clear_voice_profiles(self) -> None:
        """Remove every profile (e.g. new meeting). A running identification keeps running."""
        self._components.registry.clear()

    def enrolled_count(self) -> int:
        return self._components.registry.enrolled_count()

    def match_voice(self, features: VoiceFeatures) -> VoiceProfile | None:
        return self._components.registry.match_voice(features)

    def save_profiles(self) -> None:
        """Persist profiles to the settings repository, if one was given."""
        self._components.registry.save(self._settings_repo)

    def load_profiles(self) -> int:
        return self._components.registry.load(self._settings_repo)

    # --- Enrollment ---

    def start_enrollment(
        self, profile_id: str, on_progress: ProgressCallback | None = None
    ) -> None:
        self._components.enrollment.start(profile_id, on_progress)

    def stop_enrollment(self, profile_id: str) -> VoiceProfile:
        return self._components.enrollment.stop(profile_id)

    def cancel_enrollment(self) -> None:
        self._components.enrollment.cancel()

    def is_enrollment_active(self) -> bool:
        return self._components.enrollment.is_active()

    # --- Realtime identification ---

    def start_realtime_identification(
        self, on_speaker_change: SpeakerChangeCallback
    ) -> bool:
        return self._components.identifier.start(on_speaker_change)

    def stop_realtime_identification(self) -> None:
        self._components.identifier.stop()

    def is_realtime_active(self) -> bool:
        return self._components.identifier.is_active()

    def current_identified_speaker(self) -> str | None:
        return self._components.identifier.current_speaker()

    def close(self) -> None:
        """Release the microphone from whichever session holds it."""
        self.cancel_enrollment()
        self.stop_realtime_identification()
