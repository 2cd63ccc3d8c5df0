"""
voiceid: on-device voice enrollment and realtime speaker identification.
All construction goes through VoiceIdFactory; public API: create_voice_id_components(),
apply_voice_id_overlay(), VoiceIdService.
"""

from __future__ import annotations

import logging
from typing import Any, NamedTuple

from .audio.capture import AudioSource, SoundDeviceSource
from .audio.decode import AudioDecoder, SoundFileDecoder
from .enrollment.constants import (
    ENROLLMENT_BLOCK_SEC,
    MATCH_THRESHOLD_DEFAULT,
    MATCH_THRESHOLD_MAX,
    MATCH_THRESHOLD_MIN,
    MIN_BLOCKS_FOR_MATCH,
    REALTIME_BLOCK_FRAMES,
    RETAIN_BLOCKS_AFTER_MATCH,
    SAMPLE_RATE,
    SETTINGS_KEY_SILENCE_THRESHOLD,
    SETTINGS_KEY_THRESHOLD,
    SILENCE_BLOCKS_TO_CLEAR,
    SILENCE_THRESHOLD_DEFAULT,
    SILENCE_THRESHOLD_MAX,
    SILENCE_THRESHOLD_MIN,
)
from .enrollment.recorder import EnrollmentSession
from .enrollment.registry import ProfileRegistry
from .enrollment.similarity import FeatureWeights
from .speaker.identifier import RealtimeIdentificationSession

__version__ = "1.0.0"

logger = logging.getLogger(__name__)


# --- Settings overlay (values saved by the app override the config file) ---


def _overlay_voice_id_settings(voice_cfg: dict, settings_repo: Any) -> dict:
    """Overlay voice_match_threshold / voice_silence_threshold from settings_repo. Returns new dict."""
    out = dict(voice_cfg)
    if settings_repo is None:
        return out
    try:
        threshold_s = settings_repo.get(SETTINGS_KEY_THRESHOLD)
        if threshold_s is not None and threshold_s.strip():
            try:
                out["match_threshold"] = float(threshold_s)
            except (TypeError, ValueError):
                logger.debug("Invalid %s, using config", SETTINGS_KEY_THRESHOLD)
        silence_s = settings_repo.get(SETTINGS_KEY_SILENCE_THRESHOLD)
        if silence_s is not None and silence_s.strip():
            try:
                out["silence_threshold"] = float(silence_s)
            except (TypeError, ValueError):
                logger.debug("Invalid %s, using config", SETTINGS_KEY_SILENCE_THRESHOLD)
    except Exception as e:
        logger.debug("Voice settings overlay failed: %s", e)
    return out


def apply_voice_id_overlay(voice_cfg: dict, settings_repo: Any) -> dict:
    """Public API: overlay saved voice settings onto the voice_id config. Returns a new dict."""
    return _overlay_voice_id_settings(voice_cfg, settings_repo)


def _clamp(value: Any, default: float, low: float, high: float) -> float:
    try:
        return max(low, min(high, float(value)))
    except (TypeError, ValueError):
        return default


# --- Factory: single place for constructing components ---


class VoiceIdComponents(NamedTuple):
    """Bundle of registry, capture source, enrollment session and realtime session."""

    registry: ProfileRegistry
    source: AudioSource
    enrollment: EnrollmentSession
    identifier: RealtimeIdentificationSession


class VoiceIdFactory:
    """
    Builds all components from config and optional settings.
    config keys: "audio" (device_id, gain, sample_rate, enrollment_block_sec,
    realtime_block_frames) and "voice_id" (match_threshold, silence_threshold,
    silence_blocks_to_clear, min_blocks_for_match, retain_blocks, weights).
    source and decoder replace the microphone and decoder (tests, other backends).
    """

    def __init__(
        self,
        config: dict | None = None,
        settings_repo: Any = None,
        source: AudioSource | None = None,
        decoder: AudioDecoder | None = None,
    ) -> None:
        config = config or {}
        self._settings_repo = settings_repo
        self._source = source
        self._decoder = decoder
        self._audio_cfg = dict(config.get("audio") or {})
        self._voice_cfg = _overlay_voice_id_settings(
            config.get("voice_id") or {}, settings_repo
        )

    @property
    def sample_rate(self) -> int:
        return int(_clamp(self._audio_cfg.get("sample_rate"), SAMPLE_RATE, 8000, 96000))

    @property
    def match_threshold(self) -> float:
        return _clamp(
            self._voice_cfg.get("match_threshold", MATCH_THRESHOLD_DEFAULT),
            MATCH_THRESHOLD_DEFAULT,
            MATCH_THRESHOLD_MIN,
            MATCH_THRESHOLD_MAX,
        )

    def create_source(self) -> AudioSource:
        if self._source is not None:
            return self._source
        return SoundDeviceSource(
            device_id=self._audio_cfg.get("device_id"),
            gain=_clamp(self._audio_cfg.get("gain", 1.0), 1.0, 0.1, 10.0),
        )

    def create_registry(self) -> ProfileRegistry:
        """New registry; profiles saved in settings_repo are loaded into it."""
        registry = ProfileRegistry(
            match_threshold=self.match_threshold,
            weights=FeatureWeights.from_config(self._voice_cfg.get("weights")),
        )
        loaded = registry.load(self._settings_repo)
        if loaded:
            logger.info("Loaded %d saved voice profiles", loaded)
        return registry

    def create_enrollment(
        self, registry: ProfileRegistry, source: AudioSource
    ) -> EnrollmentSession:
        return EnrollmentSession(
            registry,
            source,
            decoder=self._decoder or SoundFileDecoder(),
            sample_rate=self.sample_rate,
            block_sec=_clamp(
                self._audio_cfg.get("enrollment_block_sec", ENROLLMENT_BLOCK_SEC),
                ENROLLMENT_BLOCK_SEC,
                0.02,
                1.0,
            ),
        )

    def create_identifier(
        self, registry: ProfileRegistry, source: AudioSource
    ) -> RealtimeIdentificationSession:
        cfg = self._voice_cfg
        return RealtimeIdentificationSession(
            registry,
            source,
            sample_rate=self.sample_rate,
            block_frames=int(
                _clamp(
                    self._audio_cfg.get("realtime_block_frames", REALTIME_BLOCK_FRAMES),
                    REALTIME_BLOCK_FRAMES,
                    256,
                    16384,
                )
            ),
            silence_threshold=_clamp(
                cfg.get("silence_threshold", SILENCE_THRESHOLD_DEFAULT),
                SILENCE_THRESHOLD_DEFAULT,
                SILENCE_THRESHOLD_MIN,
                SILENCE_THRESHOLD_MAX,
            ),
            silence_blocks_to_clear=int(
                _clamp(
                    cfg.get("silence_blocks_to_clear", SILENCE_BLOCKS_TO_CLEAR),
                    SILENCE_BLOCKS_TO_CLEAR,
                    1,
                    1000,
                )
            ),
            min_blocks_for_match=int(
                _clamp(
                    cfg.get("min_blocks_for_match", MIN_BLOCKS_FOR_MATCH),
                    MIN_BLOCKS_FOR_MATCH,
                    1,
                    100,
                )
            ),
            retain_blocks=int(
                _clamp(
                    cfg.get("retain_blocks", RETAIN_BLOCKS_AFTER_MATCH),
                    RETAIN_BLOCKS_AFTER_MATCH,
                    0,
                    99,
                )
            ),
        )

    def create_components(self) -> VoiceIdComponents:
        """Build the full component bundle sharing one registry and one capture source."""
        registry = self.create_registry()
        source = self.create_source()
        return VoiceIdComponents(
            registry=registry,
            source=source,
            enrollment=self.create_enrollment(registry, source),
            identifier=self.create_identifier(registry, source),
        )


def create_voice_id_components(
    config: dict | None = None, settings_repo: Any = None
) -> VoiceIdComponents:
    """Single entry point: build registry, capture, enrollment and realtime identification."""
    return VoiceIdFactory(config, settings_repo).create_components()


from .service import VoiceIdService  # noqa: E402

__all__ = [
    "VoiceIdComponents",
    "VoiceIdFactory",
    "VoiceIdService",
    "apply_voice_id_overlay",
    "create_voice_id_components",
]
