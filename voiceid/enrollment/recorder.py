"""
Record a voice sample for one profile and commit its features to the registry.
The caller decides how long to record: start(), wait (progress is reported every 100 ms
of captured audio), then stop() or cancel().
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable

import numpy as np

from ..audio.capture import AudioSource, CaptureStream
from ..audio.decode import AudioDecoder, SoundFileDecoder, encode_wav, float_to_int16
from ..audio.level import block_rms
from ..errors import AlreadyRecording, DecodeFailure, NotRecording, ProfileMismatch
from .constants import ENROLLMENT_BLOCK_SEC, PROGRESS_STEP_SEC, SAMPLE_RATE
from .features import as_samples, extract_features
from .registry import ProfileRegistry, VoiceProfile

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


@dataclass
class _Recording:
    profile_id: str
    on_progress: ProgressCallback | None
    stream: CaptureStream | None = None
    chunks: list[np.ndarray] = field(default_factory=list)
    levels: list[float] = field(default_factory=list)
    frames: int = 0
    ticks_reported: int = 0


class EnrollmentSession:
    """
    At most one recording at a time. The profile is only touched by a successful stop();
    cancel() and every failure leave any previous enrollment in place.
    """

    def __init__(
        self,
        registry: ProfileRegistry,
        source: AudioSource,
        decoder: AudioDecoder | None = None,
        sample_rate: int = SAMPLE_RATE,
        block_sec: float = ENROLLMENT_BLOCK_SEC,
    ) -> None:
        self._registry = registry
        self._source = source
        self._decoder = decoder or SoundFileDecoder()
        self.sample_rate = sample_rate
        self._block_frames = max(1, int(sample_rate * block_sec))
        self._progress_frames = max(1, int(sample_rate * PROGRESS_STEP_SEC))
        self._lock = threading.Lock()
        self._recording: _Recording | None = None

    def is_active(self) -> bool:
        return self._recording is not None

    @property
    def profile_id(self) -> str | None:
        recording = self._recording
        return recording.profile_id if recording is not None else None

    @property
    def elapsed_sec(self) -> float:
        recording = self._recording
        if recording is None:
            return 0.0
        return recording.frames / self.sample_rate

    @property
    def levels(self) -> list[float]:
        """RMS (0.0-1.0) of each captured block so far, for level display."""
        recording = self._recording
        return list(recording.levels) if recording is not None else []

    def start(
        self, profile_id: str, on_progress: ProgressCallback | None = None
    ) -> None:
        """
        Open the microphone and start recording for profile_id.
        Raises ProfileNotFound, AlreadyRecording or MicrophoneUnavailable.
        on_progress(elapsed_sec) is called with 0.0 once capture is open, then every
        100 ms of captured audio, from the capture thread.
        """
        profile = self._registry.require_profile(profile_id)
        recording = _Recording(profile_id=profile_id, on_progress=on_progress)
        with self._lock:
            if self._recording is not None:
                raise AlreadyRecording(
                    f"Already recording for profile {self._recording.profile_id!r}"
                )
            self._recording = recording
        try:
            stream = self._source.open(
                self.sample_rate,
                self._block_frames,
                lambda block: self._on_block(recording, block),
            )
        except BaseException:
            with self._lock:
                if self._recording is recording:
                    self._recording = None
            raise
        with self._lock:
            cancelled = self._recording is not recording
            if not cancelled:
                recording.stream = stream
        if cancelled:
            stream.close()
            return
        logger.info("Voice enrollment started for %s", profile.name)
        self._report_progress(recording, [0.0])

    def _on_block(self, recording: _Recording, block: np.ndarray) -> None:
        with self._lock:
            if self._recording is not recording:
                return
            # NaN/inf from a misbehaving device become silence
            samples = as_samples(block)
            pcm = float_to_int16(samples)
            recording.chunks.append(pcm)
            recording.levels.append(block_rms(samples))
            recording.frames += pcm.size
            ticks = recording.frames // self._progress_frames
            due = []
            while recording.ticks_reported < ticks:
                recording.ticks_reported += 1
                due.append(round(recording.ticks_reported * PROGRESS_STEP_SEC, 1))
        self._report_progress(recording, due)

    def _report_progress(self, recording: _Recording, values: list[float]) -> None:
        if recording.on_progress is None:
            return
        for seconds in values:
            try:
                recording.on_progress(seconds)
            except Exception as e:
                logger.debug("Enrollment progress callback failed: %s", e)

    def stop(self, profile_id: str) -> VoiceProfile:
        """
        Finish the recording: decode it, extract features and commit them to the profile.
        Raises NotRecording, ProfileMismatch (recording continues), DecodeFailure or
        ProfileNotFound (profile removed meanwhile). Resources are released in every case
        except ProfileMismatch.
        """
        with self._lock:
            recording = self._recording
            if recording is None:
                raise NotRecording("No voice enrollment in progress")
            if recording.profile_id != profile_id:
                raise ProfileMismatch(recording.profile_id, profile_id)
            self._recording = None
        if recording.stream is not None:
            recording.stream.close()
        if not recording.chunks:
            raise DecodeFailure("No audio was captured")
        pcm = np.concatenate(recording.chunks)
        try:
            wav = encode_wav(pcm, self.sample_rate)
        except Exception as e:
            raise DecodeFailure(f"Could not encode recording: {e}") from e
        decoded = self._decoder.decode(wav)
        features = extract_features(decoded.samples, decoded.sample_rate)
        return self._registry.commit_enrollment(profile_id, features, wav)

    def cancel(self) -> None:
        """Drop the current recording without touching any profile. No-op when idle."""
        with self._lock:
            recording = self._recording
            self._recording = None
        if recording is None:
            return
        if recording.stream is not None:
            recording.stream.close()
        logger.info("Voice enrollment cancelled for %s", recording.profile_id)
