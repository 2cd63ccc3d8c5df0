"""
Realtime speaker identification: listen to the microphone, buffer speech-only blocks,
match them against enrolled voice profiles and announce who is talking.
Only actual changes of the best match are announced; an unmatched segment keeps the
previous speaker.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from enum import Enum
from typing import Any, Callable

import numpy as np

from ..audio.capture import AudioSource, CaptureStream
from ..audio.level import block_rms
from ..enrollment.constants import (
    MIN_BLOCKS_FOR_MATCH,
    REALTIME_BLOCK_FRAMES,
    RETAIN_BLOCKS_AFTER_MATCH,
    SAMPLE_RATE,
    SILENCE_BLOCKS_TO_CLEAR,
    SILENCE_THRESHOLD_DEFAULT,
)
from ..enrollment.features import extract_features
from ..enrollment.registry import ProfileRegistry
from ..errors import AlreadyRecording

logger = logging.getLogger(__name__)

SpeakerChangeCallback = Callable[[str], None]


class SessionState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    LISTENING = "listening"
    MATCHING = "matching"
    STOPPING = "stopping"


class RealtimeIdentificationSession:
    """
    Continuous identification against the profiles enrolled in registry.
    Blocks are processed in arrival order on the capture thread; stop() may be called
    from any thread at any time and closes the stream exactly once.
    """

    def __init__(
        self,
        registry: ProfileRegistry,
        source: AudioSource,
        sample_rate: int = SAMPLE_RATE,
        block_frames: int = REALTIME_BLOCK_FRAMES,
        match_threshold: float | None = None,
        silence_threshold: float = SILENCE_THRESHOLD_DEFAULT,
        silence_blocks_to_clear: int = SILENCE_BLOCKS_TO_CLEAR,
        min_blocks_for_match: int = MIN_BLOCKS_FOR_MATCH,
        retain_blocks: int = RETAIN_BLOCKS_AFTER_MATCH,
    ) -> None:
        self._registry = registry
        self._source = source
        self.sample_rate = sample_rate
        self.block_frames = block_frames
        # None: use the registry's threshold
        self.match_threshold = match_threshold
        self.silence_threshold = silence_threshold
        self.silence_blocks_to_clear = max(1, int(silence_blocks_to_clear))
        self.min_blocks_for_match = max(1, int(min_blocks_for_match))
        self.retain_blocks = max(0, min(int(retain_blocks), self.min_blocks_for_match - 1))
        self._lock = threading.Lock()
        self._state = SessionState.IDLE
        self._stream: CaptureStream | None = None
        self._generation = 0
        self._on_speaker_change: SpeakerChangeCallback | None = None
        self._speech_blocks: deque[np.ndarray] = deque()
        self._silent_blocks = 0
        self._current_speaker: str | None = None

    @property
    def state(self) -> SessionState:
        return self._state

    def is_active(self) -> bool:
        return self._state not in (SessionState.IDLE, SessionState.STOPPING)

    def current_speaker(self) -> str | None:
        return self._current_speaker

    def start(self, on_speaker_change: SpeakerChangeCallback) -> bool:
        """
        Start listening. Returns False (without opening the microphone) when no profile is
        enrolled. Raises AlreadyRecording if already listening, MicrophoneUnavailable if the
        device cannot be opened.
        """
        if self._registry.enrolled_count() == 0:
            logger.info("No enrolled voice profiles; realtime identification not started")
            return False
        with self._lock:
            if self._state != SessionState.IDLE:
                raise AlreadyRecording("Realtime identification already running")
            self._state = SessionState.STARTING
            self._generation += 1
            generation = self._generation
            self._on_speaker_change = on_speaker_change
            self._reset_buffers()
        try:
            stream = self._source.open(
                self.sample_rate,
                self.block_frames,
                lambda block: self._on_block(generation, block),
            )
        except BaseException:
            with self._lock:
                if self._generation == generation:
                    self._state = SessionState.IDLE
                    self._on_speaker_change = None
            raise
        with self._lock:
            cancelled = self._generation != generation
            if not cancelled:
                self._stream = stream
                self._state = SessionState.LISTENING
        if cancelled:
            stream.close()
            return False
        logger.info(
            "Realtime identification started (%d enrolled profiles)",
            self._registry.enrolled_count(),
        )
        return True

    def stop(self) -> None:
        """Close the stream and forget buffered audio and the current speaker. Idempotent."""
        with self._lock:
            if self._state == SessionState.IDLE:
                return
            self._state = SessionState.STOPPING
            self._generation += 1
            stream, self._stream = self._stream, None
            self._on_speaker_change = None
            self._reset_buffers()
            self._current_speaker = None
        if stream is not None:
            stream.close()
        with self._lock:
            if self._state == SessionState.STOPPING:
                self._state = SessionState.IDLE
        logger.info("Realtime identification stopped")

    def _reset_buffers(self) -> None:
        self._speech_blocks.clear()
        self._silent_blocks = 0

    def _on_block(self, generation: int, block: Any) -> None:
        if generation != self._generation:
            return
        self.process_block(block)

    def process_block(self, block: Any) -> None:
        """
        Handle one captured block. Ignored unless listening. A block that cannot be
        processed is skipped; the session keeps running.
        """
        with self._lock:
            if self._state != SessionState.LISTENING:
                return
            callback = self._on_speaker_change
            try:
                announced = self._process_locked(block)
            except Exception as e:
                logger.debug("Skipping audio block: %s", e)
                return
        if announced is not None and callback is not None:
            try:
                callback(announced)
            except Exception as e:
                logger.exception("Speaker change callback failed: %s", e)

    def _process_locked(self, block: Any) -> str | None:
        samples = np.asarray(block, dtype=np.float64).reshape(-1)
        rms = block_rms(samples)
        if rms >= self.silence_threshold:
            self._silent_blocks = 0
            self._speech_blocks.append(samples.copy())
        else:
            self._silent_blocks += 1
            if self._silent_blocks > self.silence_blocks_to_clear:
                # speaker stopped; stale audio must not leak into the next utterance
                self._speech_blocks.clear()
        if len(self._speech_blocks) < self.min_blocks_for_match:
            return None
        self._state = SessionState.MATCHING
        try:
            audio = np.concatenate(self._speech_blocks)
            features = extract_features(audio, self.sample_rate)
            best, score = self._registry.best_match(features)
        finally:
            while len(self._speech_blocks) > self.retain_blocks:
                self._speech_blocks.popleft()
            self._state = SessionState.LISTENING
        threshold = (
            self._registry.match_threshold
            if self.match_threshold is None
            else self.match_threshold
        )
        if best is None or score >= threshold:
            logger.debug("No speaker match (best score %.3f)", score)
            return None
        if best.name == self._current_speaker:
            return None
        self._current_speaker = best.name
        logger.info("Speaker changed: %s (score %.3f)", best.name, score)
        return best.name
