"""
Microphone capture for enrollment and realtime identification.
An AudioSource opens a CaptureStream that delivers fixed-size mono float32 blocks
to a callback until close(). SoundDeviceSource is the PortAudio implementation.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable

import numpy as np

from ..errors import MicrophoneUnavailable

logger = logging.getLogger(__name__)

BlockCallback = Callable[[np.ndarray], None]


class CaptureStream(ABC):
    """Handle to an open capture stream. close() must be safe to call more than once."""

    @abstractmethod
    def close(self) -> None:
        """Stop delivering blocks and release the device."""

    @property
    @abstractmethod
    def closed(self) -> bool:
        """True once close() has run."""


class AudioSource(ABC):
    """Opens capture streams on a microphone."""

    @abstractmethod
    def open(
        self, sample_rate: int, block_frames: int, on_block: BlockCallback
    ) -> CaptureStream:
        """
        Start capturing mono audio and call on_block(samples) for each block of
        block_frames float32 samples in [-1, 1], in arrival order.
        Raises MicrophoneUnavailable if the device cannot be opened; in that case
        nothing is left open.
        """


class SoundDeviceStream(CaptureStream):
    """
    Wraps a sounddevice.InputStream and serves as its callback.
    close() may be called from inside on_block: PortAudio's stop() waits for the running
    callback to return, so in that case the device is released from a helper thread.
    """

    def __init__(self, on_block: BlockCallback, gain: float = 1.0) -> None:
        self._on_block = on_block
        self._gain = gain
        self._stream: Any = None
        self._lock = threading.Lock()
        self._closed = False
        self._in_callback = threading.local()
        self._release_thread: threading.Thread | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def attach(self, stream: Any) -> None:
        self._stream = stream

    def callback(self, indata, _frames, _time_info, status) -> None:  # noqa: ANN001
        if status:
            logger.debug("Capture status: %s", status)
        if self._closed:
            return
        block = indata[:, 0].copy()
        if self._gain != 1.0:
            block = np.clip(block * self._gain, -1.0, 1.0)
        self._in_callback.active = True
        try:
            self._on_block(block)
        finally:
            self._in_callback.active = False

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            stream, self._stream = self._stream, None
        if stream is None:
            return
        if getattr(self._in_callback, "active", False):
            self._release_thread = threading.Thread(
                target=self._release, args=(stream,), name="voiceid-capture-close", daemon=True
            )
            self._release_thread.start()
            return
        self._release(stream)

    @staticmethod
    def _release(stream: Any) -> None:
        try:
            stream.stop()
            stream.close()
        except Exception as e:
            logger.warning("Error closing audio stream: %s", e)


class SoundDeviceSource(AudioSource):
    """
    Capture from the configured (or default) input device with sounddevice.
    gain is applied to every block and the result clipped to [-1, 1] so quiet
    microphones can be boosted.
    """

    def __init__(self, device_id: int | None = None, gain: float = 1.0) -> None:
        self.device_id = device_id
        self.gain = max(0.1, min(10.0, float(gain)))

    def open(
        self, sample_rate: int, block_frames: int, on_block: BlockCallback
    ) -> CaptureStream:
        try:
            import sounddevice as sd
        except (ImportError, OSError) as e:
            raise MicrophoneUnavailable("Audio input not available (PortAudio)") from e

        wrapper = SoundDeviceStream(on_block, self.gain)
        stream = None
        try:
            stream = sd.InputStream(
                device=self.device_id,
                samplerate=sample_rate,
                channels=1,
                dtype="float32",
                blocksize=block_frames,
                callback=wrapper.callback,
            )
            wrapper.attach(stream)
            stream.start()
        except Exception as e:
            logger.exception("Failed to start audio capture: %s", e)
            if stream is not None:
                try:
                    stream.close()
                except Exception as close_error:
                    logger.warning("Error closing audio stream: %s", close_error)
            raise MicrophoneUnavailable("Microphone failed to start") from e
        logger.info(
            "Audio capture started (device=%s, rate=%s, block=%s, gain=%.2f)",
            self.device_id,
            sample_rate,
            block_frames,
            self.gain,
        )
        return wrapper
