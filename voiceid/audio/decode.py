"""
Decode recorded audio into float PCM. The enrollment recording is kept as a WAV container
(int16 mono) and decoded back through an AudioDecoder before feature extraction.
"""

from __future__ import annotations

import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import numpy as np

from ..errors import DecodeFailure

logger = logging.getLogger(__name__)

INT16_MAX = 32767
INT16_MIN = -32768


@dataclass(frozen=True)
class DecodedAudio:
    """Mono float samples in [-1, 1] plus their sample rate."""

    samples: np.ndarray
    sample_rate: int

    @property
    def duration_sec(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return self.samples.size / self.sample_rate


class AudioDecoder(ABC):
    """Turns container audio bytes into PCM."""

    @abstractmethod
    def decode(self, data: bytes) -> DecodedAudio:
        """Raises DecodeFailure if data cannot be decoded."""


class SoundFileDecoder(AudioDecoder):
    """Decode WAV/FLAC/OGG with libsndfile; multi-channel audio keeps the first channel."""

    def decode(self, data: bytes) -> DecodedAudio:
        if not data:
            raise DecodeFailure("No audio to decode")
        import soundfile as sf

        try:
            samples, sample_rate = sf.read(
                io.BytesIO(data), dtype="float32", always_2d=True
            )
        except Exception as e:
            logger.debug("Audio decode failed: %s", e)
            raise DecodeFailure(f"Could not decode audio: {e}") from e
        return DecodedAudio(samples=samples[:, 0].copy(), sample_rate=int(sample_rate))


class RawPcmDecoder(AudioDecoder):
    """Headerless little-endian int16 mono PCM at a known sample rate."""

    def __init__(self, sample_rate: int = 44100) -> None:
        self.sample_rate = int(sample_rate)

    def decode(self, data: bytes) -> DecodedAudio:
        if not data:
            raise DecodeFailure("No audio to decode")
        if len(data) % 2:
            raise DecodeFailure(f"Raw int16 PCM needs an even byte count, got {len(data)}")
        pcm = np.frombuffer(data, dtype="<i2")
        return DecodedAudio(
            samples=pcm.astype(np.float32) / 32768.0, sample_rate=self.sample_rate
        )


def float_to_int16(samples: Any) -> np.ndarray:
    """Float samples in [-1, 1] to int16, clipped."""
    arr = np.asarray(samples, dtype=np.float64).reshape(-1)
    return np.clip((arr * 32768.0).round(), INT16_MIN, INT16_MAX).astype(np.int16)


def encode_wav(pcm: np.ndarray, sample_rate: int) -> bytes:
    """Write int16 mono samples as a 16-bit PCM WAV file in memory."""
    import soundfile as sf

    buf = io.BytesIO()
    sf.write(buf, np.asarray(pcm, dtype=np.int16), sample_rate, format="WAV", subtype="PCM_16")
    return buf.getvalue()


__all__ = [
    "AudioDecoder",
    "DecodedAudio",
    "RawPcmDecoder",
    "SoundFileDecoder",
    "encode_wav",
    "float_to_int16",
]
