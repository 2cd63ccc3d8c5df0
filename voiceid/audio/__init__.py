"""
Audio input: microphone capture, decoding of recorded audio, block levels, device listing.
"""

from __future__ import annotations

from .capture import AudioSource, CaptureStream, SoundDeviceSource
from .decode import AudioDecoder, DecodedAudio, RawPcmDecoder, SoundFileDecoder

__all__ = [
    "AudioDecoder",
    "AudioSource",
    "CaptureStream",
    "DecodedAudio",
    "RawPcmDecoder",
    "SoundDeviceSource",
    "SoundFileDecoder",
]
