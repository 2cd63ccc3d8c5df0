"""
Microphone discovery for choosing the enrollment / identification input device.
"""

from __future__ import annotations

import logging
from typing import Any, NamedTuple

from ..errors import MicrophoneUnavailable

logger = logging.getLogger(__name__)


class InputDevice(NamedTuple):
    id: int
    name: str
    sample_rate: float
    channels: int
    is_default: bool


def get_default_input_device_id() -> int | None:
    """Index of the system default input device, or None if there is none."""
    try:
        import sounddevice as sd

        device = int(sd.default.device[0])
    except Exception:
        return None
    return device if device >= 0 else None


def _to_input_device(index: int, info: Any, default_id: int | None) -> InputDevice:
    return InputDevice(
        id=index,
        name=str(info.get("name", "Unknown")),
        sample_rate=float(info.get("default_samplerate", 44100)),
        channels=int(info.get("max_input_channels", 0)),
        is_default=index == default_id,
    )


def list_input_devices() -> list[InputDevice]:
    """Every device with at least one input channel. Raises MicrophoneUnavailable if PortAudio fails."""
    try:
        import sounddevice as sd

        devices = sd.query_devices()
    except Exception as e:
        logger.exception("Failed to list input devices: %s", e)
        raise MicrophoneUnavailable("Cannot list microphone devices") from e
    default_id = get_default_input_device_id()
    return [
        _to_input_device(i, d, default_id)
        for i, d in enumerate(devices)
        if d.get("max_input_channels", 0) > 0
    ]
