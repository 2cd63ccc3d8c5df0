"""
Errors raised by voice enrollment and identification.
Callers can catch VoiceIdError for any of them.
"""

from __future__ import annotations


class VoiceIdError(Exception):
    """Base class for voiceid errors."""


class ProfileNotFound(VoiceIdError):
    """No voice profile is registered under the given id."""

    def __init__(self, profile_id: str) -> None:
        super().__init__(f"Voice profile not found: {profile_id}")
        self.profile_id = profile_id


class AlreadyRecording(VoiceIdError):
    """A session is already capturing; stop or cancel it first."""


class NotRecording(VoiceIdError):
    """stop() was called with no active recording."""


class ProfileMismatch(VoiceIdError):
    """stop() was called for a profile other than the one being recorded."""

    def __init__(self, expected: str, got: str) -> None:
        super().__init__(
            f"Recording is for profile {expected!r}, not {got!r}"
        )
        self.expected = expected
        self.got = got


class MicrophoneUnavailable(VoiceIdError):
    """Input device could not be opened (permission denied, no device, device busy)."""


class DecodeFailure(VoiceIdError):
    """Captured audio could not be decoded into PCM samples."""


__all__ = [
    "AlreadyRecording",
    "DecodeFailure",
    "MicrophoneUnavailable",
    "NotRecording",
    "ProfileMismatch",
    "ProfileNotFound",
    "VoiceIdError",
]
