"""Realtime speaker identification against enrolled voice profiles."""

from __future__ import annotations

from .identifier import RealtimeIdentificationSession, SessionState

__all__ = ["RealtimeIdentificationSession", "SessionState"]
