"""Test configuration and shared fixtures."""

from __future__ import annotations

import numpy as np
import pytest

from voiceid.audio.capture import AudioSource, CaptureStream
from voiceid.errors import MicrophoneUnavailable


def sine(freq, n_samples, sample_rate=44100, amplitude=0.5, offset=0):
    """Sine wave of n_samples starting at sample index offset."""
    t = (np.arange(n_samples) + offset) / sample_rate
    return amplitude * np.sin(2 * np.pi * freq * t)


def sine_blocks(freq, n_blocks, block_frames=4096, sample_rate=44100, amplitude=0.5):
    """Continuous sine split into blocks."""
    wave = sine(freq, n_blocks * block_frames, sample_rate, amplitude)
    return [wave[i * block_frames : (i + 1) * block_frames] for i in range(n_blocks)]


class FakeStream(CaptureStream):
    """Capture stream driven by the test via push()."""

    def __init__(self, sample_rate, block_frames, on_block):
        self.sample_rate = sample_rate
        self.block_frames = block_frames
        self.on_block = on_block
        self.close_calls = 0

    @property
    def closed(self):
        return self.close_calls > 0

    def close(self):
        self.close_calls += 1

    def push(self, block):
        if not self.closed:
            self.on_block(np.asarray(block))


class FakeAudioSource(AudioSource):
    """Records open() calls; can be told to fail like a missing or busy microphone."""

    def __init__(self, fail=False):
        self.fail = fail
        self.open_calls = 0
        self.streams = []

    def open(self, sample_rate, block_frames, on_block):
        self.open_calls += 1
        if self.fail:
            raise MicrophoneUnavailable("Microphone failed to start")
        stream = FakeStream(sample_rate, block_frames, on_block)
        self.streams.append(stream)
        return stream

    @property
    def last_stream(self):
        return self.streams[-1]


class FakeSettingsRepo:
    """In-memory settings_repo with get/set/delete."""

    def __init__(self, values=None):
        self.values = dict(values or {})

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value):
        self.values[key] = value

    def delete(self, key):
        self.values.pop(key, None)


@pytest.fixture
def fake_source():
    return FakeAudioSource()


@pytest.fixture
def failing_source():
    return FakeAudioSource(fail=True)


@pytest.fixture
def settings_repo():
    return FakeSettingsRepo()
