"""Tests for the sounddevice stream wrapper, driven with a stub PortAudio stream."""

import threading

import numpy as np
import pytest

from conftest import sine_blocks
from voiceid.audio.capture import AudioSource, SoundDeviceStream
from voiceid.enrollment.features import extract_features
from voiceid.enrollment.registry import ProfileRegistry
from voiceid.speaker.identifier import RealtimeIdentificationSession, SessionState

SAMPLE_RATE = 44100
BLOCK = 4096


class StubInputStream:
    """
    Stands in for sounddevice.InputStream. Like PortAudio, stop() must not run while the
    callback is executing on the same thread, so that case is recorded as a deadlock.
    """

    def __init__(self, wrapper):
        self.wrapper = wrapper
        self.callback_thread = None
        self.stop_threads = []
        self.close_calls = 0
        self.deadlocked = False
        self.released = threading.Event()

    def fire(self, block):
        self.callback_thread = threading.get_ident()
        try:
            indata = np.asarray(block, dtype=np.float32).reshape(-1, 1)
            self.wrapper.callback(indata, len(indata), None, None)
        finally:
            self.callback_thread = None

    def stop(self):
        if self.callback_thread == threading.get_ident():
            self.deadlocked = True
        self.stop_threads.append(threading.get_ident())

    def close(self):
        self.close_calls += 1
        self.released.set()


class StubSource(AudioSource):
    def __init__(self, gain=1.0):
        self.gain = gain
        self.stub = None

    def open(self, sample_rate, block_frames, on_block):
        wrapper = SoundDeviceStream(on_block, self.gain)
        self.stub = StubInputStream(wrapper)
        wrapper.attach(self.stub)
        return wrapper


def _attached(on_block, gain=1.0):
    wrapper = SoundDeviceStream(on_block, gain)
    stub = StubInputStream(wrapper)
    wrapper.attach(stub)
    return wrapper, stub


def test_close_from_inside_callback_releases_off_thread():
    """close() called by the block consumer hands the device release to another thread."""
    holder = {}

    def _on_block(_block):
        holder["wrapper"].close()

    wrapper, stub = _attached(_on_block)
    holder["wrapper"] = wrapper
    stub.fire(np.zeros(16))

    assert wrapper.closed
    assert stub.released.wait(timeout=2.0)
    assert stub.deadlocked is False
    assert stub.close_calls == 1
    assert stub.stop_threads and stub.stop_threads[0] != threading.get_ident()


def test_close_outside_callback_is_synchronous_and_idempotent():
    wrapper, stub = _attached(lambda block: None)
    wrapper.close()
    wrapper.close()
    assert stub.stop_threads == [threading.get_ident()]
    assert stub.close_calls == 1


def test_blocks_after_close_are_dropped():
    received = []
    wrapper, stub = _attached(received.append)
    stub.fire(np.full(8, 0.25))
    wrapper.close()
    stub.fire(np.full(8, 0.25))
    assert len(received) == 1


def test_callback_applies_gain_and_clips():
    received = []
    wrapper, stub = _attached(received.append, gain=4.0)
    stub.fire([0.1, 0.5, -0.5])
    assert received[0] == pytest.approx([0.4, 1.0, -1.0])
    wrapper.close()


def test_stop_identification_from_speaker_callback():
    """Stopping the session when a speaker is announced neither hangs nor crashes."""
    blocks = sine_blocks(150, 10, BLOCK, SAMPLE_RATE, amplitude=0.3)
    registry = ProfileRegistry()
    registry.create_profile("a", "Alice")
    registry.commit_enrollment("a", extract_features(np.concatenate(blocks), SAMPLE_RATE))
    source = StubSource()
    session = RealtimeIdentificationSession(registry, source, SAMPLE_RATE, BLOCK)
    changes = []

    def _on_change(name):
        changes.append(name)
        session.stop()

    assert session.start(_on_change)
    for block in blocks:
        source.stub.fire(block)

    assert changes == ["Alice"]
    assert session.state is SessionState.IDLE
    assert source.stub.released.wait(timeout=2.0)
    assert source.stub.deadlocked is False
    source.stub.fire(blocks[0])
    assert changes == ["Alice"]
