"""Shared test doubles for the sequencer and the tone engine.

Nothing here opens an audio device: the synthesizer is replaced by a
recorder, the clock by one that only ticks when told to.
"""
from __future__ import annotations

import threading
import time
from concurrent.futures import Future

import matplotlib
matplotlib.use("Agg")

import pytest

from bitboard.errors import DeviceError


class ManualClock:
    """Clock double: start() only stores the tick function, fire() ticks."""

    def __init__(self):
        self.interval_fn = None
        self.tick_fn = None
        self.created = 0
        self.started = False

    def factory(self, interval_fn):
        self.interval_fn = interval_fn
        self.created += 1
        return self

    def start(self, tick_fn):
        self.tick_fn = tick_fn
        self.started = True

    def stop(self, timeout=2.0):
        self.started = False

    def fire(self, n: int = 1):
        for _ in range(n):
            self.tick_fn()


class RecordingSynth:
    """Stands in for ToneSynthesizer.trigger; records (lane_id, gain)."""

    def __init__(self, fail_lanes=()):
        self.calls: list[tuple[str, float]] = []
        self.times: list[float] = []
        self.fail_lanes = set(fail_lanes)
        self._lock = threading.Lock()

    def trigger(self, lane, gain):
        if lane.id in self.fail_lanes:
            raise DeviceError(f"no device for {lane.id}")
        with self._lock:
            self.calls.append((lane.id, gain))
            self.times.append(time.perf_counter())
        fut = Future()
        fut.set_result(None)
        return fut


class FakeSink:
    """AudioSink double. Records buffers; tones finish immediately unless held."""

    def __init__(self, hold: bool = False, error: Exception | None = None):
        self.buffers = []
        self.hold = hold
        self.error = error
        self.events: list[threading.Event] = []

    def play(self, buffer, sr):
        if self.error is not None:
            raise self.error
        self.buffers.append((buffer, sr))
        done = threading.Event()
        if not self.hold:
            done.set()
        self.events.append(done)
        return done


class RealtimeSink:
    """AudioSink double whose tones finish after their real length, like a device would."""

    def __init__(self):
        self.received: list[float] = []
        self._lock = threading.Lock()

    def play(self, buffer, sr):
        with self._lock:
            self.received.append(time.perf_counter())
        done = threading.Event()
        timer = threading.Timer(buffer.shape[0] / sr, done.set)
        timer.daemon = True
        timer.start()
        return done


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def synth():
    return RecordingSynth()


@pytest.fixture
def sink():
    return FakeSink()
