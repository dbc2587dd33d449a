import heapq
import itertools
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Tuple
import numpy as np

from bitboard.audio.sink import AudioSink
from bitboard.config import DECAY_FLOOR, MAX_TONE_WORKERS, SR
from bitboard.errors import DeviceError
from bitboard.instruments.envelopes.decay import ExponentialDecay
from bitboard.instruments.predefined.lanes import Lane
from bitboard.instruments.signals.osc import Waveform, make_oscillator

logger = logging.getLogger(__name__)

# slack on top of the tone length before we stop waiting on the sink
_COMPLETION_SLACK = 1.0


class _CompletionWatcher:
    """
    Resolves tone futures from the sinks' completion events on one thread,
    so no pool worker sits on a sounding tone. Entries are kept in a heap
    ordered by the moment the tone is due to end.
    """

    def __init__(self, slack: float = _COMPLETION_SLACK):
        self.slack = float(slack)
        self._heap: List[Tuple[float, int, threading.Event, Future]] = []
        self._seq = itertools.count()
        self._cond = threading.Condition()
        self._closed = False
        self._exited = False
        self._th = threading.Thread(target=self._run, name="tone-completion", daemon=True)
        self._th.start()

    def watch(self, done: threading.Event, deadline: float, fut: Future) -> None:
        with self._cond:
            if self._exited:
                fut.set_result(None)
                return
            heapq.heappush(self._heap, (deadline, next(self._seq), done, fut))
            self._cond.notify()

    def close(self, wait: bool = True) -> None:
        """Stop taking new tones; the ones already watched still resolve."""
        with self._cond:
            self._closed = True
            self._cond.notify()
        if wait:
            self._th.join()

    def _run(self):
        while True:
            with self._cond:
                while not self._heap and not self._closed:
                    self._cond.wait()
                if not self._heap:
                    self._exited = True
                    return
                deadline, _, done, fut = self._heap[0]
                now = time.monotonic()
                if now < deadline and not done.is_set():
                    # woken early by a new tone or by close(): look at the heap again
                    self._cond.wait(timeout=deadline - now)
                    continue
                heapq.heappop(self._heap)

            if not done.wait(timeout=max(0.0, deadline + self.slack - time.monotonic())):
                logger.debug("tone not reported finished by the sink")
            fut.set_result(None)


class ToneSynthesizer:
    """
    Renders one short enveloped tone per trigger and plays it on an AudioSink.

    `render` is pure numpy. `trigger` is fire-and-forget: a pool worker
    renders the tone and hands it to the sink, then is free again. The
    returned future resolves once the tone has played out and is only there
    for logging and tests.
    Frequency, duration and gain are validated by the lane catalog, not here.
    """

    def __init__(self, sink: AudioSink, sr: int = SR, floor: float = DECAY_FLOOR,
                 max_workers: int = MAX_TONE_WORKERS):
        self.sink = sink
        self.sr = int(sr)
        self.floor = float(floor)
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="tone")
        self._watcher = _CompletionWatcher()

    def render(self, waveform: Waveform, frequency: float, duration: float,
               gain: float) -> np.ndarray:
        env = ExponentialDecay(duration, floor=self.floor)
        frames = env.total_frames(self.sr)
        env.gate_on()
        osc = make_oscillator(waveform)
        return (osc.render(frequency, frames, self.sr)
                * env.render(frames, self.sr) * np.float32(gain))

    def _start(self, waveform: Waveform, frequency: float, duration: float,
               gain: float) -> Tuple[threading.Event, float]:
        """Render and hand off to the sink. Returns its completion event and the due end time."""
        buf = self.render(waveform, frequency, duration, gain)
        try:
            done = self.sink.play(buf, self.sr)
        except DeviceError:
            raise
        except Exception as e:
            raise DeviceError(f"audio sink failed: {e}") from e
        return done, time.monotonic() + buf.shape[0] / self.sr

    def play(self, waveform: Waveform, frequency: float, duration: float,
             gain: float) -> None:
        """Render and play one tone; returns once the sink has played it out."""
        done, _ = self._start(waveform, frequency, duration, gain)
        if not done.wait(timeout=duration + _COMPLETION_SLACK):
            logger.debug("tone %s@%.1fHz not reported finished by the sink", waveform, frequency)

    def trigger(self, lane: Lane, gain: float) -> Future:
        tone = Future()
        tone.set_running_or_notify_cancel()
        tone.add_done_callback(lambda f: _log_failure(lane, f))

        def handed_off(started: Future):
            exc = started.exception()
            if exc is not None:
                tone.set_exception(exc)
            else:
                done, deadline = started.result()
                self._watcher.watch(done, deadline, tone)

        started = self._pool.submit(self._start, lane.waveform, lane.frequency, lane.duration, gain)
        started.add_done_callback(handed_off)
        return tone

    def shutdown(self, wait: bool = True) -> None:
        self._pool.shutdown(wait=wait)
        self._watcher.close(wait=wait)


def _log_failure(lane: Lane, fut: Future) -> None:
    exc = fut.exception()
    if exc is not None:
        logger.warning("tone for lane %r failed: %s", lane.id, exc)
