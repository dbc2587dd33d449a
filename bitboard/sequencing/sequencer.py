import logging
import numbers
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional

from bitboard.audio.mixer import MixBus
from bitboard.config import (DEFAULT_BPM, DEFAULT_VOLUME, MAX_BPM, MAX_VOLUME,
                             MIN_BPM, MIN_VOLUME, N_STEPS)
from bitboard.errors import InvalidArgument, StateImportError
from bitboard.instruments.predefined.lanes import LANES, Catalog
from bitboard.sequencing.clock import Clock
from bitboard.sequencing.durations import step_duration
from bitboard.sequencing.events import TriggerEvent
from bitboard.sequencing.pattern import PatternStore

logger = logging.getLogger(__name__)


@dataclass
class SequencerState:
    running: bool = False
    current_step: int = 0
    tempo: int = DEFAULT_BPM      # BPM
    volume: int = DEFAULT_VOLUME  # percent
    title: str = ""


def _is_int(x) -> bool:
    return isinstance(x, numbers.Integral) and not isinstance(x, bool)


def _check_range(name: str, value, lo: int, hi: int, exc=InvalidArgument) -> int:
    if not _is_int(value) or not lo <= value <= hi:
        raise exc(f"{name} must be an integer in [{lo}, {hi}], got {value!r}")
    return int(value)


class PlaybackScheduler:
    """
    Playback scheduler for the lane grid.

    Stopped --start--> Running --stop/clear--> Stopped. While running, a Clock
    calls tick() every step duration (a sixteenth note at the current tempo).
    Each tick triggers one tone per lane whose current step is on, then
    advances the step. The synthesizer is fire-and-forget: tick() never waits
    on a tone, and a tone that fails is logged without touching the sequencer.

    All state lives in a SequencerState guarded by one lock, shared by the
    clock thread and whatever thread drives the controls.
    """

    def __init__(self, synth, catalog: Catalog = LANES,
                 patterns: Optional[PatternStore] = None,
                 bpm: int = DEFAULT_BPM, volume: int = DEFAULT_VOLUME,
                 clock_factory: Callable[[Callable[[], float]], Clock] = Clock):
        self.synth = synth
        self.catalog = catalog
        self.patterns = patterns if patterns is not None else PatternStore()
        self._state = SequencerState(
            tempo=_check_range("tempo", bpm, MIN_BPM, MAX_BPM),
            volume=_check_range("volume", volume, MIN_VOLUME, MAX_VOLUME),
        )
        self._lock = threading.RLock()
        self._clock_factory = clock_factory
        self._clock: Optional[Clock] = None
        # bumped on every start/stop so a late tick from an old clock is ignored
        self._generation = 0

    ###########################################################################
    ##                               STATE                                   ##
    ###########################################################################

    @property
    def state(self) -> SequencerState:
        with self._lock:
            return replace(self._state)

    @property
    def running(self) -> bool:
        with self._lock:
            return self._state.running

    @property
    def current_step(self) -> int:
        with self._lock:
            return self._state.current_step

    @property
    def tempo(self) -> int:
        with self._lock:
            return self._state.tempo

    @property
    def volume(self) -> int:
        with self._lock:
            return self._state.volume

    @property
    def title(self) -> str:
        with self._lock:
            return self._state.title

    @property
    def step_duration(self) -> float:
        return step_duration(self.tempo)

    ###########################################################################
    ##                              TRANSPORT                                ##
    ###########################################################################

    def start(self) -> None:
        with self._lock:
            if self._state.running:
                logger.debug("start() ignored, already running")
                return
            self._generation += 1
            gen = self._generation
            clock = self._clock_factory(lambda: self.step_duration)
            # a clock that fails to start leaves the scheduler Stopped
            clock.start(lambda: self.tick(gen))
            self._clock = clock
            self._state.current_step = 0
            self._state.running = True
        logger.info("playback started at %d BPM (step %.4fs)", self.tempo, self.step_duration)

    def stop(self) -> None:
        was_running = self._halt()
        if was_running:
            logger.info("playback stopped")

    def clear(self) -> None:
        """Stop and wipe patterns and title. Tempo and volume are kept."""
        self._halt(clear=True)
        logger.info("board cleared")

    def _halt(self, clear: bool = False) -> bool:
        with self._lock:
            was_running = self._state.running
            self._state.running = False
            self._state.current_step = 0
            self._generation += 1
            clock, self._clock = self._clock, None
            if clear:
                self.patterns.clear()
                self._state.title = ""
        # joined outside the lock: a tick in flight may be waiting for it
        if clock is not None:
            clock.stop()
        return was_running

    ###########################################################################
    ##                                TICK                                   ##
    ###########################################################################

    def tick(self, generation: Optional[int] = None) -> List[TriggerEvent]:
        """
        Fire the current step and advance. Called by the clock; a tick that
        belongs to a clock generation other than the current one is dropped.
        Returns the events that were dispatched.
        """
        with self._lock:
            if not self._state.running:
                return []
            if generation is not None and generation != self._generation:
                return []
            step = self._state.current_step
            volume = self._state.volume
            grid = self.patterns.snapshot()
            events = [TriggerEvent(lane_id, MixBus.apply(volume, lane.gain))
                      for lane_id, lane in self.catalog.items()
                      if lane_id in grid and grid[lane_id][step]]
            self._state.current_step = (step + 1) % N_STEPS

        if events:
            logger.debug("step %2d: %s", step, ", ".join(e.lane_id for e in events))
        for e in events:
            self._dispatch(e)
        return events

    def _dispatch(self, e: TriggerEvent) -> None:
        try:
            self.synth.trigger(self.catalog[e.lane_id], e.gain)
        except Exception as exc:
            # one lane's device trouble never stops the sequencer
            logger.warning("could not trigger lane %r: %s", e.lane_id, exc)

    ###########################################################################
    ##                              CONTROLS                                 ##
    ###########################################################################

    def _check_lane(self, lane_id: str) -> str:
        if lane_id not in self.catalog:
            raise InvalidArgument(f"unknown lane {lane_id!r}")
        return lane_id

    def toggle_step(self, lane_id: str, index: int) -> bool:
        return self.patterns.toggle_step(self._check_lane(lane_id), index)

    def set_step(self, lane_id: str, index: int, active: bool) -> None:
        self.patterns.set_step(self._check_lane(lane_id), index, active)

    def set_pattern(self, lane_id: str, steps: Iterable) -> None:
        self.patterns.set_pattern(self._check_lane(lane_id), steps)

    def set_tempo(self, bpm: int) -> None:
        bpm = _check_range("tempo", bpm, MIN_BPM, MAX_BPM)
        with self._lock:
            self._state.tempo = bpm

    def set_volume(self, volume: int) -> None:
        volume = _check_range("volume", volume, MIN_VOLUME, MAX_VOLUME)
        with self._lock:
            self._state.volume = volume

    def set_title(self, title: str) -> None:
        if not isinstance(title, str):
            raise InvalidArgument(f"title must be a string, got {type(title).__name__}")
        with self._lock:
            self._state.title = title

    ###########################################################################
    ##                             PERSISTENCE                               ##
    ###########################################################################

    def export_state(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "title": self._state.title,
                "patterns": {lane_id: [int(s) for s in steps]
                             for lane_id, steps in self.patterns.snapshot().items()},
                "bpm": self._state.tempo,
                "volume": self._state.volume,
            }

    def import_state(self, record: Mapping[str, Any]) -> None:
        """
        Restore patterns, tempo, volume and title from an exported record.
        The record is validated as a whole first; on StateImportError nothing changes.
        The running state is left alone.
        """
        patterns, bpm, volume, title = self._parse_record(record)
        with self._lock:
            self.patterns.replace_all(patterns)
            self._state.tempo = bpm
            self._state.volume = volume
            self._state.title = title
        logger.info("imported %r: %d lanes, %d BPM, volume %d", title, len(patterns), bpm, volume)

    def _parse_record(self, record):
        if not isinstance(record, Mapping):
            raise StateImportError(f"record must be a mapping, got {type(record).__name__}")
        missing = [k for k in ("patterns", "bpm", "volume") if k not in record]
        if missing:
            raise StateImportError(f"record is missing required field(s): {', '.join(missing)}")

        bpm = _check_range("bpm", record["bpm"], MIN_BPM, MAX_BPM, exc=StateImportError)
        volume = _check_range("volume", record["volume"], MIN_VOLUME, MAX_VOLUME, exc=StateImportError)

        title = record.get("title", "")
        if title is None:
            title = ""
        if not isinstance(title, str):
            raise StateImportError(f"title must be a string, got {type(title).__name__}")

        raw = record["patterns"]
        if not isinstance(raw, Mapping):
            raise StateImportError(f"patterns must be a mapping, got {type(raw).__name__}")
        patterns = {}
        for lane_id, steps in raw.items():
            if lane_id not in self.catalog:
                raise StateImportError(f"patterns: unknown lane {lane_id!r}")
            if isinstance(steps, (str, bytes)) or not isinstance(steps, Iterable):
                raise StateImportError(f"patterns[{lane_id!r}] must be a list of {N_STEPS} steps")
            steps = list(steps)
            if len(steps) != N_STEPS:
                raise StateImportError(
                    f"patterns[{lane_id!r}] has {len(steps)} steps, expected {N_STEPS}")
            if any(s not in (0, 1) or not isinstance(s, (bool, numbers.Integral)) for s in steps):
                raise StateImportError(f"patterns[{lane_id!r}] steps must be 0/1 or booleans")
            patterns[lane_id] = [bool(s) for s in steps]
        return patterns, bpm, volume, title
