from __future__ import annotations
from dataclasses import dataclass, field
from typing import List
import numpy as np
import threading

from bitboard.config import MAX_VOLUME


class MixBus:
    """
    Gain policy between master volume and a lane's base gain.
    Stateless; kept apart from the scheduler so it can be tested on its own.
    """

    @staticmethod
    def apply(volume: float, base_gain: float) -> float:
        g = (float(volume) / MAX_VOLUME) * float(base_gain)
        return max(0.0, min(1.0, g))


@dataclass
class Tone:
    buffer: np.ndarray
    pos: int = 0
    done: threading.Event = field(default_factory=threading.Event)

    def finished(self) -> bool:
        return self.pos >= self.buffer.shape[0]


class Mixer:
    """
    Thread-safe sum of the tones currently sounding.
    Tones are added from synthesis workers and consumed by the audio callback.
    """
    def __init__(self):
        self._tones: List[Tone] = []
        self._lock = threading.Lock()

    def add(self, buffer: np.ndarray) -> threading.Event:
        """Queue a rendered mono tone; the returned event is set once it has been fully mixed."""
        tone = Tone(np.asarray(buffer, dtype=np.float32))
        if tone.finished():
            tone.done.set()
            return tone.done
        with self._lock:
            self._tones.append(tone)
        return tone.done

    def render(self, frames: int) -> np.ndarray:
        """Sum the next `frames` samples of every tone (plain gain summation, no normalization)."""
        mix = np.zeros(frames, dtype=np.float32)
        with self._lock:
            alive: List[Tone] = []
            for tone in self._tones:
                chunk = tone.buffer[tone.pos:tone.pos + frames]
                mix[:chunk.shape[0]] += chunk
                tone.pos += chunk.shape[0]
                if tone.finished():
                    tone.done.set()
                else:
                    alive.append(tone)
            self._tones = alive
        return mix

    def release_all(self) -> None:
        """Drop every pending tone and signal completion to whoever waits on it."""
        with self._lock:
            tones, self._tones = self._tones, []
        for tone in tones:
            tone.done.set()

    def num_active_tones(self) -> int:
        with self._lock:
            return len(self._tones)
