from abc import abstractmethod
from enum import Enum
from typing import Dict, Type
import numpy as np

from bitboard.config import SR
from .base import Signal


class Waveform(str, Enum):
    SINE = "sine"
    SQUARE = "square"
    TRIANGLE = "triangle"
    SAWTOOTH = "sawtooth"


class Oscillator(Signal):
    """
    Phase-accumulator oscillator. Phase is kept in cycles [0, 1) so that
    consecutive renders join without discontinuity.
    """
    def __init__(self, phase: float = 0.0, gain: float = 1.0):
        self.phase = float(phase) % 1.0
        self.gain = float(gain)

    @abstractmethod
    def _shape(self, p: np.ndarray) -> np.ndarray:
        """Map phase in cycles to amplitude in [-1, 1]."""

    def render(self, freq: float, frames: int, sr: int = SR) -> np.ndarray:
        if frames <= 0:
            return np.zeros(0, dtype=np.float32)
        inc = float(freq) / float(sr)
        p = (self.phase + inc * np.arange(frames, dtype=np.float64)) % 1.0
        self.phase = (self.phase + inc * frames) % 1.0
        return (self._shape(p) * self.gain).astype(np.float32)

    def reset(self) -> None:
        self.phase = 0.0


class Sine(Oscillator):
    def _shape(self, p):
        return np.sin(2.0 * np.pi * p)


class Square(Oscillator):
    """Naive square (aliased): +1 on the first half cycle, -1 on the second."""
    def _shape(self, p):
        return np.where(p < 0.5, 1.0, -1.0)


class Triangle(Oscillator):
    """Starts at 0 and rises, peaking at a quarter cycle."""
    def _shape(self, p):
        return 1.0 - 4.0 * np.abs(((p + 0.25) % 1.0) - 0.5)


class Sawtooth(Oscillator):
    """Naive saw (aliased), starting at 0 and ramping up."""
    #TODO: polyBLEP band-limiting for the 55 Hz lane.
    def _shape(self, p):
        return 2.0 * ((p + 0.5) % 1.0) - 1.0


OSCILLATORS: Dict[Waveform, Type[Oscillator]] = {
    Waveform.SINE: Sine,
    Waveform.SQUARE: Square,
    Waveform.TRIANGLE: Triangle,
    Waveform.SAWTOOTH: Sawtooth,
}


def make_oscillator(waveform: Waveform, **kwargs) -> Oscillator:
    return OSCILLATORS[Waveform(waveform)](**kwargs)
