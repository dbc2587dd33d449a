import matplotlib.pyplot as plt
import numpy as np

from bitboard.audio.dsp import exp_decay
from bitboard.config import DECAY_FLOOR, SR
from .base import Envelope


class ExponentialDecay(Envelope):
    """
    One-shot exponential decay, independent of the gate off.
    Starts at 1.0 and reaches `floor` after `duration` seconds, then is finished.
    """

    def __init__(self, duration: float, floor: float = DECAY_FLOOR):
        assert duration > 0
        assert 0.0 < floor < 1.0
        self.duration = float(duration)
        self.floor = float(floor)
        self._n = 0
        self._finished = True

    def gate_on(self) -> None:
        self._n = 0
        self._finished = False

    def gate_off(self) -> None:
        pass

    def finished(self) -> bool:
        return self._finished

    def total_frames(self, sr: int) -> int:
        return max(1, int(round(self.duration * sr)))

    def render(self, frames: int, sr: int = SR) -> np.ndarray:
        out = np.zeros(frames, dtype=np.float32)
        if self._finished or frames <= 0:
            return out

        total = self.total_frames(sr)
        n = min(frames, total - self._n)
        t = (self._n + np.arange(n, dtype=np.float64)) / sr
        out[:n] = exp_decay(t, self.duration, self.floor)

        self._n += n
        if self._n >= total:
            self._finished = True
        return out

    def plot(self, sr: int = SR):
        """
        Plot one full decay from gate-on, a little past `duration` so the
        cut to silence shows. The floor and the end of the tone are marked.
        Restarts the envelope.
        """
        frames = int(round(self.duration * 1.25 * sr))
        self.gate_on()
        y = self.render(frames, sr)
        t = np.arange(frames) / sr

        fig, ax = plt.subplots(figsize=(8, 3))
        ax.plot(t, y, lw=1.2)
        ax.axhline(self.floor, color="gray", ls="--", lw=0.8, label=f"floor {self.floor:g}")
        ax.axvline(self.duration, color="red", ls=":", lw=0.8, label=f"end {self.duration:.3f}s")
        ax.set_ylim(-0.05, 1.05)
        ax.set_xlabel("Time [s]")
        ax.set_ylabel("Envelope")
        ax.set_title(f"{self.__class__.__name__} ({self.duration:.3f}s to {self.floor:g} @ {sr}Hz)")
        ax.legend(loc="upper right")
        ax.grid(True, alpha=0.3)
        fig.tight_layout()
        return fig, ax
