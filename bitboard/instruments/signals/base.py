from typing import Protocol
import numpy as np
import matplotlib.pyplot as plt

from bitboard.config import SR


class Signal(Protocol):
    """A stateful, unlimited-time signal generator."""
    def render(self, freq: float, frames: int, sr: int = SR) -> np.ndarray:
        """Return `frames` samples (float32 mono), advancing internal state."""
        ...

    def reset(self) -> None:
        """Reset internal state/phase."""
        ...

    def plot(self, freq: float, frames: int, sr: int = SR):
        """
        Render `frames` samples and plot them. Advances the signal like any
        other render call.
        """
        y = self.render(freq, frames, sr)
        t = np.arange(frames) / sr
        fig, ax = plt.subplots(figsize=(8, 3))
        ax.plot(t, y, lw=1.2)
        ax.set_title(f"{self.__class__.__name__} ({freq:.1f} Hz)")
        ax.set_xlabel("Time [s]")
        ax.set_ylabel("Amplitude")
        ax.grid(True, alpha=0.3)
        fig.tight_layout()
        return fig, ax
