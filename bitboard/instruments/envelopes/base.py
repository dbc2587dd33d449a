from typing import Protocol
import numpy as np

from bitboard.config import SR


class Envelope(Protocol):
    def gate_on(self) -> None: ...
    def gate_off(self) -> None: ...
    def render(self, frames: int, sr: int = SR) -> np.ndarray:
        """Return envelope amplitude for next `frames` samples (float32)."""
        ...
    def finished(self) -> bool:
        """True if envelope is at rest and the tone can be freed."""
        ...
