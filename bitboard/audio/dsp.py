import numpy as np

from bitboard.config import DECAY_FLOOR


def soft_clip(x: np.ndarray, drive: float = 1.5) -> np.ndarray:
    # Smooth limiter. drive ~ 1.2-2.0
    return np.tanh(drive * x) / np.tanh(drive)


def exp_decay(t: np.ndarray, duration: float, floor: float = DECAY_FLOOR) -> np.ndarray:
    """
    Exponential ramp from 1 at t=0 to `floor` at t=duration:
    floor ** (t / duration). Same curve as a browser's
    exponentialRampToValueAtTime.
    """
    return np.power(floor, np.asarray(t, dtype=np.float64) / duration)
