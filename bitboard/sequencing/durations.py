from bitboard.config import STEPS_PER_BEAT


def beat_duration(bpm: float) -> float:
    """Seconds per quarter note."""
    return 60.0 / float(bpm)


def step_duration(bpm: float, steps_per_beat: int = STEPS_PER_BEAT) -> float:
    """Seconds per grid step; with 4 steps per beat this is a sixteenth, 15 / bpm."""
    return beat_duration(bpm) / steps_per_beat


def loop_duration(bpm: float, n_steps: int, steps_per_beat: int = STEPS_PER_BEAT) -> float:
    return n_steps * step_duration(bpm, steps_per_beat)
