import threading
from typing import Dict, Iterable, List, Mapping

from bitboard.config import N_STEPS
from bitboard.errors import InvalidArgument


def _check_index(index: int) -> int:
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < N_STEPS:
        raise InvalidArgument(f"step index must be an int in [0, {N_STEPS}), got {index!r}")
    return index


def _as_steps(steps: Iterable) -> List[bool]:
    try:
        out = [bool(s) for s in steps]
    except TypeError as e:
        raise InvalidArgument(
            f"a pattern is a sequence of {N_STEPS} steps, got {type(steps).__name__}") from e
    if len(out) != N_STEPS:
        raise InvalidArgument(f"a pattern has exactly {N_STEPS} steps, got {len(out)}")
    return out


class PatternStore:
    """
    Lane id -> 16 on/off steps. A lane that was never written reads as all off.
    Thread-safe: edits come from the UI thread while the clock thread reads.
    """
    def __init__(self):
        self._patterns: Dict[str, List[bool]] = {}
        self._lock = threading.Lock()

    def get(self, lane_id: str) -> List[bool]:
        with self._lock:
            steps = self._patterns.get(lane_id)
            return list(steps) if steps is not None else [False] * N_STEPS

    def is_active(self, lane_id: str, index: int) -> bool:
        _check_index(index)
        with self._lock:
            steps = self._patterns.get(lane_id)
            return bool(steps and steps[index])

    def set_step(self, lane_id: str, index: int, active: bool) -> None:
        _check_index(index)
        with self._lock:
            steps = self._patterns.setdefault(lane_id, [False] * N_STEPS)
            steps[index] = bool(active)

    def toggle_step(self, lane_id: str, index: int) -> bool:
        """Flip one step and return its new value."""
        _check_index(index)
        with self._lock:
            steps = self._patterns.setdefault(lane_id, [False] * N_STEPS)
            steps[index] = not steps[index]
            return steps[index]

    def set_pattern(self, lane_id: str, steps: Iterable) -> None:
        new = _as_steps(steps)
        with self._lock:
            self._patterns[lane_id] = new

    def replace_all(self, patterns: Mapping[str, Iterable]) -> None:
        """Bulk import. Everything is validated before anything is replaced."""
        new = {lane_id: _as_steps(steps) for lane_id, steps in patterns.items()}
        with self._lock:
            self._patterns = new

    def clear(self) -> None:
        with self._lock:
            self._patterns = {}

    def lanes(self) -> List[str]:
        with self._lock:
            return list(self._patterns)

    def snapshot(self) -> Dict[str, List[bool]]:
        with self._lock:
            return {lane_id: list(steps) for lane_id, steps in self._patterns.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._patterns)
