from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping

from bitboard.errors import InvalidArgument
from bitboard.instruments.signals.osc import Waveform


@dataclass(frozen=True)
class Lane:
    id: str
    waveform: Waveform
    frequency: float   # Hz
    duration: float    # seconds
    gain: float = 0.5  # 0..1

    def __post_init__(self):
        try:
            object.__setattr__(self, "waveform", Waveform(self.waveform))
        except ValueError:
            raise InvalidArgument(f"lane {self.id!r}: unknown waveform {self.waveform!r}") from None
        if not self.frequency > 0:
            raise InvalidArgument(f"lane {self.id!r}: frequency must be > 0, got {self.frequency}")
        if not self.duration > 0:
            raise InvalidArgument(f"lane {self.id!r}: duration must be > 0, got {self.duration}")
        if not 0.0 <= self.gain <= 1.0:
            raise InvalidArgument(f"lane {self.id!r}: gain must be in [0, 1], got {self.gain}")


Catalog = Mapping[str, Lane]


def make_catalog(lanes: Iterable[Lane]) -> Catalog:
    """Freeze lanes into a read-only lookup table keyed by lane id (insertion order kept)."""
    table = {}
    for lane in lanes:
        if lane.id in table:
            raise InvalidArgument(f"duplicate lane id {lane.id!r}")
        table[lane.id] = lane
    return MappingProxyType(table)


LANES: Catalog = make_catalog([
    Lane("sine880",     Waveform.SINE,     880.0, 0.2, 0.4),
    Lane("sine440",     Waveform.SINE,     440.0, 0.2, 0.4),
    Lane("square330",   Waveform.SQUARE,   330.0, 0.2, 0.3),
    Lane("square220",   Waveform.SQUARE,   220.0, 0.2, 0.3),
    Lane("triangle165", Waveform.TRIANGLE, 165.0, 0.2, 0.5),
    Lane("triangle110", Waveform.TRIANGLE, 110.0, 0.2, 0.5),
    Lane("sawtooth55",  Waveform.SAWTOOTH,  55.0, 0.3, 0.4),
])
