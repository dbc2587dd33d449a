from dataclasses import dataclass


@dataclass(frozen=True)
class TriggerEvent:
    lane_id: str
    gain: float   # resolved: master volume × lane base gain
