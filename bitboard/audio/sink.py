from typing import Protocol
import threading
import numpy as np


class AudioSink(Protocol):
    """Output device as seen by the synthesizer. Device lifecycle is not its concern."""

    def play(self, buffer: np.ndarray, sr: int) -> threading.Event:
        """
        Start playing a rendered mono buffer without blocking.
        Returns an event that is set once the buffer has been played out.
        Raises DeviceError if the device cannot take it.
        """
        ...
