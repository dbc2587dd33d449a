import logging
import threading, time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Clock:
    """
    Periodic tick thread. The interval is asked for again before every wait,
    so a tempo change applies from the next scheduled tick on; ticks already
    elapsed are not corrected.
    The first tick fires one interval after start(), never synchronously.
    """
    def __init__(self, interval_fn: Callable[[], float], name: str = "SequencerClock"):
        self.interval_fn = interval_fn
        self.name = name
        self._stop_evt = threading.Event()
        self._th: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._th is not None and not self._stop_evt.is_set()

    def start(self, tick_fn: Callable[[], None]):
        if self.running:
            raise RuntimeError("clock already running")
        self._stop_evt.clear()

        def run():
            next_t = time.perf_counter()
            while True:
                next_t += self.interval_fn()
                # wait() returns True once stop() was called: exit before ticking
                if self._stop_evt.wait(timeout=max(0.0, next_t - time.perf_counter())):
                    break
                try:
                    tick_fn()
                except Exception:
                    logger.exception("tick failed; clock keeps running")

        self._th = threading.Thread(target=run, name=self.name, daemon=True)
        self._th.start()

    def stop(self, timeout: float = 2.0):
        """Cancel the timer. When this returns (off the clock thread) no further tick fires."""
        self._stop_evt.set()
        th, self._th = self._th, None
        if th is not None and th is not threading.current_thread():
            th.join(timeout=timeout)
            if th.is_alive():
                logger.warning("clock thread still alive after join()")
