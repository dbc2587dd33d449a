# audio/engine.py
import logging
import threading
from typing import Optional

import numpy as np
import sounddevice as sd

from bitboard.audio.dsp import soft_clip
from bitboard.audio.mixer import Mixer
from bitboard.config import BLOCK, SR
from bitboard.errors import DeviceError

logger = logging.getLogger(__name__)


class AudioEngine:
    """
    sounddevice output stream fed by a Mixer. Implements AudioSink, so the
    tone synthesizer can hand it rendered buffers from any thread.
    """
    def __init__(self, mixer: Optional[Mixer] = None, sr=SR, blocksize=BLOCK, channels=1,
                 pre_gain=1.0, limiter_drive=1.15, device=None):
        self.mixer = mixer if mixer is not None else Mixer()
        self.sr = int(sr)
        self.blocksize = int(blocksize)
        self.channels = int(channels)
        self.device = device

        # processing
        self.pre_gain = float(pre_gain)
        self.limiter_drive = float(limiter_drive)

        # coordinated shutdown
        self._stop_evt = threading.Event()
        self._stop_evt.set()

        self.stream: Optional[sd.OutputStream] = None

    ###########################################################################
    ##                              LIFECYCLE                                ##
    ###########################################################################
    @property
    def running(self) -> bool:
        return not self._stop_evt.is_set()

    def start(self):
        if self.running:
            return
        try:
            self.stream = sd.OutputStream(
                channels=self.channels,
                samplerate=self.sr,
                blocksize=self.blocksize,
                device=self.device,
                callback=self._cb,
                latency='low'
            )
            self._stop_evt.clear()
            self.stream.start()
        except sd.PortAudioError as e:
            self._stop_evt.set()
            self.stream = None
            raise DeviceError(f"could not open output stream: {e}") from e
        logger.info("audio engine started (sr=%d, block=%d, channels=%d)",
                    self.sr, self.blocksize, self.channels)

    def stop(self):
        if not self.running:
            return
        self._stop_evt.set()

        # abort() is immediate; stop() drains. abort helps kill the callback loop promptly
        stream, self.stream = self.stream, None
        if stream is not None:
            for close in (stream.abort, stream.close):
                try:
                    close()
                except sd.PortAudioError as e:
                    logger.warning("error while closing output stream: %s", e)

        # nobody may keep waiting on a tone the device will never play
        self.mixer.release_all()
        logger.info("audio engine stopped")

    ###########################################################################
    ##                               SINK                                    ##
    ###########################################################################
    def play(self, buffer: np.ndarray, sr: int) -> threading.Event:
        if not self.running:
            raise DeviceError("audio engine is not running")
        if int(sr) != self.sr:
            raise DeviceError(f"buffer rendered at {sr} Hz, device runs at {self.sr} Hz")
        return self.mixer.add(buffer)

    ###########################################################################
    ##                           AUDIO CALL BACK                             ##
    ###########################################################################
    def _cb(self, outdata, frames, time_info, status):
        if status:
            logger.debug("output stream status: %s", status)
        # stopping: output silence and do no work
        if self._stop_evt.is_set():
            outdata.fill(0)
            return

        mix = self.mixer.render(frames)

        if self.pre_gain != 1.0:
            mix *= self.pre_gain

        # limiter
        mix = soft_clip(mix, drive=self.limiter_drive).astype(np.float32)
        peak = float(np.max(np.abs(mix))) if mix.size else 0.0
        if peak > 1.0:
            mix /= peak

        outdata[:, 0] = mix
        if outdata.shape[1] > 1:
            outdata[:, 1:] = mix[:, None]
