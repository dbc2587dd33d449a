import logging
import time

from bitboard.audio.engine import AudioEngine
from bitboard.config import BLOCK, SR
from bitboard.instruments.tone import ToneSynthesizer
from bitboard.sequencing.sequencer import PlaybackScheduler

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s %(message)s")

    engine = AudioEngine(sr=SR, blocksize=BLOCK, channels=1, pre_gain=1.0, limiter_drive=1.15)
    engine.start()
    synth = ToneSynthesizer(engine, sr=SR)
    seq = PlaybackScheduler(synth)

    # four on the floor, offbeat hats, a little arpeggio on top
    seq.import_state({
        "title": "demo",
        "bpm": 110,
        "volume": 70,
        "patterns": {
            "sawtooth55":  [1, 0, 0, 0] * 4,
            "triangle110": [0, 0, 1, 0] * 4,
            "square330":   [0, 1, 0, 1] * 4,
            "sine880":     [1, 0, 0, 1, 0, 0, 1, 0, 0, 0, 1, 0, 0, 1, 0, 0],
            "sine440":     [0, 0, 0, 0, 1, 0, 0, 0, 0, 0, 0, 0, 1, 0, 1, 0],
        },
    })
    seq.start()

    print("Loop running. Ctrl+C to quit.")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        seq.stop()
        synth.shutdown()
        engine.stop()
