SR = 44100
BLOCK = 256

# grid
N_STEPS = 16
STEPS_PER_BEAT = 4   # sixteenth notes

# tempo (BPM)
MIN_BPM = 40
MAX_BPM = 200
DEFAULT_BPM = 120

# master volume (percent)
MIN_VOLUME = 0
MAX_VOLUME = 100
DEFAULT_VOLUME = 50

# tone decay ends at 1% of its starting gain
DECAY_FLOOR = 0.01

MAX_TONE_WORKERS = 16
