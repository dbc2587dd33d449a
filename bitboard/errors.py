class BitboardError(Exception):
    """Base class for sequencer errors."""


class InvalidArgument(BitboardError, ValueError):
    """A single call got an out-of-range or unknown argument; state is unchanged."""


class StateImportError(BitboardError, ValueError):
    """A persistence record was malformed; nothing from it was applied."""


class DeviceError(BitboardError, RuntimeError):
    """Tone output failed for one triggered event."""
