class TrackingError(Exception):
    """Base class for errors raised by the tracking core."""


class InputShapeError(TrackingError, ValueError):
    """Per-cycle inputs disagree in length or embedding dimension."""


class InvalidDetectionError(TrackingError, ValueError):
    """A single detection violates the record invariants."""


class DegenerateBoxError(InvalidDetectionError):
    """Zero-area, inverted or non-finite box."""
