# errors.py


class AttendanceError(Exception):
    """Base class for errors raised by the attendance core."""


class DecodeError(AttendanceError, ValueError):
    """Input image could not be read or decoded."""


class DimensionMismatch(AttendanceError, ValueError):
    """Two fingerprints of different shape were compared (normalization was bypassed)."""

    def __init__(self, shape_a, shape_b):
        super().__init__(f"cannot compare images of shape {tuple(shape_a)} and {tuple(shape_b)}")
        self.shape_a = tuple(shape_a)
        self.shape_b = tuple(shape_b)


class NoReferences(AttendanceError, LookupError):
    """The reference set is empty; nothing to match against."""
