"""Error types raised by the recognition engine.

None of these are fatal to the process. A bad frame is dropped, a bad
capture is rejected, and the caller decides what to do next.
"""

from __future__ import annotations

from typing import Optional


class GestureError(Exception):
    """Base class for all gesture_dtw errors."""


class InvalidFrameError(GestureError, ValueError):
    """A frame carried an untrackable (NaN or infinite) coordinate."""

    def __init__(self, message: str, point_index: Optional[int] = None):
        super().__init__(message)
        self.point_index = point_index


class DimensionMismatchError(GestureError, ValueError):
    """Feature vectors of different lengths were mixed."""

    def __init__(self, expected: int, actual: int, context: str = "feature vector"):
        super().__init__(
            f"{context} has dimensionality {actual}, expected {expected}"
        )
        self.expected = expected
        self.actual = actual


class CaptureStateError(GestureError, RuntimeError):
    """Capture control called in the wrong state."""


class DuplicateTemplateError(GestureError, KeyError):
    """A template with this name is already stored."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"template {self.name!r} already exists"


class TemplateTooShortError(GestureError, ValueError):
    """A template needs at least two frames."""

    def __init__(self, name: str, length: int):
        super().__init__(
            f"template {name!r} has {length} frame(s), at least 2 are required"
        )
        self.name = name
        self.length = length
