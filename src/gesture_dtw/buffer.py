"""Bounded sliding buffer of live feature vectors.

Frames with untrackable coordinates are dropped, only every K-th accepted
frame is kept, and once the buffer grows past its capacity the oldest
frame is evicted.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Optional

import numpy as np

from gesture_dtw.errors import DimensionMismatchError

logger = logging.getLogger("gesture_dtw.buffer")


class SequenceBuffer:
    """FIFO accumulator of feature vectors with NaN-drop and downsampling.

    Usage:
        >>> buf = SequenceBuffer(dimensionality=12, capacity=32, stride=2)
        >>> buf.push(vec)
        >>> seq = buf.to_array()  # (len, 12)

    ``capacity=None`` makes the buffer unbounded.
    """

    def __init__(
        self,
        dimensionality: int,
        capacity: Optional[int] = None,
        stride: int = 1,
    ):
        if dimensionality < 1:
            raise ValueError("dimensionality must be >= 1")
        if capacity is not None and capacity < 1:
            raise ValueError("capacity must be >= 1 or None")
        if stride < 1:
            raise ValueError("stride must be >= 1")

        self._dim = dimensionality
        self._capacity = capacity
        self._stride = stride
        self._frames: deque[np.ndarray] = deque()
        self._phase = 0
        self._dropped = 0

    @property
    def dimensionality(self) -> int:
        return self._dim

    @property
    def capacity(self) -> Optional[int]:
        return self._capacity

    @property
    def stride(self) -> int:
        return self._stride

    @property
    def dropped_count(self) -> int:
        """Frames rejected for NaN/inf coordinates since creation."""
        return self._dropped

    def push(self, vector) -> bool:
        """Offer a frame. Returns True if it was appended.

        Raises:
            DimensionMismatchError: if the vector length is not the buffer's D.
        """
        vec = np.asarray(vector, dtype=np.float64).reshape(-1)
        if len(vec) != self._dim:
            raise DimensionMismatchError(self._dim, len(vec))

        if not np.isfinite(vec).all():
            self._dropped += 1
            logger.debug("Dropping frame with untrackable coordinates")
            return False

        self._phase = (self._phase + 1) % self._stride
        if self._phase != 0:
            return False

        self._frames.append(vec.copy())
        if self._capacity is not None:
            while len(self._frames) > self._capacity:
                self._frames.popleft()
        return True

    def clear(self):
        """Empty the buffer and restart the stride count."""
        self._frames.clear()
        self._phase = 0

    def frames(self) -> list[np.ndarray]:
        return [f.copy() for f in self._frames]

    def to_array(self) -> np.ndarray:
        """Buffered frames as an array of shape (len, D)."""
        if not self._frames:
            return np.zeros((0, self._dim), dtype=np.float64)
        return np.stack(list(self._frames))

    def __len__(self) -> int:
        return len(self._frames)

    def __bool__(self) -> bool:
        return bool(self._frames)
