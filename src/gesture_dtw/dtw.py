"""Dynamic Time Warping between feature-vector sequences.

Sequences are (N, D) arrays. The distance is the cost of the cheapest
monotonic alignment, normalized by N + M so that sequences of different
lengths share one threshold scale.

Usage:
    dist = dtw_distance(live, template)
    matcher = DtwMatcher(window=4)
    best = matcher.best_match(live, store)
"""

from __future__ import annotations

import math
from typing import Iterable, Optional

import numpy as np

from gesture_dtw.errors import DimensionMismatchError


def _as_sequence(seq, label: str) -> np.ndarray:
    arr = np.asarray(seq, dtype=np.float64)
    # A lone feature vector is not a sequence; scalar series must be (N, 1)
    if arr.ndim != 2:
        raise ValueError(f"{label} sequence must be 2-D (frames, D), got shape {arr.shape}")
    if len(arr) == 0:
        raise ValueError(f"{label} sequence is empty")
    return arr


def _band_width(n: int, m: int, window: float) -> float:
    """Widen the band so the end cell stays reachable."""
    return max(float(window), abs(m / n - 1.0), 1.0)


def dtw_distance(live, template, window: Optional[float] = None) -> float:
    """Compute the normalized DTW distance from live to template.

    Uses O(N*M) DP over per-frame Euclidean distances. With a window, cells
    farther than ``window`` from the scaled diagonal (``|i*m/n - j|``) are
    never visited.

    Returns:
        Non-negative float, lower = closer.
    """
    s = _as_sequence(live, "live")
    t = _as_sequence(template, "template")
    if s.shape[1] != t.shape[1]:
        raise DimensionMismatchError(s.shape[1], t.shape[1], context="template")

    n, m = len(s), len(t)

    # Pairwise frame distances, shape (n, m)
    local = np.sqrt(((s[:, None, :] - t[None, :, :]) ** 2).sum(axis=2))

    # Padded with an inf border so row/column 0 accumulate along the edges
    cost = np.full((n + 1, m + 1), np.inf, dtype=np.float64)
    cost[0, 0] = 0.0

    band = None if window is None else _band_width(n, m, window)
    ratio = m / n

    for i in range(1, n + 1):
        if band is None:
            j_start, j_end = 1, m
        else:
            center = (i - 1) * ratio
            j_start = max(1, math.ceil(center - band) + 1)
            j_end = min(m, math.floor(center + band) + 1)
        for j in range(j_start, j_end + 1):
            cost[i, j] = local[i - 1, j - 1] + min(
                cost[i - 1, j], cost[i, j - 1], cost[i - 1, j - 1]
            )

    return float(cost[n, m] / (n + m))


def resample_sequence(seq, n_frames: int) -> np.ndarray:
    """Linearly interpolate a sequence in time to ``n_frames`` frames."""
    arr = _as_sequence(seq, "input")
    if n_frames < 1:
        raise ValueError("n_frames must be >= 1")
    if len(arr) == 1:
        return np.tile(arr[0], (n_frames, 1))

    src = np.linspace(0.0, 1.0, len(arr))
    dst = np.linspace(0.0, 1.0, n_frames)
    return np.column_stack([np.interp(dst, src, arr[:, k]) for k in range(arr.shape[1])])


class DtwMatcher:
    """Scores a live sequence against a set of named templates."""

    def __init__(self, window: Optional[float] = None, epsilon: float = 1e-9):
        if window is not None and window < 0:
            raise ValueError("window must be >= 0")
        self.window = window
        self.epsilon = epsilon

    def distance(self, live, template) -> float:
        return dtw_distance(live, template, window=self.window)

    __call__ = distance

    def score_all(self, live, templates: Iterable) -> list[tuple[str, float]]:
        """Distance to every template, in iteration order."""
        return [(tmpl.name, self.distance(live, tmpl.sequence)) for tmpl in templates]

    def select(self, scores: list[tuple[str, float]]) -> Optional[tuple[str, float, float]]:
        """Pick a winner from ``score_all`` output.

        Returns (name, distance, minimum): the first template whose distance
        is within ``epsilon`` of the minimum, its own distance, and the
        minimum itself. None if there are no scores.
        """
        if not scores:
            return None
        minimum = min(dist for _, dist in scores)
        name, dist = next((n, d) for n, d in scores if d <= minimum + self.epsilon)
        return name, dist, minimum

    def best_match(self, live, templates: Iterable) -> Optional[tuple[str, float]]:
        """Return (name, distance) of the closest template, or None if there are none.

        Near-ties (within ``epsilon`` of the minimum) resolve to the first
        template in iteration order.
        """
        chosen = self.select(self.score_all(live, templates))
        if chosen is None:
            return None
        return chosen[0], chosen[1]
