"""Feature-vector extraction from projected 2D joint positions.

A frame is an ordered list of 2D points. The feature vector concatenates
each point's X then Y, so dimension 2i is the X of point i and 2i+1 its Y.
The point order is part of the vector's meaning and is never changed here.
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

import numpy as np

from gesture_dtw.errors import InvalidFrameError


# Elbows, wrists and hands, placed from left to right
DEFAULT_JOINTS = (
    "elbow_left",
    "wrist_left",
    "hand_left",
    "hand_right",
    "wrist_right",
    "elbow_right",
)


def extract_features(points) -> np.ndarray:
    """Flatten an ordered list of 2D points into a feature vector.

    Args:
        points: Array-like of shape (P, 2). Extra columns (e.g. depth) are
            ignored.

    Returns:
        Feature vector, shape (2 * P,), float64.

    Raises:
        InvalidFrameError: if any coordinate is NaN or infinite.
    """
    pts = np.asarray(points, dtype=np.float64)
    if pts.ndim != 2 or pts.shape[1] < 2 or pts.shape[0] == 0:
        raise InvalidFrameError(
            f"expected a non-empty (P, 2) point array, got shape {pts.shape}"
        )

    xy = pts[:, :2]
    bad = ~np.isfinite(xy).all(axis=1)
    if bad.any():
        idx = int(np.argmax(bad))
        raise InvalidFrameError(f"point {idx} is not trackable: {xy[idx].tolist()}", idx)

    return xy.reshape(-1).copy()


class FeatureExtractor:
    """Extracts feature vectors for a fixed, ordered joint selection.

    Usage:
        extractor = FeatureExtractor()
        vec = extractor.extract_joints({"elbow_left": (0.1, 0.4), ...})
    """

    def __init__(self, joints: Optional[Sequence[str]] = None):
        self.joints: tuple[str, ...] = tuple(joints or DEFAULT_JOINTS)
        if not self.joints:
            raise ValueError("at least one joint is required")
        if len(set(self.joints)) != len(self.joints):
            raise ValueError("joint names must be unique")

    @property
    def dimensionality(self) -> int:
        return 2 * len(self.joints)

    def extract(self, points) -> np.ndarray:
        """Extract from points given in joint order."""
        pts = np.asarray(points, dtype=np.float64)
        if pts.ndim != 2 or pts.shape[0] != len(self.joints):
            raise InvalidFrameError(
                f"expected {len(self.joints)} points, got shape {pts.shape}"
            )
        return extract_features(pts)

    def extract_joints(self, positions: Mapping[str, Sequence[float]]) -> np.ndarray:
        """Extract from a joint-name → (x, y) mapping."""
        missing = [j for j in self.joints if j not in positions]
        if missing:
            raise InvalidFrameError(f"missing joints: {', '.join(missing)}")
        return self.extract([tuple(positions[j])[:2] for j in self.joints])
