"""Feature-vector stream recording and replay.

Record real sensor sessions so they can be pushed through the engine
again without a sensor attached:
- Reproducible tests
- Capturing template material offline
- Tuning thresholds against the same input
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional

import numpy as np


@dataclass
class RecordedFrame:
    """A single frame in a recording."""
    timestamp: float  # seconds from recording start
    vector: np.ndarray  # shape (D,), may contain NaN for untrackable joints


class FrameRecorder:
    """Records a stream of feature vectors to a file.

    Frames with NaN components are kept as-is so replay exercises the
    same drop logic as the live stream.

    Usage:
        recorder = FrameRecorder()
        recorder.start()
        # In your frame loop:
        recorder.add_frame(vector)
        # When done:
        recorder.save("session.json")
    """

    def __init__(self):
        self._frames: list[RecordedFrame] = []
        self._start_time: Optional[float] = None
        self._recording = False

    def start(self):
        """Begin a new recording session."""
        self._frames = []
        self._start_time = time.monotonic()
        self._recording = True

    def stop(self) -> int:
        """Stop recording. Returns number of frames captured."""
        self._recording = False
        return len(self._frames)

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp

    def add_frame(self, vector, timestamp: Optional[float] = None):
        """Add a frame. Ignored when not recording."""
        if not self._recording:
            return
        if timestamp is None:
            timestamp = time.monotonic() - self._start_time
        self._frames.append(RecordedFrame(
            timestamp=float(timestamp),
            vector=np.asarray(vector, dtype=np.float64).reshape(-1).copy(),
        ))

    def save(self, path: str | Path):
        """Save to JSON, or compact npz if the suffix is .npz."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        if path.suffix == ".npz":
            self._save_compact(path)
            return

        data = {
            "version": 1,
            "frame_count": len(self._frames),
            "duration": self.duration,
            "frames": [
                {
                    "timestamp": f.timestamp,
                    # JSON has no NaN; untrackable values are stored as null
                    "vector": [None if np.isnan(v) else float(v) for v in f.vector],
                }
                for f in self._frames
            ],
        }
        with open(path, "w") as f:
            json.dump(data, f)

    def _save_compact(self, path: Path):
        timestamps = np.array([f.timestamp for f in self._frames], dtype=np.float64)
        if self._frames:
            vectors = np.stack([f.vector for f in self._frames])
        else:
            vectors = np.zeros((0, 0), dtype=np.float64)
        np.savez_compressed(path, timestamps=timestamps, vectors=vectors)


class FramePlayer:
    """Replays a recorded session.

    Usage:
        player = FramePlayer.load("session.json")
        for frame in player.play():
            engine.push(frame.vector)
    """

    def __init__(self, frames: list[RecordedFrame]):
        self._frames = frames

    @classmethod
    def load(cls, path: str | Path) -> FramePlayer:
        path = Path(path)

        if path.suffix == ".npz":
            data = np.load(path, allow_pickle=False)
            return cls([
                RecordedFrame(timestamp=float(ts), vector=vec.astype(np.float64))
                for ts, vec in zip(data["timestamps"], data["vectors"])
            ])

        with open(path) as f:
            data = json.load(f)

        frames = [
            RecordedFrame(
                timestamp=float(f.get("timestamp", i)),
                vector=np.array(
                    [np.nan if v is None else v for v in f["vector"]], dtype=np.float64
                ),
            )
            for i, f in enumerate(data["frames"])
        ]
        return cls(frames)

    @classmethod
    def from_vectors(cls, vectors, interval: float = 1 / 30) -> FramePlayer:
        """Wrap in-memory vectors as a recording at a fixed frame interval."""
        return cls([
            RecordedFrame(timestamp=i * interval, vector=np.asarray(v, dtype=np.float64))
            for i, v in enumerate(vectors)
        ])

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def duration(self) -> float:
        if not self._frames:
            return 0.0
        return self._frames[-1].timestamp

    def play(self) -> Iterator[RecordedFrame]:
        """Iterate through all frames instantly (no timing)."""
        for frame in self._frames:
            yield RecordedFrame(timestamp=frame.timestamp, vector=frame.vector.copy())

    def play_realtime(self, speed: float = 1.0) -> Iterator[RecordedFrame]:
        """Replay at original timing (or scaled by speed factor)."""
        if not self._frames:
            return

        start = time.monotonic()
        for frame in self.play():
            target_time = frame.timestamp / speed
            elapsed = time.monotonic() - start
            if target_time > elapsed:
                time.sleep(target_time - elapsed)
            yield frame

    def vectors(self) -> np.ndarray:
        """All frames as an array of shape (N, D)."""
        if not self._frames:
            return np.zeros((0, 0), dtype=np.float64)
        return np.stack([f.vector for f in self._frames])
