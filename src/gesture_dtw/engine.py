"""Gesture recognition engine: live buffer, DTW matching and capture mode.

The engine is driven synchronously by a single frame producer. Each call to
``push`` updates the live buffer and, once enough frames have accumulated,
scores the buffer against every stored template.

Usage:
    engine = GestureRecognitionEngine(EngineConfig(dimensionality=12))

    # In the sensor callback:
    result = engine.push(vector)
    if result and result.matched:
        print(f"Recognised {result.name} (distance={result.distance:.3f})")

    # Record a new template:
    engine.start_capture("wave")
    # ... feed frames ...
    engine.stop_capture()
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import numpy as np

from gesture_dtw.buffer import SequenceBuffer
from gesture_dtw.config import EngineConfig
from gesture_dtw.dtw import DtwMatcher
from gesture_dtw.errors import (
    CaptureStateError,
    DimensionMismatchError,
    DuplicateTemplateError,
    InvalidFrameError,
    TemplateTooShortError,
)
from gesture_dtw.features import DEFAULT_JOINTS, FeatureExtractor
from gesture_dtw.templates import GestureTemplate, TemplateStore

logger = logging.getLogger("gesture_dtw.engine")

UNKNOWN_LABEL = "__UNKNOWN"


class EngineState(Enum):
    IDLE = "idle"
    RECOGNIZING = "recognizing"
    CAPTURING = "capturing"


@dataclass(frozen=True)
class RecognitionResult:
    """Outcome of one matching pass.

    For an unknown result ``name`` is UNKNOWN_LABEL and ``best_name`` /
    ``distance`` describe the closest template that was rejected (None / inf
    when no templates are stored).
    """
    matched: bool
    name: str
    distance: float
    best_name: Optional[str] = None
    frames: int = 0  # live buffer length that was scored

    @classmethod
    def match(cls, name: str, distance: float, frames: int = 0) -> RecognitionResult:
        return cls(matched=True, name=name, distance=distance, best_name=name, frames=frames)

    @classmethod
    def unknown(
        cls, best_name: Optional[str] = None, distance: float = float("inf"), frames: int = 0
    ) -> RecognitionResult:
        return cls(
            matched=False, name=UNKNOWN_LABEL, distance=distance,
            best_name=best_name, frames=frames,
        )


@dataclass
class EngineStats:
    """Runtime counters."""
    frames_pushed: int = 0
    frames_dropped: int = 0
    matching_passes: int = 0
    matches: int = 0
    last_pass_ms: float = 0.0


class GestureRecognitionEngine:
    """Recognizes gestures in a live feature-vector stream.

    Owns its live buffer, capture sequence and template store. A single
    re-entrant lock spans every public state-changing call, so frames and
    capture commands may arrive from different threads.

    Each matching pass costs O(templates * n * m) for a live buffer of n
    frames and templates of m frames.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        store: Optional[TemplateStore] = None,
        extractor: Optional[FeatureExtractor] = None,
    ):
        self.config = config or EngineConfig()
        dim = self.config.dimensionality

        self.store = store if store is not None else TemplateStore(dimensionality=dim)
        if self.store.dimensionality not in (None, dim):
            raise DimensionMismatchError(dim, self.store.dimensionality, context="template store")

        if extractor is None:
            if dim == 2 * len(DEFAULT_JOINTS):
                extractor = FeatureExtractor()
            elif dim % 2 == 0:
                extractor = FeatureExtractor(joints=[f"point_{i}" for i in range(dim // 2)])
        elif extractor.dimensionality != dim:
            raise DimensionMismatchError(dim, extractor.dimensionality, context="feature extractor")
        self.extractor = extractor

        self.matcher = DtwMatcher(window=self.config.dtw_window, epsilon=self.config.tie_epsilon)

        self._buffer = SequenceBuffer(
            dim,
            capacity=self.config.buffer_capacity,
            stride=self.config.downsample_stride,
        )
        self._capture: Optional[SequenceBuffer] = None
        self._capture_name: Optional[str] = None
        # Frames kept after a duplicate-name rejection, awaiting a new name
        self._pending_frames: Optional[np.ndarray] = None
        self._pending_name: Optional[str] = None
        self._state = EngineState.IDLE
        self._lock = threading.RLock()
        self._callbacks: list[Callable[[RecognitionResult], None]] = []
        self._stats = EngineStats()

    # ── event delivery ──────────────────────────────────────

    def on_recognition(self, callback: Callable[[RecognitionResult], None]):
        """Register a callback for every matching-pass result."""
        with self._lock:
            self._callbacks.append(callback)

    # ── frame input ─────────────────────────────────────────

    def push(self, vector) -> Optional[RecognitionResult]:
        """Feed one feature vector.

        Returns the result of the matching pass this frame triggered, or
        None if no pass ran (frame dropped or downsampled, buffer below the
        minimum length, or capture in progress).

        Raises:
            DimensionMismatchError: if the vector length is not D.
        """
        with self._lock:
            self._stats.frames_pushed += 1

            if self._state == EngineState.CAPTURING:
                self._offer(self._capture, vector)
                return None

            appended = self._offer(self._buffer, vector)
            if not appended or len(self._buffer) <= self.config.min_frames_before_match:
                return None

            result = self._run_matching_pass()
            callbacks = list(self._callbacks)

        for cb in callbacks:
            cb(result)
        return result

    def push_points(self, points) -> Optional[RecognitionResult]:
        """Extract a feature vector from 2D joint points and push it.

        A frame with an untrackable joint is dropped and None is returned.
        """
        if self.extractor is None:
            raise ValueError(f"no 2D point layout for dimensionality {self.config.dimensionality}")
        try:
            vector = self.extractor.extract(points)
        except InvalidFrameError as e:
            with self._lock:
                self._stats.frames_pushed += 1
                self._stats.frames_dropped += 1
            logger.debug("Dropping frame: %s", e)
            return None
        return self.push(vector)

    def _offer(self, buffer: SequenceBuffer, vector) -> bool:
        before = buffer.dropped_count
        appended = buffer.push(vector)
        self._stats.frames_dropped += buffer.dropped_count - before
        return appended

    # ── matching ────────────────────────────────────────────

    def _run_matching_pass(self) -> RecognitionResult:
        """Score the live buffer against all templates. Caller holds the lock."""
        self._state = EngineState.RECOGNIZING
        t0 = time.perf_counter()
        try:
            live = self._buffer.to_array()
            for template in self.store:
                if template.dimensionality != self.config.dimensionality:
                    raise DimensionMismatchError(
                        self.config.dimensionality,
                        template.dimensionality,
                        context=f"template {template.name!r}",
                    )
            result = self._decide(live)
        finally:
            self._state = EngineState.IDLE
            self._stats.matching_passes += 1
            self._stats.last_pass_ms = (time.perf_counter() - t0) * 1000.0

        if result.matched:
            self._buffer.clear()
            self._stats.matches += 1
            logger.info("Recognised %s (distance=%.4f, frames=%d)", result.name, result.distance, len(live))
        else:
            logger.debug("No match: closest %s at %.4f", result.best_name, result.distance)
        return result

    def _decide(self, seq: np.ndarray) -> RecognitionResult:
        """Match when the minimum distance is within the threshold.

        The reported template is the first one within tie_epsilon of that
        minimum, with its own distance.
        """
        chosen = self.matcher.select(self.matcher.score_all(seq, self.store))
        if chosen is None:
            return RecognitionResult.unknown(frames=len(seq))

        name, distance, minimum = chosen
        if minimum <= self.config.match_threshold:
            return RecognitionResult.match(name, distance, frames=len(seq))
        return RecognitionResult.unknown(name, distance, frames=len(seq))

    def recognize(self, sequence) -> RecognitionResult:
        """Score an arbitrary sequence without touching the live buffer.

        An empty (0, D) sequence is unknown.
        """
        seq = np.asarray(sequence, dtype=np.float64)
        if seq.ndim != 2 or seq.shape[1] != self.config.dimensionality:
            actual = seq.shape[1] if seq.ndim == 2 else seq.size
            raise DimensionMismatchError(self.config.dimensionality, actual, context="sequence")
        if len(seq) == 0:
            return RecognitionResult.unknown()
        with self._lock:
            return self._decide(seq)

    # ── capture mode ────────────────────────────────────────

    def start_capture(self, name: str):
        """Begin recording a new template.

        Discards any capture left pending by a rejected name.

        Raises:
            CaptureStateError: if a capture is already in progress.
        """
        if not name:
            raise ValueError("template name must be non-empty")
        with self._lock:
            if self._state == EngineState.CAPTURING:
                raise CaptureStateError(
                    f"already capturing {self._capture_name!r}; stop or cancel it first"
                )
            self._clear_pending()
            self._capture = SequenceBuffer(
                self.config.dimensionality,
                capacity=None,
                stride=self.config.downsample_stride,
            )
            self._capture_name = name
            self._state = EngineState.CAPTURING
            logger.info("Capturing template %s", name)

    def stop_capture(self, name: Optional[str] = None) -> GestureTemplate:
        """Commit the capture as a template and return it.

        Args:
            name: Commit under this name instead of the one given to
                start_capture (used to retry after a duplicate name).

        Raises:
            CaptureStateError: if there is neither a capture in progress nor
                one pending after a rejected name.
            TemplateTooShortError: fewer than 2 frames were captured. The
                capture is discarded.
            DuplicateTemplateError: the name exists and overwrite is off.
                The captured frames are frozen as a pending capture and the
                engine returns to idle, so live frames are recognized again.
                Retry with ``stop_capture(name=...)`` or drop the frames with
                ``cancel_capture()``.
        """
        with self._lock:
            if self._state == EngineState.CAPTURING:
                target = name or self._capture_name
                frames = self._capture.to_array()
            elif self._pending_frames is not None:
                target = name or self._pending_name
                frames = self._pending_frames
            else:
                raise CaptureStateError("stop_capture called without start_capture")

            if len(frames) < 2:
                logger.warning("Discarding capture %s: only %d frame(s)", target, len(frames))
                self._end_capture()
                raise TemplateTooShortError(target, len(frames))

            if target in self.store and not self.config.allow_overwrite:
                logger.warning("Capture %s rejected: name already stored", target)
                self._freeze_capture(target, frames)
                raise DuplicateTemplateError(target)

            template = GestureTemplate(name=target, sequence=frames)
            self.store.add(template, overwrite=self.config.allow_overwrite)
            self._end_capture()
            logger.info("Stored template %s (%d frames)", target, template.length)
            return template

    def cancel_capture(self):
        """Discard the capture in progress, or the one pending after a rejected name."""
        with self._lock:
            if self._state == EngineState.CAPTURING:
                logger.info("Capture %s cancelled", self._capture_name)
            elif self._pending_frames is not None:
                logger.info("Pending capture %s cancelled", self._pending_name)
            else:
                raise CaptureStateError("no capture in progress")
            self._end_capture()

    def _freeze_capture(self, name: str, frames: np.ndarray):
        # Live buffer is left as is; it was not fed while capturing
        self._pending_frames = frames
        self._pending_name = name
        self._capture = None
        self._capture_name = None
        self._state = EngineState.IDLE

    def _clear_pending(self):
        self._pending_frames = None
        self._pending_name = None

    def _end_capture(self):
        # A pending capture already handed the live buffer back to recognition
        if self._state == EngineState.CAPTURING:
            self._buffer.clear()
        self._capture = None
        self._capture_name = None
        self._clear_pending()
        self._state = EngineState.IDLE

    # ── state ───────────────────────────────────────────────

    def reset(self):
        """Clear the live buffer."""
        with self._lock:
            self._buffer.clear()

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_capturing(self) -> bool:
        return self._state == EngineState.CAPTURING

    @property
    def has_pending_capture(self) -> bool:
        """True after a duplicate-name rejection until committed or cancelled."""
        return self._pending_frames is not None

    @property
    def capture_name(self) -> Optional[str]:
        return self._capture_name

    @property
    def capture_length(self) -> int:
        with self._lock:
            return len(self._capture) if self._capture is not None else 0

    @property
    def buffer_length(self) -> int:
        with self._lock:
            return len(self._buffer)

    def buffer_snapshot(self) -> np.ndarray:
        """Copy of the live buffer, shape (len, D)."""
        with self._lock:
            return self._buffer.to_array()

    @property
    def stats(self) -> EngineStats:
        with self._lock:
            return EngineStats(**vars(self._stats))
