"""Tests for the gesture recognition engine."""

import math
import threading

import numpy as np
import pytest

from gesture_dtw.config import EngineConfig
from gesture_dtw.dtw import resample_sequence
from gesture_dtw.engine import (
    UNKNOWN_LABEL,
    EngineState,
    GestureRecognitionEngine,
    RecognitionResult,
)
from gesture_dtw.errors import (
    CaptureStateError,
    DimensionMismatchError,
    DuplicateTemplateError,
    TemplateTooShortError,
)
from gesture_dtw.templates import GestureTemplate, TemplateStore


SWIPE = [(0, 0), (1, 0), (2, 0), (3, 0)]


def make_engine(**overrides):
    params = dict(
        dimensionality=2,
        match_threshold=0.1,
        downsample_stride=1,
        buffer_capacity=32,
        min_frames_before_match=3,
    )
    params.update(overrides)
    return GestureRecognitionEngine(EngineConfig(**params))


def with_swipe(engine):
    engine.store.add(GestureTemplate("swipe", np.array(SWIPE, dtype=np.float64)))
    return engine


class TestRecognition:
    def test_swipe_matches(self):
        engine = with_swipe(make_engine())
        results = [engine.push(f) for f in SWIPE]

        assert results[:3] == [None, None, None]
        assert results[3].matched
        assert results[3].name == "swipe"
        assert results[3].distance == pytest.approx(0.0, abs=1e-9)
        assert engine.buffer_length == 0

    def test_offset_path_is_unknown(self):
        engine = with_swipe(make_engine())
        results = [engine.push((x, 5)) for x, _ in SWIPE]

        result = results[-1]
        assert not result.matched
        assert result.name == UNKNOWN_LABEL
        assert result.best_name == "swipe"
        assert result.distance == pytest.approx(2.5)
        assert engine.buffer_length == 4

    def test_gate_is_strictly_greater(self):
        engine = with_swipe(make_engine(min_frames_before_match=4))
        results = [engine.push(f) for f in SWIPE]
        assert results == [None] * 4
        assert engine.stats.matching_passes == 0

    def test_empty_store_never_matches(self):
        engine = make_engine()
        results = [engine.push((i, i)) for i in range(10)]
        passes = [r for r in results if r is not None]
        assert len(passes) == 7
        assert all(not r.matched for r in passes)
        assert all(math.isinf(r.distance) for r in passes)
        assert all(r.best_name is None for r in passes)

    def test_buffer_bounded_and_fifo(self):
        engine = make_engine(buffer_capacity=5, min_frames_before_match=2)
        for i in range(20):
            engine.push((i, 0))
            assert engine.buffer_length <= 5
        np.testing.assert_array_equal(engine.buffer_snapshot()[:, 0], [15, 16, 17, 18, 19])

    def test_nan_frame_dropped(self):
        engine = with_swipe(make_engine())
        engine.push((0, 0))
        assert engine.push((float("nan"), 0)) is None
        assert engine.buffer_length == 1
        assert engine.stats.frames_dropped == 1

    def test_nan_does_not_break_match(self):
        engine = with_swipe(make_engine())
        frames = [(0, 0), (1, 0), (float("nan"), 1), (2, 0), (3, 0)]
        results = [engine.push(f) for f in frames]
        assert results[-1].matched

    def test_downsampling(self):
        engine = with_swipe(make_engine(downsample_stride=2))
        # Each frame delivered twice, only the second copy is kept
        results = [engine.push(f) for f in SWIPE for _ in range(2)]
        assert results[-1].matched
        assert engine.stats.frames_pushed == 8

    def test_matching_restarts_after_match(self):
        engine = with_swipe(make_engine())
        for f in SWIPE:
            engine.push(f)
        results = [engine.push(f) for f in SWIPE]
        assert results[:3] == [None, None, None]
        assert results[3].matched
        assert engine.stats.matches == 2

    def test_tie_goes_to_first_template(self):
        engine = make_engine()
        engine.store.add(GestureTemplate("first", np.array(SWIPE, dtype=np.float64)))
        engine.store.add(GestureTemplate("second", np.array(SWIPE, dtype=np.float64)))
        result = [engine.push(f) for f in SWIPE][-1]
        assert result.name == "first"

    def test_near_tie_keeps_threshold_on_minimum(self):
        # "a" wins the tie-break at 0.525 but "b" at 0.5 is within the threshold
        engine = GestureRecognitionEngine(EngineConfig(
            dimensionality=1, match_threshold=0.5, tie_epsilon=0.1,
            downsample_stride=1, min_frames_before_match=1,
        ))
        engine.store.add(GestureTemplate("a", np.array([[1.05], [1.05]])))
        engine.store.add(GestureTemplate("b", np.array([[1.0], [1.0]])))

        result = engine.recognize(np.zeros((2, 1)))
        assert result.matched
        assert result.name == "a"
        assert result.distance == pytest.approx(0.525)

        engine.push([0.0])
        result = engine.push([0.0])
        assert result.matched
        assert result.name == "a"

    def test_recognize_empty_sequence_is_unknown(self):
        engine = with_swipe(make_engine())
        result = engine.recognize(np.zeros((0, 2)))
        assert not result.matched
        assert result.name == UNKNOWN_LABEL
        assert result.frames == 0

    def test_window_configured(self):
        engine = with_swipe(make_engine(dtw_window=1))
        assert [engine.push(f) for f in SWIPE][-1].matched

    def test_time_stretched_template_matches(self):
        t = np.linspace(0.0, 1.0, 20)
        path = np.column_stack([t, 0.3 * np.sin(2 * math.pi * t)])
        engine = make_engine()
        engine.store.add(GestureTemplate("wave", path))

        result = engine.recognize(resample_sequence(path, 30))
        assert result.matched
        assert result.name == "wave"

    def test_callbacks(self):
        engine = with_swipe(make_engine())
        seen = []
        engine.on_recognition(seen.append)
        for f in SWIPE:
            engine.push(f)
        assert len(seen) == 1
        assert isinstance(seen[0], RecognitionResult)
        assert seen[0].name == "swipe"

    def test_callback_registered_during_delivery(self):
        engine = with_swipe(make_engine())
        late = []

        def register_more(result):
            engine.on_recognition(late.append)

        engine.on_recognition(register_more)
        for f in SWIPE:
            engine.push(f)
        assert late == []

        for f in SWIPE:
            engine.push(f)
        assert len(late) == 1
        assert late[0].name == "swipe"

    def test_reset(self):
        engine = make_engine()
        engine.push((0, 0))
        engine.reset()
        assert engine.buffer_length == 0


class TestDimensions:
    def test_push_wrong_dimensionality(self):
        engine = make_engine()
        with pytest.raises(DimensionMismatchError):
            engine.push((1, 2, 3))

    def test_store_dimensionality_checked(self):
        store = TemplateStore(dimensionality=4)
        with pytest.raises(DimensionMismatchError):
            GestureRecognitionEngine(EngineConfig(dimensionality=2), store=store)

    def test_empty_store_never_raises_mismatch(self):
        engine = make_engine()
        for i in range(8):
            engine.push((i, 0))

    def test_recognize_wrong_dimensionality(self):
        engine = make_engine()
        with pytest.raises(DimensionMismatchError):
            engine.recognize(np.zeros((5, 3)))


class TestPushPoints:
    def test_default_joint_layout(self):
        engine = GestureRecognitionEngine(EngineConfig(downsample_stride=1))
        assert engine.extractor.dimensionality == 12
        engine.push_points(np.zeros((6, 2)))
        assert engine.buffer_length == 1

    def test_untrackable_joint_dropped(self):
        engine = GestureRecognitionEngine(EngineConfig(downsample_stride=1))
        pts = np.zeros((6, 2))
        pts[2, 1] = np.nan
        assert engine.push_points(pts) is None
        assert engine.buffer_length == 0
        assert engine.stats.frames_dropped == 1

    def test_generic_layout(self):
        engine = with_swipe(make_engine())
        results = [engine.push_points([p]) for p in SWIPE]
        assert results[-1].matched


class TestCapture:
    def test_tap_capture(self):
        engine = make_engine()
        engine.start_capture("tap")
        assert engine.state == EngineState.CAPTURING
        engine.push((0, 0))
        engine.push((1, 1))
        template = engine.stop_capture()

        assert template.name == "tap"
        assert template.length == 2
        assert engine.store.get("tap").length == 2
        assert engine.state == EngineState.IDLE

        with pytest.raises(CaptureStateError):
            engine.stop_capture()

    def test_capture_is_not_size_limited(self):
        engine = make_engine(buffer_capacity=5, min_frames_before_match=2)
        engine.start_capture("long")
        for i in range(40):
            engine.push((i, 0))
        assert engine.capture_length == 40
        assert engine.stop_capture().length == 40

    def test_capture_bypasses_live_buffer(self):
        engine = with_swipe(make_engine())
        engine.push((9, 9))
        engine.start_capture("other")
        results = [engine.push(f) for f in SWIPE]
        assert results == [None] * 4
        assert engine.buffer_length == 1
        engine.stop_capture()
        assert engine.buffer_length == 0

    def test_capture_applies_nan_drop_and_stride(self):
        engine = make_engine(downsample_stride=2)
        engine.start_capture("g")
        for f in [(0, 0), (1, 0), (float("nan"), 0), (2, 0), (3, 0)]:
            engine.push(f)
        template = engine.stop_capture()
        np.testing.assert_array_equal(template.sequence, [[1, 0], [3, 0]])

    def test_short_capture_rejected(self):
        engine = make_engine()
        engine.start_capture("tap")
        engine.push((0, 0))
        with pytest.raises(TemplateTooShortError):
            engine.stop_capture()
        assert len(engine.store) == 0
        assert not engine.is_capturing

    def test_start_twice(self):
        engine = make_engine()
        engine.start_capture("a")
        engine.push((0, 0))
        with pytest.raises(CaptureStateError):
            engine.start_capture("b")
        assert engine.capture_name == "a"
        assert engine.capture_length == 1

    def test_empty_name(self):
        with pytest.raises(ValueError):
            make_engine().start_capture("")

    def test_duplicate_name_can_retry(self):
        engine = with_swipe(make_engine())
        engine.start_capture("swipe")
        engine.push((0, 1))
        engine.push((1, 1))
        with pytest.raises(DuplicateTemplateError):
            engine.stop_capture()
        assert not engine.is_capturing
        assert engine.has_pending_capture

        template = engine.stop_capture(name="swipe_high")
        assert template.name == "swipe_high"
        assert template.length == 2
        assert engine.store.names == ["swipe", "swipe_high"]
        assert not engine.has_pending_capture

    def test_duplicate_rejection_resumes_recognition(self):
        engine = with_swipe(make_engine())
        engine.start_capture("swipe")
        engine.push((0, 1))
        engine.push((1, 1))
        with pytest.raises(DuplicateTemplateError):
            engine.stop_capture()
        assert engine.state == EngineState.IDLE

        # Frames go back to the live buffer, not into the rejected capture
        results = [engine.push(f) for f in SWIPE]
        assert results[-1].matched
        assert results[-1].name == "swipe"

        engine.push((9, 9))
        assert engine.stop_capture(name="other").length == 2
        assert engine.buffer_length == 1
        with pytest.raises(CaptureStateError):
            engine.stop_capture()

    def test_duplicate_retry_with_taken_name_stays_pending(self):
        engine = with_swipe(make_engine())
        engine.start_capture("swipe")
        engine.push((0, 1))
        engine.push((1, 1))
        with pytest.raises(DuplicateTemplateError):
            engine.stop_capture()
        with pytest.raises(DuplicateTemplateError):
            engine.stop_capture(name="swipe")
        assert engine.has_pending_capture

        engine.cancel_capture()
        assert not engine.has_pending_capture
        assert engine.store.names == ["swipe"]
        with pytest.raises(CaptureStateError):
            engine.cancel_capture()

    def test_new_capture_discards_pending(self):
        engine = with_swipe(make_engine())
        engine.start_capture("swipe")
        engine.push((0, 1))
        engine.push((1, 1))
        with pytest.raises(DuplicateTemplateError):
            engine.stop_capture()

        engine.start_capture("tap")
        assert not engine.has_pending_capture
        engine.push((5, 5))
        engine.push((6, 6))
        engine.push((7, 7))
        assert engine.stop_capture().length == 3

    def test_duplicate_name_overwrite(self):
        engine = with_swipe(make_engine(allow_overwrite=True))
        engine.start_capture("swipe")
        engine.push((0, 1))
        engine.push((1, 1))
        engine.stop_capture()
        assert engine.store.get("swipe").length == 2

    def test_cancel(self):
        engine = make_engine()
        engine.start_capture("a")
        engine.push((0, 0))
        engine.cancel_capture()
        assert not engine.is_capturing
        assert len(engine.store) == 0
        with pytest.raises(CaptureStateError):
            engine.cancel_capture()

    def test_captured_template_is_recognised(self):
        engine = make_engine()
        engine.start_capture("swipe")
        for f in SWIPE:
            engine.push(f)
        engine.stop_capture()

        result = [engine.push(f) for f in SWIPE][-1]
        assert result.matched
        assert result.name == "swipe"


class TestConcurrency:
    def test_frames_and_capture_commands_from_two_threads(self):
        engine = with_swipe(make_engine(min_frames_before_match=2, buffer_capacity=8))
        errors = []

        def producer():
            try:
                for i in range(2000):
                    engine.push((i % 4, 0))
            except Exception as e:  # pragma: no cover
                errors.append(e)

        thread = threading.Thread(target=producer)
        thread.start()
        for _ in range(50):
            engine.start_capture("scratch")
            engine.cancel_capture()
        thread.join()

        assert errors == []
        assert engine.buffer_length <= 8
        assert engine.store.names == ["swipe"]
