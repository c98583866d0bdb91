"""gesture-dtw - Dynamic gesture recognition with DTW template matching."""

__version__ = "0.1.0"

from gesture_dtw.buffer import SequenceBuffer
from gesture_dtw.config import EngineConfig
from gesture_dtw.dtw import DtwMatcher, dtw_distance, resample_sequence
from gesture_dtw.engine import (
    UNKNOWN_LABEL,
    EngineState,
    EngineStats,
    GestureRecognitionEngine,
    RecognitionResult,
)
from gesture_dtw.errors import (
    CaptureStateError,
    DimensionMismatchError,
    DuplicateTemplateError,
    GestureError,
    InvalidFrameError,
    TemplateTooShortError,
)
from gesture_dtw.features import DEFAULT_JOINTS, FeatureExtractor, extract_features
from gesture_dtw.recorder import FramePlayer, FrameRecorder, RecordedFrame
from gesture_dtw.templates import GestureTemplate, TemplateStore
