"""Tests for feature-vector extraction."""

import numpy as np
import pytest

from gesture_dtw.errors import InvalidFrameError
from gesture_dtw.features import DEFAULT_JOINTS, FeatureExtractor, extract_features


class TestExtractFeatures:
    def test_x_then_y_in_point_order(self):
        vec = extract_features([(1.0, 2.0), (3.0, 4.0), (5.0, 6.0)])
        np.testing.assert_array_equal(vec, [1, 2, 3, 4, 5, 6])

    def test_extra_columns_ignored(self):
        vec = extract_features([[1.0, 2.0, 9.0], [3.0, 4.0, 9.0]])
        np.testing.assert_array_equal(vec, [1, 2, 3, 4])

    def test_nan_is_reported(self):
        with pytest.raises(InvalidFrameError) as exc:
            extract_features([(0.0, 0.0), (np.nan, 1.0)])
        assert exc.value.point_index == 1

    def test_infinite_is_reported(self):
        with pytest.raises(InvalidFrameError):
            extract_features([(np.inf, 0.0)])

    def test_nan_in_ignored_column_is_fine(self):
        vec = extract_features([[1.0, 2.0, np.nan]])
        np.testing.assert_array_equal(vec, [1, 2])

    def test_bad_shape(self):
        with pytest.raises(InvalidFrameError):
            extract_features([1.0, 2.0])

    def test_does_not_alias_input(self):
        pts = np.array([[1.0, 2.0]])
        vec = extract_features(pts)
        vec[0] = 99
        assert pts[0, 0] == 1.0


class TestFeatureExtractor:
    def test_default_selection(self):
        extractor = FeatureExtractor()
        assert extractor.joints == DEFAULT_JOINTS
        assert extractor.dimensionality == 12

    def test_extract_joints_uses_fixed_order(self):
        extractor = FeatureExtractor(joints=["a", "b"])
        vec = extractor.extract_joints({"b": (3, 4), "a": (1, 2)})
        np.testing.assert_array_equal(vec, [1, 2, 3, 4])

    def test_missing_joint(self):
        extractor = FeatureExtractor(joints=["a", "b"])
        with pytest.raises(InvalidFrameError, match="b"):
            extractor.extract_joints({"a": (1, 2)})

    def test_wrong_point_count(self):
        extractor = FeatureExtractor(joints=["a", "b"])
        with pytest.raises(InvalidFrameError):
            extractor.extract([(1, 2)])

    def test_duplicate_joints_rejected(self):
        with pytest.raises(ValueError):
            FeatureExtractor(joints=["a", "a"])
