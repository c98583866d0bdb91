"""Tests for engine configuration."""

import pytest
import yaml

from gesture_dtw.config import EngineConfig


class TestEngineConfig:
    def test_defaults(self):
        cfg = EngineConfig()
        assert cfg.dimensionality == 12
        assert cfg.match_threshold == 0.6
        assert cfg.downsample_stride == 2
        assert cfg.buffer_capacity == 32
        assert cfg.min_frames_before_match == 6
        assert cfg.dtw_window is None
        assert cfg.allow_overwrite is False

    @pytest.mark.parametrize("kwargs", [
        {"dimensionality": 0},
        {"match_threshold": -0.1},
        {"downsample_stride": 0},
        {"buffer_capacity": 0},
        {"min_frames_before_match": -1},
        {"buffer_capacity": 6, "min_frames_before_match": 6},
        {"dtw_window": -2},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            EngineConfig(**kwargs)

    def test_yaml_roundtrip(self, tmp_path):
        cfg = EngineConfig(dimensionality=4, match_threshold=0.25, dtw_window=3)
        path = tmp_path / "engine.yml"
        cfg.to_yaml(path)
        assert EngineConfig.from_yaml(path) == cfg

    def test_partial_yaml(self, tmp_path):
        path = tmp_path / "engine.yml"
        path.write_text(yaml.dump({"match_threshold": 0.3}))
        cfg = EngineConfig.from_yaml(path)
        assert cfg.match_threshold == 0.3
        assert cfg.buffer_capacity == 32

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "engine.yml"
        path.write_text("")
        assert EngineConfig.from_yaml(path) == EngineConfig()

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="bogus"):
            EngineConfig.from_dict({"bogus": 1})
