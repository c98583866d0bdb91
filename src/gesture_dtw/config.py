"""Engine configuration, loadable from YAML.

Example config.yml:

    dimensionality: 12
    match_threshold: 0.6
    downsample_stride: 2
    buffer_capacity: 32
    min_frames_before_match: 6
    dtw_window: null
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

import yaml


@dataclass
class EngineConfig:
    dimensionality: int = 12
    match_threshold: float = 0.6
    downsample_stride: int = 2
    buffer_capacity: int = 32
    min_frames_before_match: int = 6
    dtw_window: Optional[float] = None  # Sakoe-Chiba band, None = unconstrained
    allow_overwrite: bool = False
    tie_epsilon: float = 1e-9

    def __post_init__(self):
        if self.dimensionality < 1:
            raise ValueError("dimensionality must be >= 1")
        if self.match_threshold < 0:
            raise ValueError("match_threshold must be >= 0")
        if self.downsample_stride < 1:
            raise ValueError("downsample_stride must be >= 1")
        if self.buffer_capacity < 1:
            raise ValueError("buffer_capacity must be >= 1")
        if self.min_frames_before_match < 0:
            raise ValueError("min_frames_before_match must be >= 0")
        if self.min_frames_before_match >= self.buffer_capacity:
            raise ValueError("min_frames_before_match must be below buffer_capacity")
        if self.dtw_window is not None and self.dtw_window < 0:
            raise ValueError("dtw_window must be >= 0 or null")

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> EngineConfig:
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"unknown config keys: {', '.join(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> EngineConfig:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    def to_yaml(self, path: str | Path):
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
