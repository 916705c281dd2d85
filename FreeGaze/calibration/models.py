"""
Calibration data models.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from FreeGaze.tracking.features import FeatureVector


@dataclass(frozen=True)
class CalibrationTarget:
    x_pct: float  # percent of screen width
    y_pct: float  # percent of screen height
    ordinal: int  # 1-based visiting order

    def to_screen(self, screen_size: Tuple[int, int]) -> Tuple[float, float]:
        w, h = screen_size
        return (self.x_pct / 100.0 * float(w), self.y_pct / 100.0 * float(h))


def default_targets(levels: Tuple[float, ...] = (10.0, 50.0, 90.0)) -> List[CalibrationTarget]:
    """Grid of targets visited row by row (top-left first)."""
    out: List[CalibrationTarget] = []
    for y in levels:
        for x in levels:
            out.append(CalibrationTarget(x_pct=float(x), y_pct=float(y), ordinal=len(out) + 1))
    return out


@dataclass
class CalibrationSample:
    features: FeatureVector
    target_x: float
    target_y: float
    timestamp: float = field(default_factory=time.monotonic)


@dataclass(frozen=True)
class CalibrationRecord:
    target_x: float  # absolute screen units
    target_y: float
    features: Tuple[float, ...]  # averaged feature vector
    sample_count: int

    def feature_vector(self) -> FeatureVector:
        return FeatureVector(self.features, sample_count=self.sample_count)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "targetX": float(self.target_x),
            "targetY": float(self.target_y),
            "features": [float(v) for v in self.features],
            "sampleCount": int(self.sample_count),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CalibrationRecord":
        return cls(
            target_x=float(data["targetX"]),
            target_y=float(data["targetY"]),
            features=tuple(float(v) for v in data["features"]),
            sample_count=int(data.get("sampleCount", 1)),
        )
