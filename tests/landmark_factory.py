"""Synthetic FaceMesh landmark sets for tests."""
from __future__ import annotations

from typing import List, Optional, Tuple

from FreeGaze.calibration.models import CalibrationRecord, default_targets
from FreeGaze.tracking.features import MIN_LANDMARKS, FeatureVector

Landmark = Tuple[float, float, float]


def make_landmarks(
    left_iris: Tuple[float, float] = (0.45, 0.50),
    right_iris: Tuple[float, float] = (0.55, 0.50),
    left_aperture: float = 0.04,
    right_aperture: float = 0.04,
    count: int = MIN_LANDMARKS,
) -> List[Landmark]:
    """Both eyes 0.1 wide; left eye centred at (0.45, 0.5), right at (0.55, 0.5)."""
    pts: List[Landmark] = [(0.5, 0.5, 0.0) for _ in range(count)]

    def put(i: int, x: float, y: float) -> None:
        if i < count:
            pts[i] = (x, y, 0.0)

    put(133, 0.40, 0.50)  # left inner
    put(33, 0.50, 0.50)   # left outer
    put(159, 0.45, 0.50 - left_aperture / 2)
    put(145, 0.45, 0.50 + left_aperture / 2)
    put(362, 0.50, 0.50)  # right inner
    put(263, 0.60, 0.50)  # right outer
    put(386, 0.55, 0.50 - right_aperture / 2)
    put(374, 0.55, 0.50 + right_aperture / 2)
    put(468, left_iris[0], left_iris[1])
    put(473, right_iris[0], right_iris[1])
    put(234, 0.30, 0.50)
    put(454, 0.70, 0.50)
    return pts


def make_vector(
    offset: float = 0.0,
    aperture: float = 4.0,
    iris_symmetry: float = 0.0,
    aperture_symmetry: float = 0.0,
    overrides: Optional[dict] = None,
) -> FeatureVector:
    values = [offset, offset, aperture, offset, offset, aperture, iris_symmetry, aperture_symmetry]
    for i, v in (overrides or {}).items():
        values[i] = v
    return FeatureVector(values)


def make_records(screen_size: Tuple[int, int] = (1000, 500)) -> List[CalibrationRecord]:
    """Nine records whose iris offsets move linearly with the target."""
    w, h = screen_size
    out: List[CalibrationRecord] = []
    for t in default_targets():
        fx = (t.x_pct - 50.0) / 20.0
        fy = (t.y_pct - 50.0) / 20.0
        features = (fx, fy, 4.0, fx, fy, 4.0, 0.0, 0.0)
        x, y = t.to_screen((w, h))
        out.append(CalibrationRecord(target_x=x, target_y=y, features=features, sample_count=60))
    return out
