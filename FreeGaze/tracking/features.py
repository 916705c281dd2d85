"""
Eye feature extraction from MediaPipe FaceMesh landmarks (478 points, iris refined).

extract() turns one frame of landmarks into an 8-value FeatureVector:

    [0] left iris offset X / eye width
    [1] left iris offset Y / eye width
    [2] left aperture / eye width
    [3] right iris offset X / eye width
    [4] right iris offset Y / eye width
    [5] right aperture / eye width
    [6] iris symmetry      |left X - right X|
    [7] aperture symmetry  |left aperture - right aperture|

Every value is multiplied by FEATURE_GAIN. A trained predictor expects this
scale, so the gain is part of the vector's definition.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from FreeGaze.core.config import ValidityThresholds

logger = logging.getLogger(__name__)

MIN_LANDMARKS = 478
FEATURE_GAIN = 10.0

FEATURE_NAMES = [
    "left_iris_x",
    "left_iris_y",
    "left_aperture",
    "right_iris_x",
    "right_iris_y",
    "right_aperture",
    "iris_symmetry",
    "aperture_symmetry",
]


@dataclass(frozen=True)
class LandmarkIndices:
    """FaceMesh indices for each landmark role."""
    left_eye_inner: int = 133
    left_eye_outer: int = 33
    left_eye_top: int = 159
    left_eye_bottom: int = 145
    right_eye_inner: int = 362
    right_eye_outer: int = 263
    right_eye_top: int = 386
    right_eye_bottom: int = 374
    left_iris_center: int = 468
    right_iris_center: int = 473
    face_left: int = 234
    face_right: int = 454


@dataclass(frozen=True)
class RawEyeMetrics:
    left_offset: Tuple[float, float]
    right_offset: Tuple[float, float]
    left_aperture: float
    right_aperture: float
    left_eye_width: float
    right_eye_width: float
    face_width: float


class FeatureVector:
    """Fixed-order, gain-scaled eye features for one frame."""

    __slots__ = ("values", "raw", "sample_count")

    def __init__(self, values: Iterable[float], raw: Optional[RawEyeMetrics] = None, sample_count: int = 1) -> None:
        arr = np.asarray(list(values), dtype=float)
        if arr.shape != (len(FEATURE_NAMES),):
            raise ValueError(f"feature vector needs {len(FEATURE_NAMES)} values, got {arr.size}")
        self.values = arr
        self.raw = raw
        self.sample_count = int(sample_count)

    # Sequence protocol -------------------------------------------------
    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, i):
        if isinstance(i, slice):
            return [float(v) for v in self.values[i]]
        return float(self.values[i])

    def __iter__(self):
        return (float(v) for v in self.values)

    def __repr__(self) -> str:
        body = ", ".join(f"{v:.3f}" for v in self.values)
        return f"FeatureVector([{body}])"

    def as_list(self) -> List[float]:
        return [float(v) for v in self.values]

    # Named access ------------------------------------------------------
    @property
    def left_iris_x(self) -> float:
        return float(self.values[0])

    @property
    def left_iris_y(self) -> float:
        return float(self.values[1])

    @property
    def left_aperture(self) -> float:
        return float(self.values[2])

    @property
    def right_iris_x(self) -> float:
        return float(self.values[3])

    @property
    def right_iris_y(self) -> float:
        return float(self.values[4])

    @property
    def right_aperture(self) -> float:
        return float(self.values[5])

    @property
    def iris_symmetry(self) -> float:
        return float(self.values[6])

    @property
    def aperture_symmetry(self) -> float:
        return float(self.values[7])


VectorLike = Union[FeatureVector, Sequence[float], np.ndarray]


def _as_points(landmarks) -> Optional[np.ndarray]:
    """Coerce landmarks into an (N, 3) float array, or None if unusable."""
    if landmarks is None:
        return None
    try:
        n = len(landmarks)
    except TypeError:
        return None
    if n < MIN_LANDMARKS:
        return None
    try:
        if isinstance(landmarks, np.ndarray):
            pts = landmarks.astype(float, copy=False)
        elif hasattr(landmarks[0], "x"):
            # MediaPipe NormalizedLandmark objects
            pts = np.array([(p.x, p.y, getattr(p, "z", 0.0) or 0.0) for p in landmarks], dtype=float)
        else:
            pts = np.array([tuple(p[:3]) + (0.0,) * (3 - len(p[:3])) for p in landmarks], dtype=float)
    except (TypeError, ValueError, AttributeError):
        return None
    if pts.ndim != 2 or pts.shape[1] < 2:
        return None
    if pts.shape[1] == 2:
        pts = np.hstack([pts, np.zeros((pts.shape[0], 1))])
    return pts[:, :3]


class FeatureExtractor:
    def __init__(self, indices: Optional[LandmarkIndices] = None, gain: float = FEATURE_GAIN) -> None:
        self.indices = indices or LandmarkIndices()
        self.gain = float(gain)

    def _eye(self, pts: np.ndarray, inner: int, outer: int, top: int, bottom: int, iris: int):
        center = (pts[inner] + pts[outer]) / 2.0
        offset = pts[iris] - center
        width = float(np.linalg.norm(pts[inner] - pts[outer]))
        aperture = float(np.linalg.norm(pts[top] - pts[bottom]))
        return (float(offset[0]), float(offset[1])), width, aperture

    def extract(self, landmarks) -> Optional[FeatureVector]:
        pts = _as_points(landmarks)
        if pts is None:
            logger.debug(f"Need {MIN_LANDMARKS} landmarks for iris features; frame skipped")
            return None
        idx = self.indices
        l_off, l_w, l_ap = self._eye(pts, idx.left_eye_inner, idx.left_eye_outer, idx.left_eye_top, idx.left_eye_bottom, idx.left_iris_center)
        r_off, r_w, r_ap = self._eye(pts, idx.right_eye_inner, idx.right_eye_outer, idx.right_eye_top, idx.right_eye_bottom, idx.right_iris_center)
        if not (l_w > 0.0 and r_w > 0.0) or not all(math.isfinite(v) for v in (l_w, r_w, l_ap, r_ap)):
            logger.warning("Degenerate eye geometry (zero eye width); frame skipped")
            return None

        lx, ly = l_off[0] / l_w, l_off[1] / l_w
        rx, ry = r_off[0] / r_w, r_off[1] / r_w
        l_ratio = l_ap / l_w
        r_ratio = r_ap / r_w
        face_width = float(np.linalg.norm(pts[idx.face_left] - pts[idx.face_right]))

        g = self.gain
        values = [
            lx * g,
            ly * g,
            l_ratio * g,
            rx * g,
            ry * g,
            r_ratio * g,
            abs(lx - rx) * g,
            abs(l_ratio - r_ratio) * g,
        ]
        raw = RawEyeMetrics(
            left_offset=l_off,
            right_offset=r_off,
            left_aperture=l_ap,
            right_aperture=r_ap,
            left_eye_width=l_w,
            right_eye_width=r_w,
            face_width=face_width,
        )
        return FeatureVector(values, raw=raw)


def is_valid(vector: Optional[VectorLike], thresholds: Optional[ValidityThresholds] = None) -> bool:
    """Reject blinks, far off-axis glances and left/right disagreement."""
    if vector is None:
        return False
    t = thresholds or ValidityThresholds()
    v = vector.values if isinstance(vector, FeatureVector) else np.asarray(vector, dtype=float)
    if v.shape != (len(FEATURE_NAMES),) or not np.all(np.isfinite(v)):
        return False
    # Eye closed / blinking
    if v[2] < t.min_aperture or v[5] < t.min_aperture:
        return False
    # Looking far off-axis or detection noise
    if any(abs(v[i]) > t.max_offset for i in (0, 1, 3, 4)):
        return False
    # Eyes disagree
    if v[6] > t.max_symmetry or v[7] > t.max_symmetry:
        return False
    return True


def average_features(vectors: Sequence[VectorLike], thresholds: Optional[ValidityThresholds] = None) -> Optional[FeatureVector]:
    """Element-wise mean of the valid vectors; None if none are valid."""
    valid = [v for v in vectors if is_valid(v, thresholds)]
    if not valid:
        return None
    stack = np.array([v.values if isinstance(v, FeatureVector) else np.asarray(v, dtype=float) for v in valid])
    return FeatureVector(stack.mean(axis=0), sample_count=len(valid))


def format_features(vector: Optional[VectorLike]) -> str:
    if vector is None:
        return "No features"
    v = vector if isinstance(vector, FeatureVector) else FeatureVector(vector)
    return (
        f"Left Eye:  Iris({v.left_iris_x:.2f}, {v.left_iris_y:.2f}) Aperture({v.left_aperture:.2f})\n"
        f"Right Eye: Iris({v.right_iris_x:.2f}, {v.right_iris_y:.2f}) Aperture({v.right_aperture:.2f})\n"
        f"Symmetry:  Iris({v.iris_symmetry:.2f}) Aperture({v.aperture_symmetry:.2f})\n"
        f"Vector: [{', '.join(f'{x:.2f}' for x in v)}]"
    )
