from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence, Tuple

import math


@dataclass
class PointError:
    true_xy: Tuple[float, float]
    pred_xy: Tuple[float, float]
    dist_px: float


@dataclass
class CalibrationAccuracy:
    mean_px: float
    max_px: float
    rms_px: float
    count: int


def compute_point_errors(true_points: Sequence[Tuple[float, float]], predicted_points: Sequence[Tuple[float, float]]) -> List[PointError]:
    if len(true_points) != len(predicted_points):
        raise ValueError("true and predicted lists must have same length")
    out: List[PointError] = []
    for t, p in zip(true_points, predicted_points):
        dist = math.hypot(float(p[0] - t[0]), float(p[1] - t[1]))
        out.append(PointError(true_xy=(float(t[0]), float(t[1])), pred_xy=(float(p[0]), float(p[1])), dist_px=dist))
    return out


def compute_mean_error(errors: Sequence[PointError]) -> float:
    if not errors:
        return 0.0
    return float(sum(e.dist_px for e in errors) / float(len(errors)))


def compute_max_error(errors: Sequence[PointError]) -> float:
    if not errors:
        return 0.0
    return float(max(e.dist_px for e in errors))


def compute_rms_error(errors: Sequence[PointError]) -> float:
    if not errors:
        return 0.0
    return float(math.sqrt(sum(e.dist_px * e.dist_px for e in errors) / float(len(errors))))


def summarize(errors: Sequence[PointError]) -> CalibrationAccuracy:
    return CalibrationAccuracy(
        mean_px=compute_mean_error(errors),
        max_px=compute_max_error(errors),
        rms_px=compute_rms_error(errors),
        count=len(errors),
    )
