"""
Default tuning constants and typed configuration sections.

SettingsManager reads user overrides from JSON and builds these dataclasses;
components also accept them directly so tests can construct them inline.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

# Calibration
CALIBRATION_POINTS = 9
SAMPLES_PER_POINT = 60  # 2 seconds at 30 FPS
MIN_POINTS_REQUIRED = 9

# Dwell click
DWELL_TIME_MS = 600
DWELL_THRESHOLD_PX = 50

# One Euro filter
SMOOTHING_FREQUENCY_HZ = 30.0
SMOOTHING_MIN_CUTOFF = 0.3
SMOOTHING_BETA = 0.7
SMOOTHING_D_CUTOFF = 1.0

# Feature validity (post-gain units)
MIN_APERTURE = 0.5
MAX_OFFSET = 5.0
MAX_SYMMETRY = 3.0


@dataclass
class CalibrationConfig:
    point_count: int = CALIBRATION_POINTS
    samples_per_point: int = SAMPLES_PER_POINT
    min_points: int = MIN_POINTS_REQUIRED


@dataclass
class DwellConfig:
    dwell_time_ms: float = DWELL_TIME_MS
    threshold_px: float = DWELL_THRESHOLD_PX
    enabled: bool = True


@dataclass
class SmoothingConfig:
    enabled: bool = True
    min_cutoff: float = SMOOTHING_MIN_CUTOFF
    beta: float = SMOOTHING_BETA
    d_cutoff: float = SMOOTHING_D_CUTOFF
    frequency: float = SMOOTHING_FREQUENCY_HZ


@dataclass(frozen=True)
class ValidityThresholds:
    """Bounds a feature vector must respect to be used downstream.

    Values are in the same scaled units as the feature vector itself
    (normalized ratios multiplied by the feature gain).
    """
    min_aperture: float = MIN_APERTURE
    max_offset: float = MAX_OFFSET
    max_symmetry: float = MAX_SYMMETRY


def get_default_config() -> Dict[str, object]:
    return {
        "calibration": CalibrationConfig(),
        "dwell": DwellConfig(),
        "smoothing": SmoothingConfig(),
        "validity": ValidityThresholds(),
    }
