"""
Settings manager for FreeGaze.

Loads/saves JSON settings (FreeGaze/settings.json unless a path is given) and
exposes typed accessors for the calibration, dwell, smoothing and validity
sections.
"""
from __future__ import annotations

import copy
import json
import logging
import os
from typing import Any, Dict, Optional

from .config import (
    CALIBRATION_POINTS,
    DWELL_THRESHOLD_PX,
    DWELL_TIME_MS,
    MAX_OFFSET,
    MAX_SYMMETRY,
    MIN_APERTURE,
    MIN_POINTS_REQUIRED,
    SAMPLES_PER_POINT,
    SMOOTHING_BETA,
    SMOOTHING_D_CUTOFF,
    SMOOTHING_FREQUENCY_HZ,
    SMOOTHING_MIN_CUTOFF,
    CalibrationConfig,
    DwellConfig,
    SmoothingConfig,
    ValidityThresholds,
)

logger = logging.getLogger(__name__)

DEFAULTS: Dict[str, Any] = {
    "calibration": {
        "pointCount": CALIBRATION_POINTS,
        "samplesPerPoint": SAMPLES_PER_POINT,
        "minPointsRequired": MIN_POINTS_REQUIRED,
    },
    "dwell": {
        "dwellTime": DWELL_TIME_MS,
        "threshold": DWELL_THRESHOLD_PX,
        "enabled": True,
    },
    "smoothing": {
        "enabled": True,
        "minCutoff": SMOOTHING_MIN_CUTOFF,
        "beta": SMOOTHING_BETA,
        "dCutoff": SMOOTHING_D_CUTOFF,
        "frequency": SMOOTHING_FREQUENCY_HZ,
    },
    "validity": {
        "minAperture": MIN_APERTURE,
        "maxOffset": MAX_OFFSET,
        "maxSymmetry": MAX_SYMMETRY,
    },
}


class SettingsManager:
    def __init__(self, path: Optional[str] = None) -> None:
        if path is None:
            here = os.path.dirname(os.path.abspath(__file__))
            path = os.path.join(os.path.dirname(here), "settings.json")
        self.path = path
        self.data: Dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        self.data = copy.deepcopy(DEFAULTS)
        if not os.path.exists(self.path):
            return
        with open(self.path, "r", encoding="utf-8") as f:
            stored = json.load(f)
        if not isinstance(stored, dict):
            logger.warning(f"Ignoring malformed settings file {self.path}")
            return
        # Stored sections override defaults key by key
        for section, values in stored.items():
            if isinstance(values, dict) and isinstance(self.data.get(section), dict):
                self.data[section].update(values)
            else:
                self.data[section] = values
        logger.debug(f"Loaded settings from {self.path}")

    def save(self) -> None:
        folder = os.path.dirname(self.path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self.data, f, indent=2)

    # Dotted access -----------------------------------------------------
    def get(self, key: str, default: Any = None) -> Any:
        node: Any = self.data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        parts = key.split(".")
        node = self.data
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value

    # Typed sections ----------------------------------------------------
    def calibration_config(self) -> CalibrationConfig:
        point_count = int(self.get("calibration.pointCount", CALIBRATION_POINTS))
        # Cannot require more points than the session visits
        min_points = min(int(self.get("calibration.minPointsRequired", point_count)), point_count)
        return CalibrationConfig(
            point_count=point_count,
            samples_per_point=int(self.get("calibration.samplesPerPoint", SAMPLES_PER_POINT)),
            min_points=min_points,
        )

    def dwell_config(self) -> DwellConfig:
        return DwellConfig(
            dwell_time_ms=float(self.get("dwell.dwellTime", DWELL_TIME_MS)),
            threshold_px=float(self.get("dwell.threshold", DWELL_THRESHOLD_PX)),
            enabled=bool(self.get("dwell.enabled", True)),
        )

    def smoothing_config(self) -> SmoothingConfig:
        return SmoothingConfig(
            enabled=bool(self.get("smoothing.enabled", True)),
            min_cutoff=float(self.get("smoothing.minCutoff", SMOOTHING_MIN_CUTOFF)),
            beta=float(self.get("smoothing.beta", SMOOTHING_BETA)),
            d_cutoff=float(self.get("smoothing.dCutoff", SMOOTHING_D_CUTOFF)),
            frequency=float(self.get("smoothing.frequency", SMOOTHING_FREQUENCY_HZ)),
        )

    def validity_thresholds(self) -> ValidityThresholds:
        return ValidityThresholds(
            min_aperture=float(self.get("validity.minAperture", MIN_APERTURE)),
            max_offset=float(self.get("validity.maxOffset", MAX_OFFSET)),
            max_symmetry=float(self.get("validity.maxSymmetry", MAX_SYMMETRY)),
        )

    def set_dwell_time(self, ms: float) -> None:
        self.set("dwell.dwellTime", float(ms))

    def set_dwell_threshold(self, px: float) -> None:
        self.set("dwell.threshold", float(px))
