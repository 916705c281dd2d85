"""
Calibration sample aggregation.

The aggregator walks the configured targets one point at a time:

    IDLE -> COLLECTING(i) -> POINT_COMPLETE(i) -> COLLECTING(i+1) -> ... -> FINISHED

Raw samples are buffered unfiltered so the raw count stays observable;
validity filtering happens when the point is completed, and only valid
samples are averaged into the point's CalibrationRecord.
"""
from __future__ import annotations

import enum
import logging
import time
from typing import List, Optional, Sequence

import numpy as np

from FreeGaze.core.config import CalibrationConfig, ValidityThresholds
from FreeGaze.core.errors import InsufficientCalibrationData
from FreeGaze.tracking.features import FeatureVector, average_features
from .models import CalibrationRecord, CalibrationSample, CalibrationTarget, default_targets

logger = logging.getLogger(__name__)


class CalibrationState(enum.Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    POINT_COMPLETE = "point-complete"
    FINISHED = "finished"


class CalibrationAggregator:
    def __init__(
        self,
        config: Optional[CalibrationConfig] = None,
        thresholds: Optional[ValidityThresholds] = None,
        targets: Optional[Sequence[CalibrationTarget]] = None,
    ) -> None:
        self.config = config or CalibrationConfig()
        self.thresholds = thresholds or ValidityThresholds()
        if targets is None:
            targets = default_targets()
        self.targets: List[CalibrationTarget] = list(targets)
        if self.config.point_count > len(self.targets):
            raise ValueError(
                f"point_count {self.config.point_count} exceeds the {len(self.targets)} available targets"
            )
        self.state = CalibrationState.IDLE
        self._records: List[CalibrationRecord] = []
        self._samples: List[CalibrationSample] = []
        self._index = 0

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def point_count(self) -> int:
        return int(self.config.point_count)

    @property
    def min_points(self) -> int:
        # Never more than the session visits, so a full pass can always finish
        return min(int(self.config.min_points), self.point_count)

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current_target(self) -> Optional[CalibrationTarget]:
        if 0 <= self._index < len(self.targets) and self._index < self.point_count:
            return self.targets[self._index]
        return None

    @property
    def completed_points(self) -> int:
        return len(self._records)

    @property
    def raw_sample_count(self) -> int:
        return len(self._samples)

    @property
    def records(self) -> List[CalibrationRecord]:
        return list(self._records)

    @property
    def progress(self) -> float:
        if self.point_count <= 0:
            return 1.0
        return min(1.0, self.completed_points / float(self.point_count))

    def is_point_ready(self) -> bool:
        return len(self._samples) >= int(self.config.samples_per_point)

    def _points_remaining(self) -> bool:
        return self._index < self.point_count

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        self._records.clear()
        self._samples.clear()
        self._index = 0
        self.state = CalibrationState.COLLECTING
        logger.info(f"Calibration started: {self.point_count} points")

    def clear(self) -> None:
        self._records.clear()
        self._samples.clear()
        self._index = 0
        self.state = CalibrationState.IDLE

    def restore(self, records: Sequence[CalibrationRecord]) -> None:
        """Resume from previously stored records instead of re-collecting."""
        self._records = list(records)[: self.point_count]
        self._samples.clear()
        self._index = len(self._records)
        if self._points_remaining():
            self.state = CalibrationState.COLLECTING
        else:
            self.state = CalibrationState.FINISHED
        logger.info(f"Calibration restored: {len(self._records)} of {self.point_count} points")

    def add_sample(
        self,
        features: Optional[FeatureVector],
        target_x: float,
        target_y: float,
        timestamp: Optional[float] = None,
    ) -> bool:
        if features is None:
            return False
        if self.state is CalibrationState.POINT_COMPLETE and self._points_remaining():
            self.state = CalibrationState.COLLECTING
        if self.state is not CalibrationState.COLLECTING:
            logger.debug(f"Sample ignored in state {self.state.value}")
            return False
        if not isinstance(features, FeatureVector):
            features = FeatureVector(features)
        self._samples.append(
            CalibrationSample(
                features=features,
                target_x=float(target_x),
                target_y=float(target_y),
                timestamp=time.monotonic() if timestamp is None else float(timestamp),
            )
        )
        return True

    def complete_current_point(self) -> Optional[CalibrationRecord]:
        """Average the buffered samples into a record for the current point.

        Returns None when no buffered sample passes the validity rules; the
        buffer is dropped and the session stays on the same point so the
        caller can collect it again.
        """
        if self.state is not CalibrationState.COLLECTING:
            logger.debug(f"No point in progress (state {self.state.value})")
            return None
        point_no = self._index + 1
        if not self._samples:
            logger.warning(f"No samples collected for point {point_no}")
            return None

        raw_count = len(self._samples)
        avg = average_features([s.features for s in self._samples], self.thresholds)
        if avg is None:
            logger.warning(f"Point {point_no}: none of {raw_count} samples were valid; retry the point")
            self._samples.clear()
            return None

        first = self._samples[0]
        record = CalibrationRecord(
            target_x=first.target_x,
            target_y=first.target_y,
            features=tuple(float(v) for v in np.asarray(avg.values)),
            sample_count=avg.sample_count,
        )
        self._records.append(record)
        self._samples.clear()
        self._index += 1
        self.state = CalibrationState.POINT_COMPLETE
        logger.info(f"Point {point_no} complete: {record.sample_count} of {raw_count} samples valid")
        return record

    def finish(self) -> List[CalibrationRecord]:
        completed = len(self._records)
        if completed < self.min_points:
            raise InsufficientCalibrationData(completed, self.min_points)
        self._samples.clear()
        self.state = CalibrationState.FINISHED
        logger.info(f"Calibration complete: {completed} points collected")
        return list(self._records)
