"""
Per-frame gaze pipeline.

Each call to GazePipeline.process() takes one frame of landmarks and the
current Mode:

    DETECTION    extract + validate only
    CALIBRATING  hand the vector to the calibration aggregator
    TRACKING     predict -> pixels -> smooth -> clamp -> dwell

Predictor training runs in the background; poll_training() installs the
result once it resolves.
"""
from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, Union

from FreeGaze.ai.regressors import GazePredictor
from FreeGaze.ai.training import PredictorTrainer, TrainingHandle
from FreeGaze.calibration.aggregator import CalibrationAggregator
from FreeGaze.calibration.models import CalibrationRecord, CalibrationTarget
from FreeGaze.control.events import DwellEvent
from FreeGaze.control.fps_monitor import FPSMonitor
from FreeGaze.core.config import CalibrationConfig, DwellConfig, SmoothingConfig, ValidityThresholds
from FreeGaze.core.settings import SettingsManager
from FreeGaze.utils.dwell import DwellDetector
from .features import FeatureExtractor, FeatureVector, is_valid
from .smoothing import GazeSmoother

logger = logging.getLogger(__name__)


class Mode(enum.Enum):
    DETECTION = "detection"
    CALIBRATING = "calibrating"
    TRACKING = "tracking"


@dataclass
class FrameResult:
    mode: Mode
    face_ok: bool
    features: Optional[FeatureVector]
    valid: bool
    gaze_pct: Optional[Tuple[float, float]] = None
    gaze_xy: Optional[Tuple[float, float]] = None  # smoothed, clamped, pixels
    event: Optional[DwellEvent] = None
    sample_added: bool = False
    fps: float = 0.0


Target = Union[CalibrationTarget, Tuple[float, float]]


class GazePipeline:
    """Per-frame glue: landmarks -> features -> (calibration | prediction -> smoothing -> dwell).

    Every stateful component is owned by this instance; the current mode is
    passed in with each frame rather than stored.
    """

    def __init__(
        self,
        screen_size: Tuple[int, int],
        settings: Optional[SettingsManager] = None,
        predictor: Optional[GazePredictor] = None,
        extractor: Optional[FeatureExtractor] = None,
        trainer: Optional[PredictorTrainer] = None,
    ) -> None:
        self.screen_size = (int(screen_size[0]), int(screen_size[1]))
        if settings is not None:
            cal_cfg = settings.calibration_config()
            dwell_cfg = settings.dwell_config()
            smooth_cfg = settings.smoothing_config()
            thresholds = settings.validity_thresholds()
        else:
            cal_cfg, dwell_cfg, smooth_cfg, thresholds = CalibrationConfig(), DwellConfig(), SmoothingConfig(), ValidityThresholds()
        self.calibration_config = cal_cfg
        self.thresholds = thresholds
        self.smoothing_enabled = bool(smooth_cfg.enabled)
        self.extractor = extractor or FeatureExtractor()
        self.aggregator = CalibrationAggregator(cal_cfg, thresholds)
        self.predictor = predictor or self._new_predictor()
        self.smoother = GazeSmoother.from_config(smooth_cfg)
        self.dwell = DwellDetector.from_config(dwell_cfg)
        self.fps = FPSMonitor()
        self._trainer: Optional[PredictorTrainer] = trainer
        self._handle: Optional[TrainingHandle] = None

    def _new_predictor(self) -> GazePredictor:
        return GazePredictor(self.screen_size, min_records=self.aggregator.min_points)

    # ------------------------------------------------------------------
    # Per-frame processing
    # ------------------------------------------------------------------
    def process(
        self,
        landmarks,
        mode: Mode,
        now: Optional[float] = None,
        target: Optional[Target] = None,
    ) -> FrameResult:
        now = time.monotonic() if now is None else float(now)
        self.fps.tick(now)
        fps = self.fps.fps()

        if landmarks is None:
            if mode is Mode.TRACKING:
                # Face lost: a dwell must not survive a tracking gap
                self.dwell.reset()
            return FrameResult(mode=mode, face_ok=False, features=None, valid=False, fps=fps)

        features = self.extractor.extract(landmarks)
        valid = is_valid(features, self.thresholds)
        result = FrameResult(mode=mode, face_ok=True, features=features, valid=valid, fps=fps)
        if features is None:
            return result

        if mode is Mode.CALIBRATING:
            xy = self._target_pixels(target)
            if xy is not None:
                result.sample_added = self.aggregator.add_sample(features, xy[0], xy[1], timestamp=now)
        elif mode is Mode.TRACKING and valid:
            self._track(features, now, result)
        return result

    def _target_pixels(self, target: Optional[Target]) -> Optional[Tuple[float, float]]:
        if target is None:
            target = self.aggregator.current_target
        if target is None:
            return None
        if isinstance(target, CalibrationTarget):
            return target.to_screen(self.screen_size)
        return (float(target[0]), float(target[1]))

    def _track(self, features: FeatureVector, now: float, result: FrameResult) -> None:
        pct = self.predictor.predict(features)
        if pct is None:
            logger.debug("Predictor not ready; tracking frame skipped")
            return
        x, y = self.predictor.to_pixels(pct)
        if self.smoothing_enabled:
            x, y = self.smoother.smooth(x, y, now)
        w, h = self.screen_size
        x = max(0.0, min(float(w - 1), x))
        y = max(0.0, min(float(h - 1), y))
        result.gaze_pct = pct
        result.gaze_xy = (x, y)
        result.event = self.dwell.update((x, y), now)

    def reset_tracking(self) -> None:
        self.smoother.reset()
        self.dwell.reset()

    # ------------------------------------------------------------------
    # Training boundary
    # ------------------------------------------------------------------
    def start_training(self, records: Optional[Sequence[CalibrationRecord]] = None) -> TrainingHandle:
        if records is None:
            records = self.aggregator.finish()
        if self._handle is not None and not self._handle.done():
            self._handle.cancel()
        if self._trainer is None:
            self._trainer = PredictorTrainer(self._new_predictor)
        self._handle = self._trainer.submit(records)
        return self._handle

    def poll_training(self) -> bool:
        """Swap in the trained predictor once training resolves.

        Returns True when a new predictor was installed. Training errors
        propagate; the current predictor stays in place.
        """
        handle = self._handle
        if handle is None or not handle.done():
            return False
        self._handle = None
        if handle.cancelled:
            return False
        trained = handle.result()
        if trained is None:
            return False
        self.predictor = trained
        self.reset_tracking()
        logger.info("Trained predictor installed; tracking can start")
        return True

    def cancel_training(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    @property
    def training_pending(self) -> bool:
        return self._handle is not None

    def shutdown(self) -> None:
        self.cancel_training()
        if self._trainer is not None:
            self._trainer.shutdown(wait=False)
            self._trainer = None
