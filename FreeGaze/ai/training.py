"""
Background predictor training.

Training runs on a single worker thread so the per-frame loop never blocks.
Each job builds and trains a fresh predictor; the caller swaps it in once the
handle resolves. Cancelling a handle only discards its eventual result.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Optional, Sequence

from FreeGaze.calibration.models import CalibrationRecord
from .regressors import GazePredictor

logger = logging.getLogger(__name__)

PredictorFactory = Callable[[], GazePredictor]


class TrainingHandle:
    def __init__(self, future: "Future[GazePredictor]") -> None:
        self._future = future
        self._cancelled = threading.Event()

    def done(self) -> bool:
        return self._future.done()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the job finishes, cancelled or not; True if it did."""
        wait([self._future], timeout=timeout)
        return self._future.done()

    def cancel(self) -> None:
        self._cancelled.set()
        # Not yet started jobs are dropped outright; running ones finish and are ignored
        self._future.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def result(self, timeout: Optional[float] = None) -> Optional[GazePredictor]:
        """Trained predictor, or None if the handle was cancelled.

        Training errors are re-raised unchanged.
        """
        if self.cancelled:
            return None
        predictor = self._future.result(timeout=timeout)
        if self.cancelled:
            return None
        return predictor


class PredictorTrainer:
    def __init__(self, factory: PredictorFactory) -> None:
        self._factory = factory
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="freegaze-train")

    def _run(self, records: Sequence[CalibrationRecord]) -> GazePredictor:
        predictor = self._factory()
        try:
            return predictor.train(records)
        except Exception:
            logger.error("Predictor training failed", exc_info=True)
            raise

    def submit(self, records: Sequence[CalibrationRecord]) -> TrainingHandle:
        snapshot = list(records)
        logger.info(f"Submitting predictor training: {len(snapshot)} records")
        return TrainingHandle(self._executor.submit(self._run, snapshot))

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
