"""
Gaze predictor: averaged calibration feature vectors -> screen position in percent.

Two regressor families, one estimator per axis:
  - 'mlp':   StandardScaler -> MLPRegressor
  - 'poly2': StandardScaler -> PolynomialFeatures(2) -> Ridge
  - 'auto':  train both, keep the one with the lower training RMSE
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
from sklearn.linear_model import Ridge
from sklearn.neural_network import MLPRegressor
from sklearn.pipeline import Pipeline as SKPipeline
from sklearn.preprocessing import PolynomialFeatures, StandardScaler

from FreeGaze.analysis.error_metrics import CalibrationAccuracy, compute_point_errors, summarize
from FreeGaze.calibration.models import CalibrationRecord
from FreeGaze.core.config import MIN_POINTS_REQUIRED
from FreeGaze.core.errors import InsufficientCalibrationData
from FreeGaze.tracking.features import FeatureVector

logger = logging.getLogger(__name__)

METHODS = ("mlp", "poly2", "auto")


def _vector_array(vector) -> np.ndarray:
    if isinstance(vector, FeatureVector):
        return vector.values.reshape(1, -1)
    return np.asarray(vector, dtype=float).reshape(1, -1)


class GazePredictor:
    def __init__(
        self,
        screen_size: Tuple[int, int],
        method: str = "auto",
        hidden: Tuple[int, ...] = (64, 32),
        activation: str = "tanh",
        max_iter: int = 800,
        min_records: int = MIN_POINTS_REQUIRED,
    ) -> None:
        if method not in METHODS:
            raise ValueError(f"method must be one of {METHODS}, got {method!r}")
        self.screen_size = (int(screen_size[0]), int(screen_size[1]))
        self.method = method
        self.hidden = tuple(hidden)
        self.activation = activation
        self.max_iter = int(max_iter)
        self.min_records = int(min_records)
        self.mx: Optional[Any] = None  # estimator for X
        self.my: Optional[Any] = None  # estimator for Y
        self.is_trained = False
        self.trained_method: Optional[str] = None
        self.training_rmse: Optional[float] = None
        self.record_count = 0

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------
    def reset(self) -> None:
        self.mx = None
        self.my = None
        self.is_trained = False
        self.trained_method = None
        self.training_rmse = None
        self.record_count = 0

    def is_ready(self) -> bool:
        return self.is_trained and self.mx is not None and self.my is not None

    def _targets_pct(self, records: Sequence[CalibrationRecord]) -> Tuple[np.ndarray, np.ndarray]:
        w, h = self.screen_size
        yx = np.array([r.target_x / float(w) * 100.0 for r in records], dtype=float)
        yy = np.array([r.target_y / float(h) * 100.0 for r in records], dtype=float)
        return yx, yy

    def _make_mlp(self) -> SKPipeline:
        return SKPipeline([
            ("scaler", StandardScaler()),
            ("mlp", MLPRegressor(
                hidden_layer_sizes=self.hidden,
                activation=self.activation,
                max_iter=self.max_iter,
                solver="adam",
                random_state=42,
            )),
        ])

    @staticmethod
    def _make_poly2() -> SKPipeline:
        return SKPipeline([
            ("scaler", StandardScaler()),
            ("poly", PolynomialFeatures(degree=2, include_bias=False)),
            ("ridge", Ridge(alpha=1.0)),
        ])

    @staticmethod
    def _rmse(mx, my, X: np.ndarray, yx: np.ndarray, yy: np.ndarray) -> float:
        ex = np.asarray(mx.predict(X)) - yx
        ey = np.asarray(my.predict(X)) - yy
        return math.sqrt(float(np.mean(ex * ex + ey * ey)))

    def _fit(self, kind: str, X: np.ndarray, yx: np.ndarray, yy: np.ndarray):
        factory = self._make_mlp if kind == "mlp" else self._make_poly2
        mx = factory()
        my = factory()
        mx.fit(X, yx)
        my.fit(X, yy)
        return mx, my, self._rmse(mx, my, X, yx, yy)

    def train(self, records: Sequence[CalibrationRecord]) -> "GazePredictor":
        if len(records) < self.min_records:
            raise InsufficientCalibrationData(len(records), self.min_records)
        X = np.array([r.features for r in records], dtype=float)
        yx, yy = self._targets_pct(records)
        logger.info(f"Training gaze predictor ({self.method}) with {len(records)} calibration points")

        candidates = ["mlp", "poly2"] if self.method == "auto" else [self.method]
        best = None
        for kind in candidates:
            mx, my, rmse = self._fit(kind, X, yx, yy)
            logger.debug(f"{kind}: training RMSE {rmse:.3f}%")
            if best is None or rmse < best[3]:
                best = (kind, mx, my, rmse)
        kind, self.mx, self.my, self.training_rmse = best  # type: ignore[misc]
        self.trained_method = kind
        self.record_count = len(records)
        self.is_trained = True
        logger.info(f"Gaze predictor trained: method={kind} rmse={self.training_rmse:.3f}%")
        return self

    # ------------------------------------------------------------------
    # Prediction
    # ------------------------------------------------------------------
    def predict(self, vector) -> Optional[Tuple[float, float]]:
        """Return (x%, y%) of the screen, or None while untrained."""
        if not self.is_ready():
            return None
        X = _vector_array(vector)
        px = float(self.mx.predict(X)[0])  # type: ignore[union-attr]
        py = float(self.my.predict(X)[0])  # type: ignore[union-attr]
        if not (math.isfinite(px) and math.isfinite(py)):
            return None
        return (px, py)

    def to_pixels(self, pct: Tuple[float, float]) -> Tuple[float, float]:
        w, h = self.screen_size
        return (pct[0] / 100.0 * float(w), pct[1] / 100.0 * float(h))

    def accuracy(self, records: Sequence[CalibrationRecord]) -> CalibrationAccuracy:
        """Pixel error of the predictor on the given records."""
        truth: List[Tuple[float, float]] = []
        preds: List[Tuple[float, float]] = []
        for r in records:
            pct = self.predict(r.features)
            if pct is None:
                continue
            truth.append((r.target_x, r.target_y))
            preds.append(self.to_pixels(pct))
        return summarize(compute_point_errors(truth, preds))

    def info(self) -> Dict[str, Any]:
        return {
            "trained": self.is_ready(),
            "method": self.trained_method or self.method,
            "training_rmse": self.training_rmse,
            "records": self.record_count,
        }
