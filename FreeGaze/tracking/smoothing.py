"""
Adaptive low-pass (One Euro) smoothing for gaze coordinates.

The cutoff frequency rises with the speed of the signal: slow, nearly still
gaze gets heavy smoothing (no jitter), fast intentional moves get a high
cutoff (little lag).

Reference: Casiez, Roussel, Vogel. "1 Euro Filter: A Simple Speed-based
Low-pass Filter for Noisy Input in Interactive Systems", CHI 2012.
"""
from __future__ import annotations

import math
from typing import Optional, Tuple

from FreeGaze.core.config import (
    SMOOTHING_BETA,
    SMOOTHING_D_CUTOFF,
    SMOOTHING_FREQUENCY_HZ,
    SMOOTHING_MIN_CUTOFF,
    SmoothingConfig,
)


def smoothing_factor(cutoff: float, freq: float) -> float:
    """alpha = 1 / (1 + tau / Te) with tau = 1 / (2*pi*cutoff), Te = 1 / freq."""
    tau = 1.0 / (2.0 * math.pi * cutoff)
    te = 1.0 / freq
    return 1.0 / (1.0 + tau / te)


def lowpass(value: float, previous: float, alpha: float) -> float:
    return alpha * value + (1.0 - alpha) * previous


class OneEuroFilter:
    """Scalar One Euro filter. Timestamps are in seconds."""

    def __init__(
        self,
        freq: float = SMOOTHING_FREQUENCY_HZ,
        min_cutoff: float = SMOOTHING_MIN_CUTOFF,
        beta: float = SMOOTHING_BETA,
        d_cutoff: float = SMOOTHING_D_CUTOFF,
    ) -> None:
        if freq <= 0:
            raise ValueError("freq must be > 0")
        if min_cutoff <= 0 or d_cutoff <= 0:
            raise ValueError("cutoff frequencies must be > 0")
        self.freq = float(freq)
        self.min_cutoff = float(min_cutoff)
        self.beta = float(beta)
        self.d_cutoff = float(d_cutoff)
        self._x: Optional[float] = None
        self._dx = 0.0
        self._last_time: Optional[float] = None

    @property
    def value(self) -> Optional[float]:
        return self._x

    @property
    def derivative(self) -> float:
        return self._dx

    def reset(self) -> None:
        self._x = None
        self._dx = 0.0
        self._last_time = None

    def filter(self, value: float, timestamp: float) -> float:
        x = float(value)
        t = float(timestamp)
        if self._x is None or self._last_time is None:
            self._x = x
            self._dx = 0.0
            self._last_time = t
            return x

        dt = t - self._last_time
        self._last_time = t
        if dt > 0:
            self.freq = 1.0 / dt
            raw_dx = (x - self._x) / dt
            self._dx = lowpass(raw_dx, self._dx, smoothing_factor(self.d_cutoff, self.freq))
        # dt <= 0 (duplicate or rolled-back clock): keep the previous derivative and rate

        cutoff = self.min_cutoff + self.beta * abs(self._dx)
        self._x = lowpass(x, self._x, smoothing_factor(cutoff, self.freq))
        return self._x


class GazeSmoother:
    """Two independent One Euro filters (x and y) with shared parameters."""

    def __init__(
        self,
        freq: float = SMOOTHING_FREQUENCY_HZ,
        min_cutoff: float = SMOOTHING_MIN_CUTOFF,
        beta: float = SMOOTHING_BETA,
        d_cutoff: float = SMOOTHING_D_CUTOFF,
    ) -> None:
        self.x_filter = OneEuroFilter(freq, min_cutoff, beta, d_cutoff)
        self.y_filter = OneEuroFilter(freq, min_cutoff, beta, d_cutoff)

    @classmethod
    def from_config(cls, config: SmoothingConfig) -> "GazeSmoother":
        return cls(
            freq=config.frequency,
            min_cutoff=config.min_cutoff,
            beta=config.beta,
            d_cutoff=config.d_cutoff,
        )

    def smooth(self, x: float, y: float, timestamp: float) -> Tuple[float, float]:
        return (self.x_filter.filter(x, timestamp), self.y_filter.filter(y, timestamp))

    def reset(self) -> None:
        self.x_filter.reset()
        self.y_filter.reset()

    def set_parameters(
        self,
        min_cutoff: Optional[float] = None,
        beta: Optional[float] = None,
        d_cutoff: Optional[float] = None,
    ) -> None:
        for f in (self.x_filter, self.y_filter):
            if min_cutoff is not None:
                f.min_cutoff = float(min_cutoff)
            if beta is not None:
                f.beta = float(beta)
            if d_cutoff is not None:
                f.d_cutoff = float(d_cutoff)
