"""
Dwell click detection.

The first position sets an anchor and starts the timer. While the gaze stays
within `threshold_px` of the anchor, progress is reported; once `dwell_time_ms`
has elapsed a click is emitted at the anchor and the anchor moves to the
current position, so a sustained fixation clicks again after another full
dwell. Leaving the radius re-anchors at the new position.
"""
from __future__ import annotations

import logging
import math
import time
from typing import Any, Callable, Optional, Tuple

from FreeGaze.control.events import DwellEvent, DwellEventType
from FreeGaze.core.config import DWELL_THRESHOLD_PX, DWELL_TIME_MS, DwellConfig

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


def _coerce_point(position: Any) -> Optional[Point]:
    """Accept (x, y) sequences or {'x':..,'y':..} mappings; None if malformed."""
    if position is None:
        return None
    try:
        if isinstance(position, dict):
            x, y = position["x"], position["y"]
        elif hasattr(position, "x") and hasattr(position, "y"):
            x, y = position.x, position.y
        else:
            if len(position) != 2:
                return None
            x, y = position[0], position[1]
        fx, fy = float(x), float(y)
    except (KeyError, TypeError, ValueError, IndexError):
        return None
    if not (math.isfinite(fx) and math.isfinite(fy)):
        return None
    return (fx, fy)


class DwellDetector:
    def __init__(
        self,
        dwell_time_ms: float = DWELL_TIME_MS,
        threshold_px: float = DWELL_THRESHOLD_PX,
        enabled: bool = True,
    ) -> None:
        self.dwell_time_ms = float(dwell_time_ms)
        self.threshold_px = float(threshold_px)
        self.enabled = bool(enabled)
        self._anchor: Optional[Point] = None
        self._anchor_time: Optional[float] = None  # seconds
        self._dwelling = False
        self._click_cb: Optional[Callable[[DwellEvent], None]] = None
        self._progress_cb: Optional[Callable[[DwellEvent], None]] = None

    @classmethod
    def from_config(cls, config: DwellConfig) -> "DwellDetector":
        return cls(dwell_time_ms=config.dwell_time_ms, threshold_px=config.threshold_px, enabled=config.enabled)

    # Configuration -----------------------------------------------------
    def set_enabled(self, enabled: bool) -> None:
        self.enabled = bool(enabled)
        if not self.enabled:
            self.reset()

    def set_dwell_time(self, ms: float) -> None:
        self.dwell_time_ms = float(ms)

    def set_threshold(self, px: float) -> None:
        self.threshold_px = float(px)

    def on_click(self, callback: Optional[Callable[[DwellEvent], None]]) -> None:
        self._click_cb = callback

    def on_progress(self, callback: Optional[Callable[[DwellEvent], None]]) -> None:
        self._progress_cb = callback

    # State -------------------------------------------------------------
    def reset(self) -> None:
        self._anchor = None
        self._anchor_time = None
        self._dwelling = False

    def is_dwelling(self) -> bool:
        return self._dwelling and self._anchor_time is not None

    @property
    def anchor(self) -> Optional[Point]:
        return self._anchor

    def progress(self, now: Optional[float] = None) -> float:
        if not self.is_dwelling() or self.dwell_time_ms <= 0:
            return 0.0
        now = time.monotonic() if now is None else float(now)
        elapsed_ms = (now - self._anchor_time) * 1000.0  # type: ignore[operator]
        return max(0.0, min(elapsed_ms / self.dwell_time_ms, 1.0))

    def _start(self, pos: Point, now: float) -> None:
        self._anchor = pos
        self._anchor_time = now
        self._dwelling = True

    # Main entry --------------------------------------------------------
    def update(self, position: Any, now: Optional[float] = None) -> Optional[DwellEvent]:
        """Feed one smoothed pointer position (pixels). `now` is in seconds."""
        if not self.enabled:
            self.reset()
            return None
        pos = _coerce_point(position)
        if pos is None:
            return None
        now = time.monotonic() if now is None else float(now)

        if self._anchor is None or self._anchor_time is None:
            self._start(pos, now)
            return DwellEvent(DwellEventType.DWELL_START, pos)

        dist = math.hypot(pos[0] - self._anchor[0], pos[1] - self._anchor[1])
        if dist >= self.threshold_px:
            was_dwelling = self._dwelling
            self._start(pos, now)
            if was_dwelling:
                return DwellEvent(DwellEventType.DWELL_CANCEL, pos)
            return DwellEvent(DwellEventType.DWELL_START, pos)

        elapsed_ms = (now - self._anchor_time) * 1000.0
        if elapsed_ms >= self.dwell_time_ms:
            event = DwellEvent(DwellEventType.CLICK, self._anchor, progress=1.0, elapsed_ms=elapsed_ms)
            # Fresh anchor at the triggering position; the next click needs a full dwell
            self._anchor = pos
            self._anchor_time = now
            self._dwelling = False
            logger.debug(f"Dwell click at ({event.position[0]:.0f}, {event.position[1]:.0f}) after {elapsed_ms:.0f} ms")
            if self._click_cb is not None:
                self._click_cb(event)
            return event

        progress = max(0.0, min(elapsed_ms / self.dwell_time_ms, 1.0)) if self.dwell_time_ms > 0 else 0.0
        self._dwelling = True
        event = DwellEvent(DwellEventType.DWELL_PROGRESS, self._anchor, progress=progress, elapsed_ms=elapsed_ms)
        if self._progress_cb is not None:
            self._progress_cb(event)
        return event
