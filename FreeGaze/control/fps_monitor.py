from __future__ import annotations

import time
from collections import deque
from typing import Deque, Optional


class FPSMonitor:
    """Frame rate over a sliding window of frame intervals (seconds)."""

    def __init__(self, window: int = 60) -> None:
        self.window = max(1, int(window))
        self._times: Deque[float] = deque(maxlen=self.window)
        self._last: Optional[float] = None

    def reset(self) -> None:
        self._times.clear()
        self._last = None

    def tick(self, now: Optional[float] = None) -> None:
        now = time.perf_counter() if now is None else float(now)
        if self._last is not None and now > self._last:
            self._times.append(now - self._last)
        self._last = now

    def fps(self) -> float:
        if not self._times:
            return 0.0
        avg = sum(self._times) / float(len(self._times))
        if avg <= 0:
            return 0.0
        return 1.0 / avg
