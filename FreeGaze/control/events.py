"""
Events emitted by the dwell detector for the input-injection / UI layer.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Tuple


class DwellEventType(enum.Enum):
    DWELL_START = "dwell_start"
    DWELL_PROGRESS = "dwell_progress"
    CLICK = "click"
    DWELL_CANCEL = "dwell_cancel"


@dataclass(frozen=True)
class DwellEvent:
    type: DwellEventType
    position: Tuple[float, float]
    progress: float = 0.0      # 0..1, progress events only
    elapsed_ms: float = 0.0    # time since the anchor was set

    @property
    def is_click(self) -> bool:
        return self.type is DwellEventType.CLICK
