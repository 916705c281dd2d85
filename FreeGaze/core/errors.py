"""
Exceptions surfaced to callers of the gaze pipeline.

Per-frame code paths never raise on bad input; these are reserved for
conditions the caller must act on (incomplete calibration, unreadable files).
"""
from __future__ import annotations


class FreeGazeError(Exception):
    pass


class InsufficientCalibrationData(FreeGazeError):
    def __init__(self, completed: int, required: int) -> None:
        self.completed = int(completed)
        self.required = int(required)
        super().__init__(
            f"Insufficient calibration data: {self.completed} of {self.required} points completed"
        )

    @property
    def is_empty(self) -> bool:
        return self.completed == 0


class CalibrationFormatError(FreeGazeError):
    pass
