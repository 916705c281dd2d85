"""
JSON persistence for calibration records.

File layout:
    {
      "version": 1,
      "timestamp": <unix seconds>,
      "screen": [w, h] | null,
      "points": [{"targetX", "targetY", "features", "sampleCount"}, ...]
    }

Usage: python -m FreeGaze.calibration.store <path-to-json>
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import time
from typing import List, Optional, Sequence, Tuple

from FreeGaze.core.errors import CalibrationFormatError
from FreeGaze.tracking.features import FEATURE_NAMES
from .models import CalibrationRecord

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


def save_records(path: str, records: Sequence[CalibrationRecord], screen_size: Optional[Tuple[int, int]] = None) -> None:
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    data = {
        "version": FORMAT_VERSION,
        "timestamp": time.time(),
        "screen": [int(screen_size[0]), int(screen_size[1])] if screen_size is not None else None,
        "points": [r.to_dict() for r in records],
    }
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    logger.info(f"Calibration saved to {path}: {len(records)} points")


def load_screen_size(path: str) -> Optional[Tuple[int, int]]:
    data = _read(path)
    screen = data.get("screen")
    if not screen:
        return None
    try:
        return int(screen[0]), int(screen[1])
    except (TypeError, ValueError, IndexError) as e:
        raise CalibrationFormatError(f"{path}: bad screen entry {screen!r}") from e


def load_records(path: str) -> List[CalibrationRecord]:
    data = _read(path)
    points = data.get("points")
    if not isinstance(points, list):
        raise CalibrationFormatError(f"{path}: missing 'points' list")
    out: List[CalibrationRecord] = []
    for i, entry in enumerate(points):
        try:
            record = CalibrationRecord.from_dict(entry)
        except (KeyError, TypeError, ValueError) as e:
            raise CalibrationFormatError(f"{path}: point {i + 1} is malformed") from e
        if len(record.features) != len(FEATURE_NAMES):
            raise CalibrationFormatError(
                f"{path}: point {i + 1} has {len(record.features)} features, expected {len(FEATURE_NAMES)}"
            )
        if record.sample_count < 1:
            raise CalibrationFormatError(f"{path}: point {i + 1} has no samples")
        out.append(record)
    logger.info(f"Calibration loaded from {path}: {len(out)} points")
    return out


def _read(path: str) -> dict:
    if not os.path.exists(path):
        raise FileNotFoundError(path)
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise CalibrationFormatError(f"{path}: not valid JSON") from e
    if not isinstance(data, dict):
        raise CalibrationFormatError(f"{path}: expected a JSON object")
    version = data.get("version", FORMAT_VERSION)
    if version != FORMAT_VERSION:
        raise CalibrationFormatError(f"{path}: unsupported version {version!r}")
    return data


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    parser = argparse.ArgumentParser(description="Summarize a stored FreeGaze calibration")
    parser.add_argument("path", help="Calibration JSON file")
    args = parser.parse_args(argv)
    records = load_records(args.path)
    screen = load_screen_size(args.path)
    if screen is not None:
        print(f"Screen: {screen[0]}x{screen[1]}")
    print(f"Points: {len(records)}")
    for i, r in enumerate(records, start=1):
        print(f"  {i}: target=({r.target_x:.0f}, {r.target_y:.0f}) samples={r.sample_count}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
