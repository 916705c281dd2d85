import json

import pytest

from FreeGaze.calibration.models import CalibrationRecord
from FreeGaze.calibration.store import load_records, load_screen_size, main, save_records
from FreeGaze.core.errors import CalibrationFormatError
from landmark_factory import make_vector


def _records(n=9):
    return [CalibrationRecord(10.0 * i, 5.0 * i, tuple(make_vector(offset=0.1 * i)), 60) for i in range(n)]


def test_save_and_load(tmp_path):
    path = str(tmp_path / "cal" / "calibration.json")
    records = _records()
    save_records(path, records, screen_size=(1920, 1080))
    loaded = load_records(path)
    assert len(loaded) == 9
    assert loaded[4].target_x == pytest.approx(40.0)
    assert loaded[4].features == pytest.approx(records[4].features)
    assert load_screen_size(path) == (1920, 1080)

    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    assert data["version"] == 1
    assert set(data["points"][0]) == {"targetX", "targetY", "features", "sampleCount"}


def test_screen_is_optional(tmp_path):
    path = str(tmp_path / "c.json")
    save_records(path, _records(2))
    assert load_screen_size(path) is None


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_records(str(tmp_path / "nope.json"))


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        "[1, 2, 3]",
        json.dumps({"version": 2, "points": []}),
        json.dumps({"version": 1}),
        json.dumps({"version": 1, "points": [{"targetX": 1, "targetY": 2, "features": [1, 2, 3], "sampleCount": 4}]}),
        json.dumps({"version": 1, "points": [{"targetX": 1, "features": [0] * 8, "sampleCount": 4}]}),
        json.dumps({"version": 1, "points": [{"targetX": 1, "targetY": 2, "features": [0] * 8, "sampleCount": 0}]}),
    ],
)
def test_malformed_files(tmp_path, content):
    path = tmp_path / "bad.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(CalibrationFormatError):
        load_records(str(path))


def test_cli_summary(tmp_path, capsys):
    path = str(tmp_path / "c.json")
    save_records(path, _records(3), screen_size=(800, 600))
    assert main([path]) == 0
    out = capsys.readouterr().out
    assert "Screen: 800x600" in out
    assert "Points: 3" in out


def test_cli_requires_path():
    with pytest.raises(SystemExit) as exc:
        main([])
    assert exc.value.code == 2
