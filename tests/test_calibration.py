import pytest

from FreeGaze.calibration.aggregator import CalibrationAggregator, CalibrationState
from FreeGaze.calibration.models import CalibrationRecord, default_targets
from FreeGaze.core.config import CalibrationConfig
from FreeGaze.core.errors import InsufficientCalibrationData
from landmark_factory import make_vector

SCREEN = (1920, 1080)


def _collect_point(agg, vector, n=60):
    target = agg.current_target
    x, y = target.to_screen(SCREEN)
    for i in range(n):
        assert agg.add_sample(vector, x, y, timestamp=float(i))
    return agg.complete_current_point()


def test_default_targets_order():
    targets = default_targets()
    assert len(targets) == 9
    assert [t.ordinal for t in targets] == list(range(1, 10))
    assert (targets[0].x_pct, targets[0].y_pct) == (10.0, 10.0)
    assert (targets[1].x_pct, targets[1].y_pct) == (50.0, 10.0)
    assert (targets[4].x_pct, targets[4].y_pct) == (50.0, 50.0)
    assert (targets[8].x_pct, targets[8].y_pct) == (90.0, 90.0)
    assert targets[4].to_screen(SCREEN) == (960.0, 540.0)


def test_samples_ignored_before_start():
    agg = CalibrationAggregator()
    assert agg.state is CalibrationState.IDLE
    assert not agg.add_sample(make_vector(), 10, 10)
    assert agg.raw_sample_count == 0


def test_none_features_are_not_buffered():
    agg = CalibrationAggregator()
    agg.start()
    assert not agg.add_sample(None, 10, 10)
    assert agg.raw_sample_count == 0


def test_sixty_identical_samples_at_center():
    agg = CalibrationAggregator(targets=default_targets()[4:] + default_targets()[:4])
    agg.start()
    v = make_vector(offset=0.5)
    record = _collect_point(agg, v)
    assert record.target_x == pytest.approx(960.0)
    assert record.target_y == pytest.approx(540.0)
    assert record.sample_count == 60
    assert record.features == pytest.approx(tuple(v))
    assert agg.state is CalibrationState.POINT_COMPLETE
    assert agg.current_index == 1


def test_only_valid_samples_are_averaged():
    agg = CalibrationAggregator()
    agg.start()
    x, y = agg.current_target.to_screen(SCREEN)
    for offset in (1.0, 2.0, 3.0):
        agg.add_sample(make_vector(offset=offset), x, y)
    for _ in range(5):
        agg.add_sample(make_vector(aperture=0.1), x, y)  # blink
    assert agg.raw_sample_count == 8
    record = agg.complete_current_point()
    assert record.sample_count == 3
    assert record.features[0] == pytest.approx(2.0)
    assert record.features[2] == pytest.approx(4.0)


def test_point_with_no_valid_samples_is_retried():
    agg = CalibrationAggregator()
    agg.start()
    x, y = agg.current_target.to_screen(SCREEN)
    for _ in range(10):
        agg.add_sample(make_vector(aperture=0.0), x, y)
    assert agg.complete_current_point() is None
    assert agg.current_index == 0
    assert agg.completed_points == 0
    assert agg.raw_sample_count == 0
    assert agg.state is CalibrationState.COLLECTING

    record = _collect_point(agg, make_vector(), n=5)
    assert record is not None
    assert agg.current_index == 1


def test_complete_without_samples_returns_none():
    agg = CalibrationAggregator()
    agg.start()
    assert agg.complete_current_point() is None
    assert agg.current_index == 0


def test_is_point_ready():
    agg = CalibrationAggregator(CalibrationConfig(samples_per_point=3))
    agg.start()
    for i in range(2):
        agg.add_sample(make_vector(), 0, 0)
    assert not agg.is_point_ready()
    agg.add_sample(make_vector(), 0, 0)
    assert agg.is_point_ready()


def test_finish_before_enough_points_raises():
    agg = CalibrationAggregator()
    agg.start()
    for _ in range(4):
        _collect_point(agg, make_vector())
    with pytest.raises(InsufficientCalibrationData) as exc:
        agg.finish()
    assert exc.value.completed == 4
    assert exc.value.required == 9
    assert "4" in str(exc.value) and "9" in str(exc.value)
    assert not exc.value.is_empty


def test_finish_with_nothing_collected_is_empty():
    agg = CalibrationAggregator()
    agg.start()
    with pytest.raises(InsufficientCalibrationData) as exc:
        agg.finish()
    assert exc.value.is_empty


def test_full_session_returns_records_in_target_order():
    agg = CalibrationAggregator()
    agg.start()
    for i in range(9):
        assert _collect_point(agg, make_vector(offset=i * 0.1), n=10) is not None
    assert agg.current_target is None
    assert agg.progress == pytest.approx(1.0)
    records = agg.finish()
    assert agg.state is CalibrationState.FINISHED
    assert len(records) == 9
    for record, target in zip(records, default_targets()):
        assert (record.target_x, record.target_y) == pytest.approx(target.to_screen(SCREEN))
    assert records[3].features[0] == pytest.approx(0.3)
    # No more samples once every point is in
    assert not agg.add_sample(make_vector(), 0, 0)


def test_partial_calibration_allowed_by_min_points():
    agg = CalibrationAggregator(CalibrationConfig(min_points=5))
    agg.start()
    for _ in range(5):
        _collect_point(agg, make_vector(), n=3)
    assert len(agg.finish()) == 5


def test_shorter_session_finishes_after_every_point():
    agg = CalibrationAggregator(CalibrationConfig(point_count=4))
    assert agg.min_points == 4
    agg.start()
    for _ in range(4):
        assert _collect_point(agg, make_vector(), n=3) is not None
    assert agg.current_target is None
    records = agg.finish()
    assert len(records) == 4
    for record, target in zip(records, default_targets()[:4]):
        assert (record.target_x, record.target_y) == pytest.approx(target.to_screen(SCREEN))


def test_more_points_than_targets_rejected():
    with pytest.raises(ValueError):
        CalibrationAggregator(CalibrationConfig(point_count=10, min_points=10))
    with pytest.raises(ValueError):
        CalibrationAggregator(targets=default_targets()[:3])


def test_restore_from_records():
    records = [CalibrationRecord(float(i), float(i), tuple(make_vector()), 10) for i in range(9)]
    agg = CalibrationAggregator()
    agg.restore(records)
    assert agg.state is CalibrationState.FINISHED
    assert agg.completed_points == 9
    assert agg.finish() == records

    partial = CalibrationAggregator()
    partial.restore(records[:3])
    assert partial.state is CalibrationState.COLLECTING
    assert partial.current_index == 3


def test_start_clears_previous_session():
    agg = CalibrationAggregator()
    agg.start()
    _collect_point(agg, make_vector(), n=3)
    agg.start()
    assert agg.completed_points == 0
    assert agg.current_index == 0
    agg.clear()
    assert agg.state is CalibrationState.IDLE


def test_record_dict_round_trip_keys():
    r = CalibrationRecord(100.0, 200.0, tuple(make_vector(offset=1.0)), 42)
    d = r.to_dict()
    assert set(d) == {"targetX", "targetY", "features", "sampleCount"}
    assert CalibrationRecord.from_dict(d) == r
    assert r.feature_vector().sample_count == 42
