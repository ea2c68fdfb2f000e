"""Smoke tests for the domain models."""

from datetime import datetime, timedelta, timezone

import pytest

from smokewatch.domain.aggregate import AggregateSnapshot, HourPoint
from smokewatch.domain.enums import IngestStatus, PointStatus
from smokewatch.domain.event import NormalizedEvent
from smokewatch.domain.geo import Coordinates
from smokewatch.domain.history import HistoryEntry
from smokewatch.domain.watch_point import WatchPoint

_T0 = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)
_LIBRARY = Coordinates(latitude=37.5826, longitude=127.0106)


def _event(is_alert: bool = True, at: datetime = _T0, photo: str | None = "p1") -> NormalizedEvent:
    return NormalizedEvent(
        address="Library",
        is_alert=is_alert,
        photo=photo if is_alert else None,
        occurred_at=at,
        status_tag="smoking" if is_alert else "clear",
    )


def test_coordinates_range_enforced() -> None:
    with pytest.raises(Exception):
        Coordinates(latitude=90.5, longitude=0.0)
    with pytest.raises(Exception):
        Coordinates(latitude=0.0, longitude=float("nan"))


def test_coordinates_are_immutable() -> None:
    with pytest.raises(Exception):
        _LIBRARY.latitude = 0.0


def test_normalized_event_naive_time_gets_utc() -> None:
    event = _event(at=datetime(2026, 3, 2, 9, 30))
    assert event.occurred_at == _T0


def test_history_entry_record_round_trip() -> None:
    entry = HistoryEntry(address="Library", photo="p1", timestamp=_T0)
    record = entry.to_record()
    assert record == {"address": "Library", "photo": "p1", "timestamp": "2026-03-02T09:30:00Z"}
    assert HistoryEntry.from_record("Library", record) == entry


def test_ingest_status_retryable() -> None:
    assert IngestStatus.UNRESOLVED.retryable
    assert IngestStatus.STORAGE_FAILED.retryable
    assert not IngestStatus.REJECTED.retryable
    assert not IngestStatus.ACCEPTED.retryable


class TestWatchPoint:
    def test_from_alert_event(self) -> None:
        point = WatchPoint.from_event(_event(), _LIBRARY)
        assert point.status == PointStatus.ALERT
        assert point.photo == "p1"
        assert point.updated_at == _T0
        assert point.alert_count == 1

    def test_from_clear_event_has_no_photo(self) -> None:
        point = WatchPoint.from_event(_event(is_alert=False), _LIBRARY)
        assert point.status == PointStatus.CLEAR
        assert point.photo is None
        assert point.alert_count == 0

    def test_apply_keeps_identity(self) -> None:
        point = WatchPoint.from_event(_event(), _LIBRARY)
        point_id = point.point_id
        later = _T0 + timedelta(minutes=5)
        point.apply(_event(is_alert=False, at=later))
        assert point.point_id == point_id
        assert point.address == "Library"
        assert point.coordinates == _LIBRARY
        assert point.status == PointStatus.CLEAR
        assert point.updated_at == later
        assert point.version == 2

    def test_clear_keeps_last_alert_photo(self) -> None:
        point = WatchPoint.from_event(_event(photo="p1"), _LIBRARY)
        point.apply(_event(is_alert=False, at=_T0 + timedelta(minutes=1)))
        assert point.photo == "p1"

    def test_is_stale(self) -> None:
        point = WatchPoint.from_event(_event(), _LIBRARY)
        assert point.is_stale(_event(at=_T0 - timedelta(seconds=1)))
        assert not point.is_stale(_event(at=_T0))

    def test_snapshot_is_frozen_copy(self) -> None:
        point = WatchPoint.from_event(_event(), _LIBRARY)
        snap = point.snapshot()
        point.apply(_event(is_alert=False, at=_T0 + timedelta(minutes=1)))
        assert snap.status == PointStatus.ALERT
        with pytest.raises(Exception):
            snap.status = PointStatus.CLEAR


class TestAggregateSnapshot:
    def test_weekday_counts_must_have_seven_slots(self) -> None:
        with pytest.raises(Exception):
            AggregateSnapshot(
                generated_at=_T0,
                window_days=7,
                window_start=_T0 - timedelta(days=7),
                weekday_counts=[0] * 6,
            )

    def test_derived_views(self) -> None:
        snap = AggregateSnapshot(
            generated_at=_T0,
            window_days=7,
            window_start=_T0 - timedelta(days=7),
            per_location_counts={"Library": 2, "Gym": 1},
            hour_of_day_points=[
                HourPoint(hour=9, address="Library"),
                HourPoint(hour=9, address="Gym"),
                HourPoint(hour=23, address="Library"),
            ],
            weekday_counts=[3, 0, 0, 0, 0, 0, 0],
        )
        assert snap.total_entries == 3
        hours = snap.hour_of_day_counts()
        assert len(hours) == 24
        assert hours[9] == 2 and hours[23] == 1
        assert snap.weekday_breakdown()["Monday"] == 3
