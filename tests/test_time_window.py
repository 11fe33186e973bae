"""
Test half-open time windows.
"""
from datetime import datetime, timedelta, timezone

from campus_events.domain.time_window import TimeWindow

TEN = datetime(2025, 3, 4, 10, 0, tzinfo=timezone.utc)


class TestTimeWindow:
    """Test overlap and containment rules."""

    def test_end_is_start_plus_duration(self):
        window = TimeWindow.from_minutes(TEN, 90)
        assert window.end == TEN + timedelta(minutes=90)

    def test_overlapping_windows(self):
        a = TimeWindow.from_minutes(TEN, 60)
        b = TimeWindow.from_minutes(TEN + timedelta(minutes=30), 60)
        assert a.overlaps(b)
        assert b.overlaps(a)

    def test_adjacent_windows_do_not_overlap(self):
        a = TimeWindow.from_minutes(TEN, 60)
        b = TimeWindow.from_minutes(a.end, 60)
        assert not a.overlaps(b)
        assert not b.overlaps(a)

    def test_nested_window_overlaps(self):
        outer = TimeWindow.from_minutes(TEN, 180)
        inner = TimeWindow.from_minutes(TEN + timedelta(minutes=60), 15)
        assert outer.overlaps(inner)

    def test_contains_is_half_open(self):
        window = TimeWindow.from_minutes(TEN, 60)
        assert window.contains(TEN)
        assert window.contains(TEN + timedelta(minutes=59))
        assert not window.contains(window.end)
        assert not window.contains(TEN - timedelta(seconds=1))
