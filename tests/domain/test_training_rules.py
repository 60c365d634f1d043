"""Tests for the pure training rules: watch percentage, video gate, debounce, expiry."""

from datetime import datetime, timedelta, timezone

import pytest
from hypothesis import given
from hypothesis import strategies as st

from staff_portal.domain.training import (
    add_months,
    compute_expiry,
    passes_video_gate,
    should_persist_sample,
    watch_percentage,
)

UTC = timezone.utc


class TestWatchPercentage:
    def test_simple_ratio(self):
        assert watch_percentage(45, 90) == pytest.approx(50.0)

    def test_zero_duration_is_zero(self):
        assert watch_percentage(30, 0) == 0.0

    def test_overshoot_clamped(self):
        assert watch_percentage(120, 100) == 100.0

    def test_negative_time_clamped(self):
        assert watch_percentage(-5, 100) == 0.0

    @given(
        current=st.floats(min_value=-1e6, max_value=1e6, allow_nan=False),
        duration=st.floats(min_value=-1e6, max_value=1e6, allow_nan=False),
    )
    def test_always_within_bounds(self, current, duration):
        assert 0.0 <= watch_percentage(current, duration) <= 100.0


class TestVideoGate:
    def test_module_without_video_always_passes(self):
        assert passes_video_gate(False, None)

    def test_below_threshold_blocked(self):
        assert not passes_video_gate(True, 89.9)

    def test_at_threshold_passes(self):
        assert passes_video_gate(True, 90.0)

    def test_explicit_completion_overrides(self):
        assert passes_video_gate(True, 10.0, video_completed=True)

    def test_no_watch_record_blocked(self):
        assert not passes_video_gate(True, None)

    def test_custom_threshold(self):
        assert passes_video_gate(True, 75.0, threshold=75.0)


class TestDebounce:
    def test_first_sample_persisted(self):
        assert should_persist_sample(None, datetime(2024, 1, 1, tzinfo=UTC))

    def test_within_window_skipped(self):
        last = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)
        assert not should_persist_sample(last, last + timedelta(seconds=4.9))

    def test_at_window_persisted(self):
        last = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)
        assert should_persist_sample(last, last + timedelta(seconds=5))

    def test_finished_video_persisted_inside_window(self):
        last = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)
        assert should_persist_sample(
            last, last + timedelta(seconds=1), new_percentage=100.0, stored_percentage=85.0,
        )

    def test_crossing_threshold_persisted_inside_window(self):
        last = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)
        assert should_persist_sample(
            last, last + timedelta(seconds=1), new_percentage=92.0, stored_percentage=88.0,
        )

    def test_no_gain_past_threshold_skipped(self):
        last = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)
        assert not should_persist_sample(
            last, last + timedelta(seconds=1), new_percentage=93.0, stored_percentage=95.0,
        )

    def test_below_threshold_inside_window_skipped(self):
        last = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)
        assert not should_persist_sample(
            last, last + timedelta(seconds=1), new_percentage=60.0, stored_percentage=50.0,
        )


class TestExpiry:
    def test_end_of_month_clamped(self):
        assert add_months(datetime(2024, 1, 31, tzinfo=UTC), 1) == datetime(2024, 2, 29, tzinfo=UTC)

    def test_non_leap_february(self):
        assert add_months(datetime(2023, 1, 31, tzinfo=UTC), 1) == datetime(2023, 2, 28, tzinfo=UTC)

    def test_year_rollover(self):
        assert add_months(datetime(2024, 11, 15, tzinfo=UTC), 14) == datetime(2026, 1, 15, tzinfo=UTC)

    def test_time_of_day_preserved(self):
        moment = datetime(2024, 3, 10, 9, 30, tzinfo=UTC)
        assert add_months(moment, 12) == datetime(2025, 3, 10, 9, 30, tzinfo=UTC)

    def test_no_expiry_months_means_no_expiry(self):
        assert compute_expiry(datetime(2024, 1, 1, tzinfo=UTC), None) is None
        assert compute_expiry(datetime(2024, 1, 1, tzinfo=UTC), 0) is None

    @given(
        moment=st.datetimes(
            min_value=datetime(2000, 1, 1), max_value=datetime(2090, 12, 31),
        ),
        months=st.integers(min_value=1, max_value=120),
    )
    def test_expiry_lands_in_target_month(self, moment, months):
        result = add_months(moment, months)
        year, month_index = divmod(moment.year * 12 + moment.month - 1 + months, 12)
        assert (result.year, result.month) == (year, month_index + 1)
        assert result.day <= moment.day
        assert result > moment
