"""Cooldown projection tests: 24-hour windows in UTC."""

from datetime import datetime, timedelta, timezone

from fairchain.ledger.cooldown import (
    Ready,
    Waiting,
    as_utc,
    cooldown_state,
    format_remaining,
    remaining,
)

DAY = timedelta(hours=24)
T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestCooldownState:
    def test_never_started_is_ready(self):
        assert isinstance(cooldown_state(None, DAY, T0), Ready)

    def test_just_started_is_waiting(self):
        state = cooldown_state(T0, DAY, T0 + timedelta(seconds=1))
        assert isinstance(state, Waiting)
        assert state.remaining == DAY - timedelta(seconds=1)
        assert state.is_ready is False

    def test_exactly_at_boundary_is_ready(self):
        """The window is half-open: at started_at + 24h the action is available."""
        state = cooldown_state(T0, DAY, T0 + DAY)
        assert state.is_ready is True
        assert state.remaining == timedelta(0)

    def test_one_second_before_boundary(self):
        state = cooldown_state(T0, DAY, T0 + DAY - timedelta(seconds=1))
        assert isinstance(state, Waiting)
        assert state.remaining == timedelta(seconds=1)

    def test_long_after_boundary_never_negative(self):
        assert remaining(T0, DAY, T0 + timedelta(days=30)) == timedelta(0)

    def test_naive_timestamp_treated_as_utc(self):
        naive = T0.replace(tzinfo=None)
        assert cooldown_state(naive, DAY, T0 + timedelta(hours=1)).remaining == timedelta(hours=23)

    def test_other_timezone_normalized(self):
        plus_two = timezone(timedelta(hours=2))
        local = T0.astimezone(plus_two)
        assert as_utc(local) == T0
        assert remaining(local, DAY, T0) == DAY


class TestFormatRemaining:
    def test_zero(self):
        assert format_remaining(timedelta(0)) == "00h 00m 00s"

    def test_full_day(self):
        assert format_remaining(DAY) == "24h 00m 00s"

    def test_mixed(self):
        assert format_remaining(timedelta(hours=3, minutes=7, seconds=9)) == "03h 07m 09s"

    def test_hours_not_wrapped(self):
        assert format_remaining(timedelta(hours=49, seconds=5)) == "49h 00m 05s"

    def test_negative_clamped(self):
        assert format_remaining(timedelta(seconds=-10)) == "00h 00m 00s"
