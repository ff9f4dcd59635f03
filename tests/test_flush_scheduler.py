"""Tests for the flush scheduler."""

import pytest

from ssort.flush_scheduler import IDLE, Armed, FlushScheduler


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestFlushScheduler:
    """Tests for FlushScheduler class."""

    def test_starts_idle(self):
        """A new scheduler should not be armed."""
        scheduler = FlushScheduler(0.5, clock=FakeClock())
        assert scheduler.state == IDLE
        assert scheduler.armed is False
        assert scheduler.remaining() is None
        assert scheduler.is_due() is False

    def test_rejects_non_positive_interval(self):
        """Intervals must be positive."""
        with pytest.raises(ValueError):
            FlushScheduler(0)

    def test_arm_sets_deadline(self):
        """arm() should schedule a tick one interval ahead."""
        clock = FakeClock(10.0)
        scheduler = FlushScheduler(0.5, clock=clock)
        scheduler.arm()

        assert scheduler.state == Armed(10.5)
        assert scheduler.remaining() == pytest.approx(0.5)

    def test_due_after_interval(self):
        """The timer is due once the deadline passed."""
        clock = FakeClock()
        scheduler = FlushScheduler(0.5, clock=clock)
        scheduler.arm()

        clock.advance(0.25)
        assert scheduler.is_due() is False

        clock.advance(0.25)
        assert scheduler.is_due() is True
        assert scheduler.remaining() == 0.0

    def test_rearm_pushes_deadline(self):
        """Re-arming after a flush restarts the interval from now."""
        clock = FakeClock(0.0)
        scheduler = FlushScheduler(1.0, clock=clock)
        scheduler.arm()

        clock.advance(0.75)
        scheduler.arm()

        clock.advance(0.5)
        assert scheduler.is_due() is False
        assert scheduler.state == Armed(1.75)

    def test_advance_keeps_fixed_schedule(self):
        """A no-op tick moves to the next slot of the original schedule."""
        clock = FakeClock(0.0)
        scheduler = FlushScheduler(1.0, clock=clock)
        scheduler.arm()

        clock.advance(1.2)
        scheduler.advance()

        assert scheduler.state == Armed(2.0)

    def test_advance_skips_missed_ticks(self):
        """Missed ticks are dropped rather than fired in a burst."""
        clock = FakeClock(0.0)
        scheduler = FlushScheduler(1.0, clock=clock)
        scheduler.arm()

        clock.advance(3.5)
        scheduler.advance()

        assert scheduler.state == Armed(4.0)
        assert scheduler.is_due() is False

    def test_advance_before_deadline_is_noop(self):
        """Advancing early leaves the deadline alone."""
        clock = FakeClock(0.0)
        scheduler = FlushScheduler(1.0, clock=clock)
        scheduler.arm()
        scheduler.advance()

        assert scheduler.state == Armed(1.0)

    def test_advance_while_idle(self):
        """Advancing an idle scheduler keeps it idle."""
        scheduler = FlushScheduler(1.0, clock=FakeClock())
        scheduler.advance()
        assert scheduler.state == IDLE

    def test_disarm(self):
        """disarm() should return to idle."""
        scheduler = FlushScheduler(1.0, clock=FakeClock())
        scheduler.arm()
        scheduler.disarm()

        assert scheduler.armed is False
        assert scheduler.remaining() is None
