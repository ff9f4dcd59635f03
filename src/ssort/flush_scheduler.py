"""Timer that decides when the priority buffer is flushed."""

import time
from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True)
class Idle:
    """The timer is not running."""


@dataclass(frozen=True)
class Armed:
    """The timer fires at `deadline` (clock seconds)."""
    deadline: float


IDLE = Idle()

TimerState = Idle | Armed


class FlushScheduler:
    """Recurring flush timer with an explicit Idle/Armed state.

    Ticks follow a fixed schedule of `interval` seconds, like a ticker that
    drops missed ticks. A flush that actually emitted lines re-arms the timer
    so the next tick comes a full interval later.

    Usage:
        scheduler = FlushScheduler(0.5)
        scheduler.arm()
        while ...:
            if scheduler.is_due():
                if buffer_flushed_something:
                    scheduler.arm()
                else:
                    scheduler.advance()
    """

    def __init__(
        self,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"Flush interval must be positive, got {interval}")
        self.interval = interval
        self._clock = clock
        self.state: TimerState = IDLE

    @property
    def armed(self) -> bool:
        return isinstance(self.state, Armed)

    def arm(self) -> None:
        """Start the timer, or restart it one interval from now."""
        self.state = Armed(self._clock() + self.interval)

    def disarm(self) -> None:
        self.state = IDLE

    def advance(self) -> None:
        """Move to the next tick on the fixed schedule after a no-op tick."""
        if not isinstance(self.state, Armed):
            return
        now = self._clock()
        deadline = self.state.deadline
        if deadline <= now:
            missed = int((now - deadline) // self.interval) + 1
            deadline += missed * self.interval
        self.state = Armed(deadline)

    def remaining(self) -> float | None:
        """Seconds until the next tick, or None while idle."""
        if not isinstance(self.state, Armed):
            return None
        return max(0.0, self.state.deadline - self._clock())

    def is_due(self) -> bool:
        if not isinstance(self.state, Armed):
            return False
        return self._clock() >= self.state.deadline
