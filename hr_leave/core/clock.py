"""
Clock abstraction.

All date-dependent rules (past-date validation, "already started", the
generator's target day) read time through a Clock so tests can pin it.
"""
from datetime import date, datetime, timezone


class Clock:
    """Wall clock. `today()` is the server's local calendar day."""

    def today(self) -> date:
        return date.today()

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock frozen on a given day; used by tests and one-off replays."""

    def __init__(self, day: date):
        self.day = day

    def today(self) -> date:
        return self.day

    def now(self) -> datetime:
        return datetime.combine(self.day, datetime.min.time(), tzinfo=timezone.utc)

    def advance_to(self, day: date) -> None:
        self.day = day


_system_clock = Clock()


def get_clock() -> Clock:
    """FastAPI dependency; overridden in tests."""
    return _system_clock
