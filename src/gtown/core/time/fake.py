"""Fake Time implementation for testing."""

from datetime import UTC, datetime, timedelta

from gtown.core.time.abc import Time


class FakeTime(Time):
    """Time implementation returning a fixed, manually advanced clock.

    Every call to now() is recorded so tests can assert that a timestamp
    was taken.
    """

    def __init__(self, current: datetime | None = None) -> None:
        self._current = current or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        self._now_calls = 0

    def now(self) -> datetime:
        self._now_calls += 1
        return self._current

    def advance(self, seconds: float) -> None:
        """Move the clock forward."""
        self._current = self._current + timedelta(seconds=seconds)

    @property
    def now_calls(self) -> int:
        """Number of times now() was called."""
        return self._now_calls
