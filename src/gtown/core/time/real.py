"""Production Time implementation."""

from datetime import UTC, datetime

from gtown.core.time.abc import Time


class RealTime(Time):
    """Production implementation backed by the system clock."""

    def now(self) -> datetime:
        return datetime.now(UTC)
