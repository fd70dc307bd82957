from __future__ import annotations

from ..model import AttendanceTally
from .base import AttendancePercentagePolicy


class IncludeHolidaysPolicy(AttendancePercentagePolicy):
    """present / every recorded day, holidays included."""

    name = "include_holidays"

    def denominator(self, tally: AttendanceTally) -> int:
        return tally.total_days
