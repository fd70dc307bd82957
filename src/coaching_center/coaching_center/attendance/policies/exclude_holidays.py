from __future__ import annotations

from ..model import AttendanceTally
from .base import AttendancePercentagePolicy


class ExcludeHolidaysPolicy(AttendancePercentagePolicy):
    """Default rule: present / (present + absent); holidays are not missed classes."""

    name = "exclude_holidays"

    def denominator(self, tally: AttendanceTally) -> int:
        return tally.working_days
