from __future__ import annotations

from abc import ABC, abstractmethod

from ...common.numbers import percentage
from ..model import AttendanceTally


class AttendancePercentagePolicy(ABC):
    """Strategy Pattern: decide which recorded days count toward the attendance denominator."""

    name: str = ""

    @abstractmethod
    def denominator(self, tally: AttendanceTally) -> int:
        raise NotImplementedError

    def percentage(self, tally: AttendanceTally) -> float:
        return percentage(tally.present, self.denominator(tally))
