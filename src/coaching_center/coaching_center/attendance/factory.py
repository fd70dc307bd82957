from __future__ import annotations

from dataclasses import dataclass

from ..core.exceptions import ValidationError
from .policies.base import AttendancePercentagePolicy
from .policies.exclude_holidays import ExcludeHolidaysPolicy
from .policies.include_holidays import IncludeHolidaysPolicy


@dataclass
class AttendancePolicyFactory:
    """Factory Pattern: resolve the configured percentage policy by name."""

    def for_name(self, name: str | None) -> AttendancePercentagePolicy:
        key = (name or ExcludeHolidaysPolicy.name).strip().lower()
        if key == ExcludeHolidaysPolicy.name:
            return ExcludeHolidaysPolicy()
        if key == IncludeHolidaysPolicy.name:
            return IncludeHolidaysPolicy()
        raise ValidationError(f"Unknown attendance percentage policy: {name}")
