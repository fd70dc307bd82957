from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

from .model import Batch, Student


class TenantDirectory(Protocol):
    """Lookups into coach/batch/student records.

    Every call is scoped by coach_id; a record belonging to another coach is
    reported exactly like a missing one.
    """

    def get_batch(self, coach_id: int, batch_id: int) -> Optional[Batch]:
        raise NotImplementedError

    def find_active_students(self, coach_id: int, batch_id: int) -> Sequence[Student]:
        """Active members of the batch in roster order."""

        raise NotImplementedError

    def get_student(self, coach_id: int, student_id: int) -> Optional[Student]:
        raise NotImplementedError

    def get_students(self, coach_id: int, student_ids: Iterable[int]) -> Sequence[Student]:
        raise NotImplementedError

    def count_active_members(self, coach_id: int, batch_id: int, student_ids: Iterable[int]) -> int:
        """How many of the given ids are active members of the batch."""

        raise NotImplementedError
