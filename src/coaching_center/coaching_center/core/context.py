from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .exceptions import AuthorizationError


@dataclass(frozen=True)
class TenantContext:
    """Tenant scope passed explicitly into every service call.

    `coach_id` isolates data between coaching businesses; `actor_id` is who
    performs a write (the coach unless an assistant acts on their behalf).
    """

    coach_id: int
    actor_id: Optional[int] = None

    @property
    def actor(self) -> int:
        return int(self.actor_id if self.actor_id is not None else self.coach_id)

    @classmethod
    def for_coach(cls, coach_id, actor_id=None) -> "TenantContext":
        try:
            cid = int(coach_id)
        except (TypeError, ValueError):
            raise AuthorizationError("Missing or invalid tenant")
        if cid <= 0:
            raise AuthorizationError("Missing or invalid tenant")
        return cls(coach_id=cid, actor_id=int(actor_id) if actor_id is not None else None)
