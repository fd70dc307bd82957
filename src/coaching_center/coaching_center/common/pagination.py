from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

from .validators import require_int

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def meta(self) -> dict:
        return {"page": self.page, "limit": self.limit, "totalPages": self.total_pages}


def paginate(items: Sequence[T], page, limit) -> Page[T]:
    page_n = require_int(page, "page", min_value=1)
    limit_n = require_int(limit, "limit", min_value=1, max_value=500)
    skip = (page_n - 1) * limit_n
    return Page(items=list(items[skip : skip + limit_n]), page=page_n, limit=limit_n, total=len(items))
