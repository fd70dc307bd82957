from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from ..common.numbers import round2


@dataclass(frozen=True)
class ScoreStats:
    count: int
    average: float
    median: float
    std_dev: float
    highest: float
    lowest: float


@dataclass(frozen=True)
class RankedScore:
    student_id: int
    score: float
    rank: int
    percentile: float


def score_summary(scores: Sequence[float]) -> ScoreStats:
    """Mean, median, population standard deviation and range, each rounded to 2 dp.

    Empty input gives all zeros. Standard deviation is taken against the
    unrounded mean.
    """

    if not scores:
        return ScoreStats(count=0, average=0.0, median=0.0, std_dev=0.0, highest=0.0, lowest=0.0)

    arr = np.asarray(scores, dtype=float)
    return ScoreStats(
        count=int(arr.size),
        average=round2(arr.mean()),
        median=round2(np.median(arr)),
        std_dev=round2(arr.std(ddof=0)),
        highest=round2(arr.max()),
        lowest=round2(arr.min()),
    )


def rank_scores(scores: Sequence[tuple[int, float]]) -> list[RankedScore]:
    """Competition ranking (1, 2, 2, 4), best score first.

    Equal scores are listed by student id. Percentile is the share of the
    other students with a strictly lower score; a lone student gets 100.
    """

    ordered = sorted(((int(sid), float(score)) for sid, score in scores), key=lambda x: (-x[1], x[0]))
    n = len(ordered)
    if n == 0:
        return []

    values = np.asarray([score for _, score in ordered], dtype=float)
    ascending = np.sort(values)

    out: list[RankedScore] = []
    rank = 0
    prev: float | None = None
    for position, (sid, score) in enumerate(ordered, start=1):
        if prev is None or score != prev:
            rank = position
            prev = score
        if n == 1:
            pct = 100.0
        else:
            lower = int(np.searchsorted(ascending, score, side="left"))
            pct = round2(lower / (n - 1) * 100.0)
        out.append(RankedScore(student_id=sid, score=score, rank=rank, percentile=pct))
    return out
