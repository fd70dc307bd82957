from __future__ import annotations

import math


def round2(value) -> float:
    """Round to 2 decimals; NaN/inf/None collapse to 0.0 so reports never carry them."""
    if value is None:
        return 0.0
    v = float(value)
    if math.isnan(v) or math.isinf(v):
        return 0.0
    return round(v, 2)


def percentage(part, whole) -> float:
    """part/whole*100 rounded to 2 decimals, clamped to [0, 100]; 0.0 when whole is 0."""
    if not whole:
        return 0.0
    pct = float(part) / float(whole) * 100.0
    return round2(min(max(pct, 0.0), 100.0))
