from __future__ import annotations

import math
from typing import Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_int(value, field_name: str, *, min_value: Optional[int] = None, max_value: Optional[int] = None) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an integer")
    if min_value is not None and n < min_value:
        raise ValidationError(f"{field_name} must be at least {min_value}")
    if max_value is not None and n > max_value:
        raise ValidationError(f"{field_name} must be at most {max_value}")
    return n


def optional_int(value, field_name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    return require_int(value, field_name, min_value=0)


def require_number(value, field_name: str, *, min_value: Optional[float] = None) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    try:
        n = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
    if not math.isfinite(n):
        raise ValidationError(f"{field_name} must be a finite number")
    if min_value is not None and n < min_value:
        raise ValidationError(f"{field_name} must not be less than {min_value:g}")
    return n


def optional_text(value, field_name: str, *, max_length: int = 500) -> Optional[str]:
    if value is None:
        return None
    v = str(value).strip()
    if not v:
        return None
    if len(v) > max_length:
        raise ValidationError(f"{field_name} must not exceed {max_length} characters")
    return v


def optional_bool(value, field_name: str, *, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
        return value.strip().lower() == "true"
    raise ValidationError(f"{field_name} must be true or false")
