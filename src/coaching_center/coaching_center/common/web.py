from __future__ import annotations

import logging
from functools import wraps
from typing import Optional

from flask import jsonify, request, session

from ..core.context import TenantContext
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from .validators import require_int

logger = logging.getLogger(__name__)


def _fail(message: str, status: int):
    return jsonify({"success": False, "message": message}), status


def coach_required(view):
    """Reject requests with no coach in the session; map domain errors to JSON responses."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        if "coach_id" not in session:
            return _fail("Unauthorized", 401)
        try:
            return view(*args, **kwargs)
        except ValidationError as e:
            return _fail(str(e), 400)
        except NotFoundError as e:
            return _fail(str(e), 404)
        except AuthorizationError as e:
            return _fail(str(e), 401)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.path)
            return _fail("Internal server error", 500)

    return wrapper


def current_context() -> TenantContext:
    return TenantContext.for_coach(session.get("coach_id"), session.get("actor_id"))


def ok(payload: dict, status: int = 200):
    return jsonify({"success": True, **payload}), status


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def arg_int(name: str, *, default: Optional[int] = None, min_value: Optional[int] = None) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        if default is None:
            raise ValidationError(f"{name} is required")
        return default
    return require_int(raw, name, min_value=min_value)


def arg_str(name: str, *, required: bool = False) -> Optional[str]:
    raw = (request.args.get(name) or "").strip()
    if not raw:
        if required:
            raise ValidationError(f"{name} is required")
        return None
    return raw
