"""
Request parsing helpers shared by the blueprints.

Only shape checks live here (present, integer, object). Business rules
(amounts, dates, stock) are enforced by the value objects and models.
"""

from __future__ import annotations

import re
from typing import Any

from flask import request

from .errors import ValidationFailure


def get_json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationFailure("Request body must be a JSON object")
    return data


def require_fields(data: dict, *fields: str) -> None:
    missing = [field for field in fields if data.get(field) in (None, "")]
    if missing:
        raise ValidationFailure(
            f"Missing required fields: {', '.join(missing)}",
            details={"missing": missing},
        )


def parse_int(value: Any, field: str, *, required: bool = False, minimum: int | None = None) -> int | None:
    """Strict integer parsing: rejects bools, floats and decimal strings."""
    if value is None or value == "":
        if required:
            raise ValidationFailure(f"{field} is required", details={"field": field})
        return None
    if isinstance(value, bool):
        raise ValidationFailure(f"{field} must be an integer", details={"field": field})
    if isinstance(value, int):
        result = value
    elif isinstance(value, str) and re.fullmatch(r"-?\d+", value.strip()):
        result = int(value.strip())
    else:
        raise ValidationFailure(f"{field} must be an integer", details={"field": field, "value": str(value)})
    if minimum is not None and result < minimum:
        raise ValidationFailure(
            f"{field} must be at least {minimum}",
            details={"field": field, "value": result},
        )
    return result


def parse_pagination(args) -> tuple[int, int]:
    limit = parse_int(args.get("limit"), "limit", minimum=1) or 50
    offset = parse_int(args.get("offset"), "offset", minimum=0) or 0
    return limit, offset
