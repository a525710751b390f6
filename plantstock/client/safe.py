"""Coercion helpers for values of unknown shape coming off the wire."""
from __future__ import annotations

import json
import math
from datetime import date, datetime
from typing import Any


def is_safe_to_render(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def safe_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return ", ".join(safe_text(v) for v in value)
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return "[Object]"


def safe_number(value: Any, default: float = 0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return default if math.isnan(value) else value
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return default
        return default if math.isnan(parsed) else parsed
    return default


def safe_array(value: Any) -> list:
    return value if isinstance(value, list) else []


def safe_prop(obj: Any, key: str, default: Any = None) -> Any:
    if isinstance(obj, dict) and key in obj:
        return obj[key]
    return default
