from __future__ import annotations
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy.orm import Session

from plantstock.core.errors import BadRequest, NotFound
from plantstock.db.models.common import utcnow

def commit_refresh(db: Session, obj):
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj

def get_or_404(db: Session, model, obj_id: str, label: str):
    obj = db.query(model).filter(model.id == obj_id).first()
    if not obj:
        raise NotFound(f"{label} not found")
    return obj

def require_fields(payload: dict, *names: str) -> None:
    missing = [n for n in names if payload.get(n) in (None, "")]
    if missing:
        raise BadRequest(f"Missing required fields: {', '.join(missing)}")

def to_decimal(value: Any, field: str) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, bool):
        raise BadRequest(f"{field} must be a number")
    try:
        d = Decimal(str(value))
    except InvalidOperation:
        raise BadRequest(f"{field} must be a number")
    if not d.is_finite():
        raise BadRequest(f"{field} must be a number")
    return d

def to_int(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise BadRequest(f"{field} must be an integer")

def to_datetime(value: Any, field: str) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            raise BadRequest(f"{field} must be an ISO date")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt

def to_date(value: Any, field: str) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    return to_datetime(value, field).date()

def to_bool(value: Any, field: str) -> bool:
    if not isinstance(value, bool):
        raise BadRequest(f"{field} must be true or false")
    return value

_CONVERTERS = {
    "decimal": to_decimal,
    "int": to_int,
    "datetime": to_datetime,
    "date": to_date,
    "bool": to_bool,
}

def apply_patch(obj, payload: dict, fields: dict[str, tuple[str, str]], required: tuple[str, ...] = ()) -> list[str]:
    """Shallow-merge the known camelCase keys of ``payload`` onto ``obj``.

    ``fields`` maps JSON key -> (attribute, kind); kind is one of
    str/decimal/int/datetime/date/bool/json. Unknown keys are ignored.
    Returns the JSON keys that were applied.
    """
    applied = []
    for key, (attr, kind) in fields.items():
        if key not in payload:
            continue
        value = payload[key]
        if key in required and value in (None, ""):
            raise BadRequest(f"{key} cannot be empty")
        conv = _CONVERTERS.get(kind)
        if conv:
            value = conv(value, key)
        elif kind == "str" and value is not None:
            value = str(value)
        setattr(obj, attr, value)
        applied.append(key)
    if hasattr(obj, "updated_at"):
        obj.updated_at = utcnow()
    return applied
