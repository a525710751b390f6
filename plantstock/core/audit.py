from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.orm import Session

from plantstock.db.models.common import iso
from plantstock.db.models.security_audit import SystemLog

logger = logging.getLogger("plantstock.audit")

_LEVELS = {"info": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}


def audit(
    db: Session,
    *,
    actor: str,
    action: str,
    entity_type: str,
    entity_id: str | None = None,
    payload: dict | None = None,
    message: str | None = None,
    level: str = "info",
    request_id: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    status_code: int | None = None,
    success: bool = True,
) -> None:
    """Write an append-only system log record.

    Keep payload JSON-serializable.
    """
    safe_payload: dict[str, Any] = payload or {}
    try:
        safe_payload = json.loads(json.dumps(safe_payload, default=str))
    except (TypeError, ValueError):
        safe_payload = {"_payload_error": "non_json", "_payload_repr": repr(payload)}

    logger.log(_LEVELS.get(level, logging.INFO), "%s %s %s/%s", actor, action, entity_type, entity_id or "-")
    db.add(
        SystemLog(
            level=level,
            actor=actor,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            request_id=request_id,
            ip_address=ip_address,
            user_agent=user_agent,
            status_code=status_code,
            success=success,
            message=message,
            payload=safe_payload,
        )
    )
    db.commit()


def log_row(row: SystemLog) -> dict:
    return {
        "id": row.id,
        "timestamp": iso(row.created_at),
        "level": row.level,
        "user": row.actor,
        "action": row.action,
        "entityType": row.entity_type,
        "entityId": row.entity_id,
        "message": row.message,
        "requestId": row.request_id,
        "ipAddress": row.ip_address,
        "statusCode": row.status_code,
        "success": row.success,
        "details": row.payload or {},
    }
