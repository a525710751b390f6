from __future__ import annotations

import copy

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from plantstock.core.audit import audit
from plantstock.core.envelope import ok
from plantstock.core.errors import BadRequest
from plantstock.core.security import require_roles
from plantstock.db.session import get_db
from plantstock.db.models.auth import User
from plantstock.db.models.common import utcnow
from plantstock.db.models.system import Setting

router = APIRouter(prefix="/api/admin/settings", tags=["admin_settings"])

DEFAULT_SETTINGS: dict[str, dict] = {
    "general": {
        "companyName": "Plantstock",
        "timezone": "UTC",
        "language": "en",
        "currency": "USD",
        "dateFormat": "YYYY-MM-DD",
        "timeFormat": "24h",
    },
    "inventory": {
        "autoReorderEnabled": True,
        "lowStockThreshold": 10,
        "criticalStockThreshold": 5,
        "defaultLocation": "Main Warehouse",
        "enableBarcodeScanning": True,
    },
    "workOrders": {
        "autoNumbering": True,
        "numberPrefix": "WO",
        "requireApproval": False,
        "autoMaterialConsumption": True,
        "defaultPriority": "MEDIUM",
    },
    "notifications": {
        "emailNotifications": True,
        "lowStockAlerts": True,
        "workOrderAlerts": True,
        "systemMaintenanceAlerts": True,
        "reportScheduling": True,
    },
    "security": {
        "sessionTimeout": 480,  # minutes
        "passwordMinLength": 6,
        "requirePasswordChange": False,
        "passwordChangeInterval": 90,  # days
        "enableTwoFactor": False,
        "maxLoginAttempts": 5,
    },
    "backup": {
        "autoBackup": True,
        "backupInterval": "daily",
        "retentionPeriod": 30,  # days
        "lastBackup": None,
    },
}


def load_settings(db: Session) -> dict:
    """Stored settings merged over the defaults, one dict per category."""
    out = copy.deepcopy(DEFAULT_SETTINGS)
    for row in db.query(Setting).all():
        if row.category in out:
            out[row.category].update(row.value or {})
    return out


def save_settings(db: Session, category: str, values: dict, actor: str | None) -> dict:
    row = db.query(Setting).filter(Setting.category == category).first()
    if not row:
        row = Setting(category=category, value={})
        db.add(row)
    row.value = {**(row.value or {}), **values}
    row.updated_by = actor
    row.updated_at = utcnow()
    db.commit()
    return load_settings(db)[category]


@router.get("")
def get_settings(db: Session = Depends(get_db), admin: User = Depends(require_roles("admin"))):
    return ok(load_settings(db))


@router.put("")
def update_settings(payload: dict, db: Session = Depends(get_db), admin: User = Depends(require_roles("admin"))):
    category = payload.get("category")
    values = payload.get("settings")
    if not category or values is None:
        raise BadRequest("category and settings are required")
    if category not in DEFAULT_SETTINGS:
        raise BadRequest("Invalid settings category")
    if not isinstance(values, dict):
        raise BadRequest("settings must be an object")

    merged = save_settings(db, category, values, admin.email)
    audit(db, actor=admin.email, action="settings.update", entity_type="settings", entity_id=category, payload=values)
    return ok(merged, f"{category} settings updated")
