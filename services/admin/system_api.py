from __future__ import annotations

import asyncio
import logging
import os
from datetime import timedelta

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from plantstock.core.audit import audit, log_row
from plantstock.core.envelope import ok, paginate
from plantstock.core.security import require_roles
from plantstock.db.session import get_db
from plantstock.db.models.auth import User
from plantstock.db.models.common import iso, utcnow
from plantstock.db.models.security_audit import SystemLog
from services._crud import to_date
from services.admin.settings_api import save_settings
from services.movements.api import day_start
from services.suppliers.api import query_suppliers, supplier_out

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin_system"])

ADMIN_TASK_DELAY_SCALE = float(os.getenv("ADMIN_TASK_DELAY_SCALE", "1.0"))

# seconds each maintenance task takes before reporting back
TASK_DELAYS = {"backup": 2.0, "optimize": 3.0, "clear-logs": 1.0, "restore": 5.0}


async def _wait(task: str) -> None:
    delay = TASK_DELAYS[task] * ADMIN_TASK_DELAY_SCALE
    if delay > 0:
        await asyncio.sleep(delay)


@router.get("/logs")
def list_logs(
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles("admin")),
    level: str | None = None,
    action: str | None = None,
    startDate: str | None = None,
    endDate: str | None = None,
    page: int = 1,
    limit: int = 50,
):
    q = db.query(SystemLog)
    if level and level != "all":
        q = q.filter(SystemLog.level == level)
    if action:
        q = q.filter(SystemLog.action.ilike(f"{action}%"))
    if startDate:
        q = q.filter(SystemLog.created_at >= day_start(to_date(startDate, "startDate")))
    if endDate:
        q = q.filter(SystemLog.created_at < day_start(to_date(endDate, "endDate")) + timedelta(days=1))
    rows = q.order_by(SystemLog.created_at.desc()).all()
    return ok(paginate([log_row(r) for r in rows], page, limit))


@router.get("/suppliers")
def admin_suppliers(
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles("admin")),
    search: str | None = None,
    status: str | None = None,
):
    return ok([supplier_out(s) for s in query_suppliers(db, search, status)])


def _finish_backup(db: Session, actor: str) -> None:
    save_settings(db, "backup", {"lastBackup": iso(utcnow())}, actor)
    audit(db, actor=actor, action="admin.backup", entity_type="system", message="Backup completed")


def _clear_logs(db: Session, actor: str) -> int:
    removed = db.query(SystemLog).delete(synchronize_session=False)
    db.commit()
    logger.info("cleared %d system log rows", removed)
    audit(db, actor=actor, action="admin.clear_logs", entity_type="system", payload={"removed": removed})
    return removed


@router.post("/backup")
async def backup(db: Session = Depends(get_db), admin: User = Depends(require_roles("admin"))):
    await _wait("backup")
    await run_in_threadpool(_finish_backup, db, admin.email)
    return ok(message="Backup completed successfully")


@router.post("/optimize")
async def optimize(db: Session = Depends(get_db), admin: User = Depends(require_roles("admin"))):
    await _wait("optimize")
    await run_in_threadpool(
        audit, db, actor=admin.email, action="admin.optimize", entity_type="system",
        message="Database optimization completed",
    )
    return ok(message="Database optimization completed")


@router.post("/clear-logs")
async def clear_logs(db: Session = Depends(get_db), admin: User = Depends(require_roles("admin"))):
    await _wait("clear-logs")
    removed = await run_in_threadpool(_clear_logs, db, admin.email)
    return ok({"removed": removed}, "System logs cleared successfully")


@router.post("/restore")
async def restore(db: Session = Depends(get_db), admin: User = Depends(require_roles("admin"))):
    await _wait("restore")
    await run_in_threadpool(
        audit, db, actor=admin.email, action="admin.restore", entity_type="system",
        level="warning", message="Restore requested",
    )
    return ok(message="Database restored successfully")
