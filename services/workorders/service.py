"""Work order numbering, status transitions and material consumption."""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import Session

from plantstock.core.errors import BadRequest
from plantstock.core.sequence import next_sequence
from plantstock.db.models.common import as_utc, utcnow
from plantstock.db.models.inventory import MaterialMovement
from plantstock.db.models.production import BOMItem, WorkOrder
from services.inventory.stock import lock_material, post_movement, check_availability

logger = logging.getLogger(__name__)

STATUSES = ("PLANNED", "IN_PROGRESS", "COMPLETED", "CANCELLED")
PRIORITIES = ("LOW", "MEDIUM", "HIGH", "CRITICAL")
OPEN_STATUSES = ("PLANNED", "IN_PROGRESS")

# target status -> statuses it may be reached from
TRANSITIONS = {
    "IN_PROGRESS": ("PLANNED",),
    "COMPLETED": ("IN_PROGRESS",),
    "CANCELLED": ("PLANNED", "IN_PROGRESS"),
}


def next_order_number(db: Session, now: datetime | None = None) -> str:
    year = (now or utcnow()).year
    seq = next_sequence(db, f"work_order:{year}")
    return f"WO-{year}-{seq:03d}"


def is_overdue(wo: WorkOrder, now: datetime | None = None) -> bool:
    if wo.status not in OPEN_STATUSES:
        return False
    deadline = as_utc(wo.due_date or wo.planned_end_date)
    return deadline is not None and deadline < (now or utcnow())


def requirements(db: Session, wo: WorkOrder) -> list[tuple[str, Decimal]]:
    """Materials a work order consumes on completion.

    Its own materials list when given, else the machine BOM times the order quantity.
    """
    if wo.materials:
        return [(line["materialId"], Decimal(str(line["quantity"]))) for line in wo.materials]
    if not wo.machine_id:
        return []
    qty = Decimal(wo.quantity or 1)
    bom = db.query(BOMItem).filter(BOMItem.machine_id == wo.machine_id).order_by(BOMItem.created_at.asc()).all()
    return [(b.material_id, Decimal(b.quantity) * qty) for b in bom]


def consume_materials(db: Session, wo: WorkOrder, actor_id: str | None) -> list[MaterialMovement]:
    lines = requirements(db, wo)
    shortages = check_availability(db, lines)
    if shortages:
        codes = ", ".join(s["materialCode"] or s["materialId"] for s in shortages)
        raise BadRequest(f"Insufficient stock for: {codes}")

    posted = []
    for material_id, qty in lines:
        material = lock_material(db, material_id)
        posted.append(post_movement(
            db,
            material=material,
            type="OUT",
            quantity=qty,
            performed_by=actor_id,
            reason="PRODUCTION",
            description=f"Consumed by work order {wo.order_number}",
            work_order_id=wo.id,
        ))
    return posted


def transition(db: Session, wo: WorkOrder, target: str, actor_id: str | None) -> list[MaterialMovement]:
    """Move a work order to ``target``; does not commit.

    Completing posts the consumption movements in the same transaction, so a
    shortage leaves both the order and the stock untouched.
    """
    if target not in TRANSITIONS:
        raise BadRequest(f"Invalid status: {target}")
    if wo.status not in TRANSITIONS[target]:
        raise BadRequest(f"Cannot change status from {wo.status} to {target}")

    now = utcnow()
    posted: list[MaterialMovement] = []
    if target == "IN_PROGRESS":
        wo.actual_start_date = now
    elif target == "COMPLETED":
        posted = consume_materials(db, wo, actor_id)
        wo.actual_end_date = now
        started = as_utc(wo.actual_start_date)
        if started:
            wo.actual_duration = round((now - started).total_seconds() / 3600)
    wo.status = target
    wo.updated_at = now
    logger.info("work order %s -> %s (%d movements)", wo.order_number, target, len(posted))
    return posted
