"""Startup seeding: bootstrap admin and optional demo records."""
from __future__ import annotations

import logging
import os
from datetime import timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from plantstock.core.security import hash_password
from plantstock.db.models.auth import User
from plantstock.db.models.common import utcnow
from plantstock.db.models.inventory import Material, Supplier
from plantstock.db.models.production import BOMItem, Machine, WorkOrder
from services.inventory.stock import post_movement
from services.workorders.service import next_order_number

logger = logging.getLogger(__name__)

SEED_DEMO_DATA = os.getenv("SEED_DEMO_DATA", "false").lower() in ("1", "true", "yes")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")

DEMO_SUPPLIERS = [
    ("SUP001", "Northline Electrical Supply", "Dana Reyes"),
    ("SUP002", "Panelworks Ltd.", "Sam Okafor"),
    ("SUP003", "Precision Mechanical Parts", "Lee Park"),
]

# code, name, category, unit, opening stock, min, max, unit price, supplier, location
DEMO_MATERIALS = [
    ("ELK001", "Fuse 16A", "electrical", "piece", 100, 20, 200, "5.50", "Northline Electrical Supply", "A-01"),
    ("ELK002", "Contactor 25A", "electrical", "piece", 15, 10, 50, "45.00", "Northline Electrical Supply", "A-02"),
    ("PAN001", "Panel door 400x600", "panel", "piece", 25, 5, 40, "120.00", "Panelworks Ltd.", "B-01"),
    ("MEK001", "Screw M8x20", "mechanical", "piece", 500, 100, 1000, "0.25", "Precision Mechanical Parts", "C-01"),
    ("ELK003", "Cable 2.5mm2", "electrical", "meter", 8, 50, 500, "3.20", "Northline Electrical Supply", "A-03"),
]

# code, name, category, status, BOM lines (material code, qty per unit)
DEMO_MACHINES = [
    ("SM-2000", "Polishing machine SM-2000", "polishing", "active",
     [("ELK001", 4), ("ELK002", 2), ("PAN001", 1), ("MEK001", 20), ("ELK003", 15)]),
    ("TM-1500", "Grooving machine TM-1500", "grooving", "active",
     [("ELK001", 2), ("ELK002", 1), ("MEK001", 15), ("ELK003", 10)]),
    ("YM-3000", "Splitting machine YM-3000", "splitting", "maintenance",
     [("ELK001", 6), ("ELK002", 3), ("PAN001", 2), ("MEK001", 30), ("ELK003", 25)]),
]


def ensure_admin(db: Session) -> User | None:
    if not ADMIN_EMAIL or not ADMIN_PASSWORD:
        return None
    email = ADMIN_EMAIL.strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if user:
        return user
    user = User(
        username=email.split("@", 1)[0],
        email=email,
        first_name="System",
        last_name="Administrator",
        role="admin",
        password_hash=hash_password(ADMIN_PASSWORD),
    )
    db.add(user)
    db.commit()
    logger.info("bootstrap admin %s created", email)
    return user


def seed_demo(db: Session, actor: User | None = None) -> bool:
    """Insert the demo catalogue once. Opening stock is posted as IN movements."""
    if db.query(Material).count():
        return False

    for code, name, contact in DEMO_SUPPLIERS:
        db.add(Supplier(code=code, name=name, contact_person=contact, status="active"))

    materials: dict[str, Material] = {}
    for code, name, category, unit, stock, lo, hi, price, supplier, location in DEMO_MATERIALS:
        m = Material(
            code=code,
            name=name,
            category=category,
            unit=unit,
            current_stock=Decimal("0"),
            min_stock=Decimal(lo),
            max_stock=Decimal(hi),
            unit_price=Decimal(price),
            supplier=supplier,
            location=location,
        )
        db.add(m)
        db.flush()
        post_movement(db, material=m, type="IN", quantity=Decimal(stock), performed_by=actor.id if actor else None, reason="Opening stock")
        materials[code] = m

    machines: list[Machine] = []
    for code, name, category, status, bom in DEMO_MACHINES:
        mc = Machine(code=code, name=name, category=category, status=status, specifications={})
        db.add(mc)
        db.flush()
        for mat_code, qty in bom:
            mat = materials[mat_code]
            db.add(BOMItem(
                machine_id=mc.id,
                material_id=mat.id,
                material_code=mat.code,
                material_name=mat.name,
                quantity=Decimal(qty),
                unit=mat.unit,
            ))
        machines.append(mc)

    now = utcnow()
    for i, mc in enumerate(machines[:2]):
        db.add(WorkOrder(
            order_number=next_order_number(db, now),
            title=f"Assemble {mc.name}",
            machine_id=mc.id,
            machine_name=mc.name,
            quantity=Decimal("1"),
            status="PLANNED",
            priority="HIGH" if i == 0 else "MEDIUM",
            materials=[],
            created_by=actor.id if actor else None,
            planned_start_date=now + timedelta(days=i + 1),
            planned_end_date=now + timedelta(days=i + 3),
        ))
    db.commit()
    logger.info("demo data seeded: %d materials, %d machines", len(materials), len(machines))
    return True


def run_seed(db: Session) -> None:
    admin = ensure_admin(db)
    if SEED_DEMO_DATA:
        seed_demo(db, admin)
