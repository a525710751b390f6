"""
Stock records: suppliers, materials and the movement log.

A material's current_stock is the authoritative counter; it only changes
together with a MaterialMovement row (see services.inventory.stock) or through
an audited manual correction on the material itself.
"""

from __future__ import annotations

from decimal import Decimal

from plantstock.db.base import Base
from plantstock.db.models.common import HasId, HasCreatedAt, HasUpdatedAt
from sqlalchemy import String, Numeric, Index, Text, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column


class Supplier(Base, HasId, HasCreatedAt, HasUpdatedAt):
    __tablename__ = "suppliers"

    code: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    contact_person: Mapped[str | None] = mapped_column(String(128), nullable=True)
    email: Mapped[str | None] = mapped_column(String(256), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    address: Mapped[str | None] = mapped_column(String(512), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="active", nullable=False)  # active|inactive


class Material(Base, HasId, HasCreatedAt, HasUpdatedAt):
    __tablename__ = "materials"

    code: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    unit: Mapped[str] = mapped_column(String(16), nullable=False)

    current_stock: Mapped[Decimal] = mapped_column(Numeric(18, 4), default=0, nullable=False)
    min_stock: Mapped[Decimal] = mapped_column(Numeric(18, 4), default=0, nullable=False)
    max_stock: Mapped[Decimal] = mapped_column(Numeric(18, 4), default=0, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(18, 4), default=0, nullable=False)

    supplier: Mapped[str | None] = mapped_column(String(256), nullable=True)
    location: Mapped[str | None] = mapped_column(String(128), nullable=True)
    barcode: Mapped[str | None] = mapped_column(String(128), nullable=True)

    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="ck_materials_stock_nonnegative"),
    )


class MaterialMovement(Base, HasId, HasCreatedAt, HasUpdatedAt):
    __tablename__ = "material_movements"

    # not a foreign key: the movement log outlives deleted materials
    material_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    # denormalised for the log view
    material_code: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    material_name: Mapped[str] = mapped_column(String(256), nullable=False, default="")

    type: Mapped[str] = mapped_column(String(8), nullable=False, index=True)  # IN|OUT
    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False)
    unit: Mapped[str] = mapped_column(String(16), nullable=False, default="")
    unit_price: Mapped[Decimal] = mapped_column(Numeric(18, 4), default=0, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(18, 4), default=0, nullable=False)

    reason: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(String(128), nullable=True)
    performed_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    work_order_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_movements_quantity_positive"),
    )


Index("ix_movements_material_time", MaterialMovement.material_id, MaterialMovement.created_at)
