from __future__ import annotations
from datetime import date, datetime
from decimal import Decimal
from sqlalchemy import String, DateTime, Date, JSON, ForeignKey, Numeric, Integer, Text, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from plantstock.db.base import Base
from plantstock.db.models.common import HasId, HasCreatedAt, HasUpdatedAt

class Machine(Base, HasId, HasCreatedAt, HasUpdatedAt):
    __tablename__ = "machines"
    code: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    model: Mapped[str | None] = mapped_column(String(128), nullable=True)
    manufacturer: Mapped[str | None] = mapped_column(String(128), nullable=True)
    serial_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="active", nullable=False, index=True)  # active/maintenance/inactive
    location: Mapped[str | None] = mapped_column(String(128), nullable=True)
    install_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    last_maintenance: Mapped[date | None] = mapped_column(Date, nullable=True)
    next_maintenance: Mapped[date | None] = mapped_column(Date, nullable=True)
    specifications: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

class BOMItem(Base, HasId, HasCreatedAt):
    __tablename__ = "bom_items"
    machine_id: Mapped[str] = mapped_column(ForeignKey("machines.id", ondelete="CASCADE"), nullable=False, index=True)
    material_id: Mapped[str] = mapped_column(ForeignKey("materials.id", ondelete="CASCADE"), nullable=False, index=True)
    material_code: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    material_name: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False)
    unit: Mapped[str] = mapped_column(String(16), nullable=False, default="")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("machine_id", "material_id", name="uq_bom_machine_material"),
    )

class WorkOrder(Base, HasId, HasCreatedAt, HasUpdatedAt):
    __tablename__ = "work_orders"
    order_number: Mapped[str] = mapped_column(String(32), nullable=False, unique=True, index=True)  # WO-<year>-<seq>
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    machine_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    machine_name: Mapped[str | None] = mapped_column(String(256), nullable=True)
    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 4), default=1, nullable=False)
    status: Mapped[str] = mapped_column(String(16), default="PLANNED", nullable=False, index=True)  # PLANNED/IN_PROGRESS/COMPLETED/CANCELLED
    priority: Mapped[str] = mapped_column(String(16), default="MEDIUM", nullable=False)  # LOW/MEDIUM/HIGH/CRITICAL
    assigned_to: Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    # [{"materialId": ..., "quantity": ..., "unit": ...}]
    materials: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    planned_start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    planned_end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_start_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    actual_end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    estimated_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)  # minutes
    actual_duration: Mapped[int | None] = mapped_column(Integer, nullable=True)  # hours

Index("ix_work_orders_status_due", WorkOrder.status, WorkOrder.due_date)
