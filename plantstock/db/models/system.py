from __future__ import annotations
from sqlalchemy import String, Integer, JSON
from sqlalchemy.orm import Mapped, mapped_column

from plantstock.db.base import Base
from plantstock.db.models.common import HasId, HasCreatedAt, HasUpdatedAt

class Setting(Base, HasId, HasCreatedAt, HasUpdatedAt):
    """One settings document per category (general, inventory, ...)."""
    __tablename__ = "sys_setting"

    category: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    value: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    updated_by: Mapped[str | None] = mapped_column(String(256), nullable=True)


class Sequence(Base, HasId, HasCreatedAt):
    """Named monotonic counter. Values are never handed out twice."""
    __tablename__ = "sys_sequence"

    name: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    value: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
