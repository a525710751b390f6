from __future__ import annotations
from sqlalchemy import String, JSON, Boolean, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column
from plantstock.db.base import Base
from plantstock.db.models.common import HasId, HasCreatedAt

class SystemLog(Base, HasId, HasCreatedAt):
    __tablename__ = "system_logs"
    level: Mapped[str] = mapped_column(String(16), default="info", nullable=False, index=True)  # info|warning|error
    actor: Mapped[str] = mapped_column(String(256), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    entity_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    entity_id: Mapped[str | None] = mapped_column(String(256), nullable=True, index=True)

    # Request context
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(256), nullable=True)
    status_code: Mapped[int | None] = mapped_column(Integer, nullable=True)
    success: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    payload: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

Index("ix_system_logs_level_time", SystemLog.level, SystemLog.created_at)
