from __future__ import annotations

from datetime import datetime

from plantstock.db.base import Base
from plantstock.db.models.common import HasId, HasCreatedAt, HasUpdatedAt
from sqlalchemy import String, Boolean, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column

ROLES = ("admin", "manager", "planner", "operator", "viewer")


class User(Base, HasId, HasCreatedAt, HasUpdatedAt):
    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String(256), unique=True, index=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    last_name: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    password_hash: Mapped[str] = mapped_column(String(512), nullable=False, default="")

    # admin / manager / planner / operator / viewer
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="viewer", index=True)
    department: Mapped[str | None] = mapped_column(String(128), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_login: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


Index("ix_users_role_active", User.role, User.is_active)
