from __future__ import annotations

from datetime import datetime

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from plantstock.db.base import Base
from plantstock.db.models.common import HasId, HasCreatedAt


class RefreshToken(Base, HasId, HasCreatedAt):
    """Persisted refresh tokens.

    Access tokens are short-lived JWTs. Refresh tokens are stored server-side
    (hashed) so sessions can be rotated and revoked on logout.
    """

    __tablename__ = "auth_refresh_token"

    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)

    token_hash: Mapped[str] = mapped_column(String(128), unique=True, index=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(256), nullable=True)
