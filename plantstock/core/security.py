from __future__ import annotations

import os
import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from plantstock.core.errors import Forbidden, InvalidToken, MissingToken, UserNotFound, ApiError
from plantstock.db.session import get_db
from plantstock.db.models.auth import User
from plantstock.db.models.common import as_utc
from plantstock.db.models.iam_tokens import RefreshToken

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

JWT_SECRET = os.getenv("JWT_SECRET") or ""
if not JWT_SECRET:
    JWT_SECRET = secrets.token_urlsafe(48)
    logger.warning("JWT_SECRET is not set; using a random per-process secret (tokens will not survive a restart)")
JWT_ALG = os.getenv("JWT_ALG", "HS256")
JWT_TTL_MIN = int(os.getenv("JWT_TTL_MIN", "30"))  # 30m default

JWT_ISSUER = os.getenv("JWT_ISSUER", "plantstock")
JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "plantstock-api")
REFRESH_TTL_DAYS = int(os.getenv("REFRESH_TTL_DAYS", "7"))


class InvalidRefreshToken(ApiError):
    status_code = 401
    default_detail = "Invalid or expired refresh token"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        return False


def _make_jti() -> str:
    return secrets.token_urlsafe(16)


def create_access_token(user: User) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE,
        "jti": _make_jti(),
        "sub": user.id,
        "email": user.email,
        "role": user.role,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=JWT_TTL_MIN)).timestamp()),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALG)


def decode_access_token(token: str) -> dict:
    return jwt.decode(
        token,
        JWT_SECRET,
        algorithms=[JWT_ALG],
        audience=JWT_AUDIENCE,
        issuer=JWT_ISSUER,
    )


def _hash_refresh_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def mint_refresh_token(
    db: Session,
    user_id: str,
    created_ip: str | None = None,
    user_agent: str | None = None,
) -> str:
    """Create and persist a refresh token; return the raw token string."""
    raw = secrets.token_urlsafe(48)
    now = datetime.now(timezone.utc)
    db.add(
        RefreshToken(
            user_id=user_id,
            token_hash=_hash_refresh_token(raw),
            expires_at=now + timedelta(days=REFRESH_TTL_DAYS),
            revoked_at=None,
            created_ip=created_ip,
            user_agent=user_agent,
        )
    )
    db.commit()
    return raw


def rotate_refresh_token(
    db: Session,
    raw_refresh_token: str,
    created_ip: str | None = None,
    user_agent: str | None = None,
) -> tuple[User, str]:
    """Validate refresh token, revoke it, and mint a new one.

    Returns (user, new_raw_refresh_token).
    """
    token_hash = _hash_refresh_token(raw_refresh_token)
    rt = db.query(RefreshToken).filter(RefreshToken.token_hash == token_hash).first()
    now = datetime.now(timezone.utc)
    if not rt or rt.revoked_at is not None or as_utc(rt.expires_at) <= now:
        raise InvalidRefreshToken()
    user = db.query(User).filter(User.id == rt.user_id).first()
    if not user or not user.is_active:
        raise InvalidRefreshToken()

    rt.revoked_at = now
    db.add(rt)
    db.commit()

    new_raw = mint_refresh_token(db, user_id=user.id, created_ip=created_ip, user_agent=user_agent)
    return user, new_raw


def revoke_refresh_token(db: Session, raw_refresh_token: str) -> None:
    token_hash = _hash_refresh_token(raw_refresh_token)
    rt = db.query(RefreshToken).filter(RefreshToken.token_hash == token_hash).first()
    if not rt:
        return
    if rt.revoked_at is None:
        rt.revoked_at = datetime.now(timezone.utc)
        db.add(rt)
        db.commit()


def resolve_user(db: Session, token: str) -> User:
    """Map a bearer token to an active user or raise the matching auth error."""
    try:
        payload = decode_access_token(token)
    except JWTError:
        raise InvalidToken()
    user = db.query(User).filter(User.id == payload.get("sub")).first()
    if not user or not user.is_active:
        raise UserNotFound()
    return user


def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> User:
    if not creds or not creds.credentials:
        raise MissingToken()
    return resolve_user(db, creds.credentials)


def require_roles(*roles: str) -> Callable:
    allowed = set(roles)

    def _dep(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise Forbidden()
        return user

    return _dep
