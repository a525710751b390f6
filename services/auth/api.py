from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from plantstock.core.audit import audit
from plantstock.core.envelope import ok, created
from plantstock.core.errors import BadRequest, Conflict, InvalidCredentials
from plantstock.db.session import get_db
from plantstock.db.models.auth import User
from plantstock.db.models.common import iso, utcnow
from plantstock.core.security import (
    hash_password,
    verify_password,
    create_access_token,
    mint_refresh_token,
    rotate_refresh_token,
    revoke_refresh_token,
    get_current_user,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])

MIN_PASSWORD_LENGTH = 6


def user_out(u: User) -> dict:
    """Public projection of a user; never includes the password hash."""
    return {
        "id": u.id,
        "username": u.username,
        "email": u.email,
        "firstName": u.first_name,
        "lastName": u.last_name,
        "role": u.role,
        "department": u.department,
        "phone": u.phone,
        "isActive": u.is_active,
        "lastLogin": iso(u.last_login),
        "createdAt": iso(u.created_at),
        "updatedAt": iso(u.updated_at),
    }


def _client(request: Request) -> tuple[str | None, str | None]:
    return (request.client.host if request.client else None), request.headers.get("User-Agent")


class LoginIn(BaseModel):
    email: str | None = None
    password: str | None = None


class RegisterIn(BaseModel):
    email: EmailStr
    password: str
    username: str | None = None
    first_name: str = Field("", alias="firstName")
    last_name: str = Field("", alias="lastName")
    department: str | None = None
    phone: str | None = None


class RefreshIn(BaseModel):
    refresh_token: str = Field(alias="refreshToken")


class LogoutIn(BaseModel):
    refresh_token: str | None = Field(None, alias="refreshToken")


def _session(db: Session, user: User, request: Request) -> dict:
    ip, ua = _client(request)
    return {
        "token": create_access_token(user),
        "refreshToken": mint_refresh_token(db, user.id, created_ip=ip, user_agent=ua),
        "user": user_out(user),
    }


@router.post("/login")
def login(payload: LoginIn, request: Request, db: Session = Depends(get_db)):
    if not payload.email or not payload.password:
        raise BadRequest("Email and password are required")
    user = db.query(User).filter(User.email == payload.email.strip().lower()).first()
    if not user or not user.is_active or not verify_password(payload.password, user.password_hash):
        raise InvalidCredentials()

    user.last_login = utcnow()
    db.commit()
    return ok(_session(db, user, request), "Login successful")


@router.post("/register")
def register(payload: RegisterIn, request: Request, db: Session = Depends(get_db)):
    if len(payload.password) < MIN_PASSWORD_LENGTH:
        raise BadRequest(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

    email = str(payload.email).lower()
    username = (payload.username or email.split("@", 1)[0]).strip()
    if db.query(User).filter(User.email == email).first():
        raise Conflict("Email already registered")
    if db.query(User).filter(User.username == username).first():
        raise Conflict("Username already taken")

    # Bootstrap rule: the very first user to register becomes admin.
    is_first_user = db.query(User).count() == 0

    user = User(
        username=username,
        email=email,
        first_name=payload.first_name,
        last_name=payload.last_name,
        department=payload.department,
        phone=payload.phone,
        role="admin" if is_first_user else "viewer",
        password_hash=hash_password(payload.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    audit(db, actor=user.email, action="user.register", entity_type="user", entity_id=user.id, payload={"role": user.role})
    return created(_session(db, user, request), "Registration successful")


@router.post("/refresh")
def refresh(payload: RefreshIn, request: Request, db: Session = Depends(get_db)):
    ip, ua = _client(request)
    user, new_refresh = rotate_refresh_token(db, payload.refresh_token, created_ip=ip, user_agent=ua)
    return ok({"token": create_access_token(user), "refreshToken": new_refresh, "user": user_out(user)})


@router.post("/logout")
def logout(payload: LogoutIn | None = None, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    if payload and payload.refresh_token:
        revoke_refresh_token(db, payload.refresh_token)
    return ok(message="Logged out")


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return ok(user_out(user))
