from __future__ import annotations

from datetime import timedelta

from fastapi import APIRouter, Depends
from sqlalchemy import or_
from sqlalchemy.orm import Session

from plantstock.core.audit import audit
from plantstock.core.envelope import ok, created, paginate
from plantstock.core.errors import BadRequest, Conflict
from plantstock.core.security import hash_password, require_roles
from plantstock.db.session import get_db
from plantstock.db.models.auth import ROLES, User
from plantstock.db.models.common import as_utc, utcnow
from plantstock.db.models.iam_tokens import RefreshToken
from services._crud import commit_refresh, get_or_404, require_fields, apply_patch, to_bool
from services.auth.api import MIN_PASSWORD_LENGTH, user_out

router = APIRouter(prefix="/api/admin", tags=["admin_users"])

admin_only = require_roles("admin")

FIELDS = {
    "username": ("username", "str"),
    "email": ("email", "str"),
    "firstName": ("first_name", "str"),
    "lastName": ("last_name", "str"),
    "role": ("role", "str"),
    "department": ("department", "str"),
    "phone": ("phone", "str"),
    "isActive": ("is_active", "bool"),
}


def _check_password(password) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise BadRequest(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def _check_unique(db: Session, payload: dict, current: User | None = None) -> None:
    for key, col in (("username", User.username), ("email", User.email)):
        value = payload.get(key)
        if not value or (current is not None and getattr(current, key) == value):
            continue
        if db.query(User).filter(col == value).first():
            raise Conflict(f"{key.capitalize()} already in use")


def _active_admins(db: Session) -> int:
    return db.query(User).filter(User.role == "admin", User.is_active == True).count()  # noqa: E712


@router.get("/users")
def list_users(
    db: Session = Depends(get_db),
    admin: User = Depends(admin_only),
    search: str | None = None,
    role: str | None = None,
    page: int | None = None,
    limit: int | None = None,
):
    q = db.query(User)
    if search:
        like = f"%{search}%"
        q = q.filter(or_(User.username.ilike(like), User.email.ilike(like), User.first_name.ilike(like), User.last_name.ilike(like)))
    if role and role != "all":
        q = q.filter(User.role == role)
    rows = q.order_by(User.created_at.desc()).all()
    return ok(paginate([user_out(u) for u in rows], page, limit))


@router.get("/users/{user_id}")
def get_user(user_id: str, db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    return ok(user_out(get_or_404(db, User, user_id, "User")))


@router.post("/users")
def create_user(payload: dict, db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    require_fields(payload, "username", "email", "password", "role")
    if payload["role"] not in ROLES:
        raise BadRequest("Invalid role")
    _check_password(payload["password"])
    payload = {**payload, "email": str(payload["email"]).strip().lower()}
    _check_unique(db, payload)

    u = User(is_active=True, first_name="", last_name="", password_hash=hash_password(payload["password"]))
    apply_patch(u, payload, FIELDS)
    u.first_name = u.first_name or ""
    u.last_name = u.last_name or ""
    commit_refresh(db, u)
    audit(db, actor=admin.email, action="user.create", entity_type="user", entity_id=u.id, payload={"role": u.role})
    return created(user_out(u), "User created")


@router.put("/users/{user_id}")
def update_user(user_id: str, payload: dict, db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    u = get_or_404(db, User, user_id, "User")
    if "role" in payload and payload["role"] not in ROLES:
        raise BadRequest("Invalid role")
    if "isActive" in payload:
        to_bool(payload["isActive"], "isActive")
    if payload.get("email"):
        payload = {**payload, "email": str(payload["email"]).strip().lower()}
    _check_unique(db, payload, current=u)

    demoting = u.role == "admin" and u.is_active and (
        payload.get("role", "admin") != "admin" or payload.get("isActive", True) is False
    )
    if demoting and _active_admins(db) <= 1:
        raise BadRequest("Cannot demote or deactivate the last active admin")

    applied = apply_patch(u, payload, FIELDS, required=("username", "email", "role"))
    commit_refresh(db, u)
    audit(db, actor=admin.email, action="user.update", entity_type="user", entity_id=u.id, payload={"fields": applied})
    return ok(user_out(u), "User updated")


@router.patch("/users/{user_id}/password")
def change_password(user_id: str, payload: dict, db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    u = get_or_404(db, User, user_id, "User")
    password = payload.get("newPassword") or payload.get("password")
    _check_password(password)
    u.password_hash = hash_password(password)
    u.updated_at = utcnow()
    db.commit()
    audit(db, actor=admin.email, action="user.password", entity_type="user", entity_id=u.id)
    return ok(message="Password updated")


@router.delete("/users/{user_id}")
def delete_user(user_id: str, db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    u = get_or_404(db, User, user_id, "User")
    if u.id == admin.id:
        raise BadRequest("You cannot delete your own account")
    if u.role == "admin" and u.is_active and _active_admins(db) <= 1:
        raise BadRequest("Cannot delete the last active admin")
    db.query(RefreshToken).filter(RefreshToken.user_id == u.id).delete(synchronize_session=False)
    email = u.email
    db.delete(u)
    db.commit()
    audit(db, actor=admin.email, action="user.delete", entity_type="user", entity_id=user_id, payload={"email": email})
    return ok(message="User deleted")


@router.get("/stats/users")
def user_stats(db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    users = db.query(User).all()
    now = utcnow()
    return ok({
        "totalUsers": len(users),
        "activeUsers": sum(1 for u in users if u.is_active),
        "inactiveUsers": sum(1 for u in users if not u.is_active),
        "roleStats": {r: sum(1 for u in users if u.role == r) for r in ROLES},
        "recentRegistrations": sum(1 for u in users if as_utc(u.created_at) >= now - timedelta(days=30)),
        "recentLogins": sum(1 for u in users if u.last_login and as_utc(u.last_login) >= now - timedelta(days=7)),
    })
