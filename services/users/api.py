from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from app.core.errors import ConflictError
from app.core.security import Principal, hash_password, require_roles
from app.db.session import get_db
from app.db.models.auth import Inspector, User
from services._schemas import PatchModel
from services._crud import apply_updates, commit_refresh, get_or_404

router = APIRouter(prefix="/users", tags=["users"])

ROLE_PATTERN = "^(ADMIN|MANAGER|OPERATOR|INSPECTOR)$"
STATUS_PATTERN = "^(ACTIVE|INACTIVE|SUSPENDED)$"

admin_only = require_roles("ADMIN")


class UserIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    first_name: str = ""
    last_name: str = ""
    role: str = Field(default="OPERATOR", pattern=ROLE_PATTERN)
    status: str = Field(default="ACTIVE", pattern=STATUS_PATTERN)


class UserPatch(PatchModel):
    first_name: str | None = None
    last_name: str | None = None
    password: str | None = Field(default=None, min_length=8)
    role: str | None = Field(default=None, pattern=ROLE_PATTERN)
    status: str | None = Field(default=None, pattern=STATUS_PATTERN)


class InspectorProfileIn(BaseModel):
    employee_code: str | None = Field(default=None, max_length=64)
    department: str | None = None
    specialization: str | None = None
    certification: str | None = None
    certification_expiry: date | None = None
    notes: str | None = None


def _user_out(u: User) -> dict:
    return {
        "id": u.id,
        "email": u.email,
        "first_name": u.first_name,
        "last_name": u.last_name,
        "full_name": u.full_name,
        "role": u.role,
        "status": u.status,
        "last_login_at": u.last_login_at,
    }


def _inspector_out(u: User) -> dict:
    out = _user_out(u)
    p = u.inspector
    out["profile"] = None if p is None else {
        "employee_code": p.employee_code,
        "department": p.department,
        "specialization": p.specialization,
        "certification": p.certification,
        "certification_expiry": p.certification_expiry,
        "notes": p.notes,
    }
    return out


@router.get("")
def list_users(db: Session = Depends(get_db), role: str | None = None, _: Principal = Depends(admin_only)):
    q = db.query(User)
    if role:
        q = q.filter(User.role == role.upper())
    return [_user_out(u) for u in q.order_by(User.email).all()]


@router.get("/inspectors")
def list_inspectors(db: Session = Depends(get_db), _: Principal = Depends(admin_only)):
    users = db.query(User).filter(User.role == "INSPECTOR", User.status == "ACTIVE").order_by(User.last_name).all()
    return [_inspector_out(u) for u in users]


@router.get("/{user_id}")
def get_user(user_id: str, db: Session = Depends(get_db), _: Principal = Depends(admin_only)):
    return _inspector_out(get_or_404(db, User, user_id, "User"))


@router.post("", status_code=201)
def create_user(payload: UserIn, db: Session = Depends(get_db), principal: Principal = Depends(admin_only)):
    email = payload.email.lower()
    if db.query(User.id).filter(User.email == email).first():
        raise ConflictError("Email already registered")
    data = payload.model_dump(exclude={"password", "email"})
    u = User(email=email, password_hash=hash_password(payload.password), **data, created_by=principal.username)
    return _user_out(commit_refresh(db, u))


@router.patch("/{user_id}")
def update_user(user_id: str, payload: UserPatch, db: Session = Depends(get_db), principal: Principal = Depends(admin_only)):
    u = get_or_404(db, User, user_id, "User")
    updates = payload.model_dump(exclude_unset=True)
    password = updates.pop("password", None)
    if password:
        u.password_hash = hash_password(password)
    apply_updates(u, updates, actor=principal.username)
    return _user_out(commit_refresh(db, u))


@router.put("/{user_id}/inspector-profile")
def upsert_inspector_profile(user_id: str, payload: InspectorProfileIn, db: Session = Depends(get_db), principal: Principal = Depends(admin_only)):
    u = get_or_404(db, User, user_id, "User")
    if u.inspector is None:
        u.inspector = Inspector(**payload.model_dump(), created_by=principal.username)
    else:
        apply_updates(u.inspector, payload.model_dump(), actor=principal.username)
    return _inspector_out(commit_refresh(db, u))
