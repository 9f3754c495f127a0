from __future__ import annotations

from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.errors import ConflictError
from app.core.numeric import normalize_decimals
from app.core.security import Principal, get_principal
from app.db.session import get_db
from app.db.models.auth import User
from app.db.models.production import WorkCenter, WorkCenterUser
from services._schemas import PatchModel
from services._crud import apply_updates, commit_refresh, get_or_404
from services.production import service

router = APIRouter(prefix="/work-centers", tags=["work-centers"])


class WorkCenterIn(BaseModel):
    name: str = Field(..., max_length=128)
    description: str | None = None
    location: str | None = Field(default=None, max_length=128)
    capacity_per_hour: int = Field(default=0, ge=0)
    cost_per_hour: Decimal = Field(default=Decimal("0"), ge=0)
    status: str = "ACTIVE"


class WorkCenterPatch(PatchModel):
    nullable = frozenset({"description", "location"})

    name: str | None = Field(default=None, max_length=128)
    description: str | None = None
    location: str | None = Field(default=None, max_length=128)
    capacity_per_hour: int | None = Field(default=None, ge=0)
    cost_per_hour: Decimal | None = Field(default=None, ge=0)
    status: str | None = None


class AssignUserIn(BaseModel):
    user_id: str
    is_responsible: bool = False


def _wc_out(wc: WorkCenter) -> dict:
    return normalize_decimals({
        "id": wc.id,
        "name": wc.name,
        "description": wc.description,
        "location": wc.location,
        "capacity_per_hour": wc.capacity_per_hour,
        "cost_per_hour": wc.cost_per_hour,
        "status": wc.status,
        "users": [
            {"user_id": a.user_id, "is_responsible": a.is_responsible}
            for a in wc.users
        ],
    })


@router.get("")
def list_work_centers(db: Session = Depends(get_db)):
    return [_wc_out(wc) for wc in db.query(WorkCenter).order_by(WorkCenter.name).all()]


@router.get("/{work_center_id}")
def get_work_center(work_center_id: str, db: Session = Depends(get_db)):
    return _wc_out(get_or_404(db, WorkCenter, work_center_id, "Work center"))


@router.post("", status_code=201)
def create_work_center(payload: WorkCenterIn, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return _wc_out(commit_refresh(db, WorkCenter(**payload.model_dump(), created_by=principal.username)))


@router.patch("/{work_center_id}")
def update_work_center(work_center_id: str, payload: WorkCenterPatch, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    wc = get_or_404(db, WorkCenter, work_center_id, "Work center")
    apply_updates(wc, payload.model_dump(exclude_unset=True), actor=principal.username)
    return _wc_out(commit_refresh(db, wc))


@router.delete("/{work_center_id}")
def delete_work_center(work_center_id: str, db: Session = Depends(get_db)):
    service.delete_work_center(db, work_center_id)
    return {"ok": True}


@router.post("/{work_center_id}/users", status_code=201)
def assign_user(work_center_id: str, payload: AssignUserIn, db: Session = Depends(get_db)):
    wc = get_or_404(db, WorkCenter, work_center_id, "Work center")
    get_or_404(db, User, payload.user_id, "User")
    if any(a.user_id == payload.user_id for a in wc.users):
        raise ConflictError("User is already assigned to this work center")
    wc.users.append(WorkCenterUser(user_id=payload.user_id, is_responsible=payload.is_responsible))
    return _wc_out(commit_refresh(db, wc))


@router.delete("/{work_center_id}/users/{user_id}")
def unassign_user(work_center_id: str, user_id: str, db: Session = Depends(get_db)):
    wc = get_or_404(db, WorkCenter, work_center_id, "Work center")
    wc.users = [a for a in wc.users if a.user_id != user_id]
    return _wc_out(commit_refresh(db, wc))
