from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session, selectinload

from app.core.security import Principal, get_principal
from app.db.session import get_db
from app.db.models.production import QualityCheck
from services._schemas import PatchModel
from services._crud import get_or_404
from services.production import service

router = APIRouter(prefix="/quality", tags=["quality"])

CHECK_STATUSES = "^(PENDING|IN_PROGRESS|COMPLETED|CANCELLED)$"


class QualityCheckIn(BaseModel):
    production_order_id: str
    inspector_id: str
    check_date: datetime
    defects_found: str | None = None
    action_taken: str | None = None
    notes: str | None = None


class QualityCheckPatch(PatchModel):
    nullable = frozenset({"defects_found", "action_taken", "notes"})

    inspector_id: str | None = None
    check_date: datetime | None = None
    status: str | None = Field(default=None, pattern=CHECK_STATUSES)
    defects_found: str | None = None
    action_taken: str | None = None
    notes: str | None = None


def _check_out(qc: QualityCheck) -> dict:
    return {
        "id": qc.id,
        "production_order_id": qc.production_order_id,
        "inspector_id": qc.inspector_id,
        "inspector_name": qc.inspector.full_name if qc.inspector else None,
        "check_date": qc.check_date,
        "status": qc.status,
        "defects_found": qc.defects_found,
        "action_taken": qc.action_taken,
        "notes": qc.notes,
    }


@router.get("/checks")
def list_checks(db: Session = Depends(get_db), production_order_id: str | None = None, status: str | None = None):
    q = db.query(QualityCheck).options(selectinload(QualityCheck.inspector))
    if production_order_id:
        q = q.filter(QualityCheck.production_order_id == production_order_id)
    if status:
        q = q.filter(QualityCheck.status == status)
    return [_check_out(qc) for qc in q.order_by(QualityCheck.check_date.desc()).all()]


@router.get("/checks/{check_id}")
def get_check(check_id: str, db: Session = Depends(get_db)):
    return _check_out(get_or_404(db, QualityCheck, check_id, "Quality check"))


@router.post("/checks", status_code=201)
def create_check(payload: QualityCheckIn, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    return _check_out(service.create_quality_check(db, payload.model_dump(), actor=principal.username))


@router.patch("/checks/{check_id}")
def update_check(check_id: str, payload: QualityCheckPatch, db: Session = Depends(get_db), principal: Principal = Depends(get_principal)):
    qc = service.update_quality_check(db, check_id, payload.model_dump(exclude_unset=True), actor=principal.username)
    return _check_out(qc)


@router.delete("/checks/{check_id}")
def delete_check(check_id: str, db: Session = Depends(get_db)):
    service.delete_quality_check(db, check_id)
    return {"ok": True}
