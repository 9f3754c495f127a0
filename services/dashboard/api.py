from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from services.dashboard import service

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/material-alerts")
def material_alerts(db: Session = Depends(get_db)):
    return service.material_alerts(db)


@router.get("/production-status")
def production_status(db: Session = Depends(get_db)):
    return service.production_status(db)


@router.get("/material-utilization")
def material_utilization(db: Session = Depends(get_db)):
    return service.material_utilization(db)


@router.get("/quality-metrics")
def quality_metrics(db: Session = Depends(get_db)):
    return service.quality_metrics(db)


@router.get("/operational-alerts")
def operational_alerts(db: Session = Depends(get_db)):
    return service.operational_alerts(db)
