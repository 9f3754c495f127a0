from __future__ import annotations

import logging
from typing import Any, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, InUseError, NotFoundError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def commit_refresh(db: Session, obj: T) -> T:
    db.add(obj)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise ConflictError(f"{type(obj).__name__} conflicts with an existing record") from e
    db.refresh(obj)
    return obj


def get_or_404(db: Session, model: type[T], obj_id: str, label: str | None = None) -> T:
    obj = db.get(model, obj_id)
    if obj is None:
        raise NotFoundError(f"{label or model.__name__} not found")
    return obj


def apply_updates(obj: Any, updates: dict, *, actor: str | None = None) -> Any:
    """Copy the provided (already validated) fields onto ``obj``."""
    for key, value in updates.items():
        setattr(obj, key, value)
    if actor is not None and hasattr(obj, "modified_by"):
        obj.modified_by = actor
    return obj


def reject_if_referenced(db: Session, model, column, value: str, message: str) -> None:
    """Lifecycle guard: refuse the delete while any ``model`` row points at ``value``."""
    if db.query(model.id).filter(column == value).first() is not None:
        logger.info("Delete blocked: %s", message)
        raise InUseError(message)


def commit_or_conflict(db: Session, what: str = "Change") -> None:
    """Commit, turning constraint violations into a ConflictError."""
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.info("%s rejected by database constraint: %s", what, e.orig)
        raise ConflictError(f"{what} conflicts with existing data") from e
