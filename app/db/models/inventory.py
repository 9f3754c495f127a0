from __future__ import annotations

from sqlalchemy import String, Integer, ForeignKey, Text, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.models.common import HasId, HasCreatedAt
from app.db.models.materials import Material


class InventoryTransaction(Base, HasId, HasCreatedAt):
    """Append-only ledger of material stock movements."""
    __tablename__ = "inventory_transaction"

    material_id: Mapped[str] = mapped_column(ForeignKey("material.id"), nullable=False, index=True)
    txn_type: Mapped[str] = mapped_column(String(16), nullable=False)
    # ADJUSTMENT|RECEIPT|CONSUMPTION
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)  # signed
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)

    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    reference_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    reference_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    actor: Mapped[str] = mapped_column(String(128), nullable=False)

    material: Mapped[Material] = relationship()


Index("ix_inventory_txn_material_created", InventoryTransaction.material_id, InventoryTransaction.created_at)
