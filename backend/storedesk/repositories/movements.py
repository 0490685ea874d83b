from __future__ import annotations

from ..errors import ImmutableRecordError
from ..models import InventoryMovement
from .base import BaseRepository, clamp_page


class InventoryMovementRepository(BaseRepository):
    """Append-only ledger access; update and delete always refuse."""
    model = InventoryMovement

    def update(self, entity):
        raise ImmutableRecordError("Inventory movements cannot be modified", details={"movement_id": entity.id})

    def delete(self, entity) -> None:
        raise ImmutableRecordError("Inventory movements cannot be deleted", details={"movement_id": entity.id})

    def order_by(self, query):
        return query.order_by(InventoryMovement.moved_at.desc(), InventoryMovement.id.desc())

    def find_by_reference(self, reference_id, reference_type, movement_type=None) -> list[InventoryMovement]:
        query = self.query().filter(
            InventoryMovement.reference_id == str(reference_id),
            InventoryMovement.reference_type == reference_type,
        )
        if movement_type is not None:
            query = query.filter(InventoryMovement.movement_type == movement_type)
        return query.order_by(InventoryMovement.id.asc()).all()

    def history(self, product_id: int, *, limit: int | None = None, offset: int | None = None) -> list[InventoryMovement]:
        limit, offset = clamp_page(limit, offset)
        return (
            self.order_by(self.query().filter(InventoryMovement.product_id == product_id))
            .limit(limit)
            .offset(offset)
            .all()
        )
