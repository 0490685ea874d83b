from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..errors import ImmutableRecordError, ValidationFailure
from ..domain.enums import MovementType, ReferenceType
from ..domain.values import Stock, positive_quantity
from ..time_utils import to_utc_z, utcnow
from .common import enum_type


INBOUND_TYPES = {MovementType.ENTRY, MovementType.RETURN}
OUTBOUND_TYPES = {MovementType.EXIT, MovementType.LOSS, MovementType.TRANSFER}


def compute_new_stock(movement_type: MovementType, previous_stock: int, quantity: int) -> int:
    """
    Stock after a movement of ``movement_type``.

    ENTRY/RETURN add, EXIT/LOSS/TRANSFER subtract (never below zero),
    ADJUSTMENT replaces the stock with the counted quantity.
    """
    previous_stock = Stock(previous_stock).value
    if movement_type in INBOUND_TYPES:
        return Stock(previous_stock + quantity).value
    if movement_type in OUTBOUND_TYPES:
        if quantity > previous_stock:
            raise ValidationFailure(
                "Movement would leave stock negative",
                details={"previous_stock": previous_stock, "quantity": quantity, "movement_type": movement_type.value},
            )
        return previous_stock - quantity
    if movement_type == MovementType.ADJUSTMENT:
        return Stock(quantity).value
    raise ValidationFailure("Unknown movement type", details={"movement_type": str(movement_type)})


class InventoryMovement(db.Model):
    """
    Append-only stock ledger.

    WHY: current_stock on Product is a cache; the movement rows are the audit
    trail that explains every value it ever had. Each row records the stock
    before and after the change plus what caused it (reference_type /
    reference_id, e.g. SALE + sale id).

    IMMUTABILITY:
    Rows are never updated or deleted. Corrections are new rows (a RETURN
    compensates an EXIT, an ADJUSTMENT resets a miscounted stock). The ORM
    refuses flushes that would modify or delete an existing row.
    """
    __tablename__ = "inventory_movements"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_inventory_movements_qty_pos"),
        db.CheckConstraint("previous_stock >= 0", name="ck_inventory_movements_prev_nonneg"),
        db.CheckConstraint("new_stock >= 0", name="ck_inventory_movements_new_nonneg"),
        db.Index("ix_inventory_movements_reference", "reference_type", "reference_id"),
        db.Index("ix_inventory_movements_product_moved", "product_id", "moved_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    # No ORM backref from Product: deleting a product never touches its history
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, nullable=True, index=True)

    movement_type = db.Column(enum_type(MovementType), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    previous_stock = db.Column(db.Integer, nullable=False)
    new_stock = db.Column(db.Integer, nullable=False)

    reason = db.Column(db.String(255), nullable=True)
    reference_id = db.Column(db.String(64), nullable=True)
    reference_type = db.Column(enum_type(ReferenceType), nullable=True)

    moved_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    @classmethod
    def record(
        cls,
        *,
        product_id: int,
        movement_type: MovementType,
        quantity,
        previous_stock: int,
        user_id: int | None = None,
        reason: str | None = None,
        reference_id=None,
        reference_type: ReferenceType | None = None,
    ) -> "InventoryMovement":
        quantity = positive_quantity(quantity)
        new_stock = compute_new_stock(movement_type, previous_stock, quantity)
        return cls(
            product_id=product_id,
            user_id=user_id,
            movement_type=movement_type,
            quantity=quantity,
            previous_stock=previous_stock,
            new_stock=new_stock,
            reason=(reason or "").strip()[:255] or None,
            reference_id=str(reference_id) if reference_id is not None else None,
            reference_type=reference_type,
            moved_at=utcnow(),
        )

    @property
    def stock_delta(self) -> int:
        return self.new_stock - self.previous_stock

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "user_id": self.user_id,
            "movement_type": self.movement_type.value,
            "quantity": self.quantity,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "stock_delta": self.stock_delta,
            "reason": self.reason,
            "reference_id": self.reference_id,
            "reference_type": self.reference_type.value if self.reference_type else None,
            "moved_at": to_utc_z(self.moved_at),
        }


@event.listens_for(InventoryMovement, "before_update")
def _reject_movement_update(mapper, connection, target):
    raise ImmutableRecordError(
        "Inventory movements cannot be modified",
        details={"movement_id": target.id},
    )


@event.listens_for(InventoryMovement, "before_delete")
def _reject_movement_delete(mapper, connection, target):
    raise ImmutableRecordError(
        "Inventory movements cannot be deleted",
        details={"movement_id": target.id},
    )
