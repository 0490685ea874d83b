"""
Inventory service

Every change to Product.current_stock goes through apply_movement(), which
changes the counter and appends exactly one InventoryMovement in the same
transaction. The public methods are complete units of work (lock, mutate,
commit); the sale engine calls apply_movement() directly inside its own
transaction.
"""

from __future__ import annotations

from flask import current_app

from ..errors import InactiveResourceError, NotFoundError, ValidationFailure
from ..domain.enums import MovementType, ReferenceType
from ..domain.values import Stock, positive_quantity
from ..models import InventoryMovement, Product
from ..repositories import InventoryMovementRepository, ProductRepository
from .concurrency import begin_immediate, run_with_retry


class InventoryService:
    def __init__(self, product_repo: ProductRepository, movement_repo: InventoryMovementRepository):
        self.product_repo = product_repo
        self.movement_repo = movement_repo

    @property
    def session(self):
        return self.product_repo.session

    def load_product(self, product_id: int, *, lock: bool = True, require_active: bool = True) -> Product:
        product = self.product_repo.find_by_id(product_id, lock=lock)
        if not product:
            raise NotFoundError("Product", product_id)
        if require_active and not product.is_active:
            raise InactiveResourceError("Product", product.id, product.name)
        return product

    def apply_movement(
        self,
        product: Product,
        movement_type: MovementType,
        quantity: int,
        *,
        user_id: int | None = None,
        reason: str | None = None,
        reference_id=None,
        reference_type: ReferenceType | None = None,
    ) -> InventoryMovement:
        """
        Change the product's stock and append the matching movement row.

        The movement's new_stock is derived from its type and must equal the
        product's stock after the change.
        """
        if movement_type in (MovementType.ENTRY, MovementType.RETURN):
            previous = product.add_stock(quantity)
        elif movement_type in (MovementType.EXIT, MovementType.LOSS, MovementType.TRANSFER):
            previous = product.remove_stock(quantity)
        else:
            previous = product.set_stock(quantity)

        movement = InventoryMovement.record(
            product_id=product.id,
            movement_type=movement_type,
            quantity=quantity,
            previous_stock=previous,
            user_id=user_id,
            reason=reason,
            reference_id=reference_id,
            reference_type=reference_type,
        )
        self.product_repo.update(product)
        self.movement_repo.save(movement)
        return movement

    def _mutate(self, product_id: int, movement_type: MovementType, quantity: int, **kwargs) -> InventoryMovement:
        def _op():
            begin_immediate(self.session)
            product = self.load_product(product_id)
            movement = self.apply_movement(product, movement_type, quantity, **kwargs)
            self.session.commit()
            current_app.logger.info(
                "Stock %s for product %s: %s -> %s",
                movement_type.value, product_id, movement.previous_stock, movement.new_stock,
            )
            return movement

        return run_with_retry(_op, session=self.session)

    def add_stock(self, product_id: int, quantity, *, user_id: int | None = None, reason: str | None = None,
                  reference_id=None, reference_type: ReferenceType | None = None) -> InventoryMovement:
        quantity = positive_quantity(quantity)
        return self._mutate(
            product_id, MovementType.ENTRY, quantity,
            user_id=user_id, reason=reason, reference_id=reference_id, reference_type=reference_type,
        )

    def remove_stock(self, product_id: int, quantity, *, user_id: int | None = None, reason: str | None = None,
                     reference_id=None, reference_type: ReferenceType | None = None) -> InventoryMovement:
        quantity = positive_quantity(quantity)
        return self._mutate(
            product_id, MovementType.EXIT, quantity,
            user_id=user_id, reason=reason, reference_id=reference_id, reference_type=reference_type,
        )

    def record_loss(self, product_id: int, quantity, *, user_id: int | None = None,
                    reason: str | None = None) -> InventoryMovement:
        quantity = positive_quantity(quantity)
        return self._mutate(product_id, MovementType.LOSS, quantity, user_id=user_id, reason=reason)

    def adjust_stock(self, product_id: int, new_stock, *, user_id: int | None = None,
                     reason: str | None = None) -> InventoryMovement:
        """
        Set the stock to a counted value.

        A count of zero is written off with record_loss() instead, since a
        movement always carries a positive quantity.
        """
        new_stock = Stock(new_stock).value
        if new_stock == 0:
            raise ValidationFailure(
                "Cannot adjust stock to zero; record the remaining units as a loss",
                details={"product_id": product_id, "new_stock": new_stock},
            )

        def _op():
            begin_immediate(self.session)
            product = self.load_product(product_id)
            if product.current_stock == new_stock:
                raise ValidationFailure(
                    "New stock is equal to the current stock",
                    details={"product_id": product_id, "current_stock": product.current_stock},
                )
            movement = self.apply_movement(
                product, MovementType.ADJUSTMENT, new_stock, user_id=user_id, reason=reason,
            )
            self.session.commit()
            current_app.logger.info(
                "Stock ADJUSTMENT for product %s: %s -> %s", product_id, movement.previous_stock, movement.new_stock,
            )
            return movement

        return run_with_retry(_op, session=self.session)

    # -- queries -------------------------------------------------------------

    def has_enough_stock(self, product_id: int, quantity) -> bool:
        product = self.product_repo.find_by_id(product_id)
        if not product:
            return False
        return product.has_stock(quantity)

    def get_movement_history(self, product_id: int, limit: int = 50, offset: int = 0) -> list[InventoryMovement]:
        if not self.product_repo.find_by_id(product_id):
            raise NotFoundError("Product", product_id)
        return self.movement_repo.history(product_id, limit=limit, offset=offset)

    def get_low_stock_products(self, store_id: int) -> list[Product]:
        return self.product_repo.find_low_stock(store_id)

    def get_out_of_stock_products(self, store_id: int) -> list[Product]:
        return self.product_repo.find_out_of_stock(store_id)


def get_inventory_service(session=None) -> InventoryService:
    return InventoryService(
        product_repo=ProductRepository(session),
        movement_repo=InventoryMovementRepository(session),
    )
