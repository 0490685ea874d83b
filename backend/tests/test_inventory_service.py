# Overview: Pytest coverage for stock mutations and the movement ledger.

import pytest

from storedesk.domain.enums import MovementType, ReferenceType
from storedesk.errors import (
    ImmutableRecordError,
    InactiveResourceError,
    InsufficientStockError,
    NotFoundError,
    ValidationFailure,
)
from storedesk.models import InventoryMovement, Product
from storedesk.models.inventory import compute_new_stock
from storedesk.repositories import InventoryMovementRepository
from storedesk.services.inventory_service import get_inventory_service


@pytest.fixture
def inventory(db_session):
    return get_inventory_service()


class TestComputeNewStock:
    def test_directions(self):
        assert compute_new_stock(MovementType.ENTRY, 5, 3) == 8
        assert compute_new_stock(MovementType.RETURN, 0, 2) == 2
        assert compute_new_stock(MovementType.EXIT, 5, 5) == 0
        assert compute_new_stock(MovementType.LOSS, 5, 1) == 4
        assert compute_new_stock(MovementType.TRANSFER, 5, 2) == 3
        assert compute_new_stock(MovementType.ADJUSTMENT, 5, 12) == 12

    def test_outbound_cannot_go_negative(self):
        with pytest.raises(ValidationFailure):
            compute_new_stock(MovementType.EXIT, 2, 3)


class TestStockMutations:
    def test_add_stock(self, db_session, inventory, product):
        movement = inventory.add_stock(product.id, 5, user_id=3, reason="  supplier delivery ")
        assert (movement.movement_type, movement.previous_stock, movement.new_stock) == (MovementType.ENTRY, 10, 15)
        assert movement.reason == "supplier delivery"
        assert movement.stock_delta == 5
        assert db_session.get(Product, product.id).current_stock == 15

    def test_remove_stock_with_reference(self, db_session, inventory, product):
        movement = inventory.remove_stock(
            product.id, 4, reference_id=77, reference_type=ReferenceType.TRANSFER,
        )
        assert movement.reference_id == "77"
        assert movement.reference_type == ReferenceType.TRANSFER
        assert db_session.get(Product, product.id).current_stock == 6

    def test_remove_more_than_available(self, db_session, inventory, product):
        with pytest.raises(InsufficientStockError) as excinfo:
            inventory.remove_stock(product.id, 11)
        assert excinfo.value.details["available"] == 10
        assert excinfo.value.details["requested_quantity"] == 11
        db_session.expire_all()
        assert db_session.get(Product, product.id).current_stock == 10
        assert db_session.query(InventoryMovement).count() == 0

    def test_record_loss(self, db_session, inventory, product):
        movement = inventory.record_loss(product.id, 10, reason="flood")
        assert movement.movement_type == MovementType.LOSS
        assert db_session.get(Product, product.id).current_stock == 0

    def test_adjust_stock(self, db_session, inventory, product):
        movement = inventory.adjust_stock(product.id, 7, reason="cycle count")
        assert movement.movement_type == MovementType.ADJUSTMENT
        assert (movement.quantity, movement.previous_stock, movement.new_stock) == (7, 10, 7)
        assert db_session.get(Product, product.id).current_stock == 7

    def test_adjust_rejects_same_value_and_zero(self, db_session, inventory, product):
        with pytest.raises(ValidationFailure):
            inventory.adjust_stock(product.id, 10)
        with pytest.raises(ValidationFailure):
            inventory.adjust_stock(product.id, 0)
        assert db_session.query(InventoryMovement).count() == 0

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "2"])
    def test_quantity_must_be_positive_integer(self, db_session, inventory, product, quantity):
        with pytest.raises(ValidationFailure):
            inventory.add_stock(product.id, quantity)

    def test_missing_and_inactive_products(self, db_session, inventory, make_product):
        with pytest.raises(NotFoundError):
            inventory.add_stock(999, 1)
        retired = make_product(sku="OLD", is_active=False)
        with pytest.raises(InactiveResourceError):
            inventory.remove_stock(retired.id, 1)

    def test_has_enough_stock(self, db_session, inventory, product):
        assert inventory.has_enough_stock(product.id, 10)
        assert not inventory.has_enough_stock(product.id, 11)
        assert not inventory.has_enough_stock(999, 1)


class TestQueries:
    def test_movement_history_newest_first(self, db_session, inventory, product):
        inventory.add_stock(product.id, 1)
        inventory.remove_stock(product.id, 2)
        inventory.record_loss(product.id, 3)

        history = inventory.get_movement_history(product.id)
        assert [m.movement_type for m in history] == [MovementType.LOSS, MovementType.EXIT, MovementType.ENTRY]
        assert [m.new_stock for m in history] == [6, 9, 11]
        assert len(inventory.get_movement_history(product.id, limit=1)) == 1

    def test_history_of_missing_product(self, db_session, inventory):
        with pytest.raises(NotFoundError):
            inventory.get_movement_history(999)

    def test_low_and_out_of_stock(self, db_session, inventory, store, other_store, make_product):
        low = make_product(sku="LOW", stock=2, minimum_stock=5)
        empty = make_product(sku="EMPTY", stock=0, minimum_stock=1)
        make_product(sku="FINE", stock=50, minimum_stock=5)
        make_product(sku="RETIRED", stock=0, is_active=False)
        make_product(sku="ELSEWHERE", stock=0, store_id=other_store.id)

        assert [p.id for p in inventory.get_low_stock_products(store.id)] == [empty.id, low.id]
        assert [p.id for p in inventory.get_out_of_stock_products(store.id)] == [empty.id]


class TestLedgerRepository:
    def test_repository_refuses_update_and_delete(self, db_session, inventory, product):
        movement = inventory.add_stock(product.id, 1)
        repo = InventoryMovementRepository()
        with pytest.raises(ImmutableRecordError):
            repo.update(movement)
        with pytest.raises(ImmutableRecordError):
            repo.delete(movement)

    def test_find_by_reference(self, db_session, inventory, product):
        inventory.remove_stock(product.id, 1, reference_id=5, reference_type=ReferenceType.SALE)
        inventory.add_stock(product.id, 1, reference_id=5, reference_type=ReferenceType.RETURN)
        repo = InventoryMovementRepository()
        assert len(repo.find_by_reference(5, ReferenceType.SALE)) == 1
        assert len(repo.find_by_reference("5", ReferenceType.SALE, MovementType.EXIT)) == 1
        assert repo.find_by_reference(5, ReferenceType.SALE, MovementType.ENTRY) == []
