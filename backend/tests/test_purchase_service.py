# Overview: Pytest coverage for supplier purchases and the ENTRY movements posted on receipt.

"""
Purchase tests

1. Registering a purchase never moves stock
2. Receiving posts one ENTRY per line, all or nothing
3. Received and cancelled purchases are final
"""

import pytest

from factories import line, tomorrow
from storedesk.domain.enums import EntityStatus, MovementType, PurchaseStatus, ReferenceType
from storedesk.errors import (
    AlreadyExistsError,
    EntityDeletedError,
    FutureDateError,
    InactiveResourceError,
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationFailure,
)
from storedesk.models import InventoryMovement, Product, Purchase
from storedesk.services.purchase_service import get_purchase_service


@pytest.fixture
def service(db_session):
    return get_purchase_service()


@pytest.fixture
def rice(make_product):
    return make_product(sku="RICE", name="Rice", stock=10, price_cents=500)


@pytest.fixture
def oil(make_product):
    return make_product(sku="OIL", name="Oil", stock=2, price_cents=1200)


def create_purchase(service, store, supplier, items, **overrides):
    kwargs = dict(
        store_id=store.id,
        supplier_id=supplier.id,
        user_id=9,
        document_type="INVOICE",
        items=items,
    )
    kwargs.update(overrides)
    return service.create_purchase(**kwargs)


def entries_for(db_session, purchase_id):
    return (
        db_session.query(InventoryMovement)
        .filter_by(reference_id=str(purchase_id), reference_type=ReferenceType.PURCHASE)
        .order_by(InventoryMovement.id)
        .all()
    )


class TestCreatePurchase:
    def test_totals_come_from_lines(self, db_session, service, store, supplier, rice, oil):
        purchase = create_purchase(
            service, store, supplier,
            [line(rice, 20, "3.50", discount="1.00"), line(oil, 6, "8.00")],
            tax="12.42", discount="0.42", document_number=" F001-881 ",
        )
        assert purchase.status == PurchaseStatus.REGISTERED
        assert purchase.subtotal_cents == 6900 + 4800
        assert purchase.total_cents == 11700 + 1242 - 42
        assert purchase.document_number == "F001-881"
        assert [d.subtotal_cents for d in purchase.details] == [6900, 4800]

    def test_registering_does_not_touch_stock(self, db_session, service, store, supplier, rice):
        create_purchase(service, store, supplier, [line(rice, 5, "3.00")])
        db_session.expire_all()
        assert db_session.get(Product, rice.id).current_stock == 10
        assert db_session.query(InventoryMovement).count() == 0

    def test_rejects_bad_input(self, db_session, service, store, supplier, rice):
        with pytest.raises(FutureDateError):
            create_purchase(service, store, supplier, [line(rice, 1, "3.00")], purchase_date=tomorrow())
        with pytest.raises(ValidationFailure):
            create_purchase(service, store, supplier, [])
        with pytest.raises(ValidationFailure):
            create_purchase(service, store, supplier, [line(rice, 1, "0")])
        with pytest.raises(ValidationFailure):
            create_purchase(service, store, supplier, [line(rice, 1, "3.00")], document_type="VOUCHER")
        with pytest.raises(ValidationFailure):
            create_purchase(service, store, supplier, [line(rice, 1, "3.00")], status="RECEIVED")
        assert db_session.query(Purchase).count() == 0

    def test_products_and_supplier_must_belong_to_the_store(
        self, db_session, service, store, other_store, supplier, make_product
    ):
        foreign = make_product(sku="FOREIGN", store_id=other_store.id)
        with pytest.raises(NotFoundError):
            create_purchase(service, store, supplier, [line(foreign, 1, "3.00")])
        with pytest.raises(NotFoundError):
            create_purchase(service, other_store, supplier, [line(foreign, 1, "3.00")])

    def test_deleted_supplier_is_rejected(self, db_session, service, store, supplier, rice):
        supplier.status = EntityStatus.DELETED
        db_session.commit()
        with pytest.raises(EntityDeletedError):
            create_purchase(service, store, supplier, [line(rice, 1, "3.00")])

    def test_document_number_is_unique_per_store(self, db_session, service, store, supplier, rice):
        create_purchase(service, store, supplier, [line(rice, 1, "3.00")], document_number="F001-1")
        with pytest.raises(AlreadyExistsError):
            create_purchase(service, store, supplier, [line(rice, 1, "3.00")], document_number="F001-1")
        # purchases without supplier paperwork never collide
        create_purchase(service, store, supplier, [line(rice, 1, "3.00")])
        create_purchase(service, store, supplier, [line(rice, 1, "3.00")])
        assert db_session.query(Purchase).count() == 3


class TestReceivePurchase:
    def test_receiving_posts_entries(self, db_session, service, store, supplier, rice, oil):
        purchase = create_purchase(service, store, supplier, [line(rice, 20, "3.50"), line(oil, 6, "8.00")])
        received = service.mark_as_received(purchase.id)

        assert received.status == PurchaseStatus.RECEIVED
        assert received.received_at is not None
        assert db_session.get(Product, rice.id).current_stock == 30
        assert db_session.get(Product, oil.id).current_stock == 8

        entries = entries_for(db_session, purchase.id)
        assert [(m.product_id, m.movement_type, m.quantity, m.previous_stock, m.new_stock) for m in entries] == [
            (rice.id, MovementType.ENTRY, 20, 10, 30),
            (oil.id, MovementType.ENTRY, 6, 2, 8),
        ]
        assert {m.user_id for m in entries} == {9}
        assert service.get_entries(purchase.id) == entries

    def test_receiving_twice_is_rejected(self, db_session, service, store, supplier, rice):
        purchase = create_purchase(service, store, supplier, [line(rice, 4, "3.00")])
        service.mark_as_received(purchase.id, user_id=2)
        with pytest.raises(InvalidStatusTransitionError):
            service.mark_as_received(purchase.id)
        assert db_session.get(Product, rice.id).current_stock == 14
        assert len(entries_for(db_session, purchase.id)) == 1

    def test_receiving_is_all_or_nothing(self, db_session, service, store, supplier, rice, oil):
        purchase = create_purchase(service, store, supplier, [line(rice, 4, "3.00"), line(oil, 1, "8.00")])
        oil.is_active = False
        db_session.commit()

        with pytest.raises(InactiveResourceError):
            service.mark_as_received(purchase.id)

        db_session.expire_all()
        assert db_session.get(Product, rice.id).current_stock == 10
        assert db_session.get(Purchase, purchase.id).status == PurchaseStatus.REGISTERED
        assert entries_for(db_session, purchase.id) == []

    def test_pending_purchase_must_be_registered_first(self, db_session, service, store, supplier, rice):
        purchase = create_purchase(service, store, supplier, [line(rice, 4, "3.00")], status="pending")
        with pytest.raises(InvalidStatusTransitionError):
            service.mark_as_received(purchase.id)
        service.register_purchase(purchase.id)
        assert service.mark_as_received(purchase.id).status == PurchaseStatus.RECEIVED

    def test_missing_purchase(self, db_session, service):
        with pytest.raises(NotFoundError):
            service.mark_as_received(404)


class TestCancelAndUpdate:
    def test_cancel_registered_purchase(self, db_session, service, store, supplier, rice):
        purchase = create_purchase(service, store, supplier, [line(rice, 4, "3.00")])
        cancelled = service.cancel_purchase(purchase.id)
        assert cancelled.status == PurchaseStatus.CANCELLED
        assert cancelled.cancelled_at is not None
        with pytest.raises(InvalidStatusTransitionError):
            service.mark_as_received(purchase.id)
        with pytest.raises(InvalidStatusTransitionError):
            service.cancel_purchase(purchase.id)
        assert db_session.get(Product, rice.id).current_stock == 10

    def test_received_purchase_is_final(self, db_session, service, store, supplier, rice):
        purchase = create_purchase(service, store, supplier, [line(rice, 4, "3.00")])
        service.mark_as_received(purchase.id)
        with pytest.raises(InvalidStatusTransitionError):
            service.cancel_purchase(purchase.id)
        with pytest.raises(InvalidStatusTransitionError):
            service.update_purchase(purchase.id, notes="late")
        assert db_session.get(Product, rice.id).current_stock == 14

    def test_document_number_only_changes_while_pending(self, db_session, service, store, supplier, rice):
        purchase = create_purchase(service, store, supplier, [line(rice, 1, "3.00")], status="PENDING")
        updated = service.update_purchase(purchase.id, document_number="F002-10", notes=" check boxes ")
        assert updated.document_number == "F002-10"
        assert updated.notes == "check boxes"

        service.register_purchase(purchase.id)
        with pytest.raises(ValidationFailure):
            service.update_purchase(purchase.id, document_number="F002-11")
        assert service.update_purchase(purchase.id, notes="ok").notes == "ok"

    def test_list_filters(self, db_session, service, store, supplier, rice):
        first = create_purchase(service, store, supplier, [line(rice, 1, "3.00")])
        create_purchase(service, store, supplier, [line(rice, 1, "3.00")], document_type="RECEIPT")
        service.mark_as_received(first.id)

        items, total = service.list_purchases({"store_id": store.id, "status": "received"})
        assert total == 1
        assert items[0].id == first.id
        items, total = service.list_purchases({"document_type": "RECEIPT"})
        assert total == 1
        with pytest.raises(ValidationFailure):
            service.list_purchases({"date_from": "last week"})
