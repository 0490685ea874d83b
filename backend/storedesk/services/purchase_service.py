"""
Purchase service - supplier purchases and the inbound side of the stock ledger

WHY: Stock that arrives from a supplier must be explained by the ledger the
same way stock that leaves through a sale is.

LIFECYCLE (models/purchases.py PURCHASE_TRANSITIONS):
    PENDING    -> REGISTERED  (paperwork checked, no stock effect)
    REGISTERED -> RECEIVED    (stock in, ENTRY movements referencing the purchase)
    PENDING | REGISTERED -> CANCELLED (no stock effect)

RECEIVING:
One ENTRY movement per line with reference_type=PURCHASE and
reference_id=<purchase id>, written through InventoryService.apply_movement in
the same transaction as the status change. All or nothing: a missing or
inactive product aborts the whole receipt. A RECEIVED purchase is final; a
mistake is corrected with stock adjustments, never by cancelling.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import AlreadyExistsError, EntityDeletedError, InactiveResourceError, NotFoundError, ValidationFailure
from ..domain.enums import MovementType, PurchaseDocumentType, PurchaseStatus, ReferenceType, parse_enum
from ..models import InventoryMovement, Purchase, PurchaseDetail, Store, Supplier
from ..repositories import BaseRepository, ProductRepository, PurchaseRepository
from ..time_utils import parse_iso_datetime, utcnow
from .concurrency import begin_immediate, run_with_retry
from .inventory_service import InventoryService, get_inventory_service


def build_purchase_details(items) -> list[PurchaseDetail]:
    if not isinstance(items, (list, tuple)) or not items:
        raise ValidationFailure("details must be a non-empty list", details={"field": "details"})
    details = []
    for index, item in enumerate(items):
        if not isinstance(item, dict) or item.get("product_id") is None:
            raise ValidationFailure(
                "Each line requires product_id, quantity and unit_price",
                details={"field": "details", "index": index},
            )
        details.append(PurchaseDetail.create(
            product_id=item["product_id"],
            quantity=item.get("quantity"),
            unit_price=item.get("unit_price"),
            discount=item.get("discount", 0),
        ))
    return details


class PurchaseService:
    def __init__(
        self,
        purchase_repo: PurchaseRepository,
        product_repo: ProductRepository,
        store_repo: BaseRepository,
        supplier_repo: BaseRepository,
        inventory: InventoryService,
    ):
        self.purchase_repo = purchase_repo
        self.product_repo = product_repo
        self.store_repo = store_repo
        self.supplier_repo = supplier_repo
        self.inventory = inventory

    @property
    def session(self):
        return self.purchase_repo.session

    def _load_purchase(self, purchase_id: int, *, lock: bool = False) -> Purchase:
        purchase = self.purchase_repo.find_by_id(purchase_id, lock=lock)
        if not purchase:
            raise NotFoundError("Purchase", purchase_id)
        return purchase

    def _require_store(self, store_id: int) -> Store:
        store = self.store_repo.find_by_id(store_id)
        if not store:
            raise NotFoundError("Store", store_id)
        if store.is_deleted:
            raise EntityDeletedError("Store", store_id)
        if not store.is_active:
            raise InactiveResourceError("Store", store_id, store.name)
        return store

    def _require_supplier(self, supplier_id: int, store_id: int) -> Supplier:
        supplier = self.supplier_repo.find_by_id(supplier_id)
        if not supplier or supplier.store_id != store_id:
            raise NotFoundError("Supplier", supplier_id)
        if supplier.is_deleted:
            raise EntityDeletedError("Supplier", supplier_id)
        if not supplier.is_active:
            raise InactiveResourceError("Supplier", supplier_id, supplier.company_name)
        return supplier

    def _check_products(self, details: list[PurchaseDetail], store_id: int) -> None:
        for detail in details:
            product = self.product_repo.find_by_id(detail.product_id)
            if not product or product.store_id != store_id:
                raise NotFoundError("Product", detail.product_id)

    def _check_document_number(self, store_id: int, document_number: str | None, purchase_id: int | None = None):
        if not document_number:
            return
        existing = self.purchase_repo.find_by_store_and_document(store_id, document_number)
        if existing and existing.id != purchase_id:
            raise AlreadyExistsError("Purchase", {"store_id": store_id, "document_number": document_number})

    # -- queries -------------------------------------------------------------

    def get_purchase(self, purchase_id: int) -> Purchase:
        return self._load_purchase(purchase_id)

    def list_purchases(self, filters: dict | None = None, *, limit: int | None = None, offset: int | None = None):
        filters = dict(filters or {})
        if filters.get("status") is not None:
            filters["status"] = parse_enum(PurchaseStatus, filters["status"], "status")
        if filters.get("document_type") is not None:
            filters["document_type"] = parse_enum(PurchaseDocumentType, filters["document_type"], "document_type")
        for key in ("date_from", "date_to"):
            if isinstance(filters.get(key), str):
                try:
                    filters[key] = parse_iso_datetime(filters[key])
                except ValueError:
                    raise ValidationFailure(f"{key} must be an ISO-8601 date", details={"field": key})
        items = self.purchase_repo.find_many(filters, limit=limit, offset=offset)
        return items, self.purchase_repo.count(filters)

    def get_entries(self, purchase_id: int) -> list[InventoryMovement]:
        self._load_purchase(purchase_id)
        return self.inventory.movement_repo.find_by_reference(purchase_id, ReferenceType.PURCHASE, MovementType.ENTRY)

    # -- writes --------------------------------------------------------------

    def create_purchase(
        self,
        *,
        store_id: int,
        supplier_id: int,
        user_id: int,
        document_type,
        items,
        purchase_date=None,
        document_number: str | None = None,
        tax=0,
        discount=0,
        notes: str | None = None,
        status=PurchaseStatus.REGISTERED,
        currency: str | None = None,
    ) -> Purchase:
        """Record a purchase. No stock moves until it is received."""
        document_type = parse_enum(PurchaseDocumentType, document_type, "document_type")
        status = parse_enum(PurchaseStatus, status, "status")
        if user_id is None:
            raise ValidationFailure("user_id is required", details={"field": "user_id"})
        if supplier_id is None:
            raise ValidationFailure("supplier_id is required", details={"field": "supplier_id"})
        currency = currency or current_app.config.get("DEFAULT_CURRENCY", "PEN")

        def _op():
            begin_immediate(self.session)
            self._require_store(store_id)
            self._require_supplier(supplier_id, store_id)
            details = build_purchase_details(items)
            self._check_products(details, store_id)

            purchase = Purchase.create(
                store_id=store_id,
                supplier_id=supplier_id,
                user_id=user_id,
                document_type=document_type,
                purchase_date=purchase_date if purchase_date is not None else utcnow(),
                details=details,
                tax=tax,
                discount=discount,
                document_number=document_number,
                notes=notes,
                status=status,
                currency=currency,
            )
            self._check_document_number(store_id, purchase.document_number)
            try:
                self.purchase_repo.save(purchase)
            except IntegrityError:
                raise AlreadyExistsError(
                    "Purchase", {"store_id": store_id, "document_number": purchase.document_number},
                )
            self.session.commit()
            current_app.logger.info(
                "Purchase %s registered for store %s (%s lines, status %s)",
                purchase.id, store_id, len(details), purchase.status.value,
            )
            return purchase

        return run_with_retry(_op, session=self.session)

    def update_purchase(self, purchase_id: int, *, notes=None, document_number=None) -> Purchase:
        def _op():
            begin_immediate(self.session)
            purchase = self._load_purchase(purchase_id, lock=True)
            purchase.ensure_editable()
            if document_number is not None:
                purchase.update_document_number(document_number)
                self._check_document_number(purchase.store_id, purchase.document_number, purchase.id)
            if notes is not None:
                purchase.update_notes(notes)
            self.purchase_repo.update(purchase)
            self.session.commit()
            return purchase

        return run_with_retry(_op, session=self.session)

    def register_purchase(self, purchase_id: int) -> Purchase:
        def _op():
            begin_immediate(self.session)
            purchase = self._load_purchase(purchase_id, lock=True)
            purchase.register()
            self.purchase_repo.update(purchase)
            self.session.commit()
            current_app.logger.info("Purchase %s registered", purchase.id)
            return purchase

        return run_with_retry(_op, session=self.session)

    def mark_as_received(self, purchase_id: int, user_id: int | None = None) -> Purchase:
        """REGISTERED -> RECEIVED, putting every purchased unit into stock."""
        def _op():
            begin_immediate(self.session)
            purchase = self._load_purchase(purchase_id, lock=True)
            purchase.mark_received()
            label = purchase.document_number or f"#{purchase.id}"
            for detail in purchase.details:
                product = self.inventory.load_product(detail.product_id)
                if product.store_id != purchase.store_id:
                    raise NotFoundError("Product", detail.product_id)
                self.inventory.apply_movement(
                    product,
                    MovementType.ENTRY,
                    detail.quantity,
                    user_id=user_id or purchase.user_id,
                    reason=f"Purchase {label}",
                    reference_id=purchase.id,
                    reference_type=ReferenceType.PURCHASE,
                )
            self.purchase_repo.update(purchase)
            self.session.commit()
            current_app.logger.info("Purchase %s received (%s units)", purchase.id, purchase.total_quantity)
            return purchase

        return run_with_retry(_op, session=self.session)

    def cancel_purchase(self, purchase_id: int) -> Purchase:
        def _op():
            begin_immediate(self.session)
            purchase = self._load_purchase(purchase_id, lock=True)
            purchase.cancel()
            self.purchase_repo.update(purchase)
            self.session.commit()
            current_app.logger.info("Purchase %s cancelled", purchase.id)
            return purchase

        return run_with_retry(_op, session=self.session)


def get_purchase_service(session=None) -> PurchaseService:
    return PurchaseService(
        purchase_repo=PurchaseRepository(session),
        product_repo=ProductRepository(session),
        store_repo=BaseRepository(session, model=Store),
        supplier_repo=BaseRepository(session, model=Supplier),
        inventory=get_inventory_service(session),
    )
