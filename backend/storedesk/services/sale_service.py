"""
Sale service - lifecycle and inventory consistency

WHY: A sale's status and the stock it consumed must never disagree.
Completing a sale takes stock out; cancelling or refunding a completed sale
puts exactly that stock back. Each of those is one transaction.

LIFECYCLE (models/sales.py ALLOWED_TRANSITIONS):
    PENDING   -> COMPLETED  (stock out, EXIT movements referencing the sale)
    PENDING   -> CANCELLED  (no stock effect)
    COMPLETED -> CANCELLED  (compensating return)
    COMPLETED -> REFUNDED   (compensating return)

COMPENSATING RETURN:
For every EXIT movement with reference_type=SALE and reference_id=<sale id>,
the quantity is added back and a RETURN movement (reference_type=RETURN,
same reference_id) is appended. EXIT rows are never touched. A product that
no longer exists is skipped with a warning.

SERIALIZATION:
- SQLite: BEGIN IMMEDIATE before reading anything.
- Other databases: SELECT ... FOR UPDATE on the sale and each product.
- Both: version_id optimistic check on Sale and Product; StaleDataError is
  retried by run_with_retry.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import (
    AlreadyExistsError,
    EntityDeletedError,
    InactiveResourceError,
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationFailure,
)
from ..domain.enums import MovementType, PaymentMethod, ReferenceType, SaleStatus, VoucherType, parse_enum
from ..models import Customer, InventoryMovement, Sale, SaleDetail, Store
from ..repositories import BaseRepository, InventoryMovementRepository, ProductRepository, SaleRepository
from ..time_utils import parse_iso_datetime, utcnow
from .concurrency import begin_immediate, run_with_retry
from .inventory_service import InventoryService, get_inventory_service
from .voucher_series_service import VoucherSeriesAllocator, get_voucher_series_allocator


def build_details(items) -> list[SaleDetail]:
    """Turn request items ({product_id, quantity, unit_price, discount}) into SaleDetail rows."""
    if not isinstance(items, (list, tuple)):
        raise ValidationFailure("items must be a list", details={"field": "items"})
    details = []
    for index, item in enumerate(items):
        if not isinstance(item, dict) or item.get("product_id") is None:
            raise ValidationFailure(
                "Each item requires product_id, quantity and unit_price",
                details={"field": "items", "index": index},
            )
        details.append(SaleDetail.create(
            product_id=item["product_id"],
            quantity=item.get("quantity"),
            unit_price=item.get("unit_price"),
            discount=item.get("discount", 0),
        ))
    return details


class SaleService:
    def __init__(
        self,
        sale_repo: SaleRepository,
        product_repo: ProductRepository,
        movement_repo: InventoryMovementRepository,
        store_repo: BaseRepository,
        customer_repo: BaseRepository,
        allocator: VoucherSeriesAllocator,
        inventory: InventoryService,
    ):
        self.sale_repo = sale_repo
        self.product_repo = product_repo
        self.movement_repo = movement_repo
        self.store_repo = store_repo
        self.customer_repo = customer_repo
        self.allocator = allocator
        self.inventory = inventory

    @property
    def session(self):
        return self.sale_repo.session

    # -- helpers -------------------------------------------------------------

    def _load_sale(self, sale_id: int, *, lock: bool = False) -> Sale:
        sale = self.sale_repo.find_by_id(sale_id, lock=lock)
        if not sale:
            raise NotFoundError("Sale", sale_id)
        return sale

    def _require_store(self, store_id: int) -> Store:
        store = self.store_repo.find_by_id(store_id)
        if not store:
            raise NotFoundError("Store", store_id)
        if store.is_deleted:
            raise EntityDeletedError("Store", store_id)
        if not store.is_active:
            raise InactiveResourceError("Store", store_id, store.name)
        return store

    def _require_customer(self, customer_id: int, store_id: int) -> Customer:
        customer = self.customer_repo.find_by_id(customer_id)
        if not customer or customer.store_id != store_id:
            raise NotFoundError("Customer", customer_id)
        if customer.is_deleted:
            raise EntityDeletedError("Customer", customer_id)
        return customer

    def _check_products(self, details: list[SaleDetail], store_id: int) -> None:
        for detail in details:
            product = self.product_repo.find_by_id(detail.product_id)
            if not product or product.store_id != store_id:
                raise NotFoundError("Product", detail.product_id)
            if not product.is_active:
                raise InactiveResourceError("Product", product.id, product.name)

    def _take_stock(self, sale: Sale, user_id: int | None) -> list[InventoryMovement]:
        movements = []
        for detail in sale.details:
            product = self.inventory.load_product(detail.product_id)
            if product.store_id != sale.store_id:
                raise NotFoundError("Product", detail.product_id)
            movements.append(self.inventory.apply_movement(
                product,
                MovementType.EXIT,
                detail.quantity,
                user_id=user_id or sale.user_id,
                reason=f"Sale {sale.voucher_identifier}",
                reference_id=sale.id,
                reference_type=ReferenceType.SALE,
            ))
        return movements

    def _return_stock(self, sale: Sale, user_id: int | None = None) -> list[InventoryMovement]:
        """Compensating return for a completed sale; runs inside the caller's transaction."""
        exits = self.movement_repo.find_by_reference(sale.id, ReferenceType.SALE, MovementType.EXIT)
        returns = []
        for exit_movement in exits:
            product = self.product_repo.find_by_id(exit_movement.product_id, lock=True)
            if not product:
                current_app.logger.warning(
                    "Skipping stock return for sale %s: product %s no longer exists",
                    sale.id, exit_movement.product_id,
                )
                continue
            returns.append(self.inventory.apply_movement(
                product,
                MovementType.RETURN,
                exit_movement.quantity,
                user_id=user_id or exit_movement.user_id,
                reason=f"Return of sale {sale.voucher_identifier}",
                reference_id=sale.id,
                reference_type=ReferenceType.RETURN,
            ))
        return returns

    # -- queries -------------------------------------------------------------

    def get_sale(self, sale_id: int) -> Sale:
        return self._load_sale(sale_id)

    def list_sales(self, filters: dict | None = None, *, limit: int | None = None, offset: int | None = None):
        filters = dict(filters or {})
        if filters.get("status") is not None:
            filters["status"] = parse_enum(SaleStatus, filters["status"], "status")
        if filters.get("document_type") is not None:
            filters["document_type"] = parse_enum(VoucherType, filters["document_type"], "document_type")
        for key in ("date_from", "date_to"):
            if isinstance(filters.get(key), str):
                try:
                    filters[key] = parse_iso_datetime(filters[key])
                except ValueError:
                    raise ValidationFailure(f"{key} must be an ISO-8601 date", details={"field": key})
        items = self.sale_repo.find_many(filters, limit=limit, offset=offset)
        return items, self.sale_repo.count(filters)

    # -- creation ------------------------------------------------------------

    def create_sale(
        self,
        *,
        store_id: int,
        user_id: int,
        document_type,
        series: str,
        sale_date=None,
        subtotal=None,
        tax=0,
        discount=0,
        payment_method=PaymentMethod.CASH,
        customer_id: int | None = None,
        notes: str | None = None,
        items=None,
        currency: str | None = None,
    ) -> Sale:
        """
        Create a PENDING sale and stamp it with the lane's next document number.

        Numbering and the insert share one transaction: if the sale is
        rejected, the number is not consumed.
        """
        document_type = parse_enum(VoucherType, document_type, "document_type")
        payment_method = parse_enum(PaymentMethod, payment_method, "payment_method")
        if user_id is None:
            raise ValidationFailure("user_id is required", details={"field": "user_id"})
        currency = currency or current_app.config.get("DEFAULT_CURRENCY", "PEN")

        def _op():
            begin_immediate(self.session)
            self._require_store(store_id)
            if customer_id is not None:
                self._require_customer(customer_id, store_id)

            details = build_details(items) if items else []
            self._check_products(details, store_id)

            sale = Sale.create(
                store_id=store_id,
                user_id=user_id,
                document_type=document_type,
                series=series,
                sale_date=sale_date if sale_date is not None else utcnow(),
                subtotal=subtotal,
                tax=tax,
                discount=discount,
                payment_method=payment_method,
                customer_id=customer_id,
                notes=notes,
                details=details,
                currency=currency,
            )

            _, document_number = self.allocator.allocate_in_transaction(store_id, document_type, sale.series)
            sale.document_number = document_number
            try:
                self.sale_repo.save(sale)
            except IntegrityError:
                raise AlreadyExistsError(
                    "Sale",
                    {"store_id": store_id, "document_type": document_type.value, "document_number": document_number},
                )
            self.session.commit()
            current_app.logger.info("Sale %s created as %s (store %s)", sale.id, document_number, store_id)
            return sale

        return run_with_retry(_op, session=self.session)

    def update_sale(self, sale_id: int, *, notes=None, customer_id=None) -> Sale:
        def _op():
            begin_immediate(self.session)
            sale = self._load_sale(sale_id, lock=True)
            if sale.status != SaleStatus.PENDING:
                raise ValidationFailure(
                    "Only PENDING sales can be edited",
                    details={"sale_id": sale_id, "status": sale.status.value},
                )
            if customer_id is not None:
                self._require_customer(customer_id, sale.store_id)
                sale.customer_id = customer_id
            if notes is not None:
                sale.update_notes(notes)
            sale.updated_at = utcnow()
            self.sale_repo.update(sale)
            self.session.commit()
            return sale

        return run_with_retry(_op, session=self.session)

    def delete_sale(self, sale_id: int) -> None:
        def _op():
            begin_immediate(self.session)
            sale = self._load_sale(sale_id, lock=True)
            if sale.status != SaleStatus.PENDING:
                raise ValidationFailure(
                    "Only PENDING sales can be deleted",
                    details={"sale_id": sale_id, "status": sale.status.value},
                )
            self.sale_repo.delete(sale)
            self.session.commit()
            current_app.logger.info("Sale %s deleted", sale_id)

        run_with_retry(_op, session=self.session)

    # -- lifecycle -----------------------------------------------------------

    def process_sale_with_products(self, sale_id: int, items=None, user_id: int | None = None) -> Sale:
        """
        PENDING -> COMPLETED, taking the sold units out of stock.

        ``items`` may only be given for a sale created without lines; they
        become its lines and must add up to the header subtotal. All or
        nothing: one missing, inactive or short product aborts the whole
        completion with no stock or status change.
        """
        def _op():
            begin_immediate(self.session)
            sale = self._load_sale(sale_id, lock=True)
            sale.ensure_transition(SaleStatus.COMPLETED)

            if items:
                if sale.details:
                    raise ValidationFailure(
                        "Sale already has lines; complete it without items",
                        details={"sale_id": sale_id},
                    )
                new_details = build_details(items)
                lines_cents = sum(d.subtotal_cents for d in new_details)
                if lines_cents != sale.subtotal_cents:
                    raise ValidationFailure(
                        "subtotal does not match the sum of the sale lines",
                        details={"subtotal_cents": sale.subtotal_cents, "lines_subtotal_cents": lines_cents},
                    )
                for detail in new_details:
                    sale.details.append(detail)

            if not sale.details:
                raise ValidationFailure("Cannot complete a sale with no lines", details={"sale_id": sale_id})

            self._take_stock(sale, user_id)
            sale.complete()
            self.sale_repo.update(sale)
            self.session.commit()
            current_app.logger.info("Sale %s completed (%s units)", sale.id, sale.total_quantity)
            return sale

        return run_with_retry(_op, session=self.session)

    def complete_sale(self, sale_id: int, user_id: int | None = None) -> Sale:
        return self.process_sale_with_products(sale_id, None, user_id)

    def cancel_sale(self, sale_id: int, reason: str | None = None, user_id: int | None = None) -> Sale:
        def _op():
            begin_immediate(self.session)
            sale = self._load_sale(sale_id, lock=True)
            was_completed = sale.status == SaleStatus.COMPLETED
            sale.cancel(reason)
            if was_completed:
                self._return_stock(sale, user_id)
            self.sale_repo.update(sale)
            self.session.commit()
            current_app.logger.info("Sale %s cancelled (stock returned: %s)", sale.id, was_completed)
            return sale

        return run_with_retry(_op, session=self.session)

    def refund_sale(self, sale_id: int, reason: str | None = None, user_id: int | None = None) -> Sale:
        def _op():
            begin_immediate(self.session)
            sale = self._load_sale(sale_id, lock=True)
            sale.refund(reason)
            self._return_stock(sale, user_id)
            self.sale_repo.update(sale)
            self.session.commit()
            current_app.logger.info("Sale %s refunded", sale.id)
            return sale

        return run_with_retry(_op, session=self.session)

    def update_sale_status(self, sale_id: int, status, *, reason: str | None = None,
                           user_id: int | None = None) -> Sale:
        target = parse_enum(SaleStatus, status, "status")
        if target == SaleStatus.COMPLETED:
            return self.complete_sale(sale_id, user_id)
        if target == SaleStatus.CANCELLED:
            return self.cancel_sale(sale_id, reason, user_id)
        if target == SaleStatus.REFUNDED:
            return self.refund_sale(sale_id, reason, user_id)
        sale = self._load_sale(sale_id)
        raise InvalidStatusTransitionError("Sale", sale.status, target)


def get_sale_service(session=None) -> SaleService:
    return SaleService(
        sale_repo=SaleRepository(session),
        product_repo=ProductRepository(session),
        movement_repo=InventoryMovementRepository(session),
        store_repo=BaseRepository(session, model=Store),
        customer_repo=BaseRepository(session, model=Customer),
        allocator=get_voucher_series_allocator(session),
        inventory=get_inventory_service(session),
    )
