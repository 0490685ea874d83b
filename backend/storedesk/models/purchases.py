from __future__ import annotations

from ..extensions import db
from ..errors import FutureDateError, InvalidStatusTransitionError, ValidationFailure
from ..domain.enums import PurchaseDocumentType, PurchaseStatus
from ..domain.values import Money, Price, positive_quantity
from ..time_utils import to_utc_z, today_utc, utcnow
from .common import coerce_business_date, enum_type


# Stock only moves on RECEIVED; CANCELLED and RECEIVED are final.
PURCHASE_TRANSITIONS = {
    PurchaseStatus.PENDING: {PurchaseStatus.REGISTERED, PurchaseStatus.CANCELLED},
    PurchaseStatus.REGISTERED: {PurchaseStatus.RECEIVED, PurchaseStatus.CANCELLED},
    PurchaseStatus.RECEIVED: set(),
    PurchaseStatus.CANCELLED: set(),
}

EDITABLE_STATUSES = {PurchaseStatus.PENDING, PurchaseStatus.REGISTERED}


class Purchase(db.Model):
    """
    Supplier purchase document.

    LIFECYCLE (see PURCHASE_TRANSITIONS):
        PENDING -> REGISTERED -> RECEIVED
        PENDING | REGISTERED -> CANCELLED

    Receiving is the inbound side of the stock ledger: the service posts one
    ENTRY movement per line (reference_type=PURCHASE) in the same transaction
    that flips the status. A received purchase cannot be cancelled.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        # NULL document numbers never collide
        db.UniqueConstraint("store_id", "document_number", name="uq_purchases_store_docnum"),
        db.CheckConstraint("subtotal_cents >= 0", name="ck_purchases_subtotal_nonneg"),
        db.CheckConstraint("tax_cents >= 0", name="ck_purchases_tax_nonneg"),
        db.CheckConstraint("discount_cents >= 0", name="ck_purchases_discount_nonneg"),
        db.CheckConstraint(
            "total_cents = subtotal_cents + tax_cents - discount_cents",
            name="ck_purchases_total_matches",
        ),
        db.Index("ix_purchases_store_status_date", "store_id", "status", "purchase_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, nullable=False, index=True)

    # Supplier's own document number, optional
    document_number = db.Column(db.String(50), nullable=True)
    document_type = db.Column(enum_type(PurchaseDocumentType), nullable=False)
    purchase_date = db.Column(db.DateTime(timezone=True), nullable=False)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="PEN")

    status = db.Column(enum_type(PurchaseStatus), nullable=False, default=PurchaseStatus.REGISTERED, index=True)
    notes = db.Column(db.String(500), nullable=True)

    registered_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    supplier = db.relationship("Supplier")
    details = db.relationship(
        "PurchaseDetail",
        back_populates="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseDetail.id",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    @classmethod
    def create(
        cls,
        *,
        store_id: int,
        supplier_id: int,
        user_id: int,
        document_type: PurchaseDocumentType,
        purchase_date,
        details: list["PurchaseDetail"],
        tax=0,
        discount=0,
        document_number: str | None = None,
        notes: str | None = None,
        status: PurchaseStatus = PurchaseStatus.REGISTERED,
        currency: str = "PEN",
    ) -> "Purchase":
        """Build a purchase whose subtotal is the sum of its lines."""
        if not details:
            raise ValidationFailure("A purchase needs at least one line", details={"field": "details"})
        if status not in EDITABLE_STATUSES:
            raise ValidationFailure(
                "A purchase starts as PENDING or REGISTERED",
                details={"field": "status", "value": status.value},
            )

        subtotal = Money.from_cents(sum(d.subtotal_cents for d in details), currency)
        tax_money = Money(tax if tax is not None else 0, currency)
        discount_money = Money(discount if discount is not None else 0, currency)
        gross = subtotal.add(tax_money)
        if discount_money > gross:
            raise ValidationFailure(
                "discount cannot exceed subtotal plus tax",
                details={"discount_cents": discount_money.cents, "gross_cents": gross.cents},
            )

        purchase_dt = coerce_business_date(purchase_date, "purchase_date")
        if purchase_dt.date() > today_utc():
            raise FutureDateError("purchase_date", purchase_dt.date().isoformat())

        now = utcnow()
        purchase = cls(
            store_id=store_id,
            supplier_id=supplier_id,
            user_id=user_id,
            document_number=_clean_document_number(document_number),
            document_type=document_type,
            purchase_date=purchase_dt,
            subtotal_cents=subtotal.cents,
            tax_cents=tax_money.cents,
            discount_cents=discount_money.cents,
            total_cents=gross.subtract(discount_money).cents,
            currency=subtotal.currency,
            status=status,
            notes=(notes or "").strip() or None,
            registered_at=now,
            updated_at=now,
        )
        for detail in details:
            purchase.details.append(detail)
        return purchase

    @property
    def total(self) -> Money:
        return Money.from_cents(self.total_cents, self.currency)

    @property
    def total_quantity(self) -> int:
        return sum(d.quantity for d in self.details)

    @property
    def is_editable(self) -> bool:
        return self.status in EDITABLE_STATUSES

    def _transition(self, target: PurchaseStatus):
        if target not in PURCHASE_TRANSITIONS.get(self.status, set()):
            raise InvalidStatusTransitionError("Purchase", self.status, target)
        now = utcnow()
        self.status = target
        self.updated_at = now
        return now

    def register(self) -> None:
        self._transition(PurchaseStatus.REGISTERED)

    def mark_received(self) -> None:
        self.received_at = self._transition(PurchaseStatus.RECEIVED)

    def cancel(self) -> None:
        self.cancelled_at = self._transition(PurchaseStatus.CANCELLED)

    def ensure_editable(self) -> None:
        if not self.is_editable:
            raise InvalidStatusTransitionError("Purchase", self.status, "UPDATED")

    def update_document_number(self, document_number: str | None) -> None:
        # Once registered the supplier's paperwork is fixed.
        if self.status != PurchaseStatus.PENDING:
            raise ValidationFailure(
                "Document number can only change while the purchase is PENDING",
                details={"purchase_id": self.id, "status": self.status.value},
            )
        self.document_number = _clean_document_number(document_number)
        self.updated_at = utcnow()

    def update_notes(self, notes: str | None) -> None:
        self.notes = (notes or "").strip() or None
        self.updated_at = utcnow()

    def to_dict(self, include_details: bool = False) -> dict:
        data = {
            "id": self.id,
            "store_id": self.store_id,
            "supplier_id": self.supplier_id,
            "user_id": self.user_id,
            "document_number": self.document_number,
            "document_type": self.document_type.value,
            "purchase_date": to_utc_z(self.purchase_date),
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "currency": self.currency,
            "status": self.status.value,
            "notes": self.notes,
            "registered_at": to_utc_z(self.registered_at),
            "updated_at": to_utc_z(self.updated_at),
            "received_at": to_utc_z(self.received_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
        }
        if include_details:
            data["details"] = [d.to_dict() for d in self.details]
            data["total_quantity"] = self.total_quantity
        return data


def _clean_document_number(value: str | None) -> str | None:
    value = (value or "").strip()
    if len(value) > 50:
        raise ValidationFailure(
            "document_number cannot be longer than 50 characters",
            details={"field": "document_number"},
        )
    return value or None


class PurchaseDetail(db.Model):
    """Purchased line; the unit cost must be positive."""
    __tablename__ = "purchase_details"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_purchase_details_qty_pos"),
        db.CheckConstraint("unit_price_cents > 0", name="ck_purchase_details_price_pos"),
        db.CheckConstraint("discount_cents >= 0", name="ck_purchase_details_discount_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    purchase = db.relationship("Purchase", back_populates="details")
    product = db.relationship("Product")

    @classmethod
    def create(cls, *, product_id: int, quantity, unit_price, discount=0) -> "PurchaseDetail":
        quantity = positive_quantity(quantity)
        price = Price(unit_price)
        if price.cents == 0:
            raise ValidationFailure(
                "unit_price must be greater than zero",
                details={"product_id": product_id, "field": "unit_price"},
            )
        discount_money = Money(discount if discount is not None else 0)
        gross_cents = price.cents * quantity
        if discount_money.cents > gross_cents:
            raise ValidationFailure(
                "line discount cannot exceed quantity * unit_price",
                details={"product_id": product_id, "discount_cents": discount_money.cents, "gross_cents": gross_cents},
            )
        return cls(
            product_id=product_id,
            quantity=quantity,
            unit_price_cents=price.cents,
            discount_cents=discount_money.cents,
            subtotal_cents=gross_cents - discount_money.cents,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "discount_cents": self.discount_cents,
            "subtotal_cents": self.subtotal_cents,
        }
