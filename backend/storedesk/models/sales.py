from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..errors import FutureDateError, InvalidStatusTransitionError, ValidationFailure
from ..domain.enums import PaymentMethod, SaleStatus, VoucherType
from ..domain.values import Money, Price, positive_quantity
from ..time_utils import to_utc_z, today_utc, utcnow
from .common import coerce_business_date, enum_type


# PENDING is the only non-terminal entry point; COMPLETED may still be undone.
ALLOWED_TRANSITIONS = {
    SaleStatus.PENDING: {SaleStatus.COMPLETED, SaleStatus.CANCELLED},
    SaleStatus.COMPLETED: {SaleStatus.CANCELLED, SaleStatus.REFUNDED},
    SaleStatus.CANCELLED: set(),
    SaleStatus.REFUNDED: set(),
}

TERMINAL_STATUSES = {SaleStatus.CANCELLED, SaleStatus.REFUNDED}


class Sale(db.Model):
    """
    Sale document.

    HEADER TOTALS ARE AUTHORITATIVE:
    subtotal/tax/discount/total are fixed when the sale is created
    (total = subtotal + tax - discount). When detail lines are present their
    subtotals must add up to the header subtotal; details are never used to
    silently recompute the header afterwards.

    LIFECYCLE (see ALLOWED_TRANSITIONS):
        PENDING -> COMPLETED -> CANCELLED | REFUNDED
        PENDING -> CANCELLED
    Stock effects of the transitions live in services/sale_service.py; this
    model only guards the state machine.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("store_id", "document_type", "document_number", name="uq_sales_store_type_docnum"),
        db.CheckConstraint("subtotal_cents >= 0", name="ck_sales_subtotal_nonneg"),
        db.CheckConstraint("tax_cents >= 0", name="ck_sales_tax_nonneg"),
        db.CheckConstraint("discount_cents >= 0", name="ck_sales_discount_nonneg"),
        db.CheckConstraint("total_cents >= 0", name="ck_sales_total_nonneg"),
        db.CheckConstraint(
            "total_cents = subtotal_cents + tax_cents - discount_cents",
            name="ck_sales_total_matches",
        ),
        db.Index("ix_sales_store_status_date", "store_id", "status", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    user_id = db.Column(db.Integer, nullable=False, index=True)

    # Human-readable document number (e.g., "B001-00000042")
    document_number = db.Column(db.String(64), nullable=True, index=True)
    document_type = db.Column(enum_type(VoucherType), nullable=False)
    series = db.Column(db.String(16), nullable=False)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False)

    # All amounts in cents
    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="PEN")

    payment_method = db.Column(enum_type(PaymentMethod), nullable=False, default=PaymentMethod.CASH)
    status = db.Column(enum_type(SaleStatus), nullable=False, default=SaleStatus.PENDING, index=True)
    notes = db.Column(db.String(500), nullable=True)

    registered_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    refunded_at = db.Column(db.DateTime(timezone=True), nullable=True)
    status_reason = db.Column(db.String(255), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    store = db.relationship("Store", backref=db.backref("sales", lazy=True))
    customer = db.relationship("Customer")
    details = db.relationship(
        "SaleDetail",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleDetail.id",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    @classmethod
    def create(
        cls,
        *,
        store_id: int,
        user_id: int,
        document_type: VoucherType,
        series: str,
        sale_date,
        subtotal=None,
        tax=0,
        discount=0,
        payment_method: PaymentMethod = PaymentMethod.CASH,
        customer_id: int | None = None,
        notes: str | None = None,
        document_number: str | None = None,
        details: list["SaleDetail"] | None = None,
        currency: str = "PEN",
    ) -> "Sale":
        """
        Build a PENDING sale with validated amounts and date.

        subtotal may be omitted when details are given; it is then the sum
        of the detail subtotals.
        """
        details = list(details or [])
        if subtotal is None:
            if not details:
                raise ValidationFailure("subtotal is required", details={"field": "subtotal"})
            subtotal_money = Money.from_cents(sum(d.subtotal_cents for d in details), currency)
        else:
            subtotal_money = Money(subtotal, currency)

        tax_money = Money(tax if tax is not None else 0, currency)
        discount_money = Money(discount if discount is not None else 0, currency)

        if details:
            details_cents = sum(d.subtotal_cents for d in details)
            if details_cents != subtotal_money.cents:
                raise ValidationFailure(
                    "subtotal does not match the sum of the sale lines",
                    details={"subtotal_cents": subtotal_money.cents, "lines_subtotal_cents": details_cents},
                )

        gross = subtotal_money.add(tax_money)
        if discount_money > gross:
            raise ValidationFailure(
                "discount cannot exceed subtotal plus tax",
                details={"discount_cents": discount_money.cents, "gross_cents": gross.cents},
            )
        total_money = gross.subtract(discount_money)

        sale_dt = coerce_business_date(sale_date, "sale_date")
        if sale_dt.date() > today_utc():
            raise FutureDateError("sale_date", sale_dt.date().isoformat())

        if not series or not str(series).strip():
            raise ValidationFailure("series cannot be empty", details={"field": "series"})

        now = utcnow()
        sale = cls(
            store_id=store_id,
            customer_id=customer_id,
            user_id=user_id,
            document_number=document_number,
            document_type=document_type,
            series=str(series).strip(),
            sale_date=sale_dt,
            subtotal_cents=subtotal_money.cents,
            tax_cents=tax_money.cents,
            discount_cents=discount_money.cents,
            total_cents=total_money.cents,
            currency=subtotal_money.currency,
            payment_method=payment_method,
            status=SaleStatus.PENDING,
            notes=(notes or "").strip() or None,
            registered_at=now,
            updated_at=now,
        )
        for detail in details:
            sale.details.append(detail)
        return sale

    # -- money views ---------------------------------------------------------

    @property
    def subtotal(self) -> Money:
        return Money.from_cents(self.subtotal_cents, self.currency)

    @property
    def tax(self) -> Money:
        return Money.from_cents(self.tax_cents, self.currency)

    @property
    def discount(self) -> Money:
        return Money.from_cents(self.discount_cents, self.currency)

    @property
    def total(self) -> Money:
        return Money.from_cents(self.total_cents, self.currency)

    @property
    def details_total_cents(self) -> int:
        return sum(d.subtotal_cents for d in self.details)

    @property
    def total_quantity(self) -> int:
        return sum(d.quantity for d in self.details)

    @property
    def voucher_identifier(self) -> str:
        return f"{self.document_type.value}-{self.document_number or self.series}"

    # -- lifecycle -----------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def can_transition_to(self, target: SaleStatus) -> bool:
        return target in ALLOWED_TRANSITIONS.get(self.status, set())

    def ensure_transition(self, target: SaleStatus) -> None:
        if not self.can_transition_to(target):
            raise InvalidStatusTransitionError("Sale", self.status, target)

    def _transition(self, target: SaleStatus, reason: str | None = None) -> datetime:
        self.ensure_transition(target)
        now = utcnow()
        self.status = target
        self.updated_at = now
        if reason:
            self.status_reason = reason.strip()[:255]
        return now

    def complete(self) -> None:
        self.completed_at = self._transition(SaleStatus.COMPLETED)

    def cancel(self, reason: str | None = None) -> None:
        self.cancelled_at = self._transition(SaleStatus.CANCELLED, reason)

    def refund(self, reason: str | None = None) -> None:
        self.refunded_at = self._transition(SaleStatus.REFUNDED, reason)

    def update_notes(self, notes: str | None) -> None:
        self.notes = (notes or "").strip() or None
        self.updated_at = utcnow()

    def to_dict(self, include_details: bool = False) -> dict:
        data = {
            "id": self.id,
            "store_id": self.store_id,
            "customer_id": self.customer_id,
            "user_id": self.user_id,
            "document_number": self.document_number,
            "document_type": self.document_type.value,
            "series": self.series,
            "sale_date": to_utc_z(self.sale_date),
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "currency": self.currency,
            "payment_method": self.payment_method.value,
            "status": self.status.value,
            "status_reason": self.status_reason,
            "notes": self.notes,
            "registered_at": to_utc_z(self.registered_at),
            "updated_at": to_utc_z(self.updated_at),
            "completed_at": to_utc_z(self.completed_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "refunded_at": to_utc_z(self.refunded_at),
            "version_id": self.version_id,
        }
        if include_details:
            data["details"] = [d.to_dict() for d in self.details]
            data["total_quantity"] = self.total_quantity
            data["details_total_cents"] = self.details_total_cents
        return data


class SaleDetail(db.Model):
    """Line item; owned by its Sale (created and deleted with it)."""
    __tablename__ = "sale_details"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_details_qty_pos"),
        db.CheckConstraint("unit_price_cents >= 0", name="ck_sale_details_price_nonneg"),
        db.CheckConstraint("discount_cents >= 0", name="ck_sale_details_discount_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    subtotal_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="details")
    product = db.relationship("Product")

    @classmethod
    def create(cls, *, product_id: int, quantity, unit_price, discount=0) -> "SaleDetail":
        quantity = positive_quantity(quantity)
        price = Price(unit_price)
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

    @property
    def discount_percentage(self) -> float:
        gross = self.quantity * self.unit_price_cents
        if gross == 0:
            return 0.0
        return self.discount_cents * 100.0 / gross

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "discount_cents": self.discount_cents,
            "subtotal_cents": self.subtotal_cents,
        }
