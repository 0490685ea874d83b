from __future__ import annotations

from ..extensions import db
from ..errors import InvalidStatusTransitionError, ValidationFailure
from ..domain.enums import CashRegisterStatus
from ..domain.values import Money
from ..time_utils import to_utc_z, utcnow
from .common import enum_type


class CashRegister(db.Model):
    """
    Cash register shift.

    WHY: Cashier accountability. Each shift records the opening float, the
    cash taken through sales and, on close, the counted amount and the
    difference against what was expected.

    LIFECYCLE:
    - OPEN: accepting sales
    - LOCKED: temporarily paused (OPEN <-> LOCKED)
    - CLOSED: counted and final; cannot be reopened

    difference_cents = final - (initial + sales); negative means a shortage.
    """
    __tablename__ = "cash_registers"
    __table_args__ = (
        db.CheckConstraint("initial_amount_cents >= 0", name="ck_cash_registers_initial_nonneg"),
        db.CheckConstraint("sales_amount_cents >= 0", name="ck_cash_registers_sales_nonneg"),
        db.Index("ix_cash_registers_store_status", "store_id", "status"),
        db.Index("ix_cash_registers_user_status", "user_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, nullable=False, index=True)

    status = db.Column(enum_type(CashRegisterStatus), nullable=False, default=CashRegisterStatus.OPEN, index=True)

    # Cash tracking (all amounts in cents)
    initial_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    sales_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    final_amount_cents = db.Column(db.Integer, nullable=True)
    difference_cents = db.Column(db.Integer, nullable=True)

    observations = db.Column(db.Text, nullable=True)

    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    store = db.relationship("Store", backref=db.backref("cash_registers", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @classmethod
    def open(cls, *, store_id: int, user_id: int, initial_amount=0) -> "CashRegister":
        now = utcnow()
        return cls(
            store_id=store_id,
            user_id=user_id,
            status=CashRegisterStatus.OPEN,
            initial_amount_cents=Money(initial_amount).cents,
            sales_amount_cents=0,
            opened_at=now,
            updated_at=now,
        )

    @property
    def is_open(self) -> bool:
        return self.status == CashRegisterStatus.OPEN

    @property
    def expected_amount_cents(self) -> int:
        return (self.initial_amount_cents or 0) + (self.sales_amount_cents or 0)

    def _require(self, status: CashRegisterStatus, target: CashRegisterStatus) -> None:
        if self.status != status:
            raise InvalidStatusTransitionError("CashRegister", self.status, target)

    def add_sale(self, amount) -> None:
        if not self.is_open:
            raise ValidationFailure(
                "Cannot add a sale to a register that is not open",
                details={"cash_register_id": self.id, "status": self.status.value},
            )
        sale = Money(amount)
        if sale.cents <= 0:
            raise ValidationFailure("Sale amount must be greater than zero", details={"amount": str(sale.amount)})
        self.sales_amount_cents = Money.from_cents(self.sales_amount_cents or 0).add(sale).cents
        self.updated_at = utcnow()

    def close(self, final_amount, observations: str | None = None) -> None:
        self._require(CashRegisterStatus.OPEN, CashRegisterStatus.CLOSED)
        final = Money(final_amount)
        now = utcnow()
        self.final_amount_cents = final.cents
        self.difference_cents = final.cents - self.expected_amount_cents
        self.closed_at = now
        self.status = CashRegisterStatus.CLOSED
        self.observations = (observations or "").strip() or None
        self.updated_at = now

    def lock(self, observations: str | None = None) -> None:
        self._require(CashRegisterStatus.OPEN, CashRegisterStatus.LOCKED)
        self.status = CashRegisterStatus.LOCKED
        self.observations = (observations or "").strip() or None
        self.updated_at = utcnow()

    def unlock(self) -> None:
        self._require(CashRegisterStatus.LOCKED, CashRegisterStatus.OPEN)
        self.status = CashRegisterStatus.OPEN
        self.observations = None
        self.updated_at = utcnow()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "user_id": self.user_id,
            "status": self.status.value,
            "initial_amount_cents": self.initial_amount_cents,
            "sales_amount_cents": self.sales_amount_cents,
            "expected_amount_cents": self.expected_amount_cents,
            "final_amount_cents": self.final_amount_cents,
            "difference_cents": self.difference_cents,
            "observations": self.observations,
            "opened_at": to_utc_z(self.opened_at),
            "closed_at": to_utc_z(self.closed_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
