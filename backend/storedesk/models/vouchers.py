from __future__ import annotations

from ..extensions import db
from ..errors import ValidationFailure
from ..domain.enums import VoucherType
from ..time_utils import to_utc_z, utcnow
from .common import enum_type


class VoucherSeries(db.Model):
    """
    One numbering lane: (store_id, voucher_type, series) with its own counter.

    WHY: Receipts, invoices and credit/debit notes need gap-free, never-reused
    document numbers per store and series.

    COUNTER SEMANTICS:
    - current_number is the last number consumed; it is always >= 1.
    - The number a caller receives from an increment is the post-increment
      value (current_number after the +1).
    - Increments happen in SQL (current_number = current_number + 1), never
      as read-then-write in Python. See repositories/voucher_series.py.

    Lanes are hard-deleted: nothing in the ledger depends on them.
    """
    __tablename__ = "voucher_series"
    __table_args__ = (
        db.UniqueConstraint("store_id", "voucher_type", "series", name="uq_voucher_series_lane"),
        db.CheckConstraint("current_number >= 1", name="ck_voucher_series_number_positive"),
        {"sqlite_autoincrement": True},
    )

    NUMBER_WIDTH = 8

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    voucher_type = db.Column(enum_type(VoucherType), nullable=False, index=True)
    series = db.Column(db.String(16), nullable=False)
    current_number = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    store = db.relationship("Store", backref=db.backref("voucher_series", lazy=True))

    @classmethod
    def create(cls, *, store_id: int, voucher_type: VoucherType, series: str, current_number: int = 1) -> "VoucherSeries":
        lane = cls(store_id=store_id, voucher_type=voucher_type)
        lane.rename(series)
        lane.set_current_number(current_number)
        return lane

    @classmethod
    def format_number(cls, series: str, number: int) -> str:
        """
        Human-visible document number: SERIES-NNNNNNNN.

        Zero-padded to 8 digits; wider numbers are kept whole, never truncated.
        """
        return f"{series}-{number:0{cls.NUMBER_WIDTH}d}"

    @property
    def lane_key(self) -> dict:
        voucher_type = getattr(self.voucher_type, "value", self.voucher_type)
        return {"store_id": self.store_id, "voucher_type": voucher_type, "series": self.series}

    @property
    def next_number(self) -> int:
        return self.current_number + 1

    @property
    def formatted_number(self) -> str:
        return self.format_number(self.series, self.current_number)

    @property
    def next_formatted_number(self) -> str:
        return self.format_number(self.series, self.next_number)

    def rename(self, series: str) -> None:
        if not series or not str(series).strip():
            raise ValidationFailure("series cannot be empty", details={"field": "series"})
        series = str(series).strip()
        if len(series) > 16:
            raise ValidationFailure("series cannot exceed 16 characters", details={"field": "series"})
        self.series = series

    def change_voucher_type(self, voucher_type: VoucherType) -> None:
        self.voucher_type = voucher_type

    def set_current_number(self, number: int) -> None:
        if isinstance(number, bool) or not isinstance(number, int) or number < 1:
            raise ValidationFailure(
                "current_number must be an integer greater than 0",
                details={"field": "current_number", "value": number},
            )
        self.current_number = number

    def preview(self) -> dict:
        return {
            "current_number": self.current_number,
            "next_number": self.next_number,
            "formatted_number": self.formatted_number,
            "next_formatted_number": self.next_formatted_number,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "voucher_type": self.voucher_type.value,
            "series": self.series,
            "current_number": self.current_number,
            "formatted_number": self.formatted_number,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
