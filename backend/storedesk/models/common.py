# Overview: Column helpers and the soft-delete status mixin for simple records.

from __future__ import annotations

from datetime import date, datetime

from ..extensions import db
from ..errors import ValidationFailure
from ..domain.enums import EntityStatus
from ..time_utils import normalize_datetime, parse_iso_datetime, utcnow


def enum_type(enum_cls, length: int = 16):
    """Portable enum column type (stored as VARCHAR, no native DB enum)."""
    return db.Enum(enum_cls, native_enum=False, length=length, validate_strings=True)


def coerce_business_date(value, field: str) -> datetime:
    """Accept an ISO string, date or datetime and return a UTC-naive datetime."""
    if isinstance(value, str):
        try:
            parsed = parse_iso_datetime(value)
        except ValueError:
            raise ValidationFailure(f"{field} must be an ISO-8601 date", details={"field": field, "value": value})
        if parsed is None:
            raise ValidationFailure(f"{field} is required", details={"field": field})
        return parsed
    if isinstance(value, (datetime, date)):
        return normalize_datetime(value)
    raise ValidationFailure(f"{field} is required", details={"field": field})


class StatusMixin:
    """
    Soft-delete status shared by stores, brands, categories, persons,
    customers and suppliers.

    NOTE: unrelated to the sale lifecycle (see models/sales.py), which is a
    separate and smaller state machine.
    """
    status = db.Column(enum_type(EntityStatus), nullable=False, default=EntityStatus.ACTIVE, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_active(self) -> bool:
        return self.status == EntityStatus.ACTIVE

    @property
    def is_deleted(self) -> bool:
        return self.status == EntityStatus.DELETED

    def activate(self) -> None:
        self.status = EntityStatus.ACTIVE

    def deactivate(self) -> None:
        self.status = EntityStatus.INACTIVE

    def suspend(self) -> None:
        self.status = EntityStatus.SUSPENDED

    def mark_deleted(self) -> None:
        self.status = EntityStatus.DELETED
