from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .common import StatusMixin


class Store(StatusMixin, db.Model):
    """
    Tenant boundary.

    MULTI-TENANT: products, voucher series, sales and cash registers all carry
    store_id. Nothing is shared across stores.
    """
    __tablename__ = "stores"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    # Peruvian tax id, 11 digits
    ruc = db.Column(db.String(11), nullable=False, unique=True)
    address = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    def __repr__(self) -> str:
        return f"<Store id={self.id} ruc={self.ruc!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "ruc": self.ruc,
            "address": self.address,
            "phone": self.phone,
            "status": self.status.value,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
