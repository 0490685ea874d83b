from __future__ import annotations

from ..extensions import db
from ..errors import InsufficientStockError
from ..domain.values import Stock, positive_quantity
from ..time_utils import to_utc_z, utcnow
from .common import StatusMixin


class Brand(StatusMixin, db.Model):
    __tablename__ = "brands"
    __table_args__ = (
        db.UniqueConstraint("store_id", "name", name="uq_brands_store_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "description": self.description,
            "status": self.status.value,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Category(StatusMixin, db.Model):
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("store_id", "name", name="uq_categories_store_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(500), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "description": self.description,
            "status": self.status.value,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Product master data and the stock counter the sale engine protects.

    STOCK DESIGN:
    - current_stock is a mutable integer counter (never negative, DB check).
    - Every change to it is paired with exactly one InventoryMovement row
      written in the same transaction (see services/inventory_service.py and
      services/sale_service.py).
    - Concurrent writers are serialized by row lock + version_id
      (optimistic check raises StaleDataError, which callers retry).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("store_id", "sku", name="uq_products_store_sku"),
        db.CheckConstraint("current_stock >= 0", name="ck_products_stock_nonneg"),
        db.CheckConstraint("minimum_stock >= 0", name="ck_products_min_stock_nonneg"),
        db.Index("ix_products_store_active", "store_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    brand_id = db.Column(db.Integer, db.ForeignKey("brands.id"), nullable=True, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Authoritative storage in cents
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    current_stock = db.Column(db.Integer, nullable=False, default=0)
    minimum_stock = db.Column(db.Integer, nullable=False, default=5)
    maximum_stock = db.Column(db.Integer, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    brand = db.relationship("Brand")
    category = db.relationship("Category")
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} store_id={self.store_id}>"

    # -- stock ---------------------------------------------------------------

    def has_stock(self, quantity) -> bool:
        return (self.current_stock or 0) >= positive_quantity(quantity)

    def add_stock(self, quantity) -> int:
        """Add units; returns the stock before the change."""
        previous = self.current_stock or 0
        self.current_stock = Stock(previous).add(Stock(positive_quantity(quantity))).value
        return previous

    def remove_stock(self, quantity) -> int:
        """Remove units; returns the stock before the change."""
        quantity = positive_quantity(quantity)
        previous = self.current_stock or 0
        if previous < quantity:
            raise InsufficientStockError(self.id, self.name, quantity, previous)
        self.current_stock = Stock(previous).subtract(Stock(quantity)).value
        return previous

    def set_stock(self, quantity) -> int:
        previous = self.current_stock or 0
        self.current_stock = Stock(quantity).value
        return previous

    @property
    def is_out_of_stock(self) -> bool:
        return (self.current_stock or 0) == 0

    @property
    def is_low_stock(self) -> bool:
        return (self.current_stock or 0) < (self.minimum_stock or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "brand_id": self.brand_id,
            "category_id": self.category_id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "current_stock": self.current_stock,
            "minimum_stock": self.minimum_stock,
            "maximum_stock": self.maximum_stock,
            "is_low_stock": self.is_low_stock,
            "is_out_of_stock": self.is_out_of_stock,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
