from __future__ import annotations

from ..models import Product
from .base import BaseRepository, clamp_page


class ProductRepository(BaseRepository):
    model = Product

    def find_by_store_and_sku(self, store_id: int, sku: str):
        return self.query().filter_by(store_id=store_id, sku=sku).first()

    def apply_filters(self, query, filters: dict):
        filters = dict(filters or {})
        search = (filters.pop("search", None) or "").strip()
        if search:
            pattern = f"%{search}%"
            query = query.filter(Product.name.ilike(pattern) | Product.sku.ilike(pattern))
        return super().apply_filters(query, filters)

    def order_by(self, query):
        return query.order_by(Product.name.asc(), Product.id.asc())

    def find_low_stock(self, store_id: int, *, limit: int | None = None, offset: int | None = None) -> list[Product]:
        """Active products whose stock dropped below their minimum."""
        limit, offset = clamp_page(limit, offset)
        return (
            self.query()
            .filter(
                Product.store_id == store_id,
                Product.is_active.is_(True),
                Product.current_stock < Product.minimum_stock,
            )
            .order_by(Product.current_stock.asc(), Product.id.asc())
            .limit(limit)
            .offset(offset)
            .all()
        )

    def find_out_of_stock(self, store_id: int, *, limit: int | None = None, offset: int | None = None) -> list[Product]:
        limit, offset = clamp_page(limit, offset)
        return (
            self.query()
            .filter(
                Product.store_id == store_id,
                Product.is_active.is_(True),
                Product.current_stock == 0,
            )
            .order_by(Product.id.asc())
            .limit(limit)
            .offset(offset)
            .all()
        )
