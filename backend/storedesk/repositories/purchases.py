from __future__ import annotations

from ..models import Purchase
from .base import BaseRepository


class PurchaseRepository(BaseRepository):
    model = Purchase

    def find_by_store_and_document(self, store_id: int, document_number: str):
        return self.query().filter_by(store_id=store_id, document_number=document_number).first()

    def apply_filters(self, query, filters: dict):
        filters = dict(filters or {})
        date_from = filters.pop("date_from", None)
        date_to = filters.pop("date_to", None)
        if date_from is not None:
            query = query.filter(Purchase.purchase_date >= date_from)
        if date_to is not None:
            query = query.filter(Purchase.purchase_date <= date_to)
        return super().apply_filters(query, filters)

    def order_by(self, query):
        return query.order_by(Purchase.purchase_date.desc(), Purchase.id.desc())
