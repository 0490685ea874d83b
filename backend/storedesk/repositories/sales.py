from __future__ import annotations

from ..models import Sale
from .base import BaseRepository


class SaleRepository(BaseRepository):
    model = Sale

    def find_by_store_and_document(self, store_id: int, document_type, document_number: str):
        return self.query().filter_by(
            store_id=store_id, document_type=document_type, document_number=document_number
        ).first()

    def apply_filters(self, query, filters: dict):
        filters = dict(filters or {})
        date_from = filters.pop("date_from", None)
        date_to = filters.pop("date_to", None)
        if date_from is not None:
            query = query.filter(Sale.sale_date >= date_from)
        if date_to is not None:
            query = query.filter(Sale.sale_date <= date_to)
        return super().apply_filters(query, filters)

    def order_by(self, query):
        return query.order_by(Sale.sale_date.desc(), Sale.id.desc())
