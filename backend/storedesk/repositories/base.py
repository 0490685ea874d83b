# Overview: Session-bound persistence base class shared by all repositories.

from __future__ import annotations

from ..extensions import db
from ..services.concurrency import lock_for_update

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500


def clamp_page(limit: int | None, offset: int | None) -> tuple[int, int]:
    limit = DEFAULT_PAGE_SIZE if limit is None else int(limit)
    offset = 0 if offset is None else int(offset)
    return max(1, min(limit, MAX_PAGE_SIZE)), max(0, offset)


class BaseRepository:
    """
    Thin persistence wrapper around one model.

    Repositories never commit: they add, flush and query. The service that
    owns the unit of work decides when to commit or roll back.
    """
    model = None

    def __init__(self, session=None, model=None):
        self._session = session
        if model is not None:
            self.model = model

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def query(self):
        return self.session.query(self.model)

    def find_by_id(self, entity_id, *, lock: bool = False):
        query = self.query().filter(self.model.id == entity_id)
        if lock:
            query = lock_for_update(query)
        return query.first()

    def save(self, entity):
        self.session.add(entity)
        self.session.flush()
        return entity

    def update(self, entity):
        self.session.flush()
        return entity

    def delete(self, entity) -> None:
        self.session.delete(entity)
        self.session.flush()

    def apply_filters(self, query, filters: dict):
        """Equality filters on model columns; unknown keys and None values are ignored."""
        for key, value in (filters or {}).items():
            if value is None:
                continue
            column = getattr(self.model, key, None)
            if column is not None:
                query = query.filter(column == value)
        return query

    def order_by(self, query):
        return query.order_by(self.model.id.asc())

    def find_many(self, filters: dict | None = None, *, limit: int | None = None, offset: int | None = None) -> list:
        limit, offset = clamp_page(limit, offset)
        query = self.order_by(self.apply_filters(self.query(), filters or {}))
        return query.limit(limit).offset(offset).all()

    def count(self, filters: dict | None = None) -> int:
        return self.apply_filters(self.query(), filters or {}).count()
