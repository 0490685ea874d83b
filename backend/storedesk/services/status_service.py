"""
Entity status service

Soft-delete status for the simple records (stores, brands, categories,
persons, customers, suppliers). DELETED is sticky: a deleted record can only
be "deleted" again, never reactivated.

Kept apart from the sale lifecycle on purpose: that one has stock effects
and its own transition table (models/sales.py).
"""

from __future__ import annotations

from flask import current_app

from ..errors import EntityDeletedError, NotFoundError, ValidationFailure
from ..domain.enums import EntityStatus, parse_enum
from ..models import Brand, Category, Customer, Person, Store, Supplier
from ..repositories import BaseRepository
from .concurrency import begin_immediate, run_with_retry

# URL segment -> model
STATUS_ENTITIES = {
    "stores": Store,
    "brands": Brand,
    "categories": Category,
    "persons": Person,
    "customers": Customer,
    "suppliers": Supplier,
}

_APPLY = {
    EntityStatus.ACTIVE: "activate",
    EntityStatus.INACTIVE: "deactivate",
    EntityStatus.SUSPENDED: "suspend",
    EntityStatus.DELETED: "mark_deleted",
}


def resolve_entity(name: str):
    model = STATUS_ENTITIES.get((name or "").strip().lower())
    if model is None:
        raise ValidationFailure(
            f"Unknown entity '{name}'",
            details={"entity": name, "allowed": sorted(STATUS_ENTITIES)},
        )
    return model


class StatusService:
    def __init__(self, session=None):
        self._session = session

    def repository_for(self, model) -> BaseRepository:
        return BaseRepository(self._session, model=model)

    def change_status(self, model, entity_id: int, status):
        target = parse_enum(EntityStatus, status, "status")
        repo = self.repository_for(model)
        entity_name = model.__name__

        def _op():
            begin_immediate(repo.session)
            record = repo.find_by_id(entity_id, lock=True)
            if not record:
                raise NotFoundError(entity_name, entity_id)
            if record.is_deleted and target != EntityStatus.DELETED:
                raise EntityDeletedError(entity_name, entity_id)
            getattr(record, _APPLY[target])()
            repo.update(record)
            repo.session.commit()
            current_app.logger.info("%s %s status set to %s", entity_name, entity_id, target.value)
            return record

        return run_with_retry(_op, session=repo.session)


def change_status(model, entity_id: int, status, session=None):
    return StatusService(session).change_status(model, entity_id, status)
