"""
Entity service

Create, read, list and update for the simple records (stores, brands,
categories, persons, customers, suppliers). Status changes live in
status_service.py; nothing here touches status except that a DELETED
record refuses edits.

Each model is described by an EntityRules entry: which fields a create
needs, which fields a patch may change, which column sets must be unique
and which foreign records must exist.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import AlreadyExistsError, EntityDeletedError, NotFoundError, ValidationFailure
from ..domain.enums import EntityStatus, parse_enum
from ..models import Brand, Category, Customer, Person, Store, Supplier
from ..repositories import BaseRepository
from .concurrency import begin_immediate, run_with_retry

PERSON_DOCUMENT_TYPES = ("DNI", "RUC", "CE", "PASSPORT")

# Exact digit counts for the Peruvian ids; CE and PASSPORT are free-form.
DOCUMENT_DIGITS = {"DNI": 8, "RUC": 11}


@dataclass(frozen=True)
class EntityRules:
    required: tuple
    optional: tuple = ()
    mutable: tuple = ()
    unique: tuple = ()
    references: dict = field(default_factory=dict)
    filters: tuple = ("status",)
    max_lengths: dict = field(default_factory=dict)


ENTITY_RULES = {
    Store: EntityRules(
        required=("name", "ruc"),
        optional=("address", "phone"),
        mutable=("name", "address", "phone"),
        unique=(("ruc",),),
        max_lengths={"name": 255, "address": 255, "phone": 32},
    ),
    Brand: EntityRules(
        required=("store_id", "name"),
        optional=("description",),
        mutable=("name", "description"),
        unique=(("store_id", "name"),),
        references={"store_id": Store},
        filters=("store_id", "status"),
        max_lengths={"name": 100, "description": 500},
    ),
    Category: EntityRules(
        required=("store_id", "name"),
        optional=("description",),
        mutable=("name", "description"),
        unique=(("store_id", "name"),),
        references={"store_id": Store},
        filters=("store_id", "status"),
        max_lengths={"name": 100, "description": 500},
    ),
    Person: EntityRules(
        required=("document_type", "document_number", "names"),
        optional=("last_names", "email", "phone", "address"),
        mutable=("names", "last_names", "email", "phone", "address"),
        unique=(("document_type", "document_number"),),
        filters=("document_type", "document_number", "status"),
        max_lengths={"names": 150, "last_names": 150, "email": 255, "phone": 32, "address": 255},
    ),
    Customer: EntityRules(
        required=("store_id", "person_id"),
        unique=(("store_id", "person_id"),),
        references={"store_id": Store, "person_id": Person},
        filters=("store_id", "person_id", "status"),
    ),
    Supplier: EntityRules(
        required=("store_id", "person_id"),
        optional=("company_name",),
        mutable=("company_name",),
        unique=(("store_id", "person_id"),),
        references={"store_id": Store, "person_id": Person},
        filters=("store_id", "person_id", "status"),
        max_lengths={"company_name": 255},
    ),
}


def _clean_text(value, name: str, max_length: int | None):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationFailure(f"{name} must be a string", details={"field": name})
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise ValidationFailure(
            f"{name} cannot be longer than {max_length} characters",
            details={"field": name},
        )
    return value or None


class EntityService:
    def __init__(self, model, session=None):
        if model not in ENTITY_RULES:
            raise ValueError(f"No entity rules for {model.__name__}")
        self.model = model
        self.rules = ENTITY_RULES[model]
        self.repo = BaseRepository(session, model=model)
        self.entity_name = model.__name__

    @property
    def session(self):
        return self.repo.session

    # -- validation ----------------------------------------------------------

    def _normalize(self, data: dict, names) -> dict:
        values = {}
        for name in names:
            if name not in data:
                continue
            value = data[name]
            if name in self.rules.references:
                if value is None or isinstance(value, bool) or not isinstance(value, int):
                    raise ValidationFailure(f"{name} must be an integer", details={"field": name})
                values[name] = value
            else:
                values[name] = _clean_text(value, name, self.rules.max_lengths.get(name))
        return values

    def _check_required(self, values: dict) -> None:
        missing = [name for name in self.rules.required if values.get(name) in (None, "")]
        if missing:
            raise ValidationFailure(
                f"Missing required fields: {', '.join(missing)}",
                details={"missing": missing},
            )

    def _check_domain(self, values: dict) -> None:
        if self.model is Store and "ruc" in values:
            if not re.fullmatch(r"\d{11}", values["ruc"] or ""):
                raise ValidationFailure("ruc must be 11 digits", details={"field": "ruc"})
        if self.model is Person:
            if "document_type" in values:
                document_type = (values["document_type"] or "").upper()
                if document_type not in PERSON_DOCUMENT_TYPES:
                    raise ValidationFailure(
                        f"document_type must be one of: {', '.join(PERSON_DOCUMENT_TYPES)}",
                        details={"field": "document_type", "value": values["document_type"]},
                    )
                values["document_type"] = document_type
                digits = DOCUMENT_DIGITS.get(document_type)
                number = values.get("document_number") or ""
                if digits and not re.fullmatch(rf"\d{{{digits}}}", number):
                    raise ValidationFailure(
                        f"{document_type} must be {digits} digits",
                        details={"field": "document_number"},
                    )
                if len(number) > 20:
                    raise ValidationFailure("document_number is too long", details={"field": "document_number"})
            email = values.get("email")
            if email and "@" not in email:
                raise ValidationFailure("email is not valid", details={"field": "email"})

    def _check_references(self, values: dict) -> None:
        for name, target in self.rules.references.items():
            if name not in values:
                continue
            record = self.session.get(target, values[name])
            if not record:
                raise NotFoundError(target.__name__, values[name])
            if record.is_deleted:
                raise EntityDeletedError(target.__name__, values[name])

    def _check_unique(self, record) -> None:
        for columns in self.rules.unique:
            key = {column: getattr(record, column) for column in columns}
            with self.session.no_autoflush:
                existing = self.repo.query().filter_by(**key).first()
            if existing is not None and existing is not record:
                raise AlreadyExistsError(self.entity_name, key)

    def _load(self, entity_id: int, *, lock: bool = False):
        record = self.repo.find_by_id(entity_id, lock=lock)
        if not record:
            raise NotFoundError(self.entity_name, entity_id)
        return record

    # -- operations ----------------------------------------------------------

    def get_record(self, entity_id: int):
        return self._load(entity_id)

    def list_records(self, filters: dict | None = None, *, limit: int | None = None, offset: int | None = None):
        filters = {k: v for k, v in (filters or {}).items() if k in self.rules.filters and v is not None}
        if "status" in filters:
            filters["status"] = parse_enum(EntityStatus, filters["status"], "status")
        if "document_type" in filters:
            filters["document_type"] = str(filters["document_type"]).strip().upper()
        items = self.repo.find_many(filters, limit=limit, offset=offset)
        return items, self.repo.count(filters)

    def create_record(self, data: dict):
        values = self._normalize(data or {}, self.rules.required + self.rules.optional)
        self._check_required(values)
        self._check_domain(values)

        def _op():
            begin_immediate(self.session)
            self._check_references(values)
            record = self.model(**values)
            self._check_unique(record)
            try:
                self.repo.save(record)
            except IntegrityError:
                raise AlreadyExistsError(self.entity_name, {k: values.get(k) for k in self.rules.required})
            self.session.commit()
            current_app.logger.info("%s %s created", self.entity_name, record.id)
            return record

        return run_with_retry(_op, session=self.session)

    def update_record(self, entity_id: int, data: dict):
        """Patch the mutable fields; required fields cannot be blanked."""
        values = self._normalize(data or {}, self.rules.mutable)
        if not values:
            raise ValidationFailure(
                f"Nothing to update on {self.entity_name}",
                details={"allowed": list(self.rules.mutable)},
            )
        blanked = [name for name in self.rules.required if name in values and values[name] is None]
        if blanked:
            raise ValidationFailure(f"{', '.join(blanked)} cannot be empty", details={"fields": blanked})
        self._check_domain(values)

        def _op():
            begin_immediate(self.session)
            record = self._load(entity_id, lock=True)
            if record.is_deleted:
                raise EntityDeletedError(self.entity_name, entity_id)
            for name, value in values.items():
                setattr(record, name, value)
            self._check_unique(record)
            self.repo.update(record)
            self.session.commit()
            current_app.logger.info("%s %s updated (%s)", self.entity_name, entity_id, ", ".join(sorted(values)))
            return record

        return run_with_retry(_op, session=self.session)


def get_entity_service(model, session=None) -> EntityService:
    return EntityService(model, session)
