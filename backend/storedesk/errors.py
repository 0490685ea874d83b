# Overview: Typed failures shared by services and routes.

"""
Domain and infrastructure errors.

Domain errors are recoverable by the caller: they describe a business rule
that rejected the operation, and they propagate unmodified up to the route
layer, which maps them to an HTTP status via ``status_code``.

PersistenceError is deliberately NOT a DomainError: it means the database
failed and the outcome of the operation is unknown/aborted.
"""

from __future__ import annotations


class DomainError(Exception):
    """Base class for business-rule failures."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class ValidationFailure(DomainError):
    """Malformed input: negative amounts, bad quantities, bad dates."""
    status_code = 400


class FutureDateError(ValidationFailure):
    def __init__(self, field: str, value):
        super().__init__(
            f"{field} cannot be later than today",
            details={"field": field, "value": str(value)},
        )


class NotFoundError(DomainError):
    status_code = 404

    def __init__(self, entity: str, entity_id):
        super().__init__(
            f"{entity} {entity_id} not found",
            details={"entity": entity, "id": entity_id},
        )


class AlreadyExistsError(DomainError):
    status_code = 409

    def __init__(self, entity: str, key: dict):
        key_text = ", ".join(f"{k}={v}" for k, v in key.items())
        super().__init__(
            f"{entity} already exists for {key_text}",
            details={"entity": entity, "key": key},
        )


class InvalidStatusTransitionError(DomainError):
    status_code = 409

    def __init__(self, entity: str, current, target):
        current = getattr(current, "value", current)
        target = getattr(target, "value", target)
        super().__init__(
            f"Cannot change {entity} status from {current} to {target}",
            details={"entity": entity, "current_status": current, "target_status": target},
        )


class InsufficientStockError(DomainError):
    status_code = 409

    def __init__(self, product_id, product_name: str | None, requested: int, available: int):
        label = product_name or f"#{product_id}"
        super().__init__(
            f"Insufficient stock for product {label}: requested {requested}, available {available}",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "requested_quantity": requested,
                "available": available,
            },
        )


class InactiveResourceError(DomainError):
    status_code = 409

    def __init__(self, entity: str, entity_id, name: str | None = None):
        label = name or f"#{entity_id}"
        super().__init__(
            f"{entity} {label} is inactive",
            details={"entity": entity, "id": entity_id, "name": name},
        )


class EntityDeletedError(DomainError):
    status_code = 409

    def __init__(self, entity: str, entity_id):
        super().__init__(
            f"{entity} {entity_id} is deleted",
            details={"entity": entity, "id": entity_id},
        )


class ConcurrencyConflictError(DomainError):
    """Lock / stale-row conflict that survived every retry."""
    status_code = 409


class PersistenceError(Exception):
    """Unexpected database failure; the operation was rolled back."""
    status_code = 503

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "details": {}}


class ImmutableRecordError(DomainError):
    """Attempt to edit or delete an append-only ledger row."""
    status_code = 409
