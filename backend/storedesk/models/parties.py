from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from .common import StatusMixin


class Person(StatusMixin, db.Model):
    """Natural or legal person behind a customer or supplier."""
    __tablename__ = "persons"
    __table_args__ = (
        db.UniqueConstraint("document_type", "document_number", name="uq_persons_document"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    # DNI, RUC, CE, PASSPORT
    document_type = db.Column(db.String(16), nullable=False)
    document_number = db.Column(db.String(20), nullable=False)
    names = db.Column(db.String(150), nullable=False)
    last_names = db.Column(db.String(150), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.String(255), nullable=True)

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.names, self.last_names) if part)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "document_type": self.document_type,
            "document_number": self.document_number,
            "names": self.names,
            "last_names": self.last_names,
            "full_name": self.full_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "status": self.status.value,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Customer(StatusMixin, db.Model):
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("store_id", "person_id", name="uq_customers_store_person"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    person_id = db.Column(db.Integer, db.ForeignKey("persons.id"), nullable=False, index=True)

    person = db.relationship("Person")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "person_id": self.person_id,
            "person": self.person.to_dict() if self.person else None,
            "status": self.status.value,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Supplier(StatusMixin, db.Model):
    __tablename__ = "suppliers"
    __table_args__ = (
        db.UniqueConstraint("store_id", "person_id", name="uq_suppliers_store_person"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    person_id = db.Column(db.Integer, db.ForeignKey("persons.id"), nullable=False, index=True)
    company_name = db.Column(db.String(255), nullable=True)

    person = db.relationship("Person")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "person_id": self.person_id,
            "company_name": self.company_name,
            "person": self.person.to_dict() if self.person else None,
            "status": self.status.value,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
