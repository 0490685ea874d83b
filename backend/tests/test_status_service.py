# Overview: Pytest coverage for soft-delete status changes on simple records.

import pytest

from storedesk.domain.enums import EntityStatus
from storedesk.services import status_service
from storedesk.errors import EntityDeletedError, NotFoundError, ValidationFailure
from storedesk.models import Brand, Customer, Person, Store
from storedesk.services.status_service import change_status, resolve_entity


class TestResolveEntity:
    def test_known_segments(self):
        assert resolve_entity("stores") is Store
        assert resolve_entity(" Brands ") is Brand
        assert resolve_entity("persons") is Person

    def test_unknown_segment(self):
        with pytest.raises(ValidationFailure) as excinfo:
            resolve_entity("sales")
        assert "customers" in excinfo.value.details["allowed"]


class TestChangeStatus:
    def test_cycle_through_statuses(self, db_session, store):
        brand = Brand(store_id=store.id, name="Costeño")
        db_session.add(brand)
        db_session.commit()

        assert change_status(Brand, brand.id, "inactive").status == EntityStatus.INACTIVE
        assert change_status(Brand, brand.id, "SUSPENDED").status == EntityStatus.SUSPENDED
        assert change_status(Brand, brand.id, EntityStatus.ACTIVE).is_active

    def test_deleted_is_sticky(self, db_session, customer):
        change_status(Customer, customer.id, "DELETED")
        with pytest.raises(EntityDeletedError):
            change_status(Customer, customer.id, "ACTIVE")
        # deleting again is a no-op, not an error
        assert change_status(Customer, customer.id, "DELETED").is_deleted

    def test_missing_record(self, db_session):
        with pytest.raises(NotFoundError):
            change_status(Store, 999, "INACTIVE")

    def test_unknown_status(self, db_session, store):
        with pytest.raises(ValidationFailure):
            change_status(Store, store.id, "ARCHIVED")
        assert db_session.get(Store, store.id).is_active

    def test_takes_write_lock_before_reading(self, db_session, store, monkeypatch):
        calls = []
        real_begin_immediate = status_service.begin_immediate

        def _spy(session=None):
            calls.append(session)
            real_begin_immediate(session)

        monkeypatch.setattr(status_service, "begin_immediate", _spy)
        change_status(Store, store.id, "SUSPENDED")
        assert len(calls) == 1
        assert db_session.get(Store, store.id).status == EntityStatus.SUSPENDED
