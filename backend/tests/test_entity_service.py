# Overview: Pytest coverage for create, list and update of the simple records.

import pytest

from storedesk.domain.enums import EntityStatus
from storedesk.errors import AlreadyExistsError, EntityDeletedError, NotFoundError, ValidationFailure
from storedesk.models import Brand, Category, Customer, Person, Store, Supplier
from storedesk.services.entity_service import get_entity_service
from storedesk.services.status_service import change_status


class TestStores:
    def test_create_and_update(self, db_session):
        service = get_entity_service(Store)
        store = service.create_record({"name": " Bodega Sur ", "ruc": "20111222333", "phone": "01-555"})
        assert store.name == "Bodega Sur"
        assert store.status == EntityStatus.ACTIVE

        updated = service.update_record(store.id, {"address": "Jr. Cusco 40", "ruc": "20999999999"})
        assert updated.address == "Jr. Cusco 40"
        # ruc is not editable
        assert updated.ruc == "20111222333"

    def test_ruc_rules(self, db_session, store):
        service = get_entity_service(Store)
        with pytest.raises(ValidationFailure):
            service.create_record({"name": "Short", "ruc": "2012345"})
        with pytest.raises(AlreadyExistsError):
            service.create_record({"name": "Copy", "ruc": store.ruc})
        with pytest.raises(ValidationFailure) as excinfo:
            service.create_record({"address": "nowhere"})
        assert excinfo.value.details["missing"] == ["name", "ruc"]

    def test_deleted_store_refuses_edits(self, db_session, store):
        change_status(Store, store.id, "DELETED")
        with pytest.raises(EntityDeletedError):
            get_entity_service(Store).update_record(store.id, {"name": "Back"})

    def test_nothing_to_update(self, db_session, store):
        with pytest.raises(ValidationFailure):
            get_entity_service(Store).update_record(store.id, {"status": "INACTIVE"})
        with pytest.raises(ValidationFailure):
            get_entity_service(Store).update_record(store.id, {"name": "  "})


class TestBrandsAndCategories:
    def test_names_are_unique_per_store(self, db_session, store, other_store):
        service = get_entity_service(Brand)
        service.create_record({"store_id": store.id, "name": "Gloria"})
        with pytest.raises(AlreadyExistsError):
            service.create_record({"store_id": store.id, "name": "Gloria"})
        assert service.create_record({"store_id": other_store.id, "name": "Gloria"}).store_id == other_store.id

    def test_rename_clash(self, db_session, store):
        service = get_entity_service(Category)
        service.create_record({"store_id": store.id, "name": "Grains"})
        oils = service.create_record({"store_id": store.id, "name": "Oils"})
        with pytest.raises(AlreadyExistsError):
            service.update_record(oils.id, {"name": "Grains"})
        assert service.update_record(oils.id, {"description": "Cooking oils"}).description == "Cooking oils"

    def test_store_must_exist(self, db_session):
        with pytest.raises(NotFoundError):
            get_entity_service(Brand).create_record({"store_id": 999, "name": "Nowhere"})
        with pytest.raises(ValidationFailure):
            get_entity_service(Brand).create_record({"store_id": "1", "name": "Text id"})

    def test_list_by_store_and_status(self, db_session, store, other_store):
        service = get_entity_service(Brand)
        kept = service.create_record({"store_id": store.id, "name": "A"})
        dropped = service.create_record({"store_id": store.id, "name": "B"})
        service.create_record({"store_id": other_store.id, "name": "C"})
        change_status(Brand, dropped.id, "INACTIVE")

        items, total = service.list_records({"store_id": store.id, "status": "active", "name": "ignored"})
        assert total == 1
        assert items[0].id == kept.id


class TestPartiesRecords:
    def test_person_documents(self, db_session):
        service = get_entity_service(Person)
        person = service.create_record({
            "document_type": "dni", "document_number": "12345678", "names": "Luis", "email": "luis@example.pe",
        })
        assert person.document_type == "DNI"
        with pytest.raises(AlreadyExistsError):
            service.create_record({"document_type": "DNI", "document_number": "12345678", "names": "Dup"})
        with pytest.raises(ValidationFailure):
            service.create_record({"document_type": "DNI", "document_number": "1234", "names": "Short"})
        with pytest.raises(ValidationFailure):
            service.create_record({"document_type": "LICENSE", "document_number": "X1", "names": "Other"})
        with pytest.raises(ValidationFailure):
            service.update_record(person.id, {"email": "not-an-email"})
        assert service.create_record({
            "document_type": "PASSPORT", "document_number": "AB123", "names": "Ana",
        }).document_number == "AB123"

    def test_customer_and_supplier(self, db_session, store, customer):
        person_id = customer.person_id
        with pytest.raises(AlreadyExistsError):
            get_entity_service(Customer).create_record({"store_id": store.id, "person_id": person_id})

        suppliers = get_entity_service(Supplier)
        supplier = suppliers.create_record({"store_id": store.id, "person_id": person_id, "company_name": "Quispe SRL"})
        assert suppliers.update_record(supplier.id, {"company_name": "Quispe SAC"}).company_name == "Quispe SAC"

        change_status(Person, person_id, "DELETED")
        with pytest.raises(EntityDeletedError):
            get_entity_service(Customer).create_record({"store_id": store.id, "person_id": person_id})
        with pytest.raises(ValidationFailure):
            get_entity_service(Customer).update_record(customer.id, {"person_id": person_id})
