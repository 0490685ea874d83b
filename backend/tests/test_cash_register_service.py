# Overview: Pytest coverage for cash register shifts.

import pytest

from storedesk.domain.enums import CashRegisterStatus
from storedesk.errors import AlreadyExistsError, InvalidStatusTransitionError, NotFoundError, ValidationFailure
from storedesk.services.cash_register_service import get_cash_register_service


@pytest.fixture
def registers(db_session):
    return get_cash_register_service()


class TestOpenRegister:
    def test_open_register(self, db_session, registers, store):
        register = registers.open_register(store_id=store.id, user_id=1, initial_amount="150.00")
        assert register.status == CashRegisterStatus.OPEN
        assert register.initial_amount_cents == 15000
        assert register.sales_amount_cents == 0
        assert registers.get_open_register_for_user(1).id == register.id
        assert registers.get_open_register_for_store(store.id).id == register.id

    def test_one_open_register_per_user(self, db_session, registers, store, other_store):
        registers.open_register(store_id=store.id, user_id=1)
        with pytest.raises(AlreadyExistsError) as excinfo:
            registers.open_register(store_id=other_store.id, user_id=1)
        assert excinfo.value.details["key"]["user_id"] == 1

    def test_one_open_register_per_store(self, db_session, registers, store):
        registers.open_register(store_id=store.id, user_id=1)
        with pytest.raises(AlreadyExistsError):
            registers.open_register(store_id=store.id, user_id=2)

    def test_locked_register_blocks_a_new_one(self, db_session, registers, store):
        register = registers.open_register(store_id=store.id, user_id=1)
        registers.lock_register(register.id)
        with pytest.raises(AlreadyExistsError) as excinfo:
            registers.open_register(store_id=store.id, user_id=1)
        assert excinfo.value.details["key"]["status"] == "LOCKED"
        assert registers.get_open_register_for_user(1) is None

    def test_closed_register_frees_the_slot(self, db_session, registers, store):
        first = registers.open_register(store_id=store.id, user_id=1)
        registers.close_register(first.id, "0")
        second = registers.open_register(store_id=store.id, user_id=1)
        assert second.id != first.id

    def test_unknown_store_and_negative_float(self, db_session, registers, store):
        with pytest.raises(NotFoundError):
            registers.open_register(store_id=999, user_id=1)
        with pytest.raises(ValidationFailure):
            registers.open_register(store_id=store.id, user_id=1, initial_amount="-5")


class TestShift:
    def test_sales_accumulate(self, db_session, registers, store):
        register = registers.open_register(store_id=store.id, user_id=1, initial_amount="100")
        registers.add_sale(register.id, "25.50")
        register = registers.add_sale(register.id, "4.50")
        assert register.sales_amount_cents == 3000
        assert register.expected_amount_cents == 13000

    def test_add_sale_rejects_zero_and_closed(self, db_session, registers, store):
        register = registers.open_register(store_id=store.id, user_id=1)
        with pytest.raises(ValidationFailure):
            registers.add_sale(register.id, 0)
        registers.close_register(register.id, 0)
        with pytest.raises(ValidationFailure):
            registers.add_sale(register.id, "1.00")

    @pytest.mark.parametrize("counted, difference", [("130.00", 0), ("125.00", -500), ("131.25", 125)])
    def test_close_computes_difference(self, db_session, registers, store, counted, difference):
        register = registers.open_register(store_id=store.id, user_id=1, initial_amount="100")
        registers.add_sale(register.id, "30")
        closed = registers.close_register(register.id, counted, observations=" end of day ")
        assert closed.status == CashRegisterStatus.CLOSED
        assert closed.closed_at is not None
        assert closed.difference_cents == difference
        assert closed.observations == "end of day"

    def test_lock_and_unlock(self, db_session, registers, store):
        register = registers.open_register(store_id=store.id, user_id=1)
        locked = registers.lock_register(register.id, "lunch")
        assert locked.status == CashRegisterStatus.LOCKED
        with pytest.raises(ValidationFailure):
            registers.add_sale(register.id, "1.00")
        with pytest.raises(InvalidStatusTransitionError):
            registers.close_register(register.id, "0")

        unlocked = registers.unlock_register(register.id)
        assert unlocked.status == CashRegisterStatus.OPEN
        assert unlocked.observations is None

    def test_closed_register_is_final(self, db_session, registers, store):
        register = registers.open_register(store_id=store.id, user_id=1)
        registers.close_register(register.id, "0")
        for action in (registers.lock_register, registers.unlock_register):
            with pytest.raises(InvalidStatusTransitionError):
                action(register.id)
        with pytest.raises(InvalidStatusTransitionError):
            registers.close_register(register.id, "0")

    def test_missing_register(self, db_session, registers):
        with pytest.raises(NotFoundError):
            registers.close_register(404, "0")
        with pytest.raises(NotFoundError):
            registers.get_register(404)

    def test_list_registers(self, db_session, registers, store, other_store):
        first = registers.open_register(store_id=store.id, user_id=1)
        registers.close_register(first.id, "0")
        registers.open_register(store_id=store.id, user_id=1)
        registers.open_register(store_id=other_store.id, user_id=2)

        items, total = registers.list_registers({"store_id": store.id})
        assert total == 2
        items, total = registers.list_registers({"status": "closed"})
        assert [r.id for r in items] == [first.id]
