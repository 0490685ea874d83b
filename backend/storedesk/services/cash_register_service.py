# Overview: Cash register shifts: open, take sales, lock/unlock and close with a counted amount.

from __future__ import annotations

from flask import current_app

from ..errors import AlreadyExistsError, NotFoundError
from ..domain.enums import CashRegisterStatus, parse_enum
from ..models import CashRegister, Store
from ..repositories import BaseRepository, CashRegisterRepository
from .concurrency import begin_immediate, run_with_retry


class CashRegisterService:
    """
    One active register per user and one per store at a time.

    A LOCKED register is still active: it must be unlocked and closed before
    its owner (or its store) opens another one.
    """

    def __init__(self, register_repo: CashRegisterRepository, store_repo: BaseRepository):
        self.register_repo = register_repo
        self.store_repo = store_repo

    @property
    def session(self):
        return self.register_repo.session

    def get_register(self, register_id: int) -> CashRegister:
        register = self.register_repo.find_by_id(register_id)
        if not register:
            raise NotFoundError("CashRegister", register_id)
        return register

    def get_open_register_for_user(self, user_id: int) -> CashRegister | None:
        return self.register_repo.find_open_by_user(user_id)

    def get_open_register_for_store(self, store_id: int) -> CashRegister | None:
        return self.register_repo.find_open_by_store(store_id)

    def list_registers(self, filters: dict | None = None, *, limit: int | None = None, offset: int | None = None):
        filters = dict(filters or {})
        if filters.get("status") is not None:
            filters["status"] = parse_enum(CashRegisterStatus, filters["status"], "status")
        items = self.register_repo.find_many(filters, limit=limit, offset=offset)
        return items, self.register_repo.count(filters)

    def open_register(self, *, store_id: int, user_id: int, initial_amount=0) -> CashRegister:
        def _op():
            begin_immediate(self.session)
            if not self.store_repo.find_by_id(store_id):
                raise NotFoundError("Store", store_id)
            existing = self.register_repo.find_active_by_user(user_id)
            if existing:
                raise AlreadyExistsError("CashRegister", {"user_id": user_id, "status": existing.status.value})
            existing = self.register_repo.find_active_by_store(store_id)
            if existing:
                raise AlreadyExistsError("CashRegister", {"store_id": store_id, "status": existing.status.value})

            register = CashRegister.open(store_id=store_id, user_id=user_id, initial_amount=initial_amount)
            self.register_repo.save(register)
            self.session.commit()
            current_app.logger.info("Cash register %s opened by user %s (store %s)", register.id, user_id, store_id)
            return register

        return run_with_retry(_op, session=self.session)

    def _mutate(self, register_id: int, action):
        def _op():
            begin_immediate(self.session)
            register = self.register_repo.find_by_id(register_id, lock=True)
            if not register:
                raise NotFoundError("CashRegister", register_id)
            action(register)
            self.register_repo.update(register)
            self.session.commit()
            return register

        return run_with_retry(_op, session=self.session)

    def add_sale(self, register_id: int, amount) -> CashRegister:
        return self._mutate(register_id, lambda register: register.add_sale(amount))

    def close_register(self, register_id: int, final_amount, observations: str | None = None) -> CashRegister:
        register = self._mutate(register_id, lambda register: register.close(final_amount, observations))
        current_app.logger.info(
            "Cash register %s closed with difference %s cents", register.id, register.difference_cents
        )
        return register

    def lock_register(self, register_id: int, observations: str | None = None) -> CashRegister:
        return self._mutate(register_id, lambda register: register.lock(observations))

    def unlock_register(self, register_id: int) -> CashRegister:
        return self._mutate(register_id, lambda register: register.unlock())


def get_cash_register_service(session=None) -> CashRegisterService:
    return CashRegisterService(
        register_repo=CashRegisterRepository(session),
        store_repo=BaseRepository(session, model=Store),
    )
