from __future__ import annotations

from ..domain.enums import CashRegisterStatus
from ..models import CashRegister
from .base import BaseRepository

# A LOCKED shift is paused, not finished
ACTIVE_STATUSES = (CashRegisterStatus.OPEN, CashRegisterStatus.LOCKED)


class CashRegisterRepository(BaseRepository):
    model = CashRegister

    def find_open_by_user(self, user_id: int):
        return self.query().filter_by(user_id=user_id, status=CashRegisterStatus.OPEN).first()

    def find_open_by_store(self, store_id: int):
        return self.query().filter_by(store_id=store_id, status=CashRegisterStatus.OPEN).first()

    def find_active_by_user(self, user_id: int):
        return self.query().filter(
            CashRegister.user_id == user_id, CashRegister.status.in_(ACTIVE_STATUSES)
        ).first()

    def find_active_by_store(self, store_id: int):
        return self.query().filter(
            CashRegister.store_id == store_id, CashRegister.status.in_(ACTIVE_STATUSES)
        ).first()

    def order_by(self, query):
        return query.order_by(CashRegister.opened_at.desc(), CashRegister.id.desc())
