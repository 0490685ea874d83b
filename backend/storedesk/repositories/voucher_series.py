from __future__ import annotations

from sqlalchemy import update

from ..models import VoucherSeries
from ..time_utils import utcnow
from .base import BaseRepository


class VoucherSeriesRepository(BaseRepository):
    model = VoucherSeries

    def find_by_store_type_and_series(self, store_id: int, voucher_type, series: str):
        return self.query().filter_by(store_id=store_id, voucher_type=voucher_type, series=series).first()

    def order_by(self, query):
        return query.order_by(VoucherSeries.store_id, VoucherSeries.voucher_type, VoucherSeries.series)

    def _increment(self, *criteria) -> int:
        stmt = (
            update(VoucherSeries)
            .where(*criteria)
            .values(current_number=VoucherSeries.current_number + 1, updated_at=utcnow())
        )
        result = self.session.execute(stmt)
        return result.rowcount

    def increment(self, series_id: int) -> int | None:
        """
        Atomically consume one number from the lane; returns the new current_number.

        The UPDATE is a single SQL statement (no read-modify-write in Python),
        and the follow-up read happens inside the same transaction while the
        row is write-locked, so the returned value belongs to this caller only.
        Returns None when the lane does not exist.
        """
        if not self._increment(VoucherSeries.id == series_id):
            return None
        return (
            self.session.query(VoucherSeries.current_number)
            .filter(VoucherSeries.id == series_id)
            .scalar()
        )

    def increment_lane(self, store_id: int, voucher_type, series: str) -> tuple[int, int] | None:
        """Same as increment(), addressed by lane key; returns (series_id, number)."""
        criteria = (
            VoucherSeries.store_id == store_id,
            VoucherSeries.voucher_type == voucher_type,
            VoucherSeries.series == series,
        )
        if not self._increment(*criteria):
            return None
        row = self.session.query(VoucherSeries.id, VoucherSeries.current_number).filter(*criteria).first()
        return row[0], row[1]
