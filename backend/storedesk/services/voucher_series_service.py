"""
Voucher series allocator

WHY: Every sale document carries a number taken from its store's
(voucher_type, series) lane. Numbers must never repeat and never be lost,
even when several cashiers sell at the same time.

DESIGN:
- The counter is advanced with one SQL UPDATE (current_number + 1) and read
  back inside the same transaction, so two callers can never observe the same
  value (see VoucherSeriesRepository.increment).
- On SQLite the write lock is taken up front (BEGIN IMMEDIATE).
- Lock conflicts are retried a bounded number of times (run_with_retry).
- allocate_in_transaction() lets the sale engine stamp a document number
  inside its own unit of work, so a failed sale never burns a number.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import AlreadyExistsError, NotFoundError, ValidationFailure
from ..domain.enums import VoucherType, parse_enum
from ..models import Store, VoucherSeries
from ..repositories import BaseRepository, VoucherSeriesRepository
from .concurrency import begin_immediate, run_with_retry


def format_number(series: str, number: int) -> str:
    """B001 + 42 -> 'B001-00000042'. Wider numbers are never truncated."""
    return VoucherSeries.format_number(series, number)


class VoucherSeriesAllocator:
    def __init__(self, series_repo: VoucherSeriesRepository, store_repo: BaseRepository):
        self.series_repo = series_repo
        self.store_repo = store_repo

    @property
    def session(self):
        return self.series_repo.session

    # -- queries -------------------------------------------------------------

    def get_series(self, series_id: int) -> VoucherSeries:
        lane = self.series_repo.find_by_id(series_id)
        if not lane:
            raise NotFoundError("VoucherSeries", series_id)
        return lane

    def list_series(self, filters: dict | None = None, *, limit: int | None = None, offset: int | None = None):
        filters = dict(filters or {})
        if filters.get("voucher_type") is not None:
            filters["voucher_type"] = parse_enum(VoucherType, filters["voucher_type"], "voucher_type")
        items = self.series_repo.find_many(filters, limit=limit, offset=offset)
        return items, self.series_repo.count(filters)

    def get_next_number(self, series_id: int) -> dict:
        """Read-only preview; does not consume a number."""
        return self.get_series(series_id).preview()

    # -- writes --------------------------------------------------------------

    def create_series(self, *, store_id: int, voucher_type, series: str, starting_number: int = 1) -> VoucherSeries:
        voucher_type = parse_enum(VoucherType, voucher_type, "voucher_type")

        def _op():
            if not self.store_repo.find_by_id(store_id):
                raise NotFoundError("Store", store_id)

            lane = VoucherSeries.create(
                store_id=store_id,
                voucher_type=voucher_type,
                series=series,
                current_number=starting_number,
            )
            if self.series_repo.find_by_store_type_and_series(store_id, voucher_type, lane.series):
                raise AlreadyExistsError("VoucherSeries", lane.lane_key)

            try:
                self.series_repo.save(lane)
            except IntegrityError:
                raise AlreadyExistsError("VoucherSeries", lane.lane_key)
            self.session.commit()
            current_app.logger.info("Voucher series %s created for store %s", lane.series, store_id)
            return lane

        return run_with_retry(_op, session=self.session)

    def update_series(self, series_id: int, *, voucher_type=None, series: str | None = None,
                      current_number: int | None = None) -> VoucherSeries:
        if voucher_type is not None:
            voucher_type = parse_enum(VoucherType, voucher_type, "voucher_type")

        def _op():
            begin_immediate(self.session)
            lane = self.series_repo.find_by_id(series_id, lock=True)
            if not lane:
                raise NotFoundError("VoucherSeries", series_id)

            lane_changed = False
            if voucher_type is not None and voucher_type != lane.voucher_type:
                lane.change_voucher_type(voucher_type)
                lane_changed = True
            if series is not None and str(series).strip() != lane.series:
                lane.rename(series)
                lane_changed = True
            if current_number is not None:
                lane.set_current_number(current_number)

            if lane_changed:
                # autoflush is off for the lookup so the pending rename does not match itself
                with self.session.no_autoflush:
                    clash = self.series_repo.find_by_store_type_and_series(
                        lane.store_id, lane.voucher_type, lane.series
                    )
                if clash is not None and clash.id != lane.id:
                    raise AlreadyExistsError("VoucherSeries", lane.lane_key)

            try:
                self.series_repo.update(lane)
            except IntegrityError:
                raise AlreadyExistsError("VoucherSeries", lane.lane_key)
            self.session.commit()
            return lane

        return run_with_retry(_op, session=self.session)

    def delete_series(self, series_id: int) -> None:
        def _op():
            lane = self.series_repo.find_by_id(series_id)
            if not lane:
                raise NotFoundError("VoucherSeries", series_id)
            self.series_repo.delete(lane)
            self.session.commit()

        run_with_retry(_op, session=self.session)

    def increment_by(self, series_id: int, n: int = 1) -> tuple[VoucherSeries, list[int]]:
        """
        Consume ``n`` numbers from the lane in one transaction.

        Each unit is its own atomic SQL increment, so the issued numbers are
        consecutive only if nobody else is writing the lane; they are always
        unique. Returns the refreshed lane and the numbers issued.
        """
        if isinstance(n, bool) or not isinstance(n, int) or n < 1:
            raise ValidationFailure("increment must be an integer greater than 0", details={"field": "n", "value": n})

        def _op():
            begin_immediate(self.session)
            issued = []
            for _ in range(n):
                number = self.series_repo.increment(series_id)
                if number is None:
                    raise NotFoundError("VoucherSeries", series_id)
                issued.append(number)
            self.session.commit()
            lane = self.series_repo.find_by_id(series_id)
            return lane, issued

        return run_with_retry(_op, session=self.session)

    def allocate_in_transaction(self, store_id: int, voucher_type, series: str) -> tuple[int, str]:
        """
        Consume one number from the lane without committing.

        The caller owns the transaction; the number is only kept if it commits.
        """
        voucher_type = parse_enum(VoucherType, voucher_type, "voucher_type")
        series = (series or "").strip()
        begin_immediate(self.session)
        result = self.series_repo.increment_lane(store_id, voucher_type, series)
        if result is None:
            raise NotFoundError(
                "VoucherSeries",
                f"store={store_id} voucher_type={voucher_type.value} series={series}",
            )
        _, number = result
        return number, format_number(series, number)

    def allocate(self, store_id: int, voucher_type, series: str) -> tuple[int, str]:
        """Consume one number from the lane and commit; returns (number, formatted)."""
        def _op():
            allocated = self.allocate_in_transaction(store_id, voucher_type, series)
            self.session.commit()
            return allocated

        return run_with_retry(_op, session=self.session)


def get_voucher_series_allocator(session=None) -> VoucherSeriesAllocator:
    return VoucherSeriesAllocator(
        series_repo=VoucherSeriesRepository(session),
        store_repo=BaseRepository(session, model=Store),
    )
