# Overview: Pytest coverage for voucher series numbering, formatting and lane uniqueness.

import pytest

from storedesk.domain.enums import VoucherType
from storedesk.errors import AlreadyExistsError, NotFoundError, ValidationFailure
from storedesk.models import VoucherSeries
from storedesk.services.voucher_series_service import format_number, get_voucher_series_allocator


class TestFormatting:
    def test_pads_to_eight_digits(self):
        assert format_number("B001", 1) == "B001-00000001"
        assert format_number("F001", 42) == "F001-00000042"

    def test_wider_numbers_are_not_truncated(self):
        assert format_number("B001", 100000000) == "B001-100000000"

    def test_model_preview(self):
        lane = VoucherSeries.create(store_id=1, voucher_type=VoucherType.RECEIPT, series=" B001 ", current_number=7)
        assert lane.series == "B001"
        assert lane.preview() == {
            "current_number": 7,
            "next_number": 8,
            "formatted_number": "B001-00000007",
            "next_formatted_number": "B001-00000008",
        }

    def test_model_rejects_bad_counter_and_series(self):
        with pytest.raises(ValidationFailure):
            VoucherSeries.create(store_id=1, voucher_type=VoucherType.RECEIPT, series="B001", current_number=0)
        with pytest.raises(ValidationFailure):
            VoucherSeries.create(store_id=1, voucher_type=VoucherType.RECEIPT, series="   ")


class TestCreateAndQuery:
    def test_create_series_defaults_to_one(self, db_session, store):
        lane = get_voucher_series_allocator().create_series(
            store_id=store.id, voucher_type="receipt", series="B001",
        )
        assert lane.id is not None
        assert lane.voucher_type == VoucherType.RECEIPT
        assert lane.current_number == 1

    def test_duplicate_lane_is_rejected(self, db_session, store, receipt_lane):
        allocator = get_voucher_series_allocator()
        with pytest.raises(AlreadyExistsError) as excinfo:
            allocator.create_series(store_id=store.id, voucher_type=VoucherType.RECEIPT, series="B001")
        assert excinfo.value.details["key"]["series"] == "B001"
        assert db_session.query(VoucherSeries).count() == 1

    def test_same_series_in_other_type_or_store_is_allowed(self, db_session, store, other_store, receipt_lane):
        allocator = get_voucher_series_allocator()
        allocator.create_series(store_id=store.id, voucher_type=VoucherType.INVOICE, series="B001")
        allocator.create_series(store_id=other_store.id, voucher_type=VoucherType.RECEIPT, series="B001")
        assert db_session.query(VoucherSeries).count() == 3

    def test_unknown_store(self, db_session):
        with pytest.raises(NotFoundError):
            get_voucher_series_allocator().create_series(store_id=999, voucher_type="RECEIPT", series="B001")

    def test_unknown_voucher_type(self, db_session, store):
        with pytest.raises(ValidationFailure):
            get_voucher_series_allocator().create_series(store_id=store.id, voucher_type="TICKET", series="B001")

    def test_starting_number_must_be_positive(self, db_session, store):
        with pytest.raises(ValidationFailure):
            get_voucher_series_allocator().create_series(
                store_id=store.id, voucher_type="RECEIPT", series="B001", starting_number=0,
            )

    def test_get_next_number_is_read_only(self, db_session, receipt_lane):
        allocator = get_voucher_series_allocator()
        first = allocator.get_next_number(receipt_lane.id)
        second = allocator.get_next_number(receipt_lane.id)
        assert first == second
        assert first["next_formatted_number"] == "B001-00000002"

    def test_missing_lane(self, db_session):
        with pytest.raises(NotFoundError):
            get_voucher_series_allocator().get_next_number(12345)

    def test_list_series_filters_and_counts(self, db_session, store, other_store, receipt_lane):
        allocator = get_voucher_series_allocator()
        allocator.create_series(store_id=store.id, voucher_type="INVOICE", series="F001")
        allocator.create_series(store_id=other_store.id, voucher_type="RECEIPT", series="B001")

        items, total = allocator.list_series({"store_id": store.id})
        assert total == 2
        assert {lane.series for lane in items} == {"B001", "F001"}

        items, total = allocator.list_series({"voucher_type": "receipt"}, limit=1)
        assert total == 2
        assert len(items) == 1


class TestIncrements:
    def test_increment_returns_post_increment_value(self, db_session, receipt_lane):
        lane, numbers = get_voucher_series_allocator().increment_by(receipt_lane.id)
        assert numbers == [2]
        assert lane.current_number == 2

    def test_increment_by_n_issues_consecutive_numbers(self, db_session, receipt_lane):
        allocator = get_voucher_series_allocator()
        allocator.increment_by(receipt_lane.id, 1)
        lane, numbers = allocator.increment_by(receipt_lane.id, 3)
        assert numbers == [3, 4, 5]
        assert lane.current_number == 5
        assert lane.formatted_number == "B001-00000005"

    def test_increment_rejects_non_positive(self, db_session, receipt_lane):
        with pytest.raises(ValidationFailure):
            get_voucher_series_allocator().increment_by(receipt_lane.id, 0)

    def test_increment_missing_lane(self, db_session):
        with pytest.raises(NotFoundError):
            get_voucher_series_allocator().increment_by(999, 1)

    def test_allocate_by_lane_key(self, db_session, store, receipt_lane):
        allocator = get_voucher_series_allocator()
        assert allocator.allocate(store.id, "RECEIPT", "B001") == (2, "B001-00000002")
        assert allocator.allocate(store.id, VoucherType.RECEIPT, "B001") == (3, "B001-00000003")

    def test_allocate_unknown_lane(self, db_session, store, receipt_lane):
        with pytest.raises(NotFoundError):
            get_voucher_series_allocator().allocate(store.id, "INVOICE", "B001")


class TestUpdateAndDelete:
    def test_rename_into_existing_lane_fails(self, db_session, store, receipt_lane):
        allocator = get_voucher_series_allocator()
        other = allocator.create_series(store_id=store.id, voucher_type="RECEIPT", series="B002")
        with pytest.raises(AlreadyExistsError):
            allocator.update_series(other.id, series="B001")
        assert allocator.get_series(other.id).series == "B002"

    def test_change_type_into_existing_lane_fails(self, db_session, store, receipt_lane):
        allocator = get_voucher_series_allocator()
        invoice = allocator.create_series(store_id=store.id, voucher_type="INVOICE", series="B001")
        with pytest.raises(AlreadyExistsError):
            allocator.update_series(invoice.id, voucher_type="RECEIPT")

    def test_update_fields(self, db_session, receipt_lane):
        allocator = get_voucher_series_allocator()
        lane = allocator.update_series(receipt_lane.id, series="B010", current_number=50)
        assert lane.series == "B010"
        assert allocator.get_next_number(lane.id)["next_formatted_number"] == "B010-00000051"

    def test_update_rejects_zero_counter(self, db_session, receipt_lane):
        with pytest.raises(ValidationFailure):
            get_voucher_series_allocator().update_series(receipt_lane.id, current_number=0)
        assert get_voucher_series_allocator().get_series(receipt_lane.id).current_number == 1

    def test_delete(self, db_session, receipt_lane):
        allocator = get_voucher_series_allocator()
        lane_id = receipt_lane.id
        allocator.delete_series(lane_id)
        with pytest.raises(NotFoundError):
            allocator.get_series(lane_id)
        with pytest.raises(NotFoundError):
            allocator.delete_series(lane_id)
