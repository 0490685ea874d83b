# Overview: Pytest coverage for the request parsing helpers.

import pytest

from storedesk.errors import ValidationFailure
from storedesk.validation import parse_int


class TestParseInt:
    def test_accepts_plain_and_signed_integers(self):
        assert parse_int("42", "n") == 42
        assert parse_int(" -5 ", "n") == -5
        assert parse_int(7, "n") == 7
        assert parse_int("", "n") is None

    @pytest.mark.parametrize("value", ["--5", "-", "5-", "1.5", "1e3", "abc", True, 2.0])
    def test_rejects_malformed_values(self, value):
        with pytest.raises(ValidationFailure) as excinfo:
            parse_int(value, "n")
        assert excinfo.value.details["field"] == "n"

    def test_required_and_minimum(self):
        with pytest.raises(ValidationFailure):
            parse_int(None, "n", required=True)
        with pytest.raises(ValidationFailure):
            parse_int("-1", "offset", minimum=0)
