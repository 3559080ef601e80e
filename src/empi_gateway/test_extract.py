"""Unit tests for :mod:`empi_gateway.extract`."""

import pytest

from empi_gateway.extract import as_string, first_bool, first_string, is_absent, non_empty


class TestIsAbsent:
    @pytest.mark.parametrize("value", ["", "   ", "-", "null"])
    def test_placeholders_are_absent(self, value: str) -> None:
        assert is_absent(value)

    @pytest.mark.parametrize("value", ["NULL", "Null", "--", "x", "0"])
    def test_other_values_are_present(self, value: str) -> None:
        assert not is_absent(value)


class TestAsString:
    def test_integers_render_in_decimal(self) -> None:
        assert as_string(778899) == "778899"

    def test_integral_floats_lose_fraction(self) -> None:
        assert as_string(59.0) == "59"

    def test_fractional_floats_keep_fraction(self) -> None:
        assert as_string(1.5) == "1.5"

    def test_booleans_are_not_strings(self) -> None:
        assert as_string(True) is None

    def test_containers_are_not_strings(self) -> None:
        assert as_string({"a": "b"}) is None
        assert as_string(["a"]) is None

    def test_null_marker_is_none(self) -> None:
        assert as_string("null") is None


class TestFirstString:
    def test_first_usable_key_wins(self) -> None:
        record = {"mobileNumber": "-", "phoneNumber": "  ", "phone": "0500"}
        assert first_string(record, "mobileNumber", "phoneNumber", "phone") == "0500"

    def test_order_of_keys_is_priority(self) -> None:
        record = {"lastName": "Doe", "familyName": "Roe"}
        assert first_string(record, "lastName", "familyName") == "Doe"
        assert first_string(record, "familyName", "lastName") == "Roe"

    def test_missing_keys_give_empty_string(self) -> None:
        assert first_string({}, "a", "b") == ""

    def test_null_value_is_skipped(self) -> None:
        assert first_string({"a": None, "b": 7}, "a", "b") == "7"


class TestFirstBool:
    def test_reads_string_flags(self) -> None:
        assert first_bool({"isDeceased": "yes"}, "isDeceased") is True

    def test_falls_through_unparsable_values(self) -> None:
        record = {"isDeceased": "unknown", "deceased": 0}
        assert first_bool(record, "isDeceased", "deceased") is False

    def test_absent_gives_none(self) -> None:
        assert first_bool({"other": True}, "isDeceased") is None


def test_non_empty_trims_and_drops_absent_values() -> None:
    assert non_empty(" Jane ", "-", "", "Q") == ["Jane", "Q"]
