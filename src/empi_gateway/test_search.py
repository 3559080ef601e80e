"""Unit tests for :mod:`empi_gateway.search`."""

import pytest

from empi_gateway.search import (
    build_search_filters,
    derive_names,
    extract_items,
    page_bounds,
    record_path_id,
    total_rows,
)


class TestDeriveNames:
    @pytest.mark.parametrize(
        ("query", "expected"),
        [
            ({}, ("", "")),
            ({"firstName": "Jane", "lastName": "Doe"}, ("Jane", "Doe")),
            ({"given": "Jane", "family": "Doe"}, ("Jane", "Doe")),
            ({"firstName": "Jane", "given": "Ann"}, ("Jane", "")),
            ({"name": "Jane"}, ("Jane", "")),
            ({"firstName": "Jane", "name": "Doe"}, ("Jane", "Doe")),
            ({"firstName": "Jane", "lastName": "Doe", "name": "X"}, ("Jane", "Doe")),
            ({"name": "Jane Q Doe"}, ("Jane", "Doe")),
            ({"family": "Roe", "name": "Jane Q Doe"}, ("Jane", "Roe")),
            ({"name": "   "}, ("", "")),
        ],
    )
    def test_derive_names(
        self, query: dict[str, str], expected: tuple[str, str]
    ) -> None:
        assert derive_names(query) == expected


def test_build_search_filters_maps_and_drops_empty_values() -> None:
    query = {
        "name": "Jane Doe",
        "upi": "UPI-1",
        "idNumber": "",
        "dateOfBirth": "1990-05-15",
        "localMRNs.59": "L-1",
        "legacyMRNs.59": "M-1",
        "unsupported": "ignored",
    }

    assert build_search_filters(query) == {
        "firstName": "Jane",
        "lastName": "Doe",
        "upi": "UPI-1",
        "dateOfBirth": "1990-05-15",
        "localMRNs.59": "L-1",
        "legacyMRNs.59": "M-1",
    }


@pytest.mark.parametrize(
    ("query", "expected"),
    [
        ({}, (0, 10)),
        ({"_count": "25"}, (0, 25)),
        ({"_offset": "20", "_count": "5"}, (20, 25)),
        ({"_offset": "-1", "_count": "abc"}, (0, 10)),
    ],
)
def test_page_bounds(query: dict[str, str], expected: tuple[int, int]) -> None:
    assert page_bounds(query) == expected


class TestExtractItems:
    @pytest.mark.parametrize(
        "page",
        [
            {"data": {"rows": [1, 2]}},
            {"data": {"list": [1, 2]}},
            {"data": [1, 2]},
            {"rows": [1, 2]},
            {"list": [1, 2]},
        ],
    )
    def test_known_shapes(self, page: dict[str, object]) -> None:
        assert extract_items(page) == [1, 2]  # type: ignore[arg-type]

    def test_data_rows_wins(self) -> None:
        page = {"data": {"rows": [1], "list": [2]}, "rows": [3]}

        assert extract_items(page) == [1]

    def test_unknown_shape_is_empty(self) -> None:
        assert extract_items({"data": "text", "items": [1]}) == []


@pytest.mark.parametrize(
    ("page", "expected"),
    [
        ({"totalRows": 42}, 42),
        ({"totalRows": 42.0}, 42),
        ({"totalRows": "17"}, 17),
        ({"totalRows": "many"}, 3),
        ({"totalRows": True}, 3),
        ({}, 3),
    ],
)
def test_total_rows(page: dict[str, object], expected: int) -> None:
    assert total_rows(page, default=3) == expected  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("item", "expected"),
    [
        ({"id": "1", "upi": "U"}, "1"),
        ({"id": "", "upi": "U"}, "U"),
        ({"id": 7, "upi": "U"}, "U"),
        ({}, ""),
        ("not a record", ""),
    ],
)
def test_record_path_id(item: object, expected: str) -> None:
    assert record_path_id(item) == expected  # type: ignore[arg-type]
