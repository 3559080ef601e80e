"""
Translation between FHIR Patient search parameters and EMPI search pages.
"""

from collections.abc import Mapping
from typing import cast

from empi_gateway.common.common import BackendRecord, JsonValue

# Query keys forwarded to the backend under the same name.
PASS_THROUGH_KEYS = ("upi", "idNumber", "dateOfBirth", "localMRNs.59", "legacyMRNs.59")

DEFAULT_COUNT = 10
DEFAULT_OFFSET = 0


def derive_names(query: Mapping[str, str]) -> tuple[str, str]:
    """
    Work out the first and last name to search on.

    ``firstName``/``lastName`` win over FHIR's ``given``/``family``. A ``name``
    parameter only fills what is still missing: a single token fills the first
    missing of first/last name, and two or more tokens give the first token as
    first name and the last token as last name.

    :returns: ``(first_name, last_name)``, either of which may be ``""``.
    """
    first_name = query.get("firstName", "") or query.get("given", "")
    last_name = query.get("lastName", "") or query.get("family", "")

    parts = query.get("name", "").split()
    if len(parts) == 1:
        if not first_name:
            first_name = parts[0]
        elif not last_name:
            last_name = parts[0]
    elif len(parts) >= 2:
        first_name = first_name or parts[0]
        last_name = last_name or parts[-1]

    return first_name, last_name


def build_search_filters(query: Mapping[str, str]) -> dict[str, str]:
    """
    Map search query parameters onto EMPI filter keys.

    Parameters with empty values are left out.
    """
    filters: dict[str, str] = {}

    first_name, last_name = derive_names(query)
    if first_name:
        filters["firstName"] = first_name
    if last_name:
        filters["lastName"] = last_name

    for key in PASS_THROUGH_KEYS:
        value = query.get(key, "")
        if value:
            filters[key] = value

    return filters


def page_bounds(query: Mapping[str, str]) -> tuple[int, int]:
    """
    Derive the backend row window from ``_offset`` and ``_count``.

    Missing, non-numeric or negative values fall back to the defaults.

    :returns: ``(start_row, end_row)``; ``end_row`` is exclusive.
    """
    offset = _non_negative_int(query.get("_offset"), DEFAULT_OFFSET)
    count = _non_negative_int(query.get("_count"), DEFAULT_COUNT)
    return offset, offset + count


def _non_negative_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        number = int(value.strip())
    except ValueError:
        return default
    return number if number >= 0 else default


def extract_items(page: BackendRecord) -> list[JsonValue]:
    """
    Find the list of records in a backend search page.

    Shapes are tried in order: ``data.rows``, ``data.list``, ``data`` as a
    list, ``rows``, ``list``. Anything else gives an empty list.
    """
    data = page.get("data")
    if isinstance(data, dict):
        for key in ("rows", "list"):
            items = data.get(key)
            if isinstance(items, list):
                return items
    elif isinstance(data, list):
        return data

    for key in ("rows", "list"):
        items = page.get(key)
        if isinstance(items, list):
            return items

    return []


def total_rows(page: BackendRecord, default: int) -> int:
    """
    Read the backend's ``totalRows`` count.

    :param page: The backend search page.
    :param default: Returned when ``totalRows`` is missing or not a number.
    """
    value = page.get("totalRows")
    if isinstance(value, bool):
        return default
    if isinstance(value, int | float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


def record_path_id(item: JsonValue) -> str:
    """The id to give a search result: the record's ``id``, else its ``upi``."""
    if not isinstance(item, dict):
        return ""
    record = cast("BackendRecord", item)
    for key in ("id", "upi"):
        value = record.get(key)
        if isinstance(value, str) and value:
            return value
    return ""
