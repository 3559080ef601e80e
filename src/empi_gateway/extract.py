"""
Typed accessors over loosely-typed EMPI backend records.

Every accessor takes an ordered list of candidate keys and returns the value of
the first key that holds something usable. A key whose value is missing, blank,
or one of the backend's null markers is skipped exactly as if it were absent.
"""

from empi_gateway.common.common import BackendRecord, JsonValue
from empi_gateway.normalize import normalize_boolean

NULL_MARKERS = frozenset({"-", "null"})


def is_absent(value: str) -> bool:
    """
    Return ``True`` if ``value`` carries no information.

    The backend uses ``"-"`` and ``"null"`` (case-sensitive) as placeholders;
    blank strings are treated the same way.
    """
    return not value.strip() or value in NULL_MARKERS


def as_string(value: JsonValue) -> str | None:
    """
    Coerce a scalar backend value to a string.

    Numbers are rendered in decimal form, with integral floats losing their
    trailing ``.0``. Booleans, containers and absent strings give ``None``.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        return None if is_absent(value) else value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    return None


def first_string(record: BackendRecord, *keys: str) -> str:
    """
    Return the first usable string among ``keys``.

    :param record: The backend record to read from.
    :param keys: Candidate keys, in priority order.
    :returns: The value of the first usable key, or ``""`` if none qualifies.
    """
    for key in keys:
        if key not in record:
            continue
        text = as_string(record[key])
        if text is not None:
            return text
    return ""


def first_bool(record: BackendRecord, *keys: str) -> bool | None:
    """
    Return the first value among ``keys`` that reads as a boolean.

    :param record: The backend record to read from.
    :param keys: Candidate keys, in priority order.
    :returns: The boolean, or ``None`` if no key holds a boolean-like value.
    """
    for key in keys:
        if key not in record:
            continue
        flag = normalize_boolean(record[key])
        if flag is not None:
            return flag
    return None


def non_empty(*values: str) -> list[str]:
    """Trim ``values`` and keep the ones that are not absent, preserving order."""
    return [value.strip() for value in values if not is_absent(value)]
