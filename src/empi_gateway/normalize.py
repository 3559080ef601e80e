"""
Normalisation of EMPI-specific encodings into FHIR-canonical forms.

All functions are pure and total: unrecognised input degrades to a sensible
default (or ``None``) rather than raising.
"""

from empi_gateway.common.common import JsonValue

_GENDER_CODES: dict[str, str] = {
    "m": "male",
    "male": "male",
    "1": "male",
    "f": "female",
    "female": "female",
    "2": "female",
    "o": "other",
    "other": "other",
    "3": "other",
    "u": "unknown",
    "unknown": "unknown",
    "0": "unknown",
}

_TRUE_STRINGS = frozenset({"true", "1", "yes"})
_FALSE_STRINGS = frozenset({"false", "0", "no"})

_IMAGE_CONTENT_TYPES: tuple[tuple[tuple[str, ...], str], ...] = (
    ((".jpg", ".jpeg"), "image/jpeg"),
    ((".png",), "image/png"),
    ((".gif",), "image/gif"),
    ((".webp",), "image/webp"),
)


def normalize_gender(value: str) -> str:
    """
    Map an EMPI gender value (text or numeric code) onto FHIR AdministrativeGender.

    Known codes are matched case-insensitively after trimming. Anything else
    starting with ``m`` or ``f`` is taken as male or female; everything else is
    ``unknown``.

    :param value: Raw gender value from the backend.
    :returns: One of ``male``, ``female``, ``other`` or ``unknown``.
    """
    code = value.strip().lower()
    if code in _GENDER_CODES:
        return _GENDER_CODES[code]
    if code.startswith("m"):
        return "male"
    if code.startswith("f"):
        return "female"
    return "unknown"


def normalize_date(value: str) -> str:
    """
    Reduce an ISO-8601-like date or date-time to its ``YYYY-MM-DD`` prefix.

    Anything after the first ``T`` or space is dropped, then the result is cut
    to 10 characters. Values shorter than 10 characters come back trimmed but
    otherwise unchanged.
    """
    text = value.strip()
    cut = min((i for i in (text.find("T"), text.find(" ")) if i >= 0), default=-1)
    if cut > 0:
        text = text[:cut]
    return text[:10]


def normalize_boolean(value: JsonValue) -> bool | None:
    """
    Interpret a boolean-like backend value.

    :param value: A JSON boolean, a number (non-zero is true), or one of the
        strings ``true/1/yes`` / ``false/0/no`` in any case.
    :returns: The boolean, or ``None`` when the value cannot be read as one.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    return None


def guess_image_content_type(url: str) -> str | None:
    """Guess an image media type from the file extension of ``url``."""
    lowered = url.lower()
    for suffixes, content_type in _IMAGE_CONTENT_TYPES:
        if lowered.endswith(suffixes):
            return content_type
    return None
