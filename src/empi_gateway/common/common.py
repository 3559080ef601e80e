"""
Shared lightweight types and helpers used across the EMPI gateway.
"""

from dataclasses import dataclass

# Recursive JSON-like structure typing for loosely-typed backend payloads.
type JsonValue = (
    str | int | float | bool | None | dict[str, JsonValue] | list[JsonValue]
)

# An EMPI backend record: no fixed schema, any key may be missing.
type BackendRecord = dict[str, JsonValue]

FHIR_JSON = "application/fhir+json"
OPERATION_OUTCOME_HEADER = "X-Operation-Outcome"


@dataclass
class FlaskResponse:
    """
    Lightweight response container returned by controller entry points.

    This mirrors the minimal set of fields used by the surrounding web framework.

    :param status_code: HTTP status code for the response (e.g., 200, 400, 404).
    :param data: Response body as text, if any.
    :param headers: Response headers, if any.
    :param mimetype: Media type of ``data``.
    """

    status_code: int
    data: str | None = None
    headers: dict[str, str] | None = None
    mimetype: str = FHIR_JSON
