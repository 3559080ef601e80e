"""
Unwrapping of EMPI backend payloads.

The backend is inconsistent about where it puts the patient record. Payloads
seen in the wild are:

* an already-canonical FHIR ``Patient`` resource,
* ``{"details": {...}}``,
* ``{"data": "<json text>"}`` or ``{"data": {...}}``,
* the bare record.
"""

import json
from dataclasses import dataclass
from typing import cast

from empi_gateway.common.common import BackendRecord, JsonValue
from empi_gateway.errors import ParseError


@dataclass(frozen=True)
class UnwrappedPayload:
    """
    The innermost record of a backend payload.

    :param record: The unwrapped record.
    :param patient_json: When the payload is already a Patient resource, the
        JSON bytes to validate as-is; mapping is skipped for these. ``None``
        for records that still need mapping.
    """

    record: BackendRecord
    patient_json: bytes | None = None

    @property
    def is_patient(self) -> bool:
        return self.patient_json is not None


def looks_like_patient(value: JsonValue) -> bool:
    """Return ``True`` if ``value`` is a mapping whose resourceType is Patient."""
    if not isinstance(value, dict):
        return False
    resource_type = value.get("resourceType")
    return isinstance(resource_type, str) and resource_type.lower() == "patient"


def _decode_object(raw: bytes | str) -> BackendRecord:
    try:
        decoded = json.loads(raw)
    except (ValueError, RecursionError) as err:
        raise ParseError(f"Malformed JSON: {err}") from err
    if not isinstance(decoded, dict):
        raise ParseError(
            f"Expected a JSON object but received {type(decoded).__name__}"
        )
    return cast("BackendRecord", decoded)


def _inner_record(envelope: BackendRecord) -> BackendRecord:
    details = envelope.get("details")
    if isinstance(details, dict):
        return details

    data = envelope.get("data")
    if isinstance(data, str):
        try:
            inner = json.loads(data)
        except (ValueError, RecursionError):
            return envelope
        if isinstance(inner, dict):
            return cast("BackendRecord", inner)
    elif isinstance(data, dict):
        return data

    return envelope


def unwrap(raw: bytes | str) -> UnwrappedPayload:
    """
    Find the patient record inside a backend payload.

    Checks run in order and the first match wins: the payload is already a
    Patient; a ``details`` mapping; a ``data`` string holding JSON; a ``data``
    mapping; otherwise the top level itself. The result is checked again for a
    Patient resource so wrapped canonical resources short-circuit as well.

    :param raw: Backend response body.
    :returns: The unwrapped payload.
    :raises ParseError: If ``raw`` is not a well-formed JSON object.
    """
    envelope = _decode_object(raw)
    if looks_like_patient(envelope):
        return UnwrappedPayload(
            record=envelope,
            patient_json=raw.encode("utf-8") if isinstance(raw, str) else raw,
        )

    record = _inner_record(envelope)
    if record is not envelope and looks_like_patient(record):
        return UnwrappedPayload(
            record=record, patient_json=json.dumps(record).encode("utf-8")
        )

    return UnwrappedPayload(record=record)
