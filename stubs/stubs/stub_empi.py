"""
In-memory EMPI patient API stub.

The stub models the two backend calls the gateway makes:

    - ``GET {base}/{id}?includeClosed=true`` returning a single patient payload
    - ``POST {base}/pagination?lang=en&internationalization=true`` returning a
      page of records

Payloads are deliberately stored in the different envelope shapes the real
backend produces (``details``, ``data`` as a JSON string, ``data`` as an
object, bare record, and already-canonical FHIR Patient).

The stub does **not** implement the backend's authentication, closed-record
filtering or sorting.
"""

import json
from http.client import responses as http_responses
from typing import Any
from urllib.parse import unquote, urlsplit

from requests import Response
from requests.structures import CaseInsensitiveDict

# Ids the stub answers with a fixed failure status.
UNAVAILABLE_ID = "unavailable"
FORBIDDEN_ID = "forbidden"


def _create_response(
    status_code: int,
    headers: dict[str, str] | CaseInsensitiveDict[str],
    content: bytes,
) -> Response:
    """
    Create a :class:`requests.Response` object for the stub.

    :param status_code: HTTP status code.
    :param headers: Response headers dictionary.
    :param content: Response body as bytes.
    :return: A :class:`requests.Response` instance whose body has already
        been read, so ``iter_content`` serves it from memory.
    """
    response = Response()
    response.status_code = status_code
    response.headers = CaseInsensitiveDict(headers)
    response._content = content  # noqa: SLF001
    response._content_consumed = True  # noqa: SLF001
    response.encoding = "utf-8"
    response.reason = http_responses.get(status_code, "Unknown")
    return response


def _json_response(status_code: int, body: Any) -> Response:
    return _create_response(
        status_code=status_code,
        headers={"Content-Type": "application/json"},
        content=json.dumps(body).encode("utf-8"),
    )


def wrap_record(record: dict[str, Any], envelope: str | None) -> dict[str, Any]:
    """
    Wrap ``record`` the way the backend sometimes does.

    :param envelope: ``"details"``, ``"data"`` (nested object),
        ``"data-string"`` (JSON text) or ``None`` for the bare record.
    """
    if envelope == "details":
        return {"status": "OK", "details": record}
    if envelope == "data":
        return {"status": "OK", "data": record}
    if envelope == "data-string":
        return {"status": "OK", "data": json.dumps(record)}
    if envelope is None:
        return record
    raise ValueError(f"Unknown envelope {envelope!r}")


JANE_DOE: dict[str, Any] = {
    "id": "12345",
    "upi": "UPI-12345",
    "legacyMRN": "MRN-0042",
    "idType": "nationalId",
    "idNumber": "784-1990-1234567-1",
    "fileStatus": "Active",
    "firstName": "Jane",
    "middleName": "Q",
    "thirdName": "-",
    "lastName": "Doe",
    "fullName": "Jane Q Doe",
    "gender_text": "Female",
    "gender": 2,
    "dateOfBirth": "1990-05-15T00:00:00",
    "maritialStatus": "Married",
    "language": "English",
    "isDeceased": "false",
    "mobileNumber": "+971500000000",
    "email": "jane.doe@example.org",
    "street": "1 Harbour Road",
    "city": "Dubai",
    "area": "Dubai Marina",
    "zipCode": "00000",
    "country": "ae",
    "registeredAt": "59",
    "primaryHealthcarePhysician": "8008",
    "primaryHealthcareCenter": "HC-7",
    "linkedParentUpi": "null",
    "emergencyContactName": "John Doe",
    "emergencyContactRelationship": "Spouse",
    "emergencyContactPhoneNumber": "+971500000001",
    "photoUrl": "https://images.example.org/jane.png",
}

OMAR_HASSAN: dict[str, Any] = {
    "id": "67890",
    "upi": "UPI-67890",
    "medicalRecordNumber": 778899,
    "fileStatus": "closed",
    "firstName": "Omar",
    "lastName": "Hassan",
    "sex": "M",
    "dob": "1975-11-02 08:30:00",
    "phoneNumber": "+971500000002",
    "hospitalId": 59,
}

CANONICAL_PATIENT: dict[str, Any] = {
    "resourceType": "Patient",
    "id": "fhir-1",
    "active": True,
    "name": [{"family": "Smith", "given": ["Anna"]}],
    "gender": "female",
    "birthDate": "1980-01-01",
}

# Maps without error, but the birth date is not a FHIR date.
BAD_BIRTH_DATE: dict[str, Any] = {
    "id": "bad-date",
    "upi": "UPI-BAD",
    "firstName": "Broken",
    "lastName": "Record",
    "dateOfBirth": "31/12/1990",
}


class EmpiBackendStub:
    """
    Minimal in-memory stub for the EMPI patient API.

    ``get`` and ``post`` match the ``requests.get``/``requests.post``
    signatures so an :class:`~empi_gateway.empi_client.EmpiClient` can be
    pointed straight at them.
    """

    def __init__(self) -> None:
        # patient id -> response body as the backend would send it
        self._payloads: dict[str, dict[str, Any]] = {}
        # search rows, in insertion order
        self._records: dict[str, dict[str, Any]] = {}
        self.requests: list[dict[str, Any]] = []

        self.upsert_record(JANE_DOE, envelope="details")
        self.upsert_record(OMAR_HASSAN, envelope="data-string")
        self.upsert_record(BAD_BIRTH_DATE, envelope="data")
        self._payloads[CANONICAL_PATIENT["id"]] = CANONICAL_PATIENT

    # ---------------------------
    # Public API for tests
    # ---------------------------

    def upsert_record(
        self,
        record: dict[str, Any],
        envelope: str | None = "details",
        patient_id: str | None = None,
    ) -> None:
        """
        Insert or replace a backend record.

        :param record: The bare EMPI record.
        :param envelope: How single-patient reads wrap the record, see
            :func:`wrap_record`.
        :param patient_id: Id to serve the record under. Defaults to the
            record's ``id``.
        """
        key = patient_id or str(record["id"])
        self._payloads[key] = wrap_record(record, envelope)
        self._records[key] = record

    def set_raw_payload(self, patient_id: str, payload: dict[str, Any]) -> None:
        """Serve ``payload`` verbatim for reads of ``patient_id``."""
        self._payloads[patient_id] = payload

    def clear(self) -> None:
        self._payloads.clear()
        self._records.clear()

    def get(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        timeout: float | None = None,  # noqa: ARG002 (unused in stub)
        **kwargs: Any,  # noqa: ARG002 (verify, stream)
    ) -> Response:
        """
        Implements ``GET {base}/{id}``.

        :return: ``200`` with the stored payload, ``404`` for unknown ids, and
            fixed failures for :data:`UNAVAILABLE_ID` and :data:`FORBIDDEN_ID`.
        """
        patient_id = unquote(urlsplit(url).path.rstrip("/").rsplit("/", 1)[-1])
        self.requests.append(
            {"method": "GET", "url": url, "headers": headers or {}, "params": params}
        )

        if patient_id == UNAVAILABLE_ID:
            return _json_response(503, {"message": "Service Unavailable"})
        if patient_id == FORBIDDEN_ID:
            return _json_response(403, {"message": "Access denied"})

        payload = self._payloads.get(patient_id)
        if payload is None:
            return _json_response(404, {"message": f"Patient {patient_id} not found"})
        return _json_response(200, payload)

    def post(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        data: str | bytes | None = None,
        timeout: float | None = None,  # noqa: ARG002 (unused in stub)
        **kwargs: Any,  # noqa: ARG002 (verify, stream)
    ) -> Response:
        """
        Implements ``POST {base}/pagination``.

        Filters in ``metaParams.searchParams`` are matched case-insensitively
        against the stored records.
        """
        self.requests.append(
            {
                "method": "POST",
                "url": url,
                "headers": headers or {},
                "params": params,
                "data": data,
            }
        )
        if not urlsplit(url).path.endswith("/pagination"):
            return _json_response(404, {"message": "Not found"})

        try:
            body = json.loads(data or b"{}")
            filters = json.loads(body["metaParams"]["searchParams"])
            start_row = int(body["startRow"])
            end_row = int(body["endRow"])
        except (KeyError, TypeError, ValueError):
            return _json_response(400, {"message": "Invalid pagination request"})

        matches = [
            record
            for record in self._records.values()
            if self._matches(record, filters)
        ]
        return _json_response(
            200,
            {
                "status": "OK",
                "data": {"rows": matches[start_row:end_row]},
                "totalRows": len(matches),
            },
        )

    # ---------------------------
    # Internal helpers
    # ---------------------------

    @staticmethod
    def _matches(record: dict[str, Any], filters: dict[str, str]) -> bool:
        for key, expected in filters.items():
            actual = record.get(key)
            if actual is None or str(actual).lower() != str(expected).lower():
                return False
        return True
