"""
Controller layer sequencing backend fetches, transformation, validation and the
local resource store.
"""

import json
import logging
import time
import uuid
from collections.abc import Mapping

from empi_gateway.common.common import FlaskResponse
from empi_gateway.empi_client import BackendResponse, EmpiClient
from empi_gateway.envelope import unwrap
from empi_gateway.errors import (
    BackendTransportError,
    GatewayError,
    NotFoundError,
    ParseError,
    SchemaError,
)
from empi_gateway.outcome import (
    failure_response,
    outcome_header,
    simple_outcome,
    status_for,
)
from empi_gateway.patient_mapper import map_patient
from empi_gateway.search import (
    build_search_filters,
    extract_items,
    page_bounds,
    record_path_id,
    total_rows,
)
from empi_gateway.store import ResourceStore
from empi_gateway.validation import PatientValidator
from fhir_types import Bundle, BundleEntry, Patient

logger = logging.getLogger(__name__)

EXAMPLE_PATIENT: Patient = {
    "resourceType": "Patient",
    "id": "example",
    "active": True,
    "name": [{"family": "Doe", "given": ["John"]}],
    "gender": "male",
}


def _elapsed(start: float) -> str:
    return f"{time.perf_counter() - start:.3f}s"


def _canonical_bytes(resource: dict[str, object]) -> bytes:
    return json.dumps(resource, separators=(",", ":")).encode("utf-8")


class GatewayController:
    """
    Orchestrates EMPI backend calls and the local store behind the FHIR routes.

    Entry points all return a :class:`~empi_gateway.common.common.FlaskResponse`:
        - ``get_patient(patient_id, headers)``
        - ``search_patients(query, headers)``
        - ``create_patient(body)``
        - ``update_patient(patient_id, body)``
        - ``delete_patient(patient_id)``
        - ``example_patient()``
    """

    def __init__(
        self,
        client: EmpiClient,
        store: ResourceStore,
        validator: PatientValidator | None = None,
    ) -> None:
        """
        :param client: Backend client.
        :param store: Store for locally authored resources, shared across requests.
        :param validator: Patient validator. Defaults to :class:`PatientValidator`.
        """
        self.client = client
        self.store = store
        self.validator = validator or PatientValidator()

    def get_patient(
        self, patient_id: str, headers: Mapping[str, str] | None = None
    ) -> FlaskResponse:
        """
        Read a Patient, from the local store if it was authored here, otherwise
        from the EMPI backend.

        Backend 404s are reported as 404, other backend failures are passed
        through unchanged, and anything that goes wrong reaching, transforming
        or validating the backend record is a 502.
        """
        stored = self.store.get(patient_id)
        if stored is not None:
            logger.info("Serving Patient id=%s from local store", patient_id)
            return FlaskResponse(status_code=200, data=stored.decode("utf-8"))

        start = time.perf_counter()
        logger.info("Start fetching Patient id=%s", patient_id)

        try:
            response = self._fetch(patient_id, headers)
        except BackendTransportError as err:
            logger.error(
                "Fetch failed (transport) id=%s err=%s duration=%s",
                patient_id,
                err,
                _elapsed(start),
            )
            return simple_outcome(502, "backend service unavailable")
        except NotFoundError:
            logger.info(
                "Patient not found id=%s duration=%s", patient_id, _elapsed(start)
            )
            return simple_outcome(
                404, "Patient not found in backend", code="not-found"
            )

        if not response.ok:
            logger.warning(
                "Backend non-success id=%s status=%d bytes=%d duration=%s",
                patient_id,
                response.status_code,
                len(response.body),
                _elapsed(start),
            )
            return self._pass_through(response)

        try:
            patient_json = self._transform(response.body, patient_id)
        except ParseError as err:
            logger.error(
                "Transform to FHIR failed id=%s err=%s duration=%s",
                patient_id,
                err,
                _elapsed(start),
            )
            return simple_outcome(
                502, "failed to transform backend response to FHIR Patient"
            )
        except SchemaError as err:
            logger.error(
                "FHIR validation failed id=%s err=%s duration=%s",
                patient_id,
                err,
                _elapsed(start),
            )
            return simple_outcome(
                502, "generated Patient failed FHIR R4 validation"
            )

        logger.info("Fetch success id=%s duration=%s", patient_id, _elapsed(start))
        return FlaskResponse(status_code=200, data=patient_json.decode("utf-8"))

    def search_patients(
        self, query: Mapping[str, str], headers: Mapping[str, str] | None = None
    ) -> FlaskResponse:
        """
        Proxy a Patient search to the backend and return a ``searchset`` Bundle.

        Records that cannot be transformed or validated are left out of the
        Bundle and logged.
        """
        start = time.perf_counter()
        filters = build_search_filters(query)
        start_row, end_row = page_bounds(query)
        logger.info(
            "Start searching Patient filters=%s rows=%d-%d", filters, start_row, end_row
        )

        try:
            response = self.client.search_patients(
                filters, start_row, end_row, headers=headers
            )
        except BackendTransportError as err:
            logger.error(
                "Search failed (transport) err=%s duration=%s", err, _elapsed(start)
            )
            return simple_outcome(502, "backend service unavailable")

        if not response.ok:
            logger.warning(
                "Search backend non-success status=%d bytes=%d duration=%s",
                response.status_code,
                len(response.body),
                _elapsed(start),
            )
            return self._pass_through(response)

        try:
            page = json.loads(response.body)
        except (ValueError, RecursionError) as err:
            logger.error(
                "Search backend payload invalid JSON err=%s duration=%s",
                err,
                _elapsed(start),
            )
            return simple_outcome(502, "invalid backend search response")
        if not isinstance(page, dict):
            logger.error("Search backend payload is not an object")
            return simple_outcome(502, "invalid backend search response")

        entries: list[BundleEntry] = []
        for item in extract_items(page):
            path_id = record_path_id(item)
            try:
                patient_json = self._transform(
                    json.dumps(item).encode("utf-8"), path_id
                )
            except GatewayError as err:
                logger.warning("Dropping search record id=%r: %s", path_id, err)
                continue
            entries.append(
                {
                    "fullUrl": f"urn:uuid:{uuid.uuid4()}",
                    "resource": json.loads(patient_json),
                    "search": {"mode": "match"},
                }
            )

        total = total_rows(page, default=len(entries))
        bundle: Bundle = {
            "resourceType": "Bundle",
            "type": "searchset",
            "total": total,
            "entry": entries,
        }

        logger.info(
            "Search success entries=%d total=%d duration=%s",
            len(entries),
            total,
            _elapsed(start),
        )
        return FlaskResponse(status_code=200, data=json.dumps(bundle))

    def create_patient(self, body: bytes) -> FlaskResponse:
        """
        Validate and store a new Patient.

        :returns: 201 with the stored resource and a ``Location`` header, or
            the OperationOutcome with 400 or 422.
        """
        report = self.validator.validate(body)
        status_code = status_for(report, success_status=201)
        if status_code != 201:
            logger.info(
                "Create rejected status=%d issues=%d", status_code, len(report.issues)
            )
            return failure_response(
                report, status_code, with_header=status_code == 422
            )

        resource = json.loads(body)
        resource_id = self.store.next_id()
        resource["id"] = resource_id
        stored = _canonical_bytes(resource)
        self.store.put(resource_id, stored)

        logger.info("Created Patient id=%s issues=%d", resource_id, len(report.issues))
        return FlaskResponse(
            status_code=201,
            data=stored.decode("utf-8"),
            headers={
                "Location": f"/fhir/Patient/{resource_id}",
                **outcome_header(report),
            },
        )

    def update_patient(self, patient_id: str, body: bytes) -> FlaskResponse:
        """
        Validate and overwrite a Patient previously created through the facade.

        The stored resource's ``id`` is always ``patient_id``, whatever the
        body says.
        """
        report = self.validator.validate(body)
        status_code = status_for(report, success_status=200)
        if status_code != 200:
            logger.info(
                "Update rejected id=%s status=%d issues=%d",
                patient_id,
                status_code,
                len(report.issues),
            )
            return failure_response(
                report, status_code, with_header=status_code == 422
            )

        resource = json.loads(body)
        resource["id"] = patient_id
        stored = _canonical_bytes(resource)
        if not self.store.update(patient_id, stored):
            logger.info("Update target not found id=%s", patient_id)
            return simple_outcome(404, "Patient not found", code="not-found")

        logger.info("Updated Patient id=%s", patient_id)
        return FlaskResponse(
            status_code=200,
            data=stored.decode("utf-8"),
            headers=outcome_header(report),
        )

    def delete_patient(self, patient_id: str) -> FlaskResponse:
        if not self.store.delete(patient_id):
            logger.info("Delete target not found id=%s", patient_id)
            return simple_outcome(404, "Patient not found", code="not-found")
        logger.info("Deleted Patient id=%s", patient_id)
        return FlaskResponse(status_code=204)

    def example_patient(self) -> FlaskResponse:
        return FlaskResponse(status_code=200, data=json.dumps(EXAMPLE_PATIENT))

    def _fetch(
        self, patient_id: str, headers: Mapping[str, str] | None
    ) -> BackendResponse:
        """
        :raises BackendTransportError: If the backend cannot be reached.
        :raises NotFoundError: If the backend has no such patient.
        """
        response = self.client.get_patient(patient_id, headers=headers)
        if response.status_code == 404:
            raise NotFoundError(f"Patient {patient_id} not found in backend")
        logger.debug(
            "Backend response id=%s status=%d bytes=%d",
            patient_id,
            response.status_code,
            len(response.body),
        )
        return response

    def _transform(self, raw: bytes, path_id: str) -> bytes:
        """
        Turn a backend payload into validated Patient JSON.

        :raises ParseError: If the payload is not a JSON object.
        :raises SchemaError: If the resulting Patient has blocking issues.
        """
        payload = unwrap(raw)
        if payload.patient_json is not None:
            candidate = payload.patient_json
        else:
            candidate = json.dumps(map_patient(payload.record, path_id)).encode(
                "utf-8"
            )

        report = self.validator.validate(candidate)
        if report.has_blocking_issues:
            blocking = [issue for issue in report.issues if issue.is_blocking]
            raise SchemaError(
                "; ".join(
                    issue.diagnostics or issue.details_text or issue.code
                    for issue in blocking
                )
            )
        return candidate

    @staticmethod
    def _pass_through(response: BackendResponse) -> FlaskResponse:
        return FlaskResponse(
            status_code=response.status_code,
            data=response.body.decode("utf-8", errors="replace"),
            mimetype="application/json",
        )

