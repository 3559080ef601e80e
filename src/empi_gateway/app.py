"""
Flask application exposing the FHIR Patient facade over the EMPI backend.
"""

import logging

from flask import Blueprint, Flask, Response, current_app, request
from stubs.stub_empi import EmpiBackendStub
from werkzeug.exceptions import HTTPException

from empi_gateway.common.common import FHIR_JSON, FlaskResponse
from empi_gateway.config import (
    MAX_CONTENT_LENGTH,
    GatewayConfig,
    get_app_host,
    get_app_port,
)
from empi_gateway.controller import GatewayController
from empi_gateway.empi_client import EmpiClient
from empi_gateway.outcome import simple_outcome
from empi_gateway.store import ResourceStore
from empi_gateway.validation import PatientValidator

logger = logging.getLogger(__name__)

CONTROLLER_KEY = "empi_gateway.controller"
ACCEPTED_CONTENT_TYPES = frozenset({FHIR_JSON, "application/json"})
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

fhir = Blueprint("fhir", __name__, url_prefix="/fhir")


def _controller() -> GatewayController:
    controller: GatewayController = current_app.extensions[CONTROLLER_KEY]
    return controller


def _to_flask(response: FlaskResponse) -> Response:
    return Response(
        response=response.data,
        status=response.status_code,
        headers=response.headers,
        mimetype=response.mimetype,
    )


def _unsupported_media_type() -> FlaskResponse | None:
    if request.mimetype in ACCEPTED_CONTENT_TYPES:
        return None
    return simple_outcome(
        415,
        f"Unsupported content type {request.mimetype or '(none)'}; "
        f"expected {FHIR_JSON} or application/json",
        code="not-supported",
    )


@fhir.route("/Patient/example", methods=["GET"])
def example_patient() -> Response:
    return _to_flask(_controller().example_patient())


@fhir.route("/Patient", methods=["GET"])
def search_patients() -> Response:
    return _to_flask(
        _controller().search_patients(request.args.to_dict(), headers=request.headers)
    )


@fhir.route("/Patient", methods=["POST"])
def create_patient() -> Response:
    rejected = _unsupported_media_type()
    if rejected is not None:
        return _to_flask(rejected)
    return _to_flask(_controller().create_patient(request.get_data()))


@fhir.route("/Patient/<patient_id>", methods=["GET"])
def read_patient(patient_id: str) -> Response:
    return _to_flask(_controller().get_patient(patient_id, headers=request.headers))


@fhir.route("/Patient/<patient_id>", methods=["PUT"])
def update_patient(patient_id: str) -> Response:
    rejected = _unsupported_media_type()
    if rejected is not None:
        return _to_flask(rejected)
    return _to_flask(_controller().update_patient(patient_id, request.get_data()))


@fhir.route("/Patient/<patient_id>", methods=["DELETE"])
def delete_patient(patient_id: str) -> Response:
    return _to_flask(_controller().delete_patient(patient_id))


def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


def handle_http_exception(err: HTTPException) -> Response:
    status_code = err.code or 500
    if status_code == 413:
        diagnostics = f"Request body exceeds {MAX_CONTENT_LENGTH} bytes"
    else:
        diagnostics = err.description or err.name
    code = {404: "not-found", 405: "not-supported", 413: "too-costly"}.get(
        status_code, "exception"
    )
    return _to_flask(simple_outcome(status_code, diagnostics, code=code))


def handle_unexpected_exception(err: Exception) -> Response:
    logger.exception("Unhandled error serving %s %s", request.method, request.path)
    return _to_flask(simple_outcome(500, f"Internal Server Error: {err}"))


def build_client(config: GatewayConfig) -> EmpiClient:
    """Create the backend client, pointed at the in-memory stub if configured."""
    if config.use_stub:
        logger.warning("EMPI_USE_STUB is set; backend calls go to the in-memory stub")
        stub = EmpiBackendStub()
        return EmpiClient(
            config.empi_base_url,
            config.empi_timeout,
            get_method=stub.get,
            post_method=stub.post,
        )
    if config.empi_insecure_tls:
        logger.warning("TLS verification for the EMPI backend is disabled")
    return EmpiClient(
        config.empi_base_url,
        config.empi_timeout,
        insecure=config.empi_insecure_tls,
    )


def create_app(
    config: GatewayConfig | None = None,
    *,
    client: EmpiClient | None = None,
    store: ResourceStore | None = None,
    validator: PatientValidator | None = None,
) -> Flask:
    """
    Build the Flask application.

    :param config: Settings. Read from the environment when not given.
    :param client: Backend client. Built from ``config`` when not given.
    :param store: Resource store. A fresh, empty store when not given.
    :param validator: Patient validator. The default validator when not given.
    """
    config = config or GatewayConfig.from_env()
    logging.basicConfig(level=config.log_level, format=LOG_FORMAT)

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MAX_CONTENT_LENGTH
    app.extensions[CONTROLLER_KEY] = GatewayController(
        client=client if client is not None else build_client(config),
        store=store if store is not None else ResourceStore(),
        validator=validator,
    )

    app.register_blueprint(fhir)
    app.add_url_rule("/health", "health_check", health_check, methods=["GET"])
    app.register_error_handler(HTTPException, handle_http_exception)
    app.register_error_handler(Exception, handle_unexpected_exception)

    logger.info(
        "EMPI gateway configured backend=%s timeout=%ss stub=%s",
        config.empi_base_url,
        config.empi_timeout,
        config.use_stub,
    )
    return app


app = create_app()


if __name__ == "__main__":
    app.run(host=get_app_host(), port=get_app_port())
