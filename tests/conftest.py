"""Pytest configuration and shared fixtures for EMPI gateway API tests."""

import json
import socket
import threading
import time
from datetime import timedelta
from typing import Any

import pytest
import requests

from empi_gateway.app import create_app
from empi_gateway.common.common import FHIR_JSON, OPERATION_OUTCOME_HEADER
from empi_gateway.config import GatewayConfig


class Client:
    """A thin HTTP client for the running gateway."""

    def __init__(self, base_url: str, timeout: timedelta = timedelta(seconds=5)):
        self.base_url = base_url
        self._timeout = timeout.total_seconds()

    def send_health_check(self) -> requests.Response:
        return requests.get(f"{self.base_url}/health", timeout=self._timeout)

    def read_patient(self, patient_id: str) -> requests.Response:
        return requests.get(
            f"{self.base_url}/fhir/Patient/{patient_id}", timeout=self._timeout
        )

    def search_patients(self, **params: str) -> requests.Response:
        return requests.get(
            f"{self.base_url}/fhir/Patient", params=params, timeout=self._timeout
        )

    def create_patient(
        self, body: str | bytes, content_type: str = FHIR_JSON
    ) -> requests.Response:
        return requests.post(
            f"{self.base_url}/fhir/Patient",
            data=body,
            headers={"Content-Type": content_type},
            timeout=self._timeout,
        )

    def update_patient(self, patient_id: str, body: str | bytes) -> requests.Response:
        return requests.put(
            f"{self.base_url}/fhir/Patient/{patient_id}",
            data=body,
            headers={"Content-Type": FHIR_JSON},
            timeout=self._timeout,
        )

    def delete_patient(self, patient_id: str) -> requests.Response:
        return requests.delete(
            f"{self.base_url}/fhir/Patient/{patient_id}", timeout=self._timeout
        )

    def get(self, path: str) -> requests.Response:
        return requests.get(f"{self.base_url}{path}", timeout=self._timeout)


@pytest.fixture(scope="module")
def provider_url() -> str:
    """Start the gateway, backed by the EMPI stub, in a separate thread.

    Used by tests that make real HTTP requests to the running application.
    """
    flask_app = create_app(GatewayConfig(use_stub=True))

    # Port 0 lets the OS pick a free port
    sock = socket.socket()
    sock.bind(("", 0))
    port = sock.getsockname()[1]
    sock.close()

    def run_app() -> None:
        flask_app.run(port=port, debug=False, use_reloader=False, threaded=True)

    # Daemon threads end with the test process, so no explicit cleanup
    thread = threading.Thread(target=run_app, daemon=True)
    thread.start()

    url = f"http://localhost:{port}"
    max_retries = 20
    retry_delay = 0.1

    for _ in range(max_retries):
        try:
            response = requests.get(f"{url}/health", timeout=1)
            if response.status_code == 200:
                break
        except requests.exceptions.RequestException:
            time.sleep(retry_delay)
    else:
        raise RuntimeError(f"Flask server failed to start on {url}")

    return url


@pytest.fixture
def client(provider_url: str) -> Client:
    return Client(provider_url)


@pytest.fixture
def valid_patient() -> dict[str, Any]:
    return {
        "resourceType": "Patient",
        "active": True,
        "name": [{"use": "official", "family": "Doe", "given": ["John"]}],
        "gender": "male",
        "birthDate": "1985-04-12",
        "telecom": [{"system": "phone", "value": "+971500000009", "use": "mobile"}],
    }


def outcome_from_header(response: requests.Response) -> dict[str, Any]:
    """Decode the OperationOutcome carried in the response header."""
    outcome: dict[str, Any] = json.loads(response.headers[OPERATION_OUTCOME_HEADER])
    return outcome
