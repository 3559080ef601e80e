"""Pytest configuration and shared fixtures for EMPI gateway unit tests."""

from collections.abc import Generator
from typing import Any

import pytest
from flask import Flask
from flask.testing import FlaskClient
from stubs.stub_empi import EmpiBackendStub

from empi_gateway.app import create_app
from empi_gateway.config import GatewayConfig
from empi_gateway.controller import GatewayController
from empi_gateway.empi_client import EmpiClient
from empi_gateway.store import ResourceStore


@pytest.fixture
def valid_patient_payload() -> dict[str, Any]:
    return {
        "resourceType": "Patient",
        "active": True,
        "name": [{"family": "Doe", "given": ["John"]}],
        "gender": "male",
    }


@pytest.fixture
def empi_stub() -> EmpiBackendStub:
    return EmpiBackendStub()


@pytest.fixture
def empi_client(empi_stub: EmpiBackendStub) -> EmpiClient:
    client = EmpiClient(base_url="https://empi.test/api/patient", timeout=5)
    client.get_method = empi_stub.get
    client.post_method = empi_stub.post
    return client


@pytest.fixture
def store() -> ResourceStore:
    return ResourceStore()


@pytest.fixture
def controller(empi_client: EmpiClient, store: ResourceStore) -> GatewayController:
    return GatewayController(client=empi_client, store=store)


@pytest.fixture
def app(empi_client: EmpiClient, store: ResourceStore) -> Flask:
    flask_app = create_app(GatewayConfig(), client=empi_client, store=store)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app: Flask) -> Generator[FlaskClient, None, None]:
    with app.test_client() as test_client:
        yield test_client
