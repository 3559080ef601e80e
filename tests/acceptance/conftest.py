"""Fixtures shared by the acceptance scenarios."""

from dataclasses import dataclass
from typing import Any

import pytest
import requests


@dataclass
class ResponseContext:
    """Carries state between the steps of one scenario."""

    response: requests.Response | None = None
    created: dict[str, Any] | None = None


@pytest.fixture
def response_context() -> ResponseContext:
    return ResponseContext()
