"""
Module: empi_gateway.empi_client

Client for the EMPI patient registry backend.

The backend exposes two calls used by the facade:

    GET  {base}/{id}?includeClosed=true
    POST {base}/pagination?lang=en&internationalization=true

Both want a set of ``X-*`` routing headers; caller-supplied values are forwarded
and defaults fill any gaps. Response bodies are returned as raw bytes, capped
at a fixed size, and left for the caller to unwrap.

Tests (and local runs without a backend) replace the HTTP functions via the
``get_method``/``post_method`` arguments or by patching the module-level
``get``/``post`` names.
"""

import json
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from urllib.parse import quote

import requests
from requests import Response
from requests.structures import CaseInsensitiveDict

from empi_gateway.errors import BackendTransportError

logger = logging.getLogger(__name__)

type GetCallable = Callable[..., Response]
type PostCallable = Callable[..., Response]

get: GetCallable = requests.get
post: PostCallable = requests.post

DEFAULT_HEADERS: dict[str, str] = {
    "Accept": "application/json, text/plain, */*",
    "User-Agent": (
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/140.0.0.0 Safari/537.36"
    ),
    "X-Group": "58",
    "X-Hospital": "59",
    "X-Location": "59",
    "X-Module": "empi",
    "X-User": "8008",
}
# Forwarded only when the caller sent them.
OPTIONAL_HEADERS = ("Accept-Language", "Authorization", "Referer")

MAX_READ_BYTES = 4 << 20
MAX_SEARCH_BYTES = 8 << 20
CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class BackendResponse:
    """
    A backend reply, read into memory.

    :param status_code: HTTP status returned by the backend.
    :param body: Raw response body.
    :param headers: Response headers.
    """

    status_code: int
    body: bytes
    headers: dict[str, str]

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class EmpiClient:
    """
    Simple client for the EMPI patient API.

    Usage:

        client = EmpiClient(base_url="https://empi.example.org/api/patient")
        response = client.get_patient("12345", headers=incoming_headers)
        if response.ok:
            payload = unwrap(response.body)
    """

    DEFAULT_URL = "https://empi.example.invalid/api/patient"

    def __init__(
        self,
        base_url: str = DEFAULT_URL,
        timeout: float = 15,
        *,
        insecure: bool = False,
        get_method: GetCallable | None = None,
        post_method: PostCallable | None = None,
    ) -> None:
        """
        :param base_url: Base URL of the backend patient API. Trailing slashes
            are stripped.
        :param timeout: Timeout in seconds for each backend call.
        :param insecure: Skip TLS certificate verification. Development only.
        :param get_method: Replacement for ``requests.get``.
        :param post_method: Replacement for ``requests.post``.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.insecure = insecure
        self.get_method = get_method
        self.post_method = post_method

    def _build_headers(
        self, in_headers: Mapping[str, str] | None = None
    ) -> dict[str, str]:
        incoming: CaseInsensitiveDict[str] = CaseInsensitiveDict(dict(in_headers or {}))

        headers = {
            name: incoming.get(name) or default
            for name, default in DEFAULT_HEADERS.items()
        }
        for name in OPTIONAL_HEADERS:
            value = incoming.get(name)
            if value:
                headers[name] = value

        return headers

    def get_patient(
        self, patient_id: str, headers: Mapping[str, str] | None = None
    ) -> BackendResponse:
        """
        Fetch a single patient record.

        :param patient_id: Backend patient id.
        :param headers: Incoming request headers to forward.
        :returns: The backend response, whatever its status.
        :raises BackendTransportError: If the backend cannot be reached, times
            out, or returns more than the read ceiling.
        """
        url = f"{self.base_url}/{quote(patient_id, safe='')}"
        get_method = self.get_method or get
        deadline = time.monotonic() + self.timeout

        try:
            response = get_method(
                url,
                headers=self._build_headers(headers),
                params={"includeClosed": "true"},
                timeout=self.timeout,
                verify=not self.insecure,
                stream=True,
            )
        except requests.RequestException as err:
            raise BackendTransportError(f"EMPI read request failed: {err}") from err

        return self._read(response, MAX_READ_BYTES, deadline)

    def search_patients(
        self,
        filters: Mapping[str, str],
        start_row: int = 0,
        end_row: int = 10,
        headers: Mapping[str, str] | None = None,
    ) -> BackendResponse:
        """
        Run a paginated patient search.

        :param filters: EMPI filter keys and values. Empty values are dropped.
        :param start_row: First row of the page.
        :param end_row: Row after the last row of the page.
        :param headers: Incoming request headers to forward.
        :returns: The backend response, whatever its status.
        :raises BackendTransportError: If the backend cannot be reached, times
            out, or returns more than the search ceiling.
        """
        url = f"{self.base_url}/pagination"
        payload = self.search_payload(filters, start_row, end_row)
        logger.debug("EMPI search request url=%s payload=%s", url, payload)

        request_headers = self._build_headers(headers)
        request_headers["Content-Type"] = "application/json"
        post_method = self.post_method or post
        deadline = time.monotonic() + self.timeout

        try:
            response = post_method(
                url,
                headers=request_headers,
                params={"lang": "en", "internationalization": "true"},
                data=payload,
                timeout=self.timeout,
                verify=not self.insecure,
                stream=True,
            )
        except requests.RequestException as err:
            raise BackendTransportError(f"EMPI search request failed: {err}") from err

        return self._read(response, MAX_SEARCH_BYTES, deadline)

    @staticmethod
    def search_payload(
        filters: Mapping[str, str], start_row: int, end_row: int
    ) -> str:
        """
        Build the pagination request body.

        The backend expects ``metaParams.searchParams`` as a JSON-encoded
        string rather than a nested object.
        """
        clean = {key: value for key, value in filters.items() if value}
        body = {
            "startRow": start_row,
            "endRow": end_row,
            "searchParams": {
                "startRow": start_row,
                "endRow": end_row,
                "rowGroupCols": [],
                "valueCols": [],
                "pivotCols": [],
                "pivotMode": False,
                "groupKeys": [],
                "filterModel": {},
                "sortModel": [],
            },
            "metaParams": {
                "searchParams": json.dumps(clean),
                "includeClosed": False,
                "includeHoldMerged": False,
                "includeChildProfiles": False,
            },
        }
        return json.dumps(body)

    @staticmethod
    def _read(response: Response, limit: int, deadline: float) -> BackendResponse:
        """
        Read a streamed response into memory.

        ``requests`` applies its timeout to each socket read, so the overall
        call budget is enforced here against ``deadline`` (a
        :func:`time.monotonic` value).

        :raises BackendTransportError: If the body exceeds ``limit`` bytes, the
            deadline passes, or the connection fails mid-read.
        """
        body = bytearray()
        try:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                body.extend(chunk)
                if len(body) > limit:
                    raise BackendTransportError(
                        f"EMPI response exceeded {limit} bytes"
                    )
                if time.monotonic() > deadline:
                    raise BackendTransportError(
                        "EMPI response not received within the timeout"
                    )
        except requests.RequestException as err:
            raise BackendTransportError(
                f"Failed to read EMPI response: {err}"
            ) from err
        finally:
            response.close()

        return BackendResponse(
            status_code=response.status_code,
            body=bytes(body),
            headers=dict(response.headers),
        )
