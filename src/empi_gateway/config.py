"""
Runtime configuration, read from environment variables.
"""

import os
from dataclasses import dataclass

from empi_gateway.empi_client import EmpiClient

DEFAULT_TIMEOUT = 15.0
DEFAULT_LOG_LEVEL = "INFO"
# Ceiling for write request bodies.
MAX_CONTENT_LENGTH = 2 << 20

_TRUE = frozenset({"true", "1", "yes"})
_FALSE = frozenset({"false", "0", "no", ""})


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise RuntimeError(f"{name} must be true or false, got {raw!r}.")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as err:
        raise RuntimeError(f"{name} must be a number, got {raw!r}.") from err
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {raw!r}.")
    return value


@dataclass(frozen=True)
class GatewayConfig:
    """
    Settings for one gateway process.

    :param empi_base_url: Base URL of the EMPI patient API.
    :param empi_timeout: Backend timeout in seconds.
    :param empi_insecure_tls: Skip backend TLS verification. Development only.
    :param use_stub: Serve backend calls from the in-memory EMPI stub.
    :param log_level: Root log level name.
    """

    empi_base_url: str = EmpiClient.DEFAULT_URL
    empi_timeout: float = DEFAULT_TIMEOUT
    empi_insecure_tls: bool = False
    use_stub: bool = False
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls) -> "GatewayConfig":
        """
        :raises RuntimeError: If a variable is set to something unusable.
        """
        return cls(
            empi_base_url=os.getenv("EMPI_BASE_URL") or EmpiClient.DEFAULT_URL,
            empi_timeout=_env_float("EMPI_TIMEOUT", DEFAULT_TIMEOUT),
            empi_insecure_tls=_env_flag("EMPI_INSECURE_TLS"),
            use_stub=_env_flag("EMPI_USE_STUB"),
            log_level=(os.getenv("LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
        )


def get_app_host() -> str:
    host = os.getenv("FLASK_HOST")
    if host is None:
        raise RuntimeError("FLASK_HOST environment variable is not set.")
    return host


def get_app_port() -> int:
    port = os.getenv("FLASK_PORT")
    if port is None:
        raise RuntimeError("FLASK_PORT environment variable is not set.")
    try:
        return int(port)
    except ValueError as err:
        raise RuntimeError(
            f"FLASK_PORT must be an integer, got {port!r}."
        ) from err
