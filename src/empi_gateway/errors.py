"""
Exception taxonomy for the transformation and validation pipeline.

The controller converts each of these into an OperationOutcome response;
nothing here knows about HTTP beyond the status each error maps to.
"""


class GatewayError(Exception):
    """Base class for errors raised by the EMPI gateway."""


class ParseError(GatewayError):
    """Input bytes are not well-formed JSON (or not a JSON object)."""


class SchemaError(GatewayError):
    """Valid JSON that does not decode as a FHIR R4 Patient."""


class TypeMismatchError(GatewayError):
    """A well-formed resource whose ``resourceType`` is not ``Patient``."""

    def __init__(self, actual_type: str) -> None:
        super().__init__(f"Expected a Patient resource but received: {actual_type}")
        self.actual_type = actual_type


class ValidatorUnavailable(GatewayError):
    """The semantic validator could not run. Recovered locally, never fatal."""


class BackendTransportError(GatewayError):
    """
    Raised when the EMPI backend cannot be reached or its response cannot be read.

    Wraps ``requests`` exceptions so callers are not coupled to requests types.
    """


class NotFoundError(GatewayError):
    """The requested id is not in the local store or the backend."""
