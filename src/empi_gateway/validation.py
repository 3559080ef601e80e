"""
FHIR Patient validation.

Validation runs in two layers:

1. A structural decode of the candidate bytes into the ``fhir.resources`` R4B
   Patient model (R4B shares its Patient definition with R4). Malformed JSON,
   a resource of the wrong type, a boolean element that is not a JSON boolean,
   or a payload the model rejects each stop validation with a single issue.
2. Semantic checks of the decoded resource against the value sets and
   grammars the facade relies on. If this layer fails to run at all, the
   candidate is accepted with a warning rather than rejected.

Both layers report through an :class:`IssueReport`.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Protocol, cast

from fhir.resources.R4B.patient import Patient as PatientModel
from pydantic import ValidationError

from empi_gateway.errors import (
    ParseError,
    SchemaError,
    TypeMismatchError,
    ValidatorUnavailable,
)

logger = logging.getLogger(__name__)

FATAL = "fatal"
ERROR = "error"
WARNING = "warning"
INFORMATION = "information"

BLOCKING_SEVERITIES = frozenset({FATAL, ERROR})

ADMINISTRATIVE_GENDER = frozenset({"male", "female", "other", "unknown"})
NAME_USE = frozenset(
    {"usual", "official", "temp", "nickname", "anonymous", "old", "maiden"}
)
CONTACT_POINT_SYSTEM = frozenset(
    {"phone", "fax", "email", "pager", "url", "sms", "other"}
)
CONTACT_POINT_USE = frozenset({"home", "work", "temp", "old", "mobile"})
ADDRESS_USE = frozenset({"home", "work", "temp", "old", "billing"})
ADDRESS_TYPE = frozenset({"postal", "physical", "both"})
LINK_TYPE = frozenset({"replaced-by", "replaces", "refer", "seealso"})

# Elements whose JSON form must be a literal true or false.
BOOLEAN_ELEMENTS = ("active", "deceasedBoolean", "multipleBirthBoolean")

FHIR_DATE = re.compile(
    r"^([0-9]([0-9]([0-9][1-9]|[1-9]0)|[1-9]00)|[1-9]000)"
    r"(-(0[1-9]|1[0-2])(-(0[1-9]|[1-2][0-9]|3[0-1]))?)?$"
)


@dataclass(frozen=True)
class Issue:
    """
    A single validation finding.

    :param severity: ``fatal``, ``error``, ``warning`` or ``information``.
    :param code: FHIR IssueType code, e.g. ``invalid`` or ``exception``.
    :param diagnostics: Free-text diagnostics.
    :param details_text: Free text carried in ``issue.details.text`` instead.
    :param expression: FHIRPath locations the issue relates to.
    """

    severity: str
    code: str
    diagnostics: str | None = None
    details_text: str | None = None
    expression: tuple[str, ...] = ()

    @property
    def is_blocking(self) -> bool:
        return self.severity in BLOCKING_SEVERITIES


@dataclass
class IssueReport:
    """An ordered collection of issues produced by validating one resource."""

    issues: list[Issue] = field(default_factory=list)

    @property
    def has_blocking_issues(self) -> bool:
        return any(issue.is_blocking for issue in self.issues)

    @property
    def has_fatal_issues(self) -> bool:
        return any(issue.severity == FATAL for issue in self.issues)

    @classmethod
    def single(cls, issue: Issue) -> IssueReport:
        return cls(issues=[issue])


class SemanticValidator(Protocol):
    """Anything able to check a decoded Patient and report issues."""

    def validate(self, resource: dict[str, Any]) -> list[Issue]: ...


def decode_patient(candidate: bytes | str) -> dict[str, Any]:
    """
    Strictly decode ``candidate`` as an R4 Patient.

    :param candidate: Patient JSON.
    :returns: The decoded JSON object.
    :raises ParseError: If ``candidate`` is not a well-formed JSON object.
    :raises TypeMismatchError: If the resource is not a Patient.
    :raises SchemaError: If a boolean element is not a JSON boolean, or the
        ``fhir.resources`` model rejects the resource.
    """
    try:
        resource = json.loads(candidate)
    except (ValueError, RecursionError) as err:
        raise ParseError(f"Malformed JSON: {err}") from err
    if not isinstance(resource, dict):
        raise ParseError(
            f"Malformed JSON: expected an object, received {type(resource).__name__}"
        )

    resource_type = resource.get("resourceType")
    if resource_type != "Patient":
        raise TypeMismatchError(str(resource_type) if resource_type else "(null)")

    for element in BOOLEAN_ELEMENTS:
        if element in resource and not isinstance(resource[element], bool):
            raise SchemaError(
                f"{element}: expected a JSON boolean, received "
                f"{type(resource[element]).__name__}"
            )

    try:
        PatientModel.model_validate(resource)
    except ValidationError as err:
        raise SchemaError(_describe_validation_error(err)) from err
    except (TypeError, ValueError, RecursionError) as err:
        raise SchemaError(str(err) or type(err).__name__) from err

    return cast("dict[str, Any]", resource)


def _describe_validation_error(err: ValidationError) -> str:
    problems = []
    for error in err.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = error.get("msg", "invalid value")
        problems.append(f"{location}: {message}" if location else message)
    return "; ".join(problems) or str(err)


class PatientValidator:
    """
    Runs the structural and semantic layers and classifies the outcome.

    Usage:

        validator = PatientValidator()
        report = validator.validate(request_body)
        if report.has_blocking_issues:
            ...
    """

    def __init__(self, semantic_validator: SemanticValidator | None = None) -> None:
        """
        :param semantic_validator: Second-layer validator. Defaults to
            :class:`PatientProfileValidator`.
        """
        self.semantic_validator = semantic_validator or PatientProfileValidator()

    def validate(self, candidate: bytes | str) -> IssueReport:
        try:
            resource = decode_patient(candidate)
        except (ParseError, TypeMismatchError) as err:
            return IssueReport.single(
                Issue(severity=FATAL, code="exception", diagnostics=str(err))
            )
        except SchemaError as err:
            return IssueReport.single(
                Issue(severity=ERROR, code="invalid", details_text=str(err))
            )

        try:
            issues = self._run_semantic(resource)
        except ValidatorUnavailable as err:
            logger.warning("Validator unavailable, proceeding without it: %s", err)
            return IssueReport.single(
                Issue(
                    severity=WARNING,
                    code="informational",
                    diagnostics=f"Validation skipped due to internal error: {err}",
                )
            )

        return IssueReport(issues=issues)

    def _run_semantic(self, resource: dict[str, Any]) -> list[Issue]:
        try:
            return list(self.semantic_validator.validate(resource))
        except ValidatorUnavailable:
            raise
        except Exception as err:
            # Any failure inside the validator itself degrades to a warning.
            raise ValidatorUnavailable(str(err) or type(err).__name__) from err


class PatientProfileValidator:
    """
    In-process semantic checks for a decoded Patient.

    Coded elements are checked against their required R4 value sets and
    ``birthDate`` against the FHIR ``date`` grammar. Missing identifier or
    telecom values are reported as warnings.
    """

    def validate(self, resource: dict[str, Any]) -> list[Issue]:
        issues: list[Issue] = []

        self._check_code(
            issues, resource.get("gender"), ADMINISTRATIVE_GENDER, "Patient.gender"
        )

        birth_date = resource.get("birthDate")
        if isinstance(birth_date, str) and not FHIR_DATE.match(birth_date):
            issues.append(
                Issue(
                    severity=ERROR,
                    code="value",
                    diagnostics=f"'{birth_date}' is not a valid FHIR date",
                    expression=("Patient.birthDate",),
                )
            )

        for index, identifier in _entries(resource, "identifier"):
            if not identifier.get("value"):
                issues.append(
                    Issue(
                        severity=WARNING,
                        code="required",
                        diagnostics="Identifier has no value",
                        expression=(f"Patient.identifier[{index}]",),
                    )
                )

        for index, name in _entries(resource, "name"):
            self._check_code(issues, name.get("use"), NAME_USE, f"Patient.name[{index}].use")

        self._check_telecom(issues, resource, "Patient")

        for index, address in _entries(resource, "address"):
            path = f"Patient.address[{index}]"
            self._check_code(issues, address.get("use"), ADDRESS_USE, f"{path}.use")
            self._check_code(issues, address.get("type"), ADDRESS_TYPE, f"{path}.type")

        for index, link in _entries(resource, "link"):
            self._check_code(issues, link.get("type"), LINK_TYPE, f"Patient.link[{index}].type")

        for index, contact in _entries(resource, "contact"):
            path = f"Patient.contact[{index}]"
            self._check_code(
                issues, contact.get("gender"), ADMINISTRATIVE_GENDER, f"{path}.gender"
            )
            self._check_telecom(issues, contact, path)

        if not resource.get("identifier") and not resource.get("name"):
            issues.append(
                Issue(
                    severity=INFORMATION,
                    code="informational",
                    diagnostics="Patient has neither an identifier nor a name",
                    expression=("Patient",),
                )
            )

        return issues

    def _check_telecom(
        self, issues: list[Issue], element: dict[str, Any], parent: str
    ) -> None:
        for index, telecom in _entries(element, "telecom"):
            path = f"{parent}.telecom[{index}]"
            self._check_code(
                issues, telecom.get("system"), CONTACT_POINT_SYSTEM, f"{path}.system"
            )
            self._check_code(issues, telecom.get("use"), CONTACT_POINT_USE, f"{path}.use")
            if not telecom.get("value"):
                issues.append(
                    Issue(
                        severity=WARNING,
                        code="required",
                        diagnostics="ContactPoint has no value",
                        expression=(path,),
                    )
                )

    @staticmethod
    def _check_code(
        issues: list[Issue], value: Any, allowed: frozenset[str], path: str
    ) -> None:
        if value is None or value in allowed:
            return
        issues.append(
            Issue(
                severity=ERROR,
                code="code-invalid",
                diagnostics=(
                    f"'{value}' is not a valid code for {path}; expected one of "
                    f"{', '.join(sorted(allowed))}"
                ),
                expression=(path,),
            )
        )


def _entries(element: dict[str, Any], key: str) -> Iterator[tuple[int, dict[str, Any]]]:
    values = element.get(key)
    if not isinstance(values, list):
        return
    for index, value in enumerate(values):
        if isinstance(value, dict):
            yield index, value
