"""
Rendering of issue reports as FHIR OperationOutcomes and HTTP responses.
"""

import json

from empi_gateway.common.common import (
    FHIR_JSON,
    OPERATION_OUTCOME_HEADER,
    FlaskResponse,
)
from empi_gateway.validation import Issue, IssueReport
from fhir_types import OperationOutcome, OperationOutcomeIssue

NO_ISSUES_DIAGNOSTICS = "No issues detected during validation"


def render_issue(issue: Issue) -> OperationOutcomeIssue:
    rendered: OperationOutcomeIssue = {
        "severity": issue.severity,
        "code": issue.code,
    }
    if issue.diagnostics:
        rendered["diagnostics"] = issue.diagnostics
    if issue.details_text:
        rendered["details"] = {"text": issue.details_text}
    if issue.expression:
        rendered["expression"] = list(issue.expression)
    return rendered


def render_outcome(report: IssueReport) -> OperationOutcome:
    """
    Render ``report`` as an OperationOutcome.

    An empty report still renders one ``information`` issue, since an
    OperationOutcome must carry at least one issue.
    """
    issues = [render_issue(issue) for issue in report.issues]
    if not issues:
        issues = [
            {
                "severity": "information",
                "code": "informational",
                "diagnostics": NO_ISSUES_DIAGNOSTICS,
            }
        ]
    return {"resourceType": "OperationOutcome", "issue": issues}


def status_for(report: IssueReport, success_status: int) -> int:
    """
    Pick the HTTP status for a validated write or read.

    :param report: The validation result.
    :param success_status: Status to use when nothing blocks, e.g. 201 or 200.
    :returns: 400 for malformed input or a wrong resource type, 422 for any
        other blocking issue, else ``success_status``.
    """
    if report.has_fatal_issues:
        return 400
    if report.has_blocking_issues:
        return 422
    return success_status


def outcome_header(report: IssueReport) -> dict[str, str]:
    """The side-channel header carrying ``report`` as compact JSON."""
    return {
        OPERATION_OUTCOME_HEADER: json.dumps(
            render_outcome(report), separators=(",", ":")
        )
    }


def failure_response(
    report: IssueReport, status_code: int, *, with_header: bool = False
) -> FlaskResponse:
    """Render a blocking ``report`` as the response body."""
    return FlaskResponse(
        status_code=status_code,
        data=json.dumps(render_outcome(report)),
        headers=outcome_header(report) if with_header else None,
        mimetype=FHIR_JSON,
    )


def simple_outcome(
    status_code: int,
    diagnostics: str,
    *,
    severity: str = "error",
    code: str = "exception",
) -> FlaskResponse:
    """
    A single-issue OperationOutcome response for failures outside validation.

    Used for transport-level failures, missing resources and similar.
    """
    report = IssueReport.single(
        Issue(severity=severity, code=code, diagnostics=diagnostics)
    )
    return failure_response(report, status_code)
