"""FHIR OperationOutcome resource."""

from typing import NotRequired, TypedDict


class OperationOutcomeIssueDetails(TypedDict):
    text: str


class OperationOutcomeIssue(TypedDict):
    severity: str
    code: str
    diagnostics: NotRequired[str]
    details: NotRequired[OperationOutcomeIssueDetails]
    expression: NotRequired[list[str]]


class OperationOutcome(TypedDict):
    resourceType: str
    issue: list[OperationOutcomeIssue]
