"""FHIR data types and resources emitted by the EMPI facade."""

from fhir_types.address import Address
from fhir_types.attachment import Attachment
from fhir_types.bundle import Bundle, BundleEntry, BundleEntrySearch
from fhir_types.codeable_concept import CodeableConcept
from fhir_types.contact_point import ContactPoint
from fhir_types.human_name import HumanName
from fhir_types.identifier import Identifier
from fhir_types.operation_outcome import (
    OperationOutcome,
    OperationOutcomeIssue,
    OperationOutcomeIssueDetails,
)
from fhir_types.patient import (
    Patient,
    PatientCommunication,
    PatientContact,
    PatientLink,
)
from fhir_types.reference import Reference

__all__ = [
    "Address",
    "Attachment",
    "Bundle",
    "BundleEntry",
    "BundleEntrySearch",
    "CodeableConcept",
    "ContactPoint",
    "HumanName",
    "Identifier",
    "OperationOutcome",
    "OperationOutcomeIssue",
    "OperationOutcomeIssueDetails",
    "Patient",
    "PatientCommunication",
    "PatientContact",
    "PatientLink",
    "Reference",
]
