"""FHIR Patient resource."""

from typing import NotRequired, TypedDict

from fhir_types.address import Address
from fhir_types.attachment import Attachment
from fhir_types.codeable_concept import CodeableConcept
from fhir_types.contact_point import ContactPoint
from fhir_types.human_name import HumanName
from fhir_types.identifier import Identifier
from fhir_types.reference import Reference


class PatientCommunication(TypedDict):
    language: CodeableConcept


class PatientLink(TypedDict):
    other: Reference
    type: str


class PatientContact(TypedDict):
    name: NotRequired[HumanName]
    relationship: NotRequired[list[CodeableConcept]]
    telecom: NotRequired[list[ContactPoint]]


class Patient(TypedDict):
    resourceType: str
    id: str
    active: NotRequired[bool]
    identifier: NotRequired[list[Identifier]]
    name: NotRequired[list[HumanName]]
    gender: NotRequired[str]
    birthDate: NotRequired[str]
    maritalStatus: NotRequired[CodeableConcept]
    communication: NotRequired[list[PatientCommunication]]
    deceasedBoolean: NotRequired[bool]
    telecom: NotRequired[list[ContactPoint]]
    address: NotRequired[list[Address]]
    managingOrganization: NotRequired[Reference]
    generalPractitioner: NotRequired[list[Reference]]
    link: NotRequired[list[PatientLink]]
    contact: NotRequired[list[PatientContact]]
    photo: NotRequired[list[Attachment]]
