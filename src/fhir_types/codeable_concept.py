"""FHIR CodeableConcept type (text-only form)."""

from typing import TypedDict


class CodeableConcept(TypedDict):
    text: str
