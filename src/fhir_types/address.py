"""FHIR Address type."""

from typing import NotRequired, TypedDict


class Address(TypedDict):
    line: NotRequired[list[str]]
    city: NotRequired[str]
    state: NotRequired[str]
    postalCode: NotRequired[str]
    country: NotRequired[str]
