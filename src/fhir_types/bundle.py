"""FHIR Bundle resource (searchset form)."""

from typing import TypedDict

from fhir_types.patient import Patient


class BundleEntrySearch(TypedDict):
    mode: str


class BundleEntry(TypedDict):
    fullUrl: str
    resource: Patient
    search: BundleEntrySearch


class Bundle(TypedDict):
    resourceType: str
    type: str
    total: int
    entry: list[BundleEntry]
