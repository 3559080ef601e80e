"""FHIR Attachment type."""

from typing import NotRequired, TypedDict


class Attachment(TypedDict):
    url: NotRequired[str]
    data: NotRequired[str]
    contentType: NotRequired[str]
    title: NotRequired[str]
    creation: NotRequired[str]
