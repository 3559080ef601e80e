"""Unit tests for :mod:`empi_gateway.patient_mapper`."""

from typing import Any

import pytest
from stubs.stub_empi import JANE_DOE, OMAR_HASSAN

from empi_gateway.patient_mapper import MRN_SYSTEM, UPI_SYSTEM, map_patient


class TestMapPatient:
    def test_full_record(self) -> None:
        patient = map_patient(JANE_DOE, "12345")

        assert patient == {
            "resourceType": "Patient",
            "id": "12345",
            "active": True,
            "identifier": [
                {"system": MRN_SYSTEM, "value": "MRN-0042"},
                {"system": UPI_SYSTEM, "value": "UPI-12345"},
                {"system": "urn:nationalId", "value": "784-1990-1234567-1"},
            ],
            "name": [
                {"family": "Doe", "given": ["Jane", "Q"], "text": "Jane Q Doe"}
            ],
            "gender": "female",
            "birthDate": "1990-05-15",
            "maritalStatus": {"text": "Married"},
            "communication": [{"language": {"text": "English"}}],
            "deceasedBoolean": False,
            "telecom": [
                {"system": "phone", "value": "+971500000000"},
                {"system": "email", "value": "jane.doe@example.org"},
            ],
            "address": [
                {
                    "line": ["1 Harbour Road"],
                    "city": "Dubai",
                    "state": "Dubai Marina",
                    "postalCode": "00000",
                    "country": "AE",
                }
            ],
            "managingOrganization": {"reference": "Organization/59"},
            "generalPractitioner": [
                {"reference": "Practitioner/8008"},
                {"reference": "Organization/HC-7"},
            ],
            "contact": [
                {
                    "name": {"text": "John Doe"},
                    "relationship": [{"text": "Spouse"}],
                    "telecom": [{"system": "phone", "value": "+971500000001"}],
                }
            ],
            "photo": [
                {"url": "https://images.example.org/jane.png", "contentType": "image/png"}
            ],
        }

    def test_alternate_keys_and_numeric_values(self) -> None:
        patient = map_patient(OMAR_HASSAN, "67890")

        assert patient["active"] is False
        assert patient["identifier"] == [
            {"system": MRN_SYSTEM, "value": "778899"},
            {"system": UPI_SYSTEM, "value": "UPI-67890"},
        ]
        assert patient["gender"] == "male"
        assert patient["birthDate"] == "1975-11-02"
        assert patient["managingOrganization"] == {"reference": "Organization/59"}
        assert patient["telecom"] == [{"system": "phone", "value": "+971500000002"}]

    def test_empty_record_only_has_resource_type_and_id(self) -> None:
        assert map_patient({}, "") == {"resourceType": "Patient", "id": ""}

    def test_null_markers_are_treated_as_absent(self) -> None:
        record = {
            "firstName": "-",
            "lastName": "null",
            "fullName": "   ",
            "email": "-",
            "city": "null",
            "linkedParentUpi": "-",
        }

        patient = map_patient(record, "1")

        for key in ("name", "telecom", "address", "link"):
            assert key not in patient

    def test_null_marker_is_case_sensitive(self) -> None:
        patient = map_patient({"lastName": "NULL"}, "1")

        assert patient["name"] == [{"family": "NULL"}]

    def test_given_names_keep_order_and_skip_blanks(self) -> None:
        record = {"firstName": "Ann", "middleName": " ", "thirdName": "Marie"}

        patient = map_patient(record, "1")

        assert patient["name"] == [{"given": ["Ann", "Marie"]}]

    def test_gender_text_is_preferred_over_code(self) -> None:
        patient = map_patient({"gender_text": "Male", "gender": "2"}, "1")

        assert patient["gender"] == "male"

    def test_gender_code_used_when_text_absent(self) -> None:
        patient = map_patient({"gender_text": "-", "gender": 2}, "1")

        assert patient["gender"] == "female"

    def test_unparsable_deceased_flag_is_omitted(self) -> None:
        patient = map_patient({"isDeceased": "perhaps"}, "1")

        assert "deceasedBoolean" not in patient

    def test_identifier_pair_requires_both_parts(self) -> None:
        patient = map_patient({"idType": "passport"}, "1")

        assert "identifier" not in patient

    def test_linked_parent_upi(self) -> None:
        patient = map_patient({"linkedParentUpi": "UPI-1"}, "1")

        assert patient["link"] == [
            {"other": {"reference": "Patient/UPI-1"}, "type": "seealso"}
        ]

    def test_marital_status_prefers_backend_spelling(self) -> None:
        record = {"maritialStatus": "Single", "maritalStatus": "Married"}

        patient = map_patient(record, "1")

        assert patient["maritalStatus"] == {"text": "Single"}

    def test_emergency_contact_local_name_fallbacks(self) -> None:
        record = {
            "emergencyContactFirstNameLocal": "Sara",
            "emergencyContactLastName": "Ali",
            "emergencyContactEmail": "sara@example.org",
        }

        patient = map_patient(record, "1")

        assert patient["contact"] == [
            {
                "name": {"given": ["Sara"], "family": "Ali"},
                "telecom": [{"system": "email", "value": "sara@example.org"}],
            }
        ]


class TestPhoto:
    def test_url_wins_over_data(self) -> None:
        record: dict[str, Any] = {
            "imageUrl": "https://img.example.org/p.JPG",
            "photoBase64": "aGVsbG8=",
        }

        patient = map_patient(record, "1")

        assert patient["photo"] == [
            {"url": "https://img.example.org/p.JPG", "contentType": "image/jpeg"}
        ]

    def test_explicit_content_type_wins_over_guess(self) -> None:
        record = {"photoUrl": "https://img.example.org/p.png", "contentType": "image/x-png"}

        patient = map_patient(record, "1")

        assert patient["photo"][0]["contentType"] == "image/x-png"

    def test_unknown_extension_has_no_content_type(self) -> None:
        patient = map_patient({"photoUrl": "https://img.example.org/p"}, "1")

        assert patient["photo"] == [{"url": "https://img.example.org/p"}]

    def test_base64_data_with_metadata(self) -> None:
        record = {
            "photo": "aGVsbG8=",
            "imageContentType": "image/png",
            "photoTitle": "Passport photo",
            "createdOn": "2024-01-01",
        }

        patient = map_patient(record, "1")

        assert patient["photo"] == [
            {
                "data": "aGVsbG8=",
                "contentType": "image/png",
                "title": "Passport photo",
                "creation": "2024-01-01",
            }
        ]

    @pytest.mark.parametrize("record", [{}, {"photoTitle": "orphan title"}])
    def test_no_url_or_data_means_no_photo(self, record: dict[str, Any]) -> None:
        assert "photo" not in map_patient(record, "1")
