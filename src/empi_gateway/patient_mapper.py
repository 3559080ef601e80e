"""
Mapping of unwrapped EMPI records onto FHIR R4 Patient resources.

Mapping is best-effort and never fails: a field that is missing or unreadable
in the backend record is left out of the Patient. Collections are only emitted
when they would be non-empty.
"""

from empi_gateway.common.common import BackendRecord
from empi_gateway.extract import first_bool, first_string, non_empty
from empi_gateway.normalize import (
    guess_image_content_type,
    normalize_date,
    normalize_gender,
)
from fhir_types import (
    Address,
    Attachment,
    ContactPoint,
    HumanName,
    Identifier,
    Patient,
    PatientContact,
    Reference,
)

MRN_SYSTEM = "urn:mrn"
UPI_SYSTEM = "urn:upi"

MRN_KEYS = ("legacyMRN", "mrn", "medicalRecordNumber", "patientNumber")
UPI_KEYS = ("upi", "patientId", "id")
FIRST_NAME_KEYS = ("firstName", "givenName")
MIDDLE_NAME_KEYS = ("middleName", "middle")
THIRD_NAME_KEYS = ("thirdName",)
FAMILY_NAME_KEYS = ("lastName", "familyName")
GENDER_TEXT_KEYS = ("gender_text", "sex_text")
GENDER_CODE_KEYS = ("gender", "sex")
BIRTH_DATE_KEYS = ("dateOfBirth", "dob", "birthDate")
# "maritialStatus" is how the backend actually spells it.
MARITAL_STATUS_KEYS = ("maritialStatus", "maritalStatus")
DECEASED_KEYS = ("isDeceased", "deceased")
PHONE_KEYS = ("mobileNumber", "phoneNumber", "phone")
ADDRESS_LINE_KEYS = ("street", "addressLine1")
STATE_KEYS = ("area", "state", "region")
POSTAL_CODE_KEYS = ("zipCode", "postalCode")
ORGANIZATION_KEYS = ("registeredAt", "hospitalId")

PHOTO_URL_KEYS = ("photoUrl", "avatarUrl", "imageUrl", "pictureUrl")
PHOTO_DATA_KEYS = ("photoBase64", "avatarBase64", "imageBase64", "imageData", "photo")
PHOTO_CONTENT_TYPE_KEYS = ("photoContentType", "imageContentType", "contentType")
PHOTO_CREATION_KEYS = ("photoCreatedOn", "photoCreation", "createdOn", "modifiedOn")


def map_patient(record: BackendRecord, path_id: str) -> Patient:
    """
    Build a FHIR Patient from an unwrapped EMPI record.

    :param record: The backend record, already unwrapped from any envelope.
    :param path_id: Value for ``Patient.id``, used verbatim. May be empty for
        search results that have not been assigned an id.
    :returns: The Patient resource as a plain dictionary.
    """
    patient: Patient = {"resourceType": "Patient", "id": path_id}

    file_status = first_string(record, "fileStatus")
    if file_status:
        patient["active"] = file_status.lower() == "active"

    identifiers = _identifiers(record)
    if identifiers:
        patient["identifier"] = identifiers

    name = _name(record)
    if name:
        patient["name"] = [name]

    gender = first_string(record, *GENDER_TEXT_KEYS) or first_string(
        record, *GENDER_CODE_KEYS
    )
    if gender:
        patient["gender"] = normalize_gender(gender)

    birth_date = first_string(record, *BIRTH_DATE_KEYS)
    if birth_date:
        patient["birthDate"] = normalize_date(birth_date)

    # Marital status and language are passed through as text, not coded.
    marital_status = first_string(record, *MARITAL_STATUS_KEYS)
    if marital_status:
        patient["maritalStatus"] = {"text": marital_status}

    language = first_string(record, "language")
    if language:
        patient["communication"] = [{"language": {"text": language}}]

    deceased = first_bool(record, *DECEASED_KEYS)
    if deceased is not None:
        patient["deceasedBoolean"] = deceased

    telecom = _telecom(
        first_string(record, *PHONE_KEYS), first_string(record, "email")
    )
    if telecom:
        patient["telecom"] = telecom

    address = _address(record)
    if address:
        patient["address"] = [address]

    organization = first_string(record, *ORGANIZATION_KEYS)
    if organization:
        patient["managingOrganization"] = {
            "reference": f"Organization/{organization}"
        }

    practitioners = _general_practitioners(record)
    if practitioners:
        patient["generalPractitioner"] = practitioners

    parent_upi = first_string(record, "linkedParentUpi")
    if parent_upi:
        patient["link"] = [
            {"other": {"reference": f"Patient/{parent_upi}"}, "type": "seealso"}
        ]

    contact = _emergency_contact(record)
    if contact:
        patient["contact"] = [contact]

    photo = _photo(record)
    if photo:
        patient["photo"] = [photo]

    return patient


def _identifiers(record: BackendRecord) -> list[Identifier]:
    identifiers: list[Identifier] = []

    mrn = first_string(record, *MRN_KEYS)
    if mrn:
        identifiers.append({"system": MRN_SYSTEM, "value": mrn})

    upi = first_string(record, *UPI_KEYS)
    if upi:
        identifiers.append({"system": UPI_SYSTEM, "value": upi})

    id_type = first_string(record, "idType")
    id_number = first_string(record, "idNumber")
    if id_type and id_number:
        identifiers.append({"system": f"urn:{id_type}", "value": id_number})

    return identifiers


def _name(record: BackendRecord) -> HumanName:
    name: HumanName = {}

    family = first_string(record, *FAMILY_NAME_KEYS)
    if family:
        name["family"] = family

    given = non_empty(
        first_string(record, *FIRST_NAME_KEYS),
        first_string(record, *MIDDLE_NAME_KEYS),
        first_string(record, *THIRD_NAME_KEYS),
    )
    if given:
        name["given"] = given

    full_name = first_string(record, "fullName")
    if full_name:
        name["text"] = full_name

    return name


def _telecom(phone: str, email: str) -> list[ContactPoint]:
    telecom: list[ContactPoint] = []
    if phone:
        telecom.append({"system": "phone", "value": phone})
    if email:
        telecom.append({"system": "email", "value": email})
    return telecom


def _address(record: BackendRecord) -> Address:
    address: Address = {}

    lines = non_empty(first_string(record, *ADDRESS_LINE_KEYS))
    if lines:
        address["line"] = lines

    city = first_string(record, "city")
    if city:
        address["city"] = city

    state = first_string(record, *STATE_KEYS)
    if state:
        address["state"] = state

    postal_code = first_string(record, *POSTAL_CODE_KEYS)
    if postal_code:
        address["postalCode"] = postal_code

    country = first_string(record, "country")
    if country:
        address["country"] = country.upper()

    return address


def _general_practitioners(record: BackendRecord) -> list[Reference]:
    references: list[Reference] = []

    practitioner = first_string(record, "primaryHealthcarePhysician")
    if practitioner:
        references.append({"reference": f"Practitioner/{practitioner}"})

    center = first_string(record, "primaryHealthcareCenter")
    if center:
        references.append({"reference": f"Organization/{center}"})

    return references


def _emergency_contact(record: BackendRecord) -> PatientContact:
    contact: PatientContact = {}

    name: HumanName = {}
    text = first_string(record, "emergencyContactName")
    if text:
        name["text"] = text
    given = non_empty(
        first_string(
            record, "emergencyContactFirstName", "emergencyContactFirstNameLocal"
        )
    )
    if given:
        name["given"] = given
    family = first_string(
        record, "emergencyContactLastName", "emergencyContactLastNameLocal"
    )
    if family:
        name["family"] = family
    if name:
        contact["name"] = name

    relationship = first_string(record, "emergencyContactRelationship")
    if relationship:
        contact["relationship"] = [{"text": relationship}]

    telecom = _telecom(
        first_string(record, "emergencyContactPhoneNumber"),
        first_string(record, "emergencyContactEmail"),
    )
    if telecom:
        contact["telecom"] = telecom

    return contact


def _photo(record: BackendRecord) -> Attachment:
    """
    Build the patient photo attachment.

    A URL wins over inline data; the two are never combined. For URLs the
    content type falls back to a guess from the file extension.
    """
    attachment: Attachment = {}
    content_type = first_string(record, *PHOTO_CONTENT_TYPE_KEYS)

    url = first_string(record, *PHOTO_URL_KEYS)
    if url:
        attachment["url"] = url
        content_type = content_type or guess_image_content_type(url) or ""
    else:
        data = first_string(record, *PHOTO_DATA_KEYS)
        if not data:
            return attachment
        attachment["data"] = data

    if content_type:
        attachment["contentType"] = content_type

    title = first_string(record, "photoTitle")
    if title:
        attachment["title"] = title

    creation = first_string(record, *PHOTO_CREATION_KEYS)
    if creation:
        attachment["creation"] = creation

    return attachment
