"""HTTP facade translating EMPI patient records into validated FHIR Patients."""
