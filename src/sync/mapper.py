"""
Patient to POS customer mapping.

The mapping is total: every patient produces a valid customer. Values that
exceed the POS field limits are truncated and empty values are omitted
rather than sent as empty strings.
"""

from src.schemas.patient import Patient
from src.schemas.pos import (
    ADDRESS_MAX_LENGTH,
    CUSTOMER_CODE_MAX_LENGTH,
    EMAIL_MAX_LENGTH,
    NAME_MAX_LENGTH,
    PHONE_MAX_LENGTH,
    PosCustomer,
)
from src.settings import settings


def to_customer(patient: Patient, country_code: str | None = None) -> PosCustomer:
    """
    Map a clinic patient to the POS customer shape.

    The patient's stored POS customer ID, if any, is carried over so the
    upsert updates the existing customer instead of creating a duplicate.

    Args:
        patient: Patient from the primary store
        country_code: Overrides the configured default country code

    Returns:
        PosCustomer ready to be upserted
    """
    return PosCustomer(
        id=patient.pos_customer_id or None,
        name=full_name(patient)[:NAME_MAX_LENGTH],
        email=_truncate(patient.email, EMAIL_MAX_LENGTH),
        phone_number=_truncate(patient.phone, PHONE_MAX_LENGTH),
        address=_truncate(patient.address, ADDRESS_MAX_LENGTH),
        country_code=country_code or settings.pos_country_code,
        customer_code=_truncate(patient.mrn, CUSTOMER_CODE_MAX_LENGTH),
        note=_note(patient),
        total_visits=0,
        total_spent=0,
        total_points=0,
    )


def full_name(patient: Patient) -> str:
    """First, middle and last name joined by single spaces, skipping blanks."""
    parts = (patient.first_name, patient.middle_name, patient.last_name)
    return " ".join(part.strip() for part in parts if part and part.strip())


def _truncate(value: str | None, max_length: int) -> str | None:
    if not value:
        return None
    return value[:max_length]


def _note(patient: Patient) -> str:
    # Lets POS staff trace a customer back to the clinic record
    if patient.mrn:
        return f"Clinic Patient - MRN: {patient.mrn}"
    return f"Clinic Patient - ID: {patient.id}"
