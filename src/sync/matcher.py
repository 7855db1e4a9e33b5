"""
Scored matching of POS customers against clinic patients.

Each signal is scored independently and the scores are summed, so a
customer whose phone changed but whose email still matches surfaces with a
meaningful score instead of being dropped on the first mismatch:

- already linked to this customer: +100
- email equal, ignoring case: +50
- phone equal, comparing the trailing national digits only: +50
- exact "first last" name: +30
- otherwise, partial name overlap: +15

Matching is read-only. Scoring one customer is O(n) in the number of
patients, so a full reconciliation is O(n * m); fine for a clinic-sized
directory, but the patients should be pre-indexed by email and phone
before this is used on tens of thousands of records.
"""

import re
from dataclasses import dataclass, field

from src.schemas.patient import Patient
from src.schemas.pos import PosCustomer

ALREADY_LINKED_SCORE = 100
EMAIL_MATCH_SCORE = 50
PHONE_MATCH_SCORE = 50
EXACT_NAME_SCORE = 30
PARTIAL_NAME_SCORE = 15

ALREADY_LINKED = "Already linked"
EMAIL_MATCH = "Email match"
PHONE_MATCH = "Phone match"
EXACT_NAME_MATCH = "Exact name match"
PARTIAL_NAME_MATCH = "Partial name match"

_NON_DIGITS = re.compile(r"\D")
NATIONAL_NUMBER_DIGITS = 10


@dataclass
class MatchCandidate:
    """A patient scored against one POS customer."""

    patient: Patient
    score: int
    reasons: list[str] = field(default_factory=list)


def normalize_phone(phone: str | None) -> str:
    """
    Reduce a phone number to the digits that identify the subscriber.

    Formatting is dropped and only the last ten digits are kept, so
    "+63 912 345 6789" and "0912-345-6789" both become "9123456789".
    Prefixes are not interpreted: numbers with a different national length
    may still fail to match across formats.
    """
    if not phone:
        return ""
    return _NON_DIGITS.sub("", phone)[-NATIONAL_NUMBER_DIGITS:]


def score_patient(customer: PosCustomer, patient: Patient) -> MatchCandidate:
    """Score a single patient against a customer."""
    score = 0
    reasons: list[str] = []

    if customer.id and patient.pos_customer_id == customer.id:
        score += ALREADY_LINKED_SCORE
        reasons.append(ALREADY_LINKED)

    if (
        customer.email
        and patient.email
        and customer.email.lower() == patient.email.lower()
    ):
        score += EMAIL_MATCH_SCORE
        reasons.append(EMAIL_MATCH)

    customer_phone = normalize_phone(customer.phone_number)
    if customer_phone and customer_phone == normalize_phone(patient.phone):
        score += PHONE_MATCH_SCORE
        reasons.append(PHONE_MATCH)

    customer_name = (customer.name or "").strip().lower()
    first_name = (patient.first_name or "").strip().lower()
    last_name = (patient.last_name or "").strip().lower()
    if customer_name and first_name and last_name:
        patient_name = f"{first_name} {last_name}"

        if customer_name == patient_name:
            score += EXACT_NAME_SCORE
            reasons.append(EXACT_NAME_MATCH)
        elif last_name in customer_name or customer_name in patient_name:
            score += PARTIAL_NAME_SCORE
            reasons.append(PARTIAL_NAME_MATCH)

    return MatchCandidate(patient=patient, score=score, reasons=reasons)


def score_candidates(
    customer: PosCustomer, patients: list[Patient]
) -> list[MatchCandidate]:
    """
    Rank patients against a POS customer.

    Args:
        customer: Customer from the POS listing
        patients: Patients to score, in a stable order

    Returns:
        Candidates with a non-zero score, highest first. Ties keep the
        order of `patients`.
    """
    candidates = [score_patient(customer, patient) for patient in patients]
    matches = [candidate for candidate in candidates if candidate.score > 0]
    return sorted(matches, key=lambda candidate: candidate.score, reverse=True)
