"""
Patient to POS customer synchronisation.

This package handles:
- Mapping clinic patients to POS customers
- Scoring POS customers against existing patients
- Single-patient and bulk sync, remote deletion, import and linking
"""

from src.sync.mapper import to_customer
from src.sync.matcher import MatchCandidate, normalize_phone, score_candidates
from src.sync.patient_sync import (
    BatchResult,
    CustomerCandidates,
    ImportResult,
    PatientSyncService,
    SyncResult,
)

__all__ = [
    "PatientSyncService",
    "SyncResult",
    "BatchResult",
    "CustomerCandidates",
    "ImportResult",
    "MatchCandidate",
    "normalize_phone",
    "score_candidates",
    "to_customer",
]
