"""Dependency provider for the patient sync service."""

from functools import lru_cache

from src.clients.patient_store import get_patient_store_service
from src.clients.pos import get_pos_service
from src.sync.patient_sync import PatientSyncService


@lru_cache(maxsize=1)
def get_patient_sync_service() -> PatientSyncService:
    """Get singleton PatientSyncService wired to the shared clients."""
    return PatientSyncService(
        pos=get_pos_service(),
        store=get_patient_store_service(),
    )
