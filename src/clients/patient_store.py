"""Dependency injection provider for the patient store client."""

from src.services.patient_store_service import PatientStoreService

_patient_store_service: PatientStoreService | None = None


def get_patient_store_service() -> PatientStoreService:
    """Get or create the PatientStoreService singleton."""
    global _patient_store_service
    if _patient_store_service is None:
        _patient_store_service = PatientStoreService()
    return _patient_store_service


async def close_patient_store_service() -> None:
    """Close the PatientStoreService singleton, if it was created."""
    global _patient_store_service
    if _patient_store_service is not None:
        await _patient_store_service.close()
        _patient_store_service = None
