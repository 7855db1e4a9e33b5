"""Shared dependencies for routers."""

from typing import Annotated

from fastapi import Depends

from src.clients.patient_store import get_patient_store_service
from src.clients.patient_sync import get_patient_sync_service
from src.clients.pos import get_pos_service
from src.services.patient_store_service import PatientStoreService
from src.services.pos_service import PosService
from src.sync.patient_sync import PatientSyncService

# Typed dependency aliases for use in endpoint signatures
PosServiceDep = Annotated[PosService, Depends(get_pos_service)]
PatientStoreServiceDep = Annotated[
    PatientStoreService, Depends(get_patient_store_service)
]
PatientSyncServiceDep = Annotated[
    PatientSyncService, Depends(get_patient_sync_service)
]
