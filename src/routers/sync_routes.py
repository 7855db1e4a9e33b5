"""POS sync and reconciliation endpoints."""

import logging

from fastapi import APIRouter, HTTPException, Response, status

from src.routers.deps import PatientSyncServiceDep
from src.schemas.pos import PosCustomer
from src.schemas.sync_schemas import (
    BatchResultSchema,
    CustomerCandidatesSchema,
    ImportResponse,
    LinkRequest,
    SyncRequest,
    SyncResultSchema,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pos", tags=["POS Sync"])


@router.post("/sync", response_model=SyncResultSchema | BatchResultSchema)
async def sync_patients(
    request: SyncRequest,
    sync_service: PatientSyncServiceDep,
) -> SyncResultSchema | BatchResultSchema:
    """
    Sync patients to POS customers.

    Send `{"patient_id": ...}` to sync one patient, or `{"sync_all": true}`
    to sync every non-deleted patient. Per-patient failures are reported in
    the response body, never as an HTTP error.
    """
    if request.sync_all:
        logger.info("Bulk POS sync requested")
        batch = await sync_service.sync_all()
        return BatchResultSchema.from_result(batch)

    if request.patient_id:
        result = await sync_service.sync_patient(request.patient_id)
        return SyncResultSchema.from_result(result)

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Either patient_id or sync_all must be provided",
    )


@router.get(
    "/customers/candidates",
    response_model=list[CustomerCandidatesSchema],
    response_model_by_alias=False,
)
async def list_candidates(
    sync_service: PatientSyncServiceDep,
) -> list[CustomerCandidatesSchema]:
    """
    List every POS customer with the patients that may correspond to it.

    Read-only. Candidates are ranked by score, highest first.
    """
    results = await sync_service.list_candidates()
    return [CustomerCandidatesSchema.from_result(r) for r in results]


@router.post(
    "/customers/import",
    response_model=ImportResponse,
    response_model_by_alias=False,
    status_code=status.HTTP_201_CREATED,
)
async def import_customer(
    customer: PosCustomer,
    sync_service: PatientSyncServiceDep,
    response: Response,
) -> ImportResponse:
    """
    Create a new patient from a POS customer with no matching patient.

    Fields the POS does not hold are filled with placeholders and listed in
    `warnings`; the new patient should be reviewed.
    """
    result = await sync_service.import_as_new(customer)
    if not result.success:
        response.status_code = status.HTTP_502_BAD_GATEWAY
    return ImportResponse.from_result(result)


@router.put("/patients/{patient_id}/link", response_model=SyncResultSchema)
async def link_patient(
    patient_id: str,
    request: LinkRequest,
    sync_service: PatientSyncServiceDep,
) -> SyncResultSchema:
    """Link a patient to an existing POS customer, replacing any previous link."""
    result = await sync_service.link_existing(patient_id, request.customer_id)
    return SyncResultSchema.from_result(result)


@router.delete("/patients/{patient_id}/link", response_model=SyncResultSchema)
async def unlink_patient(
    patient_id: str,
    sync_service: PatientSyncServiceDep,
) -> SyncResultSchema:
    """Forget the POS customer a patient is linked to."""
    result = await sync_service.unlink(patient_id)
    return SyncResultSchema.from_result(result)


@router.delete("/patients/{patient_id}/customer", response_model=SyncResultSchema)
async def delete_patient_customer(
    patient_id: str,
    sync_service: PatientSyncServiceDep,
) -> SyncResultSchema:
    """Delete the POS customer linked to a patient, if any."""
    result = await sync_service.delete_remote(patient_id)
    return SyncResultSchema.from_result(result)
