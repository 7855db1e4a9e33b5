"""Health check endpoint."""

from fastapi import APIRouter

from src.routers.deps import PatientStoreServiceDep, PosServiceDep
from src.schemas.health import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    pos: PosServiceDep,
    patient_store: PatientStoreServiceDep,
) -> HealthResponse:
    """Check service health including POS API and patient store connectivity."""
    pos_healthy = await pos.health_check()
    store_healthy = await patient_store.health_check()

    return HealthResponse(
        status="healthy" if pos_healthy and store_healthy else "degraded",
        pos_api=pos_healthy,
        patient_store=store_healthy,
    )
