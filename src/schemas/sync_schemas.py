"""Schemas for POS sync endpoints."""

from pydantic import BaseModel, Field

from src.schemas.patient import Patient
from src.schemas.pos import PosCustomer
from src.sync.matcher import MatchCandidate
from src.sync.patient_sync import (
    BatchResult,
    CustomerCandidates,
    ImportResult,
    SyncResult,
)


class SyncRequest(BaseModel):
    """Request to sync one patient or every patient."""

    patient_id: str | None = Field(
        default=None,
        description="Patient to sync",
    )
    sync_all: bool = Field(
        default=False,
        description="Sync every non-deleted patient instead of a single one",
    )


class LinkRequest(BaseModel):
    """Request to link a patient to an existing POS customer."""

    customer_id: str = Field(min_length=1, description="POS customer ID")


class SyncResultSchema(BaseModel):
    """Result of a single-patient sync operation."""

    success: bool
    pos_customer_id: str | None = None
    error: str | None = None

    @classmethod
    def from_result(cls, result: SyncResult) -> "SyncResultSchema":
        return cls(
            success=result.success,
            pos_customer_id=result.pos_customer_id,
            error=result.error,
        )


class BatchResultSchema(BaseModel):
    """Result of a bulk sync."""

    total: int
    succeeded: int
    failed: int
    skipped: int = 0
    errors: list[str] = []

    @classmethod
    def from_result(cls, result: BatchResult) -> "BatchResultSchema":
        return cls(
            total=result.total,
            succeeded=result.succeeded,
            failed=result.failed,
            skipped=result.skipped,
            errors=result.errors,
        )


class MatchCandidateSchema(BaseModel):
    """A patient that may correspond to a POS customer."""

    patient: Patient
    score: int
    reasons: list[str]

    @classmethod
    def from_candidate(cls, candidate: MatchCandidate) -> "MatchCandidateSchema":
        return cls(
            patient=candidate.patient,
            score=candidate.score,
            reasons=candidate.reasons,
        )


class CustomerCandidatesSchema(BaseModel):
    """A POS customer with its ranked match candidates."""

    customer: PosCustomer
    candidates: list[MatchCandidateSchema]

    @classmethod
    def from_result(cls, result: CustomerCandidates) -> "CustomerCandidatesSchema":
        return cls(
            customer=result.customer,
            candidates=[
                MatchCandidateSchema.from_candidate(c) for c in result.candidates
            ],
        )


class ImportResponse(BaseModel):
    """Result of importing a POS customer as a new patient."""

    success: bool
    patient: Patient | None = None
    warnings: list[str] = []
    error: str | None = None

    @classmethod
    def from_result(cls, result: ImportResult) -> "ImportResponse":
        return cls(
            success=result.success,
            patient=result.patient,
            warnings=result.warnings,
            error=result.error,
        )
