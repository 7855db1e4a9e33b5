"""
Patient to POS customer sync.

Drives single-patient sync, bulk sync, remote deletion and the
operator-assisted reconciliation flow (list candidates, import a customer
as a new patient, link an existing pair).

The POS is a secondary system: every operation that can be triggered by a
patient write returns a result value instead of raising, so a POS outage
never blocks or rolls back the clinic's own write.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date

from src.exceptions import PosSyncError, RemoteApiError
from src.schemas.patient import NewPatient, Patient
from src.schemas.pos import PosCustomer
from src.services.patient_store_service import PatientStoreService
from src.services.pos_service import PosService
from src.settings import settings
from src.sync.mapper import to_customer
from src.sync.matcher import MatchCandidate, score_candidates

logger = logging.getLogger(__name__)

# Placeholders for patient fields the POS does not hold. Imported patients
# carrying these need a manual follow-up.
UNKNOWN_NAME = "Unknown"
UNKNOWN_BIRTH_DATE = date(2000, 1, 1)
UNKNOWN_GENDER = "unknown"


@dataclass
class SyncResult:
    """Outcome of a single-patient sync operation."""

    success: bool
    pos_customer_id: str | None = None
    error: str | None = None

    @classmethod
    def ok(cls, pos_customer_id: str | None = None) -> "SyncResult":
        return cls(success=True, pos_customer_id=pos_customer_id)

    @classmethod
    def failed(cls, error: str) -> "SyncResult":
        return cls(success=False, error=error)


@dataclass
class BatchResult:
    """Outcome of a bulk sync."""

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    def record(self, patient_id: str, result: SyncResult) -> None:
        if result.success:
            self.succeeded += 1
        else:
            self.failed += 1
            self.errors.append(f"{patient_id}: {result.error}")


@dataclass
class CustomerCandidates:
    """A POS customer with the patients that may correspond to it."""

    customer: PosCustomer
    candidates: list[MatchCandidate]


@dataclass
class ImportResult:
    """Outcome of importing a POS customer as a new patient."""

    success: bool
    patient: Patient | None = None
    warnings: list[str] = field(default_factory=list)
    error: str | None = None


class PatientSyncService:
    """
    Mirrors clinic patients into the POS customer directory.

    The correlation between a patient and its POS customer is the
    `pos_customer_id` stored on the patient. Only `sync_patient`,
    `import_as_new`, `link_existing` and `unlink` change it.
    """

    def __init__(
        self,
        pos: PosService,
        store: PatientStoreService,
        country_code: str | None = None,
        concurrency: int | None = None,
    ):
        self.pos = pos
        self.store = store
        self.country_code = country_code or settings.pos_country_code
        self.concurrency = max(1, concurrency or settings.sync_concurrency)
        # patient id -> (lock, number of tasks holding or waiting for it)
        self._locks: dict[str, tuple[asyncio.Lock, int]] = {}

    @asynccontextmanager
    async def _patient_lock(self, patient_id: str) -> AsyncIterator[None]:
        """Serialise work on one patient; the entry is dropped once unused."""
        lock, users = self._locks.get(patient_id, (asyncio.Lock(), 0))
        self._locks[patient_id] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[patient_id]
            if users == 1:
                del self._locks[patient_id]
            else:
                self._locks[patient_id] = (lock, users - 1)

    async def sync_patient(self, patient_id: str) -> SyncResult:
        """
        Push one patient to the POS and store the customer ID it returns.

        Re-running on an already linked patient updates the same customer.
        Never raises.
        """
        async with self._patient_lock(patient_id):
            try:
                patient = await self.store.get_patient(patient_id)
                if patient.is_deleted:
                    return SyncResult.failed(f"Patient {patient_id} is deleted")

                customer = to_customer(patient, self.country_code)
                saved = await self.pos.upsert_customer(customer)
                if not saved.id:
                    raise PosSyncError("POS returned a customer without an ID")

                await self.store.set_pos_customer_id(patient_id, saved.id)
                logger.info("Patient %s synced to POS customer %s", patient_id, saved.id)
                return SyncResult.ok(saved.id)

            except PosSyncError as e:
                logger.warning("Failed to sync patient %s: %s", patient_id, e)
                return SyncResult.failed(str(e))
            except Exception as e:
                logger.exception("Unexpected error syncing patient %s", patient_id)
                return SyncResult.failed(str(e) or type(e).__name__)

    async def sync_all(self, stop_event: asyncio.Event | None = None) -> BatchResult:
        """
        Sync every non-deleted patient, oldest first.

        Patients are synced one at a time unless `concurrency` is raised.
        A failure on one patient never affects another. If `stop_event` is
        set, patients not yet started are counted as skipped. Never raises.
        """
        batch = BatchResult()
        try:
            patient_ids = await self.store.list_patient_ids()
        except Exception as e:
            logger.error("Could not list patients for bulk sync: %s", e)
            batch.errors.append(f"patients: {e}")
            return batch

        batch.total = len(patient_ids)
        logger.info("Starting bulk POS sync of %d patients", batch.total)

        if self.concurrency == 1:
            for patient_id in patient_ids:
                if stop_event is not None and stop_event.is_set():
                    batch.skipped += 1
                    continue
                batch.record(patient_id, await self.sync_patient(patient_id))
        else:
            semaphore = asyncio.Semaphore(self.concurrency)

            async def _bounded(patient_id: str) -> SyncResult | None:
                async with semaphore:
                    if stop_event is not None and stop_event.is_set():
                        return None
                    return await self.sync_patient(patient_id)

            results = await asyncio.gather(*(_bounded(pid) for pid in patient_ids))
            for patient_id, result in zip(patient_ids, results):
                if result is None:
                    batch.skipped += 1
                else:
                    batch.record(patient_id, result)

        logger.info(
            "Bulk POS sync complete: %d succeeded, %d failed, %d skipped",
            batch.succeeded,
            batch.failed,
            batch.skipped,
        )
        return batch

    async def delete_remote(self, patient_id: str) -> SyncResult:
        """
        Delete the POS customer linked to a patient.

        A patient that was never synced is a no-op success, as is a customer
        the POS no longer has. Never raises.
        """
        try:
            patient = await self.store.get_patient(patient_id)
            if not patient.pos_customer_id:
                return SyncResult.ok()

            try:
                await self.pos.delete_customer(patient.pos_customer_id)
            except RemoteApiError as e:
                if e.status_code != 404:
                    raise
                logger.info(
                    "POS customer %s already deleted", patient.pos_customer_id
                )

            logger.info(
                "Deleted POS customer %s for patient %s",
                patient.pos_customer_id,
                patient_id,
            )
            return SyncResult.ok(patient.pos_customer_id)

        except PosSyncError as e:
            logger.warning("Failed to delete POS customer of %s: %s", patient_id, e)
            return SyncResult.failed(str(e))
        except Exception as e:
            logger.exception("Unexpected error deleting POS customer of %s", patient_id)
            return SyncResult.failed(str(e) or type(e).__name__)

    async def list_candidates(self) -> list[CustomerCandidates]:
        """
        Score every POS customer against every active patient.

        Read-only: nothing is linked or written.

        Raises:
            PosSyncError: If either listing cannot be fetched
        """
        customers = await self.pos.list_all_customers()
        patients = await self.store.list_active_patients()

        return [
            CustomerCandidates(
                customer=customer,
                candidates=score_candidates(customer, patients),
            )
            for customer in customers
        ]

    async def import_as_new(self, customer: PosCustomer) -> ImportResult:
        """
        Create a new patient from a POS customer that matches nobody.

        The name is split on whitespace: the first word becomes the first
        name and the rest the last name. Fields the POS does not have are
        filled with placeholders and reported in `warnings`.
        """
        warnings: list[str] = []

        name_parts = (customer.name or "").split()
        first_name = name_parts[0] if name_parts else UNKNOWN_NAME
        last_name = " ".join(name_parts[1:]) or UNKNOWN_NAME
        if not name_parts:
            warnings.append(f"First name defaulted to '{UNKNOWN_NAME}'")
        if len(name_parts) < 2:
            warnings.append(f"Last name defaulted to '{UNKNOWN_NAME}'")
        warnings.append(f"Birth date defaulted to {UNKNOWN_BIRTH_DATE.isoformat()}")
        warnings.append(f"Gender defaulted to '{UNKNOWN_GENDER}'")

        new_patient = NewPatient(
            first_name=first_name,
            last_name=last_name,
            email=customer.email or None,
            phone=customer.phone_number or None,
            address=customer.address or None,
            mrn=customer.customer_code or None,
            pos_customer_id=customer.id,
            dob=UNKNOWN_BIRTH_DATE,
            gender=UNKNOWN_GENDER,
        )

        try:
            patient = await self.store.create_patient(new_patient)
        except PosSyncError as e:
            logger.warning("Failed to import POS customer %s: %s", customer.id, e)
            return ImportResult(success=False, error=str(e))
        except Exception as e:
            logger.exception("Unexpected error importing POS customer %s", customer.id)
            return ImportResult(success=False, error=str(e) or type(e).__name__)

        logger.warning(
            "Imported POS customer %s as patient %s; needs review: %s",
            customer.id,
            patient.id,
            "; ".join(warnings),
        )
        return ImportResult(success=True, patient=patient, warnings=warnings)

    async def link_existing(self, patient_id: str, customer_id: str) -> SyncResult:
        """
        Link a patient to a POS customer, replacing any previous link.

        The customer is not looked up in the POS; `customer_id` is expected
        to come from a recent listing.
        """
        async with self._patient_lock(patient_id):
            try:
                await self.store.set_pos_customer_id(patient_id, customer_id)
            except PosSyncError as e:
                logger.warning("Failed to link patient %s: %s", patient_id, e)
                return SyncResult.failed(str(e))

        logger.info("Patient %s linked to POS customer %s", patient_id, customer_id)
        return SyncResult.ok(customer_id)

    async def unlink(self, patient_id: str) -> SyncResult:
        """Forget the POS customer a patient is linked to."""
        async with self._patient_lock(patient_id):
            try:
                await self.store.set_pos_customer_id(patient_id, None)
            except PosSyncError as e:
                logger.warning("Failed to unlink patient %s: %s", patient_id, e)
                return SyncResult.failed(str(e))

        logger.info("Patient %s unlinked from POS", patient_id)
        return SyncResult.ok()
