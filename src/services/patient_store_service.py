"""
Primary patient store client.

Reads patients from, and writes the POS correlation back to, the clinic's
patient table through its PostgREST endpoint. The only column this service
ever updates on an existing row is `loyverse_customer_id`.
"""

import logging
from datetime import datetime, timezone
from typing import Any

import httpx
from pydantic import ValidationError

from src.exceptions import NotFoundError, StoreError, TransportError
from src.schemas.patient import NewPatient, Patient
from src.settings import settings

logger = logging.getLogger(__name__)

PATIENT_TABLE = "/Patient"
PATIENT_COLUMNS = (
    'id,"firstName","middleName","lastName",email,phone,address,mrn,'
    'loyverse_customer_id,deleted_at,"createdAt"'
)


class PatientStoreService:
    """HTTP client for the primary patient store."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.patient_store_url).rstrip("/")
        self.api_key = api_key or settings.patient_store_key
        self.timeout = timeout or settings.patient_store_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self.api_key:
                headers["apikey"] = self.api_key
                headers["Authorization"] = f"Bearer {self.api_key}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        client = await self._get_client()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.TransportError as e:
            raise TransportError(f"Patient store request failed: {e}") from e

        if not response.is_success:
            raise StoreError(response.status_code, response.text)

        if not response.content:
            return []
        try:
            return response.json()
        except ValueError as e:
            raise StoreError(response.status_code, f"Invalid JSON body: {e}") from e

    async def get_patient(self, patient_id: str) -> Patient:
        """
        Load a single patient, including soft-deleted ones.

        Raises:
            NotFoundError: If no patient has this ID
        """
        rows = await self._request(
            "GET",
            PATIENT_TABLE,
            params={"select": PATIENT_COLUMNS, "id": f"eq.{patient_id}"},
        )
        if not rows:
            raise NotFoundError(f"Patient {patient_id} not found")
        return _to_patient(rows[0])

    async def list_patient_ids(self) -> list[str]:
        """IDs of all non-deleted patients, oldest first."""
        rows = await self._request(
            "GET",
            PATIENT_TABLE,
            params={
                "select": "id",
                "deleted_at": "is.null",
                "order": "createdAt.asc,id.asc",
            },
        )
        return [str(row["id"]) for row in rows]

    async def list_active_patients(self) -> list[Patient]:
        """All non-deleted patients, oldest first."""
        rows = await self._request(
            "GET",
            PATIENT_TABLE,
            params={
                "select": PATIENT_COLUMNS,
                "deleted_at": "is.null",
                "order": "createdAt.asc,id.asc",
            },
        )
        return [_to_patient(row) for row in rows]

    async def set_pos_customer_id(
        self, patient_id: str, customer_id: str | None
    ) -> None:
        """
        Store (or clear) the POS customer a patient is linked to.

        Raises:
            NotFoundError: If no patient has this ID
        """
        rows = await self._request(
            "PATCH",
            PATIENT_TABLE,
            params={"id": f"eq.{patient_id}", "select": "id"},
            headers={"Prefer": "return=representation"},
            json={"loyverse_customer_id": customer_id},
        )
        if not rows:
            raise NotFoundError(f"Patient {patient_id} not found")
        logger.debug("Patient %s linked to POS customer %s", patient_id, customer_id)

    async def create_patient(self, patient: NewPatient) -> Patient:
        """Insert a new patient and return the stored row."""
        now = datetime.now(timezone.utc).isoformat()
        payload = patient.model_dump(mode="json", by_alias=True)
        payload["createdAt"] = now
        payload["updatedAt"] = now

        rows = await self._request(
            "POST",
            PATIENT_TABLE,
            params={"select": PATIENT_COLUMNS},
            headers={"Prefer": "return=representation"},
            json=payload,
        )
        if not rows:
            raise StoreError(201, "Insert returned no row")
        return _to_patient(rows[0])

    async def health_check(self) -> bool:
        """Check that the patient table is reachable."""
        try:
            await self._request(
                "GET", PATIENT_TABLE, params={"select": "id", "limit": 1}
            )
            return True
        except Exception:
            return False


def _to_patient(row: Any) -> Patient:
    try:
        return Patient.model_validate(row)
    except ValidationError as e:
        raise StoreError(200, f"Unexpected patient row: {e}") from e
