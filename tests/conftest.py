"""Test configuration and fixtures."""

import asyncio
import itertools
from typing import Any, AsyncGenerator, Generator, Protocol
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from src.clients.patient_store import get_patient_store_service
from src.clients.patient_sync import get_patient_sync_service
from src.clients.pos import get_pos_service
from src.exceptions import NotFoundError
from src.main import app
from src.schemas.patient import NewPatient, Patient
from src.schemas.pos import PosCustomer
from src.services.patient_store_service import PatientStoreService
from src.services.pos_service import PosService
from src.sync.patient_sync import PatientSyncService


def make_patient(patient_id: str = "patient-1", **overrides: Any) -> Patient:
    """Build a patient with sensible defaults."""
    fields: dict[str, Any] = {
        "id": patient_id,
        "first_name": "Maria",
        "middle_name": None,
        "last_name": "Santos",
        "email": "maria@example.com",
        "phone": "09171234567",
        "address": "12 Rizal St, Makati",
        "mrn": "MRN-0001",
        "pos_customer_id": None,
    }
    fields.update(overrides)
    return Patient(**fields)


def make_customer(customer_id: str | None = "cust-1", **overrides: Any) -> PosCustomer:
    """Build a POS customer with sensible defaults."""
    fields: dict[str, Any] = {
        "id": customer_id,
        "name": "Maria Santos",
        "email": "maria@example.com",
        "phone_number": "+63 917 123 4567",
    }
    fields.update(overrides)
    return PosCustomer(**fields)


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Configure pytest-anyio to use asyncio."""
    return "asyncio"


@pytest.fixture
def patients() -> dict[str, Patient]:
    """Patients held by the mocked store, in creation order."""
    return {}


@pytest.fixture
def mock_patient_store_service(patients: dict[str, Patient]) -> AsyncMock:
    """Mock patient store backed by the `patients` dict."""
    mock = AsyncMock(spec=PatientStoreService)

    async def get_patient(patient_id: str) -> Patient:
        if patient_id not in patients:
            raise NotFoundError(f"Patient {patient_id} not found")
        return patients[patient_id]

    async def list_patient_ids() -> list[str]:
        return [p.id for p in patients.values() if not p.is_deleted]

    async def list_active_patients() -> list[Patient]:
        return [p for p in patients.values() if not p.is_deleted]

    async def set_pos_customer_id(patient_id: str, customer_id: str | None) -> None:
        if patient_id not in patients:
            raise NotFoundError(f"Patient {patient_id} not found")
        patients[patient_id] = patients[patient_id].model_copy(
            update={"pos_customer_id": customer_id}
        )

    async def create_patient(new_patient: NewPatient) -> Patient:
        patient_id = f"patient-{len(patients) + 1}"
        patient = Patient(id=patient_id, **new_patient.model_dump())
        patients[patient_id] = patient
        return patient

    mock.get_patient.side_effect = get_patient
    mock.list_patient_ids.side_effect = list_patient_ids
    mock.list_active_patients.side_effect = list_active_patients
    mock.set_pos_customer_id.side_effect = set_pos_customer_id
    mock.create_patient.side_effect = create_patient
    mock.health_check.return_value = True
    return mock


@pytest.fixture
def mock_pos_service() -> AsyncMock:
    """Mock POS service that assigns IDs to new customers."""
    mock = AsyncMock(spec=PosService)
    ids = itertools.count(1)

    async def upsert_customer(customer: PosCustomer) -> PosCustomer:
        # Yield so concurrent syncs can interleave
        await asyncio.sleep(0)
        return customer.model_copy(update={"id": customer.id or f"cust-{next(ids)}"})

    mock.upsert_customer.side_effect = upsert_customer
    mock.delete_customer.return_value = None
    mock.list_all_customers.return_value = []
    mock.health_check.return_value = True
    return mock


@pytest.fixture
def sync_service(
    mock_pos_service: AsyncMock,
    mock_patient_store_service: AsyncMock,
) -> PatientSyncService:
    """PatientSyncService wired to the mocked POS and store."""
    return PatientSyncService(
        pos=mock_pos_service,
        store=mock_patient_store_service,
        country_code="PH",
        concurrency=1,
    )


@pytest.fixture
def mock_patient_sync_service() -> AsyncMock:
    """Mock sync service for router tests."""
    return AsyncMock(spec=PatientSyncService)


class ClientFactory(Protocol):
    """Protocol for client factory fixture."""

    def __call__(self) -> AsyncClient: ...


@pytest.fixture
def client_factory(
    mock_pos_service: AsyncMock,
    mock_patient_store_service: AsyncMock,
    mock_patient_sync_service: AsyncMock,
) -> Generator[ClientFactory, None, None]:
    """Factory for creating test clients with mocked dependencies."""

    def _create_client() -> AsyncClient:
        app.dependency_overrides[get_pos_service] = lambda: mock_pos_service
        app.dependency_overrides[get_patient_store_service] = (
            lambda: mock_patient_store_service
        )
        app.dependency_overrides[get_patient_sync_service] = (
            lambda: mock_patient_sync_service
        )

        transport = ASGITransport(app=app)
        return AsyncClient(transport=transport, base_url="http://testserver")

    yield _create_client

    app.dependency_overrides.clear()


@pytest.fixture
async def client(
    client_factory: ClientFactory,
) -> AsyncGenerator[AsyncClient, None]:
    """Async client for testing endpoints."""
    async with client_factory() as c:
        yield c
