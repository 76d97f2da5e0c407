"""
Shared pytest fixtures for all tests.

Services run against InMemoryStore, a dict-backed record store with the
same async interface as the Firestore gateway, and a fixed clock.
"""

import copy
import itertools
import operator
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

# Ensure test environment
os.environ["ENVIRONMENT"] = "test"

from frontdesk import dependencies  # noqa: E402
from frontdesk.app import app  # noqa: E402
from frontdesk.config import settings  # noqa: E402
from frontdesk.services.appointment_service import AppointmentService  # noqa: E402
from frontdesk.services.dashboard_service import DashboardService  # noqa: E402
from frontdesk.services.doctor_service import DoctorService  # noqa: E402
from frontdesk.services.firebase_service import DOCTORS, PATIENTS  # noqa: E402
from frontdesk.services.patient_service import PatientService  # noqa: E402
from frontdesk.services.queue_service import QueueService  # noqa: E402


START = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

_OPERATORS = {
    "==": operator.eq,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda value, options: value in options,
}


class InMemoryStore:
    """Record store keeping collections in dicts"""

    def __init__(self):
        self.collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._ids = itertools.count(1)

    def _collection(self, name: str) -> Dict[str, Dict[str, Any]]:
        return self.collections.setdefault(name, {})

    def _matches(self, record, filters) -> bool:
        for field, op, value in filters:
            if field not in record or record[field] is None:
                return False
            if not _OPERATORS[op](record[field], value):
                return False
        return True

    def seed(self, collection: str, **data) -> Dict[str, Any]:
        record_id = data.pop("id", None) or f"{collection}-{next(self._ids)}"
        self._collection(collection)[record_id] = dict(data)
        return {**data, "id": record_id}

    async def create(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        body = {k: v for k, v in data.items() if k != "id"}
        return self.seed(collection, **copy.deepcopy(body))

    async def get(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        record = self._collection(collection).get(record_id)
        if record is None:
            return None
        return {**copy.deepcopy(record), "id": record_id}

    async def find(self, collection, filters=(), order_by=None, descending=False, limit=None) -> List[Dict[str, Any]]:
        records = [
            {**copy.deepcopy(r), "id": record_id}
            for record_id, r in self._collection(collection).items()
            if self._matches(r, filters)
        ]
        if order_by:
            records = [r for r in records if r.get(order_by) is not None]
            records.sort(key=lambda r: r[order_by], reverse=descending)
        if limit:
            records = records[:limit]
        return records

    async def count(self, collection, filters=()) -> int:
        return len(await self.find(collection, filters))

    async def update(self, collection, record_id, data) -> Optional[Dict[str, Any]]:
        record = self._collection(collection).get(record_id)
        if record is None:
            return None
        record.update({k: copy.deepcopy(v) for k, v in data.items() if k != "id"})
        return await self.get(collection, record_id)

    async def delete(self, collection, record_id) -> None:
        self._collection(collection).pop(record_id, None)

    async def create_unless_exists(self, collection, data, unique_on) -> Optional[Dict[str, Any]]:
        if await self.find(collection, unique_on, limit=1):
            return None
        return await self.create(collection, data)


class FixedClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: int) -> None:
        self.now += timedelta(minutes=minutes)


# ============================================================================
# SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def patient_service(store) -> PatientService:
    return PatientService(store=store)


@pytest.fixture
def doctor_service(store) -> DoctorService:
    return DoctorService(store=store)


@pytest.fixture
def queue_service(store, patient_service, clock) -> QueueService:
    return QueueService(store=store, patients=patient_service, consultation_minutes=15, clock=clock)


@pytest.fixture
def appointment_service(store, doctor_service, patient_service, clock) -> AppointmentService:
    return AppointmentService(store=store, doctors=doctor_service, patients=patient_service, clock=clock)


@pytest.fixture
def dashboard_service(store, clock) -> DashboardService:
    return DashboardService(store=store, clock=clock)


# ============================================================================
# TEST DATA
# ============================================================================


@pytest.fixture
def make_patient(store):
    def _make(name: str = "Alice", phone: str = "555-0100", **extra) -> Dict[str, Any]:
        return store.seed(
            PATIENTS,
            name=name,
            phone=phone,
            email=None,
            age=extra.pop("age", 30),
            gender=extra.pop("gender", "female"),
            created_at=extra.pop("created_at", START),
            **extra,
        )
    return _make


@pytest.fixture
def make_doctor(store):
    def _make(name: str = "Dr. Rao", specialization: str = "General Medicine", **extra) -> Dict[str, Any]:
        return store.seed(
            DOCTORS,
            name=name,
            specialization=specialization,
            phone=None,
            email=None,
            experience=None,
            availability=extra.pop("availability", "Available"),
            is_active=extra.pop("is_active", True),
            created_at=START,
            updated_at=START,
            **extra,
        )
    return _make


# ============================================================================
# API CLIENT
# ============================================================================


@pytest.fixture
def client(
    monkeypatch,
    patient_service,
    doctor_service,
    queue_service,
    appointment_service,
    dashboard_service,
):
    """TestClient wired to the in-memory services, open access"""
    monkeypatch.setattr(settings, "API_KEY", "")
    app.dependency_overrides.update({
        dependencies.get_patient_service: lambda: patient_service,
        dependencies.get_doctor_service: lambda: doctor_service,
        dependencies.get_queue_service: lambda: queue_service,
        dependencies.get_appointment_service: lambda: appointment_service,
        dependencies.get_dashboard_service: lambda: dashboard_service,
    })
    yield TestClient(app)
    app.dependency_overrides.clear()
