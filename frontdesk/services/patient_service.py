import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from frontdesk.exceptions import NotFoundError
from frontdesk.models.patient import PatientCreate, PatientPublic, PatientSummary, PatientUpdate
from .firebase_service import PATIENTS, firebase_service

logger = logging.getLogger(__name__)


class PatientService:
    """Patient directory: identity records the queue and scheduler refer to"""

    def __init__(self, store=firebase_service):
        self.store = store

    async def list_patients(self) -> List[PatientPublic]:
        """All patients, newest registration first"""
        records = await self.store.find(PATIENTS, order_by="created_at", descending=True)
        return [PatientPublic(**record) for record in records]

    async def find_by_id(self, patient_id: str) -> Optional[Dict[str, Any]]:
        """Raw patient record, None when absent"""
        if not patient_id:
            return None
        return await self.store.get(PATIENTS, patient_id)

    async def get_patient(self, patient_id: str) -> PatientPublic:
        record = await self.find_by_id(patient_id)
        if not record:
            raise NotFoundError(f"Patient with ID {patient_id} not found", field="patient_id")
        return PatientPublic(**record)

    async def get_summary(self, patient_id: str) -> Optional[PatientSummary]:
        record = await self.find_by_id(patient_id)
        if not record:
            return None
        return summarize(record)

    async def create_patient(self, data: PatientCreate) -> PatientPublic:
        record = data.model_dump()
        record["created_at"] = datetime.now(timezone.utc)
        created = await self.store.create(PATIENTS, record)
        logger.info("Registered patient %s", created["id"])
        return PatientPublic(**created)

    async def update_patient(self, patient_id: str, data: PatientUpdate) -> PatientPublic:
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return await self.get_patient(patient_id)

        updated = await self.store.update(PATIENTS, patient_id, changes)
        if not updated:
            raise NotFoundError(f"Patient with ID {patient_id} not found", field="patient_id")
        logger.info("Updated patient %s fields=%s", patient_id, sorted(changes))
        return PatientPublic(**updated)

    async def search_by_name(self, name: str) -> List[PatientPublic]:
        """Case-insensitive substring match on the patient name"""
        needle = name.strip().lower()
        patients = await self.list_patients()
        if not needle:
            return patients
        return [p for p in patients if needle in p.name.lower()]

    async def find_by_phone(self, phone: str) -> Optional[PatientPublic]:
        records = await self.store.find(PATIENTS, [("phone", "==", phone)], limit=1)
        if not records:
            return None
        return PatientPublic(**records[0])


def summarize(record: Dict[str, Any]) -> PatientSummary:
    return PatientSummary(id=record["id"], name=record.get("name", ""), phone=record.get("phone"))


# Singleton instance
patient_service = PatientService()
