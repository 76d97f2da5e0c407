import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from frontdesk.exceptions import NotFoundError
from frontdesk.models.doctor import DoctorCreate, DoctorPublic, DoctorStats, DoctorSummary, DoctorUpdate
from .firebase_service import DOCTORS, firebase_service

logger = logging.getLogger(__name__)

AVAILABLE = "Available"


class DoctorService:
    """High-level service for doctor-related operations"""

    def __init__(self, store=firebase_service):
        self.store = store

    async def list_doctors(
        self,
        specialization: Optional[str] = None,
        include_inactive: bool = False,
    ) -> List[DoctorPublic]:
        """Doctors ordered by name, active only unless asked otherwise"""
        filters = [] if include_inactive else [("is_active", "==", True)]
        records = await self.store.find(DOCTORS, filters)
        doctors = sorted((DoctorPublic(**r) for r in records), key=lambda d: d.name.lower())

        if specialization:
            needle = specialization.strip().lower()
            doctors = [d for d in doctors if needle in d.specialization.lower()]
        return doctors

    async def find_by_id(self, doctor_id: str, active_only: bool = False) -> Optional[Dict[str, Any]]:
        """Raw doctor record, None when absent (or inactive with active_only)"""
        if not doctor_id:
            return None
        record = await self.store.get(DOCTORS, doctor_id)
        if record and active_only and not record.get("is_active", True):
            return None
        return record

    async def get_doctor(self, doctor_id: str, active_only: bool = False) -> DoctorPublic:
        record = await self.find_by_id(doctor_id, active_only=active_only)
        if not record:
            raise NotFoundError(f"Doctor with ID {doctor_id} not found", field="doctor_id")
        return DoctorPublic(**record)

    async def create_doctor(self, data: DoctorCreate) -> DoctorPublic:
        now = datetime.now(timezone.utc)
        record = data.model_dump()
        record.update({"is_active": True, "created_at": now, "updated_at": now})
        created = await self.store.create(DOCTORS, record)
        logger.info("Registered doctor %s (%s)", created["id"], data.specialization)
        return DoctorPublic(**created)

    async def update_doctor(self, doctor_id: str, data: DoctorUpdate) -> DoctorPublic:
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            return await self.get_doctor(doctor_id)
        return await self._apply(doctor_id, changes)

    async def deactivate_doctor(self, doctor_id: str) -> DoctorPublic:
        """Soft delete: the record stays, bookings against it are refused"""
        return await self._apply(doctor_id, {"is_active": False})

    async def update_availability(self, doctor_id: str, availability: str) -> DoctorPublic:
        return await self._apply(doctor_id, {"availability": availability})

    async def list_available(self) -> List[DoctorPublic]:
        records = await self.store.find(
            DOCTORS, [("availability", "==", AVAILABLE), ("is_active", "==", True)]
        )
        return sorted((DoctorPublic(**r) for r in records), key=lambda d: d.name.lower())

    async def get_stats(self) -> DoctorStats:
        total = await self.store.count(DOCTORS)
        available = await self.store.count(DOCTORS, [("availability", "==", AVAILABLE)])
        return DoctorStats(
            total_doctors=total,
            available_doctors=available,
            busy_doctors=total - available,
        )

    async def _apply(self, doctor_id: str, changes: Dict[str, Any]) -> DoctorPublic:
        changes["updated_at"] = datetime.now(timezone.utc)
        updated = await self.store.update(DOCTORS, doctor_id, changes)
        if not updated:
            raise NotFoundError(f"Doctor with ID {doctor_id} not found", field="doctor_id")
        logger.info("Updated doctor %s fields=%s", doctor_id, sorted(changes))
        return DoctorPublic(**updated)


def summarize(record: Dict[str, Any]) -> DoctorSummary:
    return DoctorSummary(
        id=record["id"],
        name=record.get("name", ""),
        specialization=record.get("specialization"),
    )


# Singleton instance
doctor_service = DoctorService()
