"""
Appointment scheduler.

Bookings are exact instants per doctor; no duration is modelled, so two
appointments collide only when doctor and instant are identical and the
other appointment is still active (scheduled, booked or confirmed).
"""
import logging
import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from frontdesk.exceptions import BadRequestError, NotFoundError
from frontdesk.models.appointment import (
    ACTIVE_STATUSES,
    AppointmentCreate,
    AppointmentPublic,
    AppointmentStats,
    AppointmentStatus,
    AppointmentUpdate,
)
from .doctor_service import doctor_service, summarize as summarize_doctor
from .firebase_service import APPOINTMENTS, firebase_service
from .patient_service import patient_service

logger = logging.getLogger(__name__)

ACTIVE_VALUES = sorted(status.value for status in ACTIVE_STATUSES)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_instant(value: Union[str, datetime, None], field: str = "appointment_date_time") -> datetime:
    """
    Parse an ISO-8601 date-time into an aware UTC datetime.

    Naive input is taken as UTC. A trailing "Z" is accepted.
    """
    if value is None or value == "":
        raise BadRequestError(f"{field} is required", field=field)

    if isinstance(value, datetime):
        moment = value
    else:
        text = str(value).strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            raise BadRequestError(f"Invalid date-time for {field}: {value}", field=field) from None

    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def parse_day(value: Union[str, date], field: str = "date") -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise BadRequestError(f"Invalid date for {field}: {value}, expected YYYY-MM-DD", field=field) from None


def day_bounds(day: date):
    """Inclusive UTC bounds of a calendar day"""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1) - timedelta(microseconds=1)


def rate(part: int, whole: int) -> int:
    """Whole-number percentage, halves rounded up; 0 for an empty whole"""
    return math.floor(part * 100 / whole + 0.5) if whole else 0


class AppointmentService:
    """Validates bookings and keeps one active appointment per doctor and instant"""

    def __init__(
        self,
        store=firebase_service,
        doctors=doctor_service,
        patients=patient_service,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.doctors = doctors
        self.patients = patients
        self.clock = clock

    # ==================== MUTATIONS ====================

    async def create_appointment(self, data: AppointmentCreate) -> AppointmentPublic:
        """
        Book an appointment.

        Raises:
            BadRequestError: missing field, bad date-time, unknown status,
                inactive doctor or an active booking at the same instant
            NotFoundError: doctor or patient does not exist
        """
        if not data.doctor_id:
            raise BadRequestError("Doctor selection is required", field="doctor_id")
        if not data.patient_id:
            raise BadRequestError("Patient selection is required", field="patient_id")
        if not data.appointment_date_time:
            raise BadRequestError("Appointment date and time is required", field="appointment_date_time")

        scheduled_at = parse_instant(data.appointment_date_time)
        status = AppointmentStatus.parse(data.status) if data.status else AppointmentStatus.BOOKED

        await self._require_active_doctor(data.doctor_id)
        await self._require_patient(data.patient_id)

        now = self.clock()
        record = {
            "doctor_id": data.doctor_id,
            "patient_id": data.patient_id,
            "scheduled_at": scheduled_at,
            "status": status.value,
            "notes": data.notes,
            "created_at": now,
            "updated_at": now,
        }
        if status.is_active:
            created = await self.store.create_unless_exists(
                APPOINTMENTS, record, self._slot_filter(data.doctor_id, scheduled_at)
            )
            if created is None:
                self._reject_taken_slot(data.doctor_id, scheduled_at)
        else:
            created = await self.store.create(APPOINTMENTS, record)
        logger.info(
            "Booked appointment %s: doctor=%s patient=%s at %s (%s)",
            created["id"], data.doctor_id, data.patient_id, scheduled_at.isoformat(), status.value,
        )
        return await self._to_public(created)

    async def update_appointment(self, appointment_id: str, data: AppointmentUpdate) -> AppointmentPublic:
        """
        Patch an appointment.

        The slot is re-checked whenever the doctor or the instant changes or
        an inactive appointment becomes active again, against the effective
        doctor and instant and excluding this appointment itself.
        """
        record = await self._load(appointment_id)
        patch = data.model_dump(exclude_unset=True)
        changes: Dict[str, Any] = {}

        if patch.get("doctor_id"):
            await self._require_active_doctor(patch["doctor_id"])
            changes["doctor_id"] = patch["doctor_id"]
        if patch.get("patient_id"):
            await self._require_patient(patch["patient_id"])
            changes["patient_id"] = patch["patient_id"]
        if patch.get("appointment_date_time"):
            changes["scheduled_at"] = parse_instant(patch["appointment_date_time"])
        if patch.get("status"):
            changes["status"] = AppointmentStatus.parse(patch["status"]).value
        if "notes" in patch:
            changes["notes"] = patch["notes"]

        if not changes:
            return await self._to_public(record)

        doctor_id = changes.get("doctor_id", record["doctor_id"])
        scheduled_at = changes.get("scheduled_at", record["scheduled_at"])
        status = AppointmentStatus(changes.get("status", record["status"]))
        moved = doctor_id != record["doctor_id"] or scheduled_at != record["scheduled_at"]
        reactivated = not AppointmentStatus(record["status"]).is_active
        if (moved or reactivated) and status.is_active:
            await self._ensure_slot_free(doctor_id, scheduled_at, exclude_id=appointment_id)

        updated = await self._apply(appointment_id, changes)
        logger.info("Updated appointment %s fields=%s", appointment_id, sorted(changes))
        return await self._to_public(updated)

    async def update_status(self, appointment_id: str, status) -> AppointmentPublic:
        """
        Overwrite the status; any value of the enumeration is accepted.

        Reviving a cancelled, completed or no-show appointment still needs
        its slot to be free.
        """
        target = AppointmentStatus.parse(status)
        record = await self._load(appointment_id)
        if target.is_active and not AppointmentStatus(record["status"]).is_active:
            await self._ensure_slot_free(record["doctor_id"], record["scheduled_at"], exclude_id=appointment_id)
        updated = await self._apply(appointment_id, {"status": target.value})
        logger.info("Appointment %s status -> %s", appointment_id, target.value)
        return await self._to_public(updated)

    async def delete_appointment(self, appointment_id: str) -> None:
        await self._load(appointment_id)
        await self.store.delete(APPOINTMENTS, appointment_id)
        logger.info("Deleted appointment %s", appointment_id)

    # ==================== QUERIES ====================

    async def list_appointments(self) -> List[AppointmentPublic]:
        return await self._query()

    async def get_appointment(self, appointment_id: str) -> AppointmentPublic:
        return await self._to_public(await self._load(appointment_id))

    async def list_by_doctor(self, doctor_id: str) -> List[AppointmentPublic]:
        return await self._query([("doctor_id", "==", doctor_id)])

    async def list_by_patient(self, patient_id: str) -> List[AppointmentPublic]:
        return await self._query([("patient_id", "==", patient_id)])

    async def list_by_date(self, day: Union[str, date]) -> List[AppointmentPublic]:
        """Appointments on one UTC calendar day"""
        start, end = day_bounds(parse_day(day))
        return await self._query([("scheduled_at", ">=", start), ("scheduled_at", "<=", end)])

    async def list_by_date_range(self, start_date: str, end_date: str) -> List[AppointmentPublic]:
        """Appointments between two instants, both ends inclusive"""
        start = parse_instant(start_date, field="start_date")
        end = parse_instant(end_date, field="end_date")
        if start > end:
            raise BadRequestError("start_date must not be after end_date", field="start_date")
        return await self._query([("scheduled_at", ">=", start), ("scheduled_at", "<=", end)])

    async def list_today(self) -> List[AppointmentPublic]:
        return await self.list_by_date(self.clock().date())

    async def check_doctor_availability(self, doctor_id: str, date_time: str) -> bool:
        """True when no active appointment holds the doctor at that instant"""
        if not doctor_id:
            raise BadRequestError("Doctor selection is required", field="doctor_id")
        scheduled_at = parse_instant(date_time, field="date_time")
        conflicts = await self._active_at(doctor_id, scheduled_at)
        return not conflicts

    async def get_stats(self) -> AppointmentStats:
        records = await self.store.find(APPOINTMENTS)
        counts = {status: 0 for status in AppointmentStatus}
        for record in records:
            counts[AppointmentStatus(record["status"])] += 1

        total = len(records)
        return AppointmentStats(
            total=total,
            scheduled=counts[AppointmentStatus.SCHEDULED],
            booked=counts[AppointmentStatus.BOOKED],
            confirmed=counts[AppointmentStatus.CONFIRMED],
            completed=counts[AppointmentStatus.COMPLETED],
            cancelled=counts[AppointmentStatus.CANCELLED],
            completion_rate=rate(counts[AppointmentStatus.COMPLETED], total),
            cancellation_rate=rate(counts[AppointmentStatus.CANCELLED], total),
        )

    # ==================== INTERNALS ====================

    async def _require_active_doctor(self, doctor_id: str) -> Dict[str, Any]:
        record = await self.doctors.find_by_id(doctor_id)
        if not record:
            raise NotFoundError(f"Doctor with ID {doctor_id} not found", field="doctor_id")
        if not record.get("is_active", True):
            raise BadRequestError(f"Doctor with ID {doctor_id} is not active", field="doctor_id")
        return record

    async def _require_patient(self, patient_id: str) -> Dict[str, Any]:
        record = await self.patients.find_by_id(patient_id)
        if not record:
            raise NotFoundError(f"Patient with ID {patient_id} not found", field="patient_id")
        return record

    @staticmethod
    def _slot_filter(doctor_id: str, scheduled_at: datetime):
        return [
            ("doctor_id", "==", doctor_id),
            ("scheduled_at", "==", scheduled_at),
            ("status", "in", ACTIVE_VALUES),
        ]

    async def _active_at(self, doctor_id: str, scheduled_at: datetime) -> List[Dict[str, Any]]:
        return await self.store.find(APPOINTMENTS, self._slot_filter(doctor_id, scheduled_at))

    @staticmethod
    def _reject_taken_slot(doctor_id: str, scheduled_at: datetime, taken_by: Optional[str] = None) -> None:
        logger.info(
            "Slot taken: doctor=%s at %s by appointment %s",
            doctor_id, scheduled_at.isoformat(), taken_by or "unknown",
        )
        raise BadRequestError(
            "Doctor already has an appointment at this time", field="appointment_date_time"
        )

    async def _ensure_slot_free(
        self,
        doctor_id: str,
        scheduled_at: datetime,
        exclude_id: Optional[str] = None,
    ) -> None:
        conflicts = [r for r in await self._active_at(doctor_id, scheduled_at) if r["id"] != exclude_id]
        if conflicts:
            self._reject_taken_slot(doctor_id, scheduled_at, conflicts[0]["id"])

    async def _load(self, appointment_id: str) -> Dict[str, Any]:
        record = await self.store.get(APPOINTMENTS, appointment_id)
        if not record:
            raise NotFoundError(f"Appointment with ID {appointment_id} not found", field="id")
        return record

    async def _apply(self, appointment_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        changes["updated_at"] = self.clock()
        updated = await self.store.update(APPOINTMENTS, appointment_id, changes)
        if not updated:
            raise NotFoundError(f"Appointment with ID {appointment_id} not found", field="id")
        return updated

    async def _query(self, filters=()) -> List[AppointmentPublic]:
        records = await self.store.find(APPOINTMENTS, filters)
        records.sort(key=lambda r: r["scheduled_at"])
        return [await self._to_public(record) for record in records]

    async def _to_public(self, record: Dict[str, Any]) -> AppointmentPublic:
        doctor = await self.doctors.find_by_id(record["doctor_id"])
        patient = await self.patients.get_summary(record["patient_id"])
        return AppointmentPublic(
            **record,
            doctor=summarize_doctor(doctor) if doctor else None,
            patient=patient,
        )


# Singleton instance
appointment_service = AppointmentService()
