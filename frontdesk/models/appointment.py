from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum

from frontdesk.exceptions import BadRequestError
from frontdesk.models.doctor import DoctorSummary
from frontdesk.models.patient import PatientSummary


class AppointmentStatus(str, Enum):
    """Appointment status enum"""
    SCHEDULED = "scheduled"
    BOOKED = "booked"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().lower().replace("_", "-")
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @classmethod
    def parse(cls, value) -> "AppointmentStatus":
        if value is None or value == "":
            raise BadRequestError("Status is required", field="status")
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(member.value for member in cls)
            raise BadRequestError(
                f"Invalid appointment status. Must be one of: {allowed}", field="status"
            ) from None

    @property
    def is_active(self) -> bool:
        """Active appointments occupy the doctor's slot"""
        return self in ACTIVE_STATUSES


ACTIVE_STATUSES = frozenset({
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.BOOKED,
    AppointmentStatus.CONFIRMED,
})


class AppointmentCreate(BaseModel):
    """
    Model for creating an appointment.

    Required fields are optional here so a missing one is reported as a
    400 naming the field rather than a schema error.
    """
    doctor_id: Optional[str] = None
    patient_id: Optional[str] = None
    appointment_date_time: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)
    status: Optional[str] = None


class AppointmentUpdate(BaseModel):
    """Model for updating an appointment"""
    doctor_id: Optional[str] = None
    patient_id: Optional[str] = None
    appointment_date_time: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)
    status: Optional[str] = None


class AppointmentStatusUpdate(BaseModel):
    status: Optional[str] = None


class AppointmentPublic(BaseModel):
    """Appointment model for API responses"""
    id: str
    doctor_id: str
    patient_id: str
    doctor: Optional[DoctorSummary] = None
    patient: Optional[PatientSummary] = None
    scheduled_at: datetime
    status: AppointmentStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class AppointmentStats(BaseModel):
    total: int
    scheduled: int
    booked: int
    confirmed: int
    completed: int
    cancelled: int
    completion_rate: int
    cancellation_rate: int
