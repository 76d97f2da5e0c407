from pydantic import BaseModel, Field
from typing import Dict, FrozenSet, List, Optional
from datetime import datetime
from enum import Enum

from frontdesk.exceptions import BadRequestError
from frontdesk.models.patient import PatientSummary


class QueueStatus(str, Enum):
    """Queue entry status"""
    WAITING = "waiting"
    WITH_DOCTOR = "with_doctor"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def _missing_(cls, value):
        # Front desk clients send "with-doctor"
        if isinstance(value, str):
            normalized = value.strip().lower().replace("-", "_")
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @classmethod
    def parse(cls, value) -> "QueueStatus":
        """Convert caller input, raising BadRequestError outside the enumeration"""
        if value is None or value == "":
            raise BadRequestError("Status is required", field="status")
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(member.value for member in cls)
            raise BadRequestError(f"Invalid status. Must be one of: {allowed}", field="status") from None

    def can_become(self, target: "QueueStatus") -> bool:
        return target is self or target in _TRANSITIONS[self]


_TRANSITIONS: Dict[QueueStatus, FrozenSet[QueueStatus]] = {
    QueueStatus.WAITING: frozenset({QueueStatus.WITH_DOCTOR, QueueStatus.CANCELLED}),
    QueueStatus.WITH_DOCTOR: frozenset({QueueStatus.COMPLETED, QueueStatus.CANCELLED}),
    QueueStatus.COMPLETED: frozenset(),
    QueueStatus.CANCELLED: frozenset(),
}


class QueuePriority(str, Enum):
    """Walk-in priority, lowest first"""
    NORMAL = "normal"
    URGENT = "urgent"
    EMERGENCY = "emergency"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @classmethod
    def parse(cls, value) -> "QueuePriority":
        if value is None or value == "":
            raise BadRequestError("Priority is required", field="priority")
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(member.value for member in cls)
            raise BadRequestError(f"Invalid priority. Must be one of: {allowed}", field="priority") from None

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]

    @property
    def badge(self) -> str:
        return _PRIORITY_BADGES[self]

    @property
    def announcement_prefix(self) -> str:
        if self is QueuePriority.EMERGENCY:
            return "EMERGENCY: "
        if self is QueuePriority.URGENT:
            return "URGENT: "
        return ""


_PRIORITY_RANK = {
    QueuePriority.NORMAL: 0,
    QueuePriority.URGENT: 1,
    QueuePriority.EMERGENCY: 2,
}

_PRIORITY_BADGES = {
    QueuePriority.EMERGENCY: "🆘 EMERGENCY",
    QueuePriority.URGENT: "🚨 URGENT",
    QueuePriority.NORMAL: "⏳ Normal",
}


class QueueEntry(BaseModel):
    """Queue entry as returned to callers"""
    id: str
    queue_number: int
    patient_id: str
    patient: Optional[PatientSummary] = None
    status: QueueStatus
    priority: QueuePriority
    notes: Optional[str] = None
    created_at: datetime


class EnhancedQueueEntry(QueueEntry):
    """Waiting entry with its live position and wait estimates"""
    position: int
    estimated_wait_time: str
    time_in_queue: str
    priority_badge: str
    is_urgent: bool


class AddToQueueRequest(BaseModel):
    """Walk-in admission"""
    patient_id: str = Field(..., min_length=1)
    priority: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)


class EmergencyRequest(BaseModel):
    """Emergency admission or promotion"""
    patient_id: str = Field(..., min_length=1)
    notes: Optional[str] = Field(None, max_length=500)


class StatusUpdateRequest(BaseModel):
    status: Optional[str] = None


class PriorityUpdateRequest(BaseModel):
    priority: Optional[str] = None


class CallNextResult(BaseModel):
    patient: Optional[QueueEntry] = None
    announcement: str


class QueueStats(BaseModel):
    total: int
    waiting: int
    with_doctor: int
    completed: int
    cancelled: int
    urgent: int
    emergency: int
    average_wait_time: str
    efficiency: int


class QueueSummary(BaseModel):
    total_waiting: int
    emergency_cases: int
    urgent_cases: int
    longest_wait: str


class HourlyFlow(BaseModel):
    hour: str
    patients: int


class BreakdownItem(BaseModel):
    label: str
    count: int
    percentage: int


class QueueAnalytics(BaseModel):
    hourly_flow: List[HourlyFlow]
    priority_breakdown: List[BreakdownItem]
    status_distribution: List[BreakdownItem]
    peak_hours: List[str]
    recommendations: List[str]
