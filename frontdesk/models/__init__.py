"""
Data models for the application
All Pydantic models for request/response validation
"""

from .patient import (
    PatientBase,
    PatientCreate,
    PatientUpdate,
    PatientPublic,
    PatientSummary,
)

from .doctor import (
    AvailabilityUpdate,
    DoctorBase,
    DoctorCreate,
    DoctorUpdate,
    DoctorPublic,
    DoctorStats,
    DoctorSummary,
)

from .queue import (
    QueueStatus,
    QueuePriority,
    QueueEntry,
    EnhancedQueueEntry,
    AddToQueueRequest,
    EmergencyRequest,
    StatusUpdateRequest,
    PriorityUpdateRequest,
    CallNextResult,
    QueueStats,
    QueueSummary,
    QueueAnalytics,
    HourlyFlow,
    BreakdownItem,
)

from .appointment import (
    ACTIVE_STATUSES,
    AppointmentStatus,
    AppointmentCreate,
    AppointmentUpdate,
    AppointmentStatusUpdate,
    AppointmentPublic,
    AppointmentStats,
)

from .dashboard import (
    DashboardStats,
    Overview,
    TodayStats,
    QueueOverview,
    Performance,
    RecentActivity,
    RecentQueueEntry,
    RecentAppointment,
)


__all__ = [
    # Patient models
    "PatientBase",
    "PatientCreate",
    "PatientUpdate",
    "PatientPublic",
    "PatientSummary",

    # Doctor models
    "AvailabilityUpdate",
    "DoctorBase",
    "DoctorCreate",
    "DoctorUpdate",
    "DoctorPublic",
    "DoctorStats",
    "DoctorSummary",

    # Queue models
    "QueueStatus",
    "QueuePriority",
    "QueueEntry",
    "EnhancedQueueEntry",
    "AddToQueueRequest",
    "EmergencyRequest",
    "StatusUpdateRequest",
    "PriorityUpdateRequest",
    "CallNextResult",
    "QueueStats",
    "QueueSummary",
    "QueueAnalytics",
    "HourlyFlow",
    "BreakdownItem",

    # Appointment models
    "ACTIVE_STATUSES",
    "AppointmentStatus",
    "AppointmentCreate",
    "AppointmentUpdate",
    "AppointmentStatusUpdate",
    "AppointmentPublic",
    "AppointmentStats",

    # Dashboard models
    "DashboardStats",
    "Overview",
    "TodayStats",
    "QueueOverview",
    "Performance",
    "RecentActivity",
    "RecentQueueEntry",
    "RecentAppointment",
]
