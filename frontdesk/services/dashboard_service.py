import logging
from datetime import datetime, timezone
from typing import Callable

from frontdesk.config import settings
from frontdesk.models.appointment import AppointmentStatus
from frontdesk.models.dashboard import (
    DashboardStats,
    Overview,
    Performance,
    QueueOverview,
    RecentActivity,
    RecentAppointment,
    RecentQueueEntry,
    TodayStats,
)
from frontdesk.models.queue import QueuePriority, QueueStatus
from .appointment_service import day_bounds, rate
from .firebase_service import APPOINTMENTS, DOCTORS, PATIENTS, QUEUE, firebase_service
from .queue_service import format_duration

logger = logging.getLogger(__name__)

RECENT_QUEUE_ENTRIES = 8
RECENT_APPOINTMENTS = 5


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DashboardService:
    """Read-only rollup over patients, doctors, the queue and appointments"""

    def __init__(self, store=firebase_service, clock: Callable[[], datetime] = _utcnow):
        self.store = store
        self.clock = clock

    async def get_dashboard_stats(self) -> DashboardStats:
        start, end = day_bounds(self.clock().date())
        today = [("scheduled_at", ">=", start), ("scheduled_at", "<=", end)]

        total_patients = await self.store.count(PATIENTS)
        new_patients = await self.store.count(PATIENTS, [("created_at", ">=", start)])
        total_doctors = await self.store.count(DOCTORS)
        active_doctors = await self.store.count(DOCTORS, [("is_active", "==", True)])
        total_appointments = await self.store.count(APPOINTMENTS)

        today_appointments = await self.store.find(APPOINTMENTS, today)
        completed_today = sum(
            1 for a in today_appointments if a.get("status") == AppointmentStatus.COMPLETED.value
        )

        queue = await self.store.find(QUEUE)
        waiting = sum(1 for e in queue if e.get("status") == QueueStatus.WAITING.value)
        with_doctor = sum(1 for e in queue if e.get("status") == QueueStatus.WITH_DOCTOR.value)
        completed = sum(1 for e in queue if e.get("status") == QueueStatus.COMPLETED.value)
        urgent = sum(
            1 for e in queue
            if e.get("status") == QueueStatus.WAITING.value and e.get("priority") == QueuePriority.URGENT.value
        )

        logger.debug(
            "Dashboard rollup over %d queue entries and %d appointments today",
            len(queue), len(today_appointments),
        )
        return DashboardStats(
            overview=Overview(
                total_patients=total_patients,
                total_doctors=total_doctors,
                total_appointments=total_appointments,
            ),
            today=TodayStats(
                new_patients=new_patients,
                appointments=len(today_appointments),
                completed_appointments=completed_today,
                active_doctors=active_doctors,
            ),
            queue=QueueOverview(
                waiting=waiting,
                with_doctor=with_doctor,
                completed=completed,
                urgent=urgent,
                total_in_queue=waiting + with_doctor,
                average_wait_time=format_duration(waiting * settings.CONSULTATION_MINUTES),
            ),
            performance=Performance(
                queue_efficiency=rate(completed, completed + waiting),
                appointment_completion_rate=rate(completed_today, len(today_appointments)),
                doctor_utilization=rate(active_doctors, total_doctors),
            ),
            recent_activity=await self.get_recent_activity(),
        )

    async def get_recent_activity(self) -> RecentActivity:
        entries = await self.store.find(
            QUEUE, order_by="created_at", descending=True, limit=RECENT_QUEUE_ENTRIES
        )
        appointments = await self.store.find(
            APPOINTMENTS, order_by="created_at", descending=True, limit=RECENT_APPOINTMENTS
        )

        names = {}

        async def name_of(collection: str, record_id: str):
            key = (collection, record_id)
            if key not in names:
                record = await self.store.get(collection, record_id)
                names[key] = record.get("name") if record else None
            return names[key]

        return RecentActivity(
            queue_entries=[
                RecentQueueEntry(
                    id=e["id"],
                    patient_name=await name_of(PATIENTS, e["patient_id"]),
                    queue_number=e["queue_number"],
                    status=e["status"],
                    priority=e["priority"],
                    time=e["created_at"],
                )
                for e in entries
            ],
            appointments=[
                RecentAppointment(
                    id=a["id"],
                    patient_name=await name_of(PATIENTS, a["patient_id"]),
                    doctor_name=await name_of(DOCTORS, a["doctor_id"]),
                    appointment_time=a["scheduled_at"],
                    status=a["status"],
                )
                for a in appointments
            ],
        )


# Singleton instance
dashboard_service = DashboardService()
