"""
Walk-in queue engine.

Owns admission, ordering, priority promotion and status progression of
queue entries. Live position is never stored: every read sorts the current
waiting entries by priority rank (emergency > urgent > normal), then
queue number, then arrival time.
"""
import logging
import math
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from frontdesk.config import settings
from frontdesk.exceptions import ConflictError, InvalidTransitionError, NotFoundError
from frontdesk.models.patient import PatientSummary
from frontdesk.models.queue import (
    BreakdownItem,
    CallNextResult,
    EnhancedQueueEntry,
    HourlyFlow,
    QueueAnalytics,
    QueueEntry,
    QueuePriority,
    QueueStats,
    QueueStatus,
    QueueSummary,
)
from .firebase_service import QUEUE, firebase_service
from .patient_service import patient_service, summarize

logger = logging.getLogger(__name__)

NO_PATIENTS_WAITING = "No patients waiting in queue"
CONSULTATION_ROOM = "consultation room"
EMERGENCY_ROOM = "emergency room"
UNKNOWN_PATIENT = "Unknown Patient"

# Analytics thresholds
PEAK_FACTOR = 1.2
EMERGENCY_ALERT_COUNT = 3
LONG_QUEUE_COUNT = 20


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_duration(minutes: int) -> str:
    """Render minutes as "1h 15m" or "45m" """
    minutes = max(int(minutes), 0)
    hours, rest = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {rest}m"
    return f"{rest}m"


def minutes_since(moment: datetime, now: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return max(int((now - moment).total_seconds() // 60), 0)


def percentage(part: int, whole: int) -> int:
    return math.floor(part * 100 / max(whole, 1) + 0.5)


def hour_label(hour: int) -> str:
    """24h clock hour to "8AM" / "12PM" style labels"""
    suffix = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12}{suffix}"


def queue_order(entry: QueueEntry):
    return (-entry.priority.rank, entry.queue_number, entry.created_at)


def assigned_room(priority: QueuePriority) -> str:
    return EMERGENCY_ROOM if priority is QueuePriority.EMERGENCY else CONSULTATION_ROOM


def build_announcement(entry: QueueEntry, room: str = CONSULTATION_ROOM) -> str:
    """Call-out text read to the waiting room"""
    name = entry.patient.name if entry.patient and entry.patient.name else UNKNOWN_PATIENT
    return (
        f"{entry.priority.announcement_prefix}Queue number {entry.queue_number}, "
        f"{name}, please proceed to the {room}"
    )


class QueueService:
    """Single shared walk-in queue"""

    def __init__(
        self,
        store=firebase_service,
        patients=patient_service,
        consultation_minutes: Optional[int] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.patients = patients
        self.consultation_minutes = consultation_minutes or settings.CONSULTATION_MINUTES
        self.clock = clock

    # ==================== READS ====================

    async def list_queue(self, status: Optional[str] = None) -> List[QueueEntry]:
        """All entries (or those with one status) in call order"""
        filters = []
        if status:
            filters.append(("status", "==", QueueStatus.parse(status).value))
        records = await self.store.find(QUEUE, filters)
        entries = await self._to_entries(records)
        return sorted(entries, key=queue_order)

    async def get_entry(self, entry_id: str) -> QueueEntry:
        return await self._to_entry(await self._load(entry_id))

    async def get_next_patient(self) -> Optional[QueueEntry]:
        """Highest priority, lowest queue number among waiting entries"""
        waiting = await self.list_queue(QueueStatus.WAITING)
        return waiting[0] if waiting else None

    async def get_enhanced_queue(self) -> List[EnhancedQueueEntry]:
        """Waiting entries with live position and wait estimates; read-only"""
        now = self.clock()
        waiting = await self.list_queue(QueueStatus.WAITING)
        return [
            EnhancedQueueEntry(
                **entry.model_dump(),
                position=position,
                estimated_wait_time=format_duration(position * self.consultation_minutes),
                time_in_queue=format_duration(minutes_since(entry.created_at, now)),
                priority_badge=entry.priority.badge,
                is_urgent=entry.priority is not QueuePriority.NORMAL,
            )
            for position, entry in enumerate(waiting, start=1)
        ]

    async def get_queue_stats(self) -> QueueStats:
        records = await self.store.find(QUEUE)
        by_status = Counter(r.get("status") for r in records)
        waiting_priorities = Counter(
            r.get("priority") for r in records if r.get("status") == QueueStatus.WAITING.value
        )

        waiting = by_status[QueueStatus.WAITING.value]
        completed = by_status[QueueStatus.COMPLETED.value]
        return QueueStats(
            total=len(records),
            waiting=waiting,
            with_doctor=by_status[QueueStatus.WITH_DOCTOR.value],
            completed=completed,
            cancelled=by_status[QueueStatus.CANCELLED.value],
            urgent=waiting_priorities[QueuePriority.URGENT.value],
            emergency=waiting_priorities[QueuePriority.EMERGENCY.value],
            average_wait_time=format_duration(waiting * self.consultation_minutes),
            efficiency=percentage(completed, completed + waiting),
        )

    async def get_queue_summary(self) -> QueueSummary:
        now = self.clock()
        waiting = await self.list_queue(QueueStatus.WAITING)
        longest = max((minutes_since(e.created_at, now) for e in waiting), default=0)
        return QueueSummary(
            total_waiting=len(waiting),
            emergency_cases=sum(1 for e in waiting if e.priority is QueuePriority.EMERGENCY),
            urgent_cases=sum(1 for e in waiting if e.priority is QueuePriority.URGENT),
            longest_wait=format_duration(longest),
        )

    async def get_queue_analytics(self) -> QueueAnalytics:
        records = await self.store.find(QUEUE)

        per_hour = Counter(r["created_at"].hour for r in records if r.get("created_at"))
        hourly_flow = [HourlyFlow(hour=hour_label(h), patients=per_hour[h]) for h in sorted(per_hour)]

        waiting = [r for r in records if r.get("status") == QueueStatus.WAITING.value]
        priority_counts = Counter(r.get("priority") for r in waiting)
        priority_breakdown = _breakdown(
            (label, priority_counts[p.value])
            for label, p in (
                ("Normal", QueuePriority.NORMAL),
                ("Urgent", QueuePriority.URGENT),
                ("Emergency", QueuePriority.EMERGENCY),
            )
        )

        status_counts = Counter(r.get("status") for r in records)
        status_distribution = _breakdown(
            (label, status_counts[s.value])
            for label, s in (
                ("Waiting", QueueStatus.WAITING),
                ("With Doctor", QueueStatus.WITH_DOCTOR),
                ("Completed", QueueStatus.COMPLETED),
            )
        )

        peak_hours = _peak_hours(hourly_flow)
        return QueueAnalytics(
            hourly_flow=hourly_flow,
            priority_breakdown=priority_breakdown,
            status_distribution=status_distribution,
            peak_hours=peak_hours,
            recommendations=_recommendations(
                peak_hours,
                emergencies=priority_counts[QueuePriority.EMERGENCY.value],
                total_waiting=len(waiting),
            ),
        )

    # ==================== ADMISSION ====================

    async def add_to_queue(
        self,
        patient_id: str,
        priority: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> QueueEntry:
        """
        Admit a walk-in patient.

        Emergency admissions take queue number 0 (head of line); everything
        else is labelled with the running entry count + 1.

        Raises:
            BadRequestError: unknown priority
            NotFoundError: patient does not exist
            ConflictError: patient already has a waiting entry
        """
        level = QueuePriority.parse(priority) if priority else QueuePriority.NORMAL
        patient = await self._require_patient(patient_id)

        if level is QueuePriority.EMERGENCY:
            queue_number = 0
        else:
            queue_number = await self.store.count(QUEUE) + 1

        created = await self.store.create_unless_exists(
            QUEUE,
            self._new_record(patient_id, level, queue_number, notes),
            self._waiting_filter(patient_id),
        )
        if created is None:
            raise ConflictError("Patient is already in the waiting queue", field="patient_id")

        logger.info(
            "Admitted patient %s as entry %s (priority=%s, queue_number=%s)",
            patient_id, created["id"], level.value, queue_number,
        )
        return QueueEntry(**created, patient=patient)

    async def add_emergency_patient(self, patient_id: str, notes: Optional[str] = None) -> QueueEntry:
        """
        Admit as emergency, or promote the patient's waiting entry in place.

        Never creates a second waiting entry for the patient.
        """
        patient = await self._require_patient(patient_id)

        existing = await self._find_waiting_record(patient_id)
        if existing is None:
            created = await self.store.create_unless_exists(
                QUEUE,
                self._new_record(patient_id, QueuePriority.EMERGENCY, 0, notes),
                self._waiting_filter(patient_id),
            )
            if created is not None:
                logger.info("Emergency admission of patient %s as entry %s", patient_id, created["id"])
                return QueueEntry(**created, patient=patient)

            # Another request admitted the patient first; promote that entry
            existing = await self._find_waiting_record(patient_id)
            if existing is None:
                raise ConflictError("Queue entry changed concurrently, retry", field="patient_id")

        changes: Dict[str, Any] = {"priority": QueuePriority.EMERGENCY.value, "queue_number": 0}
        if notes:
            changes["notes"] = notes
        promoted = await self._update(existing["id"], changes)

        logger.info("Promoted entry %s of patient %s to emergency", existing["id"], patient_id)
        return QueueEntry(**promoted, patient=patient)

    # ==================== TRANSITIONS ====================

    async def update_status(self, entry_id: str, status) -> QueueEntry:
        """
        Move an entry along waiting -> with_doctor -> completed, or cancel it.

        Re-applying the current status is a no-op.
        """
        target = QueueStatus.parse(status)
        record = await self._load(entry_id)
        current = QueueStatus(record["status"])

        if target is current:
            return await self._to_entry(record)
        if not current.can_become(target):
            raise InvalidTransitionError(
                f"Cannot change status from {current.value} to {target.value}", field="status"
            )

        updated = await self._update(entry_id, {"status": target.value})
        logger.info("Entry %s status %s -> %s", entry_id, current.value, target.value)
        return await self._to_entry(updated)

    async def update_priority(self, entry_id: str, priority) -> QueueEntry:
        """
        Change priority and relabel the queue number.

        emergency takes number 0. An entry leaving number 0 is relabelled:
        urgent gets (other waiting urgent entries) + 1, normal gets
        (all entries) + 1. Other entries keep their number.
        """
        target = QueuePriority.parse(priority)
        record = await self._load(entry_id)

        changes: Dict[str, Any] = {"priority": target.value}
        if target is QueuePriority.EMERGENCY:
            changes["queue_number"] = 0
        elif record.get("queue_number") == 0:
            if target is QueuePriority.URGENT:
                urgent = await self.store.find(
                    QUEUE,
                    [("priority", "==", QueuePriority.URGENT.value), ("status", "==", QueueStatus.WAITING.value)],
                )
                changes["queue_number"] = sum(1 for r in urgent if r["id"] != entry_id) + 1
            else:
                changes["queue_number"] = await self.store.count(QUEUE) + 1

        updated = await self._update(entry_id, changes)
        logger.info(
            "Entry %s priority %s -> %s (queue_number=%s)",
            entry_id, record.get("priority"), target.value, updated.get("queue_number"),
        )
        return await self._to_entry(updated)

    async def call_next_patient(self) -> CallNextResult:
        """Send the next waiting patient in; reports an empty queue without changes"""
        next_entry = await self.get_next_patient()
        if next_entry is None:
            return CallNextResult(patient=None, announcement=NO_PATIENTS_WAITING)

        called = await self.update_status(next_entry.id, QueueStatus.WITH_DOCTOR)
        return CallNextResult(
            patient=called,
            announcement=build_announcement(called, room=assigned_room(called.priority)),
        )

    async def remove_from_queue(self, entry_id: str) -> QueueEntry:
        """Delete an entry and hand back what it looked like"""
        record = await self._load(entry_id)
        snapshot = await self._to_entry(record)
        await self.store.delete(QUEUE, entry_id)
        logger.info("Removed entry %s of patient %s", entry_id, record.get("patient_id"))
        return snapshot

    # ==================== INTERNALS ====================

    def _new_record(
        self,
        patient_id: str,
        priority: QueuePriority,
        queue_number: int,
        notes: Optional[str],
    ) -> Dict[str, Any]:
        return {
            "queue_number": queue_number,
            "patient_id": patient_id,
            "status": QueueStatus.WAITING.value,
            "priority": priority.value,
            "notes": notes,
            "created_at": self.clock(),
        }

    @staticmethod
    def _waiting_filter(patient_id: str):
        return [("patient_id", "==", patient_id), ("status", "==", QueueStatus.WAITING.value)]

    async def _find_waiting_record(self, patient_id: str) -> Optional[Dict[str, Any]]:
        records = await self.store.find(QUEUE, self._waiting_filter(patient_id), limit=1)
        return records[0] if records else None

    async def _require_patient(self, patient_id: str) -> PatientSummary:
        record = await self.patients.find_by_id(patient_id)
        if not record:
            raise NotFoundError(f"Patient with ID {patient_id} not found", field="patient_id")
        return summarize(record)

    async def _load(self, entry_id: str) -> Dict[str, Any]:
        record = await self.store.get(QUEUE, entry_id)
        if not record:
            raise NotFoundError(f"Queue entry with ID {entry_id} not found", field="id")
        return record

    async def _update(self, entry_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        updated = await self.store.update(QUEUE, entry_id, changes)
        if not updated:
            raise NotFoundError(f"Queue entry with ID {entry_id} not found", field="id")
        return updated

    async def _to_entry(self, record: Dict[str, Any]) -> QueueEntry:
        patient = await self.patients.get_summary(record["patient_id"])
        return QueueEntry(**record, patient=patient)

    async def _to_entries(self, records: Iterable[Dict[str, Any]]) -> List[QueueEntry]:
        cache: Dict[str, Optional[PatientSummary]] = {}
        entries = []
        for record in records:
            patient_id = record["patient_id"]
            if patient_id not in cache:
                cache[patient_id] = await self.patients.get_summary(patient_id)
            entries.append(QueueEntry(**record, patient=cache[patient_id]))
        return entries


def _breakdown(counts: Iterable) -> List[BreakdownItem]:
    counts = list(counts)
    total = sum(count for _, count in counts)
    return [
        BreakdownItem(label=label, count=count, percentage=percentage(count, total))
        for label, count in counts
    ]


def _peak_hours(hourly_flow: List[HourlyFlow]) -> List[str]:
    if not hourly_flow:
        return []
    mean = sum(h.patients for h in hourly_flow) / len(hourly_flow)
    return [h.hour for h in hourly_flow if h.patients > mean * PEAK_FACTOR]


def _recommendations(peak_hours: List[str], emergencies: int, total_waiting: int) -> List[str]:
    recommendations = []
    if peak_hours:
        recommendations.append(f"Consider adding more staff during peak hours: {', '.join(peak_hours)}")
    if emergencies > EMERGENCY_ALERT_COUNT:
        recommendations.append("High emergency case volume - ensure emergency protocols are active")
    if total_waiting > LONG_QUEUE_COUNT:
        recommendations.append("Queue is getting long - consider optimizing patient flow")
    return recommendations


# Singleton instance
queue_service = QueueService()
