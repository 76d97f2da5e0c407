"""
Tests for the walk-in queue engine.
"""

import pytest

from frontdesk.exceptions import BadRequestError, ConflictError, InvalidTransitionError, NotFoundError
from frontdesk.models.queue import QueuePriority, QueueStatus
from frontdesk.services.firebase_service import QUEUE
from frontdesk.services.queue_service import (
    NO_PATIENTS_WAITING,
    build_announcement,
    format_duration,
    hour_label,
)


class TestFormatting:
    def test_format_duration_minutes_only(self):
        assert format_duration(45) == "45m"
        assert format_duration(0) == "0m"

    def test_format_duration_hours(self):
        assert format_duration(75) == "1h 15m"
        assert format_duration(120) == "2h 0m"

    def test_format_duration_never_negative(self):
        assert format_duration(-5) == "0m"

    def test_hour_label(self):
        assert hour_label(0) == "12AM"
        assert hour_label(8) == "8AM"
        assert hour_label(12) == "12PM"
        assert hour_label(15) == "3PM"


class TestAdmission:
    @pytest.mark.asyncio
    async def test_admit_defaults_to_normal_with_next_label(self, queue_service, make_patient):
        first = make_patient("Bob")
        seven = make_patient("Carol")
        await queue_service.add_to_queue(first["id"])

        entry = await queue_service.add_to_queue(seven["id"])

        assert entry.status is QueueStatus.WAITING
        assert entry.priority is QueuePriority.NORMAL
        assert entry.queue_number == 2
        assert entry.patient.name == "Carol"

    @pytest.mark.asyncio
    async def test_queue_number_counts_every_entry_ever_created(self, queue_service, make_patient):
        a, b = make_patient("A"), make_patient("B")
        entry = await queue_service.add_to_queue(a["id"])
        await queue_service.update_status(entry.id, "with_doctor")
        await queue_service.update_status(entry.id, "completed")

        second = await queue_service.add_to_queue(b["id"])

        assert second.queue_number == 2

    @pytest.mark.asyncio
    async def test_emergency_admission_takes_head_of_line(self, queue_service, make_patient):
        patient = make_patient()
        entry = await queue_service.add_to_queue(patient["id"], priority="EMERGENCY")

        assert entry.priority is QueuePriority.EMERGENCY
        assert entry.queue_number == 0

    @pytest.mark.asyncio
    async def test_duplicate_waiting_admission_rejected(self, queue_service, make_patient):
        nine = make_patient("Nine")
        await queue_service.add_to_queue(nine["id"])

        with pytest.raises(ConflictError):
            await queue_service.add_to_queue(nine["id"])

        entries = await queue_service.list_queue()
        assert [e.patient_id for e in entries].count(nine["id"]) == 1

    @pytest.mark.asyncio
    async def test_conflict_is_a_bad_request(self, queue_service, make_patient):
        patient = make_patient()
        await queue_service.add_to_queue(patient["id"])

        with pytest.raises(BadRequestError) as exc_info:
            await queue_service.add_to_queue(patient["id"], priority="urgent")
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_readmission_after_leaving_waiting(self, queue_service, make_patient):
        patient = make_patient()
        entry = await queue_service.add_to_queue(patient["id"])
        await queue_service.update_status(entry.id, "cancelled")

        again = await queue_service.add_to_queue(patient["id"])

        assert again.id != entry.id

    @pytest.mark.asyncio
    async def test_unknown_patient(self, queue_service):
        with pytest.raises(NotFoundError):
            await queue_service.add_to_queue("nobody")

    @pytest.mark.asyncio
    async def test_unknown_priority(self, queue_service, make_patient, store):
        patient = make_patient()
        with pytest.raises(BadRequestError) as exc_info:
            await queue_service.add_to_queue(patient["id"], priority="critical")
        assert exc_info.value.field == "priority"
        assert await store.count(QUEUE) == 0


class TestEmergencyPromotion:
    @pytest.mark.asyncio
    async def test_promotes_waiting_entry_in_place(self, queue_service, make_patient):
        other = make_patient("Other")
        three = make_patient("Three")
        await queue_service.add_to_queue(other["id"])
        waiting = await queue_service.add_to_queue(three["id"])

        promoted = await queue_service.add_emergency_patient(three["id"])

        assert promoted.id == waiting.id
        assert promoted.priority is QueuePriority.EMERGENCY
        assert promoted.queue_number == 0
        assert len(await queue_service.list_queue()) == 2

    @pytest.mark.asyncio
    async def test_idempotent(self, queue_service, make_patient):
        patient = make_patient()
        await queue_service.add_to_queue(patient["id"])

        first = await queue_service.add_emergency_patient(patient["id"])
        second = await queue_service.add_emergency_patient(patient["id"])

        assert first.id == second.id
        assert second.priority is QueuePriority.EMERGENCY
        assert second.queue_number == 0
        assert len(await queue_service.list_queue()) == 1

    @pytest.mark.asyncio
    async def test_creates_entry_when_not_waiting(self, queue_service, make_patient):
        patient = make_patient()
        entry = await queue_service.add_emergency_patient(patient["id"], notes="chest pain")

        assert entry.priority is QueuePriority.EMERGENCY
        assert entry.queue_number == 0
        assert entry.notes == "chest pain"

    @pytest.mark.asyncio
    async def test_promotes_entry_admitted_concurrently(self, queue_service, make_patient, store, monkeypatch):
        patient = make_patient()
        competitor = {}

        async def racing_insert(collection, data, unique_on):
            competitor.update(store.seed(collection, **{**data, "priority": "normal", "queue_number": 4}))
            return None

        monkeypatch.setattr(store, "create_unless_exists", racing_insert)

        entry = await queue_service.add_emergency_patient(patient["id"], notes="collapsed")

        assert entry.id == competitor["id"]
        assert entry.priority is QueuePriority.EMERGENCY
        assert entry.queue_number == 0
        assert entry.notes == "collapsed"
        waiting = await store.find(QUEUE, [("patient_id", "==", patient["id"]), ("status", "==", "waiting")])
        assert [r["id"] for r in waiting] == [competitor["id"]]

    @pytest.mark.asyncio
    async def test_concurrent_entry_gone_asks_for_retry(self, queue_service, make_patient, store, monkeypatch):
        patient = make_patient()

        async def racing_insert(collection, data, unique_on):
            return None

        monkeypatch.setattr(store, "create_unless_exists", racing_insert)

        with pytest.raises(ConflictError) as exc_info:
            await queue_service.add_emergency_patient(patient["id"])

        assert exc_info.value.field == "patient_id"
        assert await store.count(QUEUE) == 0


class TestStatusTransitions:
    @pytest.mark.asyncio
    async def test_full_progression(self, queue_service, make_patient):
        patient = make_patient()
        entry = await queue_service.add_to_queue(patient["id"])

        entry = await queue_service.update_status(entry.id, "with-doctor")
        assert entry.status is QueueStatus.WITH_DOCTOR
        entry = await queue_service.update_status(entry.id, "completed")
        assert entry.status is QueueStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_terminal_state_cannot_reopen(self, queue_service, make_patient):
        patient = make_patient()
        entry = await queue_service.add_to_queue(patient["id"])
        await queue_service.update_status(entry.id, "cancelled")

        with pytest.raises(InvalidTransitionError):
            await queue_service.update_status(entry.id, "waiting")

    @pytest.mark.asyncio
    async def test_cannot_skip_consultation(self, queue_service, make_patient):
        patient = make_patient()
        entry = await queue_service.add_to_queue(patient["id"])

        with pytest.raises(InvalidTransitionError):
            await queue_service.update_status(entry.id, "completed")

    @pytest.mark.asyncio
    async def test_same_status_is_noop(self, queue_service, make_patient):
        patient = make_patient()
        entry = await queue_service.add_to_queue(patient["id"])

        same = await queue_service.update_status(entry.id, "waiting")

        assert same.status is QueueStatus.WAITING

    @pytest.mark.asyncio
    async def test_invalid_status_never_mutates(self, queue_service, make_patient, store):
        patient = make_patient()
        entry = await queue_service.add_to_queue(patient["id"])

        with pytest.raises(BadRequestError) as exc_info:
            await queue_service.update_status(entry.id, "done")

        assert exc_info.value.field == "status"
        assert (await store.get(QUEUE, entry.id))["status"] == "waiting"

    @pytest.mark.asyncio
    async def test_missing_entry(self, queue_service):
        with pytest.raises(NotFoundError):
            await queue_service.update_status("missing", "completed")


class TestPriorityUpdates:
    @pytest.mark.asyncio
    async def test_demote_from_head_to_urgent(self, queue_service, make_patient):
        a, b, c = make_patient("A"), make_patient("B"), make_patient("C")
        await queue_service.add_to_queue(a["id"], priority="urgent")
        await queue_service.add_to_queue(b["id"], priority="urgent")
        head = await queue_service.add_emergency_patient(c["id"])

        entry = await queue_service.update_priority(head.id, "urgent")

        assert entry.priority is QueuePriority.URGENT
        assert entry.queue_number == 3

    @pytest.mark.asyncio
    async def test_demote_from_head_to_normal(self, queue_service, make_patient):
        a, b = make_patient("A"), make_patient("B")
        await queue_service.add_to_queue(a["id"])
        head = await queue_service.add_emergency_patient(b["id"])

        entry = await queue_service.update_priority(head.id, "normal")

        assert entry.priority is QueuePriority.NORMAL
        assert entry.queue_number == 3

    @pytest.mark.asyncio
    async def test_promote_to_emergency(self, queue_service, make_patient):
        patient = make_patient()
        entry = await queue_service.add_to_queue(patient["id"])

        entry = await queue_service.update_priority(entry.id, "emergency")

        assert entry.queue_number == 0

    @pytest.mark.asyncio
    async def test_other_changes_keep_number(self, queue_service, make_patient):
        a, b = make_patient("A"), make_patient("B")
        await queue_service.add_to_queue(a["id"])
        entry = await queue_service.add_to_queue(b["id"])

        entry = await queue_service.update_priority(entry.id, "urgent")

        assert entry.queue_number == 2

    @pytest.mark.asyncio
    async def test_invalid_priority(self, queue_service, make_patient):
        patient = make_patient()
        entry = await queue_service.add_to_queue(patient["id"])

        with pytest.raises(BadRequestError):
            await queue_service.update_priority(entry.id, "")


class TestOrderingAndCalls:
    @pytest.mark.asyncio
    async def test_priority_then_queue_number(self, queue_service, make_patient):
        normal = make_patient("Normal")
        urgent = make_patient("Urgent")
        emergency = make_patient("Emergency")
        late_urgent = make_patient("Late Urgent")
        await queue_service.add_to_queue(normal["id"])
        await queue_service.add_to_queue(urgent["id"], priority="urgent")
        await queue_service.add_to_queue(emergency["id"], priority="emergency")
        await queue_service.add_to_queue(late_urgent["id"], priority="urgent")

        waiting = await queue_service.list_queue("waiting")

        assert [e.patient.name for e in waiting] == ["Emergency", "Urgent", "Late Urgent", "Normal"]
        assert (await queue_service.get_next_patient()).patient.name == "Emergency"

    @pytest.mark.asyncio
    async def test_call_next_sends_patient_in(self, queue_service, make_patient):
        seven = make_patient("Dana")
        entry = await queue_service.add_to_queue(seven["id"])

        result = await queue_service.call_next_patient()

        assert result.patient.id == entry.id
        assert result.patient.status is QueueStatus.WITH_DOCTOR
        assert result.announcement == "Queue number 1, Dana, please proceed to the consultation room"

    @pytest.mark.asyncio
    async def test_call_next_emergency_room(self, queue_service, make_patient):
        patient = make_patient("Eve")
        await queue_service.add_emergency_patient(patient["id"])

        result = await queue_service.call_next_patient()

        assert result.announcement == "EMERGENCY: Queue number 0, Eve, please proceed to the emergency room"

    @pytest.mark.asyncio
    async def test_call_next_on_empty_queue(self, queue_service):
        result = await queue_service.call_next_patient()

        assert result.patient is None
        assert result.announcement == NO_PATIENTS_WAITING

    @pytest.mark.asyncio
    async def test_urgent_announcement_prefix(self, queue_service, make_patient):
        patient = make_patient("Finn")
        entry = await queue_service.add_to_queue(patient["id"], priority="urgent")

        assert build_announcement(entry).startswith("URGENT: Queue number 1, Finn")


class TestRemoval:
    @pytest.mark.asyncio
    async def test_returns_snapshot_then_gone(self, queue_service, make_patient):
        patient = make_patient()
        entry = await queue_service.add_to_queue(patient["id"], notes="walk-in")

        removed = await queue_service.remove_from_queue(entry.id)

        assert removed == entry
        with pytest.raises(NotFoundError):
            await queue_service.get_entry(entry.id)

    @pytest.mark.asyncio
    async def test_missing(self, queue_service):
        with pytest.raises(NotFoundError):
            await queue_service.remove_from_queue("missing")


class TestReporting:
    @pytest.mark.asyncio
    async def test_enhanced_queue(self, queue_service, make_patient, clock):
        a, b = make_patient("A"), make_patient("B")
        await queue_service.add_to_queue(a["id"])
        clock.advance(10)
        await queue_service.add_to_queue(b["id"], priority="urgent")
        clock.advance(70)

        rows = await queue_service.get_enhanced_queue()

        assert [r.patient.name for r in rows] == ["B", "A"]
        assert [r.position for r in rows] == [1, 2]
        assert [r.estimated_wait_time for r in rows] == ["15m", "30m"]
        assert [r.time_in_queue for r in rows] == ["1h 10m", "1h 20m"]
        assert rows[0].priority_badge == "🚨 URGENT"
        assert rows[0].is_urgent and not rows[1].is_urgent

    @pytest.mark.asyncio
    async def test_enhanced_queue_is_read_only(self, queue_service, make_patient, store):
        patient = make_patient()
        entry = await queue_service.add_to_queue(patient["id"])
        before = await store.get(QUEUE, entry.id)

        await queue_service.get_enhanced_queue()

        assert await store.get(QUEUE, entry.id) == before

    @pytest.mark.asyncio
    async def test_stats(self, queue_service, make_patient):
        a, b, c, d = (make_patient(n) for n in "ABCD")
        done = await queue_service.add_to_queue(a["id"])
        await queue_service.update_status(done.id, "with_doctor")
        await queue_service.update_status(done.id, "completed")
        await queue_service.add_to_queue(b["id"], priority="urgent")
        await queue_service.add_to_queue(c["id"], priority="emergency")
        gone = await queue_service.add_to_queue(d["id"])
        await queue_service.update_status(gone.id, "cancelled")

        stats = await queue_service.get_queue_stats()

        assert stats.total == 4
        assert stats.waiting == 2
        assert stats.completed == 1
        assert stats.cancelled == 1
        assert stats.urgent == 1
        assert stats.emergency == 1
        assert stats.average_wait_time == "30m"
        assert stats.efficiency == 33

    @pytest.mark.asyncio
    async def test_efficiency_with_empty_queue(self, queue_service):
        stats = await queue_service.get_queue_stats()
        assert stats.efficiency == 0
        assert stats.total == 0

    @pytest.mark.asyncio
    async def test_summary(self, queue_service, make_patient, clock):
        a, b = make_patient("A"), make_patient("B")
        await queue_service.add_to_queue(a["id"], priority="emergency")
        clock.advance(20)
        await queue_service.add_to_queue(b["id"])
        clock.advance(25)

        summary = await queue_service.get_queue_summary()

        assert summary.total_waiting == 2
        assert summary.emergency_cases == 1
        assert summary.urgent_cases == 0
        assert summary.longest_wait == "45m"

    @pytest.mark.asyncio
    async def test_analytics(self, queue_service, make_patient, clock):
        patients = [make_patient(f"P{i}") for i in range(5)]
        for patient in patients[:4]:
            await queue_service.add_to_queue(patient["id"])
        clock.advance(120)
        await queue_service.add_to_queue(patients[4]["id"], priority="urgent")

        analytics = await queue_service.get_queue_analytics()

        assert [(h.hour, h.patients) for h in analytics.hourly_flow] == [("9AM", 4), ("11AM", 1)]
        assert analytics.peak_hours == ["9AM"]
        assert analytics.recommendations == ["Consider adding more staff during peak hours: 9AM"]
        breakdown = {item.label: (item.count, item.percentage) for item in analytics.priority_breakdown}
        assert breakdown == {"Normal": (4, 80), "Urgent": (1, 20), "Emergency": (0, 0)}
        assert analytics.status_distribution[0].label == "Waiting"
        assert analytics.status_distribution[0].percentage == 100
