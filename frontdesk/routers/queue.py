from typing import List, Optional

from fastapi import APIRouter, Depends

from frontdesk.dependencies import get_queue_service
from frontdesk.models.queue import (
    AddToQueueRequest,
    CallNextResult,
    EmergencyRequest,
    EnhancedQueueEntry,
    PriorityUpdateRequest,
    QueueAnalytics,
    QueueEntry,
    QueueStats,
    QueueSummary,
    StatusUpdateRequest,
)
from frontdesk.services.queue_service import NO_PATIENTS_WAITING, QueueService, assigned_room, build_announcement


router = APIRouter(prefix="/queue", tags=["queue"])


@router.get("/", response_model=List[QueueEntry])
async def list_queue(status: Optional[str] = None, service: QueueService = Depends(get_queue_service)):
    """Queue entries in call order, optionally one status only"""
    return await service.list_queue(status)


@router.get("/enhanced", response_model=List[EnhancedQueueEntry])
async def enhanced_queue(service: QueueService = Depends(get_queue_service)):
    """Waiting patients with position and wait estimates"""
    return await service.get_enhanced_queue()


@router.get("/summary", response_model=QueueSummary)
async def queue_summary(service: QueueService = Depends(get_queue_service)):
    return await service.get_queue_summary()


@router.get("/stats", response_model=QueueStats)
async def queue_stats(service: QueueService = Depends(get_queue_service)):
    return await service.get_queue_stats()


@router.get("/analytics", response_model=QueueAnalytics)
async def queue_analytics(service: QueueService = Depends(get_queue_service)):
    return await service.get_queue_analytics()


@router.get("/next", response_model=CallNextResult)
async def next_patient(service: QueueService = Depends(get_queue_service)):
    """Who would be called next; changes nothing"""
    entry = await service.get_next_patient()
    if entry is None:
        return CallNextResult(patient=None, announcement=NO_PATIENTS_WAITING)
    return CallNextResult(
        patient=entry,
        announcement=build_announcement(entry, room=assigned_room(entry.priority)),
    )


@router.post("/call-next")
async def call_next(service: QueueService = Depends(get_queue_service)):
    """Move the next waiting patient to the doctor"""
    result = await service.call_next_patient()
    return {
        "success": True,
        "message": result.announcement,
        "data": result.model_dump(mode="json"),
    }


@router.post("/emergency", status_code=201)
async def add_emergency(body: EmergencyRequest, service: QueueService = Depends(get_queue_service)):
    """Admit as emergency or promote the patient's waiting entry"""
    entry = await service.add_emergency_patient(body.patient_id, body.notes)
    return {
        "success": True,
        "message": "Emergency patient added to front of queue",
        "data": entry.model_dump(mode="json"),
    }


@router.post("/", status_code=201)
async def add_to_queue(body: AddToQueueRequest, service: QueueService = Depends(get_queue_service)):
    entry = await service.add_to_queue(body.patient_id, body.priority, body.notes)
    return {
        "success": True,
        "message": f"Patient added to queue with number {entry.queue_number}",
        "data": entry.model_dump(mode="json"),
    }


@router.put("/{entry_id}/status")
async def update_status(
    entry_id: str,
    body: StatusUpdateRequest,
    service: QueueService = Depends(get_queue_service),
):
    entry = await service.update_status(entry_id, body.status)
    return {
        "success": True,
        "message": f"Queue status updated to {entry.status.value}",
        "data": entry.model_dump(mode="json"),
    }


@router.put("/{entry_id}/priority")
async def update_priority(
    entry_id: str,
    body: PriorityUpdateRequest,
    service: QueueService = Depends(get_queue_service),
):
    entry = await service.update_priority(entry_id, body.priority)
    return {
        "success": True,
        "message": f"Queue priority updated to {entry.priority.value}",
        "data": entry.model_dump(mode="json"),
    }


@router.delete("/{entry_id}")
async def remove_from_queue(entry_id: str, service: QueueService = Depends(get_queue_service)):
    entry = await service.remove_from_queue(entry_id)
    return {
        "success": True,
        "message": "Patient removed from queue",
        "data": entry.model_dump(mode="json"),
    }
