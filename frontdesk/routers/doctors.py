from typing import List, Optional

from fastapi import APIRouter, Depends

from frontdesk.dependencies import get_doctor_service
from frontdesk.models.doctor import AvailabilityUpdate, DoctorCreate, DoctorPublic, DoctorStats, DoctorUpdate
from frontdesk.services.doctor_service import DoctorService


router = APIRouter(prefix="/doctors", tags=["doctors"])


@router.get("/", response_model=List[DoctorPublic])
async def list_doctors(
    specialization: Optional[str] = None,
    include_inactive: bool = False,
    service: DoctorService = Depends(get_doctor_service),
):
    """Active doctors by name, optionally narrowed by specialization"""
    return await service.list_doctors(specialization, include_inactive)


@router.post("/", status_code=201)
async def create_doctor(body: DoctorCreate, service: DoctorService = Depends(get_doctor_service)):
    doctor = await service.create_doctor(body)
    return {
        "success": True,
        "message": "Doctor created successfully",
        "data": doctor.model_dump(mode="json"),
    }


@router.get("/available", response_model=List[DoctorPublic])
async def available_doctors(service: DoctorService = Depends(get_doctor_service)):
    return await service.list_available()


@router.get("/stats", response_model=DoctorStats)
async def doctor_stats(service: DoctorService = Depends(get_doctor_service)):
    return await service.get_stats()


@router.get("/{doctor_id}", response_model=DoctorPublic)
async def get_doctor(
    doctor_id: str,
    active_only: bool = False,
    service: DoctorService = Depends(get_doctor_service),
):
    return await service.get_doctor(doctor_id, active_only=active_only)


@router.put("/{doctor_id}")
async def update_doctor(
    doctor_id: str,
    body: DoctorUpdate,
    service: DoctorService = Depends(get_doctor_service),
):
    doctor = await service.update_doctor(doctor_id, body)
    return {
        "success": True,
        "message": "Doctor updated successfully",
        "data": doctor.model_dump(mode="json"),
    }


@router.put("/{doctor_id}/availability")
async def update_availability(
    doctor_id: str,
    body: AvailabilityUpdate,
    service: DoctorService = Depends(get_doctor_service),
):
    doctor = await service.update_availability(doctor_id, body.availability)
    return {
        "success": True,
        "message": f"Doctor availability set to {doctor.availability}",
        "data": doctor.model_dump(mode="json"),
    }


@router.delete("/{doctor_id}")
async def deactivate_doctor(doctor_id: str, service: DoctorService = Depends(get_doctor_service)):
    """Soft delete"""
    await service.deactivate_doctor(doctor_id)
    return {"success": True, "message": "Doctor deactivated successfully"}
