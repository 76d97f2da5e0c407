from typing import List

from fastapi import APIRouter, Depends

from frontdesk.dependencies import get_appointment_service
from frontdesk.models.appointment import (
    AppointmentCreate,
    AppointmentPublic,
    AppointmentStats,
    AppointmentStatusUpdate,
    AppointmentUpdate,
)
from frontdesk.services.appointment_service import AppointmentService


router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.get("/", response_model=List[AppointmentPublic])
async def list_appointments(service: AppointmentService = Depends(get_appointment_service)):
    return await service.list_appointments()


@router.post("/", status_code=201)
async def create_appointment(
    body: AppointmentCreate,
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.create_appointment(body)
    return {
        "success": True,
        "message": "Appointment created successfully",
        "data": appointment.model_dump(mode="json"),
    }


@router.get("/stats", response_model=AppointmentStats)
async def appointment_stats(service: AppointmentService = Depends(get_appointment_service)):
    return await service.get_stats()


@router.get("/today", response_model=List[AppointmentPublic])
async def todays_appointments(service: AppointmentService = Depends(get_appointment_service)):
    return await service.list_today()


@router.get("/availability")
async def doctor_availability(
    doctor_id: str,
    date_time: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Whether the doctor is free at that instant"""
    available = await service.check_doctor_availability(doctor_id, date_time)
    return {"doctor_id": doctor_id, "date_time": date_time, "available": available}


@router.get("/by-doctor/{doctor_id}", response_model=List[AppointmentPublic])
async def appointments_by_doctor(
    doctor_id: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    return await service.list_by_doctor(doctor_id)


@router.get("/by-patient/{patient_id}", response_model=List[AppointmentPublic])
async def appointments_by_patient(
    patient_id: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    return await service.list_by_patient(patient_id)


@router.get("/by-date/{day}", response_model=List[AppointmentPublic])
async def appointments_by_date(day: str, service: AppointmentService = Depends(get_appointment_service)):
    """Appointments on one UTC day (YYYY-MM-DD)"""
    return await service.list_by_date(day)


@router.get("/range", response_model=List[AppointmentPublic])
async def appointments_in_range(
    start_date: str,
    end_date: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    return await service.list_by_date_range(start_date, end_date)


@router.get("/{appointment_id}", response_model=AppointmentPublic)
async def get_appointment(appointment_id: str, service: AppointmentService = Depends(get_appointment_service)):
    return await service.get_appointment(appointment_id)


@router.put("/{appointment_id}")
async def update_appointment(
    appointment_id: str,
    body: AppointmentUpdate,
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.update_appointment(appointment_id, body)
    return {
        "success": True,
        "message": "Appointment updated successfully",
        "data": appointment.model_dump(mode="json"),
    }


@router.put("/{appointment_id}/status")
async def update_appointment_status(
    appointment_id: str,
    body: AppointmentStatusUpdate,
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.update_status(appointment_id, body.status)
    return {
        "success": True,
        "message": f"Appointment status updated to {appointment.status.value}",
        "data": appointment.model_dump(mode="json"),
    }


@router.delete("/{appointment_id}")
async def delete_appointment(
    appointment_id: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    await service.delete_appointment(appointment_id)
    return {"success": True, "message": "Appointment deleted successfully"}
