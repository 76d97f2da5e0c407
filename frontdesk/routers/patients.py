from typing import List

from fastapi import APIRouter, Depends

from frontdesk.dependencies import get_patient_service
from frontdesk.exceptions import NotFoundError
from frontdesk.models.patient import PatientCreate, PatientPublic, PatientUpdate
from frontdesk.services.patient_service import PatientService


router = APIRouter(prefix="/patients", tags=["patients"])


@router.get("/", response_model=List[PatientPublic])
async def list_patients(service: PatientService = Depends(get_patient_service)):
    return await service.list_patients()


@router.post("/", status_code=201)
async def create_patient(body: PatientCreate, service: PatientService = Depends(get_patient_service)):
    patient = await service.create_patient(body)
    return {
        "success": True,
        "message": "Patient registered successfully",
        "data": patient.model_dump(mode="json"),
    }


@router.get("/search", response_model=List[PatientPublic])
async def search_patients(name: str = "", service: PatientService = Depends(get_patient_service)):
    """Case-insensitive name search"""
    return await service.search_by_name(name)


@router.get("/by-phone/{phone}", response_model=PatientPublic)
async def patient_by_phone(phone: str, service: PatientService = Depends(get_patient_service)):
    patient = await service.find_by_phone(phone)
    if patient is None:
        raise NotFoundError(f"Patient with phone {phone} not found", field="phone")
    return patient


@router.get("/{patient_id}", response_model=PatientPublic)
async def get_patient(patient_id: str, service: PatientService = Depends(get_patient_service)):
    return await service.get_patient(patient_id)


@router.put("/{patient_id}")
async def update_patient(
    patient_id: str,
    body: PatientUpdate,
    service: PatientService = Depends(get_patient_service),
):
    patient = await service.update_patient(patient_id, body)
    return {
        "success": True,
        "message": "Patient updated successfully",
        "data": patient.model_dump(mode="json"),
    }
