"""
FastAPI dependency injection functions
These are reusable dependencies that can be injected into route handlers
"""
import hmac
from typing import Annotated, Optional

from fastapi import Header, HTTPException, status

from frontdesk.config import settings
from frontdesk.services.appointment_service import AppointmentService, appointment_service
from frontdesk.services.dashboard_service import DashboardService, dashboard_service
from frontdesk.services.doctor_service import DoctorService, doctor_service
from frontdesk.services.patient_service import PatientService, patient_service
from frontdesk.services.queue_service import QueueService, queue_service


async def require_staff(x_api_key: Annotated[Optional[str], Header()] = None) -> None:
    """
    Guard for every API router.

    With API_KEY configured the X-API-Key header must match it; with
    API_KEY empty access is open.

    Raises:
        HTTPException: 401 if the key is missing or wrong
    """
    if not settings.API_KEY:
        return
    if not x_api_key or not hmac.compare_digest(x_api_key, settings.API_KEY):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )


# Service providers, overridden in tests through app.dependency_overrides

def get_patient_service() -> PatientService:
    return patient_service


def get_doctor_service() -> DoctorService:
    return doctor_service


def get_queue_service() -> QueueService:
    return queue_service


def get_appointment_service() -> AppointmentService:
    return appointment_service


def get_dashboard_service() -> DashboardService:
    return dashboard_service
