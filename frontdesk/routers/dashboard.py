from fastapi import APIRouter, Depends

from frontdesk.dependencies import get_dashboard_service
from frontdesk.models.dashboard import DashboardStats
from frontdesk.services.dashboard_service import DashboardService


router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(service: DashboardService = Depends(get_dashboard_service)):
    """Counts, rates and recent activity for the front desk dashboard"""
    return await service.get_dashboard_stats()
