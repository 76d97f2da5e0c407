from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime

from frontdesk.models.appointment import AppointmentStatus
from frontdesk.models.queue import QueuePriority, QueueStatus


class Overview(BaseModel):
    total_patients: int
    total_doctors: int
    total_appointments: int
    system_status: str = "Active"


class TodayStats(BaseModel):
    new_patients: int
    appointments: int
    completed_appointments: int
    active_doctors: int


class QueueOverview(BaseModel):
    waiting: int
    with_doctor: int
    completed: int
    urgent: int
    total_in_queue: int
    average_wait_time: str


class Performance(BaseModel):
    queue_efficiency: int
    appointment_completion_rate: int
    doctor_utilization: int


class RecentQueueEntry(BaseModel):
    id: str
    patient_name: Optional[str] = None
    queue_number: int
    status: QueueStatus
    priority: QueuePriority
    time: datetime


class RecentAppointment(BaseModel):
    id: str
    patient_name: Optional[str] = None
    doctor_name: Optional[str] = None
    appointment_time: datetime
    status: AppointmentStatus


class RecentActivity(BaseModel):
    queue_entries: List[RecentQueueEntry]
    appointments: List[RecentAppointment]


class DashboardStats(BaseModel):
    """Front desk rollup shown on the admin dashboard"""
    overview: Overview
    today: TodayStats
    queue: QueueOverview
    performance: Performance
    recent_activity: RecentActivity
