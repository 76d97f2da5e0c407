from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime


class DoctorBase(BaseModel):
    """Base doctor model"""
    name: str = Field(..., min_length=1, max_length=100)
    specialization: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[EmailStr] = None
    experience: Optional[str] = Field(None, max_length=100)
    availability: str = Field("Available", max_length=50)


class DoctorCreate(DoctorBase):
    """Model for creating a doctor"""
    pass


class DoctorUpdate(BaseModel):
    """Model for updating a doctor"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    specialization: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[EmailStr] = None
    experience: Optional[str] = Field(None, max_length=100)
    availability: Optional[str] = Field(None, max_length=50)
    is_active: Optional[bool] = None


class AvailabilityUpdate(BaseModel):
    """Request to change a doctor's availability label"""
    availability: str = Field(..., min_length=1, max_length=50)


class DoctorPublic(DoctorBase):
    """Doctor model for API responses"""
    id: str
    is_active: bool = True
    created_at: datetime
    updated_at: Optional[datetime] = None


class DoctorSummary(BaseModel):
    """Doctor fields embedded in appointments"""
    id: str
    name: str
    specialization: Optional[str] = None


class DoctorStats(BaseModel):
    total_doctors: int
    available_doctors: int
    busy_doctors: int
