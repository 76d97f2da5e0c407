from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime


class PatientBase(BaseModel):
    """Base patient model"""
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=3, max_length=30)
    email: Optional[EmailStr] = None
    age: int = Field(..., ge=0, le=150)
    gender: str = Field(..., min_length=1, max_length=20)


class PatientCreate(PatientBase):
    """Model for registering a patient"""
    pass


class PatientUpdate(BaseModel):
    """Model for updating a patient"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, min_length=3, max_length=30)
    email: Optional[EmailStr] = None
    age: Optional[int] = Field(None, ge=0, le=150)
    gender: Optional[str] = Field(None, min_length=1, max_length=20)


class PatientPublic(PatientBase):
    """Patient model for API responses"""
    id: str
    created_at: datetime


class PatientSummary(BaseModel):
    """Patient fields embedded in queue entries and appointments"""
    id: str
    name: str
    phone: Optional[str] = None
