from enum import Enum
from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from app.schemas.base import reject_null

class RiskProfile(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"

class OnboardingStatus(str, Enum):
    not_started = "not-started"
    in_progress = "in-progress"
    completed = "completed"
    on_hold = "on-hold"

class AccessLevel(str, Enum):
    basic = "basic"
    advanced = "advanced"
    supervisor = "supervisor"

class Availability(str, Enum):
    available = "available"
    busy = "busy"
    unavailable = "unavailable"

class ClientProfileBase(BaseModel):
    business_type: Optional[str] = None
    industry: Optional[str] = None
    annual_revenue: Optional[str] = None
    number_of_employees: Optional[str] = None
    risk_profile: Optional[RiskProfile] = None
    notes: Optional[str] = None
    assigned_staff_id: Optional[str] = None
    onboarding_status: OnboardingStatus = OnboardingStatus.not_started

class ClientProfileCreate(ClientProfileBase):
    user_id: str

class ClientProfileUpdate(ClientProfileBase):
    onboarding_status: Optional[OnboardingStatus] = None

    @field_validator("onboarding_status")
    @classmethod
    def required_columns_not_null(cls, value):
        return reject_null(value)

class ClientProfile(ClientProfileBase):
    id: str
    user_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

class StaffProfileBase(BaseModel):
    department: str
    position: str
    access_level: AccessLevel = AccessLevel.basic
    max_case_load: int = Field(10, ge=0)
    current_case_load: int = Field(0, ge=0)
    skills: List[str] = []
    availability: Availability = Availability.available

class StaffProfileCreate(StaffProfileBase):
    user_id: str

class StaffProfileUpdate(BaseModel):
    department: Optional[str] = None
    position: Optional[str] = None
    access_level: Optional[AccessLevel] = None
    max_case_load: Optional[int] = Field(None, ge=0)
    current_case_load: Optional[int] = Field(None, ge=0)
    skills: Optional[List[str]] = None
    availability: Optional[Availability] = None

    @field_validator(
        "department", "position", "access_level", "max_case_load",
        "current_case_load", "skills", "availability"
    )
    @classmethod
    def required_columns_not_null(cls, value):
        return reject_null(value)

class StaffProfile(StaffProfileBase):
    id: str
    user_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
