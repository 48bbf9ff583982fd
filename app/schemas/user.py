from typing import Optional
from pydantic import BaseModel, EmailStr, field_validator
from datetime import datetime
from app.db.models.user import UserRole
from app.schemas.base import reject_null

class UserBase(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    role: Optional[UserRole] = UserRole.client
    contact_number: Optional[str] = None
    department: Optional[str] = None
    is_active: Optional[bool] = True

class UserCreate(UserBase):
    email: EmailStr
    name: str
    role: UserRole = UserRole.client

class UserUpdate(BaseModel):
    """Role is fixed for the lifetime of a user and cannot be updated."""
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    contact_number: Optional[str] = None
    department: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("email", "is_active")
    @classmethod
    def required_columns_not_null(cls, value):
        return reject_null(value)

class User(UserBase):
    id: str
    email: str
    role: UserRole
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
