from typing import Optional
from pydantic import BaseModel, EmailStr
from app.schemas.user import User, UserRole

class LoginRequest(BaseModel):
    email: EmailStr
    # Accepted for form compatibility; credentials are not checked
    password: Optional[str] = None

class RegisterRequest(BaseModel):
    name: str
    email: EmailStr
    password: Optional[str] = None
    role: UserRole = UserRole.client

class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: User

class TokenPayload(BaseModel):
    sub: Optional[str] = None
    exp: Optional[int] = None
