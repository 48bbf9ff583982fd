from sqlalchemy import Column, String, Boolean, Text, DateTime, Enum as SQLEnum
from enum import Enum
import uuid
from app.core.database import Base
from app.utils.timestamps import utcnow

class UserRole(str, Enum):
    client = "client"
    staff = "staff"
    admin = "admin"

class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(Text, unique=True, nullable=False)
    name = Column(Text, nullable=True)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.client)
    contact_number = Column(Text, nullable=True)
    department = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
