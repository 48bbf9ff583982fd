from sqlalchemy import Column, String, Text, DateTime, Integer, JSON
import uuid
from app.core.database import Base
from app.utils.timestamps import utcnow

class ClientProfile(Base):
    __tablename__ = "client_profiles"

    id = Column(String(64), primary_key=True, default=lambda: f"cp-{uuid.uuid4().hex[:12]}")
    user_id = Column(String(64), nullable=False, index=True)
    business_type = Column(Text, nullable=True)
    industry = Column(Text, nullable=True)
    annual_revenue = Column(Text, nullable=True)
    number_of_employees = Column(Text, nullable=True)
    risk_profile = Column(String(16), nullable=True)
    notes = Column(Text, nullable=True)
    assigned_staff_id = Column(String(64), nullable=True)
    onboarding_status = Column(String(16), nullable=False, default="not-started")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

class StaffProfile(Base):
    __tablename__ = "staff_profiles"

    id = Column(String(64), primary_key=True, default=lambda: f"sp-{uuid.uuid4().hex[:12]}")
    user_id = Column(String(64), nullable=False, index=True)
    department = Column(Text, nullable=False)
    position = Column(Text, nullable=False)
    access_level = Column(String(16), nullable=False, default="basic")
    max_case_load = Column(Integer, nullable=False, default=10)
    current_case_load = Column(Integer, nullable=False, default=0)
    skills = Column(JSON, nullable=False, default=list)
    availability = Column(String(16), nullable=False, default="available")
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
