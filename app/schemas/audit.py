from enum import Enum
from typing import Dict, Optional
from datetime import datetime
from pydantic import BaseModel

class EntityType(str, Enum):
    user = "user"
    client = "client"
    case = "case"
    task = "task"
    system = "system"

class AuditLogCreate(BaseModel):
    user_id: str
    action: str
    entity_type: EntityType
    entity_id: str
    details: str = ""
    ip_address: Optional[str] = None

class AuditLog(AuditLogCreate):
    id: str
    timestamp: datetime

    class Config:
        from_attributes = True

class AuditLogFilter(BaseModel):
    search: Optional[str] = None
    action: Optional[str] = None
    entity_type: Optional[EntityType] = None
    user_id: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

class AuditLogSummary(BaseModel):
    total: int
    today: int
    by_entity_type: Dict[str, int]
