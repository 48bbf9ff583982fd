from sqlalchemy import Column, String, Text, DateTime, Enum as SQLEnum
from enum import Enum
import uuid
from app.core.database import Base
from app.utils.timestamps import utcnow

class TaskStatus(str, Enum):
    pending = "pending"
    in_progress = "in-progress"
    completed = "completed"

class TaskPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"

class Task(Base):
    __tablename__ = "tasks"

    id = Column(String(64), primary_key=True, default=lambda: f"task-{uuid.uuid4().hex[:12]}")
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    assigned_to_id = Column(String(64), nullable=False, index=True)
    assigned_by_id = Column(String(64), nullable=False)
    client_id = Column(String(64), nullable=True)
    case_id = Column(String(64), nullable=True)
    priority = Column(SQLEnum(TaskPriority, values_callable=lambda e: [m.value for m in e]), nullable=False, default=TaskPriority.medium)
    status = Column(SQLEnum(TaskStatus, values_callable=lambda e: [m.value for m in e]), nullable=False, default=TaskStatus.pending)
    due_date = Column(DateTime, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
