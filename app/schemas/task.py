from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from app.db.models.task import TaskStatus, TaskPriority
from app.schemas.base import reject_null
from app.utils.timestamps import to_naive_utc, utcnow

class TaskBase(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    assigned_to_id: str
    client_id: Optional[str] = None
    case_id: Optional[str] = None
    priority: TaskPriority = TaskPriority.medium
    due_date: datetime

class TaskCreate(TaskBase):
    pass

class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    assigned_to_id: Optional[str] = None
    client_id: Optional[str] = None
    case_id: Optional[str] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[datetime] = None

    @field_validator("title", "description", "assigned_to_id", "priority", "status", "due_date")
    @classmethod
    def required_columns_not_null(cls, value):
        return reject_null(value)

class Task(TaskBase):
    id: str
    assigned_by_id: str
    status: TaskStatus
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    is_overdue: bool = False
    display_status: str = ""

    class Config:
        from_attributes = True

def is_task_overdue(status: TaskStatus, due_date: datetime, now: Optional[datetime] = None) -> bool:
    """Overdue is derived, never stored: not completed and past its due date."""
    now = now or utcnow()
    return status != TaskStatus.completed and to_naive_utc(due_date) < now

def task_to_schema(task, now: Optional[datetime] = None) -> Task:
    result = Task.model_validate(task)
    overdue = is_task_overdue(result.status, result.due_date, now)
    return result.model_copy(update={
        "is_overdue": overdue,
        "display_status": "overdue" if overdue else result.status.value,
    })
