from typing import List, Any, Optional, Dict
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.core.auth import get_current_admin_user, get_current_staff_user
from app.core.database import get_db
from app.crud import task as task_crud
from app.db.models import TaskPriority, TaskStatus, User, UserRole
from app.schemas.task import Task, TaskCreate, TaskUpdate, task_to_schema
from app.api.api_v1.errors import raise_for_admin_error
from app.services.admin_service import AdminError, AdminService

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/", response_model=List[Task])
async def read_tasks(
    *,
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    assigned_to_id: Optional[str] = Query(None),
    status: Optional[TaskStatus] = Query(None),
    priority: Optional[TaskPriority] = Query(None),
    case_id: Optional[str] = Query(None),
    overdue: bool = Query(False, description="Only tasks past their due date"),
    current_user: User = Depends(get_current_staff_user)
) -> Any:
    """
    Retrieve tasks ordered by due date.

    Staff only see tasks assigned to them; admins see all tasks.
    """
    filters: Dict[str, Any] = {
        "assigned_to_id": current_user.id if current_user.role == UserRole.staff else assigned_to_id,
        "status": status,
        "priority": priority,
        "case_id": case_id,
        "overdue": overdue,
    }
    tasks = await task_crud.get_tasks(db, skip=skip, limit=limit, filters=filters)
    return [task_to_schema(task) for task in tasks]

@router.post("/", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_task(
    *,
    db: AsyncSession = Depends(get_db),
    task_in: TaskCreate,
    current_user: User = Depends(get_current_admin_user)
) -> Any:
    """
    Create and assign a task.

    Requires admin role.
    """
    try:
        task = await AdminService(db).create_task(current_user.id, task_in)
    except AdminError as e:
        raise_for_admin_error(e)
    return task_to_schema(task)

@router.get("/{task_id}", response_model=Task)
async def read_task(
    *,
    db: AsyncSession = Depends(get_db),
    task_id: str,
    current_user: User = Depends(get_current_staff_user)
) -> Any:
    task = await task_crud.get_task(db, task_id)
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )
    if current_user.role == UserRole.staff and task.assigned_to_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions"
        )
    return task_to_schema(task)

@router.put("/{task_id}", response_model=Task)
async def update_task(
    *,
    db: AsyncSession = Depends(get_db),
    task_id: str,
    task_in: TaskUpdate,
    current_user: User = Depends(get_current_staff_user)
) -> Any:
    """
    Update a task.

    Staff may only change the status of their own tasks; admins may change
    anything.
    """
    if current_user.role == UserRole.staff:
        task = await task_crud.get_task(db, task_id)
        if not task:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Task not found"
            )
        if task.assigned_to_id != current_user.id or set(task_in.model_dump(exclude_unset=True)) - {"status"}:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Staff can only update the status of their own tasks"
            )

    try:
        task = await AdminService(db).update_task(current_user.id, task_id, task_in)
    except AdminError as e:
        raise_for_admin_error(e)
    return task_to_schema(task)
