from typing import List, Optional, Dict, Any, Union
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging
from app.db.models import Task, TaskStatus
from app.schemas.task import TaskCreate, TaskUpdate
from app.utils.timestamps import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

async def get_task(db: AsyncSession, task_id: str) -> Optional[Task]:
    try:
        result = await db.execute(select(Task).where(Task.id == task_id))
        return result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_task: {e}")
        return None

async def get_tasks(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 100,
    filters: Optional[Dict[str, Any]] = None
) -> List[Task]:
    """
    Get tasks ordered by due date. ``overdue`` filters on the derived state.
    """
    try:
        query = select(Task)
        if filters:
            if assigned_to_id := filters.get("assigned_to_id"):
                query = query.where(Task.assigned_to_id == assigned_to_id)
            if status := filters.get("status"):
                query = query.where(Task.status == status)
            if priority := filters.get("priority"):
                query = query.where(Task.priority == priority)
            if case_id := filters.get("case_id"):
                query = query.where(Task.case_id == case_id)
            if filters.get("overdue"):
                query = query.where(Task.status != TaskStatus.completed, Task.due_date < utcnow())

        result = await db.execute(query.order_by(Task.due_date).offset(skip).limit(limit))
        return list(result.scalars().all())
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_tasks: {e}")
        return []

async def create_task(db: AsyncSession, task: TaskCreate, assigned_by_id: str) -> Optional[Task]:
    try:
        db_task = Task(
            title=task.title,
            description=task.description,
            assigned_to_id=task.assigned_to_id,
            assigned_by_id=assigned_by_id,
            client_id=task.client_id,
            case_id=task.case_id,
            priority=task.priority,
            status=TaskStatus.pending,
            due_date=to_naive_utc(task.due_date)
        )
        db.add(db_task)
        await db.commit()
        await db.refresh(db_task)
        logger.info(f"Task created: {db_task.id} for {db_task.assigned_to_id}")
        return db_task
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in create_task: {e}")
        return None

async def update_task(db: AsyncSession, task_id: str, task_in: Union[TaskUpdate, Dict[str, Any]]) -> Optional[Task]:
    try:
        db_task = await get_task(db, task_id)
        if not db_task:
            logger.warning(f"Task not found for update: {task_id}")
            return None

        if isinstance(task_in, dict):
            update_data = dict(task_in)
        else:
            update_data = task_in.model_dump(exclude_unset=True)

        if update_data.get("due_date") is not None:
            update_data["due_date"] = to_naive_utc(update_data["due_date"])

        new_status = update_data.get("status")
        if new_status is not None and new_status != db_task.status:
            update_data["completed_at"] = utcnow() if new_status == TaskStatus.completed else None

        for field, value in update_data.items():
            setattr(db_task, field, value)
        db_task.updated_at = utcnow()

        await db.commit()
        await db.refresh(db_task)
        return db_task
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in update_task: {e}")
        return None
