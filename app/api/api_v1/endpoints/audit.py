from typing import List, Any, Optional
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.auth import get_current_admin_user
from app.core.database import get_db
from app.crud import audit as audit_crud
from app.db.models import User
from app.schemas.audit import AuditLog, AuditLogFilter, AuditLogSummary, EntityType

router = APIRouter()

@router.get("/", response_model=List[AuditLog])
async def read_audit_logs(
    *,
    db: AsyncSession = Depends(get_db),
    search: Optional[str] = Query(None, description="Matches action, details or user name"),
    action: Optional[str] = Query(None),
    entity_type: Optional[EntityType] = Query(None),
    user_id: Optional[str] = Query(None),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(get_current_admin_user)
) -> Any:
    """
    Query the audit trail, newest first.

    Requires admin role.
    """
    filters = AuditLogFilter(
        search=search, action=action, entity_type=entity_type, user_id=user_id, start=start, end=end
    )
    return await audit_crud.get_audit_logs(db, filters, skip=skip, limit=limit)

@router.get("/actions", response_model=List[str])
async def read_audit_actions(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user)
) -> Any:
    return await audit_crud.get_audit_actions(db)

@router.get("/summary", response_model=AuditLogSummary)
async def read_audit_summary(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_admin_user)
) -> Any:
    return await audit_crud.get_audit_summary(db)
