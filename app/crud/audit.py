from typing import List, Optional, Dict
from datetime import datetime, timedelta
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging
from app.db.models import AuditLog, User
from app.schemas.audit import AuditLogCreate, AuditLogFilter
from app.utils.timestamps import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

async def create_audit_log(db: AsyncSession, entry: AuditLogCreate) -> Optional[AuditLog]:
    """
    Append an audit entry. Entries are write-once: there is no update or
    delete counterpart.
    """
    try:
        db_entry = AuditLog(
            user_id=entry.user_id,
            action=entry.action,
            entity_type=entry.entity_type.value,
            entity_id=entry.entity_id,
            details=entry.details,
            ip_address=entry.ip_address
        )
        db.add(db_entry)
        await db.commit()
        await db.refresh(db_entry)
        logger.info(f"Audit: {entry.action} on {entry.entity_type.value} {entry.entity_id} by {entry.user_id}")
        return db_entry
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(
            f"Database error in create_audit_log for {entry.action} on "
            f"{entry.entity_type.value} {entry.entity_id}: {e}"
        )
        return None

async def get_audit_logs(
    db: AsyncSession,
    filters: Optional[AuditLogFilter] = None,
    skip: int = 0,
    limit: int = 100
) -> List[AuditLog]:
    """
    Query audit entries, newest first.

    ``search`` matches the action, the details or the acting user's name;
    ``action`` is a case-insensitive substring match.
    """
    try:
        query = select(AuditLog)
        if filters:
            if filters.search:
                term = f"%{filters.search.lower()}%"
                query = query.outerjoin(User, User.id == AuditLog.user_id).where(
                    or_(
                        func.lower(AuditLog.action).like(term),
                        func.lower(AuditLog.details).like(term),
                        func.lower(User.name).like(term),
                    )
                )
            if filters.action:
                query = query.where(func.lower(AuditLog.action).like(f"%{filters.action.lower()}%"))
            if filters.entity_type:
                query = query.where(AuditLog.entity_type == filters.entity_type.value)
            if filters.user_id:
                query = query.where(AuditLog.user_id == filters.user_id)
            if filters.start:
                query = query.where(AuditLog.timestamp >= to_naive_utc(filters.start))
            if filters.end:
                query = query.where(AuditLog.timestamp <= to_naive_utc(filters.end))

        query = query.order_by(AuditLog.timestamp.desc()).offset(skip).limit(limit)
        result = await db.execute(query)
        return list(result.scalars().all())
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_audit_logs: {e}")
        return []

async def get_audit_actions(db: AsyncSession) -> List[str]:
    """Distinct action labels, for filter drop-downs."""
    try:
        result = await db.execute(select(AuditLog.action).distinct().order_by(AuditLog.action))
        return list(result.scalars().all())
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_audit_actions: {e}")
        return []

async def get_audit_summary(db: AsyncSession, now: Optional[datetime] = None) -> Dict[str, object]:
    try:
        now = now or utcnow()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)

        total = await db.scalar(select(func.count()).select_from(AuditLog))
        today = await db.scalar(
            select(func.count()).select_from(AuditLog).where(
                AuditLog.timestamp >= start_of_day,
                AuditLog.timestamp < start_of_day + timedelta(days=1),
            )
        )
        rows = await db.execute(
            select(AuditLog.entity_type, func.count()).group_by(AuditLog.entity_type)
        )
        return {
            "total": total or 0,
            "today": today or 0,
            "by_entity_type": {entity_type: count for entity_type, count in rows.all()},
        }
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_audit_summary: {e}")
        return {"total": 0, "today": 0, "by_entity_type": {}}
