from typing import List, Optional, Union, Dict, Any
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging
from app.db.models import ClientCase
from app.utils.timestamps import utcnow

logger = logging.getLogger(__name__)

async def get_case(db: AsyncSession, case_id: str) -> Optional[ClientCase]:
    """
    Get a case by ID.
    """
    try:
        result = await db.execute(select(ClientCase).where(ClientCase.id == case_id))
        return result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_case: {e}")
        return None

async def get_case_by_client(db: AsyncSession, client_id: str) -> Optional[ClientCase]:
    """
    Get the onboarding case of a client. Clients have at most one case.
    """
    try:
        result = await db.execute(
            select(ClientCase)
            .where(ClientCase.client_id == client_id)
            .order_by(ClientCase.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_case_by_client: {e}")
        return None

async def get_cases(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 100,
    filters: Optional[Dict[str, Any]] = None
) -> List[ClientCase]:
    """
    Get a list of cases with optional filtering.
    """
    try:
        query = select(ClientCase)

        # Apply filters if provided
        if filters:
            if client_id := filters.get("client_id"):
                query = query.where(ClientCase.client_id == client_id)
            if staff_id := filters.get("assigned_staff_id"):
                query = query.where(ClientCase.assigned_staff_id == staff_id)
            if status := filters.get("status"):
                query = query.where(ClientCase.status == status)
            if client_type := filters.get("client_type"):
                query = query.where(ClientCase.client_type == client_type)

        query = query.order_by(ClientCase.updated_at.desc()).offset(skip).limit(limit)

        result = await db.execute(query)
        return list(result.scalars().all())
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_cases: {e}")
        return []

async def create_case(db: AsyncSession, case_data: Dict[str, Any]) -> Optional[ClientCase]:
    """
    Create a new onboarding case.
    """
    try:
        db_case = ClientCase(**case_data)
        db.add(db_case)
        await db.commit()
        await db.refresh(db_case)

        logger.info(f"Case created successfully with ID: {db_case.id}")
        return db_case
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in create_case: {e}")
        return None

async def update_case(
    db: AsyncSession,
    case_id: str,
    case_in: Dict[str, Any]
) -> Optional[ClientCase]:
    """
    Update an existing case. JSON columns must be passed as new objects.
    """
    try:
        case = await get_case(db, case_id=case_id)
        if not case:
            logger.warning(f"Case not found for update: {case_id}")
            return None

        for field, value in case_in.items():
            setattr(case, field, value)
        case.updated_at = utcnow()

        await db.commit()
        await db.refresh(case)

        logger.info(f"Case updated successfully: {case_id}")
        return case
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in update_case: {e}")
        return None
