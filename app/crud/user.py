from typing import Optional, List, Any, Dict, Union
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
import logging
from app.db.models import User, UserRole
from app.schemas.user import UserCreate, UserUpdate
from app.utils.timestamps import utcnow

logger = logging.getLogger(__name__)

async def get_user(db: AsyncSession, user_id: str) -> Optional[User]:
    try:
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_user: {e}")
        return None

async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    """
    Get a user by email from the database.
    """
    try:
        result = await db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_user_by_email: {e}")
        return None

async def get_users(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 100,
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None
) -> List[User]:
    try:
        query = select(User)
        if role is not None:
            query = query.where(User.role == role)
        if is_active is not None:
            query = query.where(User.is_active == is_active)
        result = await db.execute(query.order_by(User.created_at).offset(skip).limit(limit))
        return list(result.scalars().all())
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_users: {e}")
        return []

async def get_user_names(db: AsyncSession, user_ids: List[str]) -> Dict[str, str]:
    """
    Resolve display names for a set of user ids, falling back to the email.
    """
    if not user_ids:
        return {}
    try:
        result = await db.execute(select(User).where(User.id.in_(set(user_ids))))
        return {user.id: user.name or user.email for user in result.scalars().all()}
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_user_names: {e}")
        return {}

async def create_user(db: AsyncSession, user: UserCreate, created_by: Optional[str] = None) -> Optional[User]:
    try:
        db_user = User(
            email=user.email.lower(),
            name=user.name,
            role=user.role,
            contact_number=user.contact_number,
            department=user.department,
            is_active=True if user.is_active is None else user.is_active,
            created_by=created_by
        )
        db.add(db_user)
        await db.commit()
        await db.refresh(db_user)
        logger.info(f"User created: {db_user.id} ({db_user.role.value})")
        return db_user
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in create_user: {e}")
        return None

async def update_user(db: AsyncSession, user_id: str, user: Union[UserUpdate, Dict[str, Any]]) -> Optional[User]:
    try:
        db_user = await get_user(db, user_id)
        if not db_user:
            logger.warning(f"User not found for update: {user_id}")
            return None

        if isinstance(user, dict):
            update_data = user
        else:
            update_data = user.model_dump(exclude_unset=True)

        # Role never changes over a user's lifetime
        update_data.pop("role", None)
        if update_data.get("email"):
            update_data["email"] = update_data["email"].lower()

        for field, value in update_data.items():
            setattr(db_user, field, value)
        db_user.updated_at = utcnow()

        await db.commit()
        await db.refresh(db_user)
        return db_user
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in update_user: {e}")
        return None
