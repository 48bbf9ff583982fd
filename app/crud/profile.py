from typing import List, Optional, Dict, Any, Union, Type, TypeVar
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from pydantic import BaseModel
import logging
from app.db.models import ClientProfile, StaffProfile
from app.utils.timestamps import utcnow

logger = logging.getLogger(__name__)

ProfileT = TypeVar("ProfileT", ClientProfile, StaffProfile)

def _as_update_data(profile_in: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(profile_in, dict):
        return dict(profile_in)
    return profile_in.model_dump(exclude_unset=True, mode="json")

async def get_profile(db: AsyncSession, model: Type[ProfileT], profile_id: str) -> Optional[ProfileT]:
    try:
        result = await db.execute(select(model).where(model.id == profile_id))
        return result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_profile ({model.__tablename__}): {e}")
        return None

async def get_profile_by_user(db: AsyncSession, model: Type[ProfileT], user_id: str) -> Optional[ProfileT]:
    try:
        result = await db.execute(select(model).where(model.user_id == user_id).limit(1))
        return result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_profile_by_user ({model.__tablename__}): {e}")
        return None

async def get_profiles(db: AsyncSession, model: Type[ProfileT], skip: int = 0, limit: int = 100) -> List[ProfileT]:
    try:
        result = await db.execute(select(model).order_by(model.created_at).offset(skip).limit(limit))
        return list(result.scalars().all())
    except SQLAlchemyError as e:
        logger.error(f"Database error in get_profiles ({model.__tablename__}): {e}")
        return []

async def create_profile(db: AsyncSession, model: Type[ProfileT], profile_in: Union[BaseModel, Dict[str, Any]]) -> Optional[ProfileT]:
    try:
        db_profile = model(**_as_update_data(profile_in))
        db.add(db_profile)
        await db.commit()
        await db.refresh(db_profile)
        logger.info(f"Profile created in {model.__tablename__}: {db_profile.id}")
        return db_profile
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in create_profile ({model.__tablename__}): {e}")
        return None

async def update_profile(
    db: AsyncSession,
    model: Type[ProfileT],
    profile_id: str,
    profile_in: Union[BaseModel, Dict[str, Any]]
) -> Optional[ProfileT]:
    try:
        db_profile = await get_profile(db, model, profile_id)
        if not db_profile:
            logger.warning(f"Profile not found for update in {model.__tablename__}: {profile_id}")
            return None

        for field, value in _as_update_data(profile_in).items():
            setattr(db_profile, field, value)
        db_profile.updated_at = utcnow()

        await db.commit()
        await db.refresh(db_profile)
        return db_profile
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Database error in update_profile ({model.__tablename__}): {e}")
        return None
