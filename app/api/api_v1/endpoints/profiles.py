from typing import List, Any
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.core.auth import get_current_admin_user, get_current_staff_user
from app.core.database import get_db
from app.crud import profile as profile_crud
from app.db.models import ClientProfile as ClientProfileModel, StaffProfile as StaffProfileModel, User
from app.schemas.profile import (
    ClientProfile, ClientProfileCreate, ClientProfileUpdate,
    StaffProfile, StaffProfileCreate, StaffProfileUpdate
)
from app.api.api_v1.errors import raise_for_admin_error
from app.services.admin_service import AdminError, AdminService

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/clients", response_model=List[ClientProfile])
async def read_client_profiles(
    *,
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(get_current_staff_user)
) -> Any:
    return await profile_crud.get_profiles(db, ClientProfileModel, skip=skip, limit=limit)

@router.post("/clients", response_model=ClientProfile, status_code=status.HTTP_201_CREATED)
async def create_client_profile(
    *,
    db: AsyncSession = Depends(get_db),
    profile_in: ClientProfileCreate,
    current_user: User = Depends(get_current_admin_user)
) -> Any:
    """
    Create the profile of a client user.

    Requires admin role.
    """
    try:
        return await AdminService(db).create_client_profile(current_user.id, profile_in)
    except AdminError as e:
        raise_for_admin_error(e)

@router.get("/clients/{profile_id}", response_model=ClientProfile)
async def read_client_profile(
    *,
    db: AsyncSession = Depends(get_db),
    profile_id: str,
    current_user: User = Depends(get_current_staff_user)
) -> Any:
    profile = await profile_crud.get_profile(db, ClientProfileModel, profile_id)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Client profile not found"
        )
    return profile

@router.put("/clients/{profile_id}", response_model=ClientProfile)
async def update_client_profile(
    *,
    db: AsyncSession = Depends(get_db),
    profile_id: str,
    profile_in: ClientProfileUpdate,
    current_user: User = Depends(get_current_admin_user)
) -> Any:
    try:
        return await AdminService(db).update_client_profile(current_user.id, profile_id, profile_in)
    except AdminError as e:
        raise_for_admin_error(e)

@router.get("/staff", response_model=List[StaffProfile])
async def read_staff_profiles(
    *,
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(get_current_staff_user)
) -> Any:
    return await profile_crud.get_profiles(db, StaffProfileModel, skip=skip, limit=limit)

@router.post("/staff", response_model=StaffProfile, status_code=status.HTTP_201_CREATED)
async def create_staff_profile(
    *,
    db: AsyncSession = Depends(get_db),
    profile_in: StaffProfileCreate,
    current_user: User = Depends(get_current_admin_user)
) -> Any:
    """
    Create the profile of a staff user.

    Requires admin role.
    """
    try:
        return await AdminService(db).create_staff_profile(current_user.id, profile_in)
    except AdminError as e:
        raise_for_admin_error(e)

@router.get("/staff/{profile_id}", response_model=StaffProfile)
async def read_staff_profile(
    *,
    db: AsyncSession = Depends(get_db),
    profile_id: str,
    current_user: User = Depends(get_current_staff_user)
) -> Any:
    profile = await profile_crud.get_profile(db, StaffProfileModel, profile_id)
    if not profile:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Staff profile not found"
        )
    return profile

@router.put("/staff/{profile_id}", response_model=StaffProfile)
async def update_staff_profile(
    *,
    db: AsyncSession = Depends(get_db),
    profile_id: str,
    profile_in: StaffProfileUpdate,
    current_user: User = Depends(get_current_admin_user)
) -> Any:
    try:
        return await AdminService(db).update_staff_profile(current_user.id, profile_id, profile_in)
    except AdminError as e:
        raise_for_admin_error(e)
