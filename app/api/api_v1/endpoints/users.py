from typing import List, Any, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.core.auth import get_current_active_user, get_current_admin_user, get_current_staff_user
from app.core.database import get_db
from app.crud import user as user_crud
from app.db.models import User as UserModel, UserRole
from app.schemas.user import User, UserCreate, UserUpdate
from app.api.api_v1.errors import raise_for_admin_error
from app.services.admin_service import AdminError, AdminService

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("/me", response_model=User)
async def read_user_me(current_user: UserModel = Depends(get_current_active_user)) -> Any:
    """
    Get current user.
    """
    return current_user

@router.put("/me", response_model=User)
async def update_user_me(
    *,
    db: AsyncSession = Depends(get_db),
    user_in: UserUpdate,
    current_user: UserModel = Depends(get_current_active_user)
) -> Any:
    """
    Update current user. Activation cannot be changed here.
    """
    user_in = user_in.model_copy(update={"is_active": None})
    data = user_in.model_dump(exclude_unset=True, exclude_none=True)
    if data.get("email"):
        existing = await user_crud.get_user_by_email(db, data["email"])
        if existing and existing.id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A user with this email already exists"
            )
    user = await user_crud.update_user(db, current_user.id, data)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update user"
        )
    return user

@router.get("/", response_model=List[User])
async def read_users(
    *,
    db: AsyncSession = Depends(get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    is_active: Optional[bool] = Query(None, description="Filter by activation"),
    current_user: UserModel = Depends(get_current_staff_user)
) -> Any:
    """
    Retrieve users.

    Requires staff or admin role.
    """
    return await user_crud.get_users(db, skip=skip, limit=limit, role=role, is_active=is_active)

@router.post("/", response_model=User, status_code=status.HTTP_201_CREATED)
async def create_user(
    *,
    db: AsyncSession = Depends(get_db),
    user_in: UserCreate,
    current_user: UserModel = Depends(get_current_admin_user)
) -> Any:
    """
    Create new user.

    Requires admin role.
    """
    logger.info(f"User creation requested by admin: {current_user.id}")
    try:
        return await AdminService(db).create_user(current_user.id, user_in)
    except AdminError as e:
        raise_for_admin_error(e)

@router.get("/{user_id}", response_model=User)
async def read_user_by_id(
    user_id: str,
    current_user: UserModel = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Get a specific user by id.
    """
    user = await user_crud.get_user(db, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    if current_user.role == UserRole.client and current_user.id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions"
        )
    return user

@router.put("/{user_id}", response_model=User)
async def update_user(
    *,
    db: AsyncSession = Depends(get_db),
    user_id: str,
    user_in: UserUpdate,
    current_user: UserModel = Depends(get_current_admin_user)
) -> Any:
    """
    Update a user. The role of a user is fixed.

    Requires admin role.
    """
    try:
        return await AdminService(db).update_user(current_user.id, user_id, user_in)
    except AdminError as e:
        raise_for_admin_error(e)

@router.post("/{user_id}/activate", response_model=User)
async def activate_user(
    *,
    db: AsyncSession = Depends(get_db),
    user_id: str,
    current_user: UserModel = Depends(get_current_admin_user)
) -> Any:
    try:
        return await AdminService(db).set_user_active(current_user.id, user_id, True)
    except AdminError as e:
        raise_for_admin_error(e)

@router.post("/{user_id}/deactivate", response_model=User)
async def deactivate_user(
    *,
    db: AsyncSession = Depends(get_db),
    user_id: str,
    current_user: UserModel = Depends(get_current_admin_user)
) -> Any:
    if user_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot deactivate your own account"
        )
    try:
        return await AdminService(db).set_user_active(current_user.id, user_id, False)
    except AdminError as e:
        raise_for_admin_error(e)
