from typing import Any
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
import logging
from app.core.auth import create_access_token, get_current_active_user
from app.core.database import get_db
from app.crud import user as user_crud
from app.db.models import User, UserRole
from app.schemas.auth import LoginRequest, RegisterRequest, Token
from app.schemas.user import User as UserSchema, UserCreate

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/login", response_model=Token)
async def login(
    *,
    db: AsyncSession = Depends(get_db),
    credentials: LoginRequest
) -> Any:
    """
    Log in by e-mail address.

    Credentials are not verified; any known, active user receives a token.
    """
    user = await user_crud.get_user_by_email(db, credentials.email)
    if not user:
        logger.warning(f"Login attempt for unknown email: {credentials.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user"
        )

    logger.info(f"User logged in: {user.id} ({user.role.value})")
    return Token(access_token=create_access_token(user.id), user=UserSchema.model_validate(user))

@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(
    *,
    db: AsyncSession = Depends(get_db),
    user_in: RegisterRequest
) -> Any:
    """
    Register a new client or staff account and log it in.
    """
    if user_in.role == UserRole.admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin accounts cannot be self-registered"
        )
    if await user_crud.get_user_by_email(db, user_in.email):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A user with this email already exists"
        )

    user = await user_crud.create_user(db, UserCreate(email=user_in.email, name=user_in.name, role=user_in.role))
    if not user:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create user"
        )

    return Token(access_token=create_access_token(user.id), user=UserSchema.model_validate(user))

@router.get("/me", response_model=UserSchema)
async def read_current_user(current_user: User = Depends(get_current_active_user)) -> Any:
    """
    Get the logged-in user.
    """
    return current_user
