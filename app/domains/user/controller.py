"""User authentication controller endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, token_manager
from app.database import get_db
from app.domains.user.service import UserService
from app.schemas.settings import UserSettingsResponse
from app.schemas.user import LoginRequest, RegisterRequest, TokenResponse
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


@router.post("/register", response_model=TokenResponse)
async def register(register_data: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Register a whitelisted email and return a token.

    The email must be on the whitelist, or the whitelist must contain the
    ``*`` wildcard entry.
    """
    user_service = UserService(db)

    try:
        user = await user_service.register_user(email=str(register_data.email), password=register_data.password)
    except SQLAlchemyError as e:
        logger.error("Registration failed: %s", str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error",
        ) from e

    return TokenResponse(token=token_manager.create_access_token(user.id))


@router.post("/login", response_model=TokenResponse)
async def login(login_data: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Authenticate with email and password and return a token."""
    user_service = UserService(db)

    try:
        user = await user_service.authenticate(email=str(login_data.email), password=login_data.password)
    except SQLAlchemyError as e:
        logger.error("Login failed: %s", str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error",
        ) from e

    return TokenResponse(token=token_manager.create_access_token(user.id))


@router.get("/me", response_model=UserSettingsResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current authenticated user information."""
    return UserSettingsResponse.model_validate(current_user)
