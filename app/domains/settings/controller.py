"""Settings controller endpoints for managing user preferences."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user
from app.database import get_db
from app.domains.settings.service import SettingsService
from app.schemas.settings import UserSettingsResponse, UserSettingsUpdate
from models.user import User


router = APIRouter(prefix="/api/settings", tags=["Settings"])


@router.get("", response_model=UserSettingsResponse)
async def get_settings(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get current user's settings.

    Returns the user document without the password hash.
    """
    settings_service = SettingsService(db)

    try:
        settings = await settings_service.get_user_settings(current_user)
        return UserSettingsResponse.model_validate(settings)
    except SQLAlchemyError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to retrieve settings: {str(e)}",
        ) from e


@router.put("", response_model=UserSettingsResponse)
async def update_settings(
    update_data: UserSettingsUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update current user's settings.

    Only provided fields will be updated; others remain unchanged.
    """
    settings_service = SettingsService(db)

    try:
        updated_settings = await settings_service.update_user_settings(current_user, update_data)
        return UserSettingsResponse.model_validate(updated_settings)
    except SQLAlchemyError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update settings: {str(e)}",
        ) from e
