# app/domains/settings/service.py
"""Settings service for managing per-user provider and model preferences."""

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas.settings import UserSettingsUpdate
from models import User

# Columns that accept an explicit null to clear the preference
NULLABLE_FIELDS = {"context_length", "max_output_tokens"}


class SettingsService:
    """Service for managing user settings and preferences."""

    def __init__(self, db: AsyncSession):
        """Initialize service with a database session."""
        self.db = db

    async def get_user_settings(self, user: User) -> User:
        """
        Get the settings document of a user.

        Settings live on the user row, so this reloads it to pick up writes
        made through other sessions.
        """
        await self.db.refresh(user)
        return user

    async def update_user_settings(self, user: User, update_data: UserSettingsUpdate) -> User:
        """
        Update user settings with the fields present in ``update_data``.

        Args:
            user: The authenticated user
            update_data: Partial update; fields left out of the request are untouched

        Returns:
            User: Updated user

        Raises:
            SQLAlchemyError: If database operation fails
        """
        changes = update_data.model_dump(exclude_unset=True)

        try:
            for field, value in changes.items():
                if value is None and field not in NULLABLE_FIELDS:
                    continue
                setattr(user, field, value)

            await self.db.commit()
            await self.db.refresh(user)
            return user
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e
