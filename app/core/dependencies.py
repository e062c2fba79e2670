# app/core/dependencies.py
import logging
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import TokenManager
from app.database import get_db
from app.domains.user.service import UserService
from app.exceptions.base import AppPermissionError, AuthenticationError
from models import User

logger = logging.getLogger(__name__)

token_header = APIKeyHeader(name=settings.auth_header_name, auto_error=False)
token_manager = TokenManager()


async def validate_token(token: str | None = Depends(token_header)) -> UUID:
    """Validate the JWT from the auth header.

    Returns:
        UUID: Id of the user the token was issued for

    Raises:
        AuthenticationError: If the header is missing or the token is invalid
    """
    if not token:
        raise AuthenticationError("No token, authorization denied")

    return token_manager.get_user_id(token)


async def get_current_user(
    request: Request,
    user_id: UUID = Depends(validate_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get current authenticated user from the token's user id.

    Returns:
        User: Current authenticated user

    Raises:
        AuthenticationError: If the user no longer exists
        AppPermissionError: If the account is inactive
    """
    user = await UserService(db).get_user_by_id(user_id)

    if not user:
        logger.warning("Token references unknown user %s", user_id)
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AppPermissionError("User account is inactive")

    # Add user info to request state for logging
    request.state.user_id = user.id

    return user
