# app/domains/user/service.py
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import hash_password, verify_password
from app.exceptions.auth import (
    InvalidCredentialsError,
    RegistrationNotAllowedError,
    UserAlreadyExistsError,
)
from models import WILDCARD_EMAIL, User, Whitelist

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        """Get a user by ID."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email."""
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def is_email_whitelisted(self, email: str) -> bool:
        """True when the email, or the wildcard entry, is on the whitelist."""
        result = await self.db.execute(
            select(Whitelist.id).where(or_(Whitelist.email == email, Whitelist.email == WILDCARD_EMAIL)).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def create_user(self, email: str, password: str) -> User:
        """Create a new user with a hashed password."""
        user = User(email=email, password_hash=hash_password(password))

        try:
            self.db.add(user)
            await self.db.commit()
            await self.db.refresh(user)
            return user
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e

    async def register_user(self, email: str, password: str) -> User:
        """Register a whitelisted email.

        Raises:
            RegistrationNotAllowedError: Email is not whitelisted
            UserAlreadyExistsError: Email already has an account
        """
        if not await self.is_email_whitelisted(email):
            logger.info("Registration rejected for non-whitelisted email")
            raise RegistrationNotAllowedError()

        if await self.get_user_by_email(email):
            raise UserAlreadyExistsError()

        try:
            user = await self.create_user(email=email, password=password)
        except IntegrityError as e:
            # Lost a race with a concurrent registration
            raise UserAlreadyExistsError() from e

        logger.info("Registered user %s", user.id)
        return user

    async def authenticate(self, email: str, password: str) -> User:
        """Return the user for valid credentials.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password
        """
        user = await self.get_user_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()
        return user

    async def deactivate_user(self, user_id: UUID) -> Optional[User]:
        """Deactivate a user account."""
        user = await self.get_user_by_id(user_id)
        if not user:
            return None

        try:
            user.is_active = False
            await self.db.commit()
            await self.db.refresh(user)
            return user
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise e
