"""Security related functions."""

from datetime import UTC, datetime, timedelta
from uuid import UUID

import bcrypt
import jwt
from jwt import ExpiredSignatureError, InvalidTokenError

from app.core.config import settings
from app.exceptions.base import AuthenticationError


def hash_password(password: str) -> str:
    """Hash a plain password with bcrypt using the configured cost factor."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


class TokenManager:
    """
    Issues and verifies the HS256 JSON Web Tokens used by the API.

    Tokens carry ``{"user": {"id": <uuid>}}`` plus ``iat``/``exp`` claims and are
    sent back by clients in the ``x-auth-token`` header.

    :ivar secret_key: The secret key used to sign and verify tokens.
    :type secret_key: str
    :ivar algorithm: JWT signing algorithm.
    :type algorithm: str
    """

    def __init__(self, secret_key: str | None = None, algorithm: str | None = None):
        self.secret_key = secret_key or settings.secret_key
        self.algorithm = algorithm or settings.algorithm

    def create_access_token(self, user_id: UUID, expires_delta: timedelta | None = None) -> str:
        """Create a signed token for ``user_id``."""
        now = datetime.now(UTC)
        expire = now + (expires_delta or timedelta(days=settings.access_token_expire_days))
        payload = {
            "user": {"id": str(user_id)},
            "iat": now,
            "exp": expire,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> dict:
        """
        Decode and validate a token, returning its payload.

        :param token: The JWT taken from the request header.
        :return: The decoded payload.
        :raises AuthenticationError: If the token is expired, malformed or signed
            with another key.
        """
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise AuthenticationError("Token has expired") from e
        except InvalidTokenError as e:
            raise AuthenticationError("Token is not valid") from e

    def get_user_id(self, token: str) -> UUID:
        """Return the user id embedded in a valid token."""
        payload = self.verify_token(token)
        user_claim = payload.get("user") or {}
        try:
            return UUID(str(user_claim["id"]))
        except (KeyError, TypeError, ValueError) as e:
            raise AuthenticationError("Invalid token payload - missing user ID") from e
