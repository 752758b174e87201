"""Auth token issuing and validation.

Tokens are HS256 JWTs carrying the user id in the ``id`` claim, sent back by
clients in the ``x-auth-token`` header.
"""

import logging

from jose import JWTError, jwt
from passlib.context import CryptContext

logger = logging.getLogger(__name__)

password_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class AuthTokenValidator:
    """Issues and validates auth tokens for admin endpoints."""

    def __init__(self, secret_key: str, algorithm: str = "HS256") -> None:
        """Initialize validator.

        Args:
            secret_key: Shared secret used to sign tokens
            algorithm: JWT signing algorithm

        Raises:
            ValueError: If secret_key is empty
        """
        if not secret_key:
            raise ValueError("A token signing key must be provided")

        self.secret_key = secret_key
        self.algorithm = algorithm

    def issue(self, user_id: str) -> str:
        """Create a signed token for a user.

        Args:
            user_id: Identifier placed in the ``id`` claim

        Returns:
            str: Encoded token
        """
        return jwt.encode({"id": user_id}, self.secret_key, algorithm=self.algorithm)

    def validate(self, token: str) -> str | None:
        """Validate a token.

        Args:
            token: Encoded token from the request header

        Returns:
            The user id if the token is valid, None otherwise
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.info(f"Rejected auth token: {e}")
            return None

        user_id = payload.get("id")
        return str(user_id) if user_id else None


def hash_password(password: str) -> str:
    """Hash a plain-text password with bcrypt."""
    return password_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain-text password against a stored hash."""
    return password_context.verify(password, password_hash)
