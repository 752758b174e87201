"""Service for user registration and login."""

import logging
import uuid

from offer_catalog_service.auth.token_validator import (
    AuthTokenValidator,
    hash_password,
    verify_password,
)
from offer_catalog_service.exceptions import DuplicateUserError, InvalidInputError
from offer_catalog_service.models.account_models import (
    LoginRequest,
    User,
    UserPublic,
    UserRegistration,
)
from offer_catalog_service.repositories.account_repositories import UserRepository

logger = logging.getLogger(__name__)


class UserService:
    """Registers users and issues auth tokens."""

    def __init__(self, user_repository: UserRepository, token_validator: AuthTokenValidator) -> None:
        """Initialize the UserService.

        Args:
            user_repository: Repository for user accounts
            token_validator: Issuer of auth tokens
        """
        self.user_repository = user_repository
        self.token_validator = token_validator

    async def register(self, registration: UserRegistration) -> tuple[UserPublic, str]:
        """Register a new user.

        Args:
            registration: Validated registration data

        Returns:
            Tuple of (public user fields, auth token)

        Raises:
            DuplicateUserError: If the email is already registered
        """
        user = User(
            id=uuid.uuid4().hex,
            name=registration.name,
            email=str(registration.email),
            password_hash=hash_password(registration.password),
        )

        if not self.user_repository.create_user(user):
            raise DuplicateUserError("User already registered.")

        logger.info(f"Registered user {user.id}")
        return UserPublic(id=user.id, name=user.name, email=user.email), self.token_validator.issue(user.id)

    async def login(self, credentials: LoginRequest) -> str:
        """Authenticate a user and issue a token.

        Raises:
            InvalidInputError: If the email or password is wrong
        """
        user = self.user_repository.get_user_by_email(str(credentials.email))
        if user is None or not verify_password(credentials.password, user.password_hash):
            raise InvalidInputError("Invalid email or password.")

        return self.token_validator.issue(user.id)
