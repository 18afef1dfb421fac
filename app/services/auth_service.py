"""
Authentication strategies.

Each strategy turns one kind of credential into a ``User`` or raises a
``NotAuthenticated`` subclass:

  PasswordStrategy   email + password  -> user (bcrypt comparison)
  TokenStrategy      signed cookie     -> user (JWT verification + lookup)
  FederatedStrategy  provider identity -> user (lookup or create)

The federated lookup-or-create is a single upsert: the insert runs in a
SAVEPOINT and relies on the (social_id, register_type) unique constraint,
so two concurrent first logins for the same subject end up with one row.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import InvalidCredentials, InvalidToken, NoToken, ServerError, UnknownSubject
from app.models import RegisterType, User
from app.schemas import FederatedIdentity
from app.security import TokenError, decode_token, verify_password

logger = logging.getLogger(__name__)


class AuthStrategy(ABC):
    """Verify a credential and return the principal it identifies."""

    @abstractmethod
    async def authenticate(self, db: AsyncSession, credentials: Any) -> User:
        """Return the authenticated user or raise ``NotAuthenticated``."""


class PasswordStrategy(AuthStrategy):

    async def authenticate(self, db: AsyncSession, credentials: tuple[str, str]) -> User:
        email, password = credentials
        result = await db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user is None:
            logger.info("Login failed: unknown email")
            raise InvalidCredentials()
        if not verify_password(password, user.password):
            logger.info("Login failed: wrong password for user id=%s", user.id)
            raise InvalidCredentials()
        return user


class TokenStrategy(AuthStrategy):

    async def authenticate(self, db: AsyncSession, credentials: str | None) -> User:
        if not credentials:
            raise NoToken()
        try:
            user_id = decode_token(credentials)
        except TokenError as exc:
            logger.info("Token rejected: %s", exc)
            raise InvalidToken() from exc

        user = await db.get(User, user_id)
        if user is None:
            logger.info("Token subject %s does not exist", user_id)
            raise UnknownSubject()
        return user


class FederatedStrategy(AuthStrategy):

    def __init__(self, register_type: RegisterType = RegisterType.GOOGLE) -> None:
        self.register_type = register_type

    async def _find(self, db: AsyncSession, subject: str) -> User | None:
        result = await db.execute(
            select(User).where(
                User.social_id == subject,
                User.register_type == self.register_type.value,
            )
        )
        return result.scalar_one_or_none()

    async def authenticate(self, db: AsyncSession, credentials: FederatedIdentity) -> User:
        user = await self._find(db, credentials.subject)
        if user is not None:
            return user

        user = User(
            username=credentials.name,
            email=credentials.email,
            social_id=credentials.subject,
            register_type=self.register_type.value,
        )
        try:
            async with db.begin_nested():
                db.add(user)
        except IntegrityError:
            # Lost the race to a concurrent first login, or the email is
            # already taken by another account.
            existing = await self._find(db, credentials.subject)
            if existing is None:
                logger.warning("Email %s already belongs to another account", credentials.email)
                raise ServerError(f"Email {credentials.email} is already registered")
            return existing

        logger.info(
            "Created %s account id=%s for subject %s",
            self.register_type.value,
            user.id,
            credentials.subject,
        )
        return user


password_strategy = PasswordStrategy()
token_strategy = TokenStrategy()
google_strategy = FederatedStrategy(RegisterType.GOOGLE)
