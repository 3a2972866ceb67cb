"""Credential store: user accounts and their password hashes."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from giveroom.auth.models import UserAccount
from giveroom.logging_config import get_logger

logger = get_logger(__name__)


class CredentialStore:
    """Repository for UserAccount entities."""

    def __init__(self, session: Session):
        self.session = session

    def add(self, username: str, password_hash: str) -> UserAccount:
        """Persist a new user.

        Args:
            username: Unique username (stored as given)
            password_hash: Digest from PasswordHasher

        Returns:
            Created user with its id assigned
        """
        user = UserAccount(username=username, password_hash=password_hash)
        self.session.add(user)
        self.session.flush()
        logger.info("user_created", user_id=user.id, username=username)
        return user

    def get_by_username(self, username: str) -> UserAccount | None:
        """Get user by exact username."""
        return self.session.scalars(
            select(UserAccount).where(UserAccount.username == username)
        ).first()

    def get_by_id(self, user_id: int) -> UserAccount | None:
        """Get user by ID."""
        return self.session.get(UserAccount, user_id)

    def exists(self, username: str) -> bool:
        return self.session.scalar(
            select(UserAccount.id).where(UserAccount.username == username)
        ) is not None
