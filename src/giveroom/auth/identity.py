"""Identity proofs: issuing them at login and resolving them on later requests.

Three interchangeable strategies implement the same capability:

- ``session``: opaque handle bound server-side to a user id. The user is
  reloaded from the credential store on each resolution.
- ``session_record``: opaque handle bound server-side to a copy of the
  user's public record. Resolution never touches the credential store.
- ``token``: self-contained HS256 JWT with a fixed lifetime. Nothing is
  stored server-side, so ``revoke`` cannot invalidate an issued token;
  it stays valid until it expires. Session strategies do invalidate on
  revoke.
"""

import hashlib
import secrets
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import pydantic
from jose import JWTError, jwt
from sqlalchemy import delete, select

from giveroom.auth.credentials import CredentialStore
from giveroom.auth.models import Identity, IdentitySession, UserAccount
from giveroom.logging_config import get_logger
from giveroom.settings import settings
from giveroom.storage.db import Database, db, retry_transient

logger = get_logger(__name__)

JWT_ALGORITHM = "HS256"

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def hash_handle(handle: str) -> str:
    """SHA-256 hex digest of a session handle."""
    return hashlib.sha256(handle.encode("utf-8")).hexdigest()


class IdentityStrategy(ABC):
    """Issue, resolve and revoke identity proofs."""

    name: str = ""
    default_cookie_name: str = ""
    revocable: bool = False

    def __init__(self, clock: Clock | None = None, cookie_name: str | None = None):
        self.clock = clock or system_clock
        self.cookie_name = cookie_name or settings.cookie_name or self.default_cookie_name

    @property
    def cookie_max_age(self) -> int | None:
        """Cookie Max-Age in seconds, None for a browser-session cookie."""
        return None

    def _now(self) -> datetime:
        return self.clock().astimezone(timezone.utc)

    @abstractmethod
    def issue(self, user: UserAccount) -> str:
        """Create a proof for an authenticated user."""

    @abstractmethod
    def resolve(self, proof: str | None) -> Identity | None:
        """Recover the acting identity, or None if the proof is absent or invalid."""

    @abstractmethod
    def revoke(self, proof: str | None) -> None:
        """Invalidate a proof where the strategy allows it."""


class SessionIdentityStrategy(IdentityStrategy):
    """Server-side sessions holding the user id."""

    name = "session"
    default_cookie_name = "giveroom_session"
    revocable = True

    def __init__(
        self,
        database: Database | None = None,
        ttl: timedelta | None = None,
        clock: Clock | None = None,
        cookie_name: str | None = None,
    ):
        super().__init__(clock=clock, cookie_name=cookie_name)
        self.database = database or db
        self.ttl = ttl or timedelta(hours=settings.session_ttl_hours)

    def _naive_now(self) -> datetime:
        return self._now().replace(tzinfo=None)

    def _record_for(self, user: UserAccount) -> dict[str, Any] | None:
        return None

    def _identity_from(self, session, row: IdentitySession) -> Identity | None:
        user = CredentialStore(session).get_by_id(row.user_id)
        if user is None:
            return None
        return Identity.model_validate(user)

    @retry_transient
    def issue(self, user: UserAccount) -> str:
        handle = secrets.token_urlsafe(32)
        now = self._naive_now()
        with self.database.session() as session:
            row = IdentitySession(
                handle_hash=hash_handle(handle),
                user_id=user.id,
                created_at=now,
                expires_at=now + self.ttl,
            )
            row.record = self._record_for(user)
            session.add(row)

        logger.info("session_issued", user_id=user.id, strategy=self.name)
        return handle

    @retry_transient
    def resolve(self, proof: str | None) -> Identity | None:
        if not proof:
            return None

        with self.database.session() as session:
            row = session.scalars(
                select(IdentitySession).where(IdentitySession.handle_hash == hash_handle(proof))
            ).first()

            if row is None:
                return None

            if row.expires_at <= self._naive_now():
                logger.debug("session_expired", user_id=row.user_id)
                return None

            return self._identity_from(session, row)

    @retry_transient
    def revoke(self, proof: str | None) -> None:
        if not proof:
            return

        with self.database.session() as session:
            result = session.execute(
                delete(IdentitySession).where(IdentitySession.handle_hash == hash_handle(proof))
            )

        logger.info("session_revoked", removed=result.rowcount, strategy=self.name)

    @retry_transient
    def purge_expired(self) -> int:
        """Delete expired sessions.

        Returns:
            Number of sessions removed
        """
        with self.database.session() as session:
            result = session.execute(
                delete(IdentitySession).where(IdentitySession.expires_at <= self._naive_now())
            )

        logger.info("sessions_purged", removed=result.rowcount)
        return result.rowcount


class SessionRecordIdentityStrategy(SessionIdentityStrategy):
    """Server-side sessions holding a copy of the user's public record."""

    name = "session_record"

    def _record_for(self, user: UserAccount) -> dict[str, Any] | None:
        # Never copy the password hash into the session store
        return {
            "id": user.id,
            "username": user.username,
            "created_at": user.created_at.isoformat() if user.created_at else None,
        }

    def _identity_from(self, session, row: IdentitySession) -> Identity | None:
        record = row.record
        if not record:
            return None
        try:
            return Identity.model_validate(record)
        except pydantic.ValidationError:
            logger.warning("session_record_invalid", session_id=row.id)
            return None


class TokenIdentityStrategy(IdentityStrategy):
    """Stateless signed tokens with a fixed lifetime."""

    name = "token"
    default_cookie_name = "jwt"
    revocable = False

    def __init__(
        self,
        secret_key: str | None = None,
        ttl: timedelta | None = None,
        clock: Clock | None = None,
        cookie_name: str | None = None,
    ):
        super().__init__(clock=clock, cookie_name=cookie_name)
        self.secret_key = secret_key or settings.secret_key
        self.ttl = ttl or timedelta(minutes=settings.token_ttl_minutes)

    @property
    def cookie_max_age(self) -> int | None:
        return int(self.ttl.total_seconds())

    def issue(self, user: UserAccount) -> str:
        issued_at = int(self._now().timestamp())
        expires_at = issued_at + int(self.ttl.total_seconds())

        payload = {
            "sub": str(user.id),
            "username": user.username,
            "iat": issued_at,
            "exp": expires_at,
        }
        token = jwt.encode(payload, self.secret_key, algorithm=JWT_ALGORITHM)

        logger.info("token_issued", user_id=user.id, expires_at=expires_at)
        return token

    def resolve(self, proof: str | None) -> Identity | None:
        if not proof:
            return None

        try:
            # Expiry is checked below against our own clock
            payload = jwt.decode(
                proof,
                self.secret_key,
                algorithms=[JWT_ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as e:
            logger.debug("token_verification_failed", error=str(e))
            return None

        expires_at = payload.get("exp")
        if not isinstance(expires_at, int) or isinstance(expires_at, bool):
            return None
        if self._now().timestamp() >= expires_at:
            logger.debug("token_expired", expires_at=expires_at)
            return None

        try:
            return Identity(id=int(payload["sub"]), username=payload["username"])
        except (KeyError, TypeError, ValueError, pydantic.ValidationError):
            logger.debug("token_claims_invalid")
            return None

    def revoke(self, proof: str | None) -> None:
        # No server-side state: the token stays valid until it expires
        logger.info("token_revoke_not_supported")


def build_identity_strategy(
    name: str | None = None,
    database: Database | None = None,
    clock: Clock | None = None,
) -> IdentityStrategy:
    """Create the configured identity strategy.

    Args:
        name: Strategy name (defaults to settings.identity_strategy)
        database: Database for session strategies
        clock: Optional clock override

    Returns:
        Identity strategy

    Raises:
        ValueError: If the name is unknown
    """
    name = name or settings.identity_strategy
    if name == SessionIdentityStrategy.name:
        return SessionIdentityStrategy(database=database, clock=clock)
    if name == SessionRecordIdentityStrategy.name:
        return SessionRecordIdentityStrategy(database=database, clock=clock)
    if name == TokenIdentityStrategy.name:
        return TokenIdentityStrategy(clock=clock)
    raise ValueError(f"Unknown identity strategy: {name}")
