"""Authentication service: signup, login, logout and identity resolution."""

from dataclasses import dataclass

from giveroom.auth.credentials import CredentialStore
from giveroom.auth.guard import require_identity
from giveroom.auth.identity import IdentityStrategy, SessionIdentityStrategy, build_identity_strategy
from giveroom.auth.models import Identity, UserAccount
from giveroom.auth.passwords import PasswordHasher
from giveroom.errors import InvalidCredentials, StorageFatal, ValidationError
from giveroom.logging_config import get_logger
from giveroom.storage.db import Database, db, retry_transient

USERNAME_MAX_LENGTH = 150


@dataclass(frozen=True)
class LoginResult:
    """Outcome of a successful login."""
    identity: Identity
    proof: str


class AuthService:
    """Authentication service for local (username/password) users."""

    def __init__(
        self,
        database: Database | None = None,
        strategy: IdentityStrategy | None = None,
        hasher: PasswordHasher | None = None,
    ):
        """Initialize auth service.

        Args:
            database: Database (defaults to the global instance)
            strategy: Identity strategy (defaults to the configured one)
            hasher: Password hasher
        """
        self.db = database or db
        self.strategy = strategy or build_identity_strategy(database=self.db)
        self.hasher = hasher or PasswordHasher()
        self.logger = get_logger(__name__)

    # ==================== USER MANAGEMENT ====================

    def _validate_signup(self, username: str, password: str) -> None:
        if not username or not username.strip():
            raise ValidationError("Username is required")
        if len(username) > USERNAME_MAX_LENGTH:
            raise ValidationError(f"Username must be at most {USERNAME_MAX_LENGTH} characters")
        if not password:
            raise ValidationError("Password is required")

    @retry_transient
    def signup(self, username: str, password: str) -> UserAccount:
        """Create a new user.

        Args:
            username: Unique username, matched exactly at login
            password: Plain password

        Returns:
            Created user account

        Raises:
            ValidationError: If a field is empty or the username is taken
        """
        self._validate_signup(username, password)
        password_hash = self.hasher.hash(password)

        try:
            with self.db.session() as session:
                store = CredentialStore(session)
                if store.exists(username):
                    raise ValidationError("Username already taken")
                user = store.add(username, password_hash)
        except StorageFatal:
            # Lost a race with a concurrent signup for the same name
            with self.db.session() as session:
                if CredentialStore(session).exists(username):
                    raise ValidationError("Username already taken")
            raise

        return user

    # ==================== LOGIN / LOGOUT ====================

    @retry_transient
    def authenticate(self, username: str, password: str) -> UserAccount:
        """Check credentials.

        Raises:
            InvalidCredentials: Unknown user or wrong password, indistinguishably
        """
        with self.db.session() as session:
            user = CredentialStore(session).get_by_username(username or "")

        if user is None:
            # Keep latency close to the wrong-password path
            self.hasher.dummy_verify()
            self.logger.info("login_failed", reason="unknown_user")
            raise InvalidCredentials()

        if not self.hasher.verify(password or "", user.password_hash):
            self.logger.info("login_failed", reason="bad_password", user_id=user.id)
            raise InvalidCredentials()

        return user

    def login(self, username: str, password: str) -> LoginResult:
        """Verify credentials and issue exactly one identity proof.

        Args:
            username: Username
            password: Plain password

        Returns:
            Resolved identity and the proof to hand to the client

        Raises:
            InvalidCredentials: If the credentials do not match
        """
        user = self.authenticate(username, password)
        proof = self.strategy.issue(user)

        self.logger.info("user_authenticated", user_id=user.id, strategy=self.strategy.name)
        return LoginResult(identity=Identity.model_validate(user), proof=proof)

    def logout(self, proof: str | None) -> Identity:
        """Revoke the caller's proof.

        Session strategies destroy the server-side binding. The token
        strategy cannot: the token stays valid until it expires and only
        the client's cookie is cleared.

        Raises:
            Unauthorized: If the proof does not resolve
        """
        identity = require_identity(self.strategy.resolve(proof))
        self.strategy.revoke(proof)

        self.logger.info(
            "user_logged_out",
            user_id=identity.id,
            strategy=self.strategy.name,
            revoked=self.strategy.revocable,
        )
        return identity

    def resolve(self, proof: str | None) -> Identity | None:
        """Resolve a proof to an identity, None when anonymous."""
        return self.strategy.resolve(proof)

    def purge_sessions(self) -> int:
        """Remove expired server-side sessions.

        Returns:
            Number removed (0 for the token strategy)
        """
        if isinstance(self.strategy, SessionIdentityStrategy):
            return self.strategy.purge_expired()
        return 0
