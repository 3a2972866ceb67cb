"""Password hashing."""

from passlib.context import CryptContext

from giveroom.settings import MIN_BCRYPT_ROUNDS, settings


class PasswordHasher:
    """Salted one-way password hashing with bcrypt.

    Uses passlib's ``bcrypt_sha256``: the password is run through
    HMAC-SHA256 before bcrypt, so every byte counts instead of only the
    first 72. Every call to ``hash`` draws a fresh random salt.
    """

    def __init__(self, rounds: int | None = None):
        rounds = rounds if rounds is not None else settings.bcrypt_rounds
        if rounds < MIN_BCRYPT_ROUNDS:
            raise ValueError(f"bcrypt rounds must be at least {MIN_BCRYPT_ROUNDS}")
        self.rounds = rounds
        self._context = CryptContext(
            schemes=["bcrypt_sha256"],
            deprecated="auto",
            bcrypt_sha256__rounds=rounds,
        )

    def hash(self, password: str) -> str:
        """Hash a password.

        Args:
            password: Plain password

        Returns:
            bcrypt-sha256 digest
        """
        return self._context.hash(password)

    def verify(self, password: str, digest: str | None) -> bool:
        """Verify a password against a digest.

        Fails closed: a missing, malformed or unknown digest gives False.

        Args:
            password: Plain password
            digest: Stored digest

        Returns:
            True if matches
        """
        if not digest:
            return False
        try:
            return self._context.verify(password, digest)
        except (ValueError, TypeError):
            return False

    def dummy_verify(self) -> None:
        """Spend roughly one verification's worth of time."""
        self._context.dummy_verify()
