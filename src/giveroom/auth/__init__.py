"""Authentication: credentials, password hashing and identity proofs."""

from giveroom.auth.guard import assert_owner, require_identity
from giveroom.auth.identity import (
    IdentityStrategy,
    SessionIdentityStrategy,
    SessionRecordIdentityStrategy,
    TokenIdentityStrategy,
    build_identity_strategy,
)
from giveroom.auth.models import Identity, IdentitySession, UserAccount
from giveroom.auth.passwords import PasswordHasher
from giveroom.auth.service import AuthService, LoginResult

__all__ = [
    "AuthService",
    "Identity",
    "IdentitySession",
    "IdentityStrategy",
    "LoginResult",
    "PasswordHasher",
    "SessionIdentityStrategy",
    "SessionRecordIdentityStrategy",
    "TokenIdentityStrategy",
    "UserAccount",
    "assert_owner",
    "build_identity_strategy",
    "require_identity",
]
