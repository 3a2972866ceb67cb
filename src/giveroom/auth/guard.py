"""Capability checks run at the start of owner-only operations."""

from giveroom.auth.models import Identity
from giveroom.errors import Forbidden, Unauthorized
from giveroom.logging_config import get_logger

logger = get_logger(__name__)


def require_identity(identity: Identity | None) -> Identity:
    """Require a resolved identity.

    Raises:
        Unauthorized: If the request is anonymous
    """
    if identity is None:
        raise Unauthorized()
    return identity


def assert_owner(giveaway, identity: Identity | None) -> None:
    """Allow only the giveaway's owner.

    Args:
        giveaway: Giveaway being accessed
        identity: Resolved identity of the caller

    Raises:
        Unauthorized: If the request is anonymous
        Forbidden: If the caller does not own the giveaway
    """
    identity = require_identity(identity)
    if giveaway.owner_id != identity.id:
        logger.warning(
            "ownership_denied",
            giveaway_id=giveaway.id,
            owner_id=giveaway.owner_id,
            user_id=identity.id,
        )
        raise Forbidden("You do not own this giveaway")
