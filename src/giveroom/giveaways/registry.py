"""Giveaway registry: creation, lookup and the referral counter."""

import uuid
from typing import Callable
from urllib.parse import urlparse

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session, selectinload

from giveroom.errors import NotFound, ValidationError
from giveroom.giveaways.models import Giveaway
from giveroom.logging_config import get_logger

logger = get_logger(__name__)

ROOM_NAME_MAX_LENGTH = 255
CHANNEL_LINK_MAX_LENGTH = 2048


def generate_code() -> str:
    """Fresh opaque giveaway code (UUID4)."""
    return str(uuid.uuid4())


def validate_channel_link(channel_link: str) -> str:
    """Check the channel link is an absolute http(s) URL usable as a redirect target."""
    parsed = urlparse(channel_link)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("Channel link must be an absolute http(s) URL")
    if len(channel_link) > CHANNEL_LINK_MAX_LENGTH:
        raise ValidationError(f"Channel link must be at most {CHANNEL_LINK_MAX_LENGTH} characters")
    return channel_link


class GiveawayRegistry:
    """Repository for Giveaway entities."""

    def __init__(self, session: Session, code_factory: Callable[[], str] = generate_code):
        self.session = session
        self.code_factory = code_factory

    def create(
        self,
        owner_id: int,
        room_name: str,
        channel_link: str,
        code: str | None = None,
    ) -> Giveaway:
        """Create a new giveaway with a zero referral count.

        Args:
            owner_id: Owning user ID
            room_name: Display name of the room
            channel_link: Where joined visitors are sent
            code: Code to use (generated if omitted)

        Returns:
            Created giveaway

        Raises:
            ValidationError: If room name or channel link is empty or invalid
        """
        room_name = (room_name or "").strip()
        channel_link = (channel_link or "").strip()

        if not room_name:
            raise ValidationError("Room name is required")
        if len(room_name) > ROOM_NAME_MAX_LENGTH:
            raise ValidationError(f"Room name must be at most {ROOM_NAME_MAX_LENGTH} characters")
        if not channel_link:
            raise ValidationError("Channel link is required")
        validate_channel_link(channel_link)

        giveaway = Giveaway(
            owner_id=owner_id,
            room_name=room_name,
            channel_link=channel_link,
            code=code or self.code_factory(),
            referral_count=0,
        )
        self.session.add(giveaway)
        self.session.flush()
        logger.info("giveaway_created", giveaway_id=giveaway.id, owner_id=owner_id, code=giveaway.code)
        return giveaway

    def get(self, giveaway_id: int) -> Giveaway | None:
        """Get giveaway by ID."""
        return self.session.get(Giveaway, giveaway_id)

    def find_by_code(self, code: str) -> Giveaway | None:
        """Get giveaway by its code."""
        if not code:
            return None
        return self.session.scalars(select(Giveaway).where(Giveaway.code == code)).first()

    def code_exists(self, code: str) -> bool:
        return self.session.scalar(select(Giveaway.id).where(Giveaway.code == code)) is not None

    def list_all(self) -> list[Giveaway]:
        """List all giveaways, oldest first."""
        return list(
            self.session.scalars(select(Giveaway).order_by(Giveaway.created_at, Giveaway.id))
        )

    def list_by_owner(self, owner_id: int) -> list[Giveaway]:
        """List an owner's giveaways with their referrals loaded, oldest first."""
        return list(
            self.session.scalars(
                select(Giveaway)
                .where(Giveaway.owner_id == owner_id)
                .options(selectinload(Giveaway.referrals))
                .order_by(Giveaway.created_at, Giveaway.id)
            )
        )

    def increment_referral_count(self, giveaway_id: int) -> int:
        """Add one to the referral counter.

        Runs as a single UPDATE evaluated by the database, so concurrent
        callers serialize on the row instead of overwriting each other.

        Returns:
            The new count as seen inside the current transaction

        Raises:
            NotFound: If the giveaway does not exist
        """
        result = self.session.execute(
            update(Giveaway)
            .where(Giveaway.id == giveaway_id)
            .values(referral_count=Giveaway.referral_count + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFound("Giveaway not found")

        return self.session.scalar(
            select(Giveaway.referral_count).where(Giveaway.id == giveaway_id)
        )

    def delete(self, giveaway_id: int) -> bool:
        """Delete a giveaway and, by cascade, its referrals.

        Returns:
            True if a giveaway was removed
        """
        result = self.session.execute(
            delete(Giveaway)
            .where(Giveaway.id == giveaway_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info("giveaway_deleted", giveaway_id=giveaway_id)
        return bool(result.rowcount)
