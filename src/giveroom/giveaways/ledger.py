"""Referral ledger: append-only record of joins."""

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from giveroom.errors import ValidationError
from giveroom.giveaways.models import Referral
from giveroom.logging_config import get_logger

logger = get_logger(__name__)

REFERRER_NAME_MAX_LENGTH = 255


def clean_referrer_name(referrer_name: str | None) -> str:
    """Strip and validate a referrer name.

    Raises:
        ValidationError: If the name is blank or too long
    """
    name = (referrer_name or "").strip()
    if not name:
        raise ValidationError("Please enter your name")
    if len(name) > REFERRER_NAME_MAX_LENGTH:
        raise ValidationError(f"Name must be at most {REFERRER_NAME_MAX_LENGTH} characters")
    return name


class ReferralLedger:
    """Repository for Referral entities.

    ``record`` does not touch the giveaway's counter; callers pair it with
    ``GiveawayRegistry.increment_referral_count`` in the same transaction.
    """

    def __init__(self, session: Session):
        self.session = session

    def record(self, giveaway_id: int, referrer_name: str) -> Referral:
        """Append a referral.

        Args:
            giveaway_id: Giveaway joined
            referrer_name: Name the visitor entered

        Returns:
            Created referral

        Raises:
            ValidationError: If the name is blank or too long
        """
        referral = Referral(
            giveaway_id=giveaway_id,
            referrer_name=clean_referrer_name(referrer_name),
        )
        self.session.add(referral)
        self.session.flush()
        logger.info("referral_recorded", referral_id=referral.id, giveaway_id=giveaway_id)
        return referral

    def list_by_giveaway(self, giveaway_id: int) -> list[Referral]:
        """List a giveaway's referrals, oldest first."""
        return list(
            self.session.scalars(
                select(Referral)
                .where(Referral.giveaway_id == giveaway_id)
                .order_by(Referral.created_at, Referral.id)
            )
        )

    def count_by_giveaway(self, giveaway_id: int) -> int:
        return self.session.scalar(
            select(func.count(Referral.id)).where(Referral.giveaway_id == giveaway_id)
        ) or 0
