"""Giveaway service: creation, dashboards and the join protocol."""

from dataclasses import dataclass
from typing import Callable

from giveroom.auth.guard import assert_owner, require_identity
from giveroom.auth.models import Identity
from giveroom.errors import NotFound, StorageFatal
from giveroom.giveaways.ledger import ReferralLedger, clean_referrer_name
from giveroom.giveaways.models import Giveaway, Referral
from giveroom.giveaways.registry import GiveawayRegistry, generate_code
from giveroom.logging_config import get_logger
from giveroom.storage.db import Database, db, retry_transient


@dataclass(frozen=True)
class JoinResult:
    """Outcome of a successful join."""
    referral: Referral
    giveaway: Giveaway
    referral_count: int

    @property
    def redirect_to(self) -> str:
        return self.giveaway.channel_link


@dataclass(frozen=True)
class GiveawayDetail:
    """A giveaway with its referrals, for its owner."""
    giveaway: Giveaway
    referrals: list[Referral]


class GiveawayService:
    """Service for giveaways and referrals.

    Owner-only operations take the caller's resolved identity as an
    argument and check it before doing anything else.
    """

    def __init__(
        self,
        database: Database | None = None,
        code_factory: Callable[[], str] = generate_code,
    ):
        self.db = database or db
        self.code_factory = code_factory
        self.logger = get_logger(__name__)

    # ==================== PUBLIC ====================

    @retry_transient
    def list_giveaways(self) -> list[Giveaway]:
        """All giveaways with their referral counts."""
        with self.db.session() as session:
            return GiveawayRegistry(session).list_all()

    @retry_transient
    def view_join_form(self, code: str) -> Giveaway:
        """Resolve a code for the join page.

        Raises:
            NotFound: If no giveaway has this code
        """
        with self.db.session() as session:
            giveaway = GiveawayRegistry(session).find_by_code(code)

        if giveaway is None:
            raise NotFound("Giveaway not found")
        return giveaway

    @retry_transient
    def submit_join(self, code: str, referrer_name: str | None) -> JoinResult:
        """Record a visitor joining a giveaway.

        The referral row and the counter increment commit together or not
        at all. Duplicate names are recorded as separate referrals.

        Args:
            code: Giveaway code from the share link
            referrer_name: Name the visitor entered

        Returns:
            Join result; ``redirect_to`` is the giveaway's channel link

        Raises:
            NotFound: If no giveaway has this code
            ValidationError: If the name is blank (nothing is written)
        """
        with self.db.session() as session:
            registry = GiveawayRegistry(session)
            giveaway = registry.find_by_code(code)
            if giveaway is None:
                raise NotFound("Giveaway not found")

            name = clean_referrer_name(referrer_name)

            referral = ReferralLedger(session).record(giveaway.id, name)
            referral_count = registry.increment_referral_count(giveaway.id)
            session.refresh(giveaway)

        self.logger.info(
            "giveaway_joined",
            giveaway_id=giveaway.id,
            referral_id=referral.id,
            referral_count=referral_count,
        )
        return JoinResult(referral=referral, giveaway=giveaway, referral_count=referral_count)

    # ==================== OWNER ONLY ====================

    def create_giveaway(
        self,
        identity: Identity | None,
        room_name: str,
        channel_link: str,
    ) -> Giveaway:
        """Create a giveaway owned by the caller.

        A code collision is retried once with a fresh code.

        Raises:
            Unauthorized: If the caller is anonymous
            ValidationError: If room name or channel link is invalid
            StorageFatal: On a second collision or another constraint violation
        """
        identity = require_identity(identity)

        code = self.code_factory()
        try:
            return self._insert_giveaway(identity.id, room_name, channel_link, code)
        except StorageFatal:
            if not self._code_taken(code):
                raise
            self.logger.warning("giveaway_code_collision", owner_id=identity.id)

        return self._insert_giveaway(identity.id, room_name, channel_link, self.code_factory())

    @retry_transient
    def _insert_giveaway(self, owner_id: int, room_name: str, channel_link: str, code: str) -> Giveaway:
        with self.db.session() as session:
            return GiveawayRegistry(session).create(
                owner_id=owner_id,
                room_name=room_name,
                channel_link=channel_link,
                code=code,
            )

    @retry_transient
    def _code_taken(self, code: str) -> bool:
        with self.db.session() as session:
            return GiveawayRegistry(session).code_exists(code)

    @retry_transient
    def dashboard(self, identity: Identity | None) -> list[Giveaway]:
        """The caller's giveaways with their referrals.

        Raises:
            Unauthorized: If the caller is anonymous
        """
        identity = require_identity(identity)
        with self.db.session() as session:
            return GiveawayRegistry(session).list_by_owner(identity.id)

    @retry_transient
    def giveaway_detail(self, identity: Identity | None, code: str) -> GiveawayDetail:
        """One giveaway with its referrals, for its owner only.

        Raises:
            Unauthorized: If the caller is anonymous
            NotFound: If no giveaway has this code
            Forbidden: If the caller does not own it
        """
        identity = require_identity(identity)
        with self.db.session() as session:
            giveaway = GiveawayRegistry(session).find_by_code(code)
            if giveaway is None:
                raise NotFound("Giveaway not found")

            assert_owner(giveaway, identity)
            referrals = ReferralLedger(session).list_by_giveaway(giveaway.id)

        return GiveawayDetail(giveaway=giveaway, referrals=referrals)
