"""Tests for the giveaway registry and referral ledger."""

import itertools

import pytest
from sqlalchemy import func, select

from giveroom.errors import NotFound, StorageFatal, Unauthorized, ValidationError
from giveroom.giveaways.ledger import ReferralLedger
from giveroom.giveaways.models import Giveaway, Referral
from giveroom.giveaways.registry import GiveawayRegistry, generate_code
from giveroom.giveaways.service import GiveawayService

CHANNEL = "https://t.me/example_channel"


class TestCreateGiveaway:
    """Creation through the service."""

    def test_create_binds_owner_and_zero_count(self, giveaway_service, alice):
        giveaway = giveaway_service.create_giveaway(alice, "Spring Drop", CHANNEL)

        assert giveaway.id is not None
        assert giveaway.owner_id == alice.id
        assert giveaway.referral_count == 0
        assert giveaway.room_name == "Spring Drop"
        assert giveaway.channel_link == CHANNEL
        assert len(giveaway.code) == 36

    def test_anonymous_cannot_create(self, giveaway_service):
        with pytest.raises(Unauthorized):
            giveaway_service.create_giveaway(None, "Room", CHANNEL)

    @pytest.mark.parametrize(
        "room_name,channel_link",
        [
            ("", CHANNEL),
            ("   ", CHANNEL),
            ("Room", ""),
            ("Room", "   "),
            ("Room", "t.me/no-scheme"),
            ("Room", "javascript:alert(1)"),
            ("Room", "ftp://example.com/file"),
            ("x" * 256, CHANNEL),
        ],
    )
    def test_invalid_input_rejected(self, giveaway_service, alice, room_name, channel_link, database):
        with pytest.raises(ValidationError):
            giveaway_service.create_giveaway(alice, room_name, channel_link)

        with database.session() as session:
            assert session.scalar(select(func.count(Giveaway.id))) == 0

    def test_input_is_stripped(self, giveaway_service, alice):
        giveaway = giveaway_service.create_giveaway(alice, "  Room  ", f"  {CHANNEL} ")

        assert giveaway.room_name == "Room"
        assert giveaway.channel_link == CHANNEL

    def test_code_collision_retried_once(self, database, alice):
        """A colliding code is replaced by a fresh one."""
        codes = iter(["dup-code", "dup-code", "fresh-code"])
        service = GiveawayService(database=database, code_factory=lambda: next(codes))

        first = service.create_giveaway(alice, "First", CHANNEL)
        second = service.create_giveaway(alice, "Second", CHANNEL)

        assert first.code == "dup-code"
        assert second.code == "fresh-code"

    def test_second_collision_surfaces(self, database, alice):
        """Two collisions in a row fail with StorageFatal."""
        service = GiveawayService(database=database, code_factory=lambda: "always-same")
        service.create_giveaway(alice, "First", CHANNEL)

        with pytest.raises(StorageFatal):
            service.create_giveaway(alice, "Second", CHANNEL)

    def test_unknown_owner_is_fatal_without_retry(self, database, alice):
        """A foreign-key violation is not mistaken for a code collision."""
        from giveroom.auth.models import Identity

        calls = itertools.count()

        def factory():
            next(calls)
            return generate_code()

        service = GiveawayService(database=database, code_factory=factory)

        with pytest.raises(StorageFatal):
            service.create_giveaway(Identity(id=9999, username="ghost"), "Room", CHANNEL)

        assert next(calls) == 1


class TestCodes:
    """Code uniqueness."""

    def test_ten_thousand_giveaways_have_distinct_codes(self, database, alice):
        with database.session() as session:
            registry = GiveawayRegistry(session)
            for i in range(10_000):
                registry.create(alice.id, f"Room {i}", CHANNEL)

        with database.session() as session:
            total = session.scalar(select(func.count(Giveaway.id)))
            distinct = session.scalar(select(func.count(func.distinct(Giveaway.code))))

        assert total == distinct == 10_000

    def test_generate_code_is_uuid4(self):
        code = generate_code()

        assert len(code) == 36
        assert code[14] == "4"


class TestRegistryQueries:
    """Lookup and listing."""

    def test_find_by_code(self, database, alice):
        with database.session() as session:
            created = GiveawayRegistry(session).create(alice.id, "Room", CHANNEL)

        with database.session() as session:
            registry = GiveawayRegistry(session)
            assert registry.find_by_code(created.code).id == created.id
            assert registry.find_by_code("missing") is None
            assert registry.find_by_code("") is None

    def test_list_by_owner_only_returns_owned(self, database, alice, bob):
        with database.session() as session:
            registry = GiveawayRegistry(session)
            registry.create(alice.id, "A1", CHANNEL)
            registry.create(bob.id, "B1", CHANNEL)
            registry.create(alice.id, "A2", CHANNEL)

        with database.session() as session:
            registry = GiveawayRegistry(session)
            owned = registry.list_by_owner(alice.id)
            everything = registry.list_all()

        assert [g.room_name for g in owned] == ["A1", "A2"]
        assert [g.room_name for g in everything] == ["A1", "B1", "A2"]

    def test_increment_unknown_giveaway(self, database):
        with pytest.raises(NotFound):
            with database.session() as session:
                GiveawayRegistry(session).increment_referral_count(12345)

    def test_increment_returns_new_count(self, database, alice):
        with database.session() as session:
            registry = GiveawayRegistry(session)
            giveaway = registry.create(alice.id, "Room", CHANNEL)
            assert registry.increment_referral_count(giveaway.id) == 1
            assert registry.increment_referral_count(giveaway.id) == 2

    def test_delete_cascades_to_referrals(self, database, giveaway_service, alice):
        """Referrals never outlive their giveaway."""
        giveaway = giveaway_service.create_giveaway(alice, "Room", CHANNEL)
        giveaway_service.submit_join(giveaway.code, "bob")
        giveaway_service.submit_join(giveaway.code, "carol")

        with database.session() as session:
            assert GiveawayRegistry(session).delete(giveaway.id) is True

        with database.session() as session:
            assert session.scalar(select(func.count(Referral.id))) == 0
            assert GiveawayRegistry(session).delete(giveaway.id) is False


class TestReferralLedger:
    """Append-only referral records."""

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_blank_name_rejected(self, database, alice, name):
        with pytest.raises(ValidationError):
            with database.session() as session:
                giveaway = GiveawayRegistry(session).create(alice.id, "Room", CHANNEL)
                ReferralLedger(session).record(giveaway.id, name)

    def test_overlong_name_rejected(self, database, alice):
        with pytest.raises(ValidationError, match="at most 255"):
            with database.session() as session:
                giveaway = GiveawayRegistry(session).create(alice.id, "Room", CHANNEL)
                ReferralLedger(session).record(giveaway.id, "n" * 256)

    def test_record_does_not_touch_counter(self, database, alice):
        with database.session() as session:
            giveaway = GiveawayRegistry(session).create(alice.id, "Room", CHANNEL)
            ReferralLedger(session).record(giveaway.id, "bob")

        with database.session() as session:
            assert session.get(Giveaway, giveaway.id).referral_count == 0
            assert ReferralLedger(session).count_by_giveaway(giveaway.id) == 1

    def test_list_ordered_by_timestamp(self, database, alice):
        with database.session() as session:
            giveaway = GiveawayRegistry(session).create(alice.id, "Room", CHANNEL)
            ledger = ReferralLedger(session)
            for name in ["first", "second", "third"]:
                ledger.record(giveaway.id, name)

        with database.session() as session:
            referrals = ReferralLedger(session).list_by_giveaway(giveaway.id)

        assert [r.referrer_name for r in referrals] == ["first", "second", "third"]
        assert referrals[0].created_at <= referrals[1].created_at <= referrals[2].created_at
