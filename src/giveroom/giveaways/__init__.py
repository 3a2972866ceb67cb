"""Giveaway rooms and referral attribution.

Visitors join a giveaway through its code; every join appends a
referral and bumps the giveaway's counter in the same transaction.
"""

from giveroom.giveaways.models import Giveaway, Referral
from giveroom.giveaways.service import GiveawayDetail, GiveawayService, JoinResult

__all__ = ["Giveaway", "GiveawayDetail", "GiveawayService", "JoinResult", "Referral"]
