"""Giveroom - giveaway rooms with referral attribution."""

__version__ = "1.0.0"
