"""Giveaway and referral database models."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from giveroom.auth.models import UserAccount
from giveroom.storage.models import Base, utcnow


class Giveaway(Base):
    """A creator-owned room reachable through its unique code.

    ``referral_count`` is only changed by the join protocol and always
    equals the number of referrals linked to the giveaway.
    """

    __tablename__ = "giveaways"
    __table_args__ = (
        CheckConstraint("referral_count >= 0", name="ck_giveaways_referral_count_non_negative"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    room_name: Mapped[str] = mapped_column(String(255), nullable=False)
    channel_link: Mapped[str] = mapped_column(String(2048), nullable=False)
    code: Mapped[str] = mapped_column(String(36), unique=True, nullable=False, index=True)
    owner_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_accounts.id"), nullable=False, index=True
    )
    referral_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    # Relationships
    owner: Mapped[UserAccount] = relationship(UserAccount)
    referrals: Mapped[list["Referral"]] = relationship(
        "Referral",
        back_populates="giveaway",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by=lambda: [Referral.created_at, Referral.id],
    )

    def __repr__(self):
        return f"<Giveaway(id={self.id}, code={self.code}, referrals={self.referral_count})>"


class Referral(Base):
    """One visitor joining a giveaway through its code.

    Never updated. Duplicate names are independent referrals.
    """

    __tablename__ = "referrals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    giveaway_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("giveaways.id", ondelete="CASCADE"), nullable=False, index=True
    )
    referrer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    # Relationships
    giveaway: Mapped[Giveaway] = relationship(Giveaway, back_populates="referrals")

    def __repr__(self):
        return f"<Referral(id={self.id}, giveaway={self.giveaway_id}, name={self.referrer_name})>"
