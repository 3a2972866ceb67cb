"""Authentication models for user accounts and identity sessions."""

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from giveroom.storage.models import Base, utcnow


class UserAccount(Base):
    """Registered creator. Owns giveaways."""

    __tablename__ = "user_accounts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(150), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<UserAccount(id={self.id}, username={self.username})>"


class IdentitySession(Base):
    """Server-held binding between a session handle and a user.

    Only the SHA-256 of the handle is stored; the raw handle lives in the
    client's cookie.
    """

    __tablename__ = "identity_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    handle_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("user_accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    record_json: Mapped[str | None] = mapped_column(Text, nullable=True)  # session_record variant only
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<IdentitySession(id={self.id}, user={self.user_id}, expires_at={self.expires_at})>"

    @property
    def record(self) -> dict[str, Any] | None:
        """Get the stored user record."""
        if self.record_json:
            return json.loads(self.record_json)
        return None

    @record.setter
    def record(self, value: dict[str, Any] | None):
        """Set the stored user record."""
        self.record_json = json.dumps(value) if value is not None else None


class Identity(BaseModel):
    """The acting user recovered from a verified identity proof."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    username: str
    created_at: datetime | None = None
