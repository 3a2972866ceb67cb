"""Giveaway API v1 endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel

from giveroom.auth.middleware import get_current_identity, get_giveaway_service
from giveroom.auth.models import Identity
from giveroom.giveaways.models import Giveaway
from giveroom.giveaways.service import GiveawayService
from giveroom.settings import settings

router = APIRouter(prefix="/giveaways", tags=["giveaways"])


# ==================== MODELS ====================


class GiveawayCreate(BaseModel):
    """Giveaway creation request. The owner is always the caller."""
    room_name: str
    channel_link: str


class GiveawayResponse(BaseModel):
    """Giveaway with its share link."""
    id: int
    room_name: str
    channel_link: str
    code: str
    referral_count: int
    created_at: datetime
    share_link: str


def share_link(request: Request, code: str) -> str:
    """Public join URL for a giveaway code."""
    base_url = settings.public_base_url or str(request.base_url)
    return f"{base_url.rstrip('/')}/giveaway/{code}/join"


def to_response(request: Request, giveaway: Giveaway) -> GiveawayResponse:
    return GiveawayResponse(
        id=giveaway.id,
        room_name=giveaway.room_name,
        channel_link=giveaway.channel_link,
        code=giveaway.code,
        referral_count=giveaway.referral_count,
        created_at=giveaway.created_at,
        share_link=share_link(request, giveaway.code),
    )


# ==================== ENDPOINTS ====================


@router.get("", response_model=list[GiveawayResponse])
def list_giveaways(
    request: Request,
    giveaway_service: GiveawayService = Depends(get_giveaway_service),
):
    """List all giveaway rooms with their referral counts."""
    return [to_response(request, g) for g in giveaway_service.list_giveaways()]


@router.post("", response_model=GiveawayResponse, status_code=status.HTTP_201_CREATED)
def create_giveaway(
    request: Request,
    body: GiveawayCreate,
    identity: Identity | None = Depends(get_current_identity),
    giveaway_service: GiveawayService = Depends(get_giveaway_service),
):
    """Create a giveaway owned by the current user."""
    giveaway = giveaway_service.create_giveaway(identity, body.room_name, body.channel_link)
    return to_response(request, giveaway)
