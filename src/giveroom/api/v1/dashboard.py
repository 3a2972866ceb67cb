"""Dashboard API v1 endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from giveroom.api.v1.giveaways import GiveawayResponse, to_response
from giveroom.auth.middleware import get_current_identity, get_giveaway_service
from giveroom.auth.models import Identity
from giveroom.giveaways.models import Giveaway, Referral
from giveroom.giveaways.service import GiveawayService

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


class ReferralResponse(BaseModel):
    """One recorded join."""
    id: int
    referrer_name: str
    created_at: datetime


class DashboardGiveaway(GiveawayResponse):
    """Giveaway with its referrals, oldest first."""
    referrals: list[ReferralResponse]


def _with_referrals(request: Request, giveaway: Giveaway, referrals: list[Referral]) -> DashboardGiveaway:
    return DashboardGiveaway(
        **to_response(request, giveaway).model_dump(),
        referrals=[
            ReferralResponse(id=r.id, referrer_name=r.referrer_name, created_at=r.created_at)
            for r in referrals
        ],
    )


@router.get("", response_model=list[DashboardGiveaway])
def get_dashboard(
    request: Request,
    identity: Identity | None = Depends(get_current_identity),
    giveaway_service: GiveawayService = Depends(get_giveaway_service),
):
    """The current user's giveaways with referral details."""
    giveaways = giveaway_service.dashboard(identity)
    return [_with_referrals(request, g, g.referrals) for g in giveaways]


@router.get("/giveaways/{code}", response_model=DashboardGiveaway)
def get_giveaway_detail(
    request: Request,
    code: str,
    identity: Identity | None = Depends(get_current_identity),
    giveaway_service: GiveawayService = Depends(get_giveaway_service),
):
    """One giveaway's referral details. Owner only."""
    detail = giveaway_service.giveaway_detail(identity, code)
    return _with_referrals(request, detail.giveaway, detail.referrals)
