"""Public join pages reached through a giveaway's share link."""

from fastapi import APIRouter, Depends, Form, Request, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from giveroom.auth.middleware import get_giveaway_service
from giveroom.errors import ValidationError
from giveroom.giveaways.service import GiveawayService
from giveroom.logging_config import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/giveaway", tags=["join"])


class JoinFormResponse(BaseModel):
    """What the join form shows."""
    room_name: str
    code: str
    referral_count: int


@router.get("/{code}/join", response_model=JoinFormResponse, name="view_join_form")
def view_join_form(
    code: str,
    giveaway_service: GiveawayService = Depends(get_giveaway_service),
):
    """Giveaway shown on the join form. 404 for unknown codes."""
    giveaway = giveaway_service.view_join_form(code)
    return JoinFormResponse(
        room_name=giveaway.room_name,
        code=giveaway.code,
        referral_count=giveaway.referral_count,
    )


@router.post("/{code}/join")
def submit_join(
    request: Request,
    code: str,
    referrer_name: str | None = Form(default=None, alias="referrerName"),
    giveaway_service: GiveawayService = Depends(get_giveaway_service),
):
    """Record the referral and send the visitor to the channel.

    A blank name sends the visitor back to the form without recording
    anything.
    """
    try:
        result = giveaway_service.submit_join(code, referrer_name)
    except ValidationError as e:
        logger.info("join_reprompt", code=code, reason=e.message)
        return RedirectResponse(
            str(request.url_for("view_join_form", code=code)),
            status_code=status.HTTP_303_SEE_OTHER,
        )

    return RedirectResponse(result.redirect_to, status_code=status.HTTP_303_SEE_OTHER)
