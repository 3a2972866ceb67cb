"""Authentication dependencies for FastAPI.

The resolved identity is handed to route functions as an argument and
from there to the service operations, which run their own capability
checks. Nothing is stored on the request.
"""

from fastapi import Depends, Request, Response

from giveroom.auth.identity import IdentityStrategy
from giveroom.auth.models import Identity
from giveroom.auth.service import AuthService
from giveroom.giveaways.service import GiveawayService
from giveroom.settings import settings


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_giveaway_service(request: Request) -> GiveawayService:
    return request.app.state.giveaway_service


def get_identity_proof(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
) -> str | None:
    """Raw proof from the strategy's cookie, if any."""
    return request.cookies.get(auth_service.strategy.cookie_name)


def get_current_identity(
    proof: str | None = Depends(get_identity_proof),
    auth_service: AuthService = Depends(get_auth_service),
) -> Identity | None:
    """Resolve the caller's identity.

    Returns:
        Identity, or None for anonymous requests and invalid proofs
    """
    return auth_service.resolve(proof)


def set_identity_cookie(response: Response, strategy: IdentityStrategy, proof: str) -> None:
    """Attach a proof to the response as an HTTP-only cookie."""
    response.set_cookie(
        key=strategy.cookie_name,
        value=proof,
        max_age=strategy.cookie_max_age,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )


def clear_identity_cookie(response: Response, strategy: IdentityStrategy) -> None:
    """Tell the client to drop its proof cookie."""
    response.delete_cookie(
        key=strategy.cookie_name,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
        path="/",
    )
