"""Authentication API v1 endpoints."""

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from giveroom.auth.middleware import (
    clear_identity_cookie,
    get_auth_service,
    get_current_identity,
    get_identity_proof,
    set_identity_cookie,
)
from giveroom.auth.models import Identity
from giveroom.auth.service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


# ==================== MODELS ====================


class SignupRequest(BaseModel):
    """User registration request."""
    username: str
    password: str


class LoginRequest(BaseModel):
    """User login request."""
    username: str
    password: str


class IdentityResponse(BaseModel):
    """Public view of a user."""
    id: int
    username: str


class LoginResponse(BaseModel):
    """Successful login. The proof itself travels only in the cookie."""
    user: IdentityResponse
    strategy: str
    expires_in: int | None = None


class CurrentUserResponse(BaseModel):
    """Identity of the caller, null when anonymous."""
    user: IdentityResponse | None


class LogoutResponse(BaseModel):
    """Logout result. ``revoked`` is false for the token strategy."""
    message: str
    revoked: bool


# ==================== ENDPOINTS ====================


@router.post("/signup", response_model=IdentityResponse, status_code=status.HTTP_201_CREATED)
def signup(body: SignupRequest, auth_service: AuthService = Depends(get_auth_service)):
    """Register a new user account."""
    user = auth_service.signup(body.username, body.password)
    return IdentityResponse(id=user.id, username=user.username)


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Login with username and password.

    Issues one identity proof and sets it as an HTTP-only cookie.
    """
    result = auth_service.login(body.username, body.password)
    set_identity_cookie(response, auth_service.strategy, result.proof)

    return LoginResponse(
        user=IdentityResponse(id=result.identity.id, username=result.identity.username),
        strategy=auth_service.strategy.name,
        expires_in=auth_service.strategy.cookie_max_age,
    )


@router.post("/logout", response_model=LogoutResponse)
def logout(
    response: Response,
    proof: str | None = Depends(get_identity_proof),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Logout.

    Session proofs are destroyed server-side. A token cannot be revoked:
    the cookie is cleared but a copy of the token stays valid until it
    expires.
    """
    auth_service.logout(proof)
    clear_identity_cookie(response, auth_service.strategy)

    return LogoutResponse(message="Logged out", revoked=auth_service.strategy.revocable)


@router.get("/me", response_model=CurrentUserResponse)
def get_me(identity: Identity | None = Depends(get_current_identity)):
    """Get the current user, if any."""
    if identity is None:
        return CurrentUserResponse(user=None)
    return CurrentUserResponse(user=IdentityResponse(id=identity.id, username=identity.username))
