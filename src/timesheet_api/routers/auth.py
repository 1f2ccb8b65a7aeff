from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ..auth import Identity, TokenRegistry, get_current_identity
from ..schemas import LoginRequest, LoginResponse, ProfileResponse, UserOut
from ..users import UserDirectory

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/auth",
    tags=["auth"],
)


def _get_users(request: Request) -> UserDirectory:
    return request.app.state.users


def _get_tokens(request: Request) -> TokenRegistry:
    return request.app.state.tokens


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Log in",
    description="Exchange email and password for a bearer token.",
    responses={401: {"description": "Invalid email or password"}},
)
def login(
    payload: LoginRequest,
    users: UserDirectory = Depends(_get_users),
    tokens: TokenRegistry = Depends(_get_tokens),
) -> LoginResponse:
    """
    Authenticate a user and issue an access token.
    """
    user = users.authenticate(payload.email, payload.password)
    token = tokens.issue(user)
    logger.info("User %d logged in", user["id"])
    return LoginResponse(
        message="Login successful",
        token=token,
        user=UserOut(id=user["id"], name=user["name"], email=user["email"], role=user["role"]),
    )


# PUBLIC_INTERFACE
@router.get(
    "/profile",
    response_model=ProfileResponse,
    summary="Current user",
    responses={404: {"description": "User not found"}},
)
def profile(
    identity: Identity = Depends(get_current_identity),
    users: UserDirectory = Depends(_get_users),
) -> ProfileResponse:
    user = users.get(identity.user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return ProfileResponse(
        user=UserOut(id=user["id"], name=user["name"], email=user["email"], role=user["role"])
    )
