"""
Associates Backend — Auth Route Handlers
=========================================

What:  Login, logout, current identity, secret rotation and provisioning.
How:   Delegates to the AuthGate held on app.state and maps its result values
       to HTTP: an AuthError from login() is a 401 with a bare message body.

Cookie handling:
    The session token travels only in the Set-Cookie header. Response bodies
    carry the identity and expiry, never the token or any secret.
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from associates_api.database import get_db_session
from associates_api.dependencies import (
    AuthGateRoute,
    get_auth_gate,
    require_identity,
    require_role,
)
from associates_api.models.credential import ROLE_ADMIN
from associates_api.schemas.auth import (
    CredentialResponse,
    IdentityResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RotateSecretRequest,
)
from associates_api.schemas.common import ErrorResponse, MessageResponse
from associates_api.services.auth_gate import AuthError, AuthGate
from associates_api.services.session_tokens import Identity

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"], route_class=AuthGateRoute)

INVALID_CREDENTIALS_BODY = {"message": "invalid credentials"}


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        401: {"description": "Unknown identifier or wrong secret", "model": MessageResponse},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Log in and receive the session cookie",
)
async def login(
    payload: LoginRequest,
    response: Response,
    gate: AuthGate = Depends(get_auth_gate),
    db: AsyncSession = Depends(get_db_session),
):
    """
    Exchange an identifier and secret for a session cookie.

    Both failure causes produce the same 401 body.
    """
    outcome = await gate.login(db, payload.identifier, payload.secret)
    if isinstance(outcome, AuthError):
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content=INVALID_CREDENTIALS_BODY)

    response.set_cookie(**outcome.cookie.set_cookie_kwargs())
    return LoginResponse(
        identity=IdentityResponse(subject=outcome.identity.subject, role=outcome.identity.role),
        expires_at=outcome.token.expires_at,
    )


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Clear the session cookie",
)
async def logout(response: Response, gate: AuthGate = Depends(get_auth_gate)) -> MessageResponse:
    # Open on purpose: clearing a cookie you don't have is harmless
    response.set_cookie(**gate.logout().set_cookie_kwargs())
    return MessageResponse(message="logout successful")


@router.get(
    "/me",
    response_model=IdentityResponse,
    responses={401: {"description": "No valid session", "model": MessageResponse}},
    summary="Current identity",
)
async def me(identity: Identity = Depends(require_identity)) -> IdentityResponse:
    return IdentityResponse(subject=identity.subject, role=identity.role)


@router.put(
    "/secret",
    response_model=MessageResponse,
    responses={401: {"description": "No valid session or wrong current secret", "model": MessageResponse}},
    summary="Rotate your own secret",
)
async def rotate_secret(
    payload: RotateSecretRequest,
    # Declared before db so the session is only opened for an authenticated caller
    identity: Identity = Depends(require_identity),
    gate: AuthGate = Depends(get_auth_gate),
    db: AsyncSession = Depends(get_db_session),
):
    outcome = await gate.rotate_secret(db, identity, payload.current_secret, payload.new_secret)
    if isinstance(outcome, AuthError):
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content=INVALID_CREDENTIALS_BODY)
    logger.info("Secret rotated for %s", identity.subject)
    return MessageResponse(message="secret updated")


@router.post(
    "/register",
    response_model=CredentialResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_role(ROLE_ADMIN))],
    responses={
        401: {"description": "No valid session", "model": MessageResponse},
        403: {"description": "Caller is not an admin", "model": MessageResponse},
        409: {"description": "Identifier already exists", "model": ErrorResponse},
    },
    summary="Provision a credential (admin only)",
)
async def register(
    payload: RegisterRequest,
    gate: AuthGate = Depends(get_auth_gate),
    db: AsyncSession = Depends(get_db_session),
) -> CredentialResponse:
    credential = await gate.provision(db, payload.identifier, payload.secret, payload.role)
    logger.info("Provisioned credential %s (role=%s)", credential.identifier, credential.role)
    return CredentialResponse.model_validate(credential)
