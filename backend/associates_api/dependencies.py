"""
Associates Backend — Request Dependencies
==========================================

What:  FastAPI dependencies that hand routes their shared collaborators and
       enforce the auth gate.
How:   Everything long-lived (settings, auth gate, media client) is built in
       the lifespan handler and kept on app.state; these functions only read
       it back, so tests can swap any of them via dependency_overrides.

Auth ordering:
    Protected routes declare require_identity (directly, or through
    require_role). FastAPI reads and validates the request body before it
    resolves any dependency, so on its own that would let a malformed body
    answer 422 before the cookie is looked at. AuthGateRoute closes the gap:
    routers built with route_class=AuthGateRoute check the cookie of every
    route whose dependency tree contains require_identity before the body is
    touched, and raise AuthenticationRequired (401) on failure. Neither the
    body parser nor get_db_session runs for a rejected request.
"""

import logging
from typing import Any, Callable, Coroutine

from fastapi import Depends, Request, Response
from fastapi.dependencies.models import Dependant
from fastapi.routing import APIRoute

from associates_api.config import Settings
from associates_api.exceptions import AuthenticationRequired, PermissionDeniedError
from associates_api.services.auth_gate import AuthError, AuthGate
from associates_api.services.media_service import MediaHostClient
from associates_api.services.session_tokens import Identity

logger = logging.getLogger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_auth_gate(request: Request) -> AuthGate:
    return request.app.state.auth_gate


def get_media_client(request: Request) -> MediaHostClient:
    return request.app.state.media_client


def _authenticate_request(request: Request, gate: AuthGate) -> Identity:
    outcome = gate.authenticate(request.cookies.get(gate.cookie_name))
    if isinstance(outcome, AuthError):
        raise AuthenticationRequired(context={"path": request.url.path})
    request.state.identity = outcome
    return outcome


def require_identity(
    request: Request,
    gate: AuthGate = Depends(get_auth_gate),
) -> Identity:
    """
    Verify the auth cookie and attach the identity to the request.

    Reuses the identity AuthGateRoute already established for this request.

    Raises:
        AuthenticationRequired: cookie missing, tampered with, or expired
    """
    identity = getattr(request.state, "identity", None)
    if isinstance(identity, Identity):
        return identity
    return _authenticate_request(request, gate)


def require_role(role: str) -> Callable[..., Identity]:
    """
    Build a dependency that additionally demands `role`.

    Usage:
        @router.post("/register", dependencies=[Depends(require_role(ROLE_ADMIN))])
    """

    def dependency(identity: Identity = Depends(require_identity)) -> Identity:
        if identity.role != role:
            logger.info("Role %s required, %s has %s", role, identity.subject, identity.role)
            raise PermissionDeniedError(required_role=role)
        return identity

    return dependency


def requires_identity(dependant: Dependant) -> bool:
    """True if require_identity appears anywhere in the dependency tree."""
    return any(
        sub.call is require_identity or requires_identity(sub)
        for sub in dependant.dependencies
    )


class AuthGateRoute(APIRoute):
    """
    APIRoute that authenticates protected routes before body parsing.

    Open routes (no require_identity in their tree) get the stock handler.
    """

    def get_route_handler(self) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        handler = super().get_route_handler()
        if not requires_identity(self.dependant):
            return handler

        async def gated_handler(request: Request) -> Response:
            _authenticate_request(request, request.app.state.auth_gate)
            return await handler(request)

        return gated_handler
