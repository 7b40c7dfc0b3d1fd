"""
Associates Backend — Auth Gate
===============================

What:  The request-authentication and session-authorization contract:
       login (issue a session), authenticate (verify a cookie), logout (clear
       it), plus secret rotation and credential provisioning.
Why:   Every write route in the API depends on this one object; keeping the
       rules here means no route repeats them.
How:   Credentials are looked up through CredentialService and checked with
       bcrypt. Sessions are stateless tokens from SessionTokenCodec carried in
       an HTTP-only cookie whose attributes come from settings.

Result values, not exceptions:
    login() and authenticate() return either a success value or an AuthError.
    The route layer decides the HTTP status. Exceptions still propagate for
    genuinely unexpected conditions (DatabaseError when the store is down),
    which must become a 500, not a 401.

    AuthError carries only the client-facing kind. The internal cause
    (unknown identifier vs wrong secret, expired vs tampered token) is logged
    here and goes nowhere else, so callers cannot leak it.

Accepted limitation:
    logout() only clears the cookie. A copied token stays valid until its exp
    claim passes, because there is no server-side session to revoke.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from associates_api.config import Settings
from associates_api.models.credential import Credential
from associates_api.services.credential_service import CredentialService, credential_service
from associates_api.services.passwords import hash_secret, verify_dummy, verify_secret
from associates_api.services.session_tokens import (
    Identity,
    SessionToken,
    SessionTokenCodec,
    TokenFailure,
)

logger = logging.getLogger(__name__)


class AuthErrorKind(str, enum.Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    UNAUTHENTICATED = "unauthenticated"


@dataclass(frozen=True)
class AuthError:
    kind: AuthErrorKind


INVALID_CREDENTIALS = AuthError(AuthErrorKind.INVALID_CREDENTIALS)
UNAUTHENTICATED = AuthError(AuthErrorKind.UNAUTHENTICATED)


@dataclass(frozen=True)
class AuthCookie:
    """Transport wrapper for a session token; maps onto Response.set_cookie()."""
    name: str
    value: str
    max_age: int
    secure: bool
    samesite: str
    domain: Optional[str] = None
    path: str = "/"
    httponly: bool = True

    def set_cookie_kwargs(self) -> dict:
        return {
            "key": self.name,
            "value": self.value,
            "max_age": self.max_age,
            "httponly": self.httponly,
            "secure": self.secure,
            "samesite": self.samesite,
            "domain": self.domain,
            "path": self.path,
        }


@dataclass(frozen=True)
class IssuedSession:
    """Successful login: the token and the cookie that carries it."""
    token: SessionToken
    cookie: AuthCookie

    @property
    def identity(self) -> Identity:
        return Identity(subject=self.token.subject, role=self.token.role)


class AuthGate:
    """
    Issues, verifies and clears session cookies.

    Holds no mutable state after construction; one instance is created in the
    lifespan handler and shared by all requests.
    """

    def __init__(
        self,
        codec: SessionTokenCodec,
        cookie_name: str,
        cookie_secure: bool,
        cookie_samesite: str,
        cookie_domain: Optional[str] = None,
        credentials: Optional[CredentialService] = None,
    ):
        self.codec = codec
        self.cookie_name = cookie_name
        self.cookie_secure = cookie_secure
        self.cookie_samesite = cookie_samesite
        self.cookie_domain = cookie_domain
        self.credentials = credentials or credential_service

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthGate":
        codec = SessionTokenCodec(
            secret=settings.session_secret,
            ttl_seconds=settings.session_ttl_seconds,
        )
        return cls(
            codec=codec,
            cookie_name=settings.auth_cookie_name,
            cookie_secure=settings.cookie_secure,
            cookie_samesite=settings.cookie_samesite,
            cookie_domain=settings.cookie_domain,
        )

    # ── Cookies ───────────────────────────────────────────────────────────

    def _cookie(self, value: str, max_age: int) -> AuthCookie:
        return AuthCookie(
            name=self.cookie_name,
            value=value,
            max_age=max_age,
            secure=self.cookie_secure,
            samesite=self.cookie_samesite,
            domain=self.cookie_domain,
        )

    # ── Contract ──────────────────────────────────────────────────────────

    async def login(
        self, db: AsyncSession, identifier: str, secret: str
    ) -> Union[IssuedSession, AuthError]:
        """
        Check a credential and mint a session for it.

        Both failure causes return the same INVALID_CREDENTIALS value, and an
        unknown identifier still pays for one bcrypt comparison.

        Raises:
            DatabaseError: the credential lookup itself failed (not retried)
        """
        credential = await self.credentials.get_by_identifier(db, identifier)

        if credential is None:
            await run_in_threadpool(verify_dummy, secret)
            logger.info("Login rejected: unknown identifier")
            return INVALID_CREDENTIALS

        matches = await run_in_threadpool(verify_secret, secret, credential.secret_hash)
        if not matches:
            logger.info("Login rejected: secret mismatch for %s", identifier)
            return INVALID_CREDENTIALS

        token = self.codec.mint(subject=credential.identifier, role=credential.role)
        logger.info("Login succeeded for %s (role=%s)", credential.identifier, credential.role)
        return IssuedSession(token=token, cookie=self._cookie(token.value, self.codec.ttl_seconds))

    def authenticate(self, cookie_value: Optional[str]) -> Union[Identity, AuthError]:
        """
        Verify the incoming auth cookie value.

        Every failure returns UNAUTHENTICATED; the specific TokenFailure is
        only logged.
        """
        outcome = self.codec.verify(cookie_value)
        if isinstance(outcome, TokenFailure):
            if outcome is TokenFailure.MISSING:
                logger.debug("Authentication failed: no session cookie")
            elif outcome is TokenFailure.EXPIRED:
                logger.info("Authentication failed: session expired")
            else:
                logger.warning("Authentication failed: %s session cookie", outcome.value)
            return UNAUTHENTICATED
        return outcome

    def logout(self) -> AuthCookie:
        """Return the cookie that overwrites and expires the session cookie."""
        return self._cookie(value="", max_age=0)

    # ── Credential management ─────────────────────────────────────────────

    async def rotate_secret(
        self,
        db: AsyncSession,
        identity: Identity,
        current_secret: str,
        new_secret: str,
    ) -> Optional[AuthError]:
        """
        Replace the caller's secret. Returns None on success.

        Sessions minted before rotation stay valid until they expire.
        """
        credential = await self.credentials.get_by_identifier(db, identity.subject)
        if credential is None:
            await run_in_threadpool(verify_dummy, current_secret)
            logger.warning("Secret rotation for vanished credential %s", identity.subject)
            return INVALID_CREDENTIALS

        matches = await run_in_threadpool(verify_secret, current_secret, credential.secret_hash)
        if not matches:
            logger.info("Secret rotation rejected for %s: current secret mismatch", identity.subject)
            return INVALID_CREDENTIALS

        new_hash = await run_in_threadpool(hash_secret, new_secret)
        await self.credentials.update_secret_hash(db, credential, new_hash)
        return None

    async def provision(
        self, db: AsyncSession, identifier: str, secret: str, role: str
    ) -> Credential:
        """
        Create a credential.

        Raises:
            ConflictError: identifier already exists
        """
        secret_hash = await run_in_threadpool(hash_secret, secret)
        return await self.credentials.create(
            db, identifier=identifier, secret_hash=secret_hash, role=role
        )
