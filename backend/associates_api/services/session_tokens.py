"""
Associates Backend — Session Token Codec
=========================================

What:  Mints and verifies the signed, self-contained session tokens carried by
       the auth cookie.
Why:   Tokens are stateless: nothing is stored server-side, so any worker can
       verify any token with nothing but the signing secret.
How:   itsdangerous URLSafeTimedSerializer (HMAC-SHA1 over a JSON payload, with
       a salt scoping the key to session tokens). The payload carries
       {sub, role, iat, exp}; verification checks the signature, the
       serializer's own max_age, and the explicit exp claim.

Token format (opaque to clients):
    <base64 payload>.<base64 timestamp>.<base64 signature>

Verification outcomes:
    Identity         → signature valid, payload well-formed, not expired
    TokenFailure.*   → MISSING / MALFORMED / BAD_SIGNATURE / EXPIRED
    The failure kind is for logs only; the auth gate collapses all of them
    into one client-facing "unauthenticated".
"""

import enum
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from itsdangerous import BadData, BadSignature, SignatureExpired, URLSafeTimedSerializer

SESSION_SALT = "associates-session-v1"


@dataclass(frozen=True)
class Identity:
    """Who a valid token speaks for."""
    subject: str
    role: str


@dataclass(frozen=True)
class SessionToken:
    """A freshly minted token plus the claims it encodes."""
    value: str
    subject: str
    role: str
    issued_at: datetime
    expires_at: datetime


class TokenFailure(str, enum.Enum):
    MISSING = "missing"
    MALFORMED = "malformed"
    BAD_SIGNATURE = "bad_signature"
    EXPIRED = "expired"


class SessionTokenCodec:
    """
    Signs and verifies session tokens with a fixed secret and TTL.

    The codec is immutable after construction and safe to share across
    concurrent requests.

    Args:
        secret:      HMAC key (settings.session_secret)
        ttl_seconds: Lifetime of a token from issue
        clock:       Returns the current UNIX time; injectable for tests
    """

    def __init__(
        self,
        secret: str,
        ttl_seconds: int,
        clock: Callable[[], float] = time.time,
    ):
        self._serializer = URLSafeTimedSerializer(secret_key=secret, salt=SESSION_SALT)
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def mint(self, subject: str, role: str) -> SessionToken:
        issued_at = int(self._clock())
        expires_at = issued_at + self.ttl_seconds
        value = self._serializer.dumps(
            {"sub": subject, "role": role, "iat": issued_at, "exp": expires_at}
        )
        return SessionToken(
            value=value,
            subject=subject,
            role=role,
            issued_at=datetime.fromtimestamp(issued_at, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(expires_at, tz=timezone.utc),
        )

    def verify(self, value: Optional[str]) -> Union[Identity, TokenFailure]:
        """
        Decode a cookie value.

        Order matters: the signature is checked before the payload is trusted,
        so a forged exp claim can never extend a session.
        """
        if not value:
            return TokenFailure.MISSING

        try:
            payload = self._serializer.loads(value, max_age=self.ttl_seconds)
        except SignatureExpired:
            return TokenFailure.EXPIRED
        except BadSignature:
            # Also covers truncated tokens and a wrong signing secret
            return TokenFailure.BAD_SIGNATURE
        except BadData:
            return TokenFailure.MALFORMED

        if not isinstance(payload, dict):
            return TokenFailure.MALFORMED
        subject = payload.get("sub")
        role = payload.get("role")
        expires_at = payload.get("exp")
        if not isinstance(subject, str) or not subject:
            return TokenFailure.MALFORMED
        if not isinstance(role, str) or not role:
            return TokenFailure.MALFORMED
        if not isinstance(expires_at, (int, float)) or isinstance(expires_at, bool):
            return TokenFailure.MALFORMED

        if self._clock() >= expires_at:
            return TokenFailure.EXPIRED

        return Identity(subject=subject, role=role)
