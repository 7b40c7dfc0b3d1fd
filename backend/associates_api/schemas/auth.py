"""
Associates Backend — Auth Request/Response Schemas
===================================================

What:  API contract for login, identity, secret rotation and provisioning.
Security:
    No response model here has a field that could carry a secret or its hash.
    LoginResponse deliberately omits the token too; it travels only in the
    HTTP-only cookie.
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from associates_api.models.credential import ROLE_EDITOR, ROLES


class LoginRequest(BaseModel):
    identifier: str = Field(min_length=1, max_length=255, description="Username or email")
    secret: str = Field(min_length=1, max_length=1024, description="Password")


class IdentityResponse(BaseModel):
    subject: str = Field(description="Authenticated identifier")
    role: str = Field(description="Authorization role")


class LoginResponse(BaseModel):
    message: str = Field(default="login successful")
    identity: IdentityResponse
    expires_at: datetime = Field(description="When the session cookie stops being accepted (UTC)")


def _fits_bcrypt(v: str) -> str:
    # bcrypt refuses more than 72 bytes, and multi-byte characters count double
    if len(v.encode("utf-8")) > 72:
        raise ValueError("Secret must be at most 72 bytes when UTF-8 encoded")
    return v


class RotateSecretRequest(BaseModel):
    current_secret: str = Field(min_length=1, max_length=1024)
    new_secret: str = Field(min_length=8, max_length=72)

    @field_validator("new_secret")
    @classmethod
    def validate_new_secret(cls, v: str) -> str:
        return _fits_bcrypt(v)


class RegisterRequest(BaseModel):
    """Provisioning payload; only admins may call POST /api/auth/register."""
    identifier: str = Field(min_length=1, max_length=255)
    secret: str = Field(min_length=8, max_length=72)
    role: str = Field(default=ROLE_EDITOR)

    @field_validator("secret")
    @classmethod
    def validate_secret(cls, v: str) -> str:
        return _fits_bcrypt(v)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        if v not in ROLES:
            raise ValueError(f"Invalid role '{v}'. Must be one of: {', '.join(ROLES)}")
        return v


class CredentialResponse(BaseModel):
    identifier: str
    role: str
    created_at: datetime

    model_config = {"from_attributes": True}
