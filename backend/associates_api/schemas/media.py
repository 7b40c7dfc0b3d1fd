"""
Associates Backend — Media Proxy Schemas
=========================================

What:  Bodies for POST /api/upload and POST /api/delete.
Why:   Field names (publicId, success) match what the admin frontend already
       sends and reads.
"""

from typing import Optional

from pydantic import BaseModel, Field


class MediaUploadResponse(BaseModel):
    """
    The media host's upload result, passed through.

    Only the fields the frontend relies on are declared; everything else the
    host returns (width, height, version, ...) is kept as extra keys.
    """
    public_id: str = Field(description="Host identifier, needed later for deletion")
    secure_url: str = Field(description="HTTPS URL of the stored asset")
    url: Optional[str] = Field(default=None)
    resource_type: Optional[str] = Field(default=None)
    format: Optional[str] = Field(default=None)
    bytes: Optional[int] = Field(default=None)

    model_config = {"extra": "allow"}


class MediaDeleteRequest(BaseModel):
    publicId: str = Field(min_length=1, max_length=255, description="public_id returned by upload")


class MediaDeleteResponse(BaseModel):
    success: bool
    message: Optional[str] = None
