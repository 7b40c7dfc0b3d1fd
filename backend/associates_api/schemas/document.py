"""
Associates Backend — Document Request/Response Schemas
=======================================================

What:  API contract for the uniform resource CRUD routes.
How:   Request bodies are free-form JSON objects (each resource has its own
       fields, chosen by the admin frontend). Responses flatten the stored
       body next to id/created_at/updated_at, so clients see one object.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

# Keys owned by the server; stripped from incoming bodies
RESERVED_KEYS = frozenset({"id", "_id", "created_at", "updated_at"})


class DocumentResponse(BaseModel):
    """
    One stored document.

    Extra keys (the document body) are allowed and serialized alongside the
    fixed fields.
    """
    id: uuid.UUID = Field(description="Document identifier (UUID)")
    created_at: datetime = Field(description="Creation timestamp (UTC)")
    updated_at: datetime = Field(description="Last update timestamp (UTC)")

    model_config = {"extra": "allow"}


class DocumentListResponse(BaseModel):
    """
    Paginated list for GET /api/<resource>.

    next_cursor is "<created_at>|<id>" of the last item; send it back as
    ?cursor= to get the next page.
    """
    items: List[DocumentResponse] = Field(description="Documents on this page")
    total_count: int = Field(description="Total documents in this resource")
    next_cursor: Optional[str] = Field(default=None, description="Cursor for next page")
    has_more: bool = Field(description="Whether more pages are available")


class DeleteResponse(BaseModel):
    message: str
    id: uuid.UUID


class ListParams(BaseModel):
    """Validated query parameters for listing."""
    limit: int = Field(default=20, ge=1, le=100)
    cursor: Optional[str] = Field(default=None)
    sort: str = Field(default="created_at_desc")

    @field_validator("sort")
    @classmethod
    def validate_sort(cls, v: str) -> str:
        valid = {"created_at_desc", "created_at_asc"}
        if v not in valid:
            raise ValueError(f"Invalid sort '{v}'. Must be one of: {valid}")
        return v


def clean_body(body: Dict[str, Any]) -> Dict[str, Any]:
    """Drop server-owned keys from a client-supplied document body."""
    return {k: v for k, v in body.items() if k not in RESERVED_KEYS}
