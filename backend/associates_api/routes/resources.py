"""
Associates Backend — Resource Route Handlers
=============================================

What:  The uniform CRUD surface for every content collection:
       blog, job, team, gallery, about, news, legalServices.
Why:   The collections share one shape (free-form JSON documents), so one
       router factory replaces seven hand-written copies.
How:   build_resource_router(name) returns an APIRouter mounted at
       /api/<name>; all handlers delegate to DocumentService with the
       collection name bound in.

Access:
    GET routes are open (the public site reads them). POST/PUT/DELETE carry
    require_identity in the decorator, so they answer 401 before a database
    session is opened.

Caching Strategy:
    Lists get a short public cache; single documents can be edited, so they
    are revalidated rather than cached for long.
"""

import logging
from typing import Annotated, Any, Dict, List
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from associates_api.database import get_db_session
from associates_api.dependencies import AuthGateRoute, require_identity
from associates_api.schemas.common import ErrorResponse, MessageResponse
from associates_api.schemas.document import (
    DeleteResponse,
    DocumentListResponse,
    DocumentResponse,
    ListParams,
)
from associates_api.services.document_service import document_service

logger = logging.getLogger(__name__)

RESOURCES = ("blog", "job", "team", "gallery", "about", "news", "legalServices")

_UNAUTHENTICATED = {401: {"description": "No valid session", "model": MessageResponse}}
_NOT_FOUND = {404: {"description": "No such document in this collection", "model": ErrorResponse}}


def build_resource_router(resource: str) -> APIRouter:
    """Create the five CRUD routes for one collection."""
    router = APIRouter(
        prefix=f"/api/{resource}", tags=[resource], route_class=AuthGateRoute
    )

    @router.get(
        "",
        response_model=DocumentListResponse,
        summary=f"List {resource} documents",
    )
    async def list_documents(
        response: Response,
        params: Annotated[ListParams, Query()],
        db: AsyncSession = Depends(get_db_session),
    ) -> DocumentListResponse:
        result = await document_service.list_documents(
            db=db,
            resource=resource,
            limit=params.limit,
            cursor=params.cursor,
            sort=params.sort,
        )
        response.headers["X-Total-Count"] = str(result.total_count)
        response.headers["Cache-Control"] = "public, max-age=5, must-revalidate"
        return result

    @router.get(
        "/{document_id}",
        response_model=DocumentResponse,
        responses=_NOT_FOUND,
        summary=f"Get one {resource} document",
    )
    async def get_document(
        document_id: UUID,
        response: Response,
        db: AsyncSession = Depends(get_db_session),
    ) -> DocumentResponse:
        result = await document_service.get_document(db, resource, document_id)
        response.headers["Cache-Control"] = "no-cache"
        return result

    @router.post(
        "",
        response_model=DocumentResponse,
        status_code=status.HTTP_201_CREATED,
        dependencies=[Depends(require_identity)],
        responses={**_UNAUTHENTICATED, 400: {"description": "Empty body", "model": ErrorResponse}},
        summary=f"Create a {resource} document",
    )
    async def create_document(
        body: Dict[str, Any] = Body(..., description="Document fields"),
        db: AsyncSession = Depends(get_db_session),
    ) -> DocumentResponse:
        return await document_service.create_document(db, resource, body)

    @router.put(
        "/{document_id}",
        response_model=DocumentResponse,
        dependencies=[Depends(require_identity)],
        responses={**_UNAUTHENTICATED, **_NOT_FOUND},
        summary=f"Update a {resource} document",
    )
    async def update_document(
        document_id: UUID,
        body: Dict[str, Any] = Body(..., description="Fields to replace"),
        db: AsyncSession = Depends(get_db_session),
    ) -> DocumentResponse:
        return await document_service.update_document(db, resource, document_id, body)

    @router.delete(
        "/{document_id}",
        response_model=DeleteResponse,
        dependencies=[Depends(require_identity)],
        responses={**_UNAUTHENTICATED, **_NOT_FOUND},
        summary=f"Delete a {resource} document",
    )
    async def delete_document(
        document_id: UUID,
        db: AsyncSession = Depends(get_db_session),
    ) -> DeleteResponse:
        await document_service.delete_document(db, resource, document_id)
        return DeleteResponse(message=f"{resource} deleted", id=document_id)

    return router


routers: List[APIRouter] = [build_resource_router(name) for name in RESOURCES]
