"""
Associates Backend — Document Service
======================================

What:  Generic create/read/update/delete for every content resource.
Why:   Blog posts, jobs, team members, gallery items, news, legal services and
       the about page differ only in their JSON bodies. One service with a
       `resource` argument replaces seven copies of the same handlers.
How:   Stateless; receives the request's AsyncSession on each call and
       translates driver errors into DatabaseError.

Pagination Strategy (Cursor-Based):
    Default order is (created_at DESC, id DESC). The cursor is
    "<ISO created_at>|<id>" of the last item on the previous page; the next
    page is WHERE (created_at, id) < cursor (or > for ascending), so items
    sharing a timestamp are never skipped at a page boundary. A bare ISO
    timestamp (with or without a trailing Z) is still accepted and compares
    on created_at alone. One extra row is fetched to compute has_more.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple
from uuid import UUID, uuid4

from sqlalchemy import and_, asc, desc, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from associates_api.exceptions import DatabaseError, NotFoundError, ValidationError
from associates_api.models.document import Document
from associates_api.schemas.document import (
    DocumentListResponse,
    DocumentResponse,
    clean_body,
)

logger = logging.getLogger(__name__)


CURSOR_SEPARATOR = "|"


def encode_cursor(document: Document) -> str:
    return f"{document.created_at.isoformat()}{CURSOR_SEPARATOR}{document.id}"


def decode_cursor(cursor: str) -> Optional[Tuple[datetime, Optional[UUID]]]:
    """
    Parse a list cursor into (created_at, id). Returns None when unparseable.

    An unencoded "+" in the UTC offset arrives as a space; it is restored.
    """
    raw_time, _, raw_id = cursor.partition(CURSOR_SEPARATOR)
    raw_time = raw_time.strip().replace(" ", "+")
    if raw_time.endswith(("Z", "z")):
        raw_time = raw_time[:-1] + "+00:00"
    try:
        created_at = datetime.fromisoformat(raw_time)
        document_id = UUID(raw_id) if raw_id else None
    except ValueError:
        return None
    return created_at, document_id


def to_response(document: Document) -> DocumentResponse:
    """Flatten a stored document into its API representation."""
    return DocumentResponse(
        id=document.id,
        created_at=document.created_at,
        updated_at=document.updated_at,
        **clean_body(document.data or {}),
    )


class DocumentService:
    """
    Business logic for resource documents.

    Error Handling Strategy:
        NotFoundError and ValidationError propagate as-is; anything raised by
        SQLAlchemy is logged with its type and re-raised as DatabaseError so
        the client only ever sees a generic 500.
    """

    async def _fetch(self, db: AsyncSession, resource: str, document_id: UUID) -> Document:
        # Scoping by resource keeps /api/blog/{id} from reading a team member
        try:
            result = await db.execute(
                select(Document).where(
                    Document.id == document_id,
                    Document.resource == resource,
                )
            )
            document = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching %s %s: %s", resource, document_id, str(e))
            raise DatabaseError(
                message=f"Could not retrieve the {resource} item. Please try again.",
                context={"resource": resource, "document_id": str(document_id)},
            )
        if document is None:
            raise NotFoundError(resource=resource, resource_id=str(document_id))
        return document

    async def create_document(
        self, db: AsyncSession, resource: str, body: Dict[str, Any]
    ) -> DocumentResponse:
        data = clean_body(body)
        if not data:
            raise ValidationError(
                message="Request body must be a non-empty JSON object",
                field="body",
            )

        now = datetime.now(timezone.utc)
        document = Document(
            id=uuid4(), resource=resource, data=data, created_at=now, updated_at=now
        )
        db.add(document)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating %s: %s", resource, str(e), exc_info=True)
            raise DatabaseError(
                message=f"Could not save the {resource} item. Please try again.",
                context={"resource": resource, "error_type": type(e).__name__},
            )
        logger.info("Created %s %s", resource, document.id)
        return to_response(document)

    async def get_document(
        self, db: AsyncSession, resource: str, document_id: UUID
    ) -> DocumentResponse:
        document = await self._fetch(db, resource, document_id)
        return to_response(document)

    async def update_document(
        self,
        db: AsyncSession,
        resource: str,
        document_id: UUID,
        changes: Dict[str, Any],
    ) -> DocumentResponse:
        """
        Shallow-merge `changes` into the stored body.

        Keys present in `changes` replace stored values (a null value stores
        null); keys absent from `changes` are left alone.
        """
        updates = clean_body(changes)
        if not updates:
            raise ValidationError(
                message="Request body must be a non-empty JSON object",
                field="body",
            )

        document = await self._fetch(db, resource, document_id)
        # Reassign rather than mutate so SQLAlchemy sees the JSON change
        document.data = {**(document.data or {}), **updates}
        document.updated_at = datetime.now(timezone.utc)
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating %s %s: %s", resource, document_id, str(e))
            raise DatabaseError(
                message=f"Could not update the {resource} item. Please try again.",
                context={"resource": resource, "document_id": str(document_id)},
            )
        logger.info("Updated %s %s (%d keys)", resource, document_id, len(updates))
        return to_response(document)

    async def delete_document(
        self, db: AsyncSession, resource: str, document_id: UUID
    ) -> None:
        document = await self._fetch(db, resource, document_id)
        try:
            await db.delete(document)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error deleting %s %s: %s", resource, document_id, str(e))
            raise DatabaseError(
                message=f"Could not delete the {resource} item. Please try again.",
                context={"resource": resource, "document_id": str(document_id)},
            )
        logger.info("Deleted %s %s", resource, document_id)

    async def list_documents(
        self,
        db: AsyncSession,
        resource: str,
        limit: int = 20,
        cursor: Optional[str] = None,
        sort: str = "created_at_desc",
    ) -> DocumentListResponse:
        """
        List one resource with cursor-based pagination.

        An unparseable cursor is ignored (first page), matching how the
        frontend recovers from a stale bookmark.
        """
        try:
            query = select(Document).where(Document.resource == resource)

            ascending = sort == "created_at_asc"
            decoded = decode_cursor(cursor) if cursor else None

            if decoded:
                cursor_dt, cursor_id = decoded
                if ascending:
                    past_time = Document.created_at > cursor_dt
                    past_id = Document.id > cursor_id
                else:
                    past_time = Document.created_at < cursor_dt
                    past_id = Document.id < cursor_id
                if cursor_id is None:
                    query = query.where(past_time)
                else:
                    query = query.where(
                        or_(past_time, and_(Document.created_at == cursor_dt, past_id))
                    )

            direction = asc if ascending else desc
            query = query.order_by(direction(Document.created_at), direction(Document.id))

            query = query.limit(limit + 1)
            result = await db.execute(query)
            documents = list(result.scalars().all())

            count_result = await db.execute(
                select(func.count(Document.id)).where(Document.resource == resource)
            )
            total_count = count_result.scalar() or 0

        except SQLAlchemyError as e:
            logger.error("Database error listing %s: %s", resource, str(e), exc_info=True)
            raise DatabaseError(
                message=f"Could not retrieve {resource} items. Please try again.",
                context={"resource": resource, "error_type": type(e).__name__},
            )

        has_more = len(documents) > limit
        if has_more:
            documents = documents[:limit]

        next_cursor = None
        if has_more and documents:
            next_cursor = encode_cursor(documents[-1])

        return DocumentListResponse(
            items=[to_response(d) for d in documents],
            total_count=total_count,
            next_cursor=next_cursor,
            has_more=has_more,
        )


document_service = DocumentService()
