"""
Associates Backend — Document Service Unit Tests
=================================================

What:  DocumentService against a mock AsyncSession.

What we test:
    ✅ Create strips reserved keys and rejects empty bodies
    ✅ Lookups are scoped to the resource (foreign ids → NotFoundError)
    ✅ Update shallow-merges into the stored body
    ✅ List computes has_more / next_cursor from the extra row
    ✅ Cursors carry (created_at, id) so equal timestamps are not skipped
    ✅ Driver errors become DatabaseError
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from associates_api.exceptions import DatabaseError, NotFoundError, ValidationError
from associates_api.models.document import Document
from associates_api.services.document_service import (
    DocumentService,
    decode_cursor,
    encode_cursor,
)
from conftest import scalar_result


def make_document(resource="blog", data=None, created_at=None) -> Document:
    created = created_at or datetime.now(timezone.utc)
    return Document(
        id=uuid4(),
        resource=resource,
        data=data if data is not None else {"title": "Hello", "body": "World"},
        created_at=created,
        updated_at=created,
    )


def list_results(documents, total):
    rows = MagicMock()
    rows.scalars.return_value.all.return_value = documents
    count = MagicMock()
    count.scalar.return_value = total
    return [rows, count]


class TestCreate:

    def setup_method(self):
        self.service = DocumentService()

    @pytest.mark.asyncio
    async def test_create_strips_reserved_keys(self, mock_db_session):
        result = await self.service.create_document(
            mock_db_session,
            "blog",
            {"title": "Hello", "id": "spoofed", "_id": "x", "created_at": "1999-01-01"},
        )

        stored = mock_db_session.add.call_args.args[0]
        assert stored.resource == "blog"
        assert stored.data == {"title": "Hello"}
        assert str(result.id) != "spoofed"
        assert result.model_dump()["title"] == "Hello"
        mock_db_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{}, {"id": "only-reserved"}])
    async def test_create_rejects_empty_body(self, mock_db_session, body):
        with pytest.raises(ValidationError):
            await self.service.create_document(mock_db_session, "blog", body)
        mock_db_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_database_failure(self, mock_db_session):
        mock_db_session.flush.side_effect = OperationalError("INSERT", {}, Exception("down"))
        with pytest.raises(DatabaseError):
            await self.service.create_document(mock_db_session, "blog", {"title": "x"})


class TestGetUpdateDelete:

    def setup_method(self):
        self.service = DocumentService()

    @pytest.mark.asyncio
    async def test_get_found(self, mock_db_session):
        document = make_document()
        mock_db_session.execute.return_value = scalar_result(document)

        result = await self.service.get_document(mock_db_session, "blog", document.id)

        assert result.id == document.id
        assert result.model_dump()["body"] == "World"

    @pytest.mark.asyncio
    async def test_foreign_resource_id_is_not_found(self, mock_db_session):
        """The query is filtered by resource, so a team id under /blog finds nothing."""
        mock_db_session.execute.return_value = scalar_result(None)

        with pytest.raises(NotFoundError) as exc_info:
            await self.service.get_document(mock_db_session, "blog", uuid4())

        assert exc_info.value.context["resource"] == "blog"
        query = str(mock_db_session.execute.await_args.args[0])
        assert "documents.resource" in query

    @pytest.mark.asyncio
    async def test_update_merges(self, mock_db_session):
        document = make_document(data={"title": "Old", "body": "Keep me"})
        created = document.created_at
        mock_db_session.execute.return_value = scalar_result(document)

        result = await self.service.update_document(
            mock_db_session, "blog", document.id, {"title": "New", "id": "ignored", "tag": None}
        )

        assert document.data == {"title": "New", "body": "Keep me", "tag": None}
        assert document.updated_at >= created
        assert result.model_dump()["title"] == "New"

    @pytest.mark.asyncio
    async def test_update_missing(self, mock_db_session):
        mock_db_session.execute.return_value = scalar_result(None)
        with pytest.raises(NotFoundError):
            await self.service.update_document(mock_db_session, "blog", uuid4(), {"title": "x"})

    @pytest.mark.asyncio
    async def test_update_rejects_empty_changes(self, mock_db_session):
        with pytest.raises(ValidationError):
            await self.service.update_document(mock_db_session, "blog", uuid4(), {})
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete(self, mock_db_session):
        document = make_document()
        mock_db_session.execute.return_value = scalar_result(document)

        await self.service.delete_document(mock_db_session, "blog", document.id)

        mock_db_session.delete.assert_awaited_once_with(document)

    @pytest.mark.asyncio
    async def test_delete_missing(self, mock_db_session):
        mock_db_session.execute.return_value = scalar_result(None)
        with pytest.raises(NotFoundError):
            await self.service.delete_document(mock_db_session, "blog", uuid4())
        mock_db_session.delete.assert_not_awaited()


class TestList:

    def setup_method(self):
        self.service = DocumentService()

    @pytest.mark.asyncio
    async def test_list_with_more_pages(self, mock_db_session):
        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        documents = [make_document(created_at=base - timedelta(minutes=i)) for i in range(3)]
        mock_db_session.execute.side_effect = list_results(documents, total=7)

        result = await self.service.list_documents(mock_db_session, "blog", limit=2)

        assert len(result.items) == 2
        assert result.has_more is True
        assert result.total_count == 7
        assert result.next_cursor == f"{documents[1].created_at.isoformat()}|{documents[1].id}"

    @pytest.mark.asyncio
    async def test_list_last_page(self, mock_db_session):
        mock_db_session.execute.side_effect = list_results([make_document()], total=1)

        result = await self.service.list_documents(mock_db_session, "blog", limit=20)

        assert result.has_more is False
        assert result.next_cursor is None

    @pytest.mark.asyncio
    async def test_bad_cursor_is_ignored(self, mock_db_session):
        mock_db_session.execute.side_effect = list_results([], total=0)

        result = await self.service.list_documents(mock_db_session, "blog", cursor="not-a-date")

        assert result.items == []

    @pytest.mark.asyncio
    async def test_compound_cursor_breaks_timestamp_ties_by_id(self, mock_db_session):
        same_time = datetime(2026, 1, 1, tzinfo=timezone.utc)
        last_seen = make_document(created_at=same_time)
        mock_db_session.execute.side_effect = list_results([], total=3)

        await self.service.list_documents(
            mock_db_session, "blog", limit=2, cursor=encode_cursor(last_seen)
        )

        sql = str(mock_db_session.execute.await_args_list[0].args[0])
        assert "documents.created_at < " in sql
        assert "documents.created_at = " in sql
        assert "documents.id < " in sql
        assert "ORDER BY documents.created_at DESC, documents.id DESC" in sql

    @pytest.mark.asyncio
    async def test_ascending_cursor_compares_upwards(self, mock_db_session):
        mock_db_session.execute.side_effect = list_results([], total=0)

        await self.service.list_documents(
            mock_db_session,
            "blog",
            cursor=encode_cursor(make_document()),
            sort="created_at_asc",
        )

        sql = str(mock_db_session.execute.await_args_list[0].args[0])
        assert "documents.created_at > " in sql
        assert "documents.id > " in sql
        assert "ORDER BY documents.created_at ASC, documents.id ASC" in sql

    @pytest.mark.asyncio
    async def test_zulu_timestamp_cursor_is_applied(self, mock_db_session):
        mock_db_session.execute.side_effect = list_results([], total=0)

        await self.service.list_documents(mock_db_session, "blog", cursor="2026-01-01T00:00:00Z")

        sql = str(mock_db_session.execute.await_args_list[0].args[0])
        assert "documents.created_at < " in sql
        assert "documents.id < " not in sql

    @pytest.mark.asyncio
    async def test_list_database_failure(self, mock_db_session):
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))
        with pytest.raises(DatabaseError):
            await self.service.list_documents(mock_db_session, "blog")


class TestCursor:

    def test_round_trip_keeps_id(self):
        document = make_document(created_at=datetime(2026, 1, 1, tzinfo=timezone.utc))
        assert decode_cursor(encode_cursor(document)) == (document.created_at, document.id)

    def test_zulu_suffix_is_utc(self):
        created_at, document_id = decode_cursor("2026-01-01T00:00:00Z")
        assert created_at == datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert document_id is None

    def test_unencoded_plus_in_offset(self):
        created_at, _ = decode_cursor("2026-01-01T00:00:00 00:00")
        assert created_at == datetime(2026, 1, 1, tzinfo=timezone.utc)

    @pytest.mark.parametrize("cursor", ["not-a-date", "2026-01-01T00:00:00+00:00|not-a-uuid"])
    def test_garbage(self, cursor):
        assert decode_cursor(cursor) is None
