"""
Associates Backend — Resource Route Tests
==========================================

What:  The CRUD routes mounted for every resource, with DocumentService
       mocked so only HTTP behaviour is under test.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from associates_api.exceptions import NotFoundError, ValidationError
from associates_api.routes.resources import RESOURCES
from associates_api.schemas.document import DocumentListResponse, DocumentResponse

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def document(**fields) -> DocumentResponse:
    return DocumentResponse(id=uuid4(), created_at=NOW, updated_at=NOW, **fields)


@pytest.fixture
def service():
    with patch("associates_api.routes.resources.document_service") as mocked:
        yield mocked


class TestList:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("resource", RESOURCES)
    async def test_every_resource_is_mounted(self, test_client, service, resource):
        service.list_documents = AsyncMock(
            return_value=DocumentListResponse(items=[], total_count=0, has_more=False)
        )

        response = await test_client.get(f"/api/{resource}")

        assert response.status_code == 200
        assert service.list_documents.await_args.kwargs["resource"] == resource

    @pytest.mark.asyncio
    async def test_list_sets_total_count_header(self, test_client, service):
        item = document(title="Hello")
        service.list_documents = AsyncMock(
            return_value=DocumentListResponse(
                items=[item], total_count=42, next_cursor=NOW.isoformat(), has_more=True
            )
        )

        response = await test_client.get("/api/news", params={"limit": 1, "sort": "created_at_asc"})

        assert response.headers["X-Total-Count"] == "42"
        body = response.json()
        assert body["items"][0]["title"] == "Hello"
        assert body["has_more"] is True
        kwargs = service.list_documents.await_args.kwargs
        assert kwargs["limit"] == 1
        assert kwargs["sort"] == "created_at_asc"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [{"limit": 0}, {"limit": 101}, {"sort": "title"}])
    async def test_invalid_query(self, test_client, service, params):
        response = await test_client.get("/api/blog", params=params)
        assert response.status_code == 422


class TestGet:

    @pytest.mark.asyncio
    async def test_get_flattens_body(self, test_client, service):
        item = document(name="Jane Doe", position="Partner")
        service.get_document = AsyncMock(return_value=item)

        response = await test_client.get(f"/api/team/{item.id}")

        assert response.status_code == 200
        assert response.json()["name"] == "Jane Doe"
        assert response.json()["id"] == str(item.id)

    @pytest.mark.asyncio
    async def test_not_found(self, test_client, service):
        service.get_document = AsyncMock(side_effect=NotFoundError("blog", "x"))

        response = await test_client.get(f"/api/blog/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"
        assert "request_id" in response.json()

    @pytest.mark.asyncio
    async def test_malformed_id(self, test_client, service):
        response = await test_client.get("/api/blog/not-a-uuid")
        assert response.status_code == 422


class TestWrites:

    @pytest.mark.asyncio
    async def test_create(self, test_client, service, auth_headers):
        item = document(title="Hello")
        service.create_document = AsyncMock(return_value=item)

        response = await test_client.post(
            "/api/legalServices", json={"title": "Hello"}, headers=auth_headers()
        )

        assert response.status_code == 201
        assert response.json()["title"] == "Hello"
        args = service.create_document.await_args.args
        assert args[1:] == ("legalServices", {"title": "Hello"})

    @pytest.mark.asyncio
    async def test_create_empty_body(self, test_client, service, auth_headers):
        service.create_document = AsyncMock(
            side_effect=ValidationError("Request body must be a non-empty JSON object", field="body")
        )

        response = await test_client.post("/api/blog", json={}, headers=auth_headers())

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_create_non_object_body(self, test_client, service, auth_headers):
        response = await test_client.post("/api/blog", json=["a", "b"], headers=auth_headers())
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_update(self, test_client, service, auth_headers):
        item = document(title="New")
        service.update_document = AsyncMock(return_value=item)

        response = await test_client.put(
            f"/api/job/{item.id}", json={"title": "New"}, headers=auth_headers("jane", "editor")
        )

        assert response.status_code == 200
        assert response.json()["title"] == "New"

    @pytest.mark.asyncio
    async def test_delete(self, test_client, service, auth_headers):
        doc_id = uuid4()
        service.delete_document = AsyncMock(return_value=None)

        response = await test_client.delete(f"/api/gallery/{doc_id}", headers=auth_headers())

        assert response.status_code == 200
        assert response.json() == {"message": "gallery deleted", "id": str(doc_id)}

    @pytest.mark.asyncio
    async def test_delete_missing(self, test_client, service, auth_headers):
        service.delete_document = AsyncMock(side_effect=NotFoundError("gallery", "x"))

        response = await test_client.delete(f"/api/gallery/{uuid4()}", headers=auth_headers())

        assert response.status_code == 404
