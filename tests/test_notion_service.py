import json

import httpx

from app.core.config import settings
from app.services.notion_service import DATABASE_TITLE, NotionService, format_page_id


def test_format_page_id():
    assert format_page_id("0123456789abcdef0123456789abcdef") == "01234567-89ab-cdef-0123-456789abcdef"
    assert format_page_id("01234567-89ab-cdef-0123-456789abcdef") == "01234567-89ab-cdef-0123-456789abcdef"


async def test_sync_without_api_key_reports_failure(monkeypatch):
    monkeypatch.setattr(settings, "NOTION_API_KEY", "")
    result = await NotionService().add_email_to_notion("lead@example.com", "audit")
    assert result["success"] is False
    assert "NOTION_API_KEY" in result["error"]


async def test_sync_finds_database_and_creates_page(monkeypatch):
    monkeypatch.setattr(settings, "NOTION_API_KEY", "secret_test")
    monkeypatch.setattr(settings, "NOTION_PAGE_ID", "0123456789abcdef0123456789abcdef")
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append((request.method, request.url.path))
        assert request.headers["Authorization"] == "Bearer secret_test"
        if request.url.path.endswith("/children"):
            return httpx.Response(200, json={"results": [
                {"id": "db-1", "type": "child_database", "child_database": {"title": DATABASE_TITLE}},
            ]})
        if request.url.path == "/v1/databases/db-1/query":
            return httpx.Response(200, json={"results": []})
        if request.url.path == "/v1/pages":
            body = json.loads(request.content)
            assert body["properties"]["Email"]["title"][0]["text"]["content"] == "lead@example.com"
            assert body["properties"]["Source"]["select"]["name"] == "waitlist"
            return httpx.Response(200, json={"id": "page-1"})
        return httpx.Response(404, json={"message": "not found"})

    service = NotionService(transport=httpx.MockTransport(handler))
    result = await service.add_email_to_notion(" Lead@Example.com ", "waitlist")

    assert result == {"success": True, "pageId": "page-1"}
    assert calls[0] == ("GET", "/v1/blocks/01234567-89ab-cdef-0123-456789abcdef/children")
    assert service.database_id == "db-1"
