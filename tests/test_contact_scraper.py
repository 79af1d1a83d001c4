import json

import pytest

from app.api.routes import contact_scraper as contact_route
from app.services.contact_scraper import ContactScraper, normalize_contact_url
from app.services.scraper import ScrapeError


class FakeContent:
    def __init__(self, emails, social_links):
        self.emails = emails
        self.social_links = social_links


class FakeScraper:
    def __init__(self):
        self.requested = []

    async def scrape_content(self, url):
        self.requested.append(url)
        if "down" in url:
            raise ScrapeError("Content scrape failed: connection refused")
        return FakeContent(["hello@acme.example"], ["https://linkedin.com/company/acme"])


@pytest.fixture
def fake_scraper(monkeypatch):
    scraper = FakeScraper()
    monkeypatch.setattr(contact_route, "contact_scraper", ContactScraper(scraper=scraper, delay=0))
    return scraper


def test_normalize_contact_url():
    assert normalize_contact_url(" acme.example ") == "https://acme.example"
    assert normalize_contact_url("http://acme.example") == "http://acme.example"


async def test_stream_reports_each_url_in_order():
    scraper = FakeScraper()
    events = [event async for event in ContactScraper(scraper=scraper, delay=0).stream(["acme.example", "down.example"])]

    names = [name for name, _ in events]
    assert names == ["start", "progress", "result", "progress", "result", "complete"]
    assert events[2][1]["emails"] == ["hello@acme.example"]
    assert events[2][1]["socialLinks"] == ["https://linkedin.com/company/acme"]
    assert events[4][1]["status"] == "error"
    assert events[-1][1] == {"total": 2, "successful": 1, "failed": 1}
    assert scraper.requested == ["https://acme.example", "https://down.example"]


async def test_contact_scraper_requires_admin(client):
    response = await client.get("/api/admin/contact-scraper", params={"urls": '["acme.example"]'})
    assert response.status_code == 401


async def test_missing_and_empty_url_lists(client, admin_headers):
    response = await client.get("/api/admin/contact-scraper", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "No URLs provided"

    response = await client.get("/api/admin/contact-scraper", params={"urls": "[]"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "No valid URLs provided"


async def test_streaming_endpoint(client, admin_headers, fake_scraper):
    response = await client.get(
        "/api/admin/contact-scraper",
        params={"urls": json.dumps(["acme.example"])},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert "event: start" in response.text
    assert "event: complete" in response.text
    assert '"successful": 1' in response.text


async def test_batch_endpoint(client, admin_headers, fake_scraper):
    response = await client.post(
        "/api/admin/contact-scraper",
        json={"urls": ["acme.example", "down.example"]},
        headers=admin_headers,
    )

    assert response.status_code == 200
    results = response.json()["results"]
    assert [r["status"] for r in results] == ["success", "error"]
    assert "error" not in results[0]
