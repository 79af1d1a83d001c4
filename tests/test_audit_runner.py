import asyncio
import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from app.api.routes import audits as audits_route
from app.models.audit import Audit
from app.schemas.audit import AuditResult, WebsiteBrief
from app.schemas.scraped import ContentData, ScrapedData, TechnicalData
from app.services.audit_runner import (
    DISCONNECTED_MESSAGE,
    STREAM_BATCH_DELAY,
    TEST_AUDIT_BATCH_DELAY,
    AuditOptions,
    AuditRunner,
)
from app.services.scraper import ScrapeError


def make_scraped(url: str = "https://acme.example") -> ScrapedData:
    return ScrapedData(
        url=url,
        technical=TechnicalData(
            final_url=f"{url}/", load_time=850, status_code=200, ssl=True, title="Acme Widgets"
        ),
        content=ContentData(h1=["Acme widgets"], cta_buttons=["Get started"], emails=["hello@acme.example"]),
        scraped_at="2026-10-19T10:00:00+00:00",
    )


def make_result(url: str = "https://acme.example", score: int = 72) -> AuditResult:
    now = datetime.now(timezone.utc)
    return AuditResult(
        id=uuid.uuid4(),
        url=url,
        overall_score=score,
        categories=[],
        summary="Solid foundation.",
        scraped_at=now,
        analyzed_at=now,
        brief=WebsiteBrief(business_name="Acme"),
    )


class Journal:
    """Ordered record of emitted events and audit-log writes."""

    def __init__(self):
        self.entries = []

    async def emit(self, event, payload):
        self.entries.append(("event", event, payload))

    def events(self):
        return [entry[1] for entry in self.entries if entry[0] == "event"]

    def log_calls(self):
        return [entry[1:] for entry in self.entries if entry[0] == "log"]


class FakeScraper:
    def __init__(self, delay: float = 0, error: Exception = None):
        self.delay = delay
        self.error = error

    async def quick_check(self, url):
        return {"finalUrl": url, "ssl": url.startswith("https://")}

    async def scrape_website(self, url, max_pages=1, additional_urls=None):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return make_scraped()


class FakePageSpeed:
    def __init__(self, delay: float = 0.01):
        self.delay = delay
        self.cancelled = False

    async def fetch_both(self, url):
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return {"mobile": None, "desktop": None}


class FakeAnalysis:
    def __init__(self):
        self.calls = []

    async def run_pipeline(self, data, **kwargs):
        self.calls.append(kwargs)
        return make_result()

    async def analyze_website(self, data, selected_categories=None, **kwargs):
        self.calls.append(dict(kwargs, category_names=selected_categories))
        return make_result()


class FakeAuditLog:
    def __init__(self, journal: Journal):
        self.journal = journal
        self.audit_id = uuid.uuid4()

    async def create_audit_record(self, **fields):
        self.journal.entries.append(("log", "create", fields["url"]))
        return self.audit_id

    async def complete_audit_record(self, audit_id, result):
        self.journal.entries.append(("log", "complete", audit_id))
        return True

    async def fail_audit_record(self, audit_id, message):
        self.journal.entries.append(("log", "fail", audit_id, message))
        return True

    async def increment_user_audit_usage(self, user_id):
        self.journal.entries.append(("log", "increment", user_id))
        return True


def make_runner(journal, scraper=None, pagespeed=None, analysis=None, **kwargs):
    return AuditRunner(
        scraper=scraper or FakeScraper(),
        pagespeed=pagespeed or FakePageSpeed(),
        analysis=analysis or FakeAnalysis(),
        audit_log=FakeAuditLog(journal),
        **kwargs,
    )


def options(**fields) -> AuditOptions:
    fields.setdefault("url", "acme.example")
    fields.setdefault("category_names", ["Business Overview"])
    return AuditOptions(**fields)


async def test_stream_emits_progress_then_completes():
    journal = Journal()
    analysis = FakeAnalysis()
    user_id = uuid.uuid4()
    runner = make_runner(journal, analysis=analysis)

    result = await runner.run_stream(options(user_id=user_id), journal.emit)

    assert result is not None
    events = journal.events()
    assert [e for e in events if e != "status"] == ["scraped", "scraped", "pagespeed", "complete"]
    assert events[0] == "status"
    complete = journal.entries[-1][2]
    assert complete["overallScore"] == 72
    assert complete["brief"]["businessName"] == "Acme"
    first_scraped = next(entry[2] for entry in journal.entries if entry[1] == "scraped")
    assert first_scraped["url"] == "https://acme.example"

    audit_id = runner.audit_log.audit_id
    assert journal.log_calls() == [
        ("create", "acme.example"),
        ("complete", audit_id),
        ("increment", user_id),
    ]
    assert analysis.calls[0]["audit_id"] == audit_id
    assert analysis.calls[0]["batch_delay"] == STREAM_BATCH_DELAY


async def test_admin_and_anonymous_audits_do_not_use_quota():
    for opts in (options(user_id=uuid.uuid4(), is_admin=True), options()):
        journal = Journal()
        await make_runner(journal).run_stream(opts, journal.emit)
        assert [call[0] for call in journal.log_calls()] == ["create", "complete"]


async def test_scrape_timeout_fails_audit():
    journal = Journal()
    pagespeed = FakePageSpeed(delay=5)
    runner = make_runner(journal, scraper=FakeScraper(delay=5), pagespeed=pagespeed, scrape_timeout=0.05)

    assert await runner.run_stream(options(), journal.emit) is None

    assert journal.events()[-1] == "error"
    assert journal.entries[-1][2] == {"message": "Scrape timeout after 0.05 seconds"}
    assert ("fail", runner.audit_log.audit_id, "Scrape timeout after 0.05 seconds") in journal.log_calls()
    assert "complete" not in journal.events()
    await asyncio.sleep(0)
    assert pagespeed.cancelled


def test_default_scrape_timeout_message():
    assert f"Scrape timeout after {AuditRunner().scrape_timeout:g} seconds" == "Scrape timeout after 60 seconds"


async def test_scrape_error_is_recorded_before_error_event():
    journal = Journal()
    runner = make_runner(journal, scraper=FakeScraper(error=ScrapeError("Technical scrape failed: refused")))

    await runner.run_stream(options(user_id=uuid.uuid4()), journal.emit)

    kinds = [(entry[0], entry[1]) for entry in journal.entries]
    assert kinds.index(("log", "fail")) < kinds.index(("event", "error"))
    assert journal.entries[-1][2] == {"message": "Technical scrape failed: refused"}
    assert all(call[0] != "increment" for call in journal.log_calls())


async def test_client_disconnect_fails_audit_record():
    journal = Journal()
    runner = make_runner(journal, scraper=FakeScraper(delay=30))

    task = asyncio.create_task(runner.run_stream(options(), journal.emit))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert journal.log_calls()[-1] == ("fail", runner.audit_log.audit_id, DISCONNECTED_MESSAGE)
    assert "error" not in journal.events()


async def test_run_once_returns_scrape_and_result():
    journal = Journal()
    analysis = FakeAnalysis()
    runner = make_runner(journal, analysis=analysis)

    scraped, result = await runner.run_once(options(max_pages=2))

    assert scraped.technical.title == "Acme Widgets"
    assert result.overall_score == 72
    assert analysis.calls[0]["batch_delay"] == TEST_AUDIT_BATCH_DELAY
    assert analysis.calls[0]["category_names"] == ["Business Overview"]
    assert journal.log_calls() == []


async def test_test_audit_returns_report_and_logs_it(client, db, monkeypatch):
    received = []

    async def run_once(opts):
        received.append(opts)
        return make_scraped(), make_result(score=81)

    monkeypatch.setattr(audits_route.audit_runner, "run_once", run_once)

    response = await client.get(
        "/api/test-audit",
        params={"url": "acme.example", "pages": 2, "categories": "business,security", "format": "json"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["result"]["overallScore"] == 81
    assert body["options"] == {
        "maxPages": 2,
        "selectedCategories": ["Business Overview", "Security"],
        "format": "json",
    }
    assert body["scraped"]["finalUrl"] == "https://acme.example/"
    assert body["scraped"]["ctaButtons"] == ["Get started"]
    assert received[0].max_pages == 2

    count = await db.scalar(select(func.count(Audit.id)).where(Audit.overall_score == 81))
    assert count == 1


async def test_test_audit_defaults_to_markdown_format(client, monkeypatch):
    async def run_once(opts):
        return make_scraped(), make_result()

    monkeypatch.setattr(audits_route.audit_runner, "run_once", run_once)

    response = await client.get("/api/test-audit", params={"url": "acme.example"})

    assert response.json()["options"]["format"] == "markdown"
    assert len(response.json()["options"]["selectedCategories"]) == 10


async def test_test_audit_failure_is_reported(client, db, monkeypatch):
    async def run_once(opts):
        raise ScrapeError("Technical scrape failed: refused")

    monkeypatch.setattr(audits_route.audit_runner, "run_once", run_once)

    response = await client.get("/api/test-audit", params={"url": "down.example"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Technical scrape failed: refused"}
    failed = await db.scalar(select(func.count(Audit.id)).where(Audit.status == Audit.STATUS_FAILED))
    assert failed == 1
