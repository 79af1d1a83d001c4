"""End-to-end audit runs: scrape, PageSpeed, analysis and logging."""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.website_type import WebsiteType
from app.schemas.audit import AuditResult, PageSpeedPair
from app.schemas.scraped import ScrapedData
from app.services.analysis_service import AnalysisService, Emit, analysis_service
from app.services.audit_logger import AuditLogger, audit_logger
from app.services.pagespeed_service import PageSpeedResult, PageSpeedService, pagespeed_service
from app.services.scraper import ScrapeError, WebsiteScraper, normalize_url, website_scraper

logger = logging.getLogger(__name__)

SCRAPE_TIMEOUT = 60.0  # seconds
STREAM_BATCH_DELAY = 0.3  # seconds between category batches
TEST_AUDIT_BATCH_DELAY = 1.0
DISCONNECTED_MESSAGE = "Client disconnected"


class AuditOptions(BaseModel):
    """Who asked for an audit and how it should be run.

    Attributes:
        url: Site URL as submitted.
        max_pages: Pages to crawl, already capped to the caller's plan.
        category_names: Display names to analyze.
        additional_urls: Pages the caller asked to include.
        source_ip: Raw client IP, hashed before it is stored.
        user_agent: Client user agent.
        user_id: Signed-in user, if any.
        is_admin: Whether the admin started the audit.
        website_type_id: Website type used for weighting.
        category_weights: Weight overrides from the website type.
        focus_areas: Website-type focus areas.
        best_practices: Website-type best practices.
    """

    url: str
    max_pages: int = 1
    category_names: List[str]
    additional_urls: List[str] = Field(default_factory=list)
    source_ip: Optional[str] = None
    user_agent: Optional[str] = None
    user_id: Optional[UUID] = None
    is_admin: bool = False
    website_type_id: Optional[UUID] = None
    category_weights: Dict[str, float] = Field(default_factory=dict)
    focus_areas: List[str] = Field(default_factory=list)
    best_practices: List[str] = Field(default_factory=list)

    def apply_website_type(self, website_type: Optional[WebsiteType]) -> None:
        if website_type is None:
            return
        self.website_type_id = website_type.id
        self.category_weights = dict(website_type.category_weights or {})
        self.focus_areas = list(website_type.focus_areas or [])
        self.best_practices = list(website_type.best_practices or [])


def page_speed_pair(outcomes: Dict[str, Any]) -> PageSpeedPair:
    """Keep successful PageSpeed results; errors become None."""
    mobile = outcomes.get("mobile")
    desktop = outcomes.get("desktop")
    return PageSpeedPair(
        mobile=mobile if isinstance(mobile, PageSpeedResult) else None,
        desktop=desktop if isinstance(desktop, PageSpeedResult) else None,
    )


def scraped_summary(data: ScrapedData) -> Dict[str, Any]:
    """Headline facts about a finished scrape."""
    return {
        "url": data.url,
        "finalUrl": data.technical.final_url,
        "title": data.technical.title,
        "loadTime": data.technical.load_time,
        "ssl": data.technical.ssl,
        "emails": data.content.emails,
        "socialLinks": data.content.social_links,
    }


class AuditRunner:
    """Runs audits for the streaming and one-shot endpoints."""

    def __init__(
        self,
        scraper: Optional[WebsiteScraper] = None,
        pagespeed: Optional[PageSpeedService] = None,
        analysis: Optional[AnalysisService] = None,
        audit_log: Optional[AuditLogger] = None,
        scrape_timeout: float = SCRAPE_TIMEOUT,
    ):
        self.scraper = scraper or website_scraper
        self.pagespeed = pagespeed or pagespeed_service
        self.analysis = analysis or analysis_service
        self.audit_log = audit_log or audit_logger
        self.scrape_timeout = scrape_timeout

    async def _scrape(self, options: AuditOptions) -> ScrapedData:
        try:
            return await asyncio.wait_for(
                self.scraper.scrape_website(options.url, options.max_pages, options.additional_urls),
                self.scrape_timeout,
            )
        except asyncio.TimeoutError:
            raise ScrapeError(f"Scrape timeout after {self.scrape_timeout:g} seconds")

    async def run_stream(self, options: AuditOptions, emit: Emit) -> Optional[AuditResult]:
        """Run an audit, reporting each step through ``emit``.

        Failures are reported as an ``error`` event and recorded on the
        audit row; they are not raised.
        If the task is cancelled (the client disconnected) the audit row is
        marked failed and the cancellation propagates.

        Returns:
            The result, or None if the audit failed.
        """
        await emit("status", {"phase": "scraping", "message": "Starting audit...", "progress": 1})

        audit_id_task = asyncio.ensure_future(self.audit_log.create_audit_record(
            url=options.url,
            source_ip=options.source_ip,
            user_agent=options.user_agent,
            user_id=options.user_id,
            is_admin=options.is_admin,
            website_type_id=options.website_type_id,
        ))

        pagespeed_task = None
        recorded = False
        try:
            scraped_at = datetime.now(timezone.utc)
            url = normalize_url(options.url)

            await emit("status", {"phase": "scraping", "message": "Connecting to website...", "progress": 5})
            quick = await self.scraper.quick_check(url)
            await emit("scraped", {
                "url": url,
                "finalUrl": quick["finalUrl"],
                "title": None,
                "loadTime": 0,
                "ssl": quick["ssl"],
            })
            await emit("status", {
                "phase": "scraping",
                "message": "Website found, scanning structure...",
                "progress": 10,
            })

            pagespeed_task = asyncio.ensure_future(self.pagespeed.fetch_both(url))
            await emit("status", {"phase": "scraping", "message": "Analyzing page content...", "progress": 15})

            try:
                scraped = await self._scrape(options)
            except BaseException:
                pagespeed_task.cancel()
                raise
            logger.info(f"[Audit] Scrape complete, title: {scraped.technical.title}")

            await emit("status", {"phase": "scraped", "message": "Website scanned successfully", "progress": 25})
            await emit("scraped", scraped_summary(scraped))

            await emit("status", {"phase": "pagespeed", "message": "Fetching Core Web Vitals...", "progress": 30})
            page_speed = page_speed_pair(await pagespeed_task)
            await emit("pagespeed", page_speed.model_dump(by_alias=True, mode="json"))

            audit_id = await asyncio.shield(audit_id_task)
            result = await self.analysis.run_pipeline(
                scraped,
                category_names=options.category_names,
                weights=options.category_weights,
                focus_areas=options.focus_areas,
                best_practices=options.best_practices,
                page_speed=page_speed,
                emit=emit,
                batch_delay=STREAM_BATCH_DELAY,
                audit_id=audit_id,
                scraped_at=scraped_at,
            )

            if audit_id:
                await self.audit_log.complete_audit_record(audit_id, result)
                if options.user_id and not options.is_admin:
                    await self.audit_log.increment_user_audit_usage(options.user_id)
            recorded = True

            await emit("complete", result.model_dump(by_alias=True, mode="json"))
            return result

        except asyncio.CancelledError:
            # The client went away; close the audit row before unwinding
            logger.warning(f"[Audit] Client disconnected during audit of {options.url}")
            if pagespeed_task is not None and not pagespeed_task.done():
                pagespeed_task.cancel()
            if not recorded:
                await asyncio.shield(self._record_disconnect(audit_id_task))
            raise

        except Exception as e:
            message = str(e) or "Unknown error occurred"
            logger.error(f"[Audit] Error: {message}")
            audit_id = await audit_id_task
            if audit_id:
                await self.audit_log.fail_audit_record(audit_id, message)
            await emit("error", {"message": message})
            return None

    async def _record_disconnect(self, audit_id_task: asyncio.Task) -> None:
        audit_id = await audit_id_task
        if audit_id:
            await self.audit_log.fail_audit_record(audit_id, DISCONNECTED_MESSAGE)

    async def run_once(self, options: AuditOptions) -> Tuple[ScrapedData, AuditResult]:
        """Scrape and analyze without progress events.

        Returns:
            Tuple of (scraped data, audit result).

        Raises:
            ScrapeError: If the site cannot be scraped.
        """
        logger.info(f"[Audit] Starting audit for: {options.url}")
        scraped = await self.scraper.scrape_website(options.url, options.max_pages, options.additional_urls)
        result = await self.analysis.analyze_website(
            scraped,
            options.category_names,
            weights=options.category_weights,
            focus_areas=options.focus_areas,
            best_practices=options.best_practices,
            batch_delay=TEST_AUDIT_BATCH_DELAY,
        )
        logger.info(f"[Audit] Analysis complete: {result.url} scored {result.overall_score}")
        return scraped, result


audit_runner = AuditRunner()
