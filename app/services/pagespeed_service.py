"""Google PageSpeed Insights v5 client.

Failures are returned as ``PageSpeedError`` values rather than raised, so a
PageSpeed outage never fails an audit.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

import httpx
from pydantic import BaseModel

from app.core.config import settings
from app.schemas.common import CamelModel

logger = logging.getLogger(__name__)

Strategy = Literal["mobile", "desktop"]
Rating = Literal["good", "needs-improvement", "poor"]

# Lighthouse audits reported as optimisation opportunities
OPPORTUNITY_AUDITS = [
    "render-blocking-resources",
    "unused-css-rules",
    "unused-javascript",
    "modern-image-formats",
    "uses-optimized-images",
    "uses-responsive-images",
    "offscreen-images",
    "unminified-css",
    "unminified-javascript",
    "efficient-animated-content",
    "duplicated-javascript",
    "legacy-javascript",
    "uses-text-compression",
    "uses-rel-preconnect",
    "server-response-time",
    "redirects",
    "uses-rel-preload",
    "font-display",
    "third-party-summary",
]

# metric -> (good upper bound, poor lower bound)
METRIC_THRESHOLDS: Dict[str, Tuple[float, float]] = {
    "lcp": (2.5, 4.0),
    "fid": (100, 300),
    "cls": (0.1, 0.25),
    "inp": (200, 500),
    "fcp": (1.8, 3.0),
    "ttfb": (800, 1800),
}


class CoreWebVitalMetric(CamelModel):
    percentile: Optional[float] = None
    rating: Optional[str] = None


class CoreWebVitals(CamelModel):
    """Field data from the Chrome UX Report."""

    lcp: Optional[CoreWebVitalMetric] = None
    fid: Optional[CoreWebVitalMetric] = None
    cls: Optional[CoreWebVitalMetric] = None
    inp: Optional[CoreWebVitalMetric] = None
    fcp: Optional[CoreWebVitalMetric] = None
    ttfb: Optional[CoreWebVitalMetric] = None


class LighthouseScores(CamelModel):
    performance: Optional[int] = None
    accessibility: Optional[int] = None
    best_practices: Optional[int] = None
    seo: Optional[int] = None


class LabMetrics(CamelModel):
    first_contentful_paint: Optional[float] = None
    largest_contentful_paint: Optional[float] = None
    total_blocking_time: Optional[float] = None
    cumulative_layout_shift: Optional[float] = None
    speed_index: Optional[float] = None
    time_to_interactive: Optional[float] = None


class Opportunity(CamelModel):
    id: str
    title: str
    description: str = ""
    score: Optional[float] = None
    savings: Optional[str] = None


class AuditCounts(CamelModel):
    passed: int = 0
    total: int = 0


class PageSpeedResult(CamelModel):
    """Parsed PageSpeed run for one strategy."""

    url: str
    final_url: str
    strategy: Strategy
    fetch_time: str
    core_web_vitals: CoreWebVitals
    has_field_data: bool
    scores: LighthouseScores
    metrics: LabMetrics
    opportunities: List[Opportunity]
    audits: AuditCounts


class PageSpeedError(BaseModel):
    """A PageSpeed call that did not produce a result."""

    error: Literal[True] = True
    message: str
    code: str


PageSpeedOutcome = Union[PageSpeedResult, PageSpeedError]


def get_metric_rating(metric: str, value: Optional[float]) -> Optional[Rating]:
    """Rate a Core Web Vital value against the standard thresholds."""
    if value is None:
        return None
    good, poor = METRIC_THRESHOLDS[metric.lower()]
    if value <= good:
        return "good"
    if value <= poor:
        return "needs-improvement"
    return "poor"


def _field_metric(metrics: Dict[str, Any], key: str, divisor: float = 1) -> Optional[CoreWebVitalMetric]:
    metric = metrics.get(key)
    if not metric:
        return None
    percentile = metric.get("percentile")
    category = metric.get("category")
    return CoreWebVitalMetric(
        percentile=percentile / divisor if percentile else None,
        rating=category.lower() if category else None,
    )


def _score(categories: Dict[str, Any], key: str) -> Optional[int]:
    value = (categories.get(key) or {}).get("score")
    return round(value * 100) if value is not None else None


def _numeric(audits: Dict[str, Any], key: str) -> Optional[float]:
    return (audits.get(key) or {}).get("numericValue") or None


def format_savings(audit: Dict[str, Any]) -> Optional[str]:
    """Human readable savings for an opportunity audit."""
    details = audit.get("details") or {}
    savings_ms = details.get("overallSavingsMs")
    savings_bytes = details.get("overallSavingsBytes")

    if savings_ms:
        if savings_ms >= 1000:
            return f"{savings_ms / 1000:.1f} s"
        return f"{round(savings_ms)} ms"
    if savings_bytes:
        kb = savings_bytes / 1024
        if kb >= 1024:
            return f"{kb / 1024:.1f} MB"
        return f"{round(kb)} KB"
    return audit.get("displayValue")


def parse_pagespeed_response(data: Dict[str, Any], url: str, strategy: Strategy) -> PageSpeedResult:
    """Map a raw PageSpeed v5 response into a ``PageSpeedResult``."""
    lighthouse = data.get("lighthouseResult") or {}
    categories = lighthouse.get("categories") or {}
    audits = lighthouse.get("audits") or {}
    field_metrics = (data.get("loadingExperience") or {}).get("metrics") or {}

    vitals = CoreWebVitals(
        lcp=_field_metric(field_metrics, "LARGEST_CONTENTFUL_PAINT_MS", 1000),
        fid=_field_metric(field_metrics, "FIRST_INPUT_DELAY_MS"),
        cls=_field_metric(field_metrics, "CUMULATIVE_LAYOUT_SHIFT_SCORE", 100),
        inp=_field_metric(field_metrics, "INTERACTION_TO_NEXT_PAINT"),
        fcp=_field_metric(field_metrics, "FIRST_CONTENTFUL_PAINT_MS", 1000),
        ttfb=_field_metric(field_metrics, "EXPERIMENTAL_TIME_TO_FIRST_BYTE"),
    )

    opportunities = []
    for audit_id in OPPORTUNITY_AUDITS:
        audit = audits.get(audit_id)
        if not audit or audit.get("score") is None or audit["score"] >= 1:
            continue
        opportunities.append(
            Opportunity(
                id=audit_id,
                title=audit.get("title", audit_id),
                description=audit.get("description", ""),
                score=audit.get("score"),
                savings=format_savings(audit),
            )
        )
    opportunities.sort(key=lambda o: o.score or 0)

    scored = [
        a for a in audits.values()
        if a.get("scoreDisplayMode") in ("binary", "numeric")
    ]
    passed = sum(1 for a in scored if a.get("score") == 1)

    return PageSpeedResult(
        url=url,
        final_url=data.get("id") or url,
        strategy=strategy,
        fetch_time=data.get("analysisUTCTimestamp") or datetime.now(timezone.utc).isoformat(),
        core_web_vitals=vitals,
        has_field_data=bool(field_metrics),
        scores=LighthouseScores(
            performance=_score(categories, "performance"),
            accessibility=_score(categories, "accessibility"),
            best_practices=_score(categories, "best-practices"),
            seo=_score(categories, "seo"),
        ),
        metrics=LabMetrics(
            first_contentful_paint=_numeric(audits, "first-contentful-paint"),
            largest_contentful_paint=_numeric(audits, "largest-contentful-paint"),
            total_blocking_time=_numeric(audits, "total-blocking-time"),
            cumulative_layout_shift=_numeric(audits, "cumulative-layout-shift"),
            speed_index=_numeric(audits, "speed-index"),
            time_to_interactive=_numeric(audits, "interactive"),
        ),
        opportunities=opportunities[:10],
        audits=AuditCounts(passed=passed, total=len(scored)),
    )


class PageSpeedService:
    """Client for the PageSpeed Insights API."""

    API_URL = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"
    REQUEST_TIMEOUT = 30.0  # seconds
    CATEGORIES = ["performance", "accessibility", "best-practices", "seo"]

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        """Initialize the service.

        Args:
            transport: Optional httpx transport, used by tests.
        """
        self.transport = transport

    async def fetch(self, url: str, strategy: Strategy = "mobile") -> PageSpeedOutcome:
        """Run PageSpeed for one URL and strategy."""
        api_key = settings.GOOGLE_PAGESPEED_API_KEY
        if not api_key:
            return PageSpeedError(message="PageSpeed API key not configured", code="NO_API_KEY")

        params: List[Tuple[str, str]] = [
            ("url", url),
            ("key", api_key),
            ("strategy", strategy),
        ]
        params.extend(("category", category) for category in self.CATEGORIES)

        try:
            async with httpx.AsyncClient(timeout=self.REQUEST_TIMEOUT, transport=self.transport) as client:
                response = await client.get(self.API_URL, params=params)

            if response.status_code >= 400:
                try:
                    error = response.json().get("error") or {}
                except ValueError:
                    error = {}
                return PageSpeedError(
                    message=error.get("message") or f"PageSpeed API error: {response.status_code}",
                    code=str(error.get("code") or f"HTTP_{response.status_code}"),
                )

            return parse_pagespeed_response(response.json(), url, strategy)

        except httpx.TimeoutException:
            logger.warning(f"[PageSpeed] Timeout for {url} ({strategy})")
            return PageSpeedError(
                message="PageSpeed API request timed out after 30 seconds",
                code="TIMEOUT",
            )
        except Exception as e:
            logger.error(f"[PageSpeed] Request failed for {url} ({strategy}): {e}")
            return PageSpeedError(message=str(e) or "Unknown error", code="FETCH_ERROR")

    async def fetch_both(self, url: str) -> Dict[str, PageSpeedOutcome]:
        """Run mobile and desktop concurrently."""
        mobile, desktop = await asyncio.gather(
            self.fetch(url, "mobile"),
            self.fetch(url, "desktop"),
        )
        return {"mobile": mobile, "desktop": desktop}


pagespeed_service = PageSpeedService()
