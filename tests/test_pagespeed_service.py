import httpx
import pytest

from app.core.config import settings
from app.services.pagespeed_service import (
    PageSpeedError,
    PageSpeedResult,
    PageSpeedService,
    format_savings,
    get_metric_rating,
    parse_pagespeed_response,
)

SAMPLE_RESPONSE = {
    "id": "https://example.com/",
    "analysisUTCTimestamp": "2026-10-19T10:00:00.000Z",
    "loadingExperience": {
        "metrics": {
            "LARGEST_CONTENTFUL_PAINT_MS": {"percentile": 2100, "category": "FAST"},
            "CUMULATIVE_LAYOUT_SHIFT_SCORE": {"percentile": 12, "category": "AVERAGE"},
        }
    },
    "lighthouseResult": {
        "categories": {
            "performance": {"score": 0.87},
            "accessibility": {"score": 0.9},
            "best-practices": {"score": 1},
            "seo": {"score": 0.76},
        },
        "audits": {
            "first-contentful-paint": {"numericValue": 1200.5, "scoreDisplayMode": "numeric", "score": 0.9},
            "largest-contentful-paint": {"numericValue": 2400, "scoreDisplayMode": "numeric", "score": 1},
            "render-blocking-resources": {
                "title": "Eliminate render-blocking resources",
                "score": 0.3,
                "scoreDisplayMode": "metricSavings",
                "details": {"overallSavingsMs": 1500},
            },
            "unused-css-rules": {
                "title": "Reduce unused CSS",
                "score": 0.6,
                "scoreDisplayMode": "metricSavings",
                "details": {"overallSavingsBytes": 51200},
            },
            "uses-text-compression": {"title": "Enable compression", "score": 1},
            "is-on-https": {"score": 1, "scoreDisplayMode": "binary"},
        },
    },
}


@pytest.mark.parametrize("metric,value,expected", [
    ("lcp", 2.5, "good"),
    ("lcp", 3.2, "needs-improvement"),
    ("lcp", 4.1, "poor"),
    ("cls", 0.05, "good"),
    ("INP", 600, "poor"),
    ("ttfb", None, None),
])
def test_metric_rating(metric, value, expected):
    assert get_metric_rating(metric, value) == expected


def test_format_savings():
    assert format_savings({"details": {"overallSavingsMs": 450}}) == "450 ms"
    assert format_savings({"details": {"overallSavingsMs": 1500}}) == "1.5 s"
    assert format_savings({"details": {"overallSavingsBytes": 51200}}) == "50 KB"
    assert format_savings({"displayValue": "3 resources"}) == "3 resources"


def test_parse_response():
    result = parse_pagespeed_response(SAMPLE_RESPONSE, "https://example.com", "mobile")

    assert result.final_url == "https://example.com/"
    assert result.has_field_data is True
    assert result.core_web_vitals.lcp.percentile == 2.1
    assert result.core_web_vitals.lcp.rating == "fast"
    assert result.core_web_vitals.cls.percentile == 0.12
    assert result.core_web_vitals.inp is None
    assert result.scores.performance == 87
    assert result.scores.best_practices == 100
    assert result.scores.seo == 76
    assert result.metrics.first_contentful_paint == 1200.5
    assert [o.id for o in result.opportunities] == ["render-blocking-resources", "unused-css-rules"]
    assert result.opportunities[0].savings == "1.5 s"
    assert result.audits.passed == 2
    assert result.audits.total == 3


async def test_fetch_without_key_returns_error(monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_PAGESPEED_API_KEY", "")
    outcome = await PageSpeedService().fetch("https://example.com")
    assert isinstance(outcome, PageSpeedError)
    assert outcome.code == "NO_API_KEY"


async def test_fetch_both_parses_each_strategy(monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_PAGESPEED_API_KEY", "key")
    strategies = []

    def handler(request: httpx.Request) -> httpx.Response:
        strategies.append(request.url.params["strategy"])
        assert request.url.params.get_list("category") == PageSpeedService.CATEGORIES
        return httpx.Response(200, json=SAMPLE_RESPONSE)

    outcomes = await PageSpeedService(transport=httpx.MockTransport(handler)).fetch_both("https://example.com")

    assert sorted(strategies) == ["desktop", "mobile"]
    assert isinstance(outcomes["mobile"], PageSpeedResult)
    assert outcomes["desktop"].strategy == "desktop"


async def test_api_error_is_returned_not_raised(monkeypatch):
    monkeypatch.setattr(settings, "GOOGLE_PAGESPEED_API_KEY", "key")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(429, json={"error": {"code": 429, "message": "Quota exceeded"}})

    outcome = await PageSpeedService(transport=httpx.MockTransport(handler)).fetch("https://example.com")

    assert isinstance(outcome, PageSpeedError)
    assert outcome.message == "Quota exceeded"
    assert outcome.code == "429"
