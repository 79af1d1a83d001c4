import httpx
import pytest

from app.services.page_fetcher import FetchedPage
from app.services.scraper import (
    ScrapeError,
    WebsiteScraper,
    extract_content,
    extract_technical,
    filter_emails,
    normalize_url,
)

HOME_HTML = """<!doctype html>
<html>
<head>
  <title>Acme Widgets | Home</title>
  <meta name="description" content="Industrial widgets since 1999">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <meta property="og:image" content="https://acme.example/og.png">
  <link rel="icon" href="/favicon.ico">
  <script src="https://www.googletagmanager.com/gtag/js?id=G-1"></script>
</head>
<body>
  <header><nav><a href="/about">About</a><a href="/pricing">Pricing</a></nav></header>
  <h1>Widgets that work</h1>
  <h2>Why Acme</h2>
  <a class="btn" href="/signup">Get started</a>
  <p>Write to sales@acme.example or noreply@acme.example.</p>
  <img src="/hero.png" alt="hero">
  <form><input name="email"></form>
  <footer>
    <a href="mailto:Hello@Acme.example?subject=hi">Email us</a>
    <a href="https://twitter.com/acme">Twitter</a>
    <a href="https://www.linkedin.com/company/acme">LinkedIn</a>
    <p>&copy; 2026 Acme</p>
  </footer>
  <script>var ignored = "x@sentry.io";</script>
</body>
</html>"""

PRICING_HTML = "<html><head><title>Pricing</title></head><body><h1>Plans</h1><p>cheap</p></body></html>"


def site_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/":
        return httpx.Response(200, html=HOME_HTML)
    if request.url.path == "/pricing":
        return httpx.Response(200, html=PRICING_HTML)
    return httpx.Response(404, text="not found")


def make_page(html: str, url: str = "https://acme.example/") -> FetchedPage:
    return FetchedPage(url=url, final_url=url, status_code=200, html=html, load_time=420)


def test_normalize_url_adds_scheme():
    assert normalize_url("acme.example") == "https://acme.example"
    assert normalize_url(" http://acme.example/a ") == "http://acme.example/a"


@pytest.mark.parametrize("value", ["", "localhost", "ftp://acme.example"])
def test_normalize_url_rejects_invalid(value):
    with pytest.raises(ScrapeError):
        normalize_url(value)


def test_filter_emails_drops_false_positives():
    emails = filter_emails([
        "Sales@Acme.example",
        "sales@acme.example",
        "logo@2x.png",
        "someone@example.com",
        "noreply@acme.example",
        "test@acme.example",
        "abc@o123.ingest.sentry.io",
        "help@acme.example",
    ])
    assert emails == ["sales@acme.example", "help@acme.example"]


def test_extract_technical():
    technical = extract_technical(make_page(HOME_HTML))
    assert technical.title == "Acme Widgets | Home"
    assert technical.meta_description == "Industrial widgets since 1999"
    assert technical.ssl is True
    assert technical.mobile_viewport is True
    assert technical.favicon is True
    assert technical.logo_url == "https://acme.example/og.png"
    assert technical.has_analytics is True
    assert technical.has_forms is True
    assert technical.image_count == 1
    assert technical.load_time == 420


def test_extract_content():
    content = extract_content(make_page(HOME_HTML))
    assert content.h1 == ["Widgets that work"]
    assert content.h2 == ["Why Acme"]
    assert "Get started" in content.cta_buttons
    assert content.nav_links[:2] == ["About", "Pricing"]
    assert content.social_links == ["https://twitter.com/acme", "https://www.linkedin.com/company/acme"]
    assert content.emails == ["hello@acme.example", "sales@acme.example"]
    assert "ignored" not in content.body_text


async def test_scrape_website_over_mock_transport():
    scraper = WebsiteScraper(transport=httpx.MockTransport(site_handler))

    data = await scraper.scrape_website("acme.example", max_pages=2)

    assert data.url == "https://acme.example"
    assert data.technical.final_url.startswith("https://acme.example")
    assert data.technical.status_code == 200
    assert data.content.h1 == ["Widgets that work"]
    assert [page.path for page in data.pages] == ["/", "/pricing"]
    assert data.pages[1].title == "Pricing"


async def test_scrape_website_unreachable_raises_scrape_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    scraper = WebsiteScraper(transport=httpx.MockTransport(handler))
    with pytest.raises(ScrapeError, match="Technical scrape failed"):
        await scraper.scrape_website("https://down.example")


async def test_quick_check_falls_back_to_input_url():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    scraper = WebsiteScraper(transport=httpx.MockTransport(handler))
    result = await scraper.quick_check("acme.example")
    assert result == {"url": "https://acme.example", "finalUrl": "https://acme.example", "ssl": True}
