"""Traffic and extended content signals for the scraper.

Both scrapers work from the already fetched entry page and make a few
extra requests to the same origin (sitemap, robots.txt, blog, pricing and
resources pages).
"""

import json
import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from app.schemas.scraped import ExtendedContentData, SocialLink, TrafficData
from app.services.page_fetcher import FetchedPage, fetch_text

OTHER_ANALYTICS = [
    ("Plausible", "plausible"),
    ("Fathom", "usefathom"),
    ("Mixpanel", "mixpanel"),
    ("Hotjar", "hotjar"),
    ("Segment", "segment"),
    ("Amplitude", "amplitude"),
]

PIXELS = [
    ("Facebook", ("fbevents",)),
    ("LinkedIn", ("snap.licdn.com", "linkedin.com/px")),
    ("Twitter/X", ("static.ads-twitter.com",)),
    ("TikTok", ("analytics.tiktok.com",)),
]

SOCIAL_PLATFORMS = [
    ("Facebook", re.compile(r"facebook\.com", re.IGNORECASE)),
    ("Twitter/X", re.compile(r"twitter\.com|x\.com", re.IGNORECASE)),
    ("LinkedIn", re.compile(r"linkedin\.com", re.IGNORECASE)),
    ("Instagram", re.compile(r"instagram\.com", re.IGNORECASE)),
    ("YouTube", re.compile(r"youtube\.com", re.IGNORECASE)),
    ("TikTok", re.compile(r"tiktok\.com", re.IGNORECASE)),
    ("GitHub", re.compile(r"github\.com", re.IGNORECASE)),
    ("Discord", re.compile(r"discord\.com|discord\.gg", re.IGNORECASE)),
    ("Pinterest", re.compile(r"pinterest\.com", re.IGNORECASE)),
]

BLOG_PATHS = ["/blog", "/posts", "/articles", "/news", "/insights", "/updates"]
RESOURCE_PATHS = ["/resources", "/guides", "/ebooks", "/whitepapers", "/case-studies", "/library"]
PRICING_PATHS = ["/pricing", "/plans", "/packages"]
BLOG_POST_SELECTOR = 'article, .post, .blog-post, [class*="post-"], [class*="article-"], .entry, .blog-item'

TESTIMONIAL_SELECTOR = (
    '[class*="testimonial"], [class*="review"], [class*="quote"], '
    '[class*="customer-story"], [class*="success-story"], blockquote'
)
TRUST_BADGE_PATTERNS = [
    "ssl", "secure", "verified", "certified", "trusted", "badge",
    "bbb", "norton", "mcafee", "truste", "gdpr", "hipaa", "soc2", "iso",
]
TRUST_BADGE_TYPES = [
    ("BBB", ("bbb",)),
    ("Norton", ("norton",)),
    ("McAfee", ("mcafee",)),
    ("SSL Secure", ("ssl", "secure")),
    ("GDPR", ("gdpr",)),
    ("HIPAA", ("hipaa",)),
    ("SOC 2", ("soc2", "soc 2")),
    ("ISO", ("iso",)),
]
RESOURCE_TYPES = [
    ("guides", ("guide",)),
    ("ebooks", ("ebook", "e-book")),
    ("whitepapers", ("whitepaper", "white paper")),
    ("templates", ("template",)),
    ("checklists", ("checklist",)),
    ("webinars", ("webinar",)),
    ("case studies", ("case study", "case-study")),
]
MISSION_KEYWORDS = ["mission", "vision", "values", "our story", "who we are", "what we do"]
AUDIENCE_KEYWORDS = [
    "for businesses", "for teams", "for developers", "for marketers",
    "for startups", "for enterprise", "for small business", "for agencies",
    "designed for", "built for", "made for", "perfect for",
]
PRICE_PATTERN = re.compile(r"\$\d+|\d+/mo|\d+/month|\d+/year", re.IGNORECASE)
CONTACT_SALES_PHRASES = [
    "contact sales", "contact us", "get a quote", "request pricing",
    "custom pricing", "pricing on request",
]
CTA_SELECTOR = 'button, a.btn, a.button, [class*="cta"], [class*="btn-primary"], [role="button"]'
VIDEO_SELECTOR = 'video, iframe[src*="youtube"], iframe[src*="vimeo"], iframe[src*="wistia"], [class*="video"]'


def _origin(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def _links(page: FetchedPage) -> List[Tuple[str, str]]:
    """(absolute href, text) pairs, both lowercased."""
    return [
        (urljoin(page.final_url, a["href"]).lower(), a.get_text(" ", strip=True).lower())
        for a in page.soup.find_all("a", href=True)
    ]


def _script_text(soup: BeautifulSoup) -> str:
    return " ".join(
        (script.get("src") or "") + " " + (script.string or "")
        for script in soup.find_all("script")
    ).lower()


def _social_links(hrefs: List[str], platforms=SOCIAL_PLATFORMS) -> List[SocialLink]:
    found: Dict[str, str] = {}
    for href in hrefs:
        for platform, pattern in platforms:
            if platform not in found and pattern.search(href):
                found[platform] = href
    return [SocialLink(platform=p, url=u) for p, u in found.items()]


def structured_data_types(soup: BeautifulSoup) -> List[str]:
    """Distinct JSON-LD @type values, including those inside @graph."""
    types: List[str] = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            data = json.loads(script.string or "")
        except (TypeError, ValueError):
            continue
        items = data if isinstance(data, list) else [data]
        for item in items:
            if not isinstance(item, dict):
                continue
            nodes = [item] + [g for g in item.get("@graph", []) if isinstance(g, dict)]
            for node in nodes:
                node_type = node.get("@type")
                for value in node_type if isinstance(node_type, list) else [node_type]:
                    if isinstance(value, str) and value not in types:
                        types.append(value)
    return types


async def _count_blog_posts(client: httpx.AsyncClient, origin: str, paths: List[str]) -> int:
    for path in paths:
        html = await fetch_text(client, f"{origin}{path}")
        if not html:
            continue
        count = len(BeautifulSoup(html, "html.parser").select(BLOG_POST_SELECTOR))
        if count > 0:
            return count
    return 0


async def scrape_traffic_signals(client: httpx.AsyncClient, page: FetchedPage) -> TrafficData:
    """Analytics, crawlability, structured data and SEO counts."""
    soup = page.soup
    origin = _origin(page.final_url)
    scripts = _script_text(soup)
    host = urlparse(page.final_url).netloc.lower()

    sitemap = await fetch_text(client, f"{origin}/sitemap.xml")
    sitemap_count = sitemap.count("<loc>") if sitemap else 0
    robots = await fetch_text(client, f"{origin}/robots.txt")

    links = _links(page)
    hrefs = [href for href, _ in links]
    texts = [text for _, text in links]

    blog_exists = any(p in h for p in BLOG_PATHS for h in hrefs) or any(
        t in ("blog", "articles", "insights") for t in texts
    )
    has_resources = any(p in h for p in RESOURCE_PATHS for h in hrefs) or any(
        "resource" in t or "guide" in t or "download" in t for t in texts
    )
    blog_posts = await _count_blog_posts(client, origin, BLOG_PATHS[:5]) if blog_exists else 0

    raw_hrefs = [a["href"] for a in soup.find_all("a", href=True)]
    internal = [h for h in raw_hrefs if h.startswith("/") or h.startswith(origin)]
    external = [h for h in raw_hrefs if h.startswith("http") and host not in h.lower()]

    title = soup.title.get_text(strip=True) if soup.title else ""
    meta = soup.find("meta", attrs={"name": "description"})
    description = (meta.get("content") or "") if meta else ""
    types = structured_data_types(soup)

    return TrafficData(
        has_google_analytics="google-analytics" in scripts or "gtag" in scripts,
        has_gtm="googletagmanager" in scripts or "datalayer" in scripts,
        other_analytics=[name for name, marker in OTHER_ANALYTICS if marker in scripts],
        pixels=[name for name, markers in PIXELS if any(m in scripts for m in markers)],
        has_sitemap=sitemap is not None,
        sitemap_page_count=sitemap_count or None,
        has_robots_txt=robots is not None,
        robots_allows_crawling="disallow: /" not in (robots or "").lower(),
        has_structured_data=bool(types),
        structured_data_types=types,
        canonical_tag=soup.find("link", rel="canonical") is not None,
        blog_exists=blog_exists,
        estimated_blog_posts=blog_posts,
        has_resources_section=has_resources,
        social_links=_social_links(raw_hrefs),
        meta_title=bool(title),
        meta_title_length=len(title),
        meta_description=bool(description),
        meta_description_length=len(description),
        h1_count=len(soup.find_all("h1")),
        internal_link_count=len(internal),
        external_link_count=len(external),
    )


def classify_pricing_page(text: str) -> str:
    """visible, contact-sales or hidden, from a pricing page's text."""
    text = text.lower()
    if PRICE_PATTERN.search(text):
        return "visible"
    if any(phrase in text for phrase in CONTACT_SALES_PHRASES):
        return "contact-sales"
    return "hidden"


def _lead_capture_types(soup: BeautifulSoup) -> List[str]:
    types: List[str] = []

    def add(kind: str) -> None:
        if kind not in types:
            types.append(kind)

    for form in soup.find_all("form"):
        text = form.get_text(" ", strip=True).lower()
        markup = str(form).lower()
        if "newsletter" in markup or "subscribe" in text or "sign up" in text:
            add("newsletter")
        if "contact" in text or "get in touch" in text:
            add("contact")
        if "demo" in text or "schedule" in text or "book" in text:
            add("demo request")
        if "quote" in text or "pricing" in text:
            add("quote request")
        if 'type="email"' in markup and not types:
            add("email signup")
    return types


async def _first_page_text(client: httpx.AsyncClient, origin: str, paths: List[str]) -> Optional[str]:
    for path in paths:
        html = await fetch_text(client, f"{origin}{path}")
        if html:
            return BeautifulSoup(html, "html.parser").get_text(" ", strip=True)
    return None


async def scrape_extended_content(client: httpx.AsyncClient, page: FetchedPage) -> ExtendedContentData:
    """Trust, content strategy, conversion, multimedia and business signals."""
    soup = page.soup
    origin = _origin(page.final_url)
    body_text = soup.get_text(" ", strip=True).lower()
    links = _links(page)

    def any_link(*, hrefs=(), texts=(), exact=()) -> bool:
        return any(
            any(h in href for h in hrefs)
            or any(t in text for t in texts)
            or text in exact
            for href, text in links
        )

    testimonials = soup.select(TESTIMONIAL_SELECTOR)

    badge_sources = []
    for img in soup.find_all("img"):
        combined = f"{(img.get('alt') or '').lower()} {(img.get('src') or '').lower()}"
        if any(p in combined for p in TRUST_BADGE_PATTERNS):
            badge_sources.append(combined)
    badge_types = [
        name for name, markers in TRUST_BADGE_TYPES
        if any(m in source for source in badge_sources for m in markers)
    ]

    has_blog = any_link(hrefs=("/blog", "/articles", "/news", "/insights"), exact=("blog", "articles"))
    has_resources = any_link(
        hrefs=("/resources", "/guides", "/ebooks", "/whitepapers"),
        texts=("resource", "guide", "download"),
    )

    pricing_text = await _first_page_text(client, origin, PRICING_PATHS)
    pricing_transparency = classify_pricing_page(pricing_text) if pricing_text is not None else "none"

    blog_post_count = (
        await _count_blog_posts(client, origin, ["/blog", "/articles", "/news", "/insights"])
        if has_blog else 0
    )

    resource_types: List[str] = []
    if has_resources:
        resource_text = (await _first_page_text(client, origin, ["/resources", "/library", "/downloads"]) or "").lower()
        resource_types = [
            name for name, markers in RESOURCE_TYPES
            if any(m in resource_text for m in markers)
        ]

    lead_types = _lead_capture_types(soup)
    cta_elements = soup.select(CTA_SELECTOR)
    cta_texts = [el.get_text(" ", strip=True) for el in cta_elements]

    videos = soup.select(VIDEO_SELECTOR)
    video_sources: List[str] = []
    for video in videos:
        src = (video.get("src") or "").lower()
        if video.name == "video":
            video_sources.append("self-hosted")
        for name in ("YouTube", "Vimeo", "Wistia"):
            if name.lower() in src:
                video_sources.append(name)

    return ExtendedContentData(
        has_testimonials=bool(testimonials),
        testimonial_count=len(testimonials),
        has_team_page=any_link(hrefs=("/team", "/about"), texts=("team", "about us")),
        has_case_studies=any_link(
            hrefs=("/case-stud", "/success-stor"),
            texts=("case stud", "success stor"),
        ),
        has_privacy_policy=any_link(hrefs=("/privacy",), texts=("privacy",)),
        has_terms_of_service=any_link(
            hrefs=("/terms",),
            texts=("terms of service", "terms & conditions"),
        ),
        has_trust_badges=bool(badge_sources),
        trust_badge_types=badge_types,
        has_blog=has_blog,
        blog_post_count=blog_post_count,
        has_resources_section=has_resources,
        resource_types=resource_types,
        has_lead_capture=bool(lead_types),
        lead_capture_types=lead_types,
        has_email_signup="newsletter" in lead_types or "email signup" in lead_types,
        has_pricing_page=any_link(hrefs=("/pricing",), texts=("pricing", "plans")),
        pricing_transparency=pricing_transparency,
        cta_count=len(cta_elements),
        cta_types=list(dict.fromkeys(t for t in cta_texts if 0 < len(t) < 50))[:10],
        has_video_content=bool(videos),
        video_sources=list(dict.fromkeys(video_sources)),
        video_count=len(videos),
        has_podcast=any_link(hrefs=("podcast", "spotify", "apple.com/podcast"), texts=("podcast",)),
        social_profiles=_social_links([href for href, _ in links], SOCIAL_PLATFORMS[:6]),
        has_about_page=any_link(hrefs=("/about",), exact=("about", "about us")),
        has_contact_page=any_link(hrefs=("/contact",), texts=("contact",)),
        has_mission_statement=any(k in body_text for k in MISSION_KEYWORDS),
        competitors_mentioned=[],
        target_audience_clarity=any(k in body_text for k in AUDIENCE_KEYWORDS),
    )
