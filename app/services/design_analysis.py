"""Static design-quality analysis of a fetched page.

Works from the HTML, inline ``<style>`` blocks and script sources only, so
computed styles and runtime checks (WebGL contexts, overflow) are
approximated from markup.
"""

import logging
import re
from datetime import datetime
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from app.schemas.scraped import (
    AnimationAnalysis,
    ColorAnalysis,
    CopyrightInfo,
    DesignQualityData,
    LayoutAnalysis,
    MobileAnalysis,
    UrlAnalysis,
)
from app.services.page_fetcher import FetchedPage

logger = logging.getLogger(__name__)

# Ranges first so "© 2019 - 2023" reports the latest year
COPYRIGHT_PATTERNS = [
    re.compile(r"(?:©|copyright)\s*\d{4}\s*[-–]\s*(\d{4})", re.IGNORECASE),
    re.compile(r"(?:©|copyright|\(c\))\s*(\d{4})", re.IGNORECASE),
    re.compile(r"(\d{4})\s*(?:©|copyright|\(c\))", re.IGNORECASE),
]
ANY_YEAR_PATTERN = re.compile(r"\b(20[0-3]\d)\b")
FILE_EXTENSION_PATTERN = re.compile(r"\.(html|php|asp|aspx|jsp|htm)$", re.IGNORECASE)

# (library, markers searched in script sources, markers searched in the HTML)
ANIMATION_LIBRARIES = [
    ("GSAP", ("gsap", "greensock"), ("gsap",)),
    ("AOS", ("aos",), ("data-aos",)),
    ("Framer Motion", ("framer-motion", "framer", "motion/react"), ()),
    ("Animate.css", ("animatecss",), ("animate__",)),
    ("Lottie", ("lottie", "bodymovin"), ()),
    ("Anime.js", ("animejs",), ()),
    ("Velocity.js", ("velocity",), ()),
    ("ScrollMagic", ("scrollmagic",), ()),
    ("Locomotive Scroll", ("locomotive",), ("data-scroll",)),
    ("ScrollTrigger", ("scrolltrigger",), ()),
    ("Barba.js", ("barba",), ()),
    ("Swup", ("swup",), ()),
    ("Highway.js", ("highway",), ()),
    ("Popmotion", ("popmotion",), ()),
    ("Motion One", ("motion-one", "@motionone"), ()),
    ("Splitting.js", ("splitting",), ("data-splitting",)),
]

THREE_D_LIBRARIES = [
    ("Three.js", ("three", "threejs")),
    ("PixiJS", ("pixijs", "pixi.js")),
    ("Babylon.js", ("babylonjs", "babylon.js")),
    ("WebGL", ("webgl",)),
    ("OGL", ("ogl",)),
    ("React Three Fiber", ("react-three-fiber", "@react-three")),
    ("Spline", ("spline", "@splinetool")),
    ("Curtains.js", ("curtainsjs", "curtains.js")),
]

PAGE_TRANSITION_LIBRARIES = {"Barba.js", "Swup", "Highway.js"}

LAYOUT_PATTERNS = [
    ("hero", "Hero section"),
    ("feature", "Features grid"),
    ("testimonial", "Testimonials"),
    ("pricing", "Pricing section"),
    ("cta", "CTA section"),
    ("faq", "FAQ section"),
    ("contact", "Contact section"),
]

MOBILE_MENU_SELECTOR = (
    '[class*="hamburger"], [class*="mobile-menu"], [class*="menu-toggle"], '
    '[class*="nav-toggle"], [aria-label*="menu"], [aria-label*="Menu"]'
)

HEX_COLOR = re.compile(r"#([0-9a-f]{3}|[0-9a-f]{6})\b", re.IGNORECASE)
RGB_COLOR = re.compile(r"rgba?\(\s*(\d{1,3})\s*,\s*(\d{1,3})\s*,\s*(\d{1,3})", re.IGNORECASE)
BODY_RULE = re.compile(r"(?:^|[}\s,])(?:html|body)\s*\{([^}]*)\}", re.IGNORECASE)


def _style_text(soup: BeautifulSoup) -> str:
    blocks = [style.get_text() for style in soup.find_all("style")]
    blocks.extend(el["style"] for el in soup.find_all(style=True))
    return "\n".join(blocks)


def _script_text(soup: BeautifulSoup) -> str:
    return " ".join(
        (script.get("src") or "") + " " + (script.string or "")
        for script in soup.find_all("script")
    ).lower()


def analyze_footer(soup: BeautifulSoup, current_year: Optional[int] = None) -> CopyrightInfo:
    """Find the footer copyright year and how stale it is."""
    current_year = current_year or datetime.now().year
    footer = (
        soup.find("footer")
        or soup.select_one('[class*="footer"]')
        or soup.select_one('[id*="footer"]')
    )
    if footer is None:
        return CopyrightInfo()

    text = footer.get_text(" ")
    year = None
    for pattern in COPYRIGHT_PATTERNS:
        match = pattern.search(text)
        if match:
            year = int(match.group(1))
            break
    if year is None:
        match = ANY_YEAR_PATTERN.search(text)
        if match:
            year = int(match.group(1))

    return CopyrightInfo(
        has_footer=True,
        footer_copyright_year=year,
        is_current_year=year == current_year,
        years_outdated=current_year - year if year else 0,
    )


def analyze_url(url: str) -> UrlAnalysis:
    """Check a URL for the usual readability and SEO problems."""
    parsed = urlparse(url)
    path = parsed.path
    issues = []

    has_query = bool(parsed.query)
    has_file_extension = bool(FILE_EXTENSION_PATTERN.search(path))
    uses_underscores = "_" in path
    is_lowercase = path == path.lower()
    depth = len([part for part in path.split("/") if part])
    has_proper_hierarchy = depth <= 4

    if has_query:
        issues.append("URL contains query parameters")
    if has_file_extension:
        issues.append("URL contains file extension (.html, .php, etc.)")
    if uses_underscores:
        issues.append("URL uses underscores instead of hyphens")
    if not is_lowercase:
        issues.append("URL contains uppercase characters")
    if len(url) > 75:
        issues.append("URL is too long (>75 characters)")
    if not has_proper_hierarchy:
        issues.append("URL hierarchy is too deep")

    return UrlAnalysis(
        is_clean_url=not has_query and not has_file_extension and not uses_underscores,
        has_proper_hierarchy=has_proper_hierarchy,
        uses_hyphens="-" in path,
        is_lowercase=is_lowercase,
        has_file_extension=has_file_extension,
        url_length=len(url),
        issues=issues,
    )


def parse_color(value: str) -> Optional[Tuple[int, int, int]]:
    """RGB triple for a hex or rgb()/rgba() color, None if unrecognized."""
    match = HEX_COLOR.search(value)
    if match:
        digits = match.group(1)
        if len(digits) == 3:
            digits = "".join(c * 2 for c in digits)
        return tuple(int(digits[i:i + 2], 16) for i in (0, 2, 4))
    match = RGB_COLOR.search(value)
    if match:
        return tuple(min(255, int(v)) for v in match.groups())
    return None


def relative_luminance(rgb: Tuple[int, int, int]) -> float:
    channels = []
    for value in rgb:
        c = value / 255
        channels.append(c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4)
    return 0.2126 * channels[0] + 0.7152 * channels[1] + 0.0722 * channels[2]


def contrast_ratio(foreground: Tuple[int, int, int], background: Tuple[int, int, int]) -> float:
    """WCAG contrast ratio between two colors, from 1 to 21."""
    lighter, darker = sorted(
        (relative_luminance(foreground), relative_luminance(background)), reverse=True
    )
    return (lighter + 0.05) / (darker + 0.05)


def _declaration(block: str, prop: str) -> Optional[str]:
    match = re.search(rf"(?:^|;|\s){prop}\s*:\s*([^;]+)", block, re.IGNORECASE)
    return match.group(1).strip() if match else None


def _to_hex(rgb: Tuple[int, int, int]) -> str:
    return "#{:02x}{:02x}{:02x}".format(*rgb)


def analyze_colors(soup: BeautifulSoup, styles: str) -> ColorAnalysis:
    """Body text contrast and palette size from declared styles."""
    body_blocks = BODY_RULE.findall(styles)
    if soup.body is not None and soup.body.get("style"):
        body_blocks.append(soup.body["style"])

    text_rgb = background_rgb = None
    for block in body_blocks:
        color = _declaration(block, "color")
        background = _declaration(block, "background-color") or _declaration(block, "background")
        if color and parse_color(color):
            text_rgb = parse_color(color)
        if background and parse_color(background):
            background_rgb = parse_color(background)

    palette: List[str] = []
    for match in HEX_COLOR.finditer(styles):
        rgb = parse_color(match.group(0))
        if rgb and _to_hex(rgb) not in palette:
            palette.append(_to_hex(rgb))
    for match in RGB_COLOR.finditer(styles):
        rgb = parse_color(match.group(0))
        if rgb and _to_hex(rgb) not in palette:
            palette.append(_to_hex(rgb))

    ratio = None
    passes_aa = True
    passes_aaa = False
    if text_rgb is not None:
        # Browsers render an unset background as white
        ratio = round(contrast_ratio(text_rgb, background_rgb or (255, 255, 255)), 2)
        passes_aa = ratio >= 4.5
        passes_aaa = ratio >= 7

    issues = []
    if not passes_aa:
        issues.append("Text contrast does not meet WCAG AA standards (4.5:1)")
    if len(palette) > 20:
        issues.append("Too many colors used (>20), inconsistent palette")
    if len(palette) > 15:
        issues.append("Consider reducing color palette for consistency")

    return ColorAnalysis(
        primary_colors=palette[:5],
        background_color=_to_hex(background_rgb) if background_rgb else None,
        text_color=_to_hex(text_rgb) if text_rgb else None,
        contrast_ratio=ratio,
        passes_wcag_aa=passes_aa,
        passes_wcag_aaa=passes_aaa,
        color_count=len(palette),
        has_consistent_palette=len(palette) <= 15,
        issues=issues,
    )


def calculate_creative_score(analysis: AnimationAnalysis) -> int:
    """Creative quality score, 0-100, built up in capped tiers."""
    libraries = analysis.animation_libraries
    score = 0

    # Animation sophistication
    if "GSAP" in libraries:
        score += 15
    if "Framer Motion" in libraries:
        score += 12
    if "Lottie" in libraries:
        score += 10
    if "ScrollTrigger" in libraries or "Locomotive Scroll" in libraries:
        score += 10
    if "Barba.js" in libraries or "Swup" in libraries:
        score += 8
    if analysis.animation_count > 10:
        score += 5
    score = min(40, score)

    # 3D / WebGL
    if analysis.has_webgl:
        score += 15
    if analysis.three_d_libraries:
        score += 10
    score = min(65, score)

    # Interaction
    if analysis.has_scroll_animations:
        score += 8
    if analysis.has_parallax:
        score += 6
    if analysis.has_page_transitions:
        score += 6
    score = min(85, score)

    # Basic motion
    if analysis.has_css_animations:
        score += 5
    if analysis.has_css_transitions:
        score += 3
    if analysis.has_hover_effects:
        score += 3
    if analysis.has_svg_animations:
        score += 4
    return min(100, score)


def analyze_animations(soup: BeautifulSoup, html: str, styles: str, scripts: str) -> AnimationAnalysis:
    """Detect animation and 3D libraries and score the site's motion design."""
    html_lower = html.lower()
    styles_lower = styles.lower()

    libraries = [
        name for name, script_markers, html_markers in ANIMATION_LIBRARIES
        if any(marker in scripts for marker in script_markers)
        or any(marker in html_lower for marker in html_markers)
    ]
    if "Anime.js" not in libraries and re.search(r"anime\s*\(", scripts):
        libraries.append("Anime.js")
    three_d = [
        name for name, markers in THREE_D_LIBRARIES
        if any(marker in scripts for marker in markers)
    ]

    has_canvas = soup.find("canvas") is not None
    has_scroll = (
        any(marker in html_lower for marker in ("data-aos", "data-scroll", "data-parallax", "data-rellax"))
        or any("scroll" in lib.lower() or "locomotive" in lib.lower() for lib in libraries)
    )
    has_parallax = "parallax" in html_lower or "rellax" in html_lower or "parallax" in scripts or "rellax" in scripts
    has_transitions = (
        any(lib in PAGE_TRANSITION_LIBRARIES for lib in libraries)
        or "page-transition" in scripts
        or "data-barba" in html_lower
    )

    analysis = AnimationAnalysis(
        has_css_animations="@keyframes" in styles_lower or "animation:" in styles_lower,
        has_css_transitions="transition:" in styles_lower,
        has_js_animations=bool(libraries),
        animation_libraries=libraries,
        three_d_libraries=three_d,
        animation_count=styles_lower.count("@keyframes") + styles_lower.count("animation:"),
        has_scroll_animations=has_scroll,
        has_hover_effects=":hover" in styles_lower,
        has_canvas=has_canvas,
        # Without a browser a WebGL context can only be inferred
        has_webgl=has_canvas and ("webgl" in scripts or bool(three_d)),
        has_svg_animations=bool(soup.select("svg animate, svg animateTransform, svg animateMotion, svg set")),
        has_parallax=has_parallax,
        has_page_transitions=has_transitions,
    )
    analysis.has_animations = (
        analysis.has_css_animations or analysis.has_css_transitions or analysis.has_js_animations
    )
    analysis.has_3d = analysis.has_webgl or bool(three_d)
    analysis.creative_score = calculate_creative_score(analysis)
    analysis.is_high_craft = analysis.creative_score >= 50
    return analysis


def analyze_layout(soup: BeautifulSoup, html: str, styles: str, has_viewport: bool) -> LayoutAnalysis:
    html_lower = html.lower()
    styles_lower = styles.lower()

    section_count = len(soup.select('section, [class*="section"]'))
    h1_count = len(soup.find_all("h1"))
    h2_count = len(soup.find_all("h2"))
    has_hierarchy = h1_count >= 1 and h2_count >= h1_count
    uses_grid = "display: grid" in styles_lower or "display:grid" in styles_lower or bool(
        soup.select('[class*="grid"]')
    )
    uses_flex = "display: flex" in styles_lower or "display:flex" in styles_lower or bool(
        soup.select('[class*="flex"]')
    )
    patterns = [label for marker, label in LAYOUT_PATTERNS if marker in html_lower]

    issues = []
    if section_count < 3:
        issues.append("Page may lack visual structure (few sections)")
    if not uses_grid and not uses_flex:
        issues.append("Not using modern CSS layout (Grid/Flexbox)")
    if not has_hierarchy:
        issues.append("Heading hierarchy may need improvement")
    if not has_viewport:
        issues.append("Missing responsive viewport meta tag")

    return LayoutAnalysis(
        section_count=section_count,
        has_visual_hierarchy=has_hierarchy,
        uses_grid_system=uses_grid,
        uses_flexbox=uses_flex,
        has_responsive_design=has_viewport,
        layout_patterns=patterns,
        issues=issues,
    )


def _base_font_size(styles: str) -> Optional[float]:
    for block in BODY_RULE.findall(styles):
        size = _declaration(block, "font-size")
        if size:
            match = re.match(r"([\d.]+)px", size)
            if match:
                return float(match.group(1))
    return None


def analyze_mobile(soup: BeautifulSoup, styles: str) -> MobileAnalysis:
    """Mobile readiness score, starting at 100 and deducting per problem."""
    viewport = soup.find("meta", attrs={"name": "viewport"})
    viewport_content = viewport.get("content") if viewport else None
    has_media_queries = "@media" in styles.lower() or any(
        link.get("media") for link in soup.find_all("link", rel="stylesheet")
    )
    has_menu = bool(soup.select(MOBILE_MENU_SELECTOR))
    font_size = _base_font_size(styles)

    score = 100
    issues = []
    if not viewport:
        score -= 30
        issues.append("Missing viewport meta tag")
    if not has_media_queries:
        score -= 15
        issues.append("No CSS media queries detected")
    readable = font_size is None or font_size >= 16
    if not readable:
        score -= 10
        issues.append("Base font size may be too small for mobile (<16px)")
    if has_menu:
        score += 5

    return MobileAnalysis(
        has_viewport_meta=viewport is not None,
        viewport_content=viewport_content,
        has_mobile_menu=has_menu,
        has_media_queries=has_media_queries,
        font_size_base=font_size,
        is_readable_font_size=readable,
        mobile_score=max(0, min(100, score)),
        issues=issues,
    )


def analyze_design(page: FetchedPage) -> DesignQualityData:
    """Run every design check on a page.

    Returns the default (neutral) analysis if the page cannot be parsed.
    """
    try:
        soup = page.soup
        styles = _style_text(soup)
        scripts = _script_text(soup)
        mobile = analyze_mobile(soup, styles)
        return DesignQualityData(
            footer=analyze_footer(soup),
            url_analysis=analyze_url(page.final_url),
            color_analysis=analyze_colors(soup, styles),
            animation_analysis=analyze_animations(soup, page.html, styles, scripts),
            layout_analysis=analyze_layout(soup, page.html, styles, mobile.has_viewport_meta),
            mobile_analysis=mobile,
        )
    except Exception as e:
        logger.error(f"[Design] Analysis failed for {page.final_url}: {e}")
        return DesignQualityData()
