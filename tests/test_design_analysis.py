from bs4 import BeautifulSoup

from app.schemas.scraped import AnimationAnalysis
from app.services.design_analysis import (
    analyze_design,
    analyze_footer,
    analyze_url,
    calculate_creative_score,
    contrast_ratio,
    parse_color,
)
from app.services.page_fetcher import FetchedPage


def soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def test_footer_copyright_year_range_uses_latest_year():
    info = analyze_footer(soup("<footer>&copy; 2019 - 2023 Acme Inc.</footer>"), current_year=2026)
    assert info.has_footer is True
    assert info.footer_copyright_year == 2023
    assert info.years_outdated == 3


def test_footer_current_year():
    info = analyze_footer(soup("<div class='site-footer'>Copyright 2026 Acme</div>"), current_year=2026)
    assert info.footer_copyright_year == 2026
    assert info.is_current_year is True
    assert info.years_outdated == 0


def test_footer_outdated_year():
    info = analyze_footer(soup("<footer>2021 &copy; Acme</footer>"), current_year=2026)
    assert info.footer_copyright_year == 2021
    assert info.years_outdated == 5


def test_missing_footer():
    info = analyze_footer(soup("<main>No footer here</main>"), current_year=2026)
    assert info.has_footer is False
    assert info.footer_copyright_year is None


def test_clean_url():
    analysis = analyze_url("https://acme.example/products/blue-widget")
    assert analysis.is_clean_url is True
    assert analysis.uses_hyphens is True
    assert analysis.issues == []


def test_messy_url():
    analysis = analyze_url("https://acme.example/Products/Blue_Widget.php?id=3")
    assert analysis.is_clean_url is False
    assert analysis.has_file_extension is True
    assert analysis.is_lowercase is False
    assert "URL contains query parameters" in analysis.issues
    assert "URL uses underscores instead of hyphens" in analysis.issues


def test_parse_color():
    assert parse_color("#fff") == (255, 255, 255)
    assert parse_color("color: #1a2b3c") == (26, 43, 60)
    assert parse_color("rgba(10, 20, 30, 0.5)") == (10, 20, 30)
    assert parse_color("papayawhip") is None


def test_contrast_ratio_extremes():
    assert round(contrast_ratio((0, 0, 0), (255, 255, 255)), 1) == 21.0
    assert contrast_ratio((120, 120, 120), (120, 120, 120)) == 1.0


def test_creative_score_tiers_are_capped():
    plain = AnimationAnalysis(has_css_transitions=True, has_hover_effects=True)
    assert calculate_creative_score(plain) == 6

    showcase = AnimationAnalysis(
        animation_libraries=["GSAP", "Framer Motion", "Lottie", "ScrollTrigger", "Barba.js"],
        animation_count=20,
        has_webgl=True,
        three_d_libraries=["Three.js"],
        has_scroll_animations=True,
        has_parallax=True,
        has_page_transitions=True,
        has_css_animations=True,
        has_css_transitions=True,
        has_hover_effects=True,
        has_svg_animations=True,
    )
    assert calculate_creative_score(showcase) == 100


def test_analyze_design_detects_libraries():
    html = """<html><head>
      <meta name="viewport" content="width=device-width">
      <script src="https://cdn.example/gsap.min.js"></script>
      <script src="https://cdn.example/three.module.js"></script>
      <style>body { color: #222; background: #fff } .card:hover { transform: scale(1.02) }</style>
    </head><body><canvas></canvas><footer>&copy; 2026</footer></body></html>"""
    page = FetchedPage(
        url="https://acme.example/", final_url="https://acme.example/", status_code=200, html=html, load_time=100
    )

    design = analyze_design(page)

    animation = design.animation_analysis
    assert "GSAP" in animation.animation_libraries
    assert "Three.js" in animation.three_d_libraries
    assert animation.has_canvas is True
    assert animation.creative_score >= 25
    assert design.mobile_analysis.has_viewport_meta is True
