"""Pydantic schemas for data collected by the website scraper."""

from typing import List, Literal, Optional

from app.schemas.common import CamelModel


class TechnicalData(CamelModel):
    """Transport and head-level facts about the entry page."""

    final_url: str
    load_time: int
    status_code: int
    ssl: bool
    ssl_error: Optional[str] = None
    title: str = ""
    meta_description: str = ""
    mobile_viewport: bool = False
    favicon: bool = False
    favicon_url: Optional[str] = None
    og_image_url: Optional[str] = None
    logo_url: Optional[str] = None
    image_count: int = 0
    content_length: int = 0
    has_analytics: bool = False
    has_forms: bool = False
    broken_links: List[str] = []


class ContentData(CamelModel):
    """Visible content of the entry page."""

    h1: List[str] = []
    h2: List[str] = []
    body_text: str = ""
    cta_buttons: List[str] = []
    nav_links: List[str] = []
    social_links: List[str] = []
    emails: List[str] = []


class PageData(CamelModel):
    """Summary of one crawled page."""

    url: str
    path: str
    title: str = ""
    meta_description: str = ""
    h1: List[str] = []
    load_time: int = 0
    word_count: int = 0
    image_count: int = 0
    has_form: bool = False
    has_cta: bool = False


class SocialLink(CamelModel):
    platform: str
    url: str


class TrafficData(CamelModel):
    """Signals about how the site attracts and measures traffic."""

    has_google_analytics: bool = False
    has_gtm: bool = False
    other_analytics: List[str] = []
    pixels: List[str] = []
    has_sitemap: bool = False
    sitemap_page_count: Optional[int] = None
    has_robots_txt: bool = False
    robots_allows_crawling: bool = True
    has_structured_data: bool = False
    structured_data_types: List[str] = []
    canonical_tag: bool = False
    blog_exists: bool = False
    estimated_blog_posts: int = 0
    has_resources_section: bool = False
    social_links: List[SocialLink] = []
    meta_title: bool = False
    meta_title_length: int = 0
    meta_description: bool = False
    meta_description_length: int = 0
    h1_count: int = 0
    internal_link_count: int = 0
    external_link_count: int = 0


class ExtendedContentData(CamelModel):
    """Trust, content, conversion, social and business signals."""

    # Trust & Credibility
    has_testimonials: bool = False
    testimonial_count: int = 0
    has_team_page: bool = False
    has_case_studies: bool = False
    has_privacy_policy: bool = False
    has_terms_of_service: bool = False
    has_trust_badges: bool = False
    trust_badge_types: List[str] = []

    # Content Strategy
    has_blog: bool = False
    blog_post_count: int = 0
    has_resources_section: bool = False
    resource_types: List[str] = []

    # Conversion & Engagement
    has_lead_capture: bool = False
    lead_capture_types: List[str] = []
    has_email_signup: bool = False
    has_pricing_page: bool = False
    pricing_transparency: Literal["visible", "hidden", "contact-sales", "none"] = "none"
    cta_count: int = 0
    cta_types: List[str] = []

    # Social & Multimedia
    has_video_content: bool = False
    video_sources: List[str] = []
    video_count: int = 0
    has_podcast: bool = False
    social_profiles: List[SocialLink] = []

    # Business Overview
    has_about_page: bool = False
    has_contact_page: bool = False
    has_mission_statement: bool = False
    competitors_mentioned: List[str] = []
    target_audience_clarity: bool = False


class CopyrightInfo(CamelModel):
    has_footer: bool = False
    footer_copyright_year: Optional[int] = None
    is_current_year: bool = False
    years_outdated: int = 0


class UrlAnalysis(CamelModel):
    is_clean_url: bool = True
    has_proper_hierarchy: bool = True
    uses_hyphens: bool = False
    is_lowercase: bool = True
    has_file_extension: bool = False
    url_length: int = 0
    issues: List[str] = []


class ColorAnalysis(CamelModel):
    primary_colors: List[str] = []
    background_color: Optional[str] = None
    text_color: Optional[str] = None
    contrast_ratio: Optional[float] = None
    passes_wcag_aa: bool = True
    passes_wcag_aaa: bool = False
    color_count: int = 0
    has_consistent_palette: bool = True
    issues: List[str] = []


class AnimationAnalysis(CamelModel):
    has_animations: bool = False
    has_css_animations: bool = False
    has_css_transitions: bool = False
    has_js_animations: bool = False
    animation_libraries: List[str] = []
    three_d_libraries: List[str] = []
    animation_count: int = 0
    has_scroll_animations: bool = False
    has_hover_effects: bool = False
    has_canvas: bool = False
    has_webgl: bool = False
    has_svg_animations: bool = False
    has_parallax: bool = False
    has_page_transitions: bool = False
    has_3d: bool = False
    creative_score: int = 0
    is_high_craft: bool = False


class LayoutAnalysis(CamelModel):
    section_count: int = 0
    has_visual_hierarchy: bool = True
    uses_grid_system: bool = False
    uses_flexbox: bool = False
    has_responsive_design: bool = True
    layout_patterns: List[str] = []
    issues: List[str] = []


class MobileAnalysis(CamelModel):
    has_viewport_meta: bool = True
    viewport_content: Optional[str] = None
    has_mobile_menu: bool = False
    has_media_queries: bool = False
    font_size_base: Optional[float] = None
    is_readable_font_size: bool = True
    mobile_score: int = 70
    issues: List[str] = []


class DesignQualityData(CamelModel):
    """Static approximation of design polish.

    The defaults are what an analysis that could not run reports.
    """

    footer: CopyrightInfo = CopyrightInfo()
    url_analysis: UrlAnalysis = UrlAnalysis()
    color_analysis: ColorAnalysis = ColorAnalysis()
    animation_analysis: AnimationAnalysis = AnimationAnalysis()
    layout_analysis: LayoutAnalysis = LayoutAnalysis()
    mobile_analysis: MobileAnalysis = MobileAnalysis()


class ScrapedData(CamelModel):
    """Everything collected about a site in one scrape."""

    url: str
    technical: TechnicalData
    content: ContentData
    traffic: Optional[TrafficData] = None
    extended: Optional[ExtendedContentData] = None
    design: Optional[DesignQualityData] = None
    pages: List[PageData] = []
    scraped_at: str
