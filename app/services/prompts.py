"""Prompt builders for the audit analysis.

Every category prompt ends with the same JSON contract so the responses
can be parsed uniformly by ``AnalysisService``.
"""

from datetime import datetime
from typing import Any, Iterable, List, Optional

from app.schemas.scraped import ScrapedData

CATEGORY_RESPONSE_FORMAT = """Return a JSON object with:
- score: number 0-100
- issues: array of {severity: 'critical'|'warning'|'info', title: string, description: string, impact: string}
- passing: array of {title: string, description: string, value: string} - things the site does WELL
- recommendations: array of strings (specific, actionable fixes)

Be comprehensive. List every element checked as either an issue OR a passing item.
Return ONLY valid JSON, no markdown formatting or other text."""


def _join(values: Optional[Iterable[Any]], sep: str = ", ", empty: str = "None found") -> str:
    items = [str(v) for v in (values or []) if v]
    return sep.join(items) if items else empty


def _flag(value: Any, unknown: str = "Unknown") -> str:
    return unknown if value is None else str(value).lower() if isinstance(value, bool) else str(value)


def scope_context(data: ScrapedData) -> str:
    page_count = len(data.pages) or 1
    if page_count == 1:
        return (
            "IMPORTANT: This analysis is based on a SINGLE PAGE (the homepage/entry page).\n"
            'When reporting findings, say "this page" not "the site" - you cannot make claims '
            "about the entire site from one page."
        )
    return f"This analysis is based on {page_count} pages across the site, giving a broader view of the overall website."


def website_type_context(focus_areas: Optional[List[str]], best_practices: Optional[List[str]]) -> str:
    """Extra guidance appended when the audit targets a known website type."""
    if not focus_areas and not best_practices:
        return ""
    return f"""

## Website Type Guidance
Focus Areas: {_join(focus_areas, empty="None")}
Best Practices: {_join(best_practices, sep="; ", empty="None")}"""


def technical_prompt(data: ScrapedData) -> str:
    t = data.technical
    return f"""You are analyzing a website's technical foundation for WebCore Audit.

## Scope
{scope_context(data)}

## Website Data
URL: {data.url}
Final URL: {t.final_url}
Load Time: {t.load_time}ms
Status Code: {t.status_code}
SSL/HTTPS: {_flag(t.ssl)}
Mobile Viewport: {_flag(t.mobile_viewport)}
Has Favicon: {_flag(t.favicon)}
Image Count: {t.image_count}
Has Analytics: {_flag(t.has_analytics)}
Has Forms: {_flag(t.has_forms)}
Content Size: {round(t.content_length / 1024)}KB
Meta Title: {t.title or 'MISSING'}
Meta Description: {t.meta_description or 'MISSING'}

## Scoring Guidelines
- Load time under 3s = good, 3-5s = okay, over 5s = poor
- SSL is required (critical if missing)
- Mobile viewport is required (critical if missing)
- Meta title should be 50-60 characters
- Meta description should be 150-160 characters
- Analytics tracking is expected for business sites
- Favicon helps with branding and bookmarks

## Task
Analyze this data.
{CATEGORY_RESPONSE_FORMAT}"""


def brand_messaging_prompt(data: ScrapedData) -> str:
    t, c = data.technical, data.content
    return f"""You are analyzing a website's brand and messaging for WebCore Audit.

## Scope
{scope_context(data)}

## Website Data
URL: {data.url}
Page Title: {t.title or 'None'}
Meta Description: {t.meta_description or 'None'}

## Headlines Found
H1: {_join(c.h1, ' | ')}
H2: {_join(c.h2[:5], ' | ')}

## Homepage Copy (first 3000 chars)
{c.body_text[:3000] or 'No text extracted'}

## CTAs Found
{_join(c.cta_buttons)}

## Navigation Items
{_join(c.nav_links)}

## Scoring Guidelines
- Clear value proposition in H1 or first paragraph = critical
- Should answer: What do they do? For whom? Why does it matter?
- CTAs should be clear, specific and action-oriented
- Avoid generic copy like "Welcome" or "We are the best"
- Navigation should be intuitive and cover key pages

## Task
Analyze the messaging clarity, value proposition and brand consistency.
Reference actual text from the site in recommendations.
{CATEGORY_RESPONSE_FORMAT}"""


def user_experience_prompt(data: ScrapedData) -> str:
    t, c = data.technical, data.content
    design = data.design
    colors = design.color_analysis if design else None
    animation = design.animation_analysis if design else None
    layout = design.layout_analysis if design else None
    mobile = design.mobile_analysis if design else None

    return f"""You are analyzing a website's user experience for WebCore Audit.

## Scope
{scope_context(data)}

## Website Data
URL: {data.url}
Mobile Viewport: {_flag(t.mobile_viewport)}
Has Forms: {_flag(t.has_forms)}
Load Time: {t.load_time}ms

## Navigation
{_join(c.nav_links)}

## CTAs Found
{_join(c.cta_buttons)}

## Content Structure
H1 Count: {len(c.h1)}
H2 Count: {len(c.h2)}
Image Count: {t.image_count}

## Design Quality Analysis
### Color & Contrast
Primary Colors: {_join(colors.primary_colors if colors else None, empty='Not analyzed')}
Background: {(colors and colors.background_color) or 'Unknown'}
Text Color: {(colors and colors.text_color) or 'Unknown'}
Contrast Ratio: {(colors and colors.contrast_ratio) or 'Unknown'}
WCAG AA Compliant: {_flag(colors.passes_wcag_aa if colors else None)}
Color Count: {colors.color_count if colors else 'Unknown'}
Color Issues: {_join(colors.issues if colors else None, '; ', 'None')}

### Animations & Interactions
Animation Libraries: {_join(animation.animation_libraries if animation else None, empty='None')}
3D/WebGL Libraries: {_join(animation.three_d_libraries if animation else None, empty='None')}
CSS Animations: {_flag(animation.has_css_animations if animation else False)}
CSS Transitions: {_flag(animation.has_css_transitions if animation else False)}
Scroll Animations: {_flag(animation.has_scroll_animations if animation else False)}
Hover Effects: {_flag(animation.has_hover_effects if animation else False)}
Has WebGL: {_flag(animation.has_webgl if animation else False)}
Has Parallax Effects: {_flag(animation.has_parallax if animation else False)}
Has Page Transitions: {_flag(animation.has_page_transitions if animation else False)}
Creative Quality Score: {animation.creative_score if animation else 0}/100
Is High-Craft Creative: {_flag(animation.is_high_craft if animation else False)}

### Layout & Visual Flow
Section Count: {layout.section_count if layout else 'Unknown'}
Visual Hierarchy: {_flag(layout.has_visual_hierarchy if layout else None)}
Uses Grid System: {_flag(layout.uses_grid_system if layout else False)}
Uses Flexbox: {_flag(layout.uses_flexbox if layout else False)}
Layout Patterns Found: {_join(layout.layout_patterns if layout else None, empty='None detected')}
Layout Issues: {_join(layout.issues if layout else None, '; ', 'None')}

### Mobile Experience
Has Viewport Meta: {_flag(mobile.has_viewport_meta if mobile else None)}
Has Mobile Menu: {_flag(mobile.has_mobile_menu if mobile else None)}
Has Media Queries: {_flag(mobile.has_media_queries if mobile else None)}
Base Font Size: {f'{mobile.font_size_base}px' if mobile and mobile.font_size_base else 'Unknown'}
Mobile Score: {mobile.mobile_score if mobile else 'Unknown'}/100
Mobile Issues: {_join(mobile.issues if mobile else None, '; ', 'None')}

## Scoring Guidelines
CRITICAL: mobile viewport missing, very low contrast (<3:1), no transitions or animations at all.
WARNING: base font below 16px, too many colors (>15), missing visual hierarchy, no media queries.
POSITIVE: responsive viewport, AA contrast, smooth animations, modern layout patterns, mobile menu, hover effects.

## High-Craft Creative Sites
If the Creative Quality Score is 50+ or the site is high-craft, professional animation
tooling (GSAP, Framer Motion, Lottie), WebGL/3D and scroll-driven motion are intentional.
Do not penalize unconventional navigation or heavy animation on such sites; score them
in the 80-95 range when the combination suggests deliberate, high-quality motion design.

## Task
Analyze the user experience with emphasis on visual design, mobile experience and modern web practices.
{CATEGORY_RESPONSE_FORMAT}"""


def security_prompt(data: ScrapedData) -> str:
    t = data.technical
    return f"""You are analyzing a website's security basics for WebCore Audit.

## Scope
{scope_context(data)}

## Website Data
URL: {data.url}
Final URL: {t.final_url}
SSL/HTTPS: {_flag(t.ssl)}
SSL Certificate Error: {t.ssl_error or 'None'}
Has Forms: {_flag(t.has_forms)}
Status Code: {t.status_code}

## Scoring Guidelines
- SSL/HTTPS is mandatory (critical if missing)
- SSL certificate errors (expired, invalid) are CRITICAL; the score should be very low
- Forms without HTTPS are a major security risk
- Redirects from HTTP to HTTPS should be in place

## Task
Analyze the basic security posture. This is a surface-level check, not a penetration test.
{CATEGORY_RESPONSE_FORMAT}"""


def business_overview_prompt(data: ScrapedData) -> str:
    ext, c = data.extended, data.content
    return f"""You are analyzing a website's business overview for WebCore Audit.

## Scope
{scope_context(data)}

## Website Data
URL: {data.url}
Page Title: {data.technical.title or 'None'}

## Business Presence
Has About Page: {_flag(ext.has_about_page if ext else None)}
Has Contact Page: {_flag(ext.has_contact_page if ext else None)}
Has Mission Statement: {_flag(ext.has_mission_statement if ext else None)}
Target Audience Clarity: {_flag(ext.target_audience_clarity if ext else None)}

## Homepage Copy (first 2000 chars)
{c.body_text[:2000] or 'No text extracted'}

## Headlines
H1: {_join(c.h1, ' | ', 'None')}
H2: {_join(c.h2[:5], ' | ', 'None')}

## Navigation
{_join(c.nav_links)}

## Scoring Guidelines
CRITICAL: no clear indication of what the business does or who it serves, missing contact information.
WARNING: vague value proposition, no differentiation, missing about page, unclear target market.
POSITIVE: clear statement of what they do, obvious audience, visible contact details, clear business model.

## Task
Analyze the business clarity and positioning.
{CATEGORY_RESPONSE_FORMAT}"""


def traffic_readiness_prompt(data: ScrapedData) -> str:
    signals = data.traffic
    if signals is None:
        return (
            "You are analyzing a website's traffic readiness but no data was collected.\n"
            "Return a JSON object with score: 50, a warning issue about incomplete analysis, "
            "empty passing array, and a recommendation to retry.\nReturn ONLY valid JSON."
        )

    url = data.design.url_analysis if data.design else None
    sitemap = f"Yes ({signals.sitemap_page_count or 'unknown'} pages)" if signals.has_sitemap else "NOT FOUND"
    if not signals.has_robots_txt:
        robots = "NOT FOUND"
    else:
        robots = "Yes, allows crawling" if signals.robots_allows_crawling else "Yes, but blocks crawling"
    url_section = "URL analysis not available"
    if url:
        url_section = f"""Is Clean URL: {_flag(url.is_clean_url)}
Has Proper Hierarchy: {_flag(url.has_proper_hierarchy)}
Is Lowercase: {_flag(url.is_lowercase)}
Has File Extension: {_flag(url.has_file_extension)}
URL Length: {url.url_length} characters
URL Issues: {_join(url.issues, '; ', 'None')}"""

    return f"""You are analyzing a website's traffic readiness for WebCore Audit.

## Analytics & Tracking
Google Analytics: {'Installed' if signals.has_google_analytics else 'NOT DETECTED'}
Google Tag Manager: {'Installed' if signals.has_gtm else 'NOT DETECTED'}
Other Analytics: {_join(signals.other_analytics, empty='None')}
Marketing Pixels: {_join(signals.pixels, empty='None')}

## SEO Infrastructure
Sitemap.xml: {sitemap}
Robots.txt: {robots}
Structured Data: {_join(signals.structured_data_types, empty='None') if signals.has_structured_data else 'None'}
Canonical Tags: {'Yes' if signals.canonical_tag else 'No'}

## Content Volume
Blog/Articles Section: {f'Yes (~{signals.estimated_blog_posts} posts visible)' if signals.blog_exists else 'No'}
Resources Section: {'Yes' if signals.has_resources_section else 'No'}

## Social Presence
{_join((f'- {s.platform}' for s in signals.social_links), chr(10), '- No social links found')}

## On-Page SEO
Meta Title: {f'Yes ({signals.meta_title_length} chars)' if signals.meta_title else 'MISSING'}
Meta Description: {f'Yes ({signals.meta_description_length} chars)' if signals.meta_description else 'MISSING'}
H1 Tags: {signals.h1_count}
Internal Links: {signals.internal_link_count}
External Links: {signals.external_link_count}

## URL Structure
{url_section}

## Scoring Guidelines
CRITICAL: no analytics, no sitemap, missing meta title/description, URLs with file extensions.
WARNING: no blog, no social presence, no structured data, query parameters or underscores in URLs, URLs over 75 characters.
POSITIVE: multiple analytics tools, active blog, structured data, crawlable sitemap, clean lowercase URLs.

## Task
Analyze traffic readiness infrastructure. Focus on what they need to DO to be ready for traffic.
{CATEGORY_RESPONSE_FORMAT}"""


def content_strategy_prompt(data: ScrapedData) -> str:
    ext, c, t = data.extended, data.content, data.technical
    return f"""You are analyzing a website's content strategy for WebCore Audit.

## Scope
{scope_context(data)}

## Content Presence
Has Blog: {_flag(ext.has_blog if ext else None)}
Blog Post Count: {ext.blog_post_count if ext else 0}
Has Resources Section: {_flag(ext.has_resources_section if ext else None)}
Resource Types: {_join(ext.resource_types if ext else None, empty='None detected')}

## SEO Elements
Meta Title: {t.title or 'MISSING'}
Meta Description: {t.meta_description or 'MISSING'}
H1 Headlines: {_join(c.h1, ' | ', 'None')}
H2 Headlines: {_join(c.h2[:5], ' | ', 'None')}

## Homepage Content (first 2000 chars)
{c.body_text[:2000] or 'No text extracted'}

## Scoring Guidelines
CRITICAL: no visible content strategy, thin content, missing SEO fundamentals.
WARNING: blog with fewer than 5 posts, no downloadable resources, unfocused content.
POSITIVE: active blog, varied resources, SEO-optimized headlines, content addressing pain points.

## Task
Analyze content strategy maturity.
{CATEGORY_RESPONSE_FORMAT}"""


def conversion_engagement_prompt(data: ScrapedData) -> str:
    ext, c = data.extended, data.content
    cta_count = ext.cta_count if ext else len(c.cta_buttons)
    cta_types = (ext.cta_types if ext and ext.cta_types else None) or c.cta_buttons
    return f"""You are analyzing a website's conversion & engagement for WebCore Audit.

## Scope
{scope_context(data)}

## Lead Capture
Has Lead Capture: {_flag(ext.has_lead_capture if ext else None)}
Lead Capture Types: {_join(ext.lead_capture_types if ext else None, empty='None')}
Has Email Signup: {_flag(ext.has_email_signup if ext else None)}
Has Pricing Page: {_flag(ext.has_pricing_page if ext else None)}
Pricing Transparency: {ext.pricing_transparency if ext else 'Unknown'}

## CTAs
CTA Count: {cta_count}
CTA Types: {_join(cta_types, empty='None')}

## Forms
Has Forms: {_flag(data.technical.has_forms)}

## Navigation
{_join(c.nav_links, empty='None')}

## Scoring Guidelines
CRITICAL: no clear CTA on the homepage, no way to contact or engage.
WARNING: generic CTAs ("Submit", "Click here"), hidden pricing, no lead capture.
POSITIVE: specific CTAs, multiple conversion paths, visible pricing, newsletter signup, demo or trial option.

## Task
Analyze conversion optimization.
{CATEGORY_RESPONSE_FORMAT}"""


def social_multimedia_prompt(data: ScrapedData) -> str:
    ext, traffic = data.extended, data.traffic
    if ext and ext.social_profiles:
        profiles = "\n".join(f"- {s.platform}: {s.url}" for s in ext.social_profiles)
    elif traffic and traffic.social_links:
        profiles = "\n".join(f"- {s.platform}" for s in traffic.social_links)
    else:
        profiles = "No social links found"

    return f"""You are analyzing a website's social & multimedia presence for WebCore Audit.

## Scope
{scope_context(data)}

## Social Profiles
{profiles}

## Video Content
Has Video: {_flag(ext.has_video_content if ext else None)}
Video Count: {ext.video_count if ext else 0}
Video Sources: {_join(ext.video_sources if ext else None, empty='None')}

## Other Media
Has Podcast: {_flag(ext.has_podcast if ext else None)}
Image Count: {data.technical.image_count}

## Scoring Guidelines
CRITICAL: no social presence at all.
WARNING: no video content, few channels.
POSITIVE: active profiles on relevant platforms, embedded video, podcast or audio content.

## Task
Analyze social and multimedia strategy.
{CATEGORY_RESPONSE_FORMAT}"""


def trust_credibility_prompt(data: ScrapedData, current_year: Optional[int] = None) -> str:
    ext = data.extended
    footer = data.design.footer if data.design else None
    current_year = current_year or datetime.now().year
    return f"""You are analyzing a website's trust & credibility for WebCore Audit.

## Scope
{scope_context(data)}

## Trust Elements
Has Testimonials: {_flag(ext.has_testimonials if ext else None)}
Testimonial Count: {ext.testimonial_count if ext else 0}
Has Case Studies: {_flag(ext.has_case_studies if ext else None)}
Has Team Page: {_flag(ext.has_team_page if ext else None)}

## Legal & Compliance
Has Privacy Policy: {_flag(ext.has_privacy_policy if ext else None)}
Has Terms of Service: {_flag(ext.has_terms_of_service if ext else None)}
SSL/HTTPS: {_flag(data.technical.ssl)}

## Trust Badges
Has Trust Badges: {_flag(ext.has_trust_badges if ext else None)}
Badge Types: {_join(ext.trust_badge_types if ext else None, empty='None')}

## Contact
Has Contact Page: {_flag(ext.has_contact_page if ext else None)}
Has About Page: {_flag(ext.has_about_page if ext else None)}

## Website Freshness
Has Footer: {_flag(footer.has_footer if footer else None)}
Footer Copyright Year: {(footer and footer.footer_copyright_year) or 'Not found'}
Current Year: {current_year}
Years Outdated: {footer.years_outdated if footer else 0}

## Scoring Guidelines
CRITICAL: no HTTPS, no privacy policy, no contact information, copyright 3+ years outdated.
WARNING: no testimonials, no team information, no terms, copyright 1-2 years outdated.
POSITIVE: testimonials, case studies, real team, trust badges, current copyright year ({current_year}).

## Task
Analyze trust and credibility signals. An outdated copyright year is a SIGNIFICANT trust issue.
{CATEGORY_RESPONSE_FORMAT}"""


def website_brief_prompt(data: ScrapedData) -> str:
    t, c, ext = data.technical, data.content, data.extended
    animation = data.design.animation_analysis if data.design else None
    has_blog = ext.has_blog if ext else (data.traffic.blog_exists if data.traffic else None)
    return f"""You are analyzing a website to create a brief summary for WebCore Audit.

## Website Data
URL: {data.url}
Title: {t.title or 'Unknown'}
Meta Description: {t.meta_description or 'None'}
Navigation Links: {_join(c.nav_links, empty='Unknown')}
Main Headings (H1): {_join(c.h1, ' | ', 'Unknown')}
Section Headings (H2): {_join(c.h2[:5], ' | ', 'Unknown')}
CTA Buttons: {_join(c.cta_buttons, empty='None')}
Has Pricing Page: {_flag(ext.has_pricing_page if ext else None)}
Has Blog: {_flag(has_blog)}
Has About Page: {_flag(ext.has_about_page if ext else None)}
Has Case Studies: {_flag(ext.has_case_studies if ext else None)}
Has Contact Page: {_flag(ext.has_contact_page if ext else None)}

## Creative/Animation Detection
Creative Quality Score: {animation.creative_score if animation else 0}/100
Is High-Craft Creative Site: {_flag(animation.is_high_craft if animation else False)}
Animation Libraries Detected: {_join(animation.animation_libraries if animation else None, empty='None')}
3D/WebGL Libraries: {_join(animation.three_d_libraries if animation else None, empty='None')}

If the Creative Score is 50+ or premium animation or 3D libraries are present, the site is
likely "Creative/Immersive"; classify it so with high confidence.

## Task
Extract key business information, inferring from the available data.

Return a JSON object with:
- businessName: string
- businessDescription: string (1-2 sentences)
- targetAudience: string (be specific about WHO the site is for)
- industry: string
- siteType: one of "SaaS", "Agency", "E-commerce", "Portfolio", "Blog", "Corporate", "Non-profit", "Local Business", "Marketplace", "Service Provider", "Creative/Immersive"
- websiteType: {{primaryType: string, confidence: number 0-100, characteristics: array of 3-5 strings, subType: string}}
- siteStructure: array of {{name: string, path: string, exists: boolean, description: string}} for sections detected in navigation or content

Return ONLY valid JSON, no markdown formatting."""


def executive_summary_prompt(data: ScrapedData, categories: List[Any]) -> str:
    """Prompt for the 2-3 sentence summary.

    ``categories`` are objects with name, score, weight and issues.
    """
    total_weight = sum(c.weight for c in categories) or 1
    overall = round(sum(c.score * c.weight for c in categories) / total_weight)
    critical = [i for c in categories for i in c.issues if i.severity == "critical"][:3]
    top = max(categories, key=lambda c: c.score)

    scores = "\n".join(f"- {c.name}: {c.score}/100" for c in categories)
    critical_text = (
        "\n".join(f"- {i.title}: {i.description}" for i in critical)
        if critical else "- No critical issues found"
    )

    return f"""Write a 2-3 sentence executive summary for a website audit report.

Website: {data.url}
Overall Score: {overall}/100

Category Scores:
{scores}

Top Strength: {top.name} ({top.score}/100)

Critical Issues:
{critical_text}

Write a professional, direct summary that states the overall assessment,
highlights the biggest strength and calls out the most important issue to fix.
No fluff or generic statements.
Return only the summary text, no JSON or formatting."""


# Category display name -> prompt builder
CATEGORY_PROMPTS = {
    "Business Overview": business_overview_prompt,
    "Technical Foundation": technical_prompt,
    "Brand & Messaging": brand_messaging_prompt,
    "User Experience": user_experience_prompt,
    "Traffic Readiness": traffic_readiness_prompt,
    "Security": security_prompt,
    "Content Strategy": content_strategy_prompt,
    "Conversion & Engagement": conversion_engagement_prompt,
    "Social & Multimedia": social_multimedia_prompt,
    "Trust & Credibility": trust_credibility_prompt,
}
