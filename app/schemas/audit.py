"""Pydantic schemas for audit results."""

from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from app.schemas.common import CamelModel
from app.services.pagespeed_service import PageSpeedResult


class Issue(CamelModel):
    severity: str = "info"
    title: str = ""
    description: str = ""
    impact: str = ""


class PassingItem(CamelModel):
    title: str = ""
    description: str = ""
    value: Optional[str] = None


class CategoryAnalysis(CamelModel):
    """Parsed model output for one category."""

    score: int
    issues: List[Issue] = []
    passing: List[PassingItem] = []
    recommendations: List[str] = []


class CategoryScore(CategoryAnalysis):
    name: str
    weight: float


class PageScores(CamelModel):
    technical: int
    content: int
    ux: int


class PageScore(CamelModel):
    url: str
    path: str
    title: Optional[str] = None
    overall_score: int
    scores: PageScores
    issues: List[Issue] = []
    passing: List[PassingItem] = []


class SiteSection(CamelModel):
    name: str
    path: str
    exists: bool = False
    description: str = ""


class WebsiteTypeAnalysis(CamelModel):
    primary_type: str
    confidence: int = 0
    characteristics: List[str] = []
    sub_type: Optional[str] = None


class WebsiteBrief(CamelModel):
    """Business context inferred for an audited site."""

    business_name: str = "Unknown"
    business_description: str = "No description available"
    target_audience: str = "General audience"
    industry: str = "Unknown"
    site_type: str = "Website"
    total_pages: Optional[int] = None
    website_type: Optional[WebsiteTypeAnalysis] = None
    site_structure: Optional[List[SiteSection]] = None

    def to_record(self) -> Dict:
        """Snake-case dict stored on the audit row."""
        record = {
            "business_name": self.business_name,
            "business_description": self.business_description,
            "target_audience": self.target_audience,
            "industry": self.industry,
            "site_type": self.site_type,
        }
        if self.total_pages:
            record["total_pages"] = self.total_pages
        return record


class TokenUsage(CamelModel):
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    estimated_cost: float = 0.0


class PageSpeedPair(CamelModel):
    mobile: Optional[PageSpeedResult] = None
    desktop: Optional[PageSpeedResult] = None


class AuditResult(CamelModel):
    """The complete report returned to clients."""

    id: UUID
    url: str
    overall_score: int
    categories: List[CategoryScore]
    summary: str
    scraped_at: datetime
    analyzed_at: datetime
    client_logo: Optional[str] = None
    brief: WebsiteBrief
    page_count: int = 0
    pages_analyzed: List[PageScore] = []
    best_page: Optional[PageScore] = None
    worst_page: Optional[PageScore] = None
    token_usage: Optional[TokenUsage] = None
    page_speed: Optional[PageSpeedPair] = None
