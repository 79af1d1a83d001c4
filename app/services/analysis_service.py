"""Audit analysis: category scoring, website brief and executive summary.

``AnalysisService.run_pipeline`` is shared by the one-shot test audit and
the streaming audit. When an ``emit`` callback is supplied, progress is
reported as it happens.
"""

import asyncio
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple
from uuid import UUID, uuid4

from pydantic import ValidationError

from app.core.pricing import CATEGORY_MAP, CATEGORY_WEIGHTS
from app.schemas.audit import (
    AuditResult,
    CategoryAnalysis,
    CategoryScore,
    Issue,
    PageScore,
    PageScores,
    PageSpeedPair,
    PassingItem,
    TokenUsage,
    WebsiteBrief,
)
from app.schemas.scraped import PageData, ScrapedData
from app.services.anthropic_service import AnthropicResponse, AnthropicService, anthropic_service
from app.services.page_crawler import calculate_page_score
from app.services.prompts import (
    CATEGORY_PROMPTS,
    executive_summary_prompt,
    website_brief_prompt,
    website_type_context,
)

logger = logging.getLogger(__name__)

Emit = Callable[[str, Dict[str, Any]], Awaitable[None]]

BATCH_SIZE = 3
CATEGORY_MAX_TOKENS = 1500
BRIEF_MAX_TOKENS = 500
SUMMARY_MAX_TOKENS = 300

UX_CATEGORY = "User Experience"
DEFAULT_SUMMARY = "Audit complete. Review the detailed findings below."

CODE_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class TokenTracker:
    """Accumulates token usage across the calls of one audit."""

    # Claude Sonnet: $3 per 1M input tokens, $15 per 1M output tokens
    INPUT_COST_PER_MILLION = 3
    OUTPUT_COST_PER_MILLION = 15

    def __init__(self):
        self.input_tokens = 0
        self.output_tokens = 0

    def add(self, response: AnthropicResponse) -> None:
        self.input_tokens += response.tokens_input
        self.output_tokens += response.tokens_output

    def usage(self) -> TokenUsage:
        cost = (
            self.input_tokens * self.INPUT_COST_PER_MILLION
            + self.output_tokens * self.OUTPUT_COST_PER_MILLION
        ) / 1_000_000
        return TokenUsage(
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            total_tokens=self.input_tokens + self.output_tokens,
            estimated_cost=round(cost, 4),
        )


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """First JSON object in a model response, unwrapping a code fence."""
    fence = CODE_FENCE.search(text)
    if fence:
        text = fence.group(1)
    match = JSON_OBJECT.search(text)
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def parse_category_response(text: str) -> CategoryAnalysis:
    """Turn a category response into an analysis, never raising."""
    parsed = extract_json_object(text)
    if parsed is not None:
        try:
            score = parsed.get("score") or 50
            return CategoryAnalysis(
                score=min(100, max(0, round(float(score)))),
                issues=parsed.get("issues") if isinstance(parsed.get("issues"), list) else [],
                passing=parsed.get("passing") if isinstance(parsed.get("passing"), list) else [],
                recommendations=(
                    [str(r) for r in parsed["recommendations"]]
                    if isinstance(parsed.get("recommendations"), list) else []
                ),
            )
        except (TypeError, ValueError, ValidationError):
            pass

    logger.error(f"[Analysis] Failed to parse AI response: {text[:500]}")
    return CategoryAnalysis(
        score=50,
        issues=[
            Issue(
                severity="info",
                title="Analysis Incomplete",
                description="AI analysis could not be fully parsed",
                impact="Some insights may be missing",
            )
        ],
        passing=[],
        recommendations=["Manual review recommended"],
    )


def default_analysis() -> CategoryAnalysis:
    """Result used when a category call fails outright."""
    return CategoryAnalysis(score=50, recommendations=["Analysis could not be completed"])


def fallback_brief(data: ScrapedData) -> WebsiteBrief:
    """Brief built from page metadata when the model call fails."""
    title = data.technical.title or ""
    business_name = re.split(r"[-|–]", title)[0].strip() if title else ""
    return WebsiteBrief(
        business_name=business_name or "Unknown",
        business_description=data.technical.meta_description or "No description available",
        target_audience="Not determined",
        industry="Unknown",
        site_type="Website",
        total_pages=data.traffic.sitemap_page_count if data.traffic else None,
    )


def calculate_ux_boost(creative_score: int, is_high_craft: bool, visual_score: int = 0) -> int:
    """Points added to User Experience for sophisticated motion design."""
    if not (is_high_craft or creative_score >= 40):
        return 0
    if visual_score >= 80:
        return 25
    if visual_score >= 60 or creative_score >= 60:
        return 15
    if creative_score >= 40:
        return 10
    return 0


def weighted_score(categories: List[CategoryScore]) -> int:
    total_weight = sum(c.weight for c in categories)
    if not total_weight:
        return 0
    return round(sum(c.score * c.weight for c in categories) / total_weight)


def score_page(page: PageData) -> PageScore:
    """Overall and per-area score for one crawled page."""
    if page.load_time < 3000:
        technical = 80
    elif page.load_time < 5000:
        technical = 60
    else:
        technical = 40

    if page.word_count >= 300:
        content = 80
    elif page.word_count >= 100:
        content = 60
    else:
        content = 40

    ux = (40 if page.has_cta else 0) + (30 if len(page.h1) == 1 else 15) + (30 if page.has_form else 0)

    return PageScore(
        url=page.url,
        path=page.path,
        title=page.title or None,
        overall_score=calculate_page_score(page),
        scores=PageScores(technical=technical, content=content, ux=ux),
    )


def score_pages(pages: List[PageData]) -> Tuple[List[PageScore], Optional[PageScore], Optional[PageScore]]:
    """Page scores plus the best and worst page."""
    scored = [score_page(page) for page in pages]
    ranked = sorted(scored, key=lambda p: p.overall_score, reverse=True)
    if not ranked:
        return scored, None, None
    return scored, ranked[0], ranked[-1]


def category_db_key(name: str) -> str:
    """Key used for a category in ``audits.category_scores``."""
    return re.sub(r"[^a-z]", "_", name.lower())


class AnalysisService:
    """Runs the LLM side of an audit."""

    def __init__(self, client: Optional[AnthropicService] = None):
        """Initialize the analysis service.

        Args:
            client: Anthropic client; the shared one by default.
        """
        self.client = client or anthropic_service

    async def analyze_category(self, prompt: str, tracker: TokenTracker) -> CategoryAnalysis:
        """Score one category.

        Raises:
            httpx.HTTPError: If the API call fails after rate-limit retries.
        """
        response = await self.client.create_message(prompt, max_tokens=CATEGORY_MAX_TOKENS)
        tracker.add(response)
        return parse_category_response(response.text)

    async def generate_brief(self, data: ScrapedData, tracker: TokenTracker) -> WebsiteBrief:
        """Business context for the site, falling back to page metadata."""
        logger.info("[Analysis] Generating website brief...")
        total_pages = data.traffic.sitemap_page_count if data.traffic else None
        try:
            response = await self.client.create_message(
                website_brief_prompt(data), max_tokens=BRIEF_MAX_TOKENS
            )
            tracker.add(response)
            parsed = extract_json_object(response.text)
            if parsed is None:
                raise ValueError("No JSON found")
            return WebsiteBrief(
                business_name=parsed.get("businessName") or "Unknown",
                business_description=parsed.get("businessDescription") or "No description available",
                target_audience=parsed.get("targetAudience") or "General audience",
                industry=parsed.get("industry") or "Unknown",
                site_type=parsed.get("siteType") or "Website",
                total_pages=total_pages,
                website_type=parsed.get("websiteType") or None,
                site_structure=parsed.get("siteStructure") or None,
            )
        except Exception as e:
            logger.error(f"[Analysis] Failed to generate website brief: {e}")
            return fallback_brief(data)

    async def generate_summary(
        self,
        data: ScrapedData,
        categories: List[CategoryScore],
        tracker: TokenTracker,
    ) -> str:
        if not categories:
            return DEFAULT_SUMMARY
        try:
            response = await self.client.create_message(
                executive_summary_prompt(data, categories), max_tokens=SUMMARY_MAX_TOKENS
            )
        except Exception as e:
            logger.error(f"[Analysis] Summary generation failed: {e}")
            return DEFAULT_SUMMARY
        tracker.add(response)
        return response.text.strip() or DEFAULT_SUMMARY

    async def _score_category(
        self,
        name: str,
        data: ScrapedData,
        tracker: TokenTracker,
        extra_context: str,
    ) -> CategoryAnalysis:
        prompt = CATEGORY_PROMPTS[name](data) + extra_context
        try:
            return await self.analyze_category(prompt, tracker)
        except Exception as e:
            logger.error(f"[Analysis] {name} failed: {e}")
            return default_analysis()

    async def run_pipeline(
        self,
        data: ScrapedData,
        category_names: Optional[List[str]] = None,
        weights: Optional[Dict[str, float]] = None,
        focus_areas: Optional[List[str]] = None,
        best_practices: Optional[List[str]] = None,
        page_speed: Optional[PageSpeedPair] = None,
        emit: Optional[Emit] = None,
        batch_delay: float = 1.0,
        audit_id: Optional[UUID] = None,
        scraped_at: Optional[datetime] = None,
    ) -> AuditResult:
        """Analyze scraped data into a complete audit result.

        Args:
            data: Output of the scraper.
            category_names: Display names to analyze; all when None.
            weights: Per-category weight overrides (e.g. from a website type).
            focus_areas: Website-type focus areas added to every prompt.
            best_practices: Website-type best practices added to every prompt.
            page_speed: PageSpeed results to attach to the report.
            emit: Optional async callback receiving (event, payload).
            batch_delay: Seconds to wait between category batches.
            audit_id: Id of the audit record, if one exists.
            scraped_at: When the scrape started.

        Returns:
            The AuditResult.
        """
        scraped_at = scraped_at or datetime.now(timezone.utc)
        tracker = TokenTracker()
        names = category_names if category_names is not None else list(CATEGORY_MAP.values())
        names = [name for name in names if name in CATEGORY_PROMPTS]
        weights = {**CATEGORY_WEIGHTS, **(weights or {})}
        extra_context = website_type_context(focus_areas, best_practices)

        async def send(event: str, payload: Dict[str, Any]) -> None:
            if emit is not None:
                await emit(event, payload)

        logger.info(f"[Analysis] Starting analysis for {len(names)} categories: {data.url}")

        brief_task = asyncio.ensure_future(self.generate_brief(data, tracker))
        if emit is not None:
            await send("status", {"phase": "brief", "message": "Analyzing business profile...", "progress": 35})
            brief = await brief_task
            await send("brief", brief.model_dump(by_alias=True, mode="json"))

        animation = data.design.animation_analysis if data.design else None
        creative_score = animation.creative_score if animation else 0
        is_high_craft = animation.is_high_craft if animation else False
        ux_boost = calculate_ux_boost(creative_score, is_high_craft)
        if ux_boost:
            logger.info(
                f"[Analysis] High-craft creative site detected. Creative score: {creative_score}, UX boost: {ux_boost}"
            )

        await send("status", {
            "phase": "analyzing",
            "message": f"Starting analysis of {len(names)} categories...",
            "progress": 40,
            "current": 0,
            "total": len(names),
        })

        categories: List[CategoryScore] = []
        batches = [names[i:i + BATCH_SIZE] for i in range(0, len(names), BATCH_SIZE)]
        for index, batch in enumerate(batches):
            logger.info(f"[Analysis] Batch {index + 1}/{len(batches)}: {', '.join(batch)}")
            results = await asyncio.gather(
                *(self._score_category(name, data, tracker, extra_context) for name in batch)
            )

            for name, result in zip(batch, results):
                score = result.score
                passing = list(result.passing)
                if name == UX_CATEGORY and ux_boost:
                    score = min(100, score + ux_boost)
                    passing.append(PassingItem(
                        title="High-Craft Creative Design",
                        description=(
                            "This site demonstrates sophisticated animation and interaction design "
                            f"(Creative Score: {creative_score}/100)"
                        ),
                        value="Creative/Immersive",
                    ))

                category = CategoryScore(
                    name=name,
                    score=score,
                    weight=weights.get(name, 1.0),
                    issues=result.issues,
                    passing=passing,
                    recommendations=result.recommendations,
                )
                categories.append(category)
                logger.info(f"[Analysis] Category complete: {name}, score: {score}")

                await send("category", {
                    "category": category.model_dump(by_alias=True, mode="json"),
                    "runningScore": weighted_score(categories),
                })
                await send("status", {
                    "phase": "analyzing",
                    "message": f"Analyzed {name}",
                    "progress": 40 + round(len(categories) / len(names) * 55),
                    "current": len(categories),
                    "total": len(names),
                })

            if index < len(batches) - 1:
                await asyncio.sleep(batch_delay)

        brief = await brief_task
        overall_score = weighted_score(categories)

        pages_analyzed, best_page, worst_page = score_pages(data.pages)
        await send("pages", {
            "pagesAnalyzed": [p.model_dump(by_alias=True, mode="json") for p in pages_analyzed],
            "bestPage": best_page.model_dump(by_alias=True, mode="json") if best_page else None,
            "worstPage": worst_page.model_dump(by_alias=True, mode="json") if worst_page else None,
        })

        await send("status", {"phase": "summary", "message": "Generating executive summary..."})
        summary = await self.generate_summary(data, categories, tracker)

        token_usage = tracker.usage()
        logger.info(
            f"[Analysis] Overall score: {overall_score}. Token usage: {token_usage.input_tokens} input, "
            f"{token_usage.output_tokens} output, ${token_usage.estimated_cost:.4f} estimated cost"
        )

        return AuditResult(
            id=audit_id or uuid4(),
            url=data.url,
            overall_score=overall_score,
            categories=categories,
            summary=summary,
            scraped_at=scraped_at,
            analyzed_at=datetime.now(timezone.utc),
            client_logo=data.technical.logo_url,
            brief=brief,
            page_count=len(pages_analyzed),
            pages_analyzed=pages_analyzed,
            best_page=best_page,
            worst_page=worst_page,
            token_usage=token_usage,
            page_speed=page_speed,
        )

    async def analyze_website(
        self,
        data: ScrapedData,
        selected_categories: Optional[List[str]] = None,
        **kwargs: Any,
    ) -> AuditResult:
        """One-shot analysis without progress events.

        Args:
            data: Output of the scraper.
            selected_categories: Display names to analyze; all when None.
        """
        return await self.run_pipeline(data, category_names=selected_categories, **kwargs)


analysis_service = AnalysisService()
