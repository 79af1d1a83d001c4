import json

from app.schemas.audit import CategoryScore
from app.schemas.scraped import ContentData, PageData, ScrapedData, TechnicalData
from app.services.analysis_service import (
    BRIEF_MAX_TOKENS,
    DEFAULT_SUMMARY,
    SUMMARY_MAX_TOKENS,
    AnalysisService,
    calculate_ux_boost,
    category_db_key,
    fallback_brief,
    parse_category_response,
    score_page,
    weighted_score,
)
from app.services.anthropic_service import AnthropicResponse


def make_scraped(**technical) -> ScrapedData:
    technical.setdefault("final_url", "https://acme.example/")
    technical.setdefault("load_time", 900)
    technical.setdefault("status_code", 200)
    technical.setdefault("ssl", True)
    return ScrapedData(
        url="https://acme.example",
        technical=TechnicalData(**technical),
        content=ContentData(h1=["Acme widgets"], body_text="We make widgets."),
        scraped_at="2026-10-19T10:00:00+00:00",
    )


class FakeClaude:
    """Answers brief, category and summary prompts with canned text."""

    def __init__(self, category_text: str, brief_text: str = "", summary_text: str = "All good."):
        self.category_text = category_text
        self.brief_text = brief_text
        self.summary_text = summary_text
        self.prompts = []

    async def create_message(self, prompt: str, max_tokens: int = 1500, **kwargs) -> AnthropicResponse:
        self.prompts.append(prompt)
        if max_tokens == BRIEF_MAX_TOKENS:
            text = self.brief_text
        elif max_tokens == SUMMARY_MAX_TOKENS:
            text = self.summary_text
        else:
            text = self.category_text
        return AnthropicResponse(text=text, tokens_input=100, tokens_output=50, model="test")


def test_parse_category_response_unwraps_code_fence():
    text = 'Here you go:\n```json\n{"score": 104, "issues": [], "passing": [], "recommendations": ["Add HSTS"]}\n```'
    analysis = parse_category_response(text)
    assert analysis.score == 100
    assert analysis.recommendations == ["Add HSTS"]


def test_parse_category_response_falls_back_on_garbage():
    analysis = parse_category_response("I could not analyze this site.")
    assert analysis.score == 50
    assert analysis.issues[0].title == "Analysis Incomplete"
    assert analysis.recommendations == ["Manual review recommended"]


def test_ux_boost():
    assert calculate_ux_boost(20, False) == 0
    assert calculate_ux_boost(45, False) == 10
    assert calculate_ux_boost(65, False) == 15
    assert calculate_ux_boost(10, True, visual_score=85) == 25
    assert calculate_ux_boost(10, True) == 0


def test_weighted_score():
    categories = [
        CategoryScore(name="Technical Foundation", score=80, weight=1.2),
        CategoryScore(name="Social & Multimedia", score=30, weight=0.6),
    ]
    assert weighted_score(categories) == 63
    assert weighted_score([]) == 0


def test_category_db_key():
    assert category_db_key("Brand & Messaging") == "brand___messaging"
    assert category_db_key("Security") == "security"


def test_score_page():
    page = PageData(
        url="https://acme.example/pricing",
        path="/pricing",
        title="Pricing plans for teams of every size | Acme",
        meta_description="x" * 130,
        h1=["Pricing"],
        load_time=1200,
        word_count=450,
        has_cta=True,
        has_form=True,
    )
    scored = score_page(page)
    assert scored.overall_score == 100
    assert scored.scores.technical == 80
    assert scored.scores.content == 80
    assert scored.scores.ux == 100


def test_fallback_brief_uses_title_prefix():
    brief = fallback_brief(make_scraped(title="Acme Widgets | Home", meta_description="Widgets for all"))
    assert brief.business_name == "Acme Widgets"
    assert brief.business_description == "Widgets for all"


async def test_run_pipeline_scores_selected_categories_and_streams_events():
    claude = FakeClaude(
        category_text=json.dumps({"score": 70, "issues": [], "passing": [], "recommendations": []}),
        brief_text=json.dumps({"businessName": "Acme", "industry": "Manufacturing"}),
    )
    events = []

    async def emit(event, payload):
        events.append((event, payload))

    result = await AnalysisService(client=claude).run_pipeline(
        make_scraped(),
        category_names=["Technical Foundation", "Security"],
        weights={"Security": 2.0},
        focus_areas=["Product pages"],
        emit=emit,
        batch_delay=0,
    )

    assert [c.name for c in result.categories] == ["Technical Foundation", "Security"]
    assert result.categories[1].weight == 2.0
    assert result.overall_score == 70
    assert result.brief.business_name == "Acme"
    assert result.summary == "All good."
    assert result.token_usage.input_tokens == 400
    assert result.token_usage.output_tokens == 200
    assert result.token_usage.estimated_cost == 0.0042

    names = [event for event, _ in events]
    assert names.count("category") == 2
    assert "brief" in names
    assert "pages" in names
    assert any("Product pages" in prompt for prompt in claude.prompts)


async def test_run_pipeline_survives_failing_model():
    class BrokenClaude:
        async def create_message(self, prompt, max_tokens=1500, **kwargs):
            raise RuntimeError("overloaded")

    result = await AnalysisService(client=BrokenClaude()).run_pipeline(
        make_scraped(title="Acme - Widgets"),
        category_names=["Security"],
        batch_delay=0,
    )

    assert result.categories[0].score == 50
    assert result.summary == DEFAULT_SUMMARY
    assert result.brief.business_name == "Acme"
