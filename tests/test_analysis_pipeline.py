"""
Unit Tests for MarketAnalysisPipeline

Tests the report flows with in-memory doubles: mock embeddings, the
in-memory store and a canned-answer generator.

STAFF ENGINEER PATTERNS:
------------------------
1. Every collaborator injected, no network
2. Assert on the prompt the generator received, not just the result
3. Missing sections degrade to sentinels instead of raising
"""

import pytest

from job_insights_pipeline.analysis import MarketAnalysisPipeline, create_pipeline
from job_insights_pipeline.analysis.pipeline import ALL_SKILLS_COVERED
from job_insights_pipeline.config import PipelineSettings
from job_insights_pipeline.context import NO_DATA_SENTINEL
from job_insights_pipeline.core import EmptyInputError, NotFoundError, ProviderError
from job_insights_pipeline.embeddings import MockEmbeddings
from job_insights_pipeline.generation import MockGenerator
from job_insights_pipeline.indexing import DocumentIndexer
from job_insights_pipeline.reports import (
    DEEP_DIVE_MARKER,
    INTERVIEW_QUESTIONS_MARKER,
    MarketAnalysis,
    StatItem,
)
from job_insights_pipeline.retrieval import Document, InMemoryVectorStore, Retriever


# ---------------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------------

DOCS = [
    Document(
        id="https://jobs.example/1",
        body="Python backend engineer building APIs with FastAPI and PostgreSQL.",
        title="Backend Engineer",
        organization="Acme",
        location="Central, Hong Kong",
    ),
    Document(
        id="https://jobs.example/2",
        body="Data engineer: Spark, Airflow and Python on AWS.",
        title="Data Engineer",
        organization="Acme",
        location="Quarry Bay, Hong Kong",
    ),
    Document(
        id="https://jobs.example/3",
        body="Frontend developer with React and TypeScript.",
        title="Frontend Developer",
        organization="Globex",
        location="Central",
    ),
    Document(
        id="https://jobs.example/4",
        body="Failed to fetch description",
        title="Platform Engineer",
        organization="Initech",
        location="Kowloon Bay, Kowloon",
    ),
]

ANSWER = """1. Common Tech Stack:
Python (~70%)

2. Suggested Project Ideas:
1. **API Gateway:** Build one.

3. Job Prioritization (based on query & potential):
1. [Backend Engineer](https://jobs.example/1)

4. Experience Level Summary:
3-5 years.

5. Overall Market Insights:
Steady demand.

6. Detailed Market Trends & Insights:
* Cloud skills.
"""

DEEP_DIVE_ANSWER = f"""{DEEP_DIVE_MARKER}

1.  **Core Responsibilities:**
*   Build APIs

2.  **Key Challenges / Problems to Solve:**
*   Scaling

3.  **Skill Requirements Breakdown:**
*   Python

4.  **Company Culture Clues (if any):**
*   None stated

5.  **Potential Red Flags or Ambiguities:**
*   Vague scope

6.  **Questions to Ask the Hiring Manager:**
*   Team size?
"""


@pytest.fixture
def embeddings():
    return MockEmbeddings(dimensions=16)


@pytest.fixture
async def store(embeddings):
    store = InMemoryVectorStore()
    await DocumentIndexer(embeddings, store, batch_size=2).index(DOCS)
    return store


@pytest.fixture
def generator():
    return MockGenerator(response=ANSWER)


@pytest.fixture
def pipeline(embeddings, store, generator):
    return MarketAnalysisPipeline(Retriever(embeddings, store), generator)


# ---------------------------------------------------------------------------
# ANALYZE
# ---------------------------------------------------------------------------


class TestAnalyze:
    """Test the market analysis report."""

    async def test_sections_parsed(self, pipeline):
        analysis = await pipeline.analyze("python engineer", documents=DOCS)

        assert analysis.query == "python engineer"
        assert analysis.common_stack == "Python (~70%)"
        assert analysis.job_prioritization == "1. [Backend Engineer](https://jobs.example/1)"
        assert analysis.detailed_trends == "* Cloud skills."
        assert analysis.competitive_landscape is None
        assert len(analysis.parsed_sections) == 6

    async def test_only_usable_documents_in_context(self, pipeline, generator):
        await pipeline.analyze("python engineer", documents=DOCS)

        prompt = generator.prompts[0]
        assert "https://jobs.example/1" in prompt
        assert "https://jobs.example/4" not in prompt
        assert "(Processed: 3)" in prompt

    async def test_stats_cover_every_listing(self, pipeline):
        analysis = await pipeline.analyze("python engineer", documents=DOCS)

        assert [(s.name, s.count) for s in analysis.top_companies][0] == ("Acme", 2)
        assert analysis.top_locations[0].name == "Central"
        assert len(analysis.job_listings) == 4
        assert "4 listings" in analysis.analysis_disclaimer
        assert "3 successfully fetched" in analysis.analysis_disclaimer

    async def test_fallback_snippet_for_failed_scrape(self, pipeline):
        analysis = await pipeline.analyze("python engineer", documents=DOCS)

        listing = analysis.job_listings[3]
        assert listing.snippet.startswith("Company: Initech | Location: Kowloon Bay")
        assert "(Description fetch issues)" in listing.snippet
        assert len(listing.snippet) <= 150

    async def test_retrieves_when_no_documents_given(self, pipeline, generator):
        analysis = await pipeline.analyze("python engineer", k=2)

        assert len(analysis.job_listings) == 2
        assert "(Processed: 2)" in generator.prompts[0]

    async def test_resume_adds_landscape(self, pipeline, generator):
        generator.response = ANSWER + (
            "\n7. Competitive Landscape Analysis (Resume vs. Market):\nStrong fit.\n"
        )

        analysis = await pipeline.analyze(
            "python engineer", documents=DOCS, resume_text="Five years of Python."
        )

        assert analysis.competitive_landscape == "Strong fit."
        assert "Five years of Python." in generator.prompts[0]
        assert "based on your resume" in generator.prompts[0]

    async def test_missing_landscape_sentinel(self, pipeline):
        analysis = await pipeline.analyze("python engineer", documents=DOCS, resume_text="cv")

        assert analysis.competitive_landscape == "Could not parse competitive analysis."

    async def test_unparseable_answer_degrades(self, pipeline, generator):
        generator.response = "I cannot help with that."

        analysis = await pipeline.analyze("python engineer", documents=DOCS)

        assert analysis.common_stack == "Could not parse stack from analysis."
        assert analysis.parsed_sections == []

    async def test_no_usable_documents(self, pipeline, generator):
        await pipeline.analyze("python engineer", documents=DOCS[3:])

        assert NO_DATA_SENTINEL in generator.prompts[0]

    async def test_blank_query(self, pipeline):
        with pytest.raises(EmptyInputError):
            await pipeline.analyze("   ", documents=DOCS)

    async def test_provider_error_propagates(self, embeddings, store):
        pipeline = MarketAnalysisPipeline(
            Retriever(embeddings, store), MockGenerator(error=ProviderError("down"))
        )

        with pytest.raises(ProviderError):
            await pipeline.analyze("python engineer", documents=DOCS)


# ---------------------------------------------------------------------------
# SIMILAR / FILTER
# ---------------------------------------------------------------------------


class TestSimilarJobs:
    """Test "more like this" listings."""

    async def test_excludes_source(self, pipeline):
        listings = await pipeline.similar_jobs("https://jobs.example/1", k=2)

        assert len(listings) == 2
        assert "https://jobs.example/1" not in [l.url for l in listings]
        assert all(l.distance is not None for l in listings)

    async def test_listing_fields_from_metadata(self, pipeline):
        listings = await pipeline.similar_jobs("https://jobs.example/1", k=5)

        by_url = {l.url: l for l in listings}
        assert by_url["https://jobs.example/3"].company_name == "Globex"
        assert by_url["https://jobs.example/3"].snippet == DOCS[2].body

    async def test_placeholders_for_bare_records(self, pipeline, store):
        vector = await MockEmbeddings(dimensions=16).embed("bare")
        await store.upsert(["bare"], [vector], [{}], ["x" * 200])

        listings = await pipeline.similar_jobs("https://jobs.example/1", k=10)

        bare = next(l for l in listings if l.url == "bare")
        assert bare.title == "N/A"
        assert bare.company_name == "N/A"
        assert bare.snippet == "x" * 150 + "..."

    async def test_unknown_source(self, pipeline):
        with pytest.raises(NotFoundError):
            await pipeline.similar_jobs("https://jobs.example/404")

    async def test_default_limit(self, embeddings, store, generator):
        pipeline = MarketAnalysisPipeline(
            Retriever(embeddings, store), generator, similar_results_limit=1
        )

        assert len(await pipeline.similar_jobs("https://jobs.example/2")) == 1


class TestFilterJobs:
    """Test semantic filtering."""

    async def test_returns_ids(self, pipeline):
        ids = await pipeline.filter_jobs(DOCS[2].body, limit=2)

        assert ids[0] == "https://jobs.example/3"
        assert len(ids) == 2

    async def test_blank_query(self, pipeline):
        with pytest.raises(EmptyInputError):
            await pipeline.filter_jobs(" ")


# ---------------------------------------------------------------------------
# DEEP DIVE
# ---------------------------------------------------------------------------


class TestDeepDive:
    """Test single-listing analysis."""

    async def test_parses_sections(self, pipeline, generator):
        generator.response = DEEP_DIVE_ANSWER

        analysis = await pipeline.deep_dive(DOCS[0])

        assert analysis.core_responsibilities == "*   Build APIs"
        assert analysis.culture_clues == "*   None stated"
        assert analysis.questions_to_ask == "*   Team size?"
        assert not analysis.raw_text.startswith(DEEP_DIVE_MARKER)
        assert len(analysis.parsed_sections) == 6
        assert DOCS[0].body in generator.prompts[0]

    async def test_accepts_plain_text(self, pipeline, generator):
        generator.response = DEEP_DIVE_ANSWER

        analysis = await pipeline.deep_dive("Some job description")

        assert analysis.red_flags == "*   Vague scope"

    async def test_placeholder_rejected(self, pipeline, generator):
        with pytest.raises(ValueError, match="incomplete job description"):
            await pipeline.deep_dive(DOCS[3])
        assert generator.prompts == []

    async def test_blank_rejected(self, pipeline):
        with pytest.raises(EmptyInputError):
            await pipeline.deep_dive("  ")


# ---------------------------------------------------------------------------
# FOLLOW-UPS
# ---------------------------------------------------------------------------


def _analysis(**overrides):
    fields = dict(
        query="python developer",
        common_stack="**Languages:** Python (~70%)",
        project_ideas="Ideas",
        job_prioritization="1. [Backend Engineer](https://jobs.example/1)",
        experience_summary="3-5 years.",
        market_insights="Steady demand.",
        detailed_trends="Trends",
        top_companies=[StatItem(name="Acme", count=2), StatItem(name="Globex", count=1)],
        top_locations=[StatItem(name="Central", count=2)],
    )
    fields.update(overrides)
    return MarketAnalysis(**fields)


class TestInterviewQuestions:
    """Test the interview question follow-up."""

    async def test_echoed_marker_stripped(self, pipeline, generator):
        generator.response = "Interview Questions:\n1. Describe a FastAPI service you built."

        questions = await pipeline.interview_questions(DOCS[0])

        assert questions == "1. Describe a FastAPI service you built."
        assert DOCS[0].body in generator.prompts[0]
        assert generator.prompts[0].rstrip().endswith(INTERVIEW_QUESTIONS_MARKER)

    async def test_accepts_plain_text(self, pipeline, generator):
        generator.response = "  1. Why Python?  "

        assert await pipeline.interview_questions("Python role") == "1. Why Python?"

    @pytest.mark.parametrize("job", ["", "   ", Document(id="https://x/1")])
    async def test_blank_rejected(self, pipeline, generator, job):
        with pytest.raises(EmptyInputError):
            await pipeline.interview_questions(job)
        assert generator.prompts == []


class TestSkillGap:
    """Test learning recommendations against the common stack."""

    async def test_stack_in_prompt(self, pipeline, generator):
        generator.response = "**Cloud**\n* AWS docs\n"

        advice = await pipeline.skill_gap("Python (~70%), AWS (~40%)")

        assert advice == "**Cloud**\n* AWS docs"
        assert "Python (~70%), AWS (~40%)" in generator.prompts[0]

    @pytest.mark.parametrize("stack", ["", "  ", "Could not parse stack from analysis."])
    async def test_unusable_stack_rejected(self, pipeline, generator, stack):
        with pytest.raises(ValueError, match="common tech stack"):
            await pipeline.skill_gap(stack)
        assert generator.prompts == []


class TestSuggestProject:
    """Test the skill-gap project idea."""

    async def test_gap_skills_in_prompt(self, pipeline, generator):
        generator.response = " Build a Kafka-backed event pipeline. "

        idea = await pipeline.suggest_project("Python, SQL", "python, Kafka, sql, Docker")

        assert idea == "Build a Kafka-backed event pipeline."
        prompt = generator.prompts[0]
        assert "missing: kafka, docker" in prompt
        assert "Python, SQL" in prompt

    async def test_no_gap_skips_model(self, pipeline, generator):
        """Every required skill present means a fixed answer and no model call."""
        idea = await pipeline.suggest_project("Python, SQL, Docker", " sql ,PYTHON,")

        assert idea == ALL_SKILLS_COVERED
        assert generator.prompts == []

    @pytest.mark.parametrize("mine,required", [("", "Python"), ("Python", "  ")])
    async def test_blank_skills_rejected(self, pipeline, mine, required):
        with pytest.raises(EmptyInputError):
            await pipeline.suggest_project(mine, required)


class TestResumeFit:
    """Test the resume fitness review."""

    async def test_resume_and_stack_in_prompt(self, pipeline, generator):
        generator.response = "**Overall Fitness:** Good."

        review = await pipeline.resume_fit("Five years of Python and AWS", "Python, AWS")

        assert review == "**Overall Fitness:** Good."
        prompt = generator.prompts[0]
        assert prompt.index("Python, AWS") < prompt.index("Five years of Python and AWS")

    async def test_blank_resume_rejected(self, pipeline, generator):
        with pytest.raises(EmptyInputError):
            await pipeline.resume_fit("  ", "Python")
        assert generator.prompts == []

    async def test_unparsed_stack_rejected(self, pipeline, generator):
        with pytest.raises(ValueError, match="common tech stack"):
            await pipeline.resume_fit("Python dev", "Could not parse stack from analysis.")
        assert generator.prompts == []


class TestSearchStrategy:
    """Test search tips built from a finished analysis."""

    async def test_summary_sections_in_prompt(self, pipeline, generator):
        generator.response = "SEARCH STRATEGY TIPS\n1. Apply to Acme first."

        tips = await pipeline.search_strategy(_analysis())

        assert tips == "1. Apply to Acme first."
        prompt = generator.prompts[0]
        assert '"python developer"' in prompt
        assert "Common Tech Stack:\n**Languages:** Python (~70%)" in prompt
        assert "Typical Experience Level: 3-5 years." in prompt
        assert "- Acme (2 jobs)\n- Globex (1 jobs)" in prompt
        assert "Top Job Locations Found:\n- Central (2 jobs)" in prompt

    async def test_unparsed_sections_left_out(self, pipeline, generator):
        analysis = _analysis(
            experience_summary="Could not parse experience summary.",
            job_prioritization="Could not parse prioritization.",
            top_locations=[],
        )

        await pipeline.search_strategy(analysis)

        prompt = generator.prompts[0]
        assert "Typical Experience Level" not in prompt
        assert "Job Prioritization Suggestion" not in prompt
        assert "Top Job Locations Found" not in prompt
        assert "Top Hiring Companies Found" in prompt

    async def test_unparsed_stack_rejected(self, pipeline, generator):
        analysis = _analysis(common_stack="Could not parse stack from analysis.")

        with pytest.raises(ValueError):
            await pipeline.search_strategy(analysis)
        assert generator.prompts == []

    async def test_from_analyze_result(self, pipeline, generator):
        """The output of analyze() feeds straight into search_strategy()."""
        analysis = await pipeline.analyze("python developer", documents=DOCS)
        generator.response = "1. Network at meetups."

        tips = await pipeline.search_strategy(analysis)

        assert tips == "1. Network at meetups."
        assert "Common Tech Stack:\nPython (~70%)" in generator.prompts[1]


# ---------------------------------------------------------------------------
# FACTORY
# ---------------------------------------------------------------------------


class TestCreatePipeline:
    """Test wiring from settings."""

    def test_mock_settings(self):
        settings = PipelineSettings(
            use_mock_embeddings=True,
            embedding_dim=8,
            similar_results_limit=3,
            heal_missing_vectors=True,
        )

        pipeline = create_pipeline(settings, generator=MockGenerator())

        assert isinstance(pipeline.retriever.store, InMemoryVectorStore)
        assert isinstance(pipeline.retriever.embeddings, MockEmbeddings)
        assert pipeline.retriever.heal_missing_vectors is True
        assert pipeline.similar_results_limit == 3

    def test_injected_store_shared(self):
        store = InMemoryVectorStore()

        pipeline = create_pipeline(
            PipelineSettings(use_mock_embeddings=True), store=store, generator=MockGenerator()
        )

        assert pipeline.retriever.store is store
