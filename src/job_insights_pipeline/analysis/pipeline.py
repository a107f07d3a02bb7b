"""
Market analysis pipeline - the retrieval-augmented report flow.

    query -> Retriever -> ContextAssembler -> TextGenerator -> parse_report
          -> MarketAnalysis

Every collaborator is injected. create_pipeline() wires the production
implementations from PipelineSettings; tests pass in-memory doubles.

The follow-ups (interview questions, skill gap, project suggestion, resume
fit, search strategy) are one prompt and one free-text answer each.
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from job_insights_pipeline.analysis.stats import missing_skills, top_companies, top_locations
from job_insights_pipeline.config import PipelineSettings, get_settings
from job_insights_pipeline.context import ContextAssembler
from job_insights_pipeline.core import (
    Candidate,
    EmbeddingProvider,
    EmptyInputError,
    TextGenerator,
    VectorStore,
)
from job_insights_pipeline.embeddings import get_embedding_provider
from job_insights_pipeline.generation import get_generator, strip_echo_marker
from job_insights_pipeline.observability import get_tracer
from job_insights_pipeline.observability.attributes import (
    REPORT_CONTEXT_CHARS,
    REPORT_SECTIONS_EXPECTED,
    REPORT_SECTIONS_PARSED,
)
from job_insights_pipeline.reports import (
    DEEP_DIVE_MARKER,
    INTERVIEW_QUESTIONS_MARKER,
    SEARCH_STRATEGY_MARKER,
    SYSTEM_PROMPT,
    DeepDiveAnalysis,
    JobListing,
    MarketAnalysis,
    StatItem,
    build_deep_dive_prompt,
    build_interview_questions_prompt,
    build_job_analysis_prompt,
    build_project_suggestion_prompt,
    build_resume_fit_prompt,
    build_search_strategy_prompt,
    build_skill_gap_prompt,
    deep_dive_sections,
    is_unparsed,
    job_analysis_sections,
    parse_report,
)
from job_insights_pipeline.retrieval import (
    DEFAULT_FAILURE_SENTINELS,
    Document,
    Retriever,
    VectorStoreConfig,
    get_vector_store,
)
from job_insights_pipeline.retrieval.document import SNIPPET_CHARS

logger = logging.getLogger(__name__)

DEFAULT_ANALYSIS_K = 50

ALL_SKILLS_COVERED = (
    "You seem to have all the required skills! Perhaps focus on a portfolio project "
    "that combines them in a unique way or tackles a complex problem within the "
    "target domain."
)


def _candidate_to_document(candidate: Candidate) -> Document:
    return Document(
        id=candidate.id,
        body=candidate.document,
        title=candidate.title,
        organization=candidate.organization,
        location=candidate.location,
    )


def _listing(doc: Document, failure_sentinels: Iterable[str]) -> JobListing:
    """Display entry; listings without a usable body get a fallback snippet."""
    if doc.is_eligible(failure_sentinels):
        snippet = doc.snippet
    else:
        snippet = (
            f"Company: {doc.organization or 'N/A'} | Location: {doc.location or 'N/A'} "
            "(Description fetch issues)"
        )[:SNIPPET_CHARS]
    return JobListing(
        url=doc.id or "#",
        title=doc.title or "Scraped Job",
        snippet=snippet,
        company_name=doc.organization,
        location=doc.location,
    )


def _require_stack(common_stack: str | None) -> str:
    if is_unparsed(common_stack):
        raise ValueError("Invalid or unavailable common tech stack provided.")
    return common_stack.strip()


def _stat_lines(items: Sequence[StatItem]) -> str:
    return "\n".join(f"- {item.name} ({item.count} jobs)" for item in items)


def _strategy_summary(analysis: MarketAnalysis) -> str:
    """The parts of an analysis worth grounding search tips on; unparsed sections are left out."""
    parts = [f"Common Tech Stack:\n{analysis.common_stack.strip()}"]
    if not is_unparsed(analysis.experience_summary):
        parts.append(f"Typical Experience Level: {analysis.experience_summary.strip()}")
    if not is_unparsed(analysis.job_prioritization):
        parts.append(f"Job Prioritization Suggestion: {analysis.job_prioritization.strip()}")
    if analysis.top_companies:
        parts.append(f"Top Hiring Companies Found:\n{_stat_lines(analysis.top_companies)}")
    if analysis.top_locations:
        parts.append(f"Top Job Locations Found:\n{_stat_lines(analysis.top_locations)}")
    return "\n\n".join(parts)


class MarketAnalysisPipeline:
    """
    Orchestrates retrieval, context assembly, generation and parsing.

    Args:
        retriever: Similarity retrieval over the indexed listings
        generator: Chat model that writes the report text
        assembler: Renders listings into the prompt context
        max_context_chars: Context budget passed to the assembler
        similar_results_limit: Default k for similar_jobs()
        filter_results_limit: Default k for filter_jobs()
        analysis_k: Listings retrieved when analyze() gets no documents
    """

    def __init__(
        self,
        retriever: Retriever,
        generator: TextGenerator,
        assembler: ContextAssembler | None = None,
        max_context_chars: int = 800_000,
        similar_results_limit: int = 5,
        filter_results_limit: int = 50,
        analysis_k: int = DEFAULT_ANALYSIS_K,
        failure_sentinels: Iterable[str] = DEFAULT_FAILURE_SENTINELS,
    ):
        self.retriever = retriever
        self.generator = generator
        self.assembler = assembler or ContextAssembler()
        self.max_context_chars = max_context_chars
        self.similar_results_limit = similar_results_limit
        self.filter_results_limit = filter_results_limit
        self.analysis_k = analysis_k
        self.failure_sentinels = tuple(failure_sentinels)

    async def analyze(
        self,
        query: str,
        documents: Sequence[Document] | None = None,
        resume_text: str | None = None,
        k: int | None = None,
    ) -> MarketAnalysis:
        """
        Multi-section market analysis for a role query.

        When `documents` is None the listings are retrieved from the store
        by similarity to the query. Stats cover every listing; the model only
        sees listings with a usable description.
        """
        if not query or not query.strip():
            raise EmptyInputError("analysis query must not be empty")

        if documents is None:
            candidates = await self.retriever.query_by_text(query, k or self.analysis_k)
            documents = [_candidate_to_document(c) for c in candidates]

        usable = [doc for doc in documents if doc.is_eligible(self.failure_sentinels)]
        has_resume = bool(resume_text and resume_text.strip())

        context = self.assembler.assemble(usable, self.max_context_chars)
        prompt = build_job_analysis_prompt(
            query, context, len(usable), resume_text if has_resume else None
        )
        sections = job_analysis_sections(has_resume)

        with get_tracer().start_span(
            "report.job_analysis",
            attributes={
                REPORT_CONTEXT_CHARS: len(context),
                REPORT_SECTIONS_EXPECTED: len(sections),
            },
        ) as span:
            raw_text = await self.generator.generate(prompt)
            report = parse_report(raw_text, sections)
            span.set_attribute(REPORT_SECTIONS_PARSED, len(report.parsed_sections))

        missing = [spec.name for spec in sections if not report.is_parsed(spec.name)]
        if missing:
            logger.warning("Analysis sections not parsed: %s", ", ".join(missing))

        return MarketAnalysis(
            query=query,
            common_stack=report.common_stack,
            project_ideas=report.project_ideas,
            job_prioritization=report.job_prioritization,
            experience_summary=report.experience_summary,
            market_insights=report.market_insights,
            detailed_trends=report.detailed_trends,
            competitive_landscape=report.competitive_landscape if has_resume else None,
            top_companies=top_companies(documents),
            top_locations=top_locations(documents),
            job_listings=[_listing(doc, self.failure_sentinels) for doc in documents],
            analysis_disclaimer=(
                f"Note: Stats from {len(documents)} listings. AI analysis prioritizes "
                f"jobs using {len(usable)} successfully fetched descriptions. Verify details."
            ),
            parsed_sections=report.parsed_sections,
        )

    async def similar_jobs(self, source_id: str, k: int | None = None) -> list[JobListing]:
        """Listings most similar to a stored one, excluding itself."""
        if not source_id or not source_id.strip():
            raise EmptyInputError("source id must not be empty")

        candidates = await self.retriever.query_by_source_id(
            source_id, k or self.similar_results_limit, exclude_self=True
        )
        listings = []
        for candidate in candidates:
            snippet = candidate.metadata.get("snippet")
            if not snippet:
                if candidate.document:
                    snippet = candidate.document[:SNIPPET_CHARS] + "..."
                else:
                    snippet = "No snippet available."
            listings.append(
                JobListing(
                    url=candidate.id,
                    title=candidate.title or "N/A",
                    snippet=snippet,
                    company_name=candidate.organization or "N/A",
                    location=candidate.location or "N/A",
                    distance=candidate.distance,
                )
            )
        logger.info("Found %d similar jobs for %s", len(listings), source_id)
        return listings

    async def filter_jobs(self, query: str, limit: int | None = None) -> list[str]:
        """Ids of the stored listings most relevant to a filter query."""
        if not query or not query.strip():
            raise EmptyInputError("filter query must not be empty")
        candidates = await self.retriever.query_by_text(
            query.strip(), limit or self.filter_results_limit
        )
        return [candidate.id for candidate in candidates]

    async def deep_dive(self, job: Document | str) -> DeepDiveAnalysis:
        """
        Structured analysis of one listing.

        Raises:
            EmptyInputError: blank description
            ValueError: the description is a scrape-failure placeholder
        """
        body = job.body if isinstance(job, Document) else job
        if not body or not body.strip():
            raise EmptyInputError("job description must not be empty")
        if not Document(id="deep-dive", body=body).is_eligible(self.failure_sentinels):
            raise ValueError("Cannot analyze an incomplete job description.")

        sections = deep_dive_sections()
        with get_tracer().start_span(
            "report.deep_dive",
            attributes={REPORT_CONTEXT_CHARS: len(body), REPORT_SECTIONS_EXPECTED: len(sections)},
        ) as span:
            raw_text = await self.generator.generate(build_deep_dive_prompt(body))
            text = strip_echo_marker(raw_text, DEEP_DIVE_MARKER)
            report = parse_report(text, sections)
            span.set_attribute(REPORT_SECTIONS_PARSED, len(report.parsed_sections))

        return DeepDiveAnalysis(
            **report.to_dict(),
            raw_text=text,
            parsed_sections=report.parsed_sections,
        )

    # -----------------------------------------------------------------------
    # Follow-ups: one prompt, one free-text answer
    # -----------------------------------------------------------------------

    async def _follow_up(
        self,
        name: str,
        prompt: str,
        context_chars: int,
        marker: str | None = None,
    ) -> str:
        with get_tracer().start_span(
            f"report.{name}", attributes={REPORT_CONTEXT_CHARS: context_chars}
        ):
            raw_text = await self.generator.generate(prompt)
        if marker:
            return strip_echo_marker(raw_text, marker)
        return raw_text.strip()

    async def interview_questions(self, job: Document | str) -> str:
        """Likely interview questions for one listing, as a numbered list."""
        body = job.body if isinstance(job, Document) else job
        if not body or not body.strip():
            raise EmptyInputError("job description must not be empty")
        return await self._follow_up(
            "interview_questions",
            build_interview_questions_prompt(body),
            len(body),
            marker=INTERVIEW_QUESTIONS_MARKER,
        )

    async def skill_gap(self, common_stack: str) -> str:
        """
        Likely skill gaps against a market's common stack, with learning resources.

        Raises:
            ValueError: the stack is blank or still a "Could not parse" sentinel
        """
        stack = _require_stack(common_stack)
        return await self._follow_up("skill_gap", build_skill_gap_prompt(stack), len(stack))

    async def suggest_project(self, my_skills: str, required_skills: str) -> str:
        """
        One portfolio project idea covering the required skills the candidate lacks.

        Both arguments are comma-separated skill lists, compared
        case-insensitively. With nothing missing, a fixed suggestion is
        returned and the model is not called.
        """
        if not my_skills or not my_skills.strip():
            raise EmptyInputError("current skills must not be empty")
        if not required_skills or not required_skills.strip():
            raise EmptyInputError("required skills must not be empty")

        gap = missing_skills(my_skills, required_skills)
        if not gap:
            return ALL_SKILLS_COVERED
        return await self._follow_up(
            "project_suggestion",
            build_project_suggestion_prompt(my_skills.strip(), required_skills.strip(), gap),
            len(my_skills) + len(required_skills),
        )

    async def resume_fit(self, resume_text: str, common_stack: str) -> str:
        """Fitness of a resume against a market's common stack, with ATS keywords."""
        if not resume_text or not resume_text.strip():
            raise EmptyInputError("resume text must not be empty")
        stack = _require_stack(common_stack)
        return await self._follow_up(
            "resume_fit",
            build_resume_fit_prompt(resume_text.strip(), stack),
            len(resume_text) + len(stack),
        )

    async def search_strategy(self, analysis: MarketAnalysis) -> str:
        """Job search tips grounded on a finished market analysis."""
        if not analysis.query or not analysis.query.strip():
            raise EmptyInputError("analysis query must not be empty")
        _require_stack(analysis.common_stack)

        summary = _strategy_summary(analysis)
        return await self._follow_up(
            "search_strategy",
            build_search_strategy_prompt(analysis.query.strip(), summary),
            len(summary),
            marker=SEARCH_STRATEGY_MARKER,
        )


# ---------------------------------------------------------------------------
# FACTORIES
# ---------------------------------------------------------------------------


def embeddings_from_settings(settings: PipelineSettings) -> EmbeddingProvider:
    return get_embedding_provider(
        use_mock=settings.use_mock_embeddings,
        model=settings.embedding_model,
        api_key=settings.openai_api_key,
        batch_size=settings.embedding_batch_size,
        max_input_chars=settings.max_embedding_chars,
        dimensions=settings.embedding_dim,
    )


def store_from_settings(settings: PipelineSettings) -> VectorStore:
    return get_vector_store(VectorStoreConfig.from_settings(settings))


def create_pipeline(
    settings: PipelineSettings | None = None,
    store: VectorStore | None = None,
    embeddings: EmbeddingProvider | None = None,
    generator: TextGenerator | None = None,
) -> MarketAnalysisPipeline:
    """
    Wire a pipeline from settings; any collaborator can be overridden.

    The store is created here once and shared by everything the pipeline
    owns; callers that index into the same store should pass it in.
    """
    settings = settings or get_settings()
    embeddings = embeddings or embeddings_from_settings(settings)
    store = store or store_from_settings(settings)
    generator = generator or get_generator(
        model=settings.generation_model,
        api_key=settings.openai_api_key,
        system_prompt=SYSTEM_PROMPT,
    )

    retriever = Retriever(
        embeddings,
        store,
        heal_missing_vectors=settings.heal_missing_vectors,
    )
    return MarketAnalysisPipeline(
        retriever=retriever,
        generator=generator,
        max_context_chars=settings.max_context_chars,
        similar_results_limit=settings.similar_results_limit,
        filter_results_limit=settings.filter_results_limit,
    )
