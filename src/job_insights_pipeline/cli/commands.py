"""
CLI commands - entry points for indexing and analysis.

Each command follows a consistent pattern:
1. Parse arguments
2. Load environment
3. Run the async operation
4. Print results
5. Return exit code

Commands are thin wrappers: they wire collaborators from settings and
delegate the work to the indexer, retriever and analysis pipeline.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv

from job_insights_pipeline.analysis import (
    create_pipeline,
    embeddings_from_settings,
    store_from_settings,
)
from job_insights_pipeline.config import get_settings
from job_insights_pipeline.core import PipelineError
from job_insights_pipeline.indexing import DocumentIndexer, load_scraped_documents
from job_insights_pipeline.observability import init_tracing, shutdown_tracing
from job_insights_pipeline.reports import NO_RESUME_LANDSCAPE

logger = logging.getLogger(__name__)

NOISY_LOGGERS = ("httpx", "httpcore", "openai")


def _load_env() -> None:
    """Load environment variables from .env file."""
    load_dotenv()


def _configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _fail(error: Exception) -> int:
    print(f"Error: {error}", file=sys.stderr)
    return 1


# ---------------------------------------------------------------------------
# INDEX
# ---------------------------------------------------------------------------


async def _index(paths: Sequence[str], batch_size: int | None) -> int:
    settings = get_settings()
    store = store_from_settings(settings)
    indexer = DocumentIndexer(
        embeddings_from_settings(settings),
        store,
        batch_size=settings.embedding_batch_size,
        inter_batch_delay_s=settings.inter_batch_delay_s,
    )

    documents = []
    for path in paths:
        documents.extend(load_scraped_documents(path))

    try:
        result = await indexer.index(documents, embedding_batch_size=batch_size)
    finally:
        await store.close()

    print(f"Documents:      {len(documents)}")
    print(f"Upserted:       {result.upserted_count}")
    print(f"Skipped:        {result.skipped_count}")
    if result.failed_batches:
        print(f"Failed batches: {', '.join(str(i) for i in result.failed_batches)}")
        return 1
    return 0


def run_index_cli(argv: Sequence[str] | None = None) -> int:
    """CLI entry point for indexing scraped JSON files."""
    _load_env()

    parser = argparse.ArgumentParser(description="Index scraped job listings")
    parser.add_argument("files", nargs="+", help="Scraped results JSON file(s)")
    parser.add_argument("--batch-size", type=int, default=None, help="Documents per batch")
    args = parser.parse_args(argv)

    try:
        return asyncio.run(_index(args.files, args.batch_size))
    except (PipelineError, OSError, ValueError) as e:
        return _fail(e)


# ---------------------------------------------------------------------------
# SIMILAR / SEARCH
# ---------------------------------------------------------------------------


async def _similar(url: str, k: int | None, as_json: bool) -> int:
    pipeline = create_pipeline()
    try:
        listings = await pipeline.similar_jobs(url, k)
    finally:
        await pipeline.retriever.store.close()

    if as_json:
        print(json.dumps([listing.model_dump() for listing in listings], indent=2))
        return 0

    print(f"Similar to {url}:")
    for number, listing in enumerate(listings, start=1):
        print(f"  {number}. {listing.title} - {listing.company_name} ({listing.location})")
        print(f"     {listing.url}")
    if not listings:
        print("  (no similar jobs found)")
    return 0


def run_similar_cli(argv: Sequence[str] | None = None) -> int:
    """CLI entry point for "more like this" on a stored listing."""
    _load_env()

    parser = argparse.ArgumentParser(description="Find jobs similar to a stored listing")
    parser.add_argument("url", help="Listing URL (its id in the store)")
    parser.add_argument("-k", type=int, default=None, help="Number of results")
    parser.add_argument("--json", action="store_true", help="Print JSON")
    args = parser.parse_args(argv)

    try:
        return asyncio.run(_similar(args.url, args.k, args.json))
    except (PipelineError, ValueError) as e:
        return _fail(e)


async def _search(query: str, k: int | None) -> int:
    settings = get_settings()
    pipeline = create_pipeline(settings)
    try:
        candidates = await pipeline.retriever.query_by_text(
            query, k or settings.filter_results_limit
        )
    finally:
        await pipeline.retriever.store.close()

    for candidate in candidates:
        distance = f"{candidate.distance:.4f}" if candidate.distance is not None else "-"
        print(f"  [{distance}] {candidate.title or 'N/A'} - {candidate.id}")
    print(f"\n{len(candidates)} results")
    return 0


def run_search_cli(argv: Sequence[str] | None = None) -> int:
    """CLI entry point for free-text similarity search."""
    _load_env()

    parser = argparse.ArgumentParser(description="Semantic search over indexed listings")
    parser.add_argument("query", help="Free-text query")
    parser.add_argument("-k", type=int, default=None, help="Number of results")
    args = parser.parse_args(argv)

    try:
        return asyncio.run(_search(args.query, args.k))
    except (PipelineError, ValueError) as e:
        return _fail(e)


# ---------------------------------------------------------------------------
# ANALYZE / DEEP DIVE
# ---------------------------------------------------------------------------


async def _analyze(
    query: str,
    inputs: Sequence[str],
    resume_path: str | None,
    k: int | None,
    as_json: bool,
) -> int:
    documents = None
    if inputs:
        documents = []
        for path in inputs:
            documents.extend(load_scraped_documents(path))

    resume_text = Path(resume_path).read_text(encoding="utf-8") if resume_path else None

    pipeline = create_pipeline()
    try:
        analysis = await pipeline.analyze(query, documents=documents, resume_text=resume_text, k=k)
    finally:
        await pipeline.retriever.store.close()

    if as_json:
        print(analysis.model_dump_json(indent=2))
        return 0

    sections = [
        ("COMMON TECH STACK", analysis.common_stack),
        ("SUGGESTED PROJECT IDEAS", analysis.project_ideas),
        ("JOB PRIORITIZATION", analysis.job_prioritization),
        ("EXPERIENCE LEVEL SUMMARY", analysis.experience_summary),
        ("OVERALL MARKET INSIGHTS", analysis.market_insights),
        ("DETAILED MARKET TRENDS", analysis.detailed_trends),
        ("COMPETITIVE LANDSCAPE", analysis.competitive_landscape or NO_RESUME_LANDSCAPE),
    ]
    for title, body in sections:
        print("=" * 60)
        print(title)
        print("=" * 60)
        print(body)
        print()

    print("Top companies: " + ", ".join(f"{s.name} ({s.count})" for s in analysis.top_companies))
    print("Top locations: " + ", ".join(f"{s.name} ({s.count})" for s in analysis.top_locations))
    print(f"\n{analysis.analysis_disclaimer}")
    return 0


def run_analyze_cli(argv: Sequence[str] | None = None) -> int:
    """CLI entry point for the market analysis report."""
    _load_env()

    parser = argparse.ArgumentParser(description="Generate a job market analysis")
    parser.add_argument("query", help="Target role or skill, e.g. 'python developer'")
    parser.add_argument(
        "--input",
        action="append",
        default=[],
        help="Analyze listings from a scraped JSON file instead of the store (repeatable)",
    )
    parser.add_argument("--resume", default=None, help="Plain-text resume file")
    parser.add_argument("-k", type=int, default=None, help="Listings to retrieve from the store")
    parser.add_argument("--json", action="store_true", help="Print JSON")
    args = parser.parse_args(argv)

    try:
        return asyncio.run(_analyze(args.query, args.input, args.resume, args.k, args.json))
    except (PipelineError, OSError, ValueError) as e:
        return _fail(e)


async def _deep_dive(description_path: str, as_json: bool) -> int:
    description = Path(description_path).read_text(encoding="utf-8")
    pipeline = create_pipeline()
    analysis = await pipeline.deep_dive(description)

    if as_json:
        print(analysis.model_dump_json(indent=2))
    else:
        print(analysis.raw_text)
    return 0


def run_deep_dive_cli(argv: Sequence[str] | None = None) -> int:
    """CLI entry point for a single-listing deep dive."""
    _load_env()

    parser = argparse.ArgumentParser(description="Deep dive into one job description")
    parser.add_argument("file", help="Text file containing the job description")
    parser.add_argument("--json", action="store_true", help="Print parsed sections as JSON")
    args = parser.parse_args(argv)

    try:
        return asyncio.run(_deep_dive(args.file, args.json))
    except (PipelineError, OSError, ValueError) as e:
        return _fail(e)


def main(argv: Sequence[str] | None = None) -> int:
    """
    Main CLI entry point with subcommands.

    Usage:
        job-insights index FILE...        # Embed and upsert scraped listings
        job-insights similar URL          # Jobs similar to a stored listing
        job-insights search QUERY         # Semantic search
        job-insights analyze QUERY        # Market analysis report
        job-insights deep-dive FILE       # Single-listing deep dive
    """
    _load_env()

    parser = argparse.ArgumentParser(
        description="Job market insights pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  index       Embed and upsert scraped listings into the vector store
  similar     Find listings similar to a stored one
  search      Semantic search over indexed listings
  analyze     Generate a multi-section market analysis
  deep-dive   Analyze one job description in detail

Examples:
  job-insights index data/python_developer.json --batch-size 50
  job-insights analyze "python developer" --resume resume.txt
        """,
    )
    parser.add_argument(
        "command",
        choices=["index", "similar", "search", "analyze", "deep-dive"],
        help="Command to run",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args, remaining = parser.parse_known_args(argv)
    _configure_logging(args.verbose)
    init_tracing()

    commands = {
        "index": run_index_cli,
        "similar": run_similar_cli,
        "search": run_search_cli,
        "analyze": run_analyze_cli,
        "deep-dive": run_deep_dive_cli,
    }

    try:
        return commands[args.command](remaining)
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130
    finally:
        shutdown_tracing()


if __name__ == "__main__":
    sys.exit(main())
