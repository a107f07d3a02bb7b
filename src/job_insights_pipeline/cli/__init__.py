"""
CLI module - unified command-line interface.

Provides entry points for:
- Indexing scraped listings
- Similarity search and "more like this"
- Market analysis and deep-dive reports
"""

from job_insights_pipeline.cli.commands import (
    main,
    run_index_cli,
    run_similar_cli,
    run_search_cli,
    run_analyze_cli,
    run_deep_dive_cli,
)

__all__ = [
    "main",
    "run_index_cli",
    "run_similar_cli",
    "run_search_cli",
    "run_analyze_cli",
    "run_deep_dive_cli",
]
