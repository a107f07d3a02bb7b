"""
Analysis module - market reports on top of retrieval.

- MarketAnalysisPipeline: analyze / similar_jobs / filter_jobs / deep_dive, plus
  the follow-ups interview_questions / skill_gap / suggest_project /
  resume_fit / search_strategy
- create_pipeline(): wires production collaborators from settings
- top_companies / top_locations: frequency stats over listings
- missing_skills: local skill-gap check behind suggest_project
"""

from job_insights_pipeline.analysis.stats import (
    clean_location,
    missing_skills,
    split_skills,
    top_companies,
    top_counts,
    top_locations,
)
from job_insights_pipeline.analysis.pipeline import (
    MarketAnalysisPipeline,
    create_pipeline,
    embeddings_from_settings,
    store_from_settings,
)

__all__ = [
    "MarketAnalysisPipeline",
    "create_pipeline",
    "embeddings_from_settings",
    "store_from_settings",
    "clean_location",
    "missing_skills",
    "split_skills",
    "top_companies",
    "top_counts",
    "top_locations",
]
