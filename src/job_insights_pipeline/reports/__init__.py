"""
Reports module - parse multi-section model answers into typed reports.

- parse_report / SectionSpec / Report: section parsing over a pattern table
- job_analysis_sections / deep_dive_sections: built-in tables
- build_job_analysis_prompt / build_deep_dive_prompt: default report templates
- build_*_prompt for interview questions, skill gaps, project ideas, resume
  fit and search strategy: single-answer follow-up templates
- MarketAnalysis / DeepDiveAnalysis: pydantic result models
"""

from job_insights_pipeline.reports.parser import (
    COULD_NOT_PARSE,
    Report,
    SectionSpec,
    heading_pattern,
    is_unparsed,
    parse_report,
)
from job_insights_pipeline.reports.sections import (
    DEEP_DIVE_MARKER,
    NO_RESUME_LANDSCAPE,
    deep_dive_sections,
    job_analysis_sections,
)
from job_insights_pipeline.reports.prompts import (
    INTERVIEW_QUESTIONS_MARKER,
    SEARCH_STRATEGY_MARKER,
    SYSTEM_PROMPT,
    build_deep_dive_prompt,
    build_interview_questions_prompt,
    build_job_analysis_prompt,
    build_project_suggestion_prompt,
    build_resume_fit_prompt,
    build_search_strategy_prompt,
    build_skill_gap_prompt,
)
from job_insights_pipeline.reports.schemas import (
    DeepDiveAnalysis,
    JobListing,
    MarketAnalysis,
    StatItem,
)

__all__ = [
    # Parser
    "COULD_NOT_PARSE",
    "Report",
    "SectionSpec",
    "heading_pattern",
    "is_unparsed",
    "parse_report",
    # Section tables
    "DEEP_DIVE_MARKER",
    "NO_RESUME_LANDSCAPE",
    "deep_dive_sections",
    "job_analysis_sections",
    # Prompts
    "INTERVIEW_QUESTIONS_MARKER",
    "SEARCH_STRATEGY_MARKER",
    "SYSTEM_PROMPT",
    "build_deep_dive_prompt",
    "build_interview_questions_prompt",
    "build_job_analysis_prompt",
    "build_project_suggestion_prompt",
    "build_resume_fit_prompt",
    "build_search_strategy_prompt",
    "build_skill_gap_prompt",
    # Schemas
    "DeepDiveAnalysis",
    "JobListing",
    "MarketAnalysis",
    "StatItem",
]
