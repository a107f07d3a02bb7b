"""
Report Schemas

Pydantic models for what the analysis pipeline hands to callers. The model's
raw answer is free text; these models hold the parsed sections plus the
statistics computed locally, so downstream code never touches the raw text.
"""

from pydantic import BaseModel, Field


class StatItem(BaseModel):
    """One row of a frequency table (company or location)."""

    name: str = Field(description="Company or location name")
    count: int = Field(ge=1, description="Number of listings with this value")


class JobListing(BaseModel):
    """Display entry for one scraped or retrieved listing."""

    url: str = Field(description="Canonical listing URL (the document id)")
    title: str = Field(default="Scraped Job", description="Job title")
    snippet: str = Field(description="Short preview of the description")
    company_name: str | None = Field(default=None, description="Hiring organization")
    location: str | None = Field(default=None)
    distance: float | None = Field(
        default=None,
        description="Similarity distance, when the listing came from a query",
    )


class MarketAnalysis(BaseModel):
    """
    Multi-section market analysis for a role query.

    Section fields hold the model's text for that section, or a
    "Could not parse ..." sentinel when the section was missing.
    """

    query: str = Field(description="The user's target role/skill query")

    common_stack: str
    project_ideas: str
    job_prioritization: str
    experience_summary: str
    market_insights: str
    detailed_trends: str
    competitive_landscape: str | None = Field(
        default=None,
        description="Resume vs. market comparison; None when no resume was given",
    )

    top_companies: list[StatItem] = Field(default_factory=list)
    top_locations: list[StatItem] = Field(default_factory=list)
    job_listings: list[JobListing] = Field(default_factory=list)

    analysis_disclaimer: str = ""
    parsed_sections: list[str] = Field(
        default_factory=list,
        description="Names of sections found in the model output",
    )


class DeepDiveAnalysis(BaseModel):
    """Structured deep dive into a single listing."""

    core_responsibilities: str
    key_challenges: str
    skill_requirements: str
    culture_clues: str
    red_flags: str
    questions_to_ask: str

    raw_text: str = Field(description="Full model answer, echo marker removed")
    parsed_sections: list[str] = Field(default_factory=list)
