"""
Section tables for the built-in reports.

Tables are data: the parser does not know about any of these names, and
prompts ask for the same headings the patterns below tolerate.
"""

from __future__ import annotations

from job_insights_pipeline.reports.parser import SectionSpec, heading_pattern

# ---------------------------------------------------------------------------
# JOB ANALYSIS REPORT
# ---------------------------------------------------------------------------

COMMON_STACK_HEADING = "1. Common Tech Stack:"
PROJECT_IDEAS_HEADING = "2. Suggested Project Ideas:"
PRIORITIZATION_HEADING_RESUME = "3. Job Prioritization (based on your resume & potential):"
PRIORITIZATION_HEADING_QUERY = "3. Job Prioritization (based on query & potential):"
EXPERIENCE_HEADING = "4. Experience Level Summary:"
MARKET_INSIGHTS_HEADING = "5. Overall Market Insights:"
DETAILED_TRENDS_HEADING = "6. Detailed Market Trends & Insights:"
COMPETITIVE_LANDSCAPE_HEADING = "7. Competitive Landscape Analysis (Resume vs. Market):"

NO_RESUME_LANDSCAPE = "Competitive analysis requires a resume."

# "based on your resume & potential" / "based on query and potential" / "based on query"
_PRIORITIZATION = (
    r"Job[ \t]+Prioritization[ \t]*"
    r"\([ \t]*based[ \t]+on[ \t]+(?:your[ \t]+resume|query)"
    r"[ \t]*(?:(?:&|and)[ \t]*potential)?[ \t]*\)"
)


def job_analysis_sections(has_resume: bool) -> list[SectionSpec]:
    """
    Sections of the market analysis report.

    The competitive landscape section only exists when a resume was given.
    """
    sections = [
        SectionSpec(
            "common_stack",
            heading_pattern("Common Tech Stack:"),
            "Could not parse stack from analysis.",
        ),
        SectionSpec(
            "project_ideas",
            heading_pattern("Suggested Project Ideas:"),
            "Could not parse projects from analysis.",
        ),
        SectionSpec(
            "job_prioritization",
            heading_pattern(_PRIORITIZATION + ":", regex=True),
            "Could not parse prioritization.",
        ),
        SectionSpec(
            "experience_summary",
            heading_pattern("Experience Level Summary:"),
            "Could not parse experience summary.",
        ),
        SectionSpec(
            "market_insights",
            heading_pattern("Overall Market Insights:"),
            "Could not parse market insights.",
        ),
        SectionSpec(
            "detailed_trends",
            heading_pattern("Detailed Market Trends & Insights:"),
            "Could not parse detailed trends.",
        ),
    ]
    if has_resume:
        sections.append(
            SectionSpec(
                "competitive_landscape",
                heading_pattern("Competitive Landscape Analysis (Resume vs. Market):"),
                "Could not parse competitive analysis.",
            )
        )
    return sections


# ---------------------------------------------------------------------------
# DEEP DIVE REPORT
# ---------------------------------------------------------------------------

DEEP_DIVE_MARKER = "--- DEEP DIVE ANALYSIS ---"

DEEP_DIVE_HEADINGS = {
    "core_responsibilities": "Core Responsibilities:",
    "key_challenges": "Key Challenges / Problems to Solve:",
    "skill_requirements": "Skill Requirements Breakdown:",
    "culture_clues": "Company Culture Clues:",
    "red_flags": "Potential Red Flags or Ambiguities:",
    "questions_to_ask": "Questions to Ask the Hiring Manager:",
}


def deep_dive_sections() -> list[SectionSpec]:
    """Sections of the single-listing deep dive."""
    sections = []
    for name, title in DEEP_DIVE_HEADINGS.items():
        if name == "culture_clues":
            # the prompt asks for "Company Culture Clues (if any):"
            pattern = heading_pattern(
                r"Company[ \t]+Culture[ \t]+Clues(?:[ \t]*\(if[ \t]+any\))?:", regex=True
            )
        else:
            pattern = heading_pattern(title)
        label = title.rstrip(":").lower()
        sections.append(SectionSpec(name, pattern, f"Could not parse {label}."))
    return sections
