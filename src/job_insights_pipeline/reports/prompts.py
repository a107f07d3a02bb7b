"""
Default prompt templates for the built-in reports.

Wording is configuration: the parser only depends on the section headings
in reports/sections.py, which these templates ask the model to reproduce.
"""

from __future__ import annotations

from job_insights_pipeline.reports.sections import (
    COMMON_STACK_HEADING,
    COMPETITIVE_LANDSCAPE_HEADING,
    DEEP_DIVE_HEADINGS,
    DEEP_DIVE_MARKER,
    DETAILED_TRENDS_HEADING,
    EXPERIENCE_HEADING,
    MARKET_INSIGHTS_HEADING,
    PRIORITIZATION_HEADING_QUERY,
    PRIORITIZATION_HEADING_RESUME,
    PROJECT_IDEAS_HEADING,
)

SYSTEM_PROMPT = """You are an expert career advisor analyzing the job market.

CONSTRAINTS:
1. Base every statement ONLY on the job descriptions (and resume) provided
2. Do NOT add disclaimers about being unable to browse external websites
3. Start each section EXACTLY with the heading given for it
4. Use markdown for lists and emphasis inside sections"""


def _prioritization_instruction(query: str, has_resume: bool) -> str:
    if has_resume:
        return f"""Identify the most relevant jobs for the candidate based on their resume.
    List up to 15 jobs, most promising first, ranked by resume match, growth
    potential, tech stack value and job function value. For each job give:
    1. [Job Title](URL)
        *   **Overall Fit & Potential:** one or two sentences
        *   **Ratings:** Resume-Skill Match, Tech Stack Value, Potential Growth,
            Job Function Value, Estimated Hiring Difficulty (High/Medium/Low with a reason)
        *   **Key Alignment Points:** two or three bullets
        *   **Potential Gaps/Concerns:** one or two bullets
    Separate jobs with a blank line.
    Start this section exactly with "{PRIORITIZATION_HEADING_RESUME}"."""

    return f"""Identify the jobs most relevant to the query "{query}".
    List up to 15 jobs, most promising first, ranked by relevance to the query,
    growth potential, tech stack value and job function value. For each job give:
    1. [Job Title](URL)
        *   **Relevance & Potential:** one or two sentences
        *   **Ratings:** Query-Skill Match, Tech Stack Value, Potential Growth,
            Job Function Value (High/Medium/Low with a reason)
        *   **Key Alignment Points:** two or three bullets
        *   **Potential Considerations:** one or two bullets
    Separate jobs with a blank line.
    Start this section exactly with "{PRIORITIZATION_HEADING_QUERY}"."""


def build_job_analysis_prompt(
    query: str,
    context: str,
    job_count: int,
    resume_text: str | None = None,
) -> str:
    """
    Prompt for the multi-section market analysis report.

    Args:
        query: The user's target role or skill query
        context: Output of ContextAssembler.assemble()
        job_count: Number of listings rendered into the context
        resume_text: Optional resume; adds the competitive landscape section
    """
    has_resume = bool(resume_text and resume_text.strip())
    resume_block = f'- User\'s Resume Text:\n"""\n{resume_text}\n"""\n' if has_resume else ""

    landscape = ""
    if has_resume:
        landscape = f"""
7.  **Competitive Landscape Analysis:** Compare the resume against the common
    tech stack (task 1) and experience levels (task 4): overall alignment, key
    strengths, competitive gaps and positioning advice, in 3-5 bullets.
    Start this section exactly with "{COMPETITIVE_LANDSCAPE_HEADING}".
"""

    return f"""Context:
- User's target role/skill query: "{query}"
{resume_block}- The following {job_count} job descriptions were scraped for this query.

Tasks:
1.  **Common Tech Stack:** Group the technologies, languages, frameworks, cloud
    platforms, databases and concepts mentioned across all descriptions into
    bold categories. For the 10-15 most prominent skills, estimate the share
    of descriptions that mention them, e.g. Python (~80%).
    Start this section exactly with "{COMMON_STACK_HEADING}".

2.  **Suggested Project Ideas:** Suggest 2-3 portfolio projects aimed at the
    jobs you prioritize in task 3, formatted as
    '1. **Project Title:** Brief description.' separated by blank lines.
    Start this section exactly with "{PROJECT_IDEAS_HEADING}".

3.  **Job Prioritization:**
    {_prioritization_instruction(query, has_resume)}

4.  **Experience Level Summary:** Summarize the years of experience the
    descriptions ask for. If rarely mentioned, say so.
    Start this section exactly with "{EXPERIENCE_HEADING}".

5.  **Overall Market Insights:** In 3-5 sentences, summarize demand, the most
    critical skill areas and the typical experience range for "{query}".
    Start this section exactly with "{MARKET_INSIGHTS_HEADING}".

6.  **Detailed Market Trends & Insights:** Bullet points under Key Skill
    Clusters, Emerging vs. Core Skills, Role Variations and Hiring Company
    Profile.
    Start this section exactly with "{DETAILED_TRENDS_HEADING}".
{landscape}
--- Scraped Job Information (Processed: {job_count}) ---
{context}
--- END Scraped Job Information ---

Analysis Output:
"""


def build_deep_dive_prompt(job_description: str) -> str:
    """Prompt for the single-listing deep dive."""
    tasks = "\n".join(
        f"{number}.  **{title}**"
        for number, title in enumerate(DEEP_DIVE_HEADINGS.values(), start=1)
    )
    return f"""Analyze this job description in detail. Use markdown with bold
headings and bullet points. Cover these sections, in this order, each starting
with its numbered bold heading:

{tasks}

For skills, split Must-Have, Nice-to-Have and Implied skills. If there are no
culture clues or red flags, say so explicitly. Suggest 2-4 questions to ask.

--- JOB DESCRIPTION ---
{job_description}
--- END JOB DESCRIPTION ---

{DEEP_DIVE_MARKER}
"""


# ---------------------------------------------------------------------------
# FOLLOW-UP PROMPTS (single free-text answers, no sections)
# ---------------------------------------------------------------------------

INTERVIEW_QUESTIONS_MARKER = "INTERVIEW QUESTIONS:"
SEARCH_STRATEGY_MARKER = "SEARCH STRATEGY TIPS:"


def build_interview_questions_prompt(job_description: str) -> str:
    """Prompt for likely interview questions for one listing."""
    return f"""You are an expert hiring manager. Based on the job description below,
write 5-7 questions a candidate is likely to be asked in an interview for
this role. Mix technical questions about the skills it lists, behavioral
questions and situational questions about its responsibilities.
Return only a numbered list of questions.

--- JOB DESCRIPTION ---
{job_description}
--- END JOB DESCRIPTION ---

{INTERVIEW_QUESTIONS_MARKER}
"""


def build_skill_gap_prompt(common_stack: str) -> str:
    """Prompt for learning recommendations against a market's common stack."""
    return f"""You are an expert career advisor for software developers. Below is the
common tech stack found across a set of job postings.

Tasks:
1.  Name 2-3 areas (technologies, concepts or skill types) where a junior to
    mid-level candidate is most likely to need development to be competitive
    for these roles. Focus on the most prominent or advanced items.
2.  For each area, suggest 2-3 specific, actionable learning resources:
    course types, documentation, project ideas or tutorials.

Format the answer in markdown with a bold heading per area followed by a
bullet list of resources.

--- COMMON TECH STACK ---
{common_stack}

--- ANALYSIS & RECOMMENDATIONS ---
"""


def build_project_suggestion_prompt(
    my_skills: str,
    required_skills: str,
    gap_skills: list[str],
) -> str:
    """Prompt for one portfolio project covering the skills a candidate lacks."""
    return f"""Context: You are an AI career advisor helping a developer bridge a skill gap.
- The developer's current skills: {my_skills}
- Skills required for the target roles: {required_skills}
- Skills the developer appears to be missing: {", ".join(gap_skills)}

Task: Suggest ONE specific, practical portfolio project, in 3-5 sentences,
that would let the developer learn and demonstrate the missing skills. Where
it makes sense, build on the skills they already have.

Output only the project suggestion text.
"""


def build_resume_fit_prompt(resume_text: str, common_stack: str) -> str:
    """Prompt for a resume-versus-market fitness review."""
    return f"""You are an expert career advisor and resume reviewer. Compare the resume
below against the common tech stack required by the current job market.

Tasks:
1.  **Overall Fitness:** A brief summary (2-3 sentences) of how well the
    resume matches the common requirements.
2.  **Strengths/Matches:** Skills and technologies from the stack that the
    resume clearly shows.
3.  **Potential Gaps:** Important or frequent skills from the stack that are
    missing or not clearly shown.
4.  **ATS Keywords:** 5-10 keywords from the stack to add or emphasize so the
    resume passes applicant tracking systems.

Format the answer in markdown with a bold heading per task.

--- COMMON TECH STACK ---
{common_stack}

--- RESUME TEXT ---
{resume_text}

--- FITNESS ANALYSIS ---
"""


def build_search_strategy_prompt(query: str, summary: str) -> str:
    """
    Prompt for job search tips drawn from a finished market analysis.

    Args:
        query: The role query the analysis was run for
        summary: The analysis sections worth showing, pre-rendered
    """
    return f"""You are an expert career coach. Based on the market analysis summary
below for the role "{query}", give 3-5 specific, actionable job search tips.
Cover target companies or locations, skills to highlight, networking and
application approach. Return only a numbered list of tips.

--- MARKET ANALYSIS SUMMARY ---
{summary}
--- END ANALYSIS SUMMARY ---

{SEARCH_STRATEGY_MARKER}
"""
