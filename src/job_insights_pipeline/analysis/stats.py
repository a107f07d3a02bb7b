"""Frequency statistics over scraped listings."""

from __future__ import annotations

from collections import Counter
from typing import Iterable, Sequence

from job_insights_pipeline.reports.schemas import StatItem
from job_insights_pipeline.retrieval.document import Document

TOP_N = 10


def top_counts(values: Iterable[str | None], limit: int = TOP_N) -> list[StatItem]:
    """
    Most frequent non-blank values.

    Sorted by count descending; ties keep first-appearance order.
    """
    counts = Counter(value.strip() for value in values if value and value.strip())
    return [StatItem(name=name, count=count) for name, count in counts.most_common(limit)]


def clean_location(location: str | None) -> str | None:
    """'Kowloon Bay, Kowloon, HK' -> 'Kowloon Bay'."""
    if not location:
        return None
    return location.split(",")[0].strip() or None


def top_companies(documents: Sequence[Document], limit: int = TOP_N) -> list[StatItem]:
    return top_counts((doc.organization for doc in documents), limit)


def top_locations(documents: Sequence[Document], limit: int = TOP_N) -> list[StatItem]:
    return top_counts((clean_location(doc.location) for doc in documents), limit)


def split_skills(skills: str) -> list[str]:
    """'Python, AWS ,,docker' -> ['python', 'aws', 'docker']."""
    return [skill.strip() for skill in skills.lower().split(",") if skill.strip()]


def missing_skills(my_skills: str, required_skills: str) -> list[str]:
    """Required skills, in their given order, that are absent from my_skills."""
    have = set(split_skills(my_skills))
    return [skill for skill in split_skills(required_skills) if skill not in have]
