"""
Document model for the retrieval system.

Single responsibility: define a scraped job listing and the rule that
decides whether it is worth indexing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

SNIPPET_CHARS = 150

# Placeholder bodies the scraper writes when a detail page could not be fetched
DEFAULT_FAILURE_SENTINELS: tuple[str, ...] = (
    "Failed to fetch description",
    "No URL found",
    "No description available (Extractor failed).",
    "could not extract description",
    "failed/timed out",
)


def _text(value: Any) -> str | None:
    """Scraped field as text; numbers are stringified, other non-strings dropped."""
    if isinstance(value, str):
        return value or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


@dataclass(frozen=True)
class Document:
    """
    A scraped job listing.

    `id` is the canonical listing URL and doubles as the vector-store
    primary key. A re-scrape produces a new Document that replaces the old
    record by upsert; Documents are never edited in place.
    """
    id: str
    body: str | None = None
    title: str | None = None
    organization: str | None = None
    location: str | None = None

    def is_eligible(
        self,
        failure_sentinels: Iterable[str] = DEFAULT_FAILURE_SENTINELS,
    ) -> bool:
        """True if the document has an id and a real (non-placeholder) body."""
        if not isinstance(self.id, str) or not self.id.strip():
            return False
        if not isinstance(self.body, str) or not self.body.strip():
            return False
        lowered = self.body.lower()
        return not any(s.lower() in lowered for s in failure_sentinels)

    @property
    def snippet(self) -> str:
        """Short preview of the body for list displays."""
        if not self.body:
            return ""
        if len(self.body) <= SNIPPET_CHARS:
            return self.body
        return self.body[:SNIPPET_CHARS] + "..."

    def to_metadata(self) -> dict[str, Any]:
        """Display metadata stored next to the vector."""
        metadata = {
            "title": self.title,
            "organization": self.organization,
            "location": self.location,
            "snippet": self.snippet or None,
        }
        return {key: value for key, value in metadata.items() if value is not None}

    @classmethod
    def from_scraped(cls, record: dict[str, Any]) -> "Document":
        """Build from the scraper's record shape (url/company_name/description)."""
        return cls(
            id=(_text(record.get("url")) or _text(record.get("id")) or "").strip(),
            body=_text(record.get("description")) or _text(record.get("body")),
            title=_text(record.get("title")),
            organization=_text(record.get("company_name")) or _text(record.get("organization")),
            location=_text(record.get("location")),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "organization": self.organization,
            "location": self.location,
            "body": self.body,
        }
