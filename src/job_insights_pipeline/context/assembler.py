"""
Context assembly - render retrieved listings into one bounded prompt block.

Rendering is a single pass in input order. An oversized result is cut to
exactly max_chars and the truncation marker appended; the cut is by
characters, never by dropping whole listings.
"""

from __future__ import annotations

import logging
from typing import Sequence, Union

from job_insights_pipeline.core import Candidate
from job_insights_pipeline.retrieval.document import Document

logger = logging.getLogger(__name__)

NO_DATA_SENTINEL = "No valid job details available for analysis."
TRUNCATION_MARKER = "\n\n... (Context Truncated) ..."
BLOCK_SEPARATOR = "\n\n---\n\n"
DEFAULT_MAX_CONTEXT_CHARS = 800_000

ContextItem = Union[Candidate, Document]


class ContextAssembler:
    """
    Renders candidates as numbered job blocks.

    Labels are configurable so prompt wording stays out of code.
    """

    def __init__(
        self,
        block_label: str = "Job",
        title_label: str = "Title",
        organization_label: str = "Company",
        location_label: str = "Location",
        id_label: str = "URL",
        body_label: str = "Description",
        missing_value: str = "N/A",
        missing_body: str = "No description available.",
        separator: str = BLOCK_SEPARATOR,
        no_data: str = NO_DATA_SENTINEL,
        truncation_marker: str = TRUNCATION_MARKER,
    ):
        self.block_label = block_label
        self.title_label = title_label
        self.organization_label = organization_label
        self.location_label = location_label
        self.id_label = id_label
        self.body_label = body_label
        self.missing_value = missing_value
        self.missing_body = missing_body
        self.separator = separator
        self.no_data = no_data
        self.truncation_marker = truncation_marker

    def render(self, position: int, item: ContextItem) -> str:
        """One block; `position` is 1-based."""
        if isinstance(item, Document):
            body = item.body
        else:
            body = item.document

        lines = [
            f"{self.block_label} {position}:",
            f"{self.title_label}: {item.title or self.missing_value}",
            f"{self.organization_label}: {item.organization or self.missing_value}",
            f"{self.location_label}: {item.location or self.missing_value}",
            f"{self.id_label}: {item.id}",
            f"{self.body_label}: {body or self.missing_body}",
        ]
        return "\n".join(lines)

    def assemble(
        self,
        candidates: Sequence[ContextItem],
        max_chars: int = DEFAULT_MAX_CONTEXT_CHARS,
    ) -> str:
        """
        Build the context string.

        Returns the no-data sentinel for an empty list. Raises ValueError if
        max_chars is not positive.
        """
        if max_chars <= 0:
            raise ValueError(f"max_chars must be positive, got {max_chars}")
        if not candidates:
            return self.no_data

        context = self.separator.join(
            self.render(position, item) for position, item in enumerate(candidates, start=1)
        )

        if len(context) > max_chars:
            logger.warning(
                "Context length (%d chars) exceeds limit %d, truncating",
                len(context), max_chars,
            )
            context = context[:max_chars] + self.truncation_marker

        logger.debug("Prepared context: %d blocks, %d chars", len(candidates), len(context))
        return context
