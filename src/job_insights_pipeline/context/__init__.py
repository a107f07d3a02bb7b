"""Context module - bounded prompt context from retrieved listings."""

from job_insights_pipeline.context.assembler import (
    BLOCK_SEPARATOR,
    DEFAULT_MAX_CONTEXT_CHARS,
    NO_DATA_SENTINEL,
    TRUNCATION_MARKER,
    ContextAssembler,
)

__all__ = [
    "ContextAssembler",
    "NO_DATA_SENTINEL",
    "TRUNCATION_MARKER",
    "BLOCK_SEPARATOR",
    "DEFAULT_MAX_CONTEXT_CHARS",
]
