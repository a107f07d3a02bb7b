"""
Generation module - raw text answers from a chat model.

1. Protocol (TextGenerator, in core) defines the interface
2. Production implementation (OpenAIGenerator)
3. Test double (MockGenerator)
4. Factory function (get_generator)
"""

from job_insights_pipeline.core import TextGenerator
from job_insights_pipeline.generation.openai_generator import (
    DEFAULT_GENERATION_MODEL,
    MockGenerator,
    OpenAIGenerator,
    get_generator,
    strip_echo_marker,
)

__all__ = [
    "TextGenerator",
    "OpenAIGenerator",
    "MockGenerator",
    "get_generator",
    "strip_echo_marker",
    "DEFAULT_GENERATION_MODEL",
]
