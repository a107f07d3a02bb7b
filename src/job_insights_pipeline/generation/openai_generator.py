"""
Text generation - Single Responsibility: prompt in, raw answer text out.

The generator does not parse anything; callers feed its output to the
report parser. Provider failures, blocked answers and empty answers all
surface as ProviderError, since there is nothing to parse in those cases.
"""

from __future__ import annotations

import logging
import os
import re

import openai
from openai import AsyncOpenAI

from job_insights_pipeline.core import ProviderError
from job_insights_pipeline.observability import get_config, get_tracer
from job_insights_pipeline.observability.attributes import (
    GEN_AI_COMPLETION,
    GEN_AI_PROMPT,
    GEN_AI_USAGE_INPUT_TOKENS,
    GEN_AI_USAGE_OUTPUT_TOKENS,
    generation_attributes,
)

logger = logging.getLogger(__name__)

DEFAULT_GENERATION_MODEL = "gpt-4o-mini"


def strip_echo_marker(text: str, marker: str) -> str:
    """Remove an output marker the model repeated at the start of its answer.

    A trailing colon on the marker is optional in the answer.
    """
    head = re.escape(marker.rstrip(":"))
    pattern = re.compile(rf"^\s*{head}:?\s*", re.IGNORECASE)
    return pattern.sub("", text, count=1).strip()


class OpenAIGenerator:
    """
    Chat-completion backed generator.

    A completion stopped by the content filter is treated as blocked. One
    cut short by the token limit is returned as is, with a warning.
    """

    def __init__(
        self,
        model: str = DEFAULT_GENERATION_MODEL,
        api_key: str | None = None,
        system_prompt: str | None = None,
        client: AsyncOpenAI | None = None,
        max_retries: int = 0,
    ):
        self.model = model
        self.system_prompt = system_prompt
        self._client = client or AsyncOpenAI(
            api_key=api_key or os.environ.get("OPENAI_API_KEY"),
            max_retries=max_retries,
        )

    def _messages(self, prompt: str) -> list[dict[str, str]]:
        messages = []
        if self.system_prompt:
            messages.append({"role": "system", "content": self.system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    async def generate(self, prompt: str) -> str:
        """Return the answer text for one prompt."""
        capture = get_config().capture_content

        with get_tracer().start_span(
            "generation.chat", attributes=generation_attributes(self.model)
        ) as span:
            if capture:
                span.set_attribute(GEN_AI_PROMPT, prompt)

            try:
                response = await self._client.chat.completions.create(
                    model=self.model,
                    messages=self._messages(prompt),
                )
            except openai.APIStatusError as e:
                span.set_status("error", e.message)
                raise ProviderError(e.message, status_code=e.status_code) from e
            except openai.OpenAIError as e:
                span.set_status("error", str(e))
                raise ProviderError(str(e)) from e

            usage = getattr(response, "usage", None)
            if usage is not None:
                span.set_attribute(GEN_AI_USAGE_INPUT_TOKENS, usage.prompt_tokens)
                span.set_attribute(GEN_AI_USAGE_OUTPUT_TOKENS, usage.completion_tokens)

            if not response.choices:
                raise ProviderError("generation response contained no choices")

            choice = response.choices[0]
            if choice.finish_reason == "content_filter":
                span.set_status("error", "content_filter")
                raise ProviderError("Request blocked by content filter")
            if choice.finish_reason == "length":
                logger.warning("Generation hit the token limit; answer may be incomplete")

            text = (choice.message.content or "").strip()
            if not text:
                span.set_status("error", "empty answer")
                raise ProviderError("Received empty answer from the model")

            if capture:
                span.set_attribute(GEN_AI_COMPLETION, text)
            span.set_status("ok")

        logger.debug("Generated %d chars with %s", len(text), self.model)
        return text


class MockGenerator:
    """
    Canned-answer generator for tests.

    Returns `response` for every prompt (or raises `error` if set) and
    records each prompt in `prompts`.
    """

    def __init__(self, response: str = "", error: Exception | None = None):
        self.response = response
        self.error = error
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response


def get_generator(
    use_mock: bool = False,
    model: str = DEFAULT_GENERATION_MODEL,
    api_key: str | None = None,
    system_prompt: str | None = None,
) -> OpenAIGenerator | MockGenerator:
    """Factory function to get the appropriate generator."""
    if use_mock:
        return MockGenerator()
    return OpenAIGenerator(model=model, api_key=api_key, system_prompt=system_prompt)
