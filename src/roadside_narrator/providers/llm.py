"""Language-model backends that turn prompts into narrative text.

Two implementations share the :class:`LLMBackend` contract: a deterministic
mock used offline and in tests, and an OpenAI-backed one. The choice is made
once, when the service is built, from the configured API key.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from roadside_narrator.config import Settings
from roadside_narrator.models import (
    ContentInput,
    ContentStyle,
    FullStoryRequest,
    StructuredPOI,
    TextDescription,
)
from roadside_narrator.prompts import (
    NARRATOR_SYSTEM,
    get_seed_focus_prompt,
    get_story_prompt,
    get_story_seeds_prompt,
)

WORDS_PER_MINUTE = 155

_SUMMARY_RE = re.compile(r"SUMMARY:\s*(.+?)(?=TITLE:|$)", re.IGNORECASE | re.DOTALL)
_TITLE_RE = re.compile(r"TITLE:\s*(.+?)$", re.IGNORECASE | re.MULTILINE)
_SECTION_RE = re.compile(r"(?=SUMMARY:)", re.IGNORECASE)


class LLMUnavailableError(RuntimeError):
    """Raised when a backend cannot be used (missing credentials or SDK)."""


@dataclass(slots=True)
class GeneratedText:
    content: str
    estimated_duration: int
    sources: list[str] = field(default_factory=list)


@dataclass(slots=True)
class SeedDraft:
    title: str
    summary: str


class LLMBackend(Protocol):
    """Generation capability consumed by the content generator."""

    name: str

    def generate_content(self, request: FullStoryRequest) -> GeneratedText:
        """Produce narrative text for the request."""

    def generate_prompt(self, request: FullStoryRequest) -> str:
        """Return the exact prompt used for ``generate_content``."""

    def generate_seed_drafts(self, content_input: ContentInput) -> list[SeedDraft]:
        """Propose candidate story titles and summaries for an input."""


def build_prompt(request: FullStoryRequest) -> str:
    prompt = get_story_prompt(request.input, request.content_style, request.target_duration)
    if request.story_seed is not None:
        prompt += "\n\n" + get_seed_focus_prompt(request.story_seed.title, request.story_seed.summary)
    return prompt


def estimate_duration(content: str, *, pause_per_sentence: float = 0.0) -> int:
    """Estimate spoken duration in seconds at an average narration pace."""
    words = len(content.split())
    seconds = words / WORDS_PER_MINUTE * 60
    if pause_per_sentence:
        sentences = len([part for part in re.split(r"[.!?]+", content) if part.strip()])
        seconds += sentences * pause_per_sentence
    return max(1, round(seconds))


def parse_seed_drafts(text: str) -> list[SeedDraft]:
    """Parse ``SUMMARY:``/``TITLE:`` blocks from a seed-generation response."""
    if "no story ideas" in text.lower():
        return []

    drafts: list[SeedDraft] = []
    for section in _SECTION_RE.split(text):
        summary_match = _SUMMARY_RE.search(section)
        title_match = _TITLE_RE.search(section)
        if not summary_match or not title_match:
            continue
        summary = summary_match.group(1).strip()
        title = title_match.group(1).strip()
        if summary and title:
            drafts.append(SeedDraft(title=title, summary=summary))
    return drafts


def _subject(content_input: ContentInput) -> str:
    if isinstance(content_input, TextDescription):
        return content_input.description
    return content_input.name


_STYLE_CONTEXT = {
    ContentStyle.HISTORICAL: (
        "The historical significance of this area dates back several generations, with events that shaped "
        "the local community and the wider region."
    ),
    ContentStyle.CULTURAL: (
        "This location holds special cultural meaning, reflecting the artistic, social, and community values "
        "of the people who live here."
    ),
    ContentStyle.GEOGRAPHICAL: (
        "The geographical features of this area tell a story of natural processes, climate patterns, and the "
        "environmental character that makes the landscape distinctive."
    ),
    ContentStyle.MIXED: (
        "This place combines historical significance, cultural importance, and geographical features that make "
        "it a noteworthy stop on any journey."
    ),
}


class MockLLMBackend:
    """Deterministic offline backend used when no API key is configured."""

    name = "mock"

    def __init__(self) -> None:
        self.content_calls = 0
        self.seed_calls = 0

    def generate_content(self, request: FullStoryRequest) -> GeneratedText:
        self.content_calls += 1
        subject = _subject(request.input)
        where = ""
        if isinstance(request.input, StructuredPOI) and request.input.location_description:
            where = f" in {request.input.location_description}"
        focus = f" Today's story: {request.story_seed.title}." if request.story_seed else ""

        content = (
            f"Coming up on the road is {subject}{where}.{focus}\n\n"
            f"{_STYLE_CONTEXT[request.content_style]}\n\n"
            "Travelers have passed this way for generations, and each of them left a little of their own story "
            "behind. From its early days to the present, this place has witnessed human endeavor, natural "
            "beauty, and the slow work of time on the land.\n\n"
            "Take a moment to look out of the window. The landscape keeps changing, shaped by both natural "
            "forces and the people who settled here, and every mile adds another layer to the journey.\n\n"
            f"That is the story of {subject}. Keep your eyes open for the next landmark on the route."
        )
        return GeneratedText(
            content=content,
            estimated_duration=estimate_duration(content),
            sources=["Mock LLM Service", "Generated Content"],
        )

    def generate_prompt(self, request: FullStoryRequest) -> str:
        return build_prompt(request)

    def generate_seed_drafts(self, content_input: ContentInput) -> list[SeedDraft]:
        self.seed_calls += 1
        if isinstance(content_input, TextDescription):
            return [
                SeedDraft(
                    title="Around This Spot",
                    summary=f"A look at the area described as: {content_input.description}",
                )
            ]

        summary = (
            f"{content_input.name} is a notable {content_input.category.replace('_', ' ')} near the route. "
            + (content_input.description or "Its origins and the people connected to it make for a good story.")
        )
        return [SeedDraft(title=f"The Story of {content_input.name}", summary=summary)]


class OpenAILLMBackend:
    """Chat-completions backend using the official ``openai`` client."""

    name = "openai"

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str = "gpt-4o-mini",
        client: Any | None = None,
        max_retries: int = 3,
        retry_delay_seconds: float = 1.0,
        max_tokens: int = 800,
        temperature: float = 0.7,
        sleep: Callable[[float], None] = time.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        if client is None:
            if not api_key:
                raise LLMUnavailableError("OpenAI API key not configured. Set OPENAI_API_KEY to use OpenAI.")
            try:
                from openai import OpenAI
            except ImportError as exc:  # pragma: no cover - import guard
                raise LLMUnavailableError("The openai package is not installed.") from exc
            client = OpenAI(api_key=api_key)

        self._client = client
        self.model = model
        self._max_retries = max(1, max_retries)
        self._retry_delay_seconds = retry_delay_seconds
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._sleep = sleep
        self._logger = logger or logging.getLogger("roadside_narrator.llm")

    def generate_content(self, request: FullStoryRequest) -> GeneratedText:
        content = self._complete(self.generate_prompt(request))
        return GeneratedText(
            content=content,
            estimated_duration=estimate_duration(content, pause_per_sentence=0.5),
            sources=["OpenAI", self.model],
        )

    def generate_prompt(self, request: FullStoryRequest) -> str:
        return build_prompt(request)

    def generate_seed_drafts(self, content_input: ContentInput) -> list[SeedDraft]:
        return parse_seed_drafts(self._complete(get_story_seeds_prompt(content_input)))

    def _complete(self, prompt: str) -> str:
        messages = [
            {"role": "system", "content": NARRATOR_SYSTEM},
            {"role": "user", "content": prompt},
        ]
        for attempt in range(1, self._max_retries + 1):
            try:
                response = self._client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    max_tokens=self._max_tokens,
                    temperature=self._temperature,
                )
                if not response.choices:
                    raise RuntimeError("No content generated by OpenAI")
                content = (response.choices[0].message.content or "").strip()
                if not content:
                    raise RuntimeError("Empty content generated by OpenAI")

                usage = getattr(response, "usage", None)
                if usage is not None:
                    self._logger.info(
                        "openai_usage",
                        extra={
                            "prompt_tokens": usage.prompt_tokens,
                            "completion_tokens": usage.completion_tokens,
                            "total_tokens": usage.total_tokens,
                        },
                    )
                return content
            except Exception:
                self._logger.warning("openai_attempt_failed", extra={"attempt": attempt}, exc_info=True)
                if attempt == self._max_retries:
                    raise
                self._sleep(self._retry_delay_seconds * 2 ** (attempt - 1))

        raise RuntimeError("All OpenAI attempts failed")


def select_llm_backend(config: Settings) -> LLMBackend:
    """Pick the generation backend once, from the presence of an API key."""
    if config.openai_api_key:
        return OpenAILLMBackend(api_key=config.openai_api_key, model=config.openai_model)
    return MockLLMBackend()
