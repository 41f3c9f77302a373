"""Content generation on top of a language-model backend and the content cache."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, TypeVar
from uuid import uuid4

from .cache import ContentCache
from .models import (
    CacheStats,
    ContentInput,
    ContentStyle,
    FullStory,
    FullStoryRequest,
    StorySeed,
    content_input_location,
)
from .providers.llm import GeneratedText, LLMBackend

CACHED_CONTENT_SOURCE = "Cached Content"

T = TypeVar("T")


class GenerationError(RuntimeError):
    """Raised when the backend fails or exceeds the generation timeout."""


class ContentGenerator:
    """Produces story seeds and full stories, serving repeats from the cache."""

    def __init__(
        self,
        backend: LLMBackend,
        cache: ContentCache,
        *,
        timeout_seconds: float = 60.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self._backend = backend
        self._cache = cache
        self._timeout_seconds = timeout_seconds
        self._logger = logger or logging.getLogger("roadside_narrator.generation")

    @property
    def backend(self) -> LLMBackend:
        return self._backend

    @property
    def cache(self) -> ContentCache:
        return self._cache

    async def generate_story_seeds(
        self,
        content_input: ContentInput,
        *,
        style: ContentStyle = ContentStyle.MIXED,
    ) -> list[StorySeed]:
        """Ask the backend for candidate stories and wrap them as seeds with fresh ids."""
        drafts = await self._call(self._backend.generate_seed_drafts, content_input, operation="seeds")
        location = content_input_location(content_input)
        seeds = [
            StorySeed(
                story_id=uuid4().hex,
                title=draft.title,
                summary=draft.summary,
                location=location,
                content_style=style,
            )
            for draft in drafts
        ]
        self._logger.info("seeds_generated", extra={"seed_count": len(seeds), "backend": self._backend.name})
        return seeds

    async def generate_full_story(self, request: FullStoryRequest) -> FullStory:
        """Generate a story for the request, reusing similar cached content for seedless requests.

        Seeded requests always reach the backend: seeds sharing one POI must
        still produce distinct narratives.
        """
        if request.story_seed is None:
            similar = self._cache.find_similar(request.input, limit=1)
            if similar:
                cached = similar[0]
                self._logger.info("cache_hit", extra={"story_id": cached.story_id})
                return cached.copy(sources=[*cached.sources, CACHED_CONTENT_SOURCE])

        generated, prompt = await self._call(self._generate_with_prompt, request, operation="full_story")
        seed = request.story_seed

        story = FullStory(
            story_id=uuid4().hex,
            content=generated.content,
            duration=max(1, int(generated.estimated_duration)),
            content_style=request.content_style,
            title=seed.title if seed else "",
            summary=seed.summary if seed else "",
            location=(seed.location if seed else None) or content_input_location(request.input),
            prompt=prompt,
            sources=list(generated.sources),
        )
        self._cache.store(story, prompt, request.input)
        self._logger.info(
            "full_story_generated",
            extra={"story_id": story.story_id, "duration": story.duration, "backend": self._backend.name},
        )
        return story

    def get_content(self, story_id: str) -> FullStory | None:
        return self._cache.retrieve(story_id)

    def list_content(self, limit: int = 10, offset: int = 0) -> list[FullStory]:
        return self._cache.list(limit=limit, offset=offset)

    def delete_content(self, story_id: str) -> bool:
        return self._cache.delete(story_id)

    def clear_cache(self) -> None:
        self._cache.clear()

    def get_stats(self) -> CacheStats:
        return self._cache.get_stats()

    def find_similar_content(self, content_input: ContentInput, limit: int = 5) -> list[FullStory]:
        return self._cache.find_similar(content_input, limit=limit)

    def get_recent_content(self, limit: int = 10) -> list[FullStory]:
        return self._cache.get_recently_accessed(limit=limit)

    def get_popular_content(self, limit: int = 10) -> list[FullStory]:
        return self._cache.get_most_popular(limit=limit)

    def find_content_by_location(
        self,
        latitude: float,
        longitude: float,
        radius_km: float = 10.0,
        limit: int = 5,
    ) -> list[FullStory]:
        return self._cache.find_by_location(latitude, longitude, radius_km=radius_km, limit=limit)

    def _generate_with_prompt(self, request: FullStoryRequest) -> tuple[GeneratedText, str]:
        prompt = self._backend.generate_prompt(request)
        return self._backend.generate_content(request), prompt

    async def _call(self, fn: Callable[..., T], *args: object, operation: str) -> T:
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=self._timeout_seconds)
        except asyncio.TimeoutError as exc:
            self._logger.warning(
                "generation_timeout",
                extra={"operation": operation, "timeout_seconds": self._timeout_seconds},
            )
            raise GenerationError(
                f"{operation} generation timed out after {self._timeout_seconds}s"
            ) from exc
        except Exception as exc:
            raise GenerationError(f"{operation} generation failed: {type(exc).__name__}: {exc}") from exc
