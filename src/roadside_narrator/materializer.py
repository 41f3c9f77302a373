"""Resolves story ids to full stories: cached content first, then regeneration from the seed recipe."""

from __future__ import annotations

import asyncio
import logging

from .generation import ContentGenerator, GenerationError
from .models import ContentStyle, FullStory, FullStoryRequest, SeedRecipe, TextDescription
from .orchestrator import SeedRecipeStore


class SeedRecipeError(RuntimeError):
    """Raised when a retained recipe cannot be turned into a generation request."""


class FullStoryMaterializer:
    """Cache-or-compute resolution of story ids produced by the seed orchestrator."""

    def __init__(
        self,
        generator: ContentGenerator,
        recipes: SeedRecipeStore,
        *,
        target_duration: int = 180,
        logger: logging.Logger | None = None,
    ) -> None:
        self._generator = generator
        self._recipes = recipes
        self._target_duration = target_duration
        self._logger = logger or logging.getLogger("roadside_narrator.materializer")
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    async def get_full_story(self, story_id: str) -> FullStory | None:
        cached = self._generator.get_content(story_id)
        if cached is not None:
            self._logger.info("full_story_cache_hit", extra={"story_id": story_id})
            return cached

        recipe = self._recipes.get(story_id)
        if recipe is None:
            self._logger.info("full_story_not_found", extra={"story_id": story_id})
            return None

        lock = self._locks.setdefault(story_id, asyncio.Lock())
        self._waiters[story_id] = self._waiters.get(story_id, 0) + 1
        try:
            async with lock:
                # Another request may have materialized this id while we waited.
                cached = self._generator.get_content(story_id)
                if cached is not None:
                    return cached
                return await self._materialize(story_id, recipe)
        finally:
            self._release(story_id)

    def _release(self, story_id: str) -> None:
        # Kept while any request still holds or awaits the lock.
        remaining = self._waiters.get(story_id, 1) - 1
        if remaining > 0:
            self._waiters[story_id] = remaining
            return
        self._waiters.pop(story_id, None)
        self._locks.pop(story_id, None)

    def build_request(self, recipe: SeedRecipe) -> FullStoryRequest:
        seed = recipe.seed
        if seed is None or not seed.story_id:
            raise SeedRecipeError("Seed recipe has no seed to materialize")

        origin = recipe.origin
        if origin is None:
            origin = TextDescription(description=f"{seed.title}. {seed.summary}")

        return FullStoryRequest(
            input=origin,
            target_duration=self._target_duration,
            content_style=recipe.style or ContentStyle.MIXED,
            story_seed=seed,
        )

    async def _materialize(self, story_id: str, recipe: SeedRecipe) -> FullStory | None:
        request = self.build_request(recipe)
        self._logger.info(
            "full_story_regenerating",
            extra={"story_id": story_id, "style": request.content_style.value},
        )
        try:
            generated = await self._generator.generate_full_story(request)
        except GenerationError:
            self._logger.exception("full_story_generation_failed", extra={"story_id": story_id})
            return None

        seed = recipe.seed
        story = generated.copy(
            story_id=story_id,
            title=seed.title,
            summary=seed.summary,
            location=seed.location,
        )
        cache = self._generator.cache
        if generated.story_id != story_id:
            cache.delete(generated.story_id)
        return cache.store(story, story.prompt, request.input)
