"""Turns a coordinate into story seeds and remembers how to expand each one later."""

from __future__ import annotations

import asyncio
import logging
import threading
from datetime import datetime, timezone
from typing import Sequence
from uuid import uuid4

from .generation import ContentGenerator
from .models import (
    ContentInput,
    ContentStyle,
    Location,
    PointOfInterest,
    SeedRecipe,
    SeedsResponse,
    StorySeed,
    StructuredPOI,
    TextDescription,
)
from .providers.poi import POIProvider
from .ranking import most_significant, select_candidates

FALLBACK_TITLE = "Local Area Information"


class SeedRecipeStore:
    """Thread-safe map of story id to the recipe needed to regenerate it."""

    def __init__(self) -> None:
        self._recipes: dict[str, SeedRecipe] = {}
        self._lock = threading.RLock()

    def put(self, recipe: SeedRecipe) -> None:
        with self._lock:
            self._recipes[recipe.seed.story_id] = recipe

    def get(self, story_id: str) -> SeedRecipe | None:
        with self._lock:
            return self._recipes.get(story_id)

    def __contains__(self, story_id: object) -> bool:
        with self._lock:
            return story_id in self._recipes

    def __len__(self) -> int:
        with self._lock:
            return len(self._recipes)


def fallback_description(location: Location) -> TextDescription:
    return TextDescription(
        description=(
            f"Location at coordinates {location.latitude:.4f}, {location.longitude:.4f}. "
            "This area represents a unique point on the map with its own geographic and cultural characteristics."
        )
    )


class SeedOrchestrator:
    """Discovers, ranks and seeds POIs around a location, with a fallback chain."""

    def __init__(
        self,
        poi_provider: POIProvider,
        generator: ContentGenerator,
        recipes: SeedRecipeStore,
        *,
        radius_meters: int = 5_000,
        max_results: int = 10,
        significance_threshold: float = 0.3,
        max_candidates: int = 3,
        parallel: bool = True,
        logger: logging.Logger | None = None,
    ) -> None:
        self._poi_provider = poi_provider
        self._generator = generator
        self._recipes = recipes
        self._radius_meters = radius_meters
        self._max_results = max_results
        self._significance_threshold = significance_threshold
        self._max_candidates = max_candidates
        self._parallel = parallel
        self._logger = logger or logging.getLogger("roadside_narrator.orchestrator")

    @property
    def recipes(self) -> SeedRecipeStore:
        return self._recipes

    async def seeds_for_location(self, location: Location) -> SeedsResponse:
        """Return at least one seed for ``location``; collaborator failures degrade to the fallback seed."""
        self._logger.info(
            "seed_request_started",
            extra={"latitude": location.latitude, "longitude": location.longitude},
        )
        try:
            pois = await self._poi_provider.discover_pois(
                location,
                radius_meters=self._radius_meters,
                max_results=self._max_results,
            )
        except Exception:  # noqa: BLE001
            self._logger.exception("poi_discovery_failed", extra={"latitude": location.latitude})
            pois = []

        self._logger.info("pois_discovered", extra={"poi_count": len(pois)})

        seeds: list[StorySeed] = []
        if pois:
            candidates = select_candidates(
                pois,
                threshold=self._significance_threshold,
                cap=self._max_candidates,
            )
            seeds = await self._seed_pois(candidates)

            if not seeds:
                best = most_significant(pois)
                self._logger.info("seed_retry_single_poi", extra={"poi_id": best.id if best else None})
                if best is not None:
                    seeds = await self._seed_pois([best])

        if not seeds:
            seeds = [self._fallback_seed(location)]

        return SeedsResponse(seeds=seeds, location=location, timestamp=datetime.now(timezone.utc))

    async def _seed_pois(self, pois: Sequence[PointOfInterest]) -> list[StorySeed]:
        inputs = [StructuredPOI.from_poi(poi) for poi in pois]
        if self._parallel:
            results = await asyncio.gather(
                *(self._generator.generate_story_seeds(item) for item in inputs),
                return_exceptions=True,
            )
        else:
            results = []
            for item in inputs:
                try:
                    results.append(await self._generator.generate_story_seeds(item))
                except Exception as exc:  # noqa: BLE001
                    results.append(exc)

        seeds: list[StorySeed] = []
        for poi, origin, result in zip(pois, inputs, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                self._logger.warning(
                    "poi_seed_generation_failed",
                    extra={"poi_id": poi.id, "poi_name": poi.name, "error": f"{type(result).__name__}: {result}"},
                )
                continue
            for seed in result:
                self._remember(seed, origin, seed.content_style)
                seeds.append(seed)
        return seeds

    def _fallback_seed(self, location: Location) -> StorySeed:
        seed = StorySeed(
            story_id=uuid4().hex,
            title=FALLBACK_TITLE,
            summary=(
                f"Only generic location information is available for "
                f"{location.latitude:.4f}, {location.longitude:.4f}."
            ),
            location=location,
            content_style=ContentStyle.GEOGRAPHICAL,
        )
        self._remember(seed, fallback_description(location), ContentStyle.GEOGRAPHICAL)
        self._logger.info("fallback_seed_created", extra={"story_id": seed.story_id})
        return seed

    def _remember(self, seed: StorySeed, origin: ContentInput | None, style: ContentStyle | None) -> None:
        self._recipes.put(SeedRecipe(seed=seed, origin=origin, style=style))
