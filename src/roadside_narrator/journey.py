"""Journey service facade and the wiring that builds one per process."""

from __future__ import annotations

import logging
from dataclasses import asdict
from datetime import datetime
from typing import Any

from .cache import ContentCache
from .config import Settings
from .generation import ContentGenerator
from .materializer import FullStoryMaterializer
from .models import FullStory, Location, SeedsResponse
from .orchestrator import SeedOrchestrator, SeedRecipeStore
from .providers.llm import LLMBackend, select_llm_backend
from .providers.poi import POIProvider, StaticPOIProvider, load_pois


class JourneyService:
    """Inbound facade: validates coordinates and delegates to the orchestration core."""

    def __init__(
        self,
        orchestrator: SeedOrchestrator,
        materializer: FullStoryMaterializer,
        generator: ContentGenerator,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.materializer = materializer
        self.generator = generator
        self._logger = logger or logging.getLogger("roadside_narrator.journey")

    async def process_location(
        self,
        latitude: float,
        longitude: float,
        timestamp: datetime | None = None,
        accuracy: float | None = None,
    ) -> SeedsResponse:
        """Validate the coordinate, then return story seeds for it.

        Raises ``InvalidLocationError`` before any collaborator is called when
        the coordinate is out of range.
        """
        location = Location(latitude=latitude, longitude=longitude, timestamp=timestamp, accuracy=accuracy)
        response = await self.orchestrator.seeds_for_location(location)
        self._logger.info(
            "location_processed",
            extra={"seed_count": len(response.seeds), "latitude": latitude, "longitude": longitude},
        )
        return response

    async def get_full_story(self, story_id: str) -> FullStory | None:
        if not story_id or not story_id.strip():
            raise ValueError("Story id is required")
        return await self.materializer.get_full_story(story_id.strip())

    def get_health(self) -> dict[str, Any]:
        return {"status": "healthy", "stories": len(self.orchestrator.recipes)}

    @staticmethod
    def format_story(story: FullStory) -> dict[str, Any]:
        return asdict(story)


def _build_poi_provider(config: Settings) -> POIProvider:
    if config.poi_fixture_path:
        return StaticPOIProvider(load_pois(config.poi_fixture_path))
    return StaticPOIProvider()


def build_journey_service(
    config: Settings,
    *,
    poi_provider: POIProvider | None = None,
    backend: LLMBackend | None = None,
    cache: ContentCache | None = None,
    recipes: SeedRecipeStore | None = None,
) -> JourneyService:
    """Wire one process-lifetime set of stores and collaborators."""
    cache = cache if cache is not None else ContentCache(similarity_threshold=config.similarity_threshold)
    recipes = recipes if recipes is not None else SeedRecipeStore()
    generator = ContentGenerator(
        backend or select_llm_backend(config),
        cache,
        timeout_seconds=config.generation_timeout_seconds,
    )
    orchestrator = SeedOrchestrator(
        poi_provider or _build_poi_provider(config),
        generator,
        recipes,
        radius_meters=config.poi_radius_meters,
        max_results=config.poi_max_results,
        significance_threshold=config.significance_threshold,
        max_candidates=config.max_ranked_pois,
        parallel=config.parallel_seed_generation,
    )
    materializer = FullStoryMaterializer(generator, recipes, target_duration=config.default_target_duration)
    return JourneyService(orchestrator, materializer, generator)
