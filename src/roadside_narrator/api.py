"""HTTP surface for the journey and content endpoints."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from fastapi import Body, FastAPI, HTTPException, Query
from pydantic import BaseModel, Field

from .config import Settings, settings
from .journey import JourneyService, build_journey_service
from .models import (
    ContentInput,
    ContentInputError,
    ContentStyle,
    FullStory,
    FullStoryRequest,
    InvalidLocationError,
    Location,
    StorySeed,
    parse_content_input,
)
from .telemetry import configure_logging

logger = logging.getLogger("roadside_narrator.api")


class LocationRequest(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    timestamp: datetime | None = None
    accuracy: float | None = Field(default=None, gt=0)


class GenerateRequest(BaseModel):
    input: dict[str, Any]
    target_duration: int = Field(default=180, ge=30, le=600)
    content_style: ContentStyle = ContentStyle.MIXED


def _location_payload(location: Location | None) -> dict[str, float] | None:
    return location.as_dict() if location else None


def seed_payload(seed: StorySeed) -> dict[str, Any]:
    return {
        "storyId": seed.story_id,
        "title": seed.title,
        "summary": seed.summary,
        "location": _location_payload(seed.location),
        "contentStyle": seed.content_style.value,
        "createdAt": seed.created_at.isoformat(),
    }


def story_payload(story: FullStory) -> dict[str, Any]:
    return {
        "storyId": story.story_id,
        "title": story.title,
        "summary": story.summary,
        "content": story.content,
        "duration": story.duration,
        "status": story.status.value,
        "contentStyle": story.content_style.value,
        "location": _location_payload(story.location),
        "prompt": story.prompt,
        "sources": list(story.sources),
        "generatedAt": story.generated_at.isoformat(),
        "accessCount": story.access_count,
        "lastAccessedAt": story.last_accessed_at.isoformat() if story.last_accessed_at else None,
    }


def _parse_input(raw: dict[str, Any]) -> ContentInput:
    try:
        return parse_content_input(raw)
    except ContentInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def create_app(service: JourneyService | None = None, config: Settings | None = None) -> FastAPI:
    """Create the FastAPI app around one journey service instance.

    Endpoints:
    - POST   /api/journey/location   -> story seeds for a coordinate
    - GET    /api/journey/story/{id} -> full story (generated on first request)
    - GET    /api/journey/health     -> liveness plus retained seed count
    - /api/content/...               -> cache inspection and direct generation
    """
    config = config or settings
    configure_logging(config.log_level)
    service = service or build_journey_service(config)
    generator = service.generator

    app = FastAPI(title="Roadside Narrator", version="0.1.0")
    app.state.journey = service

    @app.post("/api/journey/location")
    async def process_location(body: LocationRequest) -> dict[str, Any]:
        try:
            response = await service.process_location(
                body.latitude,
                body.longitude,
                timestamp=body.timestamp,
                accuracy=body.accuracy,
            )
        except InvalidLocationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        logger.info("POST /api/journey/location", extra={"seed_count": len(response.seeds)})
        return {
            "seeds": [seed_payload(seed) for seed in response.seeds],
            "location": response.location.as_dict(),
            "timestamp": response.timestamp.isoformat(),
        }

    @app.get("/api/journey/story/{story_id}")
    async def get_story(story_id: str) -> dict[str, Any]:
        try:
            story = await service.get_full_story(story_id)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        if story is None:
            raise HTTPException(status_code=404, detail="Story not found")
        return story_payload(story)

    @app.get("/api/journey/health")
    async def health() -> dict[str, Any]:
        return service.get_health()

    @app.post("/api/content/generate")
    async def generate_content(body: GenerateRequest) -> dict[str, Any]:
        request = FullStoryRequest(
            input=_parse_input(body.input),
            target_duration=body.target_duration,
            content_style=body.content_style,
        )
        story = await generator.generate_full_story(request)
        return story_payload(story)

    @app.get("/api/content")
    async def list_content(
        limit: int = Query(10, ge=1, le=100),
        offset: int = Query(0, ge=0),
    ) -> list[dict[str, Any]]:
        return [story_payload(story) for story in generator.list_content(limit=limit, offset=offset)]

    @app.get("/api/content/admin/stats")
    async def stats() -> dict[str, Any]:
        cache_stats = generator.get_stats()
        return {
            "storage": {
                "total": cache_stats.total,
                "totalSize": cache_stats.total_size,
                "averageSize": cache_stats.average_size,
                "mostAccessedId": cache_stats.most_accessed_id,
                "totalAccesses": cache_stats.total_accesses,
            },
            "service": "story",
            "status": "healthy",
        }

    @app.delete("/api/content/admin/clear")
    async def clear_cache() -> dict[str, bool]:
        generator.clear_cache()
        return {"success": True}

    @app.post("/api/content/similar")
    async def similar_content(
        payload: dict[str, Any] = Body(...),
        limit: int = Query(5, ge=1, le=50),
    ) -> list[dict[str, Any]]:
        content_input = _parse_input(payload)
        return [story_payload(story) for story in generator.find_similar_content(content_input, limit=limit)]

    @app.get("/api/content/recent")
    async def recent_content(limit: int = Query(10, ge=1, le=100)) -> list[dict[str, Any]]:
        return [story_payload(story) for story in generator.get_recent_content(limit=limit)]

    @app.get("/api/content/popular")
    async def popular_content(limit: int = Query(10, ge=1, le=100)) -> list[dict[str, Any]]:
        return [story_payload(story) for story in generator.get_popular_content(limit=limit)]

    @app.get("/api/content/nearby")
    async def nearby_content(
        latitude: float = Query(..., ge=-90, le=90),
        longitude: float = Query(..., ge=-180, le=180),
        radius_km: float = Query(10.0, gt=0),
        limit: int = Query(5, ge=1, le=50),
    ) -> list[dict[str, Any]]:
        stories = generator.find_content_by_location(latitude, longitude, radius_km=radius_km, limit=limit)
        return [story_payload(story) for story in stories]

    @app.get("/api/content/{story_id}")
    async def get_content(story_id: str) -> dict[str, Any]:
        story = generator.get_content(story_id)
        if story is None:
            raise HTTPException(status_code=404, detail="Content not found")
        return story_payload(story)

    @app.delete("/api/content/{story_id}")
    async def delete_content(story_id: str) -> dict[str, bool]:
        if not generator.delete_content(story_id):
            raise HTTPException(status_code=404, detail="Content not found")
        return {"success": True}

    return app
