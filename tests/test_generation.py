from __future__ import annotations

import asyncio
import time

import pytest

from roadside_narrator.cache import ContentCache
from roadside_narrator.generation import CACHED_CONTENT_SOURCE, ContentGenerator, GenerationError
from roadside_narrator.models import (
    ContentStyle,
    FullStoryRequest,
    Location,
    StorySeed,
    StructuredPOI,
    TextDescription,
)
from roadside_narrator.providers.llm import MockLLMBackend


class FailingBackend(MockLLMBackend):
    name = "failing"

    def generate_content(self, request):
        raise RuntimeError("backend down")

    def generate_seed_drafts(self, content_input):
        raise RuntimeError("backend down")


class SlowBackend(MockLLMBackend):
    name = "slow"

    def generate_content(self, request):
        time.sleep(0.2)
        return super().generate_content(request)


def _bridge() -> StructuredPOI:
    return StructuredPOI(
        name="Brooklyn Bridge",
        category="bridge",
        location=Location(latitude=40.7061, longitude=-73.9969),
        description="Opened in 1883",
    )


def test_identical_text_requests_are_served_from_cache() -> None:
    backend = MockLLMBackend()
    generator = ContentGenerator(backend, ContentCache())
    request = FullStoryRequest(input=TextDescription(description="The old mill by the river"))

    first = asyncio.run(generator.generate_full_story(request))
    second = asyncio.run(generator.generate_full_story(request))

    assert backend.content_calls == 1
    assert second.content == first.content
    assert CACHED_CONTENT_SOURCE not in first.sources
    assert CACHED_CONTENT_SOURCE in second.sources
    assert second.sources[:-1] == first.sources


def test_fresh_story_is_stored_with_prompt_and_location() -> None:
    cache = ContentCache()
    generator = ContentGenerator(MockLLMBackend(), cache)

    story = asyncio.run(
        generator.generate_full_story(FullStoryRequest(input=_bridge(), content_style=ContentStyle.HISTORICAL))
    )

    assert story.duration > 0
    assert story.content_style == ContentStyle.HISTORICAL
    assert story.location == _bridge().location
    assert story.prompt and "Brooklyn Bridge" in story.prompt
    assert story.story_id in cache
    assert cache.peek(story.story_id).prompt == story.prompt


def test_seeded_requests_bypass_similarity_dedup() -> None:
    backend = MockLLMBackend()
    generator = ContentGenerator(backend, ContentCache())
    seeds = [
        StorySeed(story_id=f"seed-{index}", title=f"Story {index}", summary="...", location=_bridge().location)
        for index in range(2)
    ]

    stories = [
        asyncio.run(generator.generate_full_story(FullStoryRequest(input=_bridge(), story_seed=seed)))
        for seed in seeds
    ]

    assert backend.content_calls == 2
    assert stories[0].content != stories[1].content
    assert stories[0].title == "Story 0"


def test_generate_story_seeds_assigns_unique_ids_and_location() -> None:
    generator = ContentGenerator(MockLLMBackend(), ContentCache())

    first = asyncio.run(generator.generate_story_seeds(_bridge()))
    second = asyncio.run(generator.generate_story_seeds(_bridge(), style=ContentStyle.CULTURAL))

    assert len(first) == 1
    assert first[0].story_id != second[0].story_id
    assert "Brooklyn Bridge" in first[0].title
    assert first[0].location == _bridge().location
    assert second[0].content_style == ContentStyle.CULTURAL


def test_backend_errors_become_generation_errors() -> None:
    generator = ContentGenerator(FailingBackend(), ContentCache())

    with pytest.raises(GenerationError, match="backend down"):
        asyncio.run(generator.generate_story_seeds(_bridge()))
    with pytest.raises(GenerationError):
        asyncio.run(generator.generate_full_story(FullStoryRequest(input=_bridge())))


def test_generation_timeout() -> None:
    cache = ContentCache()
    generator = ContentGenerator(SlowBackend(), cache, timeout_seconds=0.01)

    with pytest.raises(GenerationError, match="timed out"):
        asyncio.run(generator.generate_full_story(FullStoryRequest(input=_bridge())))
    assert len(cache) == 0


def test_admin_passthroughs() -> None:
    generator = ContentGenerator(MockLLMBackend(), ContentCache())
    story = asyncio.run(generator.generate_full_story(FullStoryRequest(input=_bridge())))

    assert generator.get_content(story.story_id).access_count == 1
    assert [item.story_id for item in generator.get_recent_content()] == [story.story_id]
    assert [item.story_id for item in generator.get_popular_content()] == [story.story_id]
    assert [item.story_id for item in generator.find_content_by_location(40.7061, -73.9969, radius_km=1)] == [
        story.story_id
    ]
    assert generator.get_stats().total == 1
    assert generator.delete_content(story.story_id) is True
    generator.clear_cache()
    assert generator.list_content() == []


class BrokenPromptBackend(MockLLMBackend):
    def generate_prompt(self, request):
        raise KeyError("style")


def test_prompt_errors_become_generation_errors() -> None:
    cache = ContentCache()
    generator = ContentGenerator(BrokenPromptBackend(), cache)

    with pytest.raises(GenerationError, match="style"):
        asyncio.run(generator.generate_full_story(FullStoryRequest(input=_bridge())))
    assert len(cache) == 0
