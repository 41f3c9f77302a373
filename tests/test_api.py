from __future__ import annotations

import pytest

pytest.importorskip("fastapi")
pytest.importorskip("httpx")

from fastapi.testclient import TestClient  # noqa: E402

from roadside_narrator.api import create_app  # noqa: E402
from roadside_narrator.config import Settings  # noqa: E402
from roadside_narrator.journey import build_journey_service  # noqa: E402
from roadside_narrator.models import Location, POICategory, POIMetadata, PointOfInterest  # noqa: E402
from roadside_narrator.providers.llm import MockLLMBackend  # noqa: E402
from roadside_narrator.providers.poi import StaticPOIProvider  # noqa: E402

DOWNTOWN = PointOfInterest(
    id="poi-historic-downtown",
    name="Historic Downtown",
    category=POICategory.LANDMARK,
    location=Location(latitude=40.7128, longitude=-74.006),
    metadata=POIMetadata(significance_score=0.8),
)


@pytest.fixture
def client() -> TestClient:
    config = Settings(openai_api_key=None)
    service = build_journey_service(config, poi_provider=StaticPOIProvider([DOWNTOWN]), backend=MockLLMBackend())
    return TestClient(create_app(service=service, config=config))


def test_location_to_full_story_flow(client: TestClient) -> None:
    response = client.post("/api/journey/location", json={"latitude": 40.7128, "longitude": -74.006})

    assert response.status_code == 200
    body = response.json()
    assert len(body["seeds"]) == 1
    seed = body["seeds"][0]
    assert "Historic Downtown" in seed["title"]
    assert body["location"]["latitude"] == 40.7128

    story = client.get(f"/api/journey/story/{seed['storyId']}")

    assert story.status_code == 200
    payload = story.json()
    assert payload["storyId"] == seed["storyId"]
    assert payload["status"] == "ready"
    assert payload["duration"] > 0
    assert payload["sources"]


def test_out_of_range_location_is_rejected(client: TestClient) -> None:
    response = client.post("/api/journey/location", json={"latitude": 90.0001, "longitude": 0})

    assert response.status_code == 422


def test_unknown_story_is_404(client: TestClient) -> None:
    assert client.get("/api/journey/story/nope").status_code == 404


def test_blank_story_id_is_400(client: TestClient) -> None:
    assert client.get("/api/journey/story/%20").status_code == 400


def test_health_reports_seed_count(client: TestClient) -> None:
    client.post("/api/journey/location", json={"latitude": 0, "longitude": 0})

    assert client.get("/api/journey/health").json() == {"status": "healthy", "stories": 1}


def test_generate_then_inspect_content(client: TestClient) -> None:
    generated = client.post(
        "/api/content/generate",
        json={"input": {"description": "The old mill by the river"}, "content_style": "cultural"},
    )
    assert generated.status_code == 200
    story_id = generated.json()["storyId"]
    assert generated.json()["contentStyle"] == "cultural"

    repeat = client.post("/api/content/generate", json={"input": {"description": "the old mill, by the river"}})
    assert "Cached Content" in repeat.json()["sources"]

    assert client.get(f"/api/content/{story_id}").json()["accessCount"] == 1
    assert [item["storyId"] for item in client.get("/api/content").json()] == [story_id]
    assert [item["storyId"] for item in client.get("/api/content/recent").json()] == [story_id]
    assert [item["storyId"] for item in client.get("/api/content/popular").json()] == [story_id]

    similar = client.post("/api/content/similar", json={"description": "The old mill by the river"})
    assert [item["storyId"] for item in similar.json()] == [story_id]

    stats = client.get("/api/content/admin/stats").json()
    assert stats["storage"]["total"] == 1
    assert stats["status"] == "healthy"


def test_nearby_content_uses_input_location(client: TestClient) -> None:
    generated = client.post(
        "/api/content/generate",
        json={
            "input": {
                "name": "Brooklyn Bridge",
                "category": "bridge",
                "location": {"latitude": 40.7061, "longitude": -73.9969},
            }
        },
    )
    story_id = generated.json()["storyId"]

    nearby = client.get("/api/content/nearby", params={"latitude": 40.7, "longitude": -74.0, "radius_km": 5})

    assert [item["storyId"] for item in nearby.json()] == [story_id]


def test_invalid_content_input_is_400(client: TestClient) -> None:
    response = client.post("/api/content/generate", json={"input": {"description": "   "}})

    assert response.status_code == 400


def test_delete_and_clear_content(client: TestClient) -> None:
    story_id = client.post("/api/content/generate", json={"input": {"description": "granite quarry"}}).json()["storyId"]
    client.post("/api/content/generate", json={"input": {"description": "salt marsh"}})

    assert client.delete(f"/api/content/{story_id}").json() == {"success": True}
    assert client.delete(f"/api/content/{story_id}").status_code == 404
    assert client.get(f"/api/content/{story_id}").status_code == 404
    assert client.get("/api/content/admin/stats").json()["storage"]["total"] == 1

    assert client.delete("/api/content/admin/clear").json() == {"success": True}
    assert client.get("/api/content").json() == []
