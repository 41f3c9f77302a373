"""CLI startup entrypoint for Roadside Narrator."""

from __future__ import annotations

import asyncio

import typer
from rich import print

from roadside_narrator.api import seed_payload, story_payload
from roadside_narrator.config import settings
from roadside_narrator.journey import JourneyService, build_journey_service
from roadside_narrator.models import InvalidLocationError
from roadside_narrator.telemetry import configure_logging

app = typer.Typer(help="Roadside Narrator service entrypoint")


def _build_service(poi_fixture: str | None = None) -> JourneyService:
    configure_logging(settings.log_level)
    config = settings.model_copy(update={"poi_fixture_path": poi_fixture}) if poi_fixture else settings
    return build_journey_service(config)


@app.command("config")
def show_config() -> None:
    """Show runtime backend configuration."""
    print(
        {
            "app_name": settings.app_name,
            "llm_backend": "openai" if settings.openai_api_key else "mock",
            "openai_model": settings.openai_model,
            "poi_fixture_path": settings.poi_fixture_path,
            "poi_radius_meters": settings.poi_radius_meters,
            "significance_threshold": settings.significance_threshold,
            "similarity_threshold": settings.similarity_threshold,
        }
    )


@app.command()
def serve(
    host: str = typer.Option(None, help="Bind address"),
    port: int = typer.Option(None, help="Bind port"),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from roadside_narrator.api import create_app

    uvicorn.run(create_app(), host=host or settings.host, port=port or settings.port)


@app.command()
def seeds(
    latitude: float = typer.Option(..., help="Latitude in degrees"),
    longitude: float = typer.Option(..., help="Longitude in degrees"),
    poi_fixture: str = typer.Option(None, help="JSON file of POIs for the static provider"),
) -> None:
    """List story seeds for a coordinate."""
    service = _build_service(poi_fixture)
    try:
        response = asyncio.run(service.process_location(latitude, longitude))
    except InvalidLocationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    print({"location": response.location.as_dict(), "seeds": [seed_payload(seed) for seed in response.seeds]})


@app.command()
def narrate(
    latitude: float = typer.Option(..., help="Latitude in degrees"),
    longitude: float = typer.Option(..., help="Longitude in degrees"),
    poi_fixture: str = typer.Option(None, help="JSON file of POIs for the static provider"),
    pick: int = typer.Option(1, min=1, help="Which seed to narrate (1-based)"),
) -> None:
    """Generate seeds for a coordinate and narrate one of them in full."""
    service = _build_service(poi_fixture)

    async def _run():
        response = await service.process_location(latitude, longitude)
        index = min(pick, len(response.seeds)) - 1
        return await service.get_full_story(response.seeds[index].story_id)

    try:
        story = asyncio.run(_run())
    except InvalidLocationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    if story is None:
        print({"story": None, "error": "Story generation failed"})
        raise typer.Exit(code=1)
    print({"story": story_payload(story)})


if __name__ == "__main__":
    app()
