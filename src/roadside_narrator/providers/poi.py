"""Boundary for point-of-interest discovery backends."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Mapping, Protocol

from roadside_narrator.models import Location, POICategory, POIMetadata, PointOfInterest


class POIProvider(Protocol):
    """Discovers points of interest around a location."""

    async def discover_pois(
        self,
        location: Location,
        *,
        radius_meters: int,
        max_results: int,
    ) -> list[PointOfInterest]:
        """Return POIs within ``radius_meters`` of ``location``, most significant first."""


class StaticPOIProvider:
    """Serves a fixed POI catalogue, filtered by distance from the query point."""

    def __init__(self, pois: Iterable[PointOfInterest] = ()) -> None:
        self._pois = list(pois)

    async def discover_pois(
        self,
        location: Location,
        *,
        radius_meters: int,
        max_results: int,
    ) -> list[PointOfInterest]:
        radius_km = radius_meters / 1000.0
        nearby = [poi for poi in self._pois if location.distance_km(poi.location) <= radius_km]
        nearby.sort(key=lambda poi: poi.significance_score, reverse=True)
        return nearby[:max_results]


def poi_from_dict(payload: Mapping[str, Any]) -> PointOfInterest:
    location = payload["location"]
    metadata = payload.get("metadata") or {}
    return PointOfInterest(
        id=str(payload["id"]),
        name=payload["name"],
        category=POICategory(payload["category"]),
        location=Location(latitude=float(location["latitude"]), longitude=float(location["longitude"])),
        description=payload.get("description", ""),
        metadata=POIMetadata(
            significance_score=float(metadata.get("significance_score", 0.0)),
            significance=list(metadata.get("significance", [])),
            population=metadata.get("population"),
            founded_year=metadata.get("founded_year"),
            elevation=metadata.get("elevation"),
        ),
    )


def load_pois(file_path: str | Path) -> list[PointOfInterest]:
    """Load a JSON array of POI records, as written by fixture exports."""
    payload = json.loads(Path(file_path).read_text(encoding="utf-8"))
    if not isinstance(payload, list):
        raise ValueError(f"POI fixture must be a JSON array: {file_path}")
    return [poi_from_dict(item) for item in payload]
