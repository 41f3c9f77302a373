"""Domain models shared by the orchestration, generation and cache layers."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Union

EARTH_RADIUS_KM = 6371.0


class InvalidLocationError(ValueError):
    """Raised when a coordinate falls outside the valid latitude/longitude range."""


class ContentInputError(ValueError):
    """Raised when raw data cannot be normalized into exactly one content input variant."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


@dataclass(slots=True, frozen=True)
class Location:
    """A validated geographic coordinate."""

    latitude: float
    longitude: float
    timestamp: datetime | None = None
    accuracy: float | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.latitude, (int, float)) or not -90.0 <= self.latitude <= 90.0:
            raise InvalidLocationError(f"Latitude must be within [-90, 90], got {self.latitude!r}")
        if not isinstance(self.longitude, (int, float)) or not -180.0 <= self.longitude <= 180.0:
            raise InvalidLocationError(f"Longitude must be within [-180, 180], got {self.longitude!r}")
        if self.accuracy is not None and self.accuracy <= 0:
            raise InvalidLocationError(f"Accuracy must be positive, got {self.accuracy!r}")

    def distance_km(self, other: Location) -> float:
        return haversine_km(self.latitude, self.longitude, other.latitude, other.longitude)

    def as_dict(self) -> dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


class POICategory(str, Enum):
    """Domain tags a discovered place can carry."""

    TOWN = "town"
    COUNTY = "county"
    NEIGHBORHOOD = "neighborhood"
    WATERWAY = "waterway"
    MOUNTAIN = "mountain"
    VALLEY = "valley"
    MAJOR_ROAD = "major_road"
    BRIDGE = "bridge"
    LANDMARK = "landmark"
    AIRPORT = "airport"
    TRAIN_STATION = "train_station"
    INSTITUTION = "institution"
    MUSEUM = "museum"
    LIBRARY = "library"
    PARK = "park"
    SCENIC_OVERLOOK = "scenic_overlook"
    THEATER = "theater"
    CHURCH = "church"
    RELIGIOUS_SITE = "religious_site"
    MILL = "mill"
    FACTORY = "factory"
    STADIUM = "stadium"
    MEMORIAL = "memorial"
    BATTLEFIELD = "battlefield"
    FORT = "fort"
    HISTORIC_ROUTE = "historic_route"
    CANAL = "canal"
    CAVE = "cave"
    FARM = "farm"


class ContentStyle(str, Enum):
    """Narrative emphasis requested from the generation backend."""

    HISTORICAL = "historical"
    CULTURAL = "cultural"
    GEOGRAPHICAL = "geographical"
    MIXED = "mixed"


class StoryStatus(str, Enum):
    READY = "ready"
    GENERATING = "generating"
    ERROR = "error"


@dataclass(slots=True)
class POIMetadata:
    significance_score: float = 0.0
    significance: list[str] = field(default_factory=list)
    population: int | None = None
    founded_year: int | None = None
    elevation: float | None = None


@dataclass(slots=True)
class PointOfInterest:
    """A named, located, categorized place returned by a POI provider."""

    id: str
    name: str
    category: POICategory
    location: Location
    description: str = ""
    metadata: POIMetadata = field(default_factory=POIMetadata)

    @property
    def significance_score(self) -> float:
        return self.metadata.significance_score


@dataclass(slots=True, frozen=True)
class TextDescription:
    """Free-text content input."""

    description: str


@dataclass(slots=True, frozen=True)
class StructuredPOI:
    """Structured content input describing a single place."""

    name: str
    category: str
    location: Location
    description: str | None = None
    location_description: str | None = None
    significance: float | None = None
    tags: tuple[str, ...] = ()

    @classmethod
    def from_poi(cls, poi: PointOfInterest) -> StructuredPOI:
        return cls(
            name=poi.name,
            category=poi.category.value,
            location=poi.location,
            description=poi.description or None,
            significance=poi.significance_score,
            tags=tuple(poi.metadata.significance),
        )


ContentInput = Union[TextDescription, StructuredPOI]

_STRUCTURED_KEYS = ("name", "category", "poi_type", "poiType", "location")


def _parse_location(raw: Any) -> Location:
    if isinstance(raw, Location):
        return raw
    if not isinstance(raw, Mapping):
        raise ContentInputError("Structured input requires a location mapping")
    try:
        return Location(latitude=float(raw["latitude"]), longitude=float(raw["longitude"]))
    except KeyError as exc:
        raise ContentInputError(f"Location is missing {exc.args[0]!r}") from exc
    except (TypeError, ValueError) as exc:
        raise ContentInputError(f"Invalid location: {exc}") from exc


def parse_content_input(raw: Mapping[str, Any]) -> ContentInput:
    """Normalize a raw payload into exactly one content input variant.

    A payload tagged ``{"type": "TextPOIDescription"}`` or carrying only a
    ``description`` becomes a :class:`TextDescription`. A payload tagged
    ``StructuredPOI`` or carrying ``name``/``category``/``location`` becomes a
    :class:`StructuredPOI`. Empty, contradictory or blank payloads are rejected.
    """
    if not isinstance(raw, Mapping) or not raw:
        raise ContentInputError("Content input payload is empty")

    tag = raw.get("type")
    has_structured = any(key in raw for key in _STRUCTURED_KEYS)

    if tag not in (None, "TextPOIDescription", "StructuredPOI"):
        raise ContentInputError(f"Unknown content input type: {tag!r}")

    if tag == "TextPOIDescription" or (tag is None and not has_structured):
        if has_structured:
            raise ContentInputError("Text input must not carry structured POI fields")
        description = raw.get("description")
        if not isinstance(description, str) or not description.strip():
            raise ContentInputError("Text input requires a non-empty description")
        return TextDescription(description=description.strip())

    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ContentInputError("Structured input requires a non-empty name")
    category = raw.get("category") or raw.get("poi_type") or raw.get("poiType")
    if not isinstance(category, str) or not category.strip():
        raise ContentInputError("Structured input requires a category")
    if "location" not in raw:
        raise ContentInputError("Structured input requires a location")

    significance = raw.get("significance")
    return StructuredPOI(
        name=name.strip(),
        category=category.strip(),
        location=_parse_location(raw["location"]),
        description=raw.get("description") or None,
        location_description=raw.get("location_description") or raw.get("locationDescription") or None,
        significance=float(significance) if significance is not None else None,
        tags=tuple(raw.get("tags") or ()),
    )


def describe_content_input(content_input: ContentInput) -> str:
    """Render a single-line description of the input for prompts."""
    if isinstance(content_input, TextDescription):
        return content_input.description

    parts = [f"{content_input.name}, a {content_input.category.replace('_', ' ')}"]
    if content_input.location_description:
        parts[0] += f" in {content_input.location_description}"
    if content_input.description:
        parts.append(content_input.description)
    return ". ".join(parts)


def content_input_location(content_input: ContentInput | None) -> Location | None:
    if isinstance(content_input, StructuredPOI):
        return content_input.location
    return None


@dataclass(slots=True, frozen=True)
class StorySeed:
    """Lightweight candidate story: a title and summary, never the narrative itself."""

    story_id: str
    title: str
    summary: str
    location: Location | None
    content_style: ContentStyle = ContentStyle.MIXED
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(slots=True, frozen=True)
class SeedRecipe:
    """Everything needed to regenerate the full story behind a seed."""

    seed: StorySeed
    origin: ContentInput | None
    style: ContentStyle | None


@dataclass(slots=True)
class FullStory:
    """Complete narrated story plus provenance and cache bookkeeping."""

    story_id: str
    content: str
    duration: int
    content_style: ContentStyle
    title: str = ""
    summary: str = ""
    location: Location | None = None
    prompt: str | None = None
    generated_at: datetime = field(default_factory=_utcnow)
    sources: list[str] = field(default_factory=list)
    status: StoryStatus = StoryStatus.READY
    access_count: int = 0
    last_accessed_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.duration <= 0:
            raise ValueError(f"Story duration must be positive, got {self.duration!r}")

    def copy(self, **changes: Any) -> FullStory:
        if "sources" not in changes:
            changes["sources"] = list(self.sources)
        return replace(self, **changes)


@dataclass(slots=True)
class FullStoryRequest:
    input: ContentInput
    target_duration: int = 180
    content_style: ContentStyle = ContentStyle.MIXED
    story_seed: StorySeed | None = None

    def __post_init__(self) -> None:
        if not 30 <= self.target_duration <= 600:
            raise ValueError(f"Target duration must be within [30, 600] seconds, got {self.target_duration!r}")


@dataclass(slots=True)
class SeedsResponse:
    seeds: list[StorySeed]
    location: Location
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass(slots=True)
class CacheStats:
    total: int
    total_size: int
    average_size: int
    most_accessed_id: str | None
    total_accesses: int
