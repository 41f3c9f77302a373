"""In-memory store of generated stories with similarity and proximity lookups.

Entries live for the lifetime of the process. Nothing is evicted automatically;
only :meth:`ContentCache.delete` and :meth:`ContentCache.clear` remove data.
"""

from __future__ import annotations

import itertools
import logging
import re
import threading
from dataclasses import dataclass
from datetime import datetime, timezone

from .models import (
    CacheStats,
    ContentInput,
    FullStory,
    Location,
    StructuredPOI,
    TextDescription,
    content_input_location,
    haversine_km,
)

DEFAULT_SIMILARITY_THRESHOLD = 0.6
NEARBY_RADIUS_KM = 0.1

_NON_WORD_RE = re.compile(r"[^\w\s]+")


def normalize_text(text: str) -> str:
    return " ".join(_NON_WORD_RE.sub(" ", text.lower()).split())


def fingerprint(content_input: ContentInput) -> str:
    """Exact-match key: identical keys always score 1.0 in :func:`similarity_score`."""
    if isinstance(content_input, TextDescription):
        return f"text:{normalize_text(content_input.description)}"
    location = content_input.location
    return (
        f"poi:{content_input.category.lower()}:{normalize_text(content_input.name)}:"
        f"{location.latitude:.4f}:{location.longitude:.4f}"
    )


def _text_similarity(left: str, right: str) -> float:
    a, b = normalize_text(left), normalize_text(right)
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    if a in b or b in a:
        return 0.8
    words_a, words_b = set(a.split()), set(b.split())
    return 0.7 * len(words_a & words_b) / len(words_a | words_b)


def _poi_similarity(left: StructuredPOI, right: StructuredPOI) -> float:
    if left.category.lower() != right.category.lower():
        return 0.0
    if left.location.distance_km(right.location) > NEARBY_RADIUS_KM:
        return 0.0

    score = 0.7
    name_a, name_b = normalize_text(left.name), normalize_text(right.name)
    if name_a == name_b:
        score += 0.3
    elif name_a and name_b and (name_a in name_b or name_b in name_a):
        score += 0.15
    return min(score, 1.0)


def similarity_score(left: ContentInput, right: ContentInput) -> float:
    """Score two content inputs from 0 (unrelated) to 1 (same subject).

    Free text compares normalized descriptions: equality scores 1.0, containment
    0.8, otherwise 0.7 times the Jaccard overlap of their words. Structured POIs
    must share a category and lie within 100 m; that alone scores 0.7, plus 0.3
    for equal names or 0.15 when one name contains the other. Inputs of
    different kinds never match.
    """
    if isinstance(left, TextDescription) and isinstance(right, TextDescription):
        return _text_similarity(left.description, right.description)
    if isinstance(left, StructuredPOI) and isinstance(right, StructuredPOI):
        return _poi_similarity(left, right)
    return 0.0


@dataclass(slots=True)
class _CacheEntry:
    story: FullStory
    origin: ContentInput
    fingerprint: str
    location: Location | None
    stored_at: datetime
    sequence: int
    access_sequence: int = 0


class ContentCache:
    """Grow-only story store indexed by id, input fingerprint and location."""

    def __init__(
        self,
        *,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        logger: logging.Logger | None = None,
    ) -> None:
        self._similarity_threshold = similarity_threshold
        self._logger = logger or logging.getLogger("roadside_narrator.cache")

        self._entries: dict[str, _CacheEntry] = {}
        self._by_fingerprint: dict[str, set[str]] = {}
        self._lock = threading.RLock()
        self._store_clock = itertools.count(1)
        self._access_clock = itertools.count(1)

    @property
    def similarity_threshold(self) -> float:
        return self._similarity_threshold

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, story_id: object) -> bool:
        with self._lock:
            return story_id in self._entries

    def store(self, story: FullStory, prompt_used: str | None, originating_input: ContentInput) -> FullStory:
        """Insert or overwrite a story and index it for later lookups."""
        stored = story.copy(prompt=prompt_used, access_count=0, last_accessed_at=None)
        key = fingerprint(originating_input)
        location = content_input_location(originating_input) or story.location

        with self._lock:
            self._unindex(story.story_id)
            self._entries[story.story_id] = _CacheEntry(
                story=stored,
                origin=originating_input,
                fingerprint=key,
                location=location,
                stored_at=datetime.now(timezone.utc),
                sequence=next(self._store_clock),
            )
            self._by_fingerprint.setdefault(key, set()).add(story.story_id)

        self._logger.info(
            "content_stored",
            extra={"story_id": story.story_id, "content_size": len(story.content), "fingerprint": key},
        )
        return stored.copy()

    def retrieve(self, story_id: str) -> FullStory | None:
        """Return a story by id, recording the access."""
        with self._lock:
            entry = self._entries.get(story_id)
            if entry is None:
                return None
            entry.story.access_count += 1
            entry.story.last_accessed_at = datetime.now(timezone.utc)
            entry.access_sequence = next(self._access_clock)
            return entry.story.copy()

    def peek(self, story_id: str) -> FullStory | None:
        """Return a story by id without touching access bookkeeping."""
        with self._lock:
            entry = self._entries.get(story_id)
            return entry.story.copy() if entry else None

    def find_similar(self, content_input: ContentInput, limit: int = 5) -> list[FullStory]:
        """Return stored stories whose originating input resembles ``content_input``."""
        if limit <= 0:
            return []

        key = fingerprint(content_input)
        with self._lock:
            exact_ids = self._by_fingerprint.get(key, set())
            scored: list[tuple[float, int, FullStory]] = []
            for entry in self._entries.values():
                if entry.story.story_id in exact_ids:
                    score = 1.0
                else:
                    score = similarity_score(content_input, entry.origin)
                if score >= self._similarity_threshold:
                    scored.append((score, entry.sequence, entry.story))

            scored.sort(key=lambda item: (-item[0], item[1]))
            return [story.copy() for _, _, story in scored[:limit]]

    def find_by_location(
        self,
        latitude: float,
        longitude: float,
        radius_km: float = 10.0,
        limit: int = 5,
    ) -> list[FullStory]:
        """Return stories whose originating location lies within ``radius_km``, nearest first."""
        with self._lock:
            nearby: list[tuple[float, int, FullStory]] = []
            for entry in self._entries.values():
                if entry.location is None:
                    continue
                distance = haversine_km(latitude, longitude, entry.location.latitude, entry.location.longitude)
                if distance <= radius_km:
                    nearby.append((distance, entry.sequence, entry.story))

            nearby.sort(key=lambda item: (item[0], item[1]))
            return [story.copy() for _, _, story in nearby[: max(0, limit)]]

    def list(self, limit: int = 10, offset: int = 0) -> list[FullStory]:
        """Return stored stories, most recently stored first."""
        with self._lock:
            entries = sorted(self._entries.values(), key=lambda entry: entry.sequence, reverse=True)
            return [entry.story.copy() for entry in entries[offset : offset + limit]]

    def get_recently_accessed(self, limit: int = 10) -> list[FullStory]:
        with self._lock:
            accessed = [entry for entry in self._entries.values() if entry.story.access_count > 0]
            accessed.sort(key=lambda entry: entry.access_sequence, reverse=True)
            return [entry.story.copy() for entry in accessed[:limit]]

    def get_most_popular(self, limit: int = 10) -> list[FullStory]:
        with self._lock:
            accessed = [entry for entry in self._entries.values() if entry.story.access_count > 0]
            accessed.sort(key=lambda entry: (entry.story.access_count, entry.access_sequence), reverse=True)
            return [entry.story.copy() for entry in accessed[:limit]]

    def get_stats(self) -> CacheStats:
        with self._lock:
            stories = [entry.story for entry in self._entries.values()]

        total_size = sum(len(story.content) for story in stories)
        total_accesses = sum(story.access_count for story in stories)
        most_accessed_id: str | None = None
        max_accesses = 0
        for story in stories:
            if story.access_count > max_accesses:
                max_accesses = story.access_count
                most_accessed_id = story.story_id

        return CacheStats(
            total=len(stories),
            total_size=total_size,
            average_size=round(total_size / len(stories)) if stories else 0,
            most_accessed_id=most_accessed_id,
            total_accesses=total_accesses,
        )

    def delete(self, story_id: str) -> bool:
        with self._lock:
            if story_id not in self._entries:
                return False
            self._unindex(story_id)

        self._logger.info("content_deleted", extra={"story_id": story_id})
        return True

    def clear(self) -> None:
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
            self._by_fingerprint.clear()

        self._logger.info("content_cleared", extra={"removed": removed})

    def _unindex(self, story_id: str) -> None:
        entry = self._entries.pop(story_id, None)
        if entry is None:
            return
        ids = self._by_fingerprint.get(entry.fingerprint)
        if ids is not None:
            ids.discard(story_id)
            if not ids:
                del self._by_fingerprint[entry.fingerprint]
