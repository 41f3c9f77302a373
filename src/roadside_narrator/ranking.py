"""Significance ranking for discovered points of interest."""

from __future__ import annotations

from typing import Sequence

from .models import PointOfInterest

DEFAULT_SIGNIFICANCE_THRESHOLD = 0.3
DEFAULT_CANDIDATE_CAP = 3


def rank_pois(
    pois: Sequence[PointOfInterest],
    threshold: float = DEFAULT_SIGNIFICANCE_THRESHOLD,
    cap: int = DEFAULT_CANDIDATE_CAP,
) -> list[PointOfInterest]:
    """Return at most ``cap`` POIs scoring above ``threshold``, highest first.

    ``sorted`` is stable, so POIs with equal scores keep their input order.
    """
    if cap <= 0:
        return []
    eligible = [poi for poi in pois if poi.significance_score > threshold]
    eligible = sorted(eligible, key=lambda poi: poi.significance_score, reverse=True)
    return eligible[:cap]


def most_significant(pois: Sequence[PointOfInterest]) -> PointOfInterest | None:
    best: PointOfInterest | None = None
    for poi in pois:
        if best is None or poi.significance_score > best.significance_score:
            best = poi
    return best


def select_candidates(
    pois: Sequence[PointOfInterest],
    threshold: float = DEFAULT_SIGNIFICANCE_THRESHOLD,
    cap: int = DEFAULT_CANDIDATE_CAP,
) -> list[PointOfInterest]:
    """Rank POIs, falling back to the single best one when none clears the threshold."""
    ranked = rank_pois(pois, threshold=threshold, cap=cap)
    if ranked or cap <= 0:
        return ranked

    best = most_significant(pois)
    return [best] if best is not None else []
