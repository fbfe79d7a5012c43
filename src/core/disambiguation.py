"""
Disambiguation of duplicate catalog entries.

The catalog can list one real-world show under several ids (reboot entries,
region variants). Candidates sharing a normalized title and first-air year are
collapsed into the first-seen member, which absorbs the others' availability
and catalog ids.
"""

from enum import Enum

from api.tmdb.models import SeasonAvailability, dedupe_offers
from contracts.errors import InvalidParameter
from contracts.models import EnrichedCandidate
from core.ranking import candidate_sort_key, normalize_title
from utils.get_logger import get_logger

logger = get_logger(__name__)


class MergeScorePolicy(str, Enum):
    """Which member score a merged group keeps.

    FIRST keeps the first-seen member's score even when a later duplicate
    scored higher. MAX keeps the best score in the group.
    """

    FIRST = "first"
    MAX = "max"

    @classmethod
    def parse(cls, value: "str | MergeScorePolicy") -> "MergeScorePolicy":
        if isinstance(value, cls):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise InvalidParameter(f"merge score policy must be 'first' or 'max', got {value!r}")


def disambiguation_key(title: str | None, year: str | None) -> str:
    return f"{normalize_title(title)}|{year or ''}"


def _union_seasons(
    left: list[SeasonAvailability], right: list[SeasonAvailability]
) -> list[SeasonAvailability]:
    by_number: dict[int, SeasonAvailability] = {s.season_number: s for s in left}
    for season in right:
        existing = by_number.get(season.season_number)
        by_number[season.season_number] = season if existing is None else existing.union(season)
    return [by_number[n] for n in sorted(by_number)]


def merge_pair(
    base: EnrichedCandidate,
    other: EnrichedCandidate,
    score_policy: MergeScorePolicy = MergeScorePolicy.FIRST,
) -> EnrichedCandidate:
    """Fold `other` into `base`, returning a new candidate. Inputs are not modified."""
    score = base.title_match_score
    if score_policy == MergeScorePolicy.MAX:
        score = max(score, other.title_match_score)

    return base.model_copy(
        update={
            "availability": base.availability.union(other.availability),
            "providers": dedupe_offers(base.providers + other.providers),
            "season_availability": _union_seasons(
                base.season_availability, other.season_availability
            ),
            "total_seasons": max(base.total_seasons, other.total_seasons),
            "catalog_ids": base.catalog_ids | other.catalog_ids,
            # Pool membership is monotone under union, so OR equals re-filtering
            "matches_filters": base.matches_filters or other.matches_filters,
            "title_match_score": score,
        }
    )


def group_candidates(
    candidates: list[EnrichedCandidate],
    score_policy: MergeScorePolicy = MergeScorePolicy.FIRST,
) -> list[EnrichedCandidate]:
    """Collapse duplicate groups, preserving first-seen order. No filtering or sorting."""
    groups: dict[str, EnrichedCandidate] = {}
    for candidate in candidates:
        key = disambiguation_key(candidate.show.title, candidate.year)
        existing = groups.get(key)
        if existing is None:
            groups[key] = candidate
        else:
            logger.debug(
                f"Merging duplicate {key!r}: {sorted(existing.catalog_ids)} + "
                f"{sorted(candidate.catalog_ids)}"
            )
            groups[key] = merge_pair(existing, candidate, score_policy)
    return list(groups.values())


def merge_candidates(
    candidates: list[EnrichedCandidate],
    score_policy: MergeScorePolicy | str = MergeScorePolicy.FIRST,
) -> list[EnrichedCandidate]:
    """
    Merge duplicates, drop candidates failing the provider filter, and rank.

    Ordering is score desc then popularity desc; ties keep first-seen order.
    """
    policy = MergeScorePolicy.parse(score_policy)
    merged = group_candidates(candidates, policy)
    kept = [c for c in merged if c.matches_filters]
    return sorted(kept, key=candidate_sort_key)
