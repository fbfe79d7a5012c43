"""
Relevance scoring for catalog search candidates.

Title Tiers (higher = better, first match wins):
    100: EXACT title match
     80: title STARTS WITH the query
     60: title CONTAINS the query
     40: a title word STARTS WITH the query
     20: a title word CONTAINS the query
      0: no match

Year Bonus (only when the query carried a year and the show has one):
    +30: same year
    +10: within 2 years
     +0: otherwise

Scores range 0-130. Title dominates and year only amplifies: exact title with
exact year (130) > exact title with no year data (100) > substring match with
exact year (90).

Comparison is case-insensitive with whitespace trimmed and collapsed.
No regex - string methods only.
"""

from typing import Any

EXACT_SCORE = 100
STARTS_WITH_SCORE = 80
CONTAINS_SCORE = 60
WORD_STARTS_WITH_SCORE = 40
WORD_CONTAINS_SCORE = 20
NO_MATCH_SCORE = 0

EXACT_YEAR_BONUS = 30
NEAR_YEAR_BONUS = 10
NEAR_YEAR_WINDOW = 2

MAX_SCORE = EXACT_SCORE + EXACT_YEAR_BONUS


def normalize_title(value: str | None) -> str:
    """Lowercase, trim and collapse internal whitespace runs to one space."""
    if not value:
        return ""
    return " ".join(value.lower().split())


def title_score(show_title: str | None, search_title: str | None) -> int:
    show = normalize_title(show_title)
    query = normalize_title(search_title)
    if not query or not show:
        return NO_MATCH_SCORE

    if show == query:
        return EXACT_SCORE
    if show.startswith(query):
        return STARTS_WITH_SCORE
    if query in show:
        return CONTAINS_SCORE

    words = show.split(" ")
    if any(word.startswith(query) for word in words):
        return WORD_STARTS_WITH_SCORE
    if any(query in word for word in words):
        return WORD_CONTAINS_SCORE
    return NO_MATCH_SCORE


def _as_year(value: str | int | None) -> int | None:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def year_bonus(show_year: str | int | None, search_year: str | int | None) -> int:
    searched = _as_year(search_year)
    shown = _as_year(show_year)
    if searched is None or shown is None:
        return 0
    delta = abs(shown - searched)
    if delta == 0:
        return EXACT_YEAR_BONUS
    if delta <= NEAR_YEAR_WINDOW:
        return NEAR_YEAR_BONUS
    return 0


def score_title_match(
    show_title: str | None,
    search_title: str | None,
    show_year: str | int | None = None,
    search_year: str | int | None = None,
) -> int:
    """
    Score a candidate against the parsed query.

    Examples:
        score_title_match("The Office", "The Office", "2005", "2005") -> 130
        score_title_match("The Office (US)", "Office") -> 60
    """
    return title_score(show_title, search_title) + year_bonus(show_year, search_year)


def candidate_sort_key(candidate: Any) -> tuple[int, float]:
    """Sort key for enriched candidates: score desc, then popularity desc."""
    return (-candidate.title_match_score, -candidate.show.popularity)
