"""
Disambiguation-year parsing for search queries.

"Loki (2021)" and "The Office 2005" carry a trailing year that narrows which
catalog entry the user means. The year is split off; the rest is the title
used for both the catalog lookup and scoring.

A query that is nothing but a year ("1899") stays a title: there is no
remainder to search for.
"""

import re
from dataclasses import dataclass

from contracts.errors import InvalidQuery

_PARENTHESIZED_YEAR = re.compile(r"^(.+?)\s*\((\d{4})\)$")
_BARE_YEAR = re.compile(r"^(.+?)\s+(\d{4})$")


@dataclass(frozen=True)
class ParsedQuery:
    original_query: str
    title: str
    year: str | None = None


def parse_search_query(raw: str | None) -> ParsedQuery:
    """
    Split a raw query into title and optional trailing year.

    Raises:
        InvalidQuery: if nothing is left to search for after trimming
    """
    original = raw or ""
    text = original.strip()

    title, year = text, None
    match = _PARENTHESIZED_YEAR.match(text) or _BARE_YEAR.match(text)
    if match:
        candidate_title = match.group(1).strip()
        if candidate_title:
            title, year = candidate_title, match.group(2)

    if not title:
        raise InvalidQuery("Search query is required")
    return ParsedQuery(original_query=original, title=title, year=year)
