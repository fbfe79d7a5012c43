"""
Provider / subscription-tier filtering for enriched candidates.
"""

from enum import Enum

from api.tmdb.models import AvailabilitySet
from contracts.errors import InvalidParameter


class SubscriptionTier(str, Enum):
    FLATRATE = "flatrate"
    FREE = "free"
    ADS = "ads"
    RENT = "rent"
    BUY = "buy"
    ANY = "any"

    @classmethod
    def parse(cls, value: "str | SubscriptionTier | None") -> "SubscriptionTier":
        if value is None or value == "":
            return cls.ANY
        if isinstance(value, cls):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            allowed = "|".join(t.value for t in cls)
            raise InvalidParameter(f"subscription must be one of {allowed}, got {value!r}")


def parse_provider_ids(raw: str | None) -> list[int]:
    """'8, 337,' -> [8, 337]. Blank items and repeated ids are dropped."""
    if not raw:
        return []
    ids: list[int] = []
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        try:
            provider_id = int(item)
        except ValueError:
            raise InvalidParameter(f"provider ids must be integers, got {item!r}")
        if provider_id not in ids:
            ids.append(provider_id)
    return ids


def matches_provider_filter(
    availability: AvailabilitySet,
    provider_ids: list[int] | None,
    tier: SubscriptionTier | str = SubscriptionTier.ANY,
) -> bool:
    """True when no provider filter is given, or any requested id is in the tier's pool."""
    if not provider_ids:
        return True
    pool = availability.pool(SubscriptionTier.parse(tier).value)
    return any(provider_id in pool for provider_id in provider_ids)
