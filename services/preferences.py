"""
Property type -> subscription preference key resolution.

Listings arrive with a free-text type ("PG", "Hostel", "Cafe", ...). Subscribers
opt into one of four categories; this module maps the former onto the latter.
Anything we do not recognise is routed to pgHostels rather than rejected.
"""
from types import MappingProxyType
from typing import Mapping, Optional

PG_HOSTELS = "pgHostels"
MESS_CAFE = "messCafe"
GAMING_ZONE = "gamingZone"
SPECIAL_OFFERS = "specialOffers"

PREFERENCE_KEYS = (PG_HOSTELS, MESS_CAFE, GAMING_ZONE, SPECIAL_OFFERS)

DEFAULT_PREFERENCE_KEY = PG_HOSTELS

PROPERTY_TYPE_PREFERENCES: Mapping[str, str] = MappingProxyType({
    "pg": PG_HOSTELS,
    "hostel": PG_HOSTELS,
    "room": PG_HOSTELS,
    "flat": PG_HOSTELS,
    "mess": MESS_CAFE,
    "cafe": MESS_CAFE,
    "gaming": GAMING_ZONE,
})


def resolve_preference_key(
    property_type: Optional[str],
    mapping: Mapping[str, str] = PROPERTY_TYPE_PREFERENCES,
) -> str:
    """Return the preference key for a property type (case-insensitive)."""
    if not property_type:
        return DEFAULT_PREFERENCE_KEY
    return mapping.get(property_type.strip().lower(), DEFAULT_PREFERENCE_KEY)


def require_preference_key(preference_key: str) -> str:
    if preference_key not in PREFERENCE_KEYS:
        raise ValueError(f"Unknown preference key: {preference_key!r}")
    return preference_key


def empty_preference_totals() -> dict:
    return {key: 0 for key in PREFERENCE_KEYS}
