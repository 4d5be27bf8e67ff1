"""
Location parsing for creator records.

Raw location values are free text scraped from profiles and sometimes
contain model-written prose instead of a place. Region bucketing is not
implemented yet: everything files under "Global" for filtering.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

UNKNOWN_LOCATION = "Unknown"
GLOBAL_REGION = "Global"

AVAILABLE_REGIONS: List[str] = ["United States", "Europe", "Asia", "Middle East", GLOBAL_REGION]

_GLOBAL_KEYWORDS = ("global", "worldwide", "international")
_PROSE_MARKERS = ("based on", "analysis")
_MAX_LOCATION_LENGTH = 100


@dataclass(frozen=True)
class ParsedLocation:
    city: Optional[str]
    country: str
    region: str
    is_global: bool
    raw_location: str


def _global(raw_location: str) -> ParsedLocation:
    return ParsedLocation(
        city=None,
        country=GLOBAL_REGION,
        region=GLOBAL_REGION,
        is_global=True,
        raw_location=raw_location,
    )


def parse_location_manually(raw_location: Optional[str]) -> ParsedLocation:
    """
    Parse a raw location string without any model call.

    - empty -> Global with an empty raw value
    - prose ("based on ...", "... analysis ...", or over 100 chars) -> Global
    - global/worldwide/international -> Global
    - anything else is echoed as the country and display value
    """
    if not raw_location or not raw_location.strip():
        return _global(raw_location or "")

    location = raw_location.strip()

    if any(marker in location for marker in _PROSE_MARKERS) or len(location) > _MAX_LOCATION_LENGTH:
        # Prose is not shown verbatim
        return _global("")

    lowered = location.lower()
    if any(keyword in lowered for keyword in _GLOBAL_KEYWORDS):
        return _global(location)

    return ParsedLocation(
        city=None,
        country=location,
        region=get_region_for_filter(location),
        is_global=False,
        raw_location=location,
    )


def parse_region_field(location_region: str) -> ParsedLocation:
    """Wrap a pre-classified region column value."""
    region = location_region.strip()
    return ParsedLocation(
        city=None,
        country=region,
        region=region,
        is_global=region == GLOBAL_REGION,
        raw_location=region,
    )


def get_display_location(parsed: ParsedLocation) -> str:
    """Display string for a parsed location."""
    if parsed.raw_location and parsed.raw_location.strip():
        return parsed.raw_location

    if parsed.is_global or parsed.country == GLOBAL_REGION:
        return GLOBAL_REGION

    if parsed.city:
        return f"{parsed.city}, {parsed.country}"

    return parsed.country


def resolve_display_location(record: Dict[str, Any]) -> str:
    """
    Display location for a raw creator record.

    Prefers the pre-classified locationRegion column, falls back to manual
    parsing of location, and shows "Unknown" when neither carries a value.
    """
    region = record.get("locationRegion")
    if isinstance(region, str) and region.strip():
        return get_display_location(parse_region_field(region))

    raw_location = record.get("location")
    if raw_location is None or (isinstance(raw_location, str) and not raw_location.strip()):
        return UNKNOWN_LOCATION
    if not isinstance(raw_location, str):
        raise TypeError(f"location must be a string, got {type(raw_location).__name__}")

    return get_display_location(parse_location_manually(raw_location))


def get_region_for_filter(country: str) -> str:
    # TODO: map countries onto AVAILABLE_REGIONS once the store carries ISO country codes
    return GLOBAL_REGION
