import re
from dataclasses import asdict, dataclass
from typing import Optional, Union

from consolidator import config

VENUE_FIELDS = ("name", "address", "city", "state", "zipCode", "phone", "website")


@dataclass(frozen=True)
class StructuredVenue:
    name: str
    address: str = ""
    city: str = config.DEFAULT_CITY
    state: str = config.DEFAULT_STATE
    zipCode: str = ""
    phone: str = ""
    website: str = ""

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class LocationNote:
    text: str


@dataclass(frozen=True)
class UnknownVenue:
    pass


Venue = Union[StructuredVenue, LocationNote, UnknownVenue]


def resolve_venue(raw, location_note: Optional[str], tables) -> Venue:
    """
    Resolve the scraped venue value (string, dict or missing) into one venue shape.

    Known gazetteer venues always win over partial scraped data. Names made of
    generic terms ("downtown", "various locations") become a location note.
    """
    if isinstance(raw, dict):
        name = raw.get("name")
    elif isinstance(raw, str):
        name = raw
    else:
        name = None

    name = clean_venue_name(name) if name else None

    if name:
        known = tables.lookup_venue(name)
        if known:
            return StructuredVenue(**known)
        if tables.is_generic_venue(name):
            return LocationNote(name)
        if isinstance(raw, dict):
            extra = {k: str(raw[k]) for k in VENUE_FIELDS if k != "name" and raw.get(k)}
            return StructuredVenue(name=name, **extra)
        return StructuredVenue(name=name)

    if location_note and location_note.strip():
        return LocationNote(location_note.strip())
    return UnknownVenue()


def apply_venue(event, venue: Venue):
    """Write a resolved venue back onto the event's `venue`/`locationNote` fields."""
    if isinstance(venue, StructuredVenue):
        event["venue"] = venue.to_dict()
    elif isinstance(venue, LocationNote):
        event["venue"] = None
        event["locationNote"] = venue.text
    else:
        event["venue"] = None
    return event


def clean_venue_name(name):
    """Fix apostrophe spacing ("Connie 's") and repeated whitespace."""
    name = re.sub(r"(\w)\s+'(\w)", r"\1'\2", name)
    name = re.sub(r"(\w)'\s+(s\b)", r"\1'\2", name)
    return re.sub(r"\s+", " ", name).strip()
