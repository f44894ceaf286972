import json
from dataclasses import dataclass, fields
from pathlib import Path
from types import MappingProxyType


def _venue(name, address="", city="Sandpoint", zip_code="83864", phone="", website="", state="ID"):
    return MappingProxyType({
        "name": name,
        "address": address,
        "city": city,
        "state": state,
        "zipCode": zip_code,
        "phone": phone,
        "website": website,
    })


_PANIDA = _venue("Panida Theater", "300 N 1st Ave", phone="(208) 263-9191", website="https://www.panida.org")
_SCHWEITZER = _venue(
    "Schweitzer Mountain Resort",
    "10000 Schweitzer Mountain Rd",
    phone="(208) 263-9555",
    website="https://www.schweitzer.com",
)
_TERVAN = _venue("The Tervan", "411 Cedar St", phone="(208) 610-4988", website="https://www.thetervan.com")
_CONNIES = _venue("Connie's Lounge", "323 Cedar St", phone="(208) 263-9391")
_WINERY = _venue("Pend d'Oreille Winery", "301 Cedar St", phone="(208) 265-8545")
_ROXYS = _venue("Roxy's", "215 Pine St")
_LOUNGE_219 = _venue("219 Lounge", "219 First Ave")
_COMMUNITY_HALL = _venue("Sandpoint Community Hall", "204 S. First St")
_FAIRGROUNDS = _venue("Bonner County Fairgrounds", "4203 N. Boyer Ave")
_MICK_DUFFS = _venue("Mick Duff's Brewing Company")
_TRINITY = _venue("Trinity at City Beach", "City Beach")

# Gazetteer: lowercase substring -> structured venue.
KNOWN_VENUES = {
    "panida": _PANIDA,
    "panida theater": _PANIDA,
    "schweitzer": _SCHWEITZER,
    "schweitzer mountain resort": _SCHWEITZER,
    "trinity": _TRINITY,
    "trinity at city beach": _TRINITY,
    "city beach": _venue("City Beach Park", "City Beach"),
    "memorial field": _venue("Memorial Field", "Memorial Field"),
    "farmin park": _venue("Farmin Park", "Farmin Park"),
    "evans brothers coffee": _venue(
        "Evans Brothers Coffee",
        "524 Church St",
        phone="(208) 265-6027",
        website="https://www.evansbroscoffee.com",
    ),
    "mick duffs": _MICK_DUFFS,
    "mick duff's": _MICK_DUFFS,
    "connies lounge": _CONNIES,
    "connie's lounge": _CONNIES,
    "connies": _CONNIES,
    "tervan": _TERVAN,
    "the tervan": _TERVAN,
    "pearls on the lake": _venue("Pearls on the Lake", city="Hope", zip_code="83836"),
    "roxys": _ROXYS,
    "roxy's": _ROXYS,
    "219 lounge": _LOUNGE_219,
    "the 219 lounge": _LOUNGE_219,
    "sandpoint community hall": _COMMUNITY_HALL,
    "community hall": _COMMUNITY_HALL,
    "bonner county fairgrounds": _FAIRGROUNDS,
    "fairgrounds": _FAIRGROUNDS,
    "lakeview park": _venue("Lakeview Park", "Lakeview Park"),
    "sandpoint middle school": _venue("Sandpoint Middle School"),
    "camp stidwell": _venue("Camp Stidwell", "Camp Stidwell"),
    "pend d'oreille winery": _WINERY,
    "pend doreille winery": _WINERY,
    "matchwood": _venue("Matchwood", "513 Oak St"),
    "barrel 33": _venue(
        "Barrel 33",
        "100 N. First Ave",
        phone="(208) 610-4850",
        website="https://www.barrel33.com",
    ),
    "the hive": _venue(
        "The Hive",
        "207 N 1st Ave",
        phone="(208) 610-4005",
        website="https://www.thehivesandpoint.com",
    ),
    "smokesmith bbq": _venue(
        "Smokesmith BBQ",
        "102 S Boyer Ave",
        phone="(208) 255-7675",
        website="https://www.smokesmithbbq.com",
    ),
}

# Venue names containing any of these are a location note, not a venue.
GENERIC_VENUE_TERMS = (
    "downtown",
    "various",
    "citywide",
    "online",
    "virtual",
    "sandpoint",
    "area",
    "multiple",
    "locations",
    "studios",
    "venues",
    "throughout",
)

# Fallback location notes for free text with no venue, first match wins.
LOCATION_NOTE_TERMS = ("downtown", "city beach", "sandpoint", "schweitzer")

SOURCE_NAMES = {
    "sandpoint-online": "Sandpoint Online",
    "Sandpoint Online": "Sandpoint Online",
    "schweitzer": "Schweitzer Mountain Resort",
    "Schweitzer Mountain Resort": "Schweitzer Mountain Resort",
    "eventbrite": "Eventbrite",
    "local-venues": "Local Venues",
    "city-official": "City of Sandpoint",
    "facebook-events": "Facebook Events",
}

# Canonical tag -> accepted spellings (compared case-insensitively).
TAG_SYNONYMS = {
    "music": ("music",),
    "art": ("art",),
    "live": ("live",),
    "community": ("community",),
    "event": ("event",),
    "food": ("food",),
    "outdoors": ("outdoors",),
    "festival": ("festival",),
    "theater": ("theater", "theatre"),
    "youth": ("youth",),
    "performance": ("performance",),
    "family": ("family",),
    "movies": ("movies", "movie", "film"),
    "outdoor": ("outdoor",),
    "free": ("free",),
    "drama": ("drama",),
    "adult": ("adult",),
    "arts": ("arts",),
    "crafts": ("crafts",),
    "fair": ("fair",),
    "charity": ("charity",),
    "motorcycle": ("motorcycle",),
    "bbq": ("bbq",),
    "fundraiser": ("fundraiser",),
    "beer": ("beer",),
    "tour": ("tour",),
    "self-guided": ("self-guided",),
    "blues": ("blues",),
    "multi-day": ("multi-day",),
    "nightlife": ("nightlife",),
}

# Keyword rules used when inferring tags from free text.
TAG_RULES = (
    ("Music", r"music|concert|band|performance|sing|song|album|musician|guitar|piano|jazz|rock|folk|blues"),
    ("Food", r"food|eat|dining|restaurant|barbecue|bbq|grill|feast|meal|cooking|cuisine"),
    ("Community", r"community|neighbor|local|family|fundraiser|charity|volunteer|meet|social"),
    ("Outdoors", r"outdoor|mountain|hike|trail|ski|snow|beach|park|nature|camping|fishing|hunting"),
    ("Art", r"art|artist|gallery|exhibit|paint|draw|craft|creative|workshop|studio"),
    ("Festival", r"festival|fair|celebration|parade|carnival|expo|show"),
    ("Live", r"live|performance|show|theater|theatre|stage|acting|play"),
    ("Fundraiser", r"fundraiser|charity|benefit|donation|cause|support|raise money|nonprofit"),
)
DEFAULT_TAG = "Community"

# Source substring -> completeness bonus.
OFFICIAL_SOURCES = {
    "City of Sandpoint": 1.0,
    "Official": 0.5,
}

# Sources that never publish images, so a missing image is expected.
IMAGE_EXEMPT_SOURCES = ("Sandpoint Online",)

DEFAULT_REFERENCE_URLS = {
    "Sandpoint Online": "https://sandpointonline.com/current/index.shtml",
}


def _freeze(value):
    if isinstance(value, dict):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


@dataclass(frozen=True)
class Tables:
    """Read-only lookup data shared by the parser, normalizer and merger."""
    known_venues: MappingProxyType
    generic_venue_terms: tuple
    location_note_terms: tuple
    source_names: MappingProxyType
    tag_synonyms: MappingProxyType
    tag_rules: tuple
    default_tag: str
    official_sources: MappingProxyType
    image_exempt_sources: tuple
    default_reference_urls: MappingProxyType

    def find_venue_in_text(self, text):
        """Return the gazetteer venue whose key occurs in text, longest key first."""
        lowered = text.lower()
        for key in sorted(self.known_venues, key=lambda k: (-len(k), k)):
            if key in lowered:
                return dict(self.known_venues[key])
        return None

    def lookup_venue(self, name):
        """Return the gazetteer venue named exactly `name` (case-insensitive)."""
        if not name:
            return None
        key = name.strip().lower()
        if key in self.known_venues:
            return dict(self.known_venues[key])
        for venue in self.known_venues.values():
            if venue["name"].lower() == key:
                return dict(venue)
        return None

    def is_generic_venue(self, name):
        lowered = (name or "").lower()
        return any(term in lowered for term in self.generic_venue_terms)


def _defaults():
    return {
        "known_venues": KNOWN_VENUES,
        "generic_venue_terms": GENERIC_VENUE_TERMS,
        "location_note_terms": LOCATION_NOTE_TERMS,
        "source_names": SOURCE_NAMES,
        "tag_synonyms": TAG_SYNONYMS,
        "tag_rules": TAG_RULES,
        "default_tag": DEFAULT_TAG,
        "official_sources": OFFICIAL_SOURCES,
        "image_exempt_sources": IMAGE_EXEMPT_SOURCES,
        "default_reference_urls": DEFAULT_REFERENCE_URLS,
    }


def build_tables(overrides=None):
    values = _defaults()
    for key, value in (overrides or {}).items():
        if key not in values:
            raise ValueError(f"Unknown lookup table: {key}")
        values[key] = value

    values["known_venues"] = {k.lower(): v for k, v in values["known_venues"].items()}
    values["tag_rules"] = [tuple(rule) for rule in values["tag_rules"]]
    return Tables(**{f.name: _freeze(_thaw(values[f.name])) for f in fields(Tables)})


def _thaw(value):
    if isinstance(value, MappingProxyType):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return value


def load_tables(path):
    """
    Load lookup tables from a JSON file.
    Keys present in the file replace the built-in table of the same name.
    """
    with open(Path(path), "r") as f:
        overrides = json.load(f)
    return build_tables(overrides)


DEFAULT_TABLES = build_tables()
