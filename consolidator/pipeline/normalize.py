"""
Schema repair for loosely structured scraped events.

Each step reads fields an earlier step may have fixed, so the order in
`EventNormalizer.normalize` matters. Quality problems never raise: they set
`needsReview` and append a short code to `reviewReasons`.
"""
import re
import uuid

from consolidator import config
from consolidator.models import apply_venue, resolve_venue
from consolidator.tables import DEFAULT_TABLES
from consolidator.utils.categories import canonicalize_tags
from consolidator.utils.dates import is_valid_iso, is_valid_time_format, normalize_time, parse_iso, time_to_minutes
from consolidator.utils.events import is_auto_id, stable_id
from consolidator.utils.text import collapse_whitespace, split_camel_case

# Legacy snake_case alias -> canonical field
FIELD_ALIASES = {
    "scraped_at": "scrapedAt",
    "start_date": "startDate",
    "end_date": "endDate",
    "start_time": "startTime",
    "end_time": "endTime",
    "reference_url": "referenceUrl",
    "ticket_url": "ticketUrl",
    "image_url": "imageUrl",
    "location_note": "locationNote",
    "needs_review": "needsReview",
}

TIME_CLUES = [
    re.compile(r"\d{1,2}\s*[ap]\.?m\.?", re.IGNORECASE),
    re.compile(r"\d{1,2}:\d{2}"),
    re.compile(r"at\s+\d+", re.IGNORECASE),
    re.compile(r"from\s+\d+", re.IGNORECASE),
    re.compile(r"starting\s+at\s+\d+", re.IGNORECASE),
]

EVENING_CLUES = [
    re.compile(r"dusk", re.IGNORECASE),
    re.compile(r"evening", re.IGNORECASE),
    re.compile(r"8[\s:-]*45\s*p\.?m\.?", re.IGNORECASE),
    re.compile(r"[8-9][\s:-]*\d{0,2}\s*p\.?m\.?", re.IGNORECASE),
    re.compile(r"sunset", re.IGNORECASE),
    re.compile(r"after\s*dark", re.IGNORECASE),
    re.compile(r"under\s+the\s+stars", re.IGNORECASE),
]

GARBLED_PATTERNS = [
    re.compile(r"\.\s*\w{1,2}\s*\."),
    re.compile(r"you may wan\."),
    re.compile(r"\s{2,}"),
    re.compile(r"[A-Z]{2,}\s+[A-Z]{2,}"),
]

# UTC hours a date-only or local-midnight value is parsed to.
MIDNIGHT_HOURS = (7, 0)


class EventNormalizer:
    def __init__(self, tables=None):
        self.tables = tables or DEFAULT_TABLES

    def normalize(self, event):
        """Return a repaired copy of event; the input is left unchanged."""
        event = dict(event)
        reasons = list(event.get("reviewReasons") or [])

        event = self.rename_fields(event)
        event = self.canonicalize_source(event)
        event = self.backfill_dates(event, reasons)
        event = self.resolve_location(event)
        event = self.canonicalize_tags(event)
        event = self.assign_id(event)
        event = self.flag_for_review(event, reasons)
        event = self.clean_text_fields(event)
        return event

    @staticmethod
    def rename_fields(event):
        for alias, canonical in FIELD_ALIASES.items():
            if alias not in event:
                continue
            value = event.pop(alias)
            if event.get(canonical) is None:
                event[canonical] = value
        return event

    def canonicalize_source(self, event):
        source = event.get("source")
        if isinstance(source, str):
            event["source"] = self.tables.source_names.get(source.strip(), source.strip())
        return event

    @staticmethod
    def backfill_dates(event, reasons):
        if event.get("date") and not event.get("startDate"):
            event["startDate"] = event["date"]
        if event.get("startDate") and not event.get("date"):
            event["date"] = event["startDate"]

        for field in ("startTime", "endTime"):
            value = event.get(field)
            if isinstance(value, str) and not is_valid_time_format(value):
                repaired = normalize_time(value)
                if is_valid_time_format(repaired):
                    event[field] = repaired

        if event.get("startDate") and not is_valid_iso(event["startDate"]):
            _flag(event, reasons, "invalid_start_date")
        if event.get("endDate") and not is_valid_iso(event["endDate"]):
            _flag(event, reasons, "invalid_end_date")
        return event

    def resolve_location(self, event):
        venue = resolve_venue(event.get("venue"), event.get("locationNote"), self.tables)
        return apply_venue(event, venue)

    def canonicalize_tags(self, event):
        if "tags" in event:
            event["tags"] = canonicalize_tags(event["tags"], self.tables)
        return event

    @staticmethod
    def assign_id(event):
        event_id = event.get("id")
        if is_auto_id(event_id):
            event["id"] = stable_id(event)
        elif not event_id:
            if event.get("title") or event.get("startDate"):
                event["id"] = stable_id(event)
            else:
                event["id"] = str(uuid.uuid4())
        return event

    def flag_for_review(self, event, reasons):
        source = event.get("source") or ""

        if not event.get("referenceUrl"):
            default_url = self.tables.default_reference_urls.get(source)
            if default_url:
                event["referenceUrl"] = default_url
            else:
                _flag(event, reasons, "missing_reference_url")

        if not event.get("image") and not event.get("imageUrl") and source not in self.tables.image_exempt_sources:
            _flag(event, reasons, "missing_image")

        description = event.get("description")
        if not isinstance(description, str) or len(description.strip()) < config.MIN_DESCRIPTION_LENGTH:
            _flag(event, reasons, "short_description")

        if has_date_time_mismatch(event):
            _flag(event, reasons, "date_time_mismatch")

        if not event.get("startTime") and contains_time_clues(description):
            _flag(event, reasons, "time_in_description")

        if has_garbled_text(event):
            _flag(event, reasons, "garbled_text")

        if event.get("needsReview") is not True:
            event["needsReview"] = bool(reasons)
        if reasons:
            event["reviewReasons"] = reasons
        return event

    @staticmethod
    def clean_text_fields(event):
        if isinstance(event.get("title"), str):
            title = collapse_whitespace(event["title"])
            event["title"] = re.sub(r"\s+&\s+", " & ", title)
        if isinstance(event.get("description"), str):
            event["description"] = split_camel_case(collapse_whitespace(event["description"]))
        if isinstance(event.get("performer"), str):
            event["performer"] = collapse_whitespace(event["performer"])
        return event


def _flag(event, reasons, reason):
    event["needsReview"] = True
    if reason not in reasons:
        reasons.append(reason)
    event["reviewReasons"] = reasons


def contains_time_clues(text):
    if not isinstance(text, str) or not text:
        return False
    return any(pattern.search(text) for pattern in TIME_CLUES)


def has_garbled_text(event):
    fields = [event.get("title"), event.get("description"), event.get("performer")]
    return any(
        isinstance(value, str) and any(pattern.search(value) for pattern in GARBLED_PATTERNS)
        for value in fields
    )


def has_date_time_mismatch(event):
    """
    Compare the literal UTC hour stored in startDate against startTime (or,
    without a startTime, against evening wording in the description).
    """
    start = parse_iso(event.get("startDate"))
    if not start:
        return False

    at_midnight = start.hour in MIDNIGHT_HOURS and start.minute == 0 and start.second == 0
    start_time = event.get("startTime")

    if start_time:
        if not is_valid_time_format(start_time):
            return False
        hours = time_to_minutes(start_time) // 60
        if hours >= 17 and start.hour <= 10:
            return True
        if 6 <= hours <= 12 and start.hour >= 18:
            return True
        return at_midnight

    description = event.get("description") or ""
    if any(pattern.search(description) for pattern in EVENING_CLUES):
        return at_midnight or 19 <= start.hour <= 20
    return False


def normalize_event(event, tables=None):
    return EventNormalizer(tables=tables).normalize(event)


def normalize_events(events, tables=None):
    normalizer = EventNormalizer(tables=tables)
    return [normalizer.normalize(event) for event in events]
