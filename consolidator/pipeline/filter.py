import re
from datetime import timedelta

from consolidator import config
from consolidator.models import StructuredVenue
from consolidator.pipeline.validate import validate_event
from consolidator.tables import DEFAULT_TABLES
from consolidator.utils.dates import event_start, utcnow
from consolidator.utils.events import is_absolute_url, strip_empty_fields
from consolidator.utils.text import clamp, collapse_whitespace

DISALLOWED_CHARS = re.compile(r"[^\w\s\-.,!?()'\"&:;/$%+@#]")


def clean_title(title):
    if not title:
        return ""
    title = DISALLOWED_CHARS.sub("", collapse_whitespace(title)).strip()
    return clamp(title, config.MAX_TITLE_LENGTH)


def clean_description(description):
    if not description or not isinstance(description, str):
        return ""
    description = DISALLOWED_CHARS.sub("", collapse_whitespace(description)).strip()
    return clamp(description, config.MAX_DESCRIPTION_LENGTH)


def is_in_window(event, now=None, window_days=config.WINDOW_DAYS):
    """True if the event starts today (UTC) or later, and no more than window_days ahead."""
    start = event_start(event)
    if start is None:
        return False
    now = now or utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return today <= start <= now + timedelta(days=window_days)


def filter_events(events, now=None, window_days=config.WINDOW_DAYS):
    """
    Drop events with no usable title or date, or outside the publish window.
    Surviving events get cleaned, length-limited title and description.
    """
    now = now or utcnow()
    kept = []
    for event in events:
        if not validate_event(event):
            continue
        if not is_in_window(event, now, window_days):
            continue
        title = event["title"].strip()
        if not config.MIN_TITLE_LENGTH <= len(title) <= config.MAX_RAW_TITLE_LENGTH:
            continue

        event = dict(event)
        event["title"] = clean_title(title)
        event["description"] = clean_description(event.get("description"))
        kept.append(event)
    return kept


def clean_event(event, tables=None):
    """Structured venue, gazetteer enrichment, absolute URLs only, no empty fields."""
    tables = tables or DEFAULT_TABLES
    event = dict(event)

    venue = event.get("venue")
    if isinstance(venue, str) and venue.strip():
        venue = StructuredVenue(name=venue.strip()).to_dict()
    if isinstance(venue, dict) and venue.get("name"):
        venue = tables.lookup_venue(venue["name"]) or venue
    event["venue"] = venue if isinstance(venue, dict) else None

    if isinstance(event.get("tags"), list):
        event["tags"] = [tag.strip() for tag in event["tags"] if isinstance(tag, str) and tag.strip()]

    for field in config.URL_FIELDS:
        if field in event and not is_absolute_url(event[field]):
            del event[field]

    return strip_empty_fields(event)


def sort_events(events):
    """Ascending by startDate (falling back to date); stable for equal starts."""
    return sorted(events, key=lambda e: event_start(e))


def filter_and_clean(events, tables=None, now=None, window_days=config.WINDOW_DAYS):
    return [clean_event(event, tables) for event in filter_events(events, now, window_days)]
