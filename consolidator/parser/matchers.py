"""
Matcher strategies for free-text event announcements.

Each extractor is an ordered list of small matchers. A matcher takes the
cleaned text (plus context) and returns a Match or None; the first matcher
that returns a Match wins. `consumed` is the text the description builder
should strip, or None when the match is left in the description.
"""
import calendar
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from consolidator.utils.dates import to_24h

WEEKDAY = r"(?:Monday|Tuesday|Wednesday|Thursday|Friday|Saturday|Sunday)"
MONTH = r"(January|February|March|April|May|June|July|August|September|October|November|December)"
ORDINAL = r"(?:st|nd|rd|th)?"
MERIDIEM = r"([ap])\.?m\.?(?![a-z])"
DASH = r"\s*-\s*"

MONTHS = {name.lower(): index for index, name in enumerate(calendar.month_name) if name}

MORNING_CONTEXT = ("farmers", "market", "breakfast", "morning", "brunch", "sunrise")


@dataclass(frozen=True)
class Match:
    value: Any
    consumed: Optional[str] = None


def first_match(matchers, text, **context):
    for matcher in matchers:
        result = matcher(text, **context)
        if result is not None:
            return result
    return None


def _regex_matcher(pattern, flags=0, consume=False, group=1, validate=None):
    compiled = re.compile(pattern, flags)

    def matcher(text, **_):
        match = compiled.search(text)
        if not match or not match.group(group):
            return None
        value = match.group(group).strip()
        if validate and not validate(value):
            return None
        return Match(value, match.group(0) if consume else None)

    return matcher


# ----------------------------------------------------------------------
# Title
# ----------------------------------------------------------------------

TITLE_MATCHERS = [
    # "15-16 Event Title." / "15-17 Fri-Sun Event Title."
    _regex_matcher(r"^\d{1,2}-\d{1,2}(?:\s+\w+-\w+)?\s+(.+?)\.", consume=True),
    # "14 $5 Movie: Title."
    _regex_matcher(r"^\d{1,2}" + ORDINAL + r"\s+\$\d+\s+Movie:\s*(.+?)\.", consume=True),
    # "14 Live Music with Artist."
    _regex_matcher(r"^\d{1,2}" + ORDINAL + r"\s+(.+?)\.", consume=True),
    # "14 Event Name" with no closing period
    _regex_matcher(r"^\d{1,2}" + ORDINAL + r"\s+([^.]{5,50}?)(?=\s+[A-Z]|$)", consume=True),
    _regex_matcher(
        r"^Join\s+(?:us\s+)?(?:up\s+)?at\s+\w+\s+for\s+(?:the\s+)?(.+?)\s+on\s+" + WEEKDAY
        + r"(?:,?\s+" + MONTH + r"\s+\d{1,2}" + ORDINAL + r"\.?)?",
        re.IGNORECASE,
        consume=True,
    ),
    _regex_matcher(
        r"^Join\s+(?:us\s+)?(?:up\s+)?for\s+(?:the\s+)?(.+?)\s+on\s+" + WEEKDAY
        + r"(?:,?\s+" + MONTH + r"\s+\d{1,2}" + ORDINAL + r"\.?)?",
        re.IGNORECASE,
        consume=True,
    ),
    _regex_matcher(r"^(.+?)\s+at\s+\d", re.IGNORECASE),
    _regex_matcher(r"^(.+?)\s+starts?\s+at", re.IGNORECASE),
    _regex_matcher(r"^(.+?)\s+will\s+be", re.IGNORECASE),
    _regex_matcher(r"^(.+?)\s+takes?\s+place", re.IGNORECASE),
    _regex_matcher(r"^(.+?)\s+on\s+" + WEEKDAY, re.IGNORECASE),
]

TITLE_PREFIXES = [
    re.compile(r"^(Join us for|Join up for|Join for|Come to|Attend|Don't miss)\s+", re.IGNORECASE),
    re.compile(r"^Join\s+(?:us\s+)?(?:up\s+)?at\s+\w+\s+for\s+", re.IGNORECASE),
    re.compile(r"^\d{1,2}" + ORDINAL + r"\s+"),
    re.compile(r"^\d{1,2}-\d{1,2}(?:\s+\w+-\w+)?\s+"),
]


def first_sentence_title(text, **_):
    sentences = [s.strip() for s in re.split(r"[.!?]+", text) if s.strip()]
    if not sentences:
        return None
    title = sentences[0]
    for prefix in TITLE_PREFIXES:
        title = prefix.sub("", title)
    return Match(title) if title else None


# ----------------------------------------------------------------------
# Dates
# ----------------------------------------------------------------------

def _month_after(year, month):
    return (year + 1, 1) if month == 12 else (year, month + 1)


def _safe_date(year, month, day):
    try:
        return datetime(year, month, day)
    except ValueError:
        return None


def _upcoming_day(day, now):
    """Day-of-month with no month given: this month, or next month once it has passed."""
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    candidate = _safe_date(now.year, now.month, day)
    if candidate is None or candidate < today:
        year, month = _month_after(now.year, now.month)
        candidate = _safe_date(year, month, day)
    return candidate


def weekday_month_day(text, now, **_):
    match = re.search(r"(?:on\s+)?" + WEEKDAY + r",?\s+" + MONTH + r"\s+(\d{1,2})" + ORDINAL, text, re.IGNORECASE)
    if not match:
        return None
    date = _safe_date(now.year, MONTHS[match.group(1).lower()], int(match.group(2)))
    return Match((date, None)) if date else None


def month_day(text, now, **_):
    match = re.search(MONTH + r"\s+(\d{1,2})" + ORDINAL + r"\b", text, re.IGNORECASE)
    if not match:
        return None
    date = _safe_date(now.year, MONTHS[match.group(1).lower()], int(match.group(2)))
    return Match((date, None)) if date else None


def numeric_date(text, now, **_):
    match = re.search(r"\b(\d{1,2})/(\d{1,2})(?:/(\d{2,4}))?\b", text)
    if not match:
        return None
    year = now.year
    if match.group(3):
        year = int(match.group(3))
        if year < 100:
            year += 2000
    date = _safe_date(year, int(match.group(1)), int(match.group(2)))
    return Match((date, None)) if date else None


def iso_date(text, **_):
    match = re.search(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b", text)
    if not match:
        return None
    date = _safe_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    return Match((date, None)) if date else None


def leading_day_range(text, now, **_):
    match = re.search(r"^(\d{1,2})-(\d{1,2})(?:\s+\w+-\w+)?\s+", text)
    if not match:
        return None
    start = _upcoming_day(int(match.group(1)), now)
    if start is None:
        return None
    end_day = int(match.group(2))
    year, month = start.year, start.month
    if end_day < start.day:
        year, month = _month_after(year, month)
    return Match((start, _safe_date(year, month, end_day)))


def leading_day(text, now, **_):
    match = re.search(r"^(\d{1,2})" + ORDINAL + r"\s+", text)
    if not match:
        return None
    date = _upcoming_day(int(match.group(1)), now)
    return Match((date, None)) if date else None


DATE_MATCHERS = [weekday_month_day, month_day, numeric_date, iso_date, leading_day_range, leading_day]


def _end_date_matcher(pattern):
    compiled = re.compile(pattern, re.IGNORECASE)

    def matcher(text, now, **_):
        match = compiled.search(text)
        if not match:
            return None
        date = _safe_date(now.year, MONTHS[match.group(1).lower()], int(match.group(2)))
        return Match(date) if date else None

    return matcher


END_DATE_MATCHERS = [
    _end_date_matcher(r"through\s+" + WEEKDAY + r",?\s+" + MONTH + r"\s+(\d{1,2})"),
    _end_date_matcher(r"to\s+" + WEEKDAY + r",?\s+" + MONTH + r"\s+(\d{1,2})"),
    _end_date_matcher(r"-\s*" + MONTH + r"\s+(\d{1,2})"),
]


# ----------------------------------------------------------------------
# Times
# ----------------------------------------------------------------------

def _range_meridiems(start_hour, end_hour, meridiem, text):
    """
    Resolve the meridiem of each end of a range that only states one.
    "9-1 p.m." reads as 9 a.m. to 1 p.m., as does any backwards range in a
    morning context such as a farmers market.
    """
    if meridiem != "p" or start_hour <= end_hour or start_hour == 12:
        return meridiem, meridiem
    lowered = text.lower()
    if (start_hour >= 9 and end_hour <= 6) or any(word in lowered for word in MORNING_CONTEXT):
        return "a", "p"
    return meridiem, meridiem


def _range_matcher(pattern):
    compiled = re.compile(pattern, re.IGNORECASE)

    def matcher(text, **_):
        match = compiled.search(text)
        if not match:
            return None
        start_hour, start_min, end_hour, end_min, meridiem = match.groups()
        start_hour, end_hour = int(start_hour), int(end_hour)
        if start_hour > 12 or end_hour > 12:
            return None
        meridiem = meridiem.lower()
        start_meridiem, end_meridiem = _range_meridiems(start_hour, end_hour, meridiem, text)
        start = to_24h(start_hour, int(start_min or 0), start_meridiem + "m")
        end = to_24h(end_hour, int(end_min or 0), end_meridiem + "m")
        return Match((start, end))

    return matcher


TIME_RANGE_MATCHERS = [
    # "from 3-5:30 p.m." / "from 9-1 p.m."
    _range_matcher(r"\bfrom\s+(\d{1,2})(?::([0-5]\d))?" + DASH + r"(\d{1,2})(?::([0-5]\d))?\s*" + MERIDIEM),
    # "between 8:00-8:45 p.m."
    _range_matcher(r"\bbetween\s+(\d{1,2})(?::([0-5]\d))?" + DASH + r"(\d{1,2})(?::([0-5]\d))?\s*" + MERIDIEM),
    # bare "3-5:30 p.m."
    _range_matcher(r"\b(\d{1,2})(?::([0-5]\d))?" + DASH + r"(\d{1,2})(?::([0-5]\d))?\s*" + MERIDIEM),
]


def _single_time_matcher(pattern, consume=False):
    compiled = re.compile(pattern, re.IGNORECASE)

    def matcher(text, **_):
        match = compiled.search(text)
        if not match:
            return None
        hour, minute, meridiem = match.group("hour"), match.group("minute"), match.group("meridiem")
        hour = int(hour)
        if hour > 12 or hour == 0:
            return None
        consumed = match.group(0) if consume else None
        return Match(to_24h(hour, int(minute or 0), meridiem + "m"), consumed)

    return matcher


_CLOCK = r"(?P<hour>\d{1,2})(?::(?P<minute>[0-5]\d))?\s*(?P<meridiem>[ap])\.?m\.?(?![a-z])"

START_TIME_MATCHERS = [
    _single_time_matcher(r"\bstarts?\s+at\s+" + _CLOCK + r"\s*[.,]?", consume=True),
    _single_time_matcher(r"\bat\s+" + _CLOCK),
    _single_time_matcher(r"\b" + _CLOCK),
]

END_TIME_MATCHERS = [
    _single_time_matcher(r"\bends?\s+at\s+" + _CLOCK),
    _single_time_matcher(r"\buntil\s+" + _CLOCK),
]


# ----------------------------------------------------------------------
# Venue
# ----------------------------------------------------------------------

_PLACE_WORDS = r"(?:Fairgrounds|Theater|Theatre|Hall|Center|Park|School|Lounge|Club|Bar|Restaurant)"
_STREET = r"(?:St|Ave|Blvd|Rd|Drive|Street|Avenue)"
_GENERIC_VENUE_WORDS = {"sandpoint", "downtown", "the", "at", "in", "on"}


def _venue_matcher(pattern, keep_the=False):
    compiled = re.compile(pattern, re.IGNORECASE)

    def matcher(text, **_):
        match = compiled.search(text)
        if not match:
            return None
        name = match.group("name").strip()
        address = (match.groupdict().get("address") or "").strip()
        if keep_the:
            name = f"the {name}"
        name = re.sub(r"\s+from\s+.+$", "", name, flags=re.IGNORECASE)
        name = re.sub(r"\s+and\s+.+$", "", name, flags=re.IGNORECASE).strip()
        if len(name) < 3 or re.search(r"\d+\s*[ap]\.?m", name, re.IGNORECASE):
            return None
        if name.lower() in _GENERIC_VENUE_WORDS:
            return None
        return Match({"name": name, "address": address if len(address) > 3 else ""})

    return matcher


VENUE_MATCHERS = [
    # "at the Bonner County Fairgrounds, 4203 N. Boyer Ave"
    _venue_matcher(r"\bat\s+the\s+(?P<name>[^,.]+?\s*" + _PLACE_WORDS + r")\b,?\s*(?P<address>\d[^!?]*?" + _STREET + r"\b\.?)?", keep_the=True),
    # "at Venue Name, 123 Main St"
    _venue_matcher(r"\bat\s+(?P<name>[^,]+?),\s*(?P<address>\d[^!?]*?" + _STREET + r"\b\.?)"),
    # "will be held at Venue"
    _venue_matcher(r"\b(?:will be )?held at\s+(?P<name>[^,]+?)(?:,|\s+or\s+|\.|$)"),
    _venue_matcher(r"\btake place at\s+(?P<name>[^,]+?)(?:,|\s+and\s+|\.|$)"),
    _venue_matcher(r"\bnear\s+(?P<name>[A-Z][^,.!?]+?)(?:,|\.|!|\?|$)"),
    # "at Venue from/with ..."
    _venue_matcher(
        r"\bat\s+(?P<name>[^,.!?]+?)(?:\s+(?:from|with|performing|\d+\s*(?:a\.?m\.?|p\.?m\.?)|on|in|near|where|located))"
    ),
    _venue_matcher(r"\bperforming\s+at\s+(?P<name>[^,]+?)(?:,|$|\.)"),
    _venue_matcher(r"\blocated\s+(?:at|on|in)\s+(?P<name>[^,.!?]+?)(?:\s+(?:on|in|near|at|where)|,)"),
    _venue_matcher(r"\bvenue:\s*(?P<name>[^,.!?]+?)(?:\s*[.!?]|$)"),
]


# ----------------------------------------------------------------------
# Price
# ----------------------------------------------------------------------

def _fixed_price(pattern, value, consumed_pattern=None):
    compiled = re.compile(pattern, re.IGNORECASE)
    consumed_re = re.compile(consumed_pattern, re.IGNORECASE) if consumed_pattern else None

    def matcher(text, **_):
        if not compiled.search(text):
            return None
        consumed = None
        if consumed_re:
            found = consumed_re.search(text)
            consumed = found.group(0) if found else None
        return Match(value, consumed)

    return matcher


def _amount_price(pattern, consumed_pattern=None):
    compiled = re.compile(pattern, re.IGNORECASE)
    consumed_re = re.compile(consumed_pattern, re.IGNORECASE) if consumed_pattern else None

    def matcher(text, **_):
        match = compiled.search(text)
        if not match:
            return None
        consumed = None
        if consumed_re:
            found = consumed_re.search(text)
            consumed = found.group(0) if found else None
        return Match(f"${match.group(1)}", consumed)

    return matcher


PRICE_MATCHERS = [
    _fixed_price(
        r"\bfree\b|no charge|no cost|complimentary|no cover",
        "Free",
        consumed_pattern=r"This\s+is\s+a\s+free\s+event\.?",
    ),
    _amount_price(r"\$?(\d+)\s*(?:dollars?\s*)?(?:person\s*)?(?:entry fee|buy in|entrance|admission)\b"),
    _amount_price(r"\$(\d+(?:\.\d{2})?)", consumed_pattern=r"\$\d+(?:\.\d{2})?\s*per\s+\w+"),
    _amount_price(r"\b(\d+)\s*(?:for adults|for youth|adults|youth)\b"),
    _fixed_price(r"\bdonations?\b", "Donation"),
    _fixed_price(r"pay what you can", "Pay What You Can"),
    _fixed_price(r"admission|entry fee", "Admission Required"),
]


# ----------------------------------------------------------------------
# Contact, performer, organizer
# ----------------------------------------------------------------------

CONTACT_MATCHERS = [
    _regex_matcher(r"([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})"),
    _regex_matcher(r"call\s+(\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4})", re.IGNORECASE),
    _regex_matcher(r"(\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4})"),
    _regex_matcher(r"contact\s+([^.!?]+)", re.IGNORECASE),
    _regex_matcher(r"info:\s*([^.!?]+)", re.IGNORECASE),
]

NAME_LENGTH_LIMIT = 50


def _short(value):
    return len(value) <= NAME_LENGTH_LIMIT


PERFORMER_MATCHERS = [
    _regex_matcher(r"featuring\s+([^.!?]+)", re.IGNORECASE, validate=_short),
    _regex_matcher(r"performer:\s*([^.!?]+)", re.IGNORECASE, validate=_short),
    _regex_matcher(r"live\s+music\s+by\s+([^.!?]+)", re.IGNORECASE, validate=_short),
    _regex_matcher(r"with\s+([A-Z][a-z]+\s+[A-Z][a-z]+)", validate=_short),
]

_ORGANIZER_END = r"(?:\s+come\s+watch|\.|$)"

ORGANIZER_MATCHERS = [
    _regex_matcher(r"hosted\s+by\s+([^.!?]+?)" + _ORGANIZER_END, re.IGNORECASE, validate=_short),
    _regex_matcher(r"organized\s+by\s+([^.!?]+?)" + _ORGANIZER_END, re.IGNORECASE, validate=_short),
    _regex_matcher(r"presented\s+by\s+([^.!?]+?)" + _ORGANIZER_END, re.IGNORECASE, validate=_short),
    _regex_matcher(r"sponsor(?:ed)?\s+by\s+([^.!?]+?)" + _ORGANIZER_END, re.IGNORECASE, validate=_short),
]
