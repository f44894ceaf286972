import re
import uuid

from consolidator import config
from consolidator.models import StructuredVenue
from consolidator.parser import matchers
from consolidator.tables import DEFAULT_TABLES
from consolidator.utils.categories import infer_tags
from consolidator.utils.dates import to_iso, utcnow
from consolidator.utils.events import generate_slug, is_absolute_url
from consolidator.utils.text import capitalize_first, collapse_whitespace, strip_markup

UNTITLED = "Untitled Event"
NO_DESCRIPTION = "Event description not available."
MIN_TEXT_LENGTH = 50

HEDGE_WORDS = re.compile(r"\b(maybe|possibly|tentative|subject to change)\b", re.IGNORECASE)

PUNCTUATION = str.maketrans({
    "\u2018": "'",
    "\u2019": "'",
    "\u201c": '"',
    "\u201d": '"',
    "\u2013": "-",
    "\u2014": "-",
    "\u00a0": " ",
})

# Known scrape artifacts: (pattern, replacement)
SCRAPE_ARTIFACTS = [
    (re.compile(r"\s+come\s+watch\s+an\s+epic\s+night.+$", re.IGNORECASE), ""),
    (re.compile(r"^(Join|Check out|Head down to|Dont miss)\s+at\s+", re.IGNORECASE), r"\1 us at "),
]


class TextParser:
    """
    Turns one free-text event announcement into a candidate event record.

    Pure text processing: no network or file access. The same text, options
    and clock always give the same record, apart from the random id used
    when the caller supplies neither `id` nor `globalIndex`.
    """

    def __init__(self, tables=None, default_location=config.DEFAULT_LOCATION):
        self.tables = tables or DEFAULT_TABLES
        self.default_location = default_location

    def parse(self, raw_text, options=None):
        if not raw_text or not isinstance(raw_text, str) or not raw_text.strip():
            raise ValueError("raw_text must be a non-empty string")

        options = options or {}
        now = options.get("now") or utcnow()
        text = self.clean_text(raw_text)

        title_match = self.extract_title(text)
        title = title_match.value if title_match else UNTITLED
        start_date, end_date = self.extract_dates(text, now)
        start_time, end_time, time_consumed = self.extract_times(text)
        venue, location_note = self.extract_venue(text)
        price_match = matchers.first_match(matchers.PRICE_MATCHERS, text)
        urls = self.extract_urls(text)

        consumed = [
            title_match.consumed if title_match else None,
            time_consumed,
            price_match.consumed if price_match else None,
        ]
        description = self.build_description(text, consumed)

        reasons = self.review_reasons(text, title, start_date, venue, location_note)
        start_iso = to_iso(start_date) if start_date else None

        return {
            "id": self._event_id(options),
            "title": title,
            "slug": generate_slug(title),
            "date": start_iso,
            "startDate": start_iso,
            "endDate": to_iso(end_date) if end_date else None,
            "startTime": start_time,
            "endTime": end_time,
            "description": description,
            "image": None,
            "imageUrl": None,
            "url": urls["url"],
            "referenceUrl": options.get("referenceUrl") or urls["referenceUrl"],
            "ticketUrl": urls["ticketUrl"],
            "venue": venue,
            "locationNote": location_note,
            "needsReview": bool(reasons),
            "reviewReasons": reasons,
            "tags": infer_tags(text, self.tables),
            "source": options.get("source") or "intelligent-text-parser",
            "location": self.default_location,
            "price": price_match.value if price_match else None,
            "contact": self._value(matchers.CONTACT_MATCHERS, text),
            "performer": self._value(matchers.PERFORMER_MATCHERS, text),
            "organizer": self._organizer(text),
            "scraped_at": to_iso(now),
        }

    def clean_text(self, text):
        text = strip_markup(text).translate(PUNCTUATION)
        text = re.sub(r"[^\x20-\x7E\u00a0-\u00ff\s]", "", text)
        text = collapse_whitespace(text)
        text = re.sub(r"\s+&\s+", " & ", text)
        for pattern, replacement in SCRAPE_ARTIFACTS:
            text = pattern.sub(replacement, text)
        return text.strip()

    def extract_title(self, text):
        match = matchers.first_match(matchers.TITLE_MATCHERS + [matchers.first_sentence_title], text)
        if not match:
            return None
        title = self.clean_title(match.value)
        if not title:
            return None
        return matchers.Match(title, match.consumed)

    @staticmethod
    def clean_title(title):
        title = re.sub(r"^\s*(the\s+)?", "", title, flags=re.IGNORECASE)
        title = re.sub(r"\s*[!.,:;]$", "", title).strip()
        return capitalize_first(title)

    def extract_dates(self, text, now):
        match = matchers.first_match(matchers.DATE_MATCHERS, text, now=now)
        start, end = match.value if match else (None, None)
        explicit_end = matchers.first_match(matchers.END_DATE_MATCHERS, text, now=now)
        if explicit_end:
            end = explicit_end.value
        if start and end and end < start:
            end = None
        return start, end

    def extract_times(self, text):
        """Returns (start_time, end_time, consumed_text)."""
        start_time = end_time = consumed = None

        time_range = matchers.first_match(matchers.TIME_RANGE_MATCHERS, text)
        if time_range:
            start_time, end_time = time_range.value
        else:
            single = matchers.first_match(matchers.START_TIME_MATCHERS, text)
            if single:
                start_time, consumed = single.value, single.consumed

        explicit_end = matchers.first_match(matchers.END_TIME_MATCHERS, text)
        if explicit_end:
            end_time = explicit_end.value

        return start_time, end_time, consumed

    def extract_venue(self, text):
        """Returns (venue, location_note): gazetteer, then phrasing patterns, then a location note."""
        known = self.tables.find_venue_in_text(text)
        if known:
            return known, None

        match = matchers.first_match(matchers.VENUE_MATCHERS, text)
        if match:
            return StructuredVenue(**match.value).to_dict(), None

        for term in self.tables.location_note_terms:
            found = re.search(re.escape(term), text, re.IGNORECASE)
            if found:
                return None, found.group(0)

        return None, None

    @staticmethod
    def extract_urls(text):
        found = [url.rstrip(".,;:!?)") for url in re.findall(r"https?://[^\s]+", text)]
        found = [url for url in found if is_absolute_url(url)]
        first = found[0] if found else None
        ticket = next(
            (url for url in found if any(word in url.lower() for word in ("ticket", "eventbrite", "buy"))),
            None,
        )
        return {"url": first, "referenceUrl": first, "ticketUrl": ticket}

    def build_description(self, text, consumed):
        description = text
        for part in consumed:
            if part:
                description = description.replace(part, " ", 1)

        description = re.sub(
            r"At\s+dusk,?\s*\(between\s+\d{1,2}:\d{2}-?\d{0,2}:?\d{0,2}\s*[ap]\.?m\.?\)\s*",
            "",
            description,
            flags=re.IGNORECASE,
        )
        description = collapse_whitespace(description)
        description = re.sub(r"^[.,\s]+", "", description)
        description = re.sub(r"[.,\s]+$", "", description)
        description = re.sub(r"\s*,\s*,", ",", description)
        description = re.sub(r"\.\s*\.", ".", description)
        description = capitalize_first(description.strip())
        return description or NO_DESCRIPTION

    @staticmethod
    def review_reasons(text, title, start_date, venue, location_note):
        reasons = []
        if not title or title == UNTITLED:
            reasons.append("untitled")
        if not start_date:
            reasons.append("missing_date")
        if not venue and not location_note:
            reasons.append("missing_location")
        if len(text) < MIN_TEXT_LENGTH:
            reasons.append("short_text")
        if "TBD" in text or "TBA" in text or HEDGE_WORDS.search(text):
            reasons.append("tentative_language")
        return reasons

    @staticmethod
    def _value(matcher_list, text):
        match = matchers.first_match(matcher_list, text)
        return match.value if match else None

    def _organizer(self, text):
        organizer = self._value(matchers.ORGANIZER_MATCHERS, text)
        if organizer:
            organizer = re.sub(r"\s+come\s+watch.+$", "", organizer, flags=re.IGNORECASE).strip()
        return organizer or None

    @staticmethod
    def _event_id(options):
        if options.get("id"):
            return options["id"]
        if options.get("globalIndex") is not None:
            return f"{config.AUTO_ID_PREFIX}{options['globalIndex']}"
        return str(uuid.uuid4())


def parse_event_text(raw_text, options=None, tables=None):
    return TextParser(tables=tables).parse(raw_text, options)
