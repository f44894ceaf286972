from consolidator import config
from consolidator.tables import DEFAULT_TABLES
from consolidator.utils.dates import event_start
from consolidator.utils.text import jaccard


def venue_name(event):
    venue = event.get("venue")
    if isinstance(venue, dict):
        return venue.get("name") or None
    if isinstance(venue, str):
        return venue.strip() or None
    return None


def same_calendar_day(event1, event2):
    start1 = event_start(event1)
    start2 = event_start(event2)
    if start1 is None or start2 is None:
        return False
    return start1.date() == start2.date()


class DuplicateResolver:
    """
    Collapse near-duplicate events reported by different sources.

    Each incoming event is compared against every event accepted so far. A pair
    is a duplicate when titles are similar, the start falls on the same calendar
    day, and venues are similar or either venue is unknown. The more complete
    record keeps the slot; the other is recorded in `discards`.
    """

    def __init__(self, tables=None, title_threshold=config.TITLE_SIMILARITY,
                 venue_threshold=config.VENUE_SIMILARITY):
        self.tables = tables or DEFAULT_TABLES
        self.title_threshold = title_threshold
        self.venue_threshold = venue_threshold
        self.discards = []

    def resolve(self, events):
        self.discards = []
        unique = []

        for event in events:
            for index, existing in enumerate(unique):
                if not self.is_duplicate(event, existing):
                    continue
                kept, discarded = self.choose_better(event, existing)
                unique[index] = kept
                self.discards.append({
                    "kept": kept.get("title"),
                    "discarded": discarded.get("title"),
                    "kept_source": kept.get("source"),
                    "discarded_source": discarded.get("source"),
                    "reason": "duplicate_detected",
                })
                break
            else:
                unique.append(event)

        return unique

    def is_duplicate(self, event1, event2):
        if jaccard(event1.get("title"), event2.get("title")) < self.title_threshold:
            return False
        if not same_calendar_day(event1, event2):
            return False

        venue1 = venue_name(event1)
        venue2 = venue_name(event2)
        if not venue1 or not venue2:
            return True
        return jaccard(venue1, venue2) >= self.venue_threshold

    def choose_better(self, incoming, existing):
        """Returns (kept, discarded). Ties keep the incoming record."""
        if self.completeness_score(incoming) >= self.completeness_score(existing):
            return incoming, existing
        return existing, incoming

    def completeness_score(self, event):
        score = 0.0

        if event.get("title"):
            score += 2
        if event.get("date") or event.get("startDate"):
            score += 2

        description = event.get("description")
        if isinstance(description, str) and len(description) > 50:
            score += 1
        if event.get("image") or event.get("imageUrl"):
            score += 1
        if event.get("venue"):
            score += 1
        if event.get("url"):
            score += 1
        tags = event.get("tags")
        if isinstance(tags, list) and len(tags) > 2:
            score += 1
        if event.get("price"):
            score += 0.5
        if event.get("tickets") or event.get("ticketUrl"):
            score += 0.5

        if event.get("startTime"):
            score += 1
        if event.get("referenceUrl"):
            score += 1

        if event.get("needsReview") is False:
            score += 3
        elif event.get("needsReview") is True:
            score -= 3

        source = event.get("source")
        if isinstance(source, str):
            for marker, bonus in self.tables.official_sources.items():
                if marker in source:
                    score += bonus

        return score


def remove_duplicates(events, tables=None):
    """Returns (unique_events, discards)."""
    resolver = DuplicateResolver(tables=tables)
    unique = resolver.resolve(events)
    return unique, resolver.discards
