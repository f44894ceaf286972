from consolidator import config
from consolidator.tables import DEFAULT_TABLES
from consolidator.utils.dates import event_start, to_iso, utcnow
from consolidator.utils.events import is_empty


def _count(counter, key):
    counter[key] = counter.get(key, 0) + 1


def _venue_label(event):
    venue = event.get("venue")
    if isinstance(venue, dict) and venue.get("name"):
        return venue["name"]
    if isinstance(venue, str) and venue.strip():
        return venue.strip()
    return event.get("locationNote") or "Unknown"


def build_merge_report(original_events, production_events, review_events, duplicates_removed, now=None,
                       tables=None):
    """
    Summarize one merge run. Sources are counted over the raw input by canonical name;
    venues, tags, date range and field completeness over the production set.
    """
    tables = tables or DEFAULT_TABLES
    report = {
        "timestamp": to_iso(now or utcnow()),
        "original_count": len(original_events),
        "production_count": len(production_events),
        "review_count": len(review_events),
        "duplicates_removed": duplicates_removed,
        "sources": {},
        "date_range": {"earliest": None, "latest": None},
        "venues": {},
        "tags": {},
        "field_completeness": {field: 0 for field in config.COMPLETENESS_FIELDS},
        "field_completeness_pct": {},
    }

    for event in original_events:
        source = event.get("source")
        if isinstance(source, str) and source.strip():
            source = tables.source_names.get(source.strip(), source.strip())
        _count(report["sources"], source or "Unknown")

    earliest = latest = None
    for event in production_events:
        start = event_start(event)
        if start is not None:
            if earliest is None or start < earliest[0]:
                earliest = (start, event.get("startDate") or event.get("date"))
            if latest is None or start > latest[0]:
                latest = (start, event.get("startDate") or event.get("date"))

        _count(report["venues"], _venue_label(event))
        for tag in event.get("tags") or []:
            _count(report["tags"], tag)

        for field in config.COMPLETENESS_FIELDS:
            if not is_empty(event.get(field)):
                report["field_completeness"][field] += 1

    report["date_range"]["earliest"] = earliest[1] if earliest else None
    report["date_range"]["latest"] = latest[1] if latest else None

    total = len(production_events)
    report["field_completeness_pct"] = {
        field: round(count * 100.0 / total, 1) if total else 0.0
        for field, count in report["field_completeness"].items()
    }
    return report


def format_merge_summary(report):
    """Log lines mirroring the report fields."""
    date_range = report["date_range"]
    lines = [
        "--- MERGE SUMMARY ---",
        f"Original events: {report['original_count']}",
        f"Production events: {report['production_count']}",
        f"Review events: {report['review_count']}",
        f"Duplicates removed: {report['duplicates_removed']}",
        f"Date range: {date_range['earliest']} to {date_range['latest']}",
        "Sources: " + ", ".join(f"{name}: {count}" for name, count in sorted(report["sources"].items())),
    ]
    if report["venues"]:
        top = sorted(report["venues"].items(), key=lambda item: (-item[1], item[0]))[:5]
        lines.append("Top venues: " + ", ".join(f"{name}: {count}" for name, count in top))
    lines.append("Field completeness:")
    for field, pct in report["field_completeness_pct"].items():
        lines.append(f"  {field:<14} {report['field_completeness'][field]:>5}  {pct:>5.1f}%")
    lines.append("--- END SUMMARY ---")
    return lines
