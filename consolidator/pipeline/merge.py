from pathlib import Path

from consolidator import config
from consolidator.pipeline.dedupe import DuplicateResolver
from consolidator.pipeline.filter import filter_and_clean, sort_events
from consolidator.pipeline.io import load_sources, write_json_atomic
from consolidator.pipeline.normalize import normalize_events
from consolidator.pipeline.report import build_merge_report
from consolidator.pipeline.validate import format_validation_report, validate_event_batch
from consolidator.tables import DEFAULT_TABLES, load_tables
from consolidator.utils.dates import utcnow


class OutputWriteError(Exception):
    """Raised when writing outputs fails part way; `written` lists files already replaced."""

    def __init__(self, message, written):
        super().__init__(message)
        self.written = written


def get_tables():
    """Lookup tables from EVENT_TABLES_PATH if set, else the built-in ones."""
    if config.TABLES_PATH:
        return load_tables(config.TABLES_PATH)
    return DEFAULT_TABLES


def flag_time_issues(events):
    """
    Run the time validator before partitioning. Cleared times are kept and any
    event with an issue is routed to review.
    """
    report = validate_event_batch(events)
    flagged = []
    for result in report["results"]:
        event = result["event"]
        if result["issues"]:
            event["needsReview"] = True
            reasons = list(event.get("reviewReasons") or [])
            if "time_validation" not in reasons:
                reasons.append("time_validation")
            event["reviewReasons"] = reasons
            event["timeIssues"] = result["issues"]
        flagged.append(event)
    return flagged, report


def partition(events):
    """Returns (production, review)."""
    production = [e for e in events if e.get("needsReview") is not True]
    review = [e for e in events if e.get("needsReview") is True]
    return production, review


def snapshot_filename(now):
    return f"merged-events-{now.strftime('%Y-%m-%d')}.json"


def write_outputs(output_dir, outputs):
    """Write (filename, data) pairs atomically, in order."""
    written = []
    for filename, data in outputs:
        path = Path(output_dir) / filename
        try:
            write_json_atomic(path, data)
        except OSError as e:
            raise OutputWriteError(f"Failed to write {path}: {e}", written) from e
        written.append(str(path))
    return written


def merge_all(active_dir=None, legacy_dir=None, output_dir=None, tables=None, log_func=None,
              now=None, window_days=None):
    """
    Load, deduplicate, normalize, filter, partition and persist all scraped events.

    Every output is computed before the first file is written, so a failure
    in any stage leaves the previous run's outputs in place.
    """
    log = log_func or print
    active_dir = active_dir or config.ACTIVE_DIR
    legacy_dir = legacy_dir if legacy_dir is not None else config.LEGACY_DIR
    output_dir = Path(output_dir or config.OUTPUT_DIR)
    tables = tables or get_tables()
    now = now or utcnow()
    window_days = window_days if window_days is not None else config.WINDOW_DAYS

    raw_events, source_metrics = load_sources(active_dir, legacy_dir, log_func=log)
    log(f"Loaded {len(raw_events)} events from {len(source_metrics)} source files")

    log("\nRemoving duplicates...")
    resolver = DuplicateResolver(tables=tables)
    unique = resolver.resolve(raw_events)
    log(f"  Removed {len(resolver.discards)} duplicates")

    log("\nNormalizing events...")
    normalized = normalize_events(unique, tables=tables)

    normalized, time_report = flag_time_issues(normalized)
    if time_report["summary"]["eventsWithErrors"]:
        log(f"  {time_report['summary']['eventsWithErrors']} events have time issues", "WARNING")

    log("\nFiltering events...")
    cleaned = filter_and_clean(normalized, tables=tables, now=now, window_days=window_days)
    dropped = len(normalized) - len(cleaned)
    if dropped:
        log(f"  Filtered out {dropped} events (missing fields or outside the {window_days}-day window)", "WARNING")

    production, review = partition(sort_events(cleaned))

    final_report = validate_event_batch(production)
    production = final_report["summary"]["validatedEvents"]
    for line in format_validation_report(final_report):
        log(line)

    report = build_merge_report(raw_events, production, review, len(resolver.discards), now=now, tables=tables)

    written = write_outputs(output_dir, [
        (config.EVENTS_FILENAME, production),
        (config.REVIEW_FILENAME, review),
        (snapshot_filename(now), production),
        (config.DUPLICATE_REPORT_FILENAME, resolver.discards),
        (config.REPORT_FILENAME, report),
    ])
    for path in written:
        log(f"Saved {path}")

    return {
        "productionEvents": production,
        "reviewEvents": review,
        "report": report,
        "duplicates": resolver.discards,
        "sourceMetrics": source_metrics,
        "timeValidation": final_report,
    }
