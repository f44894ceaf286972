import json
import os
import re
import tempfile
import time
from datetime import timedelta
from pathlib import Path

from consolidator import config
from consolidator.pipeline.metrics import SourceMetrics
from consolidator.pipeline.normalize import FIELD_ALIASES
from consolidator.utils.dates import utcnow

TEXT_FIELDS = (
    "title", "description", "source", "date", "startDate", "endDate", "startTime", "endTime",
    "url", "referenceUrl", "ticketUrl", "image", "imageUrl", "locationNote", "performer",
)


def list_source_files(active_dir, legacy_dir=None):
    """
    JSON source files to merge, sorted by name.
    The legacy directory is only used when the active one has no files.
    """
    files = sorted(Path(active_dir).glob("*.json")) if active_dir and Path(active_dir).is_dir() else []
    if not files and legacy_dir and Path(legacy_dir).is_dir():
        files = sorted(Path(legacy_dir).glob("*.json"))
    return files


def malformed_field(entry):
    """Name of the first field whose value has the wrong type, or None."""
    aliases = tuple(alias for alias, canonical in FIELD_ALIASES.items() if canonical in TEXT_FIELDS)
    for field in TEXT_FIELDS + aliases:
        value = entry.get(field)
        if value is not None and not isinstance(value, str):
            return field

    event_id = entry.get("id")
    if event_id is not None and (isinstance(event_id, bool) or not isinstance(event_id, (str, int))):
        return "id"

    venue = entry.get("venue")
    if isinstance(venue, dict):
        if venue.get("name") is not None and not isinstance(venue["name"], str):
            return "venue.name"
    elif venue is not None and not isinstance(venue, str):
        return "venue"

    for field in ("tags", "reviewReasons"):
        if entry.get(field) is not None and not isinstance(entry[field], list):
            return field
    return None


def load_source_file(path, log_func=None):
    """
    Load one source file as a list of event dicts.
    Returns (events, metrics). A malformed file yields no events and an error on
    its metrics; non-object entries, entries with wrongly typed fields and repeated ids
    within the file are skipped.
    """
    log = log_func or print
    path = Path(path)
    metrics = SourceMetrics(name=path.stem, file=str(path))
    start_time = time.time()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError(f"expected a JSON array, got {type(data).__name__}")
    except (OSError, ValueError) as e:
        metrics.errors = 1
        metrics.error_messages.append(str(e))
        metrics.duration_ms = (time.time() - start_time) * 1000
        log(f"  ERROR: Failed to load {path.name}: {e}", "ERROR")
        return [], metrics

    events = []
    seen_ids = set()
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            metrics.skipped += 1
            log(f"  Skipping entry {index} in {path.name}: not an object", "WARNING")
            continue
        bad_field = malformed_field(entry)
        if bad_field:
            metrics.skipped += 1
            log(f"  Skipping entry {index} in {path.name}: malformed {bad_field}", "WARNING")
            continue
        event_id = entry.get("id")
        if event_id and event_id in seen_ids:
            metrics.skipped += 1
            continue
        if event_id:
            seen_ids.add(event_id)
        events.append(entry)

    metrics.event_count = len(events)
    metrics.duration_ms = (time.time() - start_time) * 1000
    return events, metrics


def load_sources(active_dir, legacy_dir=None, log_func=None):
    """
    Load every source file. Returns (events, metrics_list).
    Events keep file order, then in-file order.
    """
    log = log_func or print
    files = list_source_files(active_dir, legacy_dir)
    if not files:
        log(f"No source files found in {active_dir}", "WARNING")

    all_events = []
    all_metrics = []
    for path in files:
        log(f"Loading {path.name}...")
        events, metrics = load_source_file(path, log_func=log)
        if not metrics.errors:
            log(f"  Found {metrics.event_count} events")
        all_events.extend(events)
        all_metrics.append(metrics)
    return all_events, all_metrics


def write_json_atomic(path, data):
    """Write JSON to a temp file in the target directory, then move it into place."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise


def load_merged_events(output_dir=None):
    """Load the last published production events, or [] if none exist."""
    path = Path(output_dir or config.OUTPUT_DIR) / config.EVENTS_FILENAME
    if not path.exists():
        return []
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def trim_log_by_time(log_path, retention_days=14):
    """
    Remove log entries older than retention_days.
    Returns list of lines to keep.
    """
    log_path = Path(log_path)
    if not log_path.exists():
        return []

    cutoff = utcnow() - timedelta(days=retention_days)
    cutoff_str = cutoff.strftime("%Y-%m-%d %H:%M:%S")

    kept_lines = []
    current_entry_recent = False

    with open(log_path, "r", encoding="utf-8") as f:
        for line in f:
            match = re.match(r"\[(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})\]", line)
            if match:
                current_entry_recent = match.group(1) >= cutoff_str

            if current_entry_recent:
                kept_lines.append(line)

    return kept_lines


def append_run_log(log_path, log_lines, retention_days=config.LOG_RETENTION_DAYS):
    """Rewrite the run log with recent entries plus this run's lines."""
    log_path = Path(log_path)
    existing_log = trim_log_by_time(log_path, retention_days=retention_days)
    log_content = existing_log + ["\n--- New Run ---\n"] + [line + "\n" for line in log_lines]

    log_path.parent.mkdir(parents=True, exist_ok=True)
    with open(log_path, "w", encoding="utf-8") as f:
        f.writelines(log_content)


def write_error_log(log_path, message, trace):
    log_path = Path(log_path)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    timestamp = utcnow().strftime("%Y-%m-%d %H:%M:%S")
    with open(log_path, "w", encoding="utf-8") as f:
        f.write(f"[{timestamp}] [ERROR] {message}\n{trace}")
