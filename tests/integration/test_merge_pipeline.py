import json
import shutil
from pathlib import Path

import pytest

freeze_time = pytest.importorskip("freezegun").freeze_time

import merge as merge_script
from consolidator.pipeline import merge as pipeline
from consolidator.pipeline.io import load_merged_events, load_sources, trim_log_by_time

FIXTURES = Path("tests/fixtures/sources")


@pytest.fixture
def source_dirs(tmp_path):
    active = tmp_path / "active"
    active.mkdir()
    for path in FIXTURES.glob("*.json"):
        shutil.copy(path, active / path.name)
    (active / "broken.json").write_text("[{not json")
    return active, tmp_path / "legacy", tmp_path / "out"


def run_merge(source_dirs, logs=None):
    active, legacy, output = source_dirs

    def log(message, level="INFO"):
        if logs is not None:
            logs.append((level, message))

    return pipeline.merge_all(active_dir=active, legacy_dir=legacy, output_dir=output, log_func=log)


@freeze_time("2025-11-01 12:00:00")
def test_merge_partitions_and_persists(source_dirs):
    result = run_merge(source_dirs)
    output = source_dirs[2]

    production = json.loads((output / "events.json").read_text())
    review = json.loads((output / "events-to-review.json").read_text())

    assert [e["title"] for e in production] == ["Live Trivia Night!", "Holiday Lights Festival"]
    assert [e["title"] for e in review] == ["Sunrise Yoga", "First Friday Art Walk"]
    assert production == result["productionEvents"]
    assert all(e["needsReview"] is False for e in production)
    assert all(e["needsReview"] is True for e in review)

    trivia, lights = production
    assert trivia["id"] == "eb-123"
    assert trivia["venue"]["name"] == "Connie's Lounge"
    assert trivia["tags"] == ["community", "nightlife"]
    assert trivia["source"] == "Eventbrite"

    assert lights["id"].startswith("stable-")
    assert lights["locationNote"] == "Downtown Sandpoint"
    assert "venue" not in lights
    assert lights["startTime"] == "18:00"
    assert lights["tags"] == ["family", "festival"]
    assert lights["scrapedAt"] == "2025-10-30T08:00:00.000Z"
    assert lights["referenceUrl"] == "https://sandpointonline.com/current/index.shtml"

    yoga, art_walk = review
    assert "startTime" not in yoga
    assert "time_validation" in yoga["reviewReasons"]
    assert yoga["timeIssues"] == ["Invalid startTime format: 25:00 (expected HH:mm)"]
    assert "date_time_mismatch" in art_walk["reviewReasons"]
    assert "image" not in art_walk
    assert art_walk["venue"]["address"] == "513 Oak St"


@freeze_time("2025-11-01 12:00:00")
def test_merge_report_and_duplicate_report(source_dirs):
    run_merge(source_dirs)
    output = source_dirs[2]

    report = json.loads((output / "merge-report.json").read_text())
    assert report["original_count"] == 7
    assert report["production_count"] == 2
    assert report["review_count"] == 2
    assert report["duplicates_removed"] == 1
    assert report["sources"] == {"Eventbrite": 3, "Sandpoint Online": 4}
    assert report["date_range"] == {
        "earliest": "2025-11-03T19:00:00Z",
        "latest": "2025-12-05T18:00:00.000Z",
    }
    assert report["venues"] == {"Connie's Lounge": 1, "Downtown Sandpoint": 1}
    assert report["field_completeness"]["startTime"] == 2
    assert report["field_completeness"]["ticketUrl"] == 1
    assert report["field_completeness_pct"]["ticketUrl"] == 50.0
    assert report["timestamp"] == "2025-11-01T12:00:00.000Z"

    duplicates = json.loads((output / "duplicate-report.json").read_text())
    assert duplicates == [{
        "kept": "Live Trivia Night!",
        "discarded": "Live Trivia Night",
        "kept_source": "eventbrite",
        "discarded_source": "sandpoint-online",
        "reason": "duplicate_detected",
    }]

    snapshot = output / "merged-events-2025-11-01.json"
    assert snapshot.read_text() == (output / "events.json").read_text()
    assert load_merged_events(output) == json.loads(snapshot.read_text())


@freeze_time("2025-11-01 12:00:00")
def test_merge_is_idempotent(source_dirs):
    run_merge(source_dirs)
    first = (source_dirs[2] / "events.json").read_bytes()
    first_review = (source_dirs[2] / "events-to-review.json").read_bytes()

    run_merge(source_dirs)

    assert (source_dirs[2] / "events.json").read_bytes() == first
    assert (source_dirs[2] / "events-to-review.json").read_bytes() == first_review


@freeze_time("2025-11-01 12:00:00")
def test_window_filter(source_dirs):
    result = run_merge(source_dirs)
    titles = {e["title"] for e in result["productionEvents"] + result["reviewEvents"]}

    assert "Harvest Dinner" not in titles
    assert "Winter Carnival Gala" not in titles
    for event in result["productionEvents"]:
        assert "2025-11-01" <= event["startDate"][:10] <= "2025-12-31"


@freeze_time("2025-11-01 12:00:00")
def test_malformed_file_and_entries_are_skipped(source_dirs):
    logs = []
    result = run_merge(source_dirs, logs)
    metrics = {m.name: m for m in result["sourceMetrics"]}

    assert metrics["broken"].errors == 1
    assert metrics["broken"].event_count == 0
    assert metrics["sandpoint-online"].skipped == 1
    assert metrics["eventbrite"].skipped == 1
    assert any(level == "ERROR" and "broken.json" in message for level, message in logs)
    assert any(level == "WARNING" and "not an object" in message for level, message in logs)


@freeze_time("2025-11-01 12:00:00")
def test_events_with_wrongly_typed_fields_are_skipped(source_dirs):
    active = source_dirs[0]
    bad_events = [
        {"id": "w-1", "title": "Open Mic", "startDate": "2025-11-05T19:00:00.000Z", "venue": {"name": 42}},
        {"id": "auto-9", "title": 42, "startDate": "2025-11-05T19:00:00.000Z"},
        {"id": "w-3", "title": "Craft Fair", "startDate": "2025-11-06T10:00:00.000Z", "source": ["a"]},
    ]
    (active / "weird.json").write_text(json.dumps(bad_events))
    logs = []

    result = run_merge(source_dirs, logs)
    metrics = {m.name: m for m in result["sourceMetrics"]}

    assert metrics["weird"].skipped == 3
    assert metrics["weird"].event_count == 0
    assert [e["title"] for e in result["productionEvents"]] == ["Live Trivia Night!", "Holiday Lights Festival"]
    assert (source_dirs[2] / "events.json").exists()
    warnings = [message for level, message in logs if level == "WARNING" and "weird.json" in message]
    assert any("venue.name" in message for message in warnings)
    assert any("malformed title" in message for message in warnings)
    assert any("malformed source" in message for message in warnings)


def test_legacy_directory_used_when_active_is_empty(tmp_path):
    active = tmp_path / "active"
    legacy = tmp_path / "scraped-events"
    active.mkdir()
    legacy.mkdir()
    shutil.copy(FIXTURES / "eventbrite.json", legacy / "eventbrite.json")

    events, metrics = load_sources(active, legacy, log_func=lambda *args: None)

    assert [m.name for m in metrics] == ["eventbrite"]
    assert len(events) == 3


@freeze_time("2025-11-01 12:00:00")
def test_failure_preserves_previous_outputs(source_dirs, monkeypatch):
    output = source_dirs[2]
    output.mkdir()
    (output / "events.json").write_text('[{"title": "Previous"}]')

    def explode(*args, **kwargs):
        raise RuntimeError("report failed")

    monkeypatch.setattr(pipeline, "build_merge_report", explode)

    with pytest.raises(RuntimeError):
        run_merge(source_dirs)

    assert (output / "events.json").read_text() == '[{"title": "Previous"}]'
    assert not (output / "events-to-review.json").exists()


@freeze_time("2025-11-01 12:00:00")
def test_main_writes_error_log_and_exits_nonzero(tmp_path, monkeypatch):
    def explode(**kwargs):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(merge_script, "merge_all", explode)
    monkeypatch.setattr(merge_script, "LOG_PATH", tmp_path / "merge-log.txt")
    monkeypatch.setattr(merge_script, "ERROR_LOG_PATH", tmp_path / "merge-error.log")

    with pytest.raises(SystemExit) as exc:
        merge_script.main()

    assert exc.value.code == 1
    error_log = (tmp_path / "merge-error.log").read_text()
    assert "disk on fire" in error_log
    assert "no output files were replaced" in error_log
    assert "Traceback" in error_log
    assert "--- New Run ---" in (tmp_path / "merge-log.txt").read_text()


@freeze_time("2025-11-01 12:00:00")
def test_main_success_writes_run_log(source_dirs, tmp_path, monkeypatch):
    active, legacy, output = source_dirs
    monkeypatch.setattr(merge_script, "LOG_PATH", tmp_path / "merge-log.txt")
    monkeypatch.setattr(
        merge_script,
        "merge_all",
        lambda log_func: pipeline.merge_all(active_dir=active, legacy_dir=legacy, output_dir=output, log_func=log_func),
    )

    merge_script.main()

    log_text = (tmp_path / "merge-log.txt").read_text()
    assert "[2025-11-01 12:00:00] [INFO] Starting merge run" in log_text
    assert "SOURCE SUMMARY" in log_text
    assert "--- MERGE SUMMARY ---" in log_text


def test_trim_log_by_time_drops_old_entries(tmp_path):
    log_path = tmp_path / "merge-log.txt"
    log_path.write_text(
        "[2020-01-01 00:00:00] [INFO] ancient run\n"
        "continuation of ancient entry\n"
        "[2999-01-01 00:00:00] [INFO] future run\n"
    )

    kept = trim_log_by_time(log_path, retention_days=14)

    assert kept == ["[2999-01-01 00:00:00] [INFO] future run\n"]
