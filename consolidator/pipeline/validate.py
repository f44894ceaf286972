from consolidator.utils.dates import event_start, is_valid_time_format, parse_iso, time_to_minutes

# UTC hour a local-midnight default parse lands on (Pacific time).
MIDNIGHT_ARTIFACT_HOUR = 7
DAY_MS = 24 * 60 * 60 * 1000


def validate_event(event):
    """Check that event has all required fields with valid data."""
    if not isinstance(event, dict):
        return False
    title = event.get("title")
    if not isinstance(title, str) or not title.strip():
        return False
    return event_start(event) is not None


def validate_event_times(event):
    """
    Validate time formats and date/time consistency of a single event.

    Malformed startTime/endTime values are cleared rather than raised.
    Returns {"event", "issues", "hasErrors", "hasWarnings"}; the input
    event is not modified.
    """
    validated = dict(event)
    issues = []

    if not validated.get("date") and not validated.get("startDate"):
        issues.append("Missing both date and startDate fields")
        return {"event": validated, "issues": issues, "hasErrors": True, "hasWarnings": False}

    if not validated.get("startDate"):
        validated["startDate"] = validated["date"]
    if not validated.get("date"):
        validated["date"] = validated["startDate"]

    for field in ("startTime", "endTime"):
        value = validated.get(field)
        if value and not is_valid_time_format(value):
            issues.append(f"Invalid {field} format: {value} (expected HH:mm)")
            validated[field] = None

    issues.extend(check_date_time_consistency(validated))
    issues.extend(check_midnight_inconsistency(validated))

    return {
        "event": validated,
        "issues": issues,
        "hasErrors": len(issues) > 0,
        "hasWarnings": any("Warning" in issue for issue in issues),
    }


def check_date_time_consistency(event):
    issues = []

    if event.get("date") and event.get("startDate") and event["date"] != event["startDate"]:
        date = parse_iso(event["date"])
        start = parse_iso(event["startDate"])
        if date and start and abs((date - start).total_seconds()) * 1000 > DAY_MS:
            issues.append(
                f"Warning: date ({event['date']}) and startDate ({event['startDate']}) differ by more than 24 hours"
            )

    if event.get("endDate") and event.get("startDate"):
        start = parse_iso(event["startDate"])
        end = parse_iso(event["endDate"])
        if start and end and end < start:
            issues.append(f"Error: endDate ({event['endDate']}) is before startDate ({event['startDate']})")

    start_time = event.get("startTime")
    end_time = event.get("endTime")
    if start_time and end_time and not event.get("endDate"):
        if is_valid_time_format(start_time) and is_valid_time_format(end_time):
            if time_to_minutes(end_time) <= time_to_minutes(start_time):
                issues.append(
                    f"Warning: endTime ({end_time}) is before or equal to startTime ({start_time})"
                    " - this may be a multi-day event"
                )

    return issues


def check_midnight_inconsistency(event):
    """Flag dates sitting on the default-parse hour while a real startTime is known."""
    issues = []
    date = parse_iso(event.get("date"))
    start_time = event.get("startTime")

    if date and start_time and date.hour == MIDNIGHT_ARTIFACT_HOUR and date.minute == 0:
        if start_time not in ("00:00", "07:00"):
            issues.append(
                f"Warning: Date shows base time ({event['date']}) but startTime is {start_time}"
                " - check if dates need to be reconstructed"
            )

    return issues


def validate_event_batch(events):
    """Validate every event; never drops one. Returns {"summary", "results", "isValid"}."""
    results = [validate_event_times(event) for event in events]

    summary = {
        "totalEvents": len(events),
        "eventsWithErrors": sum(1 for r in results if r["hasErrors"]),
        "eventsWithWarnings": sum(1 for r in results if r["hasWarnings"]),
        "cleanEvents": sum(1 for r in results if not r["hasErrors"] and not r["hasWarnings"]),
        "allIssues": [issue for r in results for issue in r["issues"]],
        "validatedEvents": [r["event"] for r in results],
    }

    return {
        "summary": summary,
        "results": results,
        "isValid": summary["eventsWithErrors"] == 0,
    }


def format_validation_report(report):
    """Render a batch validation report as log lines."""
    summary = report["summary"]
    lines = [
        "Time Validation Report",
        "=" * 24,
        f"Total events: {summary['totalEvents']}",
        f"Clean events: {summary['cleanEvents']}",
        f"Events with warnings: {summary['eventsWithWarnings']}",
        f"Events with errors: {summary['eventsWithErrors']}",
    ]
    if summary["allIssues"]:
        lines.append("Issues found:")
        for issue in summary["allIssues"]:
            lines.append(f"  {issue}")
    if summary["eventsWithErrors"] == 0:
        lines.append("All events passed time validation")
    return lines
