import re
from datetime import datetime, timezone

TIME_FORMAT = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")


def utcnow():
    """Current UTC time as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso(value):
    """
    Parse an ISO-8601 date or date-time string.
    Aware values are converted to UTC; the result is always naive.
    Returns None for anything unparseable.
    """
    if not value or not isinstance(value, str):
        return None

    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def is_valid_iso(value):
    return parse_iso(value) is not None


def to_iso(dt):
    """Format a naive UTC datetime the way scrapers emit it: 2025-08-14T00:00:00.000Z."""
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def event_start(event):
    """The authoritative start of an event: startDate, falling back to date."""
    return parse_iso(event.get("startDate")) or parse_iso(event.get("date"))


def is_valid_time_format(time_str):
    return isinstance(time_str, str) and bool(TIME_FORMAT.match(time_str))


def time_to_minutes(time_str):
    hours, minutes = time_str.split(":")
    return int(hours) * 60 + int(minutes)


def to_24h(hour, minute=0, meridiem=""):
    """Convert a 12-hour clock reading to HH:MM. Meridiem may be "a.m.", "PM", "" etc."""
    meridiem = (meridiem or "").lower().replace(".", "").strip()
    if meridiem == "pm" and hour != 12:
        hour += 12
    elif meridiem == "am" and hour == 12:
        hour = 0
    return f"{hour:02d}:{minute:02d}"


def normalize_time(time_str):
    """
    Normalize time strings to consistent HH:MM 24-hour format.
    Handles: "8:00", "8:30pm", "20:00:00", "19:00", "8:00 p.m."
    """
    if not time_str or not isinstance(time_str, str):
        return None

    time_str = time_str.strip().lower().replace(".", "")

    if time_str.count(":") == 2:
        time_str = ":".join(time_str.split(":")[:2])

    is_pm = "pm" in time_str
    is_am = "am" in time_str
    time_str = time_str.replace("pm", "").replace("am", "").strip()

    parts = time_str.split(":")
    if len(parts) != 2:
        return None

    try:
        hours = int(parts[0])
        minutes = int(parts[1])
    except ValueError:
        return None

    meridiem = "pm" if is_pm else "am" if is_am else ""
    return to_24h(hours, minutes, meridiem)
