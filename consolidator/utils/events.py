import hashlib
import re
import uuid
from urllib.parse import urlparse

from consolidator import config


def slugify(text):
    text = text.lower().strip()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[\s_]+", "-", text)
    text = re.sub(r"-+", "-", text)
    return text.strip("-")


def generate_slug(title, max_length=50):
    """URL-friendly slug from an event title; falls back to a random id for empty titles."""
    slug = slugify(title or "")[:max_length].strip("-")
    return slug or str(uuid.uuid4())


def stable_id(event):
    """
    Deterministic id from source, reference URL, start date and title.
    Format: stable-<first 8 hex chars of md5>
    """
    hash_input = "|".join([
        event.get("source") or "",
        event.get("referenceUrl") or "",
        event.get("startDate") or event.get("date") or "",
        event.get("title") or "",
    ]).lower()
    digest = hashlib.md5(hash_input.encode("utf-8")).hexdigest()
    return f"{config.STABLE_ID_PREFIX}{digest[:8]}"


def is_auto_id(event_id):
    return isinstance(event_id, str) and event_id.startswith(config.AUTO_ID_PREFIX)


def is_absolute_url(value):
    if not isinstance(value, str):
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def is_empty(value):
    return value is None or value == "" or value == [] or value == {}


def strip_empty_fields(event, keep=("needsReview",)):
    """Drop optional fields that carry no value."""
    return {k: v for k, v in event.items() if k in keep or not is_empty(v)}
