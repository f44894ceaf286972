import re


def infer_tags(text, tables):
    """
    Infer event tags from free text using the keyword rule table.
    The default tag is always included.
    """
    tags = [tag for tag, pattern in tables.tag_rules if re.search(pattern, text, re.IGNORECASE)]
    if tables.default_tag not in tags:
        tags.append(tables.default_tag)
    return tags


def canonical_tag(tag, tables):
    """Map a tag spelling to its canonical lowercase form, or None if unrecognized."""
    if not isinstance(tag, str):
        return None
    lowered = tag.strip().lower()
    for canonical, variants in tables.tag_synonyms.items():
        if lowered == canonical or lowered in variants:
            return canonical
    return None


def canonicalize_tags(tags, tables):
    """Canonical, deduplicated, sorted tags. Unrecognized tags are dropped."""
    if not isinstance(tags, (list, tuple, set)):
        return []
    canonical = {canonical_tag(tag, tables) for tag in tags}
    canonical.discard(None)
    return sorted(canonical)
