from consolidator.pipeline.dedupe import DuplicateResolver, remove_duplicates, same_calendar_day


def test_connies_trivia_example_keeps_more_complete_record():
    a = {"title": "Live Trivia Night", "date": "2025-11-03", "venue": "Connie's Lounge", "source": "A"}
    b = {
        "title": "Live Trivia Night!",
        "date": "2025-11-03T19:00:00Z",
        "venue": "Connies Lounge",
        "startTime": "19:00",
        "source": "B",
    }

    unique, discards = remove_duplicates([a, b])

    assert unique == [b]
    assert unique[0]["startTime"] == "19:00"
    assert unique[0].get("needsReview") is not True
    assert discards == [{
        "kept": "Live Trivia Night!",
        "discarded": "Live Trivia Night",
        "kept_source": "B",
        "discarded_source": "A",
        "reason": "duplicate_detected",
    }]


def test_better_existing_record_is_kept_in_place():
    rich = {
        "title": "Pub Quiz",
        "date": "2025-11-03T19:00:00Z",
        "startTime": "19:00",
        "referenceUrl": "https://example.com/quiz",
        "source": "B",
    }
    poor = {"title": "Pub Quiz", "date": "2025-11-03", "source": "A"}
    other = {"title": "Knitting Circle", "date": "2025-11-04", "source": "A"}

    unique, discards = remove_duplicates([rich, other, poor])

    assert unique == [rich, other]
    assert discards[0]["discarded_source"] == "A"


def test_recurring_weekly_events_not_merged():
    events = [
        {"title": "Open Mic Night", "date": "2025-11-05", "venue": "Matchwood"},
        {"title": "Open Mic Night", "date": "2025-11-12", "venue": "Matchwood"},
        {"title": "Open Mic Night", "date": "2025-11-06", "venue": "Matchwood"},
    ]
    unique, discards = remove_duplicates(events)
    assert len(unique) == 3
    assert discards == []


def test_different_venues_block_match():
    events = [
        {"title": "Jazz Brunch", "date": "2025-11-09", "venue": {"name": "The Hive"}},
        {"title": "Jazz Brunch", "date": "2025-11-09", "venue": {"name": "Barrel 33"}},
    ]
    assert len(remove_duplicates(events)[0]) == 2


def test_missing_venue_never_blocks_match():
    events = [
        {"title": "Jazz Brunch", "date": "2025-11-09", "venue": {"name": "The Hive"}},
        {"title": "Jazz Brunch", "date": "2025-11-09T17:00:00Z"},
    ]
    assert len(remove_duplicates(events)[0]) == 1


def test_dissimilar_titles_not_merged():
    events = [
        {"title": "Holiday Craft Fair", "date": "2025-12-06"},
        {"title": "Holiday Beer Fair", "date": "2025-12-06"},
    ]
    assert len(remove_duplicates(events)[0]) == 2


def test_tie_goes_to_incoming_record():
    first = {"title": "Book Club", "date": "2025-11-10", "source": "A"}
    second = {"title": "Book Club", "date": "2025-11-10", "source": "B"}

    unique, _ = remove_duplicates([first, second])
    assert unique == [second]


def test_completeness_score_rewards_and_penalties():
    resolver = DuplicateResolver()
    base = {"title": "Show", "date": "2025-11-10"}

    assert resolver.completeness_score(base) == 4
    assert resolver.completeness_score(dict(base, needsReview=False)) > resolver.completeness_score(base)
    assert resolver.completeness_score(dict(base, needsReview=True)) < resolver.completeness_score(base)
    assert resolver.completeness_score(dict(base, source="City of Sandpoint")) == 5
    assert resolver.completeness_score(dict(base, startTime="19:00", referenceUrl="https://x.org")) == 6


def test_same_calendar_day_uses_utc_day():
    assert same_calendar_day({"date": "2025-11-03"}, {"startDate": "2025-11-03T23:30:00Z"})
    assert not same_calendar_day({"date": "2025-11-03"}, {"date": "2025-11-04T00:30:00Z"})
    assert not same_calendar_day({"date": "soon"}, {"date": "2025-11-03"})


def test_resolver_thresholds_are_configurable():
    events = [
        {"title": "Jazz Night", "date": "2025-11-09"},
        {"title": "Blues Night", "date": "2025-11-09"},
    ]
    assert len(DuplicateResolver(title_threshold=0.3).resolve(events)) == 1
