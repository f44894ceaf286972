from datetime import datetime

import pytest

freeze_time = pytest.importorskip("freezegun").freeze_time

from consolidator.parser import matchers
from consolidator.parser.text import UNTITLED, TextParser, parse_event_text


@freeze_time("2025-11-01 12:00:00")
def test_parse_leading_day_announcement():
    event = parse_event_text(
        "14 Live Music with The Sandpoint Trio. Start at 7:30 p.m. at the Tervan.",
        {"source": "Sandpoint Online", "globalIndex": 3},
    )

    assert event["title"] == "Live Music with The Sandpoint Trio"
    assert event["startTime"] == "19:30"
    assert event["venue"]["name"] == "The Tervan"
    assert event["venue"]["address"] == "411 Cedar St"
    assert event["needsReview"] is False
    assert event["reviewReasons"] == []
    assert event["startDate"] == "2025-11-14T00:00:00.000Z"
    assert event["date"] == event["startDate"]
    assert event["id"] == "auto-3"
    assert event["source"] == "Sandpoint Online"
    assert "Community" in event["tags"]
    assert event["scraped_at"] == "2025-11-01T12:00:00.000Z"


def test_parse_rejects_empty_text():
    with pytest.raises(ValueError):
        parse_event_text("   ")
    with pytest.raises(ValueError):
        TextParser().parse(None)


def test_parse_is_deterministic_with_explicit_id():
    text = "Join us for the Harvest Festival on Saturday, October 18. Free admission at Farmin Park from 9-1 p.m."
    now = datetime(2025, 10, 1, 12, 0)
    first = parse_event_text(text, {"id": "harvest", "now": now})
    second = parse_event_text(text, {"id": "harvest", "now": now})
    assert first == second


def test_parse_join_us_phrasing_and_morning_range():
    event = parse_event_text(
        "Join us for the Farmers Market on Saturday, October 18. Fresh produce at Farmin Park from 9-1 p.m.",
        {"now": datetime(2025, 10, 1, 12, 0), "id": "market"},
    )

    assert event["title"] == "Farmers Market"
    assert event["startDate"] == "2025-10-18T00:00:00.000Z"
    assert event["startTime"] == "09:00"
    assert event["endTime"] == "13:00"
    assert event["venue"]["name"] == "Farmin Park"


def test_parse_flags_missing_fields_and_hedging():
    event = parse_event_text("TBD", {"id": "x", "now": datetime(2025, 11, 1)})

    assert event["needsReview"] is True
    assert "missing_date" in event["reviewReasons"]
    assert "missing_location" in event["reviewReasons"]
    assert "short_text" in event["reviewReasons"]
    assert "tentative_language" in event["reviewReasons"]


def test_parse_extracts_price_contact_and_urls():
    text = (
        "Comedy Night at The Hive, 207 N 1st Ave. Tickets $15 per person at "
        "https://www.eventbrite.com/e/comedy-night-tickets-1 or call (208) 555-0142. Hosted by Sandpoint Laughs."
    )
    event = parse_event_text(text, {"id": "comedy", "now": datetime(2025, 11, 1)})

    assert event["price"] == "$15"
    assert event["contact"] == "(208) 555-0142"
    assert event["url"] == "https://www.eventbrite.com/e/comedy-night-tickets-1"
    assert event["ticketUrl"] == "https://www.eventbrite.com/e/comedy-night-tickets-1"
    assert event["organizer"] == "Sandpoint Laughs"
    assert event["venue"]["name"] == "The Hive"


def test_parse_options_reference_url_wins():
    event = parse_event_text(
        "Open mic night at Matchwood starts at 8 p.m. on Friday, November 7. All performers welcome to sign up.",
        {"id": "mic", "referenceUrl": "https://matchwood.example.com/events", "now": datetime(2025, 11, 1)},
    )
    assert event["referenceUrl"] == "https://matchwood.example.com/events"
    assert event["url"] is None
    assert event["startTime"] == "20:00"


def test_clean_text_strips_markup_and_smart_punctuation():
    parser = TextParser()
    cleaned = parser.clean_text("<p>Rock’n’roll  &amp; blues – tonight</p>")
    assert cleaned == "Rock'n'roll & blues - tonight"


def test_time_range_matchers():
    assert matchers.first_match(matchers.TIME_RANGE_MATCHERS, "from 3-5:30 p.m.").value == ("15:00", "17:30")
    assert matchers.first_match(matchers.TIME_RANGE_MATCHERS, "between 8:00-8:45 p.m.").value == ("20:00", "20:45")
    assert matchers.first_match(matchers.TIME_RANGE_MATCHERS, "from 9-1 p.m.").value == ("09:00", "13:00")
    assert matchers.first_match(matchers.TIME_RANGE_MATCHERS, "doors at 7") is None


def test_start_time_matchers_consume_start_phrase():
    match = matchers.first_match(matchers.START_TIME_MATCHERS, "Start at 7:30 p.m. at the Tervan.")
    assert match.value == "19:30"
    assert match.consumed.startswith("Start at 7:30 p.m.")


def test_leading_day_rolls_into_next_month():
    now = datetime(2025, 11, 20, 9, 0)
    match = matchers.first_match(matchers.DATE_MATCHERS, "5 Pancake Breakfast.", now=now)
    assert match.value == (datetime(2025, 12, 5), None)


def test_leading_day_range_spans_month_end():
    now = datetime(2025, 11, 20, 9, 0)
    match = matchers.first_match(matchers.DATE_MATCHERS, "29-2 Fri-Tue Ski Swap.", now=now)
    assert match.value == (datetime(2025, 11, 29), datetime(2025, 12, 2))


def test_venue_matcher_rejects_generic_names():
    assert matchers.first_match(matchers.VENUE_MATCHERS, "Meet at downtown from noon") is None
    match = matchers.first_match(matchers.VENUE_MATCHERS, "Held at Sandpoint Library, or online.")
    assert match.value == {"name": "Sandpoint Library", "address": ""}


def test_performer_length_cap():
    long_name = "featuring " + "a very long run of words that is clearly not a name " * 2
    assert matchers.first_match(matchers.PERFORMER_MATCHERS, long_name) is None
    assert matchers.first_match(matchers.PERFORMER_MATCHERS, "featuring Bright Moments").value == "Bright Moments"


def test_parse_falls_back_to_untitled():
    event = parse_event_text("!!! ...", {"id": "blank", "now": datetime(2025, 11, 1)})

    assert event["title"] == UNTITLED
    assert "untitled" in event["reviewReasons"]
    assert event["slug"]


def test_out_of_range_minutes_are_not_read_as_times():
    assert matchers.first_match(matchers.START_TIME_MATCHERS, "Doors at 7:75 p.m.") is None
    assert matchers.first_match(matchers.TIME_RANGE_MATCHERS, "from 7-8:75 p.m.") is None

    event = parse_event_text(
        "14 Poetry Night at Matchwood. Doors at 7:75 p.m. Bring a poem to share with friends.",
        {"id": "poetry", "now": datetime(2025, 11, 1, 12, 0)},
    )
    assert event["startTime"] is None
    assert event["endTime"] is None
