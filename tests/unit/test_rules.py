"""Unit tests for classification, location resolution and severity."""
from __future__ import annotations

import pytest

from raven_local.nlp.location import MCHENRY, NEWS_AREA, Gazetteer
from raven_local.nlp.rules import (
    COUNTY_NEWS_DEFAULT,
    COUNTY_NEWS_RULES,
    NEWS_DEFAULT,
    NEWS_RULES,
    SCANNER_RULES,
    WEATHER_DEFAULT,
    WEATHER_EVENT_RULES,
    Classification,
    classify,
    map_county_category,
)
from raven_local.nlp.severity import (
    COUNTY_NEWS_SEVERITY,
    NEWS_SEVERITY,
    SCANNER_SEVERITY,
    more_severe,
    traffic_event_severity,
    weather_severity,
)


def test_first_matching_rule_wins():
    text = "Shooting reported after crash on Route 14"
    assert classify(text, SCANNER_RULES) == Classification("shooting", "violent_crime")


def test_rule_order_is_table_order():
    crash_first = classify("crash then shooting", SCANNER_RULES[8:9] + SCANNER_RULES[1:2])
    assert crash_first.type == "crash"


def test_no_match_returns_source_default():
    assert classify("Library hours extended", SCANNER_RULES) == Classification("other", "other")
    assert classify("Weekend farmers market", NEWS_RULES, NEWS_DEFAULT) == NEWS_DEFAULT
    assert classify("Announcing new hours", COUNTY_NEWS_RULES, COUNTY_NEWS_DEFAULT) == Classification(
        "announcement", "civic"
    )


def test_classification_is_case_insensitive():
    assert classify("STRUCTURE FIRE on Main St", SCANNER_RULES).category == "fire"


def test_county_categories_fold_into_stored_categories():
    assert map_county_category("court") == "police"
    assert map_county_category("services") == "civic"
    assert map_county_category("civic") == "civic"
    assert map_county_category("infrastructure") == "traffic"
    assert map_county_category("something_else") == "other"


@pytest.mark.parametrize(
    "event, category",
    [
        ("Tornado Warning", "other"),
        ("Flash Flood Watch", "traffic"),
        ("Winter Storm Warning", "traffic"),
        ("Wind Advisory", "other"),
        ("Special Weather Statement", "other"),
    ],
)
def test_weather_events(event, category):
    assert classify(event, WEATHER_EVENT_RULES, WEATHER_DEFAULT).category == category


def test_longest_place_name_wins():
    assert MCHENRY.resolve("Union man arrested in Bull Valley") == "Bull Valley"
    assert MCHENRY.resolve("Fire in Lake in the Hills") == "Lake In The Hills"


def test_county_fallback_only_when_asked():
    text = "County board approves budget"
    assert MCHENRY.resolve(text) is None
    assert MCHENRY.resolve(text, county_fallback=True) == "Woodstock"
    assert Gazetteer(county_seat="Seatville").resolve(text, county_fallback=True) == "Seatville"


def test_news_area_includes_bordering_towns():
    assert MCHENRY.resolve("Crash in Palatine") is None
    assert NEWS_AREA.resolve("Crash in Palatine") == "Palatine"


def test_scanner_severity_defaults_to_low():
    assert SCANNER_SEVERITY.lookup("violent_crime") == "critical"
    assert SCANNER_SEVERITY.lookup("traffic") == "medium"
    assert SCANNER_SEVERITY.lookup("police") == "low"
    assert SCANNER_SEVERITY.lookup(None) == "low"


def test_news_priority_escalates_traffic_and_police():
    assert NEWS_SEVERITY.lookup("traffic", "crash") == "medium"
    assert NEWS_SEVERITY.lookup("traffic", "crash", priority="high") == "high"
    assert NEWS_SEVERITY.lookup("police", "arrest", priority="high") == "high"
    assert NEWS_SEVERITY.lookup("violent_crime", "shooting", priority="high") == "critical"
    assert NEWS_SEVERITY.lookup("civic", "election", priority="high") == "low"


def test_county_type_overrides():
    assert COUNTY_NEWS_SEVERITY.lookup("court", "sentencing") == "medium"
    assert COUNTY_NEWS_SEVERITY.lookup("court", "court_proceeding") == "low"
    assert COUNTY_NEWS_SEVERITY.lookup("infrastructure", "bridge") == "medium"


def test_weather_and_traffic_severity():
    assert weather_severity("Extreme") == "critical"
    assert weather_severity("severe") == "high"
    assert weather_severity("Moderate") == "medium"
    assert weather_severity("Unknown") == "low"
    assert weather_severity(None) == "low"
    assert traffic_event_severity("Road Closure") == "high"
    assert traffic_event_severity("Construction") == "medium"


def test_more_severe():
    assert more_severe("low", "high") == "high"
    assert more_severe("critical", "high") == "critical"
