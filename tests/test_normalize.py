from __future__ import annotations

import logging
from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from incident_analytics.normalize import (
    filter_by_date_range,
    normalize_incident,
    normalize_incidents,
    parse_bound,
    parse_coordinate,
    parse_instant,
    resolve_timezone,
)

FIXED_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)
EXPECTED = datetime(2024, 1, 10, 8, 0, tzinfo=UTC)
MANILA = timezone(timedelta(hours=8))


def test_missing_fields_fall_back_to_defaults():
    incident = normalize_incident({"id": "a"}, now=FIXED_NOW)
    assert incident["incident_type"] == "unknown"
    assert incident["status"] == "pending"
    assert incident["location"] == {"lat": 0.0, "lng": 0.0}
    assert incident["created_at"] == FIXED_NOW
    assert incident["resolved_at"] is None
    assert incident["description"] == ""
    assert incident["reporter_info"] == {}


@pytest.mark.parametrize(
    ("latitude", "expected"),
    [("14.8", 14.8), (14.8, 14.8), ("abc", 0.0), ("NaN", 0.0), (None, 0.0), ("", 0.0)],
)
def test_coordinates_are_parsed_as_floats(latitude, expected):
    incident = normalize_incident({"location": {"latitude": latitude, "longitude": "120.9"}}, now=FIXED_NOW)
    assert incident["location"] == {"lat": expected, "lng": 120.9}


def test_short_coordinate_keys_are_accepted():
    incident = normalize_incident({"location": {"lat": 1.5, "lng": 2.5}}, now=FIXED_NOW)
    assert incident["location"] == {"lat": 1.5, "lng": 2.5}


@pytest.mark.parametrize(
    "value",
    [
        {"seconds": 1704873600, "nanoseconds": 0},
        {"_seconds": 1704873600, "_nanoseconds": 0},
        1704873600000,
        "2024-01-10T08:00:00Z",
        "2024-01-10T16:00:00+08:00",
        datetime(2024, 1, 10, 8, 0),
        EXPECTED,
    ],
)
def test_instant_encodings(value):
    assert parse_instant(value) == EXPECTED


@pytest.mark.parametrize("value", ["yesterday", "", True, [], {"seconds": "x"}, float("nan")])
def test_unparseable_instants(value):
    assert parse_instant(value) is None


def test_naive_values_are_read_in_the_analytics_zone():
    moment = parse_instant("2024-01-10T08:00", MANILA)
    assert moment.hour == 8
    assert moment.utcoffset() == timedelta(hours=8)

    converted = parse_instant("2024-01-10T00:00:00Z", MANILA)
    assert converted.hour == 8


def test_unparseable_created_at_is_logged(caplog):
    with caplog.at_level(logging.WARNING):
        incident = normalize_incident({"id": "bad", "createdAt": "last tuesday"}, now=FIXED_NOW)
    assert incident["created_at"] is None
    assert "bad" in caplog.text


def test_normalize_incidents_skips_non_mappings_without_mutating_input():
    raw = {"id": "a", "createdAt": "2024-01-10T08:00:00Z", "location": {"latitude": "1"}}
    snapshot = dict(raw)
    incidents = normalize_incidents([raw, "garbage", None])
    assert [incident["id"] for incident in incidents] == ["a"]
    assert raw == snapshot


def test_resolve_timezone_defaults_to_utc():
    assert resolve_timezone(None) is UTC
    assert resolve_timezone("utc") is UTC


def _incidents(*days):
    return [
        normalize_incident({"id": str(day), "createdAt": f"2024-01-{day:02d}T12:00:00Z"})
        for day in days
    ]


def test_filter_without_bounds_is_identity():
    incidents = _incidents(1, 2, 3)
    assert filter_by_date_range(incidents) == incidents
    assert filter_by_date_range(incidents, "", "") == incidents


def test_filter_bounds_are_inclusive_whole_days():
    incidents = _incidents(1, 2, 3, 4)
    kept = filter_by_date_range(incidents, "2024-01-02", "2024-01-03")
    assert [incident["id"] for incident in kept] == ["2", "3"]


def test_filter_accepts_date_objects_and_open_ends():
    incidents = _incidents(1, 2, 3, 4)
    assert len(filter_by_date_range(incidents, start=date(2024, 1, 3))) == 2
    assert len(filter_by_date_range(incidents, end=date(2024, 1, 1))) == 1


def test_narrowing_the_range_never_grows_the_set():
    incidents = _incidents(*range(1, 29))
    wide = filter_by_date_range(incidents, "2024-01-01", "2024-01-28")
    narrow = filter_by_date_range(incidents, "2024-01-05", "2024-01-20")
    narrower = filter_by_date_range(incidents, "2024-01-10", "2024-01-11")
    assert len(incidents) >= len(wide) >= len(narrow) >= len(narrower) == 2


def test_inverted_range_is_empty():
    assert filter_by_date_range(_incidents(1, 2), "2024-01-05", "2024-01-01") == []


def test_undated_incidents_only_survive_without_bounds():
    incidents = _incidents(1) + [normalize_incident({"id": "x", "createdAt": "garbage"})]
    assert len(filter_by_date_range(incidents)) == 2
    assert len(filter_by_date_range(incidents, start="2023-01-01")) == 1


def test_invalid_bound_raises():
    with pytest.raises(ValueError):
        parse_bound("2024-02-30")
    with pytest.raises(ValueError):
        filter_by_date_range([], start="soon")


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("14.8N", 14.8),
        (" -3.5e1x", -35.0),
        (".5", 0.5),
        ("N14.8", 0.0),
        ("1e400", 0.0),
        ("inf", 0.0),
        ("-Infinity", 0.0),
        (float("inf"), 0.0),
        (float("nan"), 0.0),
        (True, 0.0),
    ],
)
def test_parse_coordinate_reads_leading_finite_number(value, expected):
    assert parse_coordinate(value) == expected


def test_overflowing_coordinates_degrade_to_origin():
    incident = normalize_incident({"location": {"latitude": "1e400", "longitude": -1e400}}, now=FIXED_NOW)
    assert incident["location"] == {"lat": 0.0, "lng": 0.0}
