from __future__ import annotations

import itertools

import pytest

from incident_analytics.palette import FALLBACK_COLORS, category_label, color_map, type_color
from incident_analytics.spatial import has_valid_coordinates, heatmap_gradient, spatial_filter


def incident(incident_type="flood", status="pending", lat=14.8, lng=120.9):
    return {
        "id": f"{incident_type}-{status}-{lat}-{lng}",
        "incident_type": incident_type,
        "status": status,
        "location": {"lat": lat, "lng": lng},
    }


INCIDENTS = [
    incident("flood", "pending"),
    incident("flood", "resolved", 14.81, 120.91),
    incident("fire", "verified", 14.82, 120.92),
    incident("fire", "resolved", 0.0, 0.0),
    incident("crime", "disputed", float("nan"), 120.9),
    incident("crime", "pending", 0.0, 120.95),
]


@pytest.mark.parametrize(
    ("incident_type", "status"),
    list(itertools.product(["all", "flood", "fire", "crime"], ["all", "resolved", "unresolved"])),
)
def test_origin_and_nan_never_appear(incident_type, status):
    points = spatial_filter(INCIDENTS, incident_type, status)
    assert (0.0, 0.0, 0.5) not in points
    assert all(lat == lat for lat, _, _ in points)


def test_single_zero_axis_is_still_valid():
    assert has_valid_coordinates({"lat": 0.0, "lng": 120.95})
    assert not has_valid_coordinates({"lat": 0.0, "lng": 0.0})
    assert not has_valid_coordinates({"lat": float("nan"), "lng": 1.0})
    assert not has_valid_coordinates(None)


def test_type_and_status_filters():
    assert spatial_filter(INCIDENTS) == [
        (14.8, 120.9, 0.5),
        (14.81, 120.91, 0.5),
        (14.82, 120.92, 0.5),
        (0.0, 120.95, 0.5),
    ]
    assert spatial_filter(INCIDENTS, "flood", "resolved") == [(14.81, 120.91, 0.5)]
    assert spatial_filter(INCIDENTS, "fire", "unresolved") == [(14.82, 120.92, 0.5)]
    assert spatial_filter(INCIDENTS, "medical") == []
    assert spatial_filter(INCIDENTS, "all", "unresolved", weight=1.0)[0] == (14.8, 120.9, 1.0)


def test_unknown_status_filter():
    with pytest.raises(ValueError):
        spatial_filter(INCIDENTS, status="open")


def test_gradients_follow_filters():
    assert heatmap_gradient(status="resolved")[1.0] == "#15803d"
    assert heatmap_gradient("fire", "unresolved")[0.4] == "#fbbf24"
    assert heatmap_gradient() == {0.4: "#3b82f666", 0.6: "#3b82f699", 0.8: "#3b82f6cc", 1.0: "#3b82f6"}
    assert heatmap_gradient("fire")[0.8] == "#ef4444cc"


def test_unrecognised_types_get_stable_fallback_colours():
    observed = ["fire", "landslide", "theft"]
    assert type_color("landslide", observed) == FALLBACK_COLORS[1]
    assert type_color("theft", observed) == FALLBACK_COLORS[2]
    assert type_color("landslide") == type_color("landslide")
    assert type_color("landslide") in FALLBACK_COLORS
    assert color_map(observed)["fire"] == "#ef4444"
    assert heatmap_gradient("landslide", observed_types=observed)[1.0] == FALLBACK_COLORS[1]


def test_category_labels():
    assert category_label("medical") == "medical"
    assert category_label("landslide") == "other"


@pytest.mark.parametrize(
    ("lat", "lng"),
    [(float("inf"), 120.9), (14.8, float("-inf")), (float("nan"), float("nan"))],
)
def test_non_finite_coordinates_are_not_heat_points(lat, lng):
    assert not has_valid_coordinates(incident(lat=lat, lng=lng))
    assert spatial_filter([incident(lat=lat, lng=lng)]) == []


def test_color_map_indexes_fallbacks_over_observed_types():
    everything = ["landslide", "sinkhole"]
    assert color_map(["sinkhole"], everything) == {"sinkhole": FALLBACK_COLORS[1]}
    assert color_map(["sinkhole"]) == {"sinkhole": FALLBACK_COLORS[0]}
