"""Heat-map point selection for the spatial distribution view.

The (0, 0) coordinate is treated as "never geolocated". This is a heuristic:
a genuine report at that coordinate would be dropped from spatial views,
though it still counts everywhere else.
"""
from __future__ import annotations

import math
from typing import Any, Iterable, Sequence

from .palette import type_color

ALL = "all"
STATUS_FILTERS = (ALL, "resolved", "unresolved")
DEFAULT_HEAT_WEIGHT = 0.5
ALL_TYPES_COLOR = "#3b82f6"

RESOLVED_GRADIENT = {0.4: "#4ade80", 0.6: "#22c55e", 0.8: "#16a34a", 1.0: "#15803d"}
UNRESOLVED_GRADIENT = {0.4: "#fbbf24", 0.6: "#f59e0b", 0.8: "#ef4444", 1.0: "#dc2626"}


def has_valid_coordinates(location: dict[str, Any] | None) -> bool:
    """Reject missing, non-finite and (0, 0) coordinates."""
    if not location:
        return False
    lat = location.get("lat")
    lng = location.get("lng")
    if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
        return False
    if not math.isfinite(lat) or not math.isfinite(lng):
        return False
    return lat != 0 or lng != 0


def _matches(incident: dict[str, Any], incident_type: str, status: str) -> bool:
    if incident_type != ALL and incident["incident_type"] != incident_type:
        return False
    resolved = incident["status"] == "resolved"
    if status == "resolved":
        return resolved
    if status == "unresolved":
        return not resolved
    return True


def spatial_filter(
    incidents: Iterable[dict[str, Any]],
    incident_type: str = ALL,
    status: str = ALL,
    weight: float = DEFAULT_HEAT_WEIGHT,
) -> list[tuple[float, float, float]]:
    """Return ``(lat, lng, weight)`` heat points for incidents passing the filters."""
    if status not in STATUS_FILTERS:
        raise ValueError(f"Unsupported status filter: {status}")

    points = []
    for incident in incidents:
        if not _matches(incident, incident_type, status):
            continue
        location = incident.get("location")
        if not has_valid_coordinates(location):
            continue
        points.append((location["lat"], location["lng"], weight))
    return points


def heatmap_gradient(
    incident_type: str = ALL,
    status: str = ALL,
    observed_types: Sequence[str] | None = None,
) -> dict[float, str]:
    """Pick the colour ramp matching the active spatial filters."""
    if status == "resolved":
        return dict(RESOLVED_GRADIENT)
    if status == "unresolved":
        return dict(UNRESOLVED_GRADIENT)
    color = ALL_TYPES_COLOR if incident_type == ALL else type_color(incident_type, observed_types)
    return {0.4: f"{color}66", 0.6: f"{color}99", 0.8: f"{color}cc", 1.0: color}


__all__ = [
    "ALL",
    "STATUS_FILTERS",
    "DEFAULT_HEAT_WEIGHT",
    "has_valid_coordinates",
    "spatial_filter",
    "heatmap_gradient",
]
