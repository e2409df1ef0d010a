"""Colour assignment for incident categories."""
from __future__ import annotations

import zlib
from typing import Sequence

TYPE_COLORS = {
    "flood": "#3b82f6",
    "fire": "#ef4444",
    "accident": "#f59e0b",
    "medical": "#10b981",
    "crime": "#8b5cf6",
    "unknown": "#6b7280",
}
KNOWN_TYPES = tuple(TYPE_COLORS)
OTHER_CATEGORY = "other"
FALLBACK_COLORS = ("#ec4899", "#14b8a6", "#f97316", "#a855f7", "#06b6d4")


def category_label(incident_type: str) -> str:
    """Map a free-form incident type onto the known set, or ``"other"``."""
    return incident_type if incident_type in KNOWN_TYPES else OTHER_CATEGORY


def type_color(incident_type: str, observed_types: Sequence[str] | None = None) -> str:
    """Return the chart colour for an incident type.

    Unrecognised labels take a fallback colour by their position in the
    sorted observed type list, or by a CRC32 of the label when they are not
    part of that list.
    """
    if incident_type in TYPE_COLORS:
        return TYPE_COLORS[incident_type]
    ordered = sorted(observed_types or ())
    if incident_type in ordered:
        index = ordered.index(incident_type)
    else:
        index = zlib.crc32(incident_type.encode("utf-8"))
    return FALLBACK_COLORS[index % len(FALLBACK_COLORS)]


def color_map(labels: Sequence[str], observed_types: Sequence[str] | None = None) -> dict[str, str]:
    """Colours for ``labels``, with fallbacks indexed over ``observed_types`` (default: ``labels``)."""
    palette_types = labels if observed_types is None else observed_types
    return {label: type_color(label, palette_types) for label in sorted(labels)}


__all__ = [
    "TYPE_COLORS",
    "KNOWN_TYPES",
    "OTHER_CATEGORY",
    "FALLBACK_COLORS",
    "category_label",
    "type_color",
    "color_map",
]
