"""Analytics pipeline turning incidents into dashboard series and summaries."""
from __future__ import annotations

import logging
import math
from collections import Counter, defaultdict
from datetime import UTC, date, datetime, timedelta, tzinfo
from typing import Any, Iterable, Sequence

from .normalize import filter_by_date_range
from .palette import category_label, color_map
from .spatial import ALL, DEFAULT_HEAT_WEIGHT, heatmap_gradient, spatial_filter

logger = logging.getLogger(__name__)

GRANULARITIES = ("day", "week", "month", "year")
DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
DEFAULT_ROLLING_WINDOW = 7
DEFAULT_FORECAST_WINDOW = 4


def _sunday_index(moment: datetime | date) -> int:
    # datetime.weekday() starts at Monday
    return (moment.weekday() + 1) % 7


def bucket_key(moment: datetime, granularity: str) -> str:
    """Derive the bucket label for a timestamp at the given granularity."""
    day = moment.date()
    if granularity == "day":
        return day.isoformat()
    if granularity == "week":
        return (day - timedelta(days=_sunday_index(day))).isoformat()
    if granularity == "month":
        return f"{day.year:04d}-{day.month:02d}"
    if granularity == "year":
        return f"{day.year:04d}"
    raise ValueError(f"Unsupported granularity: {granularity}")


def bucket_start(key: str, granularity: str) -> date:
    """Chronological start of a bucket, used for ordering."""
    if granularity in ("day", "week"):
        return date.fromisoformat(key)
    if granularity == "month":
        year, month = key.split("-")
        return date(int(year), int(month), 1)
    if granularity == "year":
        return date(int(key), 1, 1)
    raise ValueError(f"Unsupported granularity: {granularity}")


def aggregate_time_series(incidents: Iterable[dict[str, Any]], granularity: str = "week") -> list[dict[str, Any]]:
    """Group incidents into time buckets with totals and per-type counts."""
    if granularity not in GRANULARITIES:
        raise ValueError(f"Unsupported granularity: {granularity}")

    buckets: dict[str, dict[str, Any]] = {}
    for incident in incidents:
        created = incident.get("created_at")
        if created is None:
            logger.warning("Skipping incident %s without a parseable createdAt", incident.get("id"))
            continue
        key = bucket_key(created, granularity)
        bucket = buckets.setdefault(key, {"date": key, "total": 0, "counts": defaultdict(int)})
        bucket["total"] += 1
        bucket["counts"][incident["incident_type"]] += 1

    series = []
    for bucket in sorted(buckets.values(), key=lambda item: bucket_start(item["date"], granularity)):
        series.append({**bucket, "counts": dict(bucket["counts"])})
    return series


def apply_rolling_average(
    series: Sequence[dict[str, Any]],
    window_size: int = DEFAULT_ROLLING_WINDOW,
) -> list[dict[str, Any]]:
    """Attach a trailing-window mean of bucket totals as ``rolling_avg``.

    The window shrinks at the start of the series rather than padding with zeros.
    """
    if window_size < 1:
        raise ValueError("Rolling window must contain at least one bucket")

    smoothed = []
    for index, bucket in enumerate(series):
        window = series[max(0, index - window_size + 1) : index + 1]
        average = sum(item["total"] for item in window) / len(window)
        smoothed.append({**bucket, "counts": dict(bucket["counts"]), "rolling_avg": average})
    return smoothed


def percent_change(series: Sequence[dict[str, Any]], window: int = DEFAULT_ROLLING_WINDOW) -> dict[str, Any]:
    """Compare the latest ``window`` buckets against the ``window`` before them."""
    neutral = {"value": 0.0, "direction": "neutral"}
    if len(series) <= window:
        return neutral

    current = sum(item["total"] for item in series[-window:])
    previous = sum(item["total"] for item in series[-2 * window : -window])
    if previous == 0:
        return neutral

    change = (current - previous) / previous * 100
    direction = "up" if change > 0 else "down" if change < 0 else "neutral"
    return {"value": round(abs(change), 1), "direction": direction}


def analyze_peak_times(incidents: Iterable[dict[str, Any]]) -> dict[str, Any]:
    """Hour-of-day and day-of-week histograms with their most frequent slots."""
    hour_counts = [0] * 24
    day_counts = [0] * 7
    for incident in incidents:
        created = incident.get("created_at")
        if created is None:
            continue
        hour_counts[created.hour] += 1
        day_counts[_sunday_index(created)] += 1

    # list.index returns the first maximum, so ties go to the lowest slot
    peak_hour = hour_counts.index(max(hour_counts))
    peak_day_index = day_counts.index(max(day_counts))
    return {
        "hour_counts": hour_counts,
        "day_counts": day_counts,
        "peak_hour": peak_hour,
        "peak_day_index": peak_day_index,
        "peak_day": DAY_NAMES[peak_day_index],
    }


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def forecast_next_period(
    series: Sequence[dict[str, Any]],
    window: int = DEFAULT_FORECAST_WINDOW,
) -> dict[str, Any] | None:
    """Extrapolate the next bucket from the mean delta of the trailing window.

    Returns ``None`` when the series is too short to forecast.
    """
    if window < 2:
        raise ValueError("Forecast window must contain at least two buckets")
    if len(series) < window:
        return None

    recent = series[-window:]
    deltas = [current["total"] - previous["total"] for previous, current in zip(recent, recent[1:])]
    mean_delta = sum(deltas) / len(deltas)
    if mean_delta > 0:
        trend = "increasing"
    elif mean_delta < 0:
        trend = "decreasing"
    else:
        trend = "stable"

    return {
        "forecast": max(0, _round_half_up(recent[-1]["total"] + mean_delta)),
        "trend": trend,
        "mean_delta": mean_delta,
    }


def breakdown_by_type(incidents: Iterable[dict[str, Any]]) -> dict[str, dict[str, int]]:
    """Raw total/resolved/pending counts per incident type.

    Anything other than ``resolved`` counts as pending, including verified
    and disputed reports.
    """
    stats: dict[str, dict[str, int]] = {}
    for incident in incidents:
        stat = stats.setdefault(incident["incident_type"], {"total": 0, "resolved": 0, "pending": 0})
        stat["total"] += 1
        if incident["status"] == "resolved":
            stat["resolved"] += 1
        else:
            stat["pending"] += 1
    return stats


def resolution_rate(stat: dict[str, int]) -> float:
    return stat["resolved"] / stat["total"] if stat["total"] else 0.0


def type_breakdown_rows(stats: dict[str, dict[str, int]], denominator: int) -> list[dict[str, Any]]:
    """Derive share-of-total and resolution rate for each type, largest first."""
    rows = []
    for incident_type, stat in stats.items():
        rows.append(
            {
                "type": incident_type,
                "category": category_label(incident_type),
                **stat,
                "percentage": round(stat["total"] / denominator * 100, 1) if denominator else 0.0,
                "resolution_rate": round(resolution_rate(stat) * 100, 1),
            }
        )
    rows.sort(key=lambda row: (-row["total"], row["type"]))
    return rows


def summarize(incidents: Sequence[dict[str, Any]]) -> dict[str, int]:
    """Totals for the dashboard stat cards."""
    statuses = Counter(incident["status"] for incident in incidents)
    resolved = statuses.get("resolved", 0)
    return {"total": len(incidents), "resolved": resolved, "pending": len(incidents) - resolved}


def build_report(
    incidents: Sequence[dict[str, Any]],
    *,
    granularity: str = "week",
    start: Any = None,
    end: Any = None,
    incident_type: str = ALL,
    status: str = ALL,
    rolling_window: int = DEFAULT_ROLLING_WINDOW,
    forecast_window: int = DEFAULT_FORECAST_WINDOW,
    heat_weight: float = DEFAULT_HEAT_WEIGHT,
    tz: tzinfo = UTC,
    generated_at: datetime | None = None,
) -> dict[str, Any]:
    """Run every stage over one date-filtered snapshot of incidents.

    The date filter is applied once so stat cards, charts, the heat map and
    exports always describe the same set.
    """
    filtered = filter_by_date_range(incidents, start, end, tz=tz)
    incident_types = sorted({incident["incident_type"] for incident in filtered})
    # fallback colours index over every type so they stay put when the range changes
    all_types = sorted({incident["incident_type"] for incident in incidents})
    series = apply_rolling_average(aggregate_time_series(filtered, granularity), rolling_window)

    return {
        "generated_at": generated_at or datetime.now(tz),
        "date_range": {"start": start or None, "end": end or None},
        "granularity": granularity,
        "incidents": filtered,
        "summary": summarize(filtered),
        "incident_types": incident_types,
        "type_colors": color_map(incident_types, all_types),
        "time_series": series,
        "max_value": max([item["total"] for item in series] + [1]),
        "percent_change": percent_change(series, rolling_window),
        "peak_times": analyze_peak_times(filtered),
        "forecast": forecast_next_period(series, forecast_window),
        "type_breakdown": breakdown_by_type(filtered),
        "heatmap": {
            "type": incident_type,
            "status": status,
            "points": spatial_filter(filtered, incident_type, status, heat_weight),
            "gradient": heatmap_gradient(incident_type, status, all_types),
        },
    }


__all__ = [
    "GRANULARITIES",
    "DAY_NAMES",
    "bucket_key",
    "bucket_start",
    "aggregate_time_series",
    "apply_rolling_average",
    "percent_change",
    "analyze_peak_times",
    "forecast_next_period",
    "breakdown_by_type",
    "resolution_rate",
    "type_breakdown_rows",
    "summarize",
    "build_report",
]
