"""Coerce raw store records into canonical incidents and filter them by date."""
from __future__ import annotations

import logging
import math
import re
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from typing import Any, Iterable
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

DEFAULT_INCIDENT_TYPE = "unknown"
DEFAULT_STATUS = "pending"
STATUSES = ("pending", "verified", "resolved", "disputed")

_MISSING = object()
_LEADING_NUMBER = re.compile(r"\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def resolve_timezone(name: str | None) -> tzinfo:
    """Return the tzinfo for a configured zone name, UTC when unset."""
    if not name or name.strip().upper() == "UTC":
        return UTC
    return ZoneInfo(name.strip())


def parse_instant(value: Any, tz: tzinfo = UTC) -> datetime | None:
    """Convert any accepted instant encoding into an aware datetime in ``tz``.

    Accepts datetimes, dates, epoch milliseconds, ISO-8601 strings and store
    timestamp objects (``{"seconds": ..., "nanoseconds": ...}``). Returns
    ``None`` when the value cannot be interpreted.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime.combine(value, time.min)
    elif isinstance(value, (int, float)):
        moment = _from_epoch_seconds(value / 1000)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            return None
    elif isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        nanos = value.get("nanoseconds", value.get("_nanoseconds")) or 0
        if isinstance(seconds, bool) or not isinstance(seconds, (int, float)):
            return None
        if isinstance(nanos, bool) or not isinstance(nanos, (int, float)):
            nanos = 0
        moment = _from_epoch_seconds(seconds + nanos / 1_000_000_000)
    else:
        return None

    if moment is None:
        return None
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment.astimezone(tz)


def _from_epoch_seconds(seconds: float) -> datetime | None:
    if not math.isfinite(seconds):
        return None
    try:
        return datetime.fromtimestamp(seconds, UTC)
    except (OverflowError, OSError, ValueError):
        return None


def parse_coordinate(value: Any) -> float:
    """Parse a coordinate, degrading to 0.0 on absence, garbage or non-finite values.

    Strings are read by their leading number, so ``"14.8N"`` gives 14.8.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        match = _LEADING_NUMBER.match(value)
        if match is None:
            return 0.0
        value = match.group(0)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def normalize_incident(
    raw: dict[str, Any],
    tz: tzinfo = UTC,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Build a canonical incident from a raw store record.

    Missing values fall back to defaults instead of raising; legacy and
    half-written records are expected in the store.
    """
    record_id = str(raw.get("id") or "")

    raw_created = raw.get("createdAt", _MISSING)
    if raw_created is _MISSING or raw_created is None:
        created_at = (now or datetime.now(tz)).astimezone(tz)
    else:
        created_at = parse_instant(raw_created, tz)
        if created_at is None:
            logger.warning("Incident %s has an unparseable createdAt: %r", record_id, raw_created)

    raw_resolved = raw.get("resolvedAt")
    resolved_at = parse_instant(raw_resolved, tz)
    if raw_resolved is not None and resolved_at is None:
        logger.warning("Incident %s has an unparseable resolvedAt: %r", record_id, raw_resolved)

    location = raw.get("location")
    if not isinstance(location, dict):
        location = {}
    lat = location.get("latitude", location.get("lat"))
    lng = location.get("longitude", location.get("lng"))

    reporter_info = raw.get("reporterInfo")

    return {
        "id": record_id,
        "created_at": created_at,
        "resolved_at": resolved_at,
        "incident_type": str(raw.get("incidentType") or DEFAULT_INCIDENT_TYPE),
        "status": str(raw.get("status") or DEFAULT_STATUS),
        "location": {"lat": parse_coordinate(lat), "lng": parse_coordinate(lng)},
        "description": str(raw.get("description") or ""),
        "reporter_id": str(raw.get("reporterId") or ""),
        "reporter_info": dict(reporter_info) if isinstance(reporter_info, dict) else {},
    }


def normalize_incidents(
    records: Iterable[dict[str, Any]],
    tz: tzinfo = UTC,
    now: datetime | None = None,
) -> list[dict[str, Any]]:
    """Normalize a batch of raw records, skipping entries that are not mappings."""
    incidents = []
    for raw in records:
        if not isinstance(raw, dict):
            logger.warning("Skipping non-mapping incident record: %r", raw)
            continue
        incidents.append(normalize_incident(raw, tz=tz, now=now))
    return incidents


def parse_bound(value: Any, tz: tzinfo = UTC, *, end: bool = False) -> datetime | None:
    """Resolve a date-range bound.

    Date-only bounds cover whole days: a start begins at midnight and an end
    runs through the last microsecond of that day. Raises ``ValueError`` for
    values that are present but cannot be parsed.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        if len(value) == 10:
            try:
                value = date.fromisoformat(value)
            except ValueError as exc:
                raise ValueError(f"Invalid date bound: {value!r}") from exc

    if isinstance(value, date) and not isinstance(value, datetime):
        moment = datetime.combine(value, time.min, tzinfo=tz)
        if end:
            moment += timedelta(days=1, microseconds=-1)
        return moment

    moment = parse_instant(value, tz)
    if moment is None:
        raise ValueError(f"Invalid date bound: {value!r}")
    return moment


def filter_by_date_range(
    incidents: Iterable[dict[str, Any]],
    start: Any = None,
    end: Any = None,
    tz: tzinfo = UTC,
) -> list[dict[str, Any]]:
    """Keep incidents created within the inclusive ``[start, end]`` window."""
    lower = parse_bound(start, tz)
    upper = parse_bound(end, tz, end=True)
    if lower is None and upper is None:
        return list(incidents)

    kept = []
    for incident in incidents:
        created = incident.get("created_at")
        if created is None:
            continue
        if lower is not None and created < lower:
            continue
        if upper is not None and created > upper:
            continue
        kept.append(incident)
    return kept


__all__ = [
    "DEFAULT_INCIDENT_TYPE",
    "DEFAULT_STATUS",
    "STATUSES",
    "resolve_timezone",
    "parse_instant",
    "parse_coordinate",
    "normalize_incident",
    "normalize_incidents",
    "parse_bound",
    "filter_by_date_range",
]
