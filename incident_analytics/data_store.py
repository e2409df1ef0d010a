"""Incident Store access: seeded in-memory reports or a remote JSON endpoint."""
from __future__ import annotations

from copy import deepcopy
from datetime import UTC, datetime, timedelta
import random
from typing import Any

import requests

INCIDENT_TYPES = ("flood", "fire", "accident", "medical", "crime")
REPORT_STATUSES = ("pending", "verified", "resolved", "disputed")
CAMPUS_CENTER = (14.84, 120.95)

_rng = random.Random(42)


class IncidentStoreError(RuntimeError):
    """The incident store could not return a complete set of records."""


def _now() -> datetime:
    return datetime.now(UTC)


def _store_timestamp(moment: datetime) -> dict[str, int]:
    """Encode a datetime the way the document store serializes timestamps."""
    seconds = int(moment.timestamp())
    return {"seconds": seconds, "nanoseconds": moment.microsecond * 1000}


_reports: list[dict[str, Any]] = [
    {
        "id": "rpt-0001",
        "createdAt": _store_timestamp(_now() - timedelta(days=2, hours=3)),
        "resolvedAt": None,
        "incidentType": "flood",
        "status": "verified",
        "location": {"latitude": "14.8433", "longitude": "120.9512"},
        "description": "Knee-deep water outside the engineering building.",
        "reporterId": "student-118",
        "reporterInfo": {"name": "J. Santos", "studentNumber": "2021-00118"},
    },
    {
        "id": "rpt-0002",
        "createdAt": _store_timestamp(_now() - timedelta(days=5, hours=7)),
        "resolvedAt": _store_timestamp(_now() - timedelta(days=5, hours=4)),
        "incidentType": "fire",
        "status": "resolved",
        "location": {"latitude": 14.8378, "longitude": 120.9461},
        "description": 'Small kitchen fire at the "Canteen B" stall.',
        "reporterId": "student-042",
        "reporterInfo": {"name": "M. Reyes"},
    },
    {
        "id": "rpt-0003",
        "createdAt": (_now() - timedelta(days=9)).isoformat(),
        "incidentType": "accident",
        "status": "disputed",
        "location": {"latitude": "", "longitude": ""},
        "description": "Motorcycle collision near the main gate.",
        "reporterId": "student-207",
    },
    {
        "id": "rpt-0004",
        "createdAt": _store_timestamp(_now() - timedelta(hours=6)),
        "status": "pending",
        "location": {"latitude": "14.8451", "longitude": "120.9555"},
        "description": "Unattended bag in the library lobby.",
        "reporterId": "student-311",
    },
]


def _seed_history(count: int = 60, days: int = 120) -> None:
    """Populate the store with a deterministic spread of older reports."""
    for index in range(count):
        created = _now() - timedelta(
            days=_rng.randint(0, days),
            hours=_rng.randint(0, 23),
            minutes=_rng.randint(0, 59),
        )
        status = _rng.choice(REPORT_STATUSES)
        resolved = created + timedelta(hours=_rng.randint(1, 72)) if status == "resolved" else None
        _reports.append(
            {
                "id": f"rpt-{1000 + index}",
                "createdAt": _store_timestamp(created),
                "resolvedAt": _store_timestamp(resolved) if resolved else None,
                "incidentType": _rng.choice(INCIDENT_TYPES),
                "status": status,
                "location": {
                    "latitude": round(CAMPUS_CENTER[0] + _rng.uniform(-0.02, 0.02), 5),
                    "longitude": round(CAMPUS_CENTER[1] + _rng.uniform(-0.02, 0.02), 5),
                },
                "description": "Community report submitted from the mobile form.",
                "reporterId": f"student-{_rng.randint(1, 400):03d}",
                "reporterInfo": {},
            }
        )


_seed_history()


def get_raw_incidents() -> list[dict[str, Any]]:
    """Return a deep copy of every stored report."""
    return [deepcopy(report) for report in _reports]


def fetch_remote_incidents(url: str, timeout: float = 10) -> list[dict[str, Any]]:
    """Fetch all reports from a remote JSON endpoint.

    The body may be a list of records or an object with an ``incidents`` list.
    Any transport, HTTP or decoding problem raises ``IncidentStoreError`` so the
    analytics never run on a partial snapshot.
    """
    try:
        response = requests.get(url, headers={"Accept": "application/json"}, timeout=timeout)
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as exc:
        raise IncidentStoreError(f"Could not fetch incidents from {url}: {exc}") from exc

    records = payload.get("incidents") if isinstance(payload, dict) else payload
    if not isinstance(records, list):
        raise IncidentStoreError(f"Unexpected incident payload from {url}")
    return records


def load_raw_incidents(config: dict[str, Any]) -> list[dict[str, Any]]:
    """Load reports from the configured source."""
    url = config.get("INCIDENT_STORE_URL")
    if url:
        return fetch_remote_incidents(url, timeout=config.get("INCIDENT_STORE_TIMEOUT", 10))
    return get_raw_incidents()


__all__ = [
    "INCIDENT_TYPES",
    "REPORT_STATUSES",
    "IncidentStoreError",
    "get_raw_incidents",
    "fetch_remote_incidents",
    "load_raw_incidents",
]
