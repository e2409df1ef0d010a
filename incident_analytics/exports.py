"""Download formats for the analytics report: CSV, text summary, JSON and XLSX."""
from __future__ import annotations

import csv
import io
import json
import logging
from datetime import date, datetime
from typing import Any, Callable

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font, PatternFill

from .analytics import resolution_rate, type_breakdown_rows
from .palette import category_label

logger = logging.getLogger(__name__)

INCIDENT_COLUMNS = (
    "ID",
    "Date",
    "Type",
    "Status",
    "Latitude",
    "Longitude",
    "Description",
    "Response Time (hours)",
)
NOT_AVAILABLE = "N/A"
SHEET_TITLE = "Incidents"
SUMMARY_SERIES_LIMIT = 10

_FILENAME_PATTERNS = {
    "csv": "incidents-data-{date}.csv",
    "summary": "analytics-report-{date}.txt",
    "json": "analytics-data-{date}.json",
    "xlsx": "incident-report-{date}.xlsx",
}


def _iso(value: Any) -> str | None:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value or None


def response_time_hours(incident: dict[str, Any]) -> float | None:
    """Hours between creation and resolution, ``None`` while unresolved."""
    created = incident.get("created_at")
    resolved = incident.get("resolved_at")
    if created is None or resolved is None:
        return None
    return (resolved - created).total_seconds() / 3600


def _response_cell(incident: dict[str, Any]) -> float | str:
    hours = response_time_hours(incident)
    return NOT_AVAILABLE if hours is None else round(hours, 2)


def _worksheet_cell(value: Any) -> Any:
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub("", value)
    return value


def _incident_row(incident: dict[str, Any]) -> list[Any]:
    return [
        incident["id"],
        _iso(incident.get("created_at")) or "",
        incident["incident_type"],
        incident["status"],
        incident["location"]["lat"],
        incident["location"]["lng"],
        incident["description"],
        _response_cell(incident),
    ]


def incident_record(incident: dict[str, Any]) -> dict[str, Any]:
    """JSON-friendly representation of a canonical incident."""
    return {
        "id": incident["id"],
        "createdAt": _iso(incident.get("created_at")),
        "resolvedAt": _iso(incident.get("resolved_at")),
        "incidentType": incident["incident_type"],
        "status": incident["status"],
        "location": dict(incident["location"]),
        "description": incident["description"],
        "reporterId": incident["reporter_id"],
        "responseTimeHours": response_time_hours(incident),
    }


def export_csv(report: dict[str, Any]) -> bytes:
    """One row per incident; string cells are always quoted."""
    buffer = io.StringIO()
    csv.writer(buffer).writerow(INCIDENT_COLUMNS)
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC)
    for incident in report["incidents"]:
        writer.writerow(_incident_row(incident))
    return buffer.getvalue().encode("utf-8")


def export_summary(report: dict[str, Any], series_limit: int = SUMMARY_SERIES_LIMIT) -> bytes:
    summary = report["summary"]
    peaks = report["peak_times"]
    date_range = report["date_range"]
    lines = [
        "INCIDENT ANALYTICS REPORT",
        f"Generated: {_iso(report['generated_at'])}",
        f"Date Range: {_iso(date_range.get('start')) or 'All time'} to {_iso(date_range.get('end')) or 'present'}",
        "",
        "SUMMARY STATISTICS",
        "=" * 40,
        f"Total Incidents: {summary['total']}",
        f"Resolved: {summary['resolved']}",
        f"Pending: {summary['pending']}",
        "",
        "PEAK TIME ANALYSIS",
        "=" * 40,
        f"Peak Hour: {peaks['peak_hour']}:00",
        f"Peak Day: {peaks['peak_day']}",
    ]

    forecast = report.get("forecast")
    if forecast:
        lines.append(f"Next Period Forecast: {forecast['forecast']} ({forecast['trend']})")

    lines += ["", "INCIDENT BREAKDOWN BY TYPE", "=" * 40]
    for row in type_breakdown_rows(report["type_breakdown"], summary["total"]):
        lines.append(
            f"{row['type']}: {row['total']} incidents ({row['percentage']:.1f}%)"
            f" - {row['resolved']} resolved, {row['pending']} pending"
            f" - Resolution Rate: {row['resolution_rate']:.1f}%"
        )

    lines += ["", f"TIME SERIES DATA (Last {series_limit} Periods)", "=" * 40]
    for bucket in report["time_series"][-series_limit:]:
        lines.append(f"{bucket['date']}: {bucket['total']} incidents (Rolling Avg: {bucket['rolling_avg']:.2f})")

    return ("\n".join(lines) + "\n").encode("utf-8")


def build_json_snapshot(report: dict[str, Any]) -> dict[str, Any]:
    peaks = report["peak_times"]
    date_range = report["date_range"]
    return {
        "generatedAt": _iso(report["generated_at"]),
        "dateRange": {"start": _iso(date_range.get("start")), "end": _iso(date_range.get("end"))},
        "summary": dict(report["summary"]),
        "peakTimes": {
            "peakHour": peaks["peak_hour"],
            "peakDay": peaks["peak_day"],
            "hourlyData": list(peaks["hour_counts"]),
            "dailyData": list(peaks["day_counts"]),
        },
        "typeBreakdown": {
            incident_type: {
                **stat,
                "category": category_label(incident_type),
                "resolutionRate": round(resolution_rate(stat) * 100, 1),
            }
            for incident_type, stat in report["type_breakdown"].items()
        },
        "timeSeries": [
            {
                "date": bucket["date"],
                "total": bucket["total"],
                "byType": dict(bucket["counts"]),
                "rollingAvg": bucket["rolling_avg"],
            }
            for bucket in report["time_series"]
        ],
        "incidents": [incident_record(incident) for incident in report["incidents"]],
    }


def export_json(report: dict[str, Any]) -> bytes:
    return json.dumps(build_json_snapshot(report), indent=2).encode("utf-8")


def export_xlsx(report: dict[str, Any]) -> bytes:
    """Single-sheet workbook with the same columns as the CSV export."""
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="2C3E50", end_color="2C3E50", fill_type="solid")

    ws.append(list(INCIDENT_COLUMNS))
    for cell in ws[1]:
        cell.font = header_font
        cell.fill = header_fill
    for incident in report["incidents"]:
        ws.append([_worksheet_cell(value) for value in _incident_row(incident)])

    ws.column_dimensions["A"].width = 24
    ws.column_dimensions["B"].width = 28
    ws.column_dimensions["G"].width = 60
    ws.column_dimensions["H"].width = 22

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


EXPORTERS: dict[str, tuple[Callable[[dict[str, Any]], bytes], str]] = {
    "csv": (export_csv, "text/csv"),
    "summary": (export_summary, "text/plain"),
    "json": (export_json, "application/json"),
    "xlsx": (export_xlsx, "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
}


def export_filename(kind: str, generated_at: datetime | date) -> str:
    """Download name for an export, stamped with the generation date."""
    stamp = generated_at.date() if isinstance(generated_at, datetime) else generated_at
    return _FILENAME_PATTERNS[kind].format(date=stamp.isoformat())


def render_export(kind: str, report: dict[str, Any]) -> tuple[bytes, str, str]:
    """Serialize ``report`` as ``kind``; returns payload, mimetype and filename."""
    if kind not in EXPORTERS:
        raise ValueError(f"Unsupported export format: {kind}")
    serializer, mimetype = EXPORTERS[kind]
    payload = serializer(report)
    logger.info("Rendered %s export with %d incidents", kind, len(report["incidents"]))
    return payload, mimetype, export_filename(kind, report["generated_at"])


__all__ = [
    "INCIDENT_COLUMNS",
    "NOT_AVAILABLE",
    "EXPORTERS",
    "response_time_hours",
    "incident_record",
    "export_csv",
    "export_summary",
    "build_json_snapshot",
    "export_json",
    "export_xlsx",
    "export_filename",
    "render_export",
]
