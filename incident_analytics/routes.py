"""HTTP routes exposing analytics JSON and report downloads."""
from __future__ import annotations

from typing import Any

from flask import Blueprint, Response, abort, current_app, jsonify, request
from openpyxl.utils.exceptions import IllegalCharacterError

from . import analytics
from .data_store import IncidentStoreError, load_raw_incidents
from .exports import EXPORTERS, build_json_snapshot, incident_record, render_export
from .normalize import filter_by_date_range, normalize_incidents, resolve_timezone
from .spatial import ALL, STATUS_FILTERS

api_blueprint = Blueprint("api", __name__, url_prefix="/api")


def _timezone():
    return resolve_timezone(current_app.config.get("ANALYTICS_TIMEZONE"))


def _load_incidents() -> list[dict[str, Any]]:
    raw = load_raw_incidents(current_app.config)
    return normalize_incidents(raw, tz=_timezone())


def _report_params() -> dict[str, Any]:
    granularity = request.args.get("granularity", current_app.config["DEFAULT_GRANULARITY"])
    if granularity not in analytics.GRANULARITIES:
        abort(400, f"Unsupported granularity: {granularity}")
    status = request.args.get("status", ALL)
    if status not in STATUS_FILTERS:
        abort(400, f"Unsupported status filter: {status}")
    return {
        "granularity": granularity,
        "start": request.args.get("start") or None,
        "end": request.args.get("end") or None,
        "incident_type": request.args.get("type", ALL) or ALL,
        "status": status,
    }


def _build_report() -> dict[str, Any]:
    params = _report_params()
    incidents = _load_incidents()
    config = current_app.config
    try:
        return analytics.build_report(
            incidents,
            **params,
            rolling_window=config["ROLLING_WINDOW"],
            forecast_window=config["FORECAST_WINDOW"],
            heat_weight=config["HEAT_POINT_WEIGHT"],
            tz=_timezone(),
        )
    except ValueError as exc:
        abort(400, str(exc))


@api_blueprint.errorhandler(IncidentStoreError)
def store_unavailable(exc: IncidentStoreError):
    current_app.logger.error("Incident store unavailable: %s", exc)
    return jsonify({"error": "Incident data is currently unavailable."}), 503


@api_blueprint.route("/incidents")
def incidents_collection():
    incidents = _load_incidents()
    try:
        incidents = filter_by_date_range(
            incidents,
            request.args.get("start"),
            request.args.get("end"),
            tz=_timezone(),
        )
    except ValueError as exc:
        abort(400, str(exc))
    return jsonify({"incidents": [incident_record(item) for item in incidents]})


@api_blueprint.route("/analytics")
def analytics_payload():
    report = _build_report()
    heatmap = report["heatmap"]
    return jsonify(
        {
            **build_json_snapshot(report),
            "granularity": report["granularity"],
            "incidentTypes": report["incident_types"],
            "typeColors": report["type_colors"],
            "maxValue": report["max_value"],
            "percentChange": report["percent_change"],
            "forecast": report["forecast"],
            "heatmap": {
                "type": heatmap["type"],
                "status": heatmap["status"],
                "points": [list(point) for point in heatmap["points"]],
                "gradient": {str(stop): color for stop, color in heatmap["gradient"].items()},
            },
        }
    )


@api_blueprint.route("/exports/<export_format>")
def export_download(export_format: str):
    if export_format not in EXPORTERS:
        abort(404)
    report = _build_report()
    try:
        payload, mimetype, filename = render_export(export_format, report)
    except (ValueError, TypeError, OSError, IllegalCharacterError) as exc:
        current_app.logger.exception("%s export failed: %s", export_format, exc)
        return jsonify({"error": f"Could not generate the {export_format} export."}), 500
    return Response(
        payload,
        mimetype=mimetype,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def register_routes(app):
    app.register_blueprint(api_blueprint)
