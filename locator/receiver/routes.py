"""Report sink routes.

Reports are validated and logged, then echoed back; nothing is stored.
"""

import logging
from typing import Any, Optional

from flask import Blueprint, jsonify, request


logger = logging.getLogger(__name__)

reports_bp = Blueprint("reports", __name__)


def _json_error(message: str, status: int = 400):
    return jsonify({"error": message}), status


def _coordinate(location: dict, *names: str) -> Optional[float]:
    for name in names:
        value: Any = location.get(name)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    return None


@reports_bp.post("/reports")
def receive_report():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return _json_error("Body must be a JSON object")

    location = data.get("location")
    timestamp = data.get("timestamp")
    if not isinstance(location, dict):
        return _json_error("location must be an object")
    lat = _coordinate(location, "lat", "latitude")
    lon = _coordinate(location, "lon", "longitude")
    if lat is None or lon is None:
        return _json_error("location requires lat and lon")
    if not isinstance(timestamp, int) or isinstance(timestamp, bool):
        return _json_error("timestamp must be an integer (ms since epoch)")

    logger.info("Report from %s: %.6f,%.6f at %s", request.remote_addr, lat, lon, timestamp)
    return jsonify({"received": data}), 201
