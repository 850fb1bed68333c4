from __future__ import annotations

from flask import current_app, request, jsonify

WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


def _reject(code: str, message: str):
    payload = {"ok": False, "code": code, "message": message}
    return jsonify(payload), 503


def guard_write_request(message: str | None = None):
    if request.method not in WRITE_METHODS:
        return None

    if current_app.config.get("DB_READ_ONLY", False):
        current_app.logger.warning(
            "Rejected write to %s: database is read-only", request.endpoint
        )
        return _reject(
            "DB_READ_ONLY", message or "Database is in read-only mode."
        )

    return None
