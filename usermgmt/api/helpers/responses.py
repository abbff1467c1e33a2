"""Response envelope helpers shared by all blueprints."""
from __future__ import annotations
from datetime import datetime
from typing import Any, Optional

from flask import jsonify


def timestamp() -> str:
    return datetime.now().isoformat()


def success(message: str, data_key: Optional[str] = None, data: Any = None) -> dict:
    """Build ``{message, <data_key>?, timestamp}``."""
    body = {"message": message, "timestamp": timestamp()}
    if data_key is not None:
        body[data_key] = data.to_dict() if hasattr(data, "to_dict") else data
    return body


def ok(message: str, data_key: Optional[str] = None, data: Any = None):
    return jsonify(success(message, data_key, data)), 200


def created(message: str, data_key: str, data: Any):
    return jsonify(success(message, data_key, data)), 201


def listing(items):
    """Bare JSON array of serialized models."""
    return jsonify([item.to_dict() for item in items]), 200


def error_body(error: str, message: str, status: int, **extra) -> dict:
    body = {"error": error, "message": message, "status": status, "timestamp": timestamp()}
    body.update(extra)
    return body
