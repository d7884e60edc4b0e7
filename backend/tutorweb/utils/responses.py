"""Helpers that build the ``{success, ...}`` response envelope."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from flask import jsonify
from pymongo.errors import PyMongoError

from ..config import ConfigError

logger = logging.getLogger(__name__)


def json_success(status: int = 200, **payload: Any):
    body: Dict[str, Any] = {"success": True}
    body.update(payload)
    return jsonify(body), status


def json_error(message: str, status: int, errors: List[Dict[str, str]] | None = None):
    payload: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        payload["errors"] = errors
    return jsonify(payload), status


def validation_failed(errors: List[Dict[str, str]]):
    return json_error("Validation failed.", 400, errors)


def not_found(resource: str):
    return json_error(f"{resource} not found", 404)


def invalid_id(resource: str):
    return json_error(f"Invalid {resource.lower()} id.", 400)


def handle_config_error(exc: ConfigError):
    logger.exception("Missing configuration for MongoDB")
    return json_error(str(exc), 500)


def handle_db_error(action: str, exc: PyMongoError):
    logger.exception("%s due to MongoDB error", action)
    return json_error(f"{action}: {exc}", 500)


__all__ = [
    "handle_config_error",
    "handle_db_error",
    "invalid_id",
    "json_error",
    "json_success",
    "not_found",
    "validation_failed",
]
