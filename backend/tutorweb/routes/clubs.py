"""Club endpoints."""

from __future__ import annotations

from typing import Any, Dict

from bson.errors import InvalidId
from flask import Blueprint, request
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from ..config import ConfigError
from ..db import get_clubs_collection, parse_object_id, serialize_document, utcnow
from ..utils.query import clean_string, exact_ci, parse_bool_arg, search_filter
from ..utils.responses import (
    handle_config_error,
    handle_db_error,
    invalid_id,
    json_error,
    json_success,
    not_found,
    validation_failed,
)
from ..validation import CLUB_SCHEMA, request_payload, validate_payload

clubs_bp = Blueprint("clubs", __name__, url_prefix="/api/clubs")


@clubs_bp.post("/create")
def create_club():
    cleaned, errors = validate_payload(CLUB_SCHEMA, request_payload(), require_all=True)
    if errors:
        return validation_failed(errors)

    now = utcnow()
    document = dict(cleaned, createdAt=now, updatedAt=now)
    try:
        result = get_clubs_collection().insert_one(document)
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to create club", exc)

    document["_id"] = result.inserted_id
    return json_success(201, message="Club created successfully", data=serialize_document(document))


@clubs_bp.put("/update/<club_id>")
def update_club(club_id: str):
    try:
        object_id = parse_object_id(club_id)
    except InvalidId:
        return invalid_id("Club")

    cleaned, errors = validate_payload(CLUB_SCHEMA, request_payload(), require_all=False)
    if errors:
        return validation_failed(errors)
    if not cleaned:
        return json_error("No changes supplied.", 400)

    cleaned["updatedAt"] = utcnow()
    try:
        club = get_clubs_collection().find_one_and_update(
            {"_id": object_id},
            {"$set": cleaned},
            return_document=ReturnDocument.AFTER,
        )
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to update club", exc)

    if club is None:
        return not_found("Club")
    return json_success(message="Club updated successfully", data=serialize_document(club))


@clubs_bp.get("/all")
def list_clubs():
    filters: Dict[str, Any] = {}

    category = clean_string(request.args.get("category"))
    query = clean_string(request.args.get("search"))
    is_active = parse_bool_arg(request.args.get("isActive"))

    if category:
        filters["category"] = exact_ci(category)
    if is_active is not None:
        filters["isActive"] = is_active
    if query:
        filters.update(search_filter(query, ("name", "description", "coordinator")))

    try:
        cursor = get_clubs_collection().find(filters, sort=[("name", ASCENDING)])
        clubs = [serialize_document(doc) for doc in cursor]
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to list clubs", exc)

    return json_success(count=len(clubs), data=clubs)


@clubs_bp.get("/get/<club_id>")
def get_club(club_id: str):
    try:
        object_id = parse_object_id(club_id)
    except InvalidId:
        return invalid_id("Club")

    try:
        club = get_clubs_collection().find_one({"_id": object_id})
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to load club", exc)

    if club is None:
        return not_found("Club")
    return json_success(data=serialize_document(club))


@clubs_bp.delete("/<club_id>")
def delete_club(club_id: str):
    try:
        object_id = parse_object_id(club_id)
    except InvalidId:
        return invalid_id("Club")

    try:
        result = get_clubs_collection().delete_one({"_id": object_id})
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to delete club", exc)

    if result.deleted_count == 0:
        return not_found("Club")
    return json_success(message="Club deleted successfully")
