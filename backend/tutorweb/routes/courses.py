"""Course catalogue endpoints."""

from __future__ import annotations

import re
from typing import Any, Dict

from bson.errors import InvalidId
from flask import Blueprint, request
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from ..config import ConfigError
from ..db import get_courses_collection, parse_object_id, serialize_document, utcnow
from ..uploads import IMAGE, IMAGE_UPLOAD, discard_uploads, remove_upload, save_uploads
from ..utils.paging import PagingParamError, paginate, parse_paging_params
from ..utils.query import clean_string, exact_ci, search_filter
from ..utils.responses import (
    handle_config_error,
    handle_db_error,
    invalid_id,
    json_error,
    json_success,
    not_found,
    validation_failed,
)
from ..validation import (
    COURSE_CATEGORIES,
    COURSE_LEVELS,
    COURSE_SCHEMA,
    COURSE_STATUSES,
    request_payload,
    validate_payload,
)

courses_bp = Blueprint("courses", __name__, url_prefix="/api/courses")

SORT_FIELDS = {
    "createdAt": "createdAt",
    "title": "title",
    "startDate": "duration.startDate",
    "level": "level",
}
SEARCH_FIELDS = ("title", "description", "instructorName", "tags")


def _paged_courses(filters: Dict[str, Any], action: str):
    try:
        paging = parse_paging_params(request.args, allowed_sort_fields=SORT_FIELDS)
    except PagingParamError as exc:
        return json_error(str(exc), 400)

    try:
        documents, pagination = paginate(get_courses_collection(), filters, paging)
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error(action, exc)

    return json_success(
        data=[serialize_document(doc) for doc in documents],
        pagination=pagination,
    )


@courses_bp.get("/getall")
def list_courses():
    filters: Dict[str, Any] = {}
    for name, allowed in (
        ("category", COURSE_CATEGORIES),
        ("status", COURSE_STATUSES),
        ("level", COURSE_LEVELS),
    ):
        value = clean_string(request.args.get(name))
        if not value or value == "all":
            continue
        if value not in allowed:
            return json_error(f"{name} must be one of: {', '.join(allowed)}.", 400)
        filters[name] = value

    instructor = clean_string(request.args.get("instructor"))
    if instructor:
        filters["instructorName"] = {"$regex": re.escape(instructor), "$options": "i"}

    query = clean_string(request.args.get("search"))
    if query:
        filters.update(search_filter(query, SEARCH_FIELDS))

    return _paged_courses(filters, "Failed to list courses")


@courses_bp.get("/category/<category>")
def list_courses_by_category(category: str):
    return _paged_courses({"category": exact_ci(clean_string(category))}, "Failed to list courses")


@courses_bp.get("/instructor/<instructor_name>")
def list_courses_by_instructor(instructor_name: str):
    return _paged_courses(
        {"instructorName": exact_ci(clean_string(instructor_name))},
        "Failed to list courses",
    )


@courses_bp.get("/search")
def search_courses():
    query = clean_string(request.args.get("q"))
    if not query:
        return json_error("Search query is required.", 400)
    return _paged_courses(search_filter(query, SEARCH_FIELDS), "Failed to search courses")


@courses_bp.get("/get/<course_id>")
def get_course(course_id: str):
    try:
        object_id = parse_object_id(course_id)
    except InvalidId:
        return invalid_id("Course")

    try:
        course = get_courses_collection().find_one({"_id": object_id})
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to load course", exc)

    if course is None:
        return not_found("Course")
    return json_success(data=serialize_document(course))


@courses_bp.post("/create")
def create_course():
    stored = save_uploads(request.files, IMAGE_UPLOAD)

    cleaned, errors = validate_payload(COURSE_SCHEMA, request_payload(), require_all=True)
    if errors:
        discard_uploads(stored.values())
        return validation_failed(errors)

    if "image" in stored:
        cleaned["image"] = stored["image"].url

    now = utcnow()
    document = dict(cleaned, createdAt=now, updatedAt=now)
    try:
        result = get_courses_collection().insert_one(document)
    except ConfigError as exc:
        discard_uploads(stored.values())
        return handle_config_error(exc)
    except PyMongoError as exc:
        discard_uploads(stored.values())
        return handle_db_error("Failed to create course", exc)

    document["_id"] = result.inserted_id
    return json_success(201, message="Course created successfully", data=serialize_document(document))


@courses_bp.put("/update/<course_id>")
def update_course(course_id: str):
    try:
        object_id = parse_object_id(course_id)
    except InvalidId:
        return invalid_id("Course")

    stored = save_uploads(request.files, IMAGE_UPLOAD)

    cleaned, errors = validate_payload(COURSE_SCHEMA, request_payload() or {}, require_all=False)
    if errors:
        discard_uploads(stored.values())
        return validation_failed(errors)
    if "image" in stored:
        cleaned["image"] = stored["image"].url
    if not cleaned:
        return json_error("No changes supplied.", 400)

    cleaned["updatedAt"] = utcnow()
    try:
        previous = get_courses_collection().find_one_and_update(
            {"_id": object_id},
            {"$set": cleaned},
            return_document=ReturnDocument.BEFORE,
        )
    except ConfigError as exc:
        discard_uploads(stored.values())
        return handle_config_error(exc)
    except PyMongoError as exc:
        discard_uploads(stored.values())
        return handle_db_error("Failed to update course", exc)

    if previous is None:
        discard_uploads(stored.values())
        return not_found("Course")

    if "image" in cleaned and previous.get("image") and previous["image"] != cleaned["image"]:
        remove_upload(previous["image"], IMAGE)

    updated = dict(previous)
    updated.update(cleaned)
    return json_success(message="Course updated successfully", data=serialize_document(updated))


@courses_bp.delete("/delete/<course_id>")
def delete_course(course_id: str):
    try:
        object_id = parse_object_id(course_id)
    except InvalidId:
        return invalid_id("Course")

    try:
        deleted = get_courses_collection().find_one_and_delete({"_id": object_id})
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to delete course", exc)

    if deleted is None:
        return not_found("Course")
    if deleted.get("image"):
        remove_upload(deleted["image"], IMAGE)
    return json_success(message="Course deleted successfully")
