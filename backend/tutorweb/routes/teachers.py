"""Teacher application endpoints (multipart image + resume uploads)."""

from __future__ import annotations

import logging
from typing import Any, Dict

from bson.errors import InvalidId
from flask import Blueprint, request
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..config import ConfigError
from ..db import get_teachers_collection, parse_object_id, serialize_document, utcnow
from ..uploads import TEACHER_FILES_UPLOAD, discard_uploads, remove_upload, save_uploads
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
from ..validation import TEACHER_SCHEMA, TEACHER_STATUSES, request_payload, validate_payload

teachers_bp = Blueprint("teachers", __name__, url_prefix="/api/teachers")

logger = logging.getLogger(__name__)

FILE_FIELDS = ("image", "resume")
SEARCH_FIELDS = ("name", "email", "subject", "city", "qualification", "expertAt", "appliedFor")
DUPLICATE_EMAIL_MESSAGE = "A teacher application with this email already exists."


def _list_response(cursor):
    teachers = [serialize_document(doc) for doc in cursor]
    return json_success(count=len(teachers), data=teachers)


@teachers_bp.post("")
def create_teacher():
    stored = save_uploads(request.files, TEACHER_FILES_UPLOAD)

    cleaned, errors = validate_payload(TEACHER_SCHEMA, request_payload(), require_all=True)
    if errors:
        discard_uploads(stored.values())
        return validation_failed(errors)

    now = utcnow()
    document: Dict[str, Any] = dict(cleaned)
    for field in FILE_FIELDS:
        document[field] = stored[field].url if field in stored else None
    document["createdAt"] = now
    document["updatedAt"] = now

    try:
        collection = get_teachers_collection()
        result = collection.insert_one(document)
    except ConfigError as exc:
        discard_uploads(stored.values())
        return handle_config_error(exc)
    except DuplicateKeyError:
        discard_uploads(stored.values())
        logger.info("Rejected duplicate teacher application for %s", cleaned.get("email"))
        return json_error(DUPLICATE_EMAIL_MESSAGE, 400)
    except PyMongoError as exc:
        discard_uploads(stored.values())
        return handle_db_error("Failed to create teacher", exc)

    document["_id"] = result.inserted_id
    return json_success(
        201,
        message="Teacher application submitted successfully",
        data=serialize_document(document),
    )


@teachers_bp.get("/getall")
def list_teachers():
    filters: Dict[str, Any] = {}
    status = clean_string(request.args.get("status"))
    if status:
        if status not in TEACHER_STATUSES:
            return json_error(f"status must be one of: {', '.join(TEACHER_STATUSES)}.", 400)
        filters["status"] = status

    try:
        collection = get_teachers_collection()
        return _list_response(collection.find(filters, sort=[("createdAt", DESCENDING)]))
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to list teachers", exc)


@teachers_bp.get("/get/<teacher_id>")
def get_teacher(teacher_id: str):
    try:
        object_id = parse_object_id(teacher_id)
    except InvalidId:
        return invalid_id("Teacher")

    try:
        teacher = get_teachers_collection().find_one({"_id": object_id})
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to load teacher", exc)

    if teacher is None:
        return not_found("Teacher")
    return json_success(data=serialize_document(teacher))


@teachers_bp.put("/update/<teacher_id>")
def update_teacher(teacher_id: str):
    try:
        object_id = parse_object_id(teacher_id)
    except InvalidId:
        return invalid_id("Teacher")

    stored = save_uploads(request.files, TEACHER_FILES_UPLOAD)

    cleaned, errors = validate_payload(TEACHER_SCHEMA, request_payload() or {}, require_all=False)
    if errors:
        discard_uploads(stored.values())
        return validation_failed(errors)

    changes: Dict[str, Any] = dict(cleaned)
    for field, item in stored.items():
        changes[field] = item.url

    if not changes:
        return json_error("No changes supplied.", 400)
    changes["updatedAt"] = utcnow()

    try:
        collection = get_teachers_collection()
        previous = collection.find_one_and_update(
            {"_id": object_id},
            {"$set": changes},
            return_document=ReturnDocument.BEFORE,
        )
    except ConfigError as exc:
        discard_uploads(stored.values())
        return handle_config_error(exc)
    except DuplicateKeyError:
        discard_uploads(stored.values())
        return json_error(DUPLICATE_EMAIL_MESSAGE, 400)
    except PyMongoError as exc:
        discard_uploads(stored.values())
        return handle_db_error("Failed to update teacher", exc)

    if previous is None:
        discard_uploads(stored.values())
        return not_found("Teacher")

    # Replaced files are no longer referenced by any record.
    for field in stored:
        if previous.get(field):
            remove_upload(previous[field], TEACHER_FILES_UPLOAD.fields[field])

    updated = dict(previous)
    updated.update(changes)
    return json_success(message="Teacher updated successfully", data=serialize_document(updated))


@teachers_bp.delete("/<teacher_id>")
def delete_teacher(teacher_id: str):
    try:
        object_id = parse_object_id(teacher_id)
    except InvalidId:
        return invalid_id("Teacher")

    try:
        deleted = get_teachers_collection().find_one_and_delete({"_id": object_id})
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to delete teacher", exc)

    if deleted is None:
        return not_found("Teacher")

    for field in FILE_FIELDS:
        if deleted.get(field):
            remove_upload(deleted[field], TEACHER_FILES_UPLOAD.fields[field])
    return json_success(message="Teacher deleted successfully")


@teachers_bp.get("/subject/<applied_for>")
def list_teachers_by_subject(applied_for: str):
    subject = clean_string(applied_for)
    if not subject:
        return json_error("Subject is required.", 400)

    try:
        collection = get_teachers_collection()
        cursor = collection.find({"appliedFor": exact_ci(subject)}, sort=[("createdAt", DESCENDING)])
        return _list_response(cursor)
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to list teachers by subject", exc)


@teachers_bp.get("/search")
def search_teachers():
    query = clean_string(request.args.get("q"))
    if not query:
        return json_error("Search query is required.", 400)

    try:
        collection = get_teachers_collection()
        cursor = collection.find(
            search_filter(query, SEARCH_FIELDS), sort=[("createdAt", DESCENDING)]
        )
        return _list_response(cursor)
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to search teachers", exc)
