"""Student enrollment endpoints."""

from __future__ import annotations

from bson.errors import InvalidId
from flask import Blueprint
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from ..config import ConfigError
from ..db import get_students_collection, parse_object_id, serialize_document, utcnow
from ..utils.responses import (
    handle_config_error,
    handle_db_error,
    invalid_id,
    json_error,
    json_success,
    not_found,
    validation_failed,
)
from ..validation import STUDENT_SCHEMA, request_payload, validate_payload

students_bp = Blueprint("students", __name__, url_prefix="/api/students")


# The enrollment form posts to /get; kept for compatibility with the site.
@students_bp.post("/get")
def create_student():
    cleaned, errors = validate_payload(STUDENT_SCHEMA, request_payload(), require_all=True)
    if errors:
        return validation_failed(errors)

    now = utcnow()
    document = dict(cleaned, createdAt=now, updatedAt=now)
    try:
        result = get_students_collection().insert_one(document)
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to create student", exc)

    document["_id"] = result.inserted_id
    return json_success(201, student=serialize_document(document))


@students_bp.get("/getAll")
def list_students():
    try:
        cursor = get_students_collection().find({}, sort=[("createdAt", DESCENDING)])
        students = [serialize_document(doc) for doc in cursor]
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to list students", exc)

    return json_success(students=students)


@students_bp.get("/get/<student_id>")
def get_student(student_id: str):
    try:
        object_id = parse_object_id(student_id)
    except InvalidId:
        return invalid_id("Student")

    try:
        student = get_students_collection().find_one({"_id": object_id})
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to load student", exc)

    if student is None:
        return not_found("Student")
    return json_success(student=serialize_document(student))


@students_bp.put("/update/<student_id>")
def update_student(student_id: str):
    try:
        object_id = parse_object_id(student_id)
    except InvalidId:
        return invalid_id("Student")

    cleaned, errors = validate_payload(STUDENT_SCHEMA, request_payload(), require_all=False)
    if errors:
        return validation_failed(errors)
    if not cleaned:
        return json_error("No changes supplied.", 400)

    cleaned["updatedAt"] = utcnow()
    try:
        student = get_students_collection().find_one_and_update(
            {"_id": object_id},
            {"$set": cleaned},
            return_document=ReturnDocument.AFTER,
        )
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to update student", exc)

    if student is None:
        return not_found("Student")
    return json_success(student=serialize_document(student))


@students_bp.delete("/delete/<student_id>")
def delete_student(student_id: str):
    try:
        object_id = parse_object_id(student_id)
    except InvalidId:
        return invalid_id("Student")

    try:
        result = get_students_collection().delete_one({"_id": object_id})
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to delete student", exc)

    if result.deleted_count == 0:
        return not_found("Student")
    return json_success(message="Student deleted successfully")
