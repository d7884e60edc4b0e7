"""Study note endpoints: admin management, public listing and downloads."""

from __future__ import annotations

import logging
from typing import Any, Dict

from bson.errors import InvalidId
from flask import Blueprint, request
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from .. import config
from ..config import ConfigError
from ..db import get_notes_collection, parse_object_id, serialize_note, utcnow
from ..uploads import NOTE_DOCUMENT, NOTE_UPLOAD, discard_uploads, remove_upload, save_uploads
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
    NOTE_DIFFICULTIES,
    NOTE_SCHEMA,
    NOTE_STATUSES,
    request_payload,
    validate_payload,
)

notes_bp = Blueprint("notes", __name__, url_prefix="/api/notes")

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "createdAt": "createdAt",
    "title": "title",
    "views": "views",
    "downloads": "downloads",
}
SEARCH_FIELDS = ("title", "description", "subject", "tags")
PUBLIC_FILTER = {"isPublic": True, "status": "active"}


def _file_fields(stored) -> Dict[str, Any]:
    return {
        "fileUrl": stored.url,
        "fileName": stored.original_name,
        "fileSize": stored.size,
        "fileType": stored.content_type,
    }


def _list_notes(filters: Dict[str, Any], action: str):
    try:
        paging = parse_paging_params(request.args, allowed_sort_fields=SORT_FIELDS)
    except PagingParamError as exc:
        return json_error(str(exc), 400)

    category = clean_string(request.args.get("category"))
    if category and category != "all":
        filters["category"] = exact_ci(category)

    difficulty = clean_string(request.args.get("difficulty"))
    if difficulty and difficulty != "all":
        if difficulty not in NOTE_DIFFICULTIES:
            return json_error(
                f"difficulty must be one of: {', '.join(NOTE_DIFFICULTIES)}.", 400
            )
        filters["difficulty"] = difficulty

    query = clean_string(request.args.get("search"))
    if query:
        filters.update(search_filter(query, SEARCH_FIELDS))

    try:
        documents, pagination = paginate(get_notes_collection(), filters, paging)
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error(action, exc)

    return json_success(data=[serialize_note(doc) for doc in documents], pagination=pagination)


@notes_bp.get("")
def list_notes():
    filters: Dict[str, Any] = {}
    status = clean_string(request.args.get("status"))
    if status and status != "all":
        if status not in NOTE_STATUSES:
            return json_error(f"status must be one of: {', '.join(NOTE_STATUSES)}.", 400)
        filters["status"] = status
    return _list_notes(filters, "Failed to list notes")


@notes_bp.get("/public")
def list_public_notes():
    return _list_notes(dict(PUBLIC_FILTER), "Failed to list notes")


@notes_bp.get("/public/<note_id>")
def get_public_note(note_id: str):
    try:
        object_id = parse_object_id(note_id)
    except InvalidId:
        return invalid_id("Note")

    try:
        note = get_notes_collection().find_one_and_update(
            dict(PUBLIC_FILTER, _id=object_id),
            {"$inc": {"views": 1}},
            return_document=ReturnDocument.AFTER,
        )
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to load note", exc)

    if note is None:
        return not_found("Note")
    return json_success(data=serialize_note(note))


@notes_bp.get("/<note_id>")
def get_note(note_id: str):
    try:
        object_id = parse_object_id(note_id)
    except InvalidId:
        return invalid_id("Note")

    try:
        note = get_notes_collection().find_one({"_id": object_id})
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to load note", exc)

    if note is None:
        return not_found("Note")
    return json_success(data=serialize_note(note))


@notes_bp.post("")
def create_note():
    stored = save_uploads(request.files, NOTE_UPLOAD)
    if "file" not in stored:
        return json_error("Please upload a file.", 400)

    cleaned, errors = validate_payload(NOTE_SCHEMA, request_payload(), require_all=True)
    if errors:
        discard_uploads(stored.values())
        return validation_failed(errors)

    now = utcnow()
    document: Dict[str, Any] = dict(cleaned)
    if not document.get("createdBy"):
        document["createdBy"] = {"name": "Admin", "email": config.ADMIN_EMAIL}
    document.update(_file_fields(stored["file"]))
    document.update(views=0, downloads=0, createdAt=now, updatedAt=now)

    try:
        result = get_notes_collection().insert_one(document)
    except ConfigError as exc:
        discard_uploads(stored.values())
        return handle_config_error(exc)
    except PyMongoError as exc:
        discard_uploads(stored.values())
        return handle_db_error("Failed to create note", exc)

    document["_id"] = result.inserted_id
    return json_success(201, message="Note created successfully", data=serialize_note(document))


@notes_bp.put("/<note_id>")
def update_note(note_id: str):
    try:
        object_id = parse_object_id(note_id)
    except InvalidId:
        return invalid_id("Note")

    stored = save_uploads(request.files, NOTE_UPLOAD)

    cleaned, errors = validate_payload(NOTE_SCHEMA, request_payload() or {}, require_all=False)
    if errors:
        discard_uploads(stored.values())
        return validation_failed(errors)
    if "file" in stored:
        cleaned.update(_file_fields(stored["file"]))
    if not cleaned:
        return json_error("No changes supplied.", 400)

    cleaned["updatedAt"] = utcnow()
    try:
        previous = get_notes_collection().find_one_and_update(
            {"_id": object_id},
            {"$set": cleaned},
            return_document=ReturnDocument.BEFORE,
        )
    except ConfigError as exc:
        discard_uploads(stored.values())
        return handle_config_error(exc)
    except PyMongoError as exc:
        discard_uploads(stored.values())
        return handle_db_error("Failed to update note", exc)

    if previous is None:
        discard_uploads(stored.values())
        return not_found("Note")

    if "file" in stored and previous.get("fileUrl"):
        remove_upload(previous["fileUrl"], NOTE_DOCUMENT)

    updated = dict(previous)
    updated.update(cleaned)
    return json_success(message="Note updated successfully", data=serialize_note(updated))


@notes_bp.delete("/<note_id>")
def delete_note(note_id: str):
    try:
        object_id = parse_object_id(note_id)
    except InvalidId:
        return invalid_id("Note")

    try:
        deleted = get_notes_collection().find_one_and_delete({"_id": object_id})
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to delete note", exc)

    if deleted is None:
        return not_found("Note")
    if deleted.get("fileUrl"):
        remove_upload(deleted["fileUrl"], NOTE_DOCUMENT)
    logger.info("Deleted note %s", note_id)
    return json_success(message="Note deleted successfully")


@notes_bp.post("/download/<note_id>")
def download_note(note_id: str):
    try:
        object_id = parse_object_id(note_id)
    except InvalidId:
        return invalid_id("Note")

    try:
        note = get_notes_collection().find_one_and_update(
            {"_id": object_id},
            {"$inc": {"downloads": 1}},
            projection={"fileUrl": 1, "fileName": 1, "downloads": 1},
            return_document=ReturnDocument.AFTER,
        )
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to record download", exc)

    if note is None:
        return not_found("Note")
    return json_success(
        data={
            "fileUrl": note.get("fileUrl"),
            "fileName": note.get("fileName"),
            "downloads": note.get("downloads", 0),
        }
    )
