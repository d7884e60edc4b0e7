"""Contact form messages."""

from __future__ import annotations

from bson.errors import InvalidId
from flask import Blueprint
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from ..config import ConfigError
from ..db import get_contacts_collection, parse_object_id, serialize_document, utcnow
from ..utils.responses import (
    handle_config_error,
    handle_db_error,
    invalid_id,
    json_success,
    not_found,
    validation_failed,
)
from ..validation import CONTACT_SCHEMA, request_payload, validate_payload

contacts_bp = Blueprint("contacts", __name__, url_prefix="/api/contact")


@contacts_bp.post("/add")
def add_contact():
    cleaned, errors = validate_payload(CONTACT_SCHEMA, request_payload(), require_all=True)
    if errors:
        return validation_failed(errors)

    now = utcnow()
    document = dict(cleaned, createdAt=now, updatedAt=now)
    try:
        result = get_contacts_collection().insert_one(document)
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to save contact message", exc)

    document["_id"] = result.inserted_id
    return json_success(
        201,
        message="Message sent successfully",
        data=serialize_document(document),
    )


@contacts_bp.get("/get")
def list_contacts():
    try:
        cursor = get_contacts_collection().find({}, sort=[("createdAt", DESCENDING)])
        contacts = [serialize_document(doc) for doc in cursor]
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to list contact messages", exc)

    return json_success(count=len(contacts), data=contacts)


@contacts_bp.get("/get/<contact_id>")
def get_contact(contact_id: str):
    try:
        object_id = parse_object_id(contact_id)
    except InvalidId:
        return invalid_id("Contact")

    try:
        contact = get_contacts_collection().find_one({"_id": object_id})
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to load contact message", exc)

    if contact is None:
        return not_found("Contact")
    return json_success(data=serialize_document(contact))


@contacts_bp.delete("/delete/<contact_id>")
def delete_contact(contact_id: str):
    try:
        object_id = parse_object_id(contact_id)
    except InvalidId:
        return invalid_id("Contact")

    try:
        result = get_contacts_collection().delete_one({"_id": object_id})
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to delete contact message", exc)

    if result.deleted_count == 0:
        return not_found("Contact")
    return json_success(message="Contact deleted successfully")
