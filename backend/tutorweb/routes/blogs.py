"""Blog endpoints: admin CRUD, public reads, likes and image uploads."""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Dict

from bson.errors import InvalidId
from flask import Blueprint, request
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..config import ConfigError
from ..db import get_blogs_collection, parse_object_id, serialize_blog, toggle_like, utcnow
from ..uploads import IMAGE, IMAGE_UPLOAD, remove_upload, save_uploads
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
    BLOG_SCHEMA,
    BLOG_STATUSES,
    LIKE_SCHEMA,
    request_payload,
    validate_payload,
)

blogs_bp = Blueprint("blogs", __name__, url_prefix="/api/blogs")

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200
SORT_FIELDS = {
    "createdAt": "createdAt",
    "publishedAt": "publishedAt",
    "title": "title",
    "views": "views",
}
SEARCH_FIELDS = ("title", "excerpt", "content", "tags")
_TAG_PATTERN = re.compile(r"<[^>]+>")
_SLUG_PATTERN = re.compile(r"[^a-z0-9]+")


def slugify(title: str) -> str:
    slug = _SLUG_PATTERN.sub("-", title.lower()).strip("-")
    return slug or "post"


def reading_time(content: str) -> int:
    """Minutes needed to read ``content`` (HTML tags ignored), at least one."""

    words = len(_TAG_PATTERN.sub(" ", content or "").split())
    return max(1, math.ceil(words / WORDS_PER_MINUTE))


def _unique_slug(collection, title: str, exclude_id=None) -> str:
    base = slugify(title)
    candidate = base
    counter = 1
    while True:
        query: Dict[str, Any] = {"slug": candidate}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        if collection.find_one(query, projection={"_id": 1}) is None:
            return candidate
        counter += 1
        candidate = f"{base}-{counter}"


def _list_blogs(filters: Dict[str, Any], default_sort: str, action: str):
    try:
        paging = parse_paging_params(
            request.args,
            allowed_sort_fields=SORT_FIELDS,
            default_sort=default_sort,
        )
    except PagingParamError as exc:
        return json_error(str(exc), 400)

    category = clean_string(request.args.get("category"))
    if category and category != "all":
        filters["category"] = exact_ci(category)
    query = clean_string(request.args.get("search"))
    if query:
        filters.update(search_filter(query, SEARCH_FIELDS))

    try:
        documents, pagination = paginate(get_blogs_collection(), filters, paging)
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error(action, exc)

    return json_success(data=[serialize_blog(doc) for doc in documents], pagination=pagination)


@blogs_bp.get("")
def list_blogs():
    filters: Dict[str, Any] = {}

    status = clean_string(request.args.get("status"))
    if status and status != "all":
        if status not in BLOG_STATUSES:
            return json_error(f"status must be one of: {', '.join(BLOG_STATUSES)}.", 400)
        filters["status"] = status

    exclude = clean_string(request.args.get("exclude"))
    if exclude:
        try:
            filters["_id"] = {"$ne": parse_object_id(exclude)}
        except InvalidId:
            return invalid_id("Blog")

    return _list_blogs(filters, "createdAt", "Failed to list blogs")


@blogs_bp.get("/published")
def list_published_blogs():
    return _list_blogs({"status": "published"}, "publishedAt", "Failed to list published blogs")


@blogs_bp.get("/<blog_id>")
def get_blog(blog_id: str):
    try:
        object_id = parse_object_id(blog_id)
    except InvalidId:
        return invalid_id("Blog")

    try:
        blog = get_blogs_collection().find_one({"_id": object_id})
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to load blog", exc)

    if blog is None:
        return not_found("Blog")
    return json_success(data=serialize_blog(blog))


@blogs_bp.get("/slug/<slug>")
def get_blog_by_slug(slug: str):
    try:
        blog = get_blogs_collection().find_one_and_update(
            {"slug": clean_string(slug).lower(), "status": "published"},
            {"$inc": {"views": 1}},
            return_document=ReturnDocument.AFTER,
        )
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to load blog", exc)

    if blog is None:
        return not_found("Blog")
    return json_success(data=serialize_blog(blog))


@blogs_bp.post("/<blog_id>/like")
def toggle_blog_like(blog_id: str):
    try:
        object_id = parse_object_id(blog_id)
    except InvalidId:
        return invalid_id("Blog")

    cleaned, errors = validate_payload(LIKE_SCHEMA, request_payload(), require_all=True)
    if errors:
        return validation_failed(errors)

    try:
        outcome = toggle_like(get_blogs_collection(), object_id, cleaned["userEmail"])
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to update blog like", exc)

    if outcome is None:
        return not_found("Blog")
    liked, like_count = outcome
    return json_success(data={"liked": liked, "likeCount": like_count})


@blogs_bp.post("")
def create_blog():
    cleaned, errors = validate_payload(BLOG_SCHEMA, request_payload(), require_all=True)
    if errors:
        return validation_failed(errors)

    now = utcnow()
    document: Dict[str, Any] = dict(cleaned)
    document.update(
        readingTime=reading_time(cleaned["content"]),
        views=0,
        likes=[],
        publishedAt=now if cleaned["status"] == "published" else None,
        createdAt=now,
        updatedAt=now,
    )

    try:
        collection = get_blogs_collection()
        document["slug"] = _unique_slug(collection, cleaned["title"])
        result = collection.insert_one(document)
    except ConfigError as exc:
        return handle_config_error(exc)
    except DuplicateKeyError:
        return json_error("A blog with this title already exists.", 400)
    except PyMongoError as exc:
        return handle_db_error("Failed to create blog", exc)

    document["_id"] = result.inserted_id
    return json_success(201, message="Blog created successfully", data=serialize_blog(document))


@blogs_bp.put("/<blog_id>")
def update_blog(blog_id: str):
    try:
        object_id = parse_object_id(blog_id)
    except InvalidId:
        return invalid_id("Blog")

    cleaned, errors = validate_payload(BLOG_SCHEMA, request_payload(), require_all=False)
    if errors:
        return validation_failed(errors)
    if not cleaned:
        return json_error("No changes supplied.", 400)

    try:
        collection = get_blogs_collection()
        existing = collection.find_one({"_id": object_id})
        if existing is None:
            return not_found("Blog")

        if "title" in cleaned and cleaned["title"] != existing.get("title"):
            cleaned["slug"] = _unique_slug(collection, cleaned["title"], exclude_id=object_id)
        if "content" in cleaned:
            cleaned["readingTime"] = reading_time(cleaned["content"])
        if cleaned.get("status") == "published" and not existing.get("publishedAt"):
            cleaned["publishedAt"] = utcnow()
        cleaned["updatedAt"] = utcnow()

        blog = collection.find_one_and_update(
            {"_id": object_id},
            {"$set": cleaned},
            return_document=ReturnDocument.AFTER,
        )
    except ConfigError as exc:
        return handle_config_error(exc)
    except DuplicateKeyError:
        return json_error("A blog with this title already exists.", 400)
    except PyMongoError as exc:
        return handle_db_error("Failed to update blog", exc)

    if blog is None:
        return not_found("Blog")
    if "featuredImage" in cleaned and existing.get("featuredImage") != cleaned["featuredImage"]:
        remove_upload(existing.get("featuredImage"), IMAGE)
    return json_success(message="Blog updated successfully", data=serialize_blog(blog))


@blogs_bp.delete("/<blog_id>")
def delete_blog(blog_id: str):
    try:
        object_id = parse_object_id(blog_id)
    except InvalidId:
        return invalid_id("Blog")

    try:
        deleted = get_blogs_collection().find_one_and_delete({"_id": object_id})
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to delete blog", exc)

    if deleted is None:
        return not_found("Blog")

    # Comments keep their blogId; admin listings report them as orphaned.
    if deleted.get("featuredImage"):
        remove_upload(deleted["featuredImage"], IMAGE)
    logger.info("Deleted blog %s", blog_id)
    return json_success(message="Blog deleted successfully")


@blogs_bp.post("/upload-image")
def upload_blog_image():
    stored = save_uploads(request.files, IMAGE_UPLOAD)
    if "image" not in stored:
        return json_error("No image file provided.", 400)

    image = stored["image"]
    return json_success(
        201,
        message="Image uploaded successfully",
        data={"imageUrl": image.url, "filename": image.filename, "size": image.size},
    )
