"""Blog comment endpoints: public threads, likes and admin moderation."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from bson.errors import InvalidId
from flask import Blueprint, request
from pymongo import ASCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from .. import config
from ..config import ConfigError
from ..db import (
    get_blogs_collection,
    get_comments_collection,
    parse_object_id,
    serialize_comment,
    toggle_like,
    utcnow,
)
from ..utils.paging import PagingParamError, paginate, parse_paging_params
from ..utils.query import clean_string
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
    COMMENT_SCHEMA,
    COMMENT_STATUS_SCHEMA,
    COMMENT_STATUSES,
    LIKE_SCHEMA,
    request_payload,
    validate_payload,
)

comments_bp = Blueprint("comments", __name__, url_prefix="/api/comments")

logger = logging.getLogger(__name__)


@comments_bp.post("/create")
def create_comment():
    cleaned, errors = validate_payload(COMMENT_SCHEMA, request_payload(), require_all=True)
    if errors:
        return validation_failed(errors)

    try:
        blog_id = parse_object_id(cleaned["blogId"])
    except InvalidId:
        return invalid_id("Blog")

    parent_id = None
    if cleaned.get("parentCommentId"):
        try:
            parent_id = parse_object_id(cleaned["parentCommentId"])
        except InvalidId:
            return invalid_id("Comment")

    now = utcnow()
    author = cleaned["author"]
    document: Dict[str, Any] = {
        "blogId": blog_id,
        "content": cleaned["content"],
        "parentCommentId": parent_id,
        "author": author,
        "status": "approved",
        "isAdminComment": author["email"] == config.ADMIN_EMAIL,
        "likes": [],
        "createdAt": now,
        "updatedAt": now,
    }

    try:
        blog = get_blogs_collection().find_one(
            {"_id": blog_id}, projection={"allowComments": 1}
        )
        if blog is None:
            return not_found("Blog")
        if blog.get("allowComments") is False:
            return json_error("Comments are disabled for this blog.", 400)

        collection = get_comments_collection()
        if parent_id is not None:
            parent = collection.find_one(
                {"_id": parent_id, "blogId": blog_id}, projection={"_id": 1}
            )
            if parent is None:
                return not_found("Parent comment")

        result = collection.insert_one(document)
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to create comment", exc)

    document["_id"] = result.inserted_id
    return json_success(
        201, message="Comment posted successfully", data=serialize_comment(document)
    )


@comments_bp.get("/blog/<blog_id>")
def list_blog_comments(blog_id: str):
    try:
        object_id = parse_object_id(blog_id)
    except InvalidId:
        return invalid_id("Blog")

    try:
        paging = parse_paging_params(request.args)
    except PagingParamError as exc:
        return json_error(str(exc), 400)

    filters = {"blogId": object_id, "parentCommentId": None, "status": "approved"}
    try:
        collection = get_comments_collection()
        documents, pagination = paginate(collection, filters, paging)

        parent_ids = [doc["_id"] for doc in documents]
        replies_by_parent: Dict[Any, List[Dict[str, Any]]] = {}
        if parent_ids:
            replies = collection.find(
                {"parentCommentId": {"$in": parent_ids}, "status": "approved"},
                sort=[("createdAt", ASCENDING)],
            )
            for reply in replies:
                replies_by_parent.setdefault(reply["parentCommentId"], []).append(
                    serialize_comment(reply)
                )
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to list comments", exc)

    comments = []
    for doc in documents:
        comment = serialize_comment(doc)
        comment["replies"] = replies_by_parent.get(doc["_id"], [])
        comment["replyCount"] = len(comment["replies"])
        comments.append(comment)

    return json_success(data=comments, pagination=pagination)


@comments_bp.post("/<comment_id>/like")
def toggle_comment_like(comment_id: str):
    try:
        object_id = parse_object_id(comment_id)
    except InvalidId:
        return invalid_id("Comment")

    cleaned, errors = validate_payload(LIKE_SCHEMA, request_payload(), require_all=True)
    if errors:
        return validation_failed(errors)

    try:
        outcome = toggle_like(get_comments_collection(), object_id, cleaned["userEmail"])
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to update comment like", exc)

    if outcome is None:
        return not_found("Comment")
    liked, like_count = outcome
    return json_success(data={"liked": liked, "likeCount": like_count})


@comments_bp.get("/admin/all")
def list_all_comments():
    try:
        paging = parse_paging_params(request.args)
    except PagingParamError as exc:
        return json_error(str(exc), 400)

    filters: Dict[str, Any] = {}
    status = clean_string(request.args.get("status"))
    if status and status != "all":
        if status not in COMMENT_STATUSES:
            return json_error(f"status must be one of: {', '.join(COMMENT_STATUSES)}.", 400)
        filters["status"] = status

    blog_filter = clean_string(request.args.get("blogId"))
    if blog_filter:
        try:
            filters["blogId"] = parse_object_id(blog_filter)
        except InvalidId:
            return invalid_id("Blog")

    try:
        documents, pagination = paginate(get_comments_collection(), filters, paging)
        blog_ids = list({doc.get("blogId") for doc in documents if doc.get("blogId")})
        blogs = {}
        if blog_ids:
            cursor = get_blogs_collection().find(
                {"_id": {"$in": blog_ids}}, projection={"title": 1, "slug": 1}
            )
            blogs = {blog["_id"]: blog for blog in cursor}
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to list comments", exc)

    comments = []
    for doc in documents:
        comment = serialize_comment(doc)
        blog = blogs.get(doc.get("blogId"))
        comment["blog"] = (
            {"_id": str(blog["_id"]), "title": blog.get("title"), "slug": blog.get("slug")}
            if blog
            else None
        )
        comment["blogDeleted"] = blog is None
        comments.append(comment)

    return json_success(data=comments, pagination=pagination)


@comments_bp.put("/admin/<comment_id>/status")
def update_comment_status(comment_id: str):
    try:
        object_id = parse_object_id(comment_id)
    except InvalidId:
        return invalid_id("Comment")

    cleaned, errors = validate_payload(COMMENT_STATUS_SCHEMA, request_payload(), require_all=True)
    if errors:
        return validation_failed(errors)

    try:
        comment = get_comments_collection().find_one_and_update(
            {"_id": object_id},
            {"$set": {"status": cleaned["status"], "updatedAt": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to update comment status", exc)

    if comment is None:
        return not_found("Comment")
    return json_success(
        message=f"Comment {cleaned['status']} successfully", data=serialize_comment(comment)
    )


@comments_bp.delete("/admin/<comment_id>")
def delete_comment(comment_id: str):
    try:
        object_id = parse_object_id(comment_id)
    except InvalidId:
        return invalid_id("Comment")

    try:
        collection = get_comments_collection()
        result = collection.delete_one({"_id": object_id})
        if result.deleted_count == 0:
            return not_found("Comment")
        replies = collection.delete_many({"parentCommentId": object_id})
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to delete comment", exc)

    logger.info("Deleted comment %s with %d repl(ies)", comment_id, replies.deleted_count)
    return json_success(
        message="Comment deleted successfully", deletedReplies=replies.deleted_count
    )
