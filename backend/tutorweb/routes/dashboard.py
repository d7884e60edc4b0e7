"""Admin dashboard statistics."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from pymongo import DESCENDING
from pymongo.errors import PyMongoError
from flask import Blueprint

from ..config import ConfigError
from ..db import (
    get_blogs_collection,
    get_clubs_collection,
    get_comments_collection,
    get_contacts_collection,
    get_courses_collection,
    get_notes_collection,
    get_quiz_results_collection,
    get_quizzes_collection,
    get_students_collection,
    get_teachers_collection,
    serialize_document,
)
from ..utils.responses import handle_config_error, handle_db_error, json_success
from .auth_simple import require_admin

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")

logger = logging.getLogger(__name__)

RECENT_RESULTS_LIMIT = 5

_COUNTED_COLLECTIONS = (
    ("teachers", get_teachers_collection),
    ("students", get_students_collection),
    ("courses", get_courses_collection),
    ("blogs", get_blogs_collection),
    ("comments", get_comments_collection),
    ("notes", get_notes_collection),
    ("quizzes", get_quizzes_collection),
    ("quizResults", get_quiz_results_collection),
    ("clubs", get_clubs_collection),
    ("contacts", get_contacts_collection),
)


def _group_counts(collection, field: str, label: str, missing: str) -> List[Dict[str, Any]]:
    pipeline = [
        {"$group": {"_id": {"$ifNull": [f"${field}", missing]}, "count": {"$sum": 1}}},
        {"$project": {"_id": 0, label: "$_id", "count": 1}},
        {"$sort": {"count": -1, label: 1}},
    ]
    return list(collection.aggregate(pipeline))


@dashboard_bp.get("/stats")
@require_admin
def stats():
    try:
        totals = {
            name: getter().count_documents({}) for name, getter in _COUNTED_COLLECTIONS
        }

        teachers_by_subject = _group_counts(
            get_teachers_collection(), "appliedFor", "appliedFor", "Unknown"
        )
        teachers_by_status = _group_counts(
            get_teachers_collection(), "status", "status", "pending"
        )
        blogs_by_status = _group_counts(get_blogs_collection(), "status", "status", "draft")

        recent_results = [
            serialize_document(doc)
            for doc in get_quiz_results_collection()
            .find(
                {},
                projection={"answers": 0},
                sort=[("createdAt", DESCENDING)],
            )
            .limit(RECENT_RESULTS_LIMIT)
        ]
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to load stats", exc)

    return json_success(
        data={
            "totals": totals,
            "teachersBySubject": teachers_by_subject,
            "teachersByStatus": teachers_by_status,
            "blogsByStatus": blogs_by_status,
            "recentQuizResults": recent_results,
        }
    )
