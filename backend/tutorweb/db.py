"""MongoDB helpers for the application."""

from datetime import date, datetime, timezone

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, IndexModel, MongoClient
from pymongo.collection import Collection

from .config import get_db_name, get_mongo_uri

_MONGO_CLIENT = None
_MONGO_DB = None

_COLLECTION_INDEXES = {
    "teachers": [
        IndexModel([("email", ASCENDING)], name="unique_email", unique=True),
        IndexModel([("appliedFor", ASCENDING)], name="applied_for_idx"),
        IndexModel([("createdAt", DESCENDING)], name="created_desc"),
    ],
    "students": [
        IndexModel([("email", ASCENDING)], name="email_idx"),
        IndexModel([("createdAt", DESCENDING)], name="created_desc"),
    ],
    "contacts": [
        IndexModel([("createdAt", DESCENDING)], name="created_desc"),
    ],
    "clubs": [
        IndexModel([("category", ASCENDING), ("isActive", ASCENDING)], name="category_active"),
        IndexModel([("name", ASCENDING)], name="name_asc"),
    ],
    "courses": [
        IndexModel([("category", ASCENDING), ("status", ASCENDING)], name="category_status"),
        IndexModel([("instructorName", ASCENDING)], name="instructor_idx"),
        IndexModel([("title", ASCENDING)], name="title_idx"),
    ],
    "blogs": [
        IndexModel([("slug", ASCENDING)], name="unique_slug", unique=True),
        IndexModel([("status", ASCENDING), ("publishedAt", DESCENDING)], name="status_published"),
        IndexModel([("category", ASCENDING)], name="category_idx"),
    ],
    "comments": [
        IndexModel(
            [("blogId", ASCENDING), ("parentCommentId", ASCENDING), ("createdAt", DESCENDING)],
            name="blog_thread",
        ),
        IndexModel([("status", ASCENDING)], name="status_idx"),
    ],
    "notes": [
        IndexModel([("isPublic", ASCENDING), ("status", ASCENDING)], name="public_status"),
        IndexModel([("category", ASCENDING), ("difficulty", ASCENDING)], name="category_difficulty"),
    ],
    "quizzes": [
        IndexModel([("isActive", ASCENDING), ("category", ASCENDING)], name="active_category"),
    ],
    "quiz_results": [
        IndexModel([("quizId", ASCENDING), ("createdAt", DESCENDING)], name="quiz_created"),
        IndexModel([("studentEmail", ASCENDING)], name="student_email_idx"),
    ],
}

_indexes_created = set()


def _get_client():
    """Create (or reuse) a MongoDB client using the configured URI."""

    global _MONGO_CLIENT

    if _MONGO_CLIENT is None:
        _MONGO_CLIENT = MongoClient(get_mongo_uri(), serverSelectionTimeoutMS=5000)
    return _MONGO_CLIENT


def get_db():
    """Return the application's MongoDB database instance."""

    global _MONGO_DB

    if _MONGO_DB is None:
        _MONGO_DB = _get_client()[get_db_name()]
    return _MONGO_DB


def ping_database():
    """Round-trip to the server so a bad connection fails at startup."""

    _get_client().admin.command("ping")
    return _get_client().address


def _get_collection(name: str) -> Collection:
    collection = get_db()[name]
    if name not in _indexes_created:
        collection.create_indexes(_COLLECTION_INDEXES[name])
        _indexes_created.add(name)
    return collection


def get_teachers_collection() -> Collection:
    """Return the collection that stores teacher applications."""

    return _get_collection("teachers")


def get_students_collection() -> Collection:
    """Return the collection that stores student enrollments."""

    return _get_collection("students")


def get_contacts_collection() -> Collection:
    return _get_collection("contacts")


def get_clubs_collection() -> Collection:
    return _get_collection("clubs")


def get_courses_collection() -> Collection:
    """Return the courses collection and ensure supporting indexes."""

    return _get_collection("courses")


def get_blogs_collection() -> Collection:
    """Return the blogs collection; slugs are unique."""

    return _get_collection("blogs")


def get_comments_collection() -> Collection:
    return _get_collection("comments")


def get_notes_collection() -> Collection:
    return _get_collection("notes")


def get_quizzes_collection() -> Collection:
    return _get_collection("quizzes")


def get_quiz_results_collection() -> Collection:
    return _get_collection("quiz_results")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def toggle_like(collection: Collection, object_id: ObjectId, user_email: str):
    """Add or remove ``user_email`` from a document's ``likes`` array.

    Returns ``(liked, like_count)`` or ``None`` when the document is missing.
    Each step is a single atomic update, so concurrent toggles never
    duplicate an entry.
    """

    added = collection.update_one(
        {"_id": object_id, "likes.userEmail": {"$ne": user_email}},
        {"$push": {"likes": {"userEmail": user_email, "likedAt": utcnow()}}},
    )
    liked = added.modified_count == 1
    if not liked:
        removed = collection.update_one(
            {"_id": object_id}, {"$pull": {"likes": {"userEmail": user_email}}}
        )
        if removed.matched_count == 0:
            return None

    document = collection.find_one({"_id": object_id}, projection={"likes": 1})
    if document is None:
        return None
    return liked, len(document.get("likes") or [])


def parse_object_id(value) -> ObjectId:
    """Convert a path parameter into an ObjectId.

    Raises ``bson.errors.InvalidId`` for malformed values, which handlers
    translate into a 400 response.
    """

    if isinstance(value, ObjectId):
        return value
    return ObjectId(str(value).strip())


def _to_json(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat().replace("+00:00", "Z")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _to_json(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_json(item) for item in value]
    return value


def serialize_document(document):
    """Convert a raw MongoDB document into a JSON-serialisable dict."""

    if document is None:
        return None
    return _to_json(dict(document))


def serialize_blog(document):
    blog = serialize_document(document)
    likes = blog.get("likes")
    if not isinstance(likes, list):
        likes = []
    blog["likes"] = likes
    blog["likeCount"] = len(likes)
    blog["tags"] = blog.get("tags") or []
    return blog


def serialize_comment(document):
    comment = serialize_document(document)
    likes = comment.get("likes")
    if not isinstance(likes, list):
        likes = []
    comment["likes"] = likes
    comment["likeCount"] = len(likes)
    return comment


def format_file_size(size) -> str:
    """Render a byte count the way the dashboard displays it (``1.5 MB``)."""

    try:
        size = float(size)
    except (TypeError, ValueError):
        return "0 Bytes"
    if size <= 0:
        return "0 Bytes"
    for unit in ("Bytes", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            break
        size /= 1024
    text = f"{size:.2f}".rstrip("0").rstrip(".")
    return f"{text} {unit}"


def serialize_note(document):
    note = serialize_document(document)
    note["tags"] = note.get("tags") or []
    note["formattedFileSize"] = format_file_size(note.get("fileSize"))
    return note


def serialize_quiz(document, *, include_answers: bool = False):
    """Serialize a quiz; answers and explanations are hidden by default."""

    quiz = serialize_document(document)
    questions = quiz.get("questions")
    if not isinstance(questions, list):
        questions = []

    if not include_answers:
        questions = [
            {
                key: value
                for key, value in question.items()
                if key not in ("correctAnswer", "explanation")
            }
            for question in questions
            if isinstance(question, dict)
        ]

    quiz["questions"] = questions
    quiz["questionCount"] = len(questions)
    return quiz


__all__ = [
    "format_file_size",
    "get_blogs_collection",
    "get_clubs_collection",
    "get_comments_collection",
    "get_contacts_collection",
    "get_courses_collection",
    "get_db",
    "get_notes_collection",
    "get_quiz_results_collection",
    "get_quizzes_collection",
    "get_students_collection",
    "get_teachers_collection",
    "parse_object_id",
    "ping_database",
    "serialize_blog",
    "serialize_comment",
    "serialize_document",
    "serialize_note",
    "serialize_quiz",
    "toggle_like",
    "utcnow",
]
