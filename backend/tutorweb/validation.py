"""Request payload validation.

Each resource declares a tuple of :class:`Field` rules. ``validate_payload``
walks a schema against a JSON body or a multipart form and returns the
cleaned values together with an aggregated list of ``{field, message}``
errors. The incoming payload is never modified.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple

from flask import request

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_MISSING = object()
_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}

FieldErrors = List[Dict[str, str]]


@dataclass(frozen=True)
class Field:
    name: str
    label: str
    required: bool = False
    kind: str = "string"
    min_length: int | None = None
    max_length: int | None = None
    choices: Tuple[str, ...] | None = None
    minimum: float | None = None
    maximum: float | None = None
    lower: bool = False
    default: Any = _MISSING
    check: Callable[[Any], Any] | None = None


def _clean_string(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


def _coerce_string(field: Field, value: Any) -> str:
    if isinstance(value, (dict, list)):
        raise ValueError(f"{field.label} must be text.")
    text = _clean_string(value)
    if field.lower:
        text = text.lower()
    if field.min_length is not None and len(text) < field.min_length:
        raise ValueError(f"{field.label} must be at least {field.min_length} characters.")
    if field.max_length is not None and len(text) > field.max_length:
        raise ValueError(f"{field.label} must be at most {field.max_length} characters.")
    if field.choices is not None and text not in field.choices:
        raise ValueError(f"{field.label} must be one of: {', '.join(field.choices)}.")
    return text


def _coerce_email(field: Field, value: Any) -> str:
    text = _clean_string(value).lower()
    if not EMAIL_PATTERN.match(text):
        raise ValueError("Please enter a valid email address.")
    if field.max_length is not None and len(text) > field.max_length:
        raise ValueError(f"{field.label} must be at most {field.max_length} characters.")
    return text


def _check_bounds(field: Field, number):
    if field.minimum is not None and number < field.minimum:
        raise ValueError(f"{field.label} must be at least {field.minimum:g}.")
    if field.maximum is not None and number > field.maximum:
        raise ValueError(f"{field.label} must be at most {field.maximum:g}.")
    return number


def _coerce_int(field: Field, value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{field.label} must be a whole number.")
    try:
        number = float(_clean_string(value))
    except ValueError:
        raise ValueError(f"{field.label} must be a whole number.") from None
    if not number.is_integer():
        raise ValueError(f"{field.label} must be a whole number.")
    return _check_bounds(field, int(number))


def _coerce_bool(field: Field, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = _clean_string(value).lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"{field.label} must be true or false.")


def _coerce_list(field: Field, value: Any) -> List[str]:
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith("["):
            try:
                value = json.loads(stripped)
            except ValueError:
                raise ValueError(f"{field.label} must be a list.") from None
        else:
            return [part.strip() for part in stripped.split(",") if part.strip()]
    if not isinstance(value, list):
        raise ValueError(f"{field.label} must be a list.")
    return [_clean_string(item) for item in value if _clean_string(item)]


def parse_datetime(value: Any) -> datetime:
    """Parse an ISO date or datetime; naive values are taken as UTC."""

    if isinstance(value, datetime):
        parsed = value
    else:
        text = _clean_string(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _coerce_date(field: Field, value: Any) -> datetime:
    try:
        return parse_datetime(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field.label} must be a valid date.") from None


def _coerce_json(field: Field, value: Any) -> Any:
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            raise ValueError(f"{field.label} is malformed.") from None
    return value


_COERCERS = {
    "string": _coerce_string,
    "email": _coerce_email,
    "int": _coerce_int,
    "bool": _coerce_bool,
    "list": _coerce_list,
    "date": _coerce_date,
    "json": _coerce_json,
}


def validate_payload(
    schema: Sequence[Field],
    payload: Mapping[str, Any] | None,
    *,
    require_all: bool,
) -> Tuple[Dict[str, Any], FieldErrors]:
    """Validate ``payload`` against ``schema``.

    With ``require_all`` (create) every required field must be present and
    defaults are filled in; without it (update) only supplied fields are
    checked.
    """

    if payload is None:
        return {}, [{"field": "_global", "message": "Request body must be JSON or form data."}]

    errors: FieldErrors = []
    cleaned: Dict[str, Any] = {}

    for field in schema:
        present = field.name in payload
        value = payload.get(field.name) if present else None

        if not present or _is_blank(value):
            if field.required and (require_all or present):
                errors.append({"field": field.name, "message": f"{field.label} is required."})
            elif require_all and field.default is not _MISSING:
                default = field.default
                cleaned[field.name] = default() if callable(default) else default
            elif present and not field.required:
                # An explicit empty value clears optional fields.
                cleaned[field.name] = [] if field.kind == "list" else None
            continue

        try:
            coerced = _COERCERS[field.kind](field, value)
            if field.check is not None:
                coerced = field.check(coerced)
        except ValueError as exc:
            errors.append({"field": field.name, "message": str(exc)})
            continue

        cleaned[field.name] = coerced

    return cleaned, errors


def request_payload() -> Dict[str, Any] | None:
    """Return the body of the current request as a flat dict.

    JSON bodies are used as-is; multipart and urlencoded forms contribute
    their (single-valued) form fields. Returns ``None`` for a body that is
    neither.
    """

    if request.is_json:
        data = request.get_json(silent=True)
        return data if isinstance(data, dict) else None
    if request.form or request.files or request.mimetype in (
        "multipart/form-data",
        "application/x-www-form-urlencoded",
    ):
        return request.form.to_dict()
    return None


TEACHER_GENDERS = ("Male", "Female", "Other")
TEACHER_SUBJECTS = ("IELTS", "English", "Quran")
TEACHER_STATUSES = ("pending", "reviewed", "accepted", "rejected")
COURSE_CATEGORIES = ("IELTS", "English Proficiency", "Quran")
COURSE_STATUSES = ("active", "inactive", "upcoming")
COURSE_LEVELS = ("beginner", "intermediate", "advanced")
BLOG_STATUSES = ("draft", "published")
COMMENT_STATUSES = ("pending", "approved", "rejected")
NOTE_DIFFICULTIES = ("Beginner", "Intermediate", "Advanced")
NOTE_STATUSES = ("active", "inactive")
QUIZ_DIFFICULTIES = ("easy", "medium", "hard")


def _check_duration(value: Any) -> Dict[str, datetime]:
    if not isinstance(value, dict):
        raise ValueError("Duration must include startDate and endDate.")
    try:
        start = parse_datetime(value.get("startDate"))
        end = parse_datetime(value.get("endDate"))
    except (TypeError, ValueError):
        raise ValueError("Duration must include valid startDate and endDate.") from None
    if end < start:
        raise ValueError("Duration endDate must not be before startDate.")
    return {"startDate": start, "endDate": end}


def _check_person(value: Any, *, label: str) -> Dict[str, str]:
    if not isinstance(value, dict):
        raise ValueError(f"{label} must include a name and an email.")
    name = _clean_string(value.get("name"))
    email = _clean_string(value.get("email")).lower()
    if not name:
        raise ValueError(f"{label} name is required.")
    if len(name) > 100:
        raise ValueError(f"{label} name must be at most 100 characters.")
    if not EMAIL_PATTERN.match(email):
        raise ValueError(f"{label} email must be a valid email address.")
    person = {"name": name, "email": email}
    avatar = _clean_string(value.get("avatar"))
    if avatar:
        person["avatar"] = avatar
    return person


def _check_questions(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list) or not value:
        raise ValueError("At least one question is required.")

    questions = []
    for index, entry in enumerate(value, start=1):
        if not isinstance(entry, dict):
            raise ValueError(f"Question {index} must be an object.")
        text = _clean_string(entry.get("question"))
        if not text:
            raise ValueError(f"Question {index} text is required.")
        options = entry.get("options")
        if not isinstance(options, list):
            raise ValueError(f"Question {index} options must be a list.")
        options = [_clean_string(option) for option in options]
        if not 2 <= len(options) <= 6 or not all(options):
            raise ValueError(f"Question {index} needs 2 to 6 non-empty options.")
        answer = entry.get("correctAnswer")
        if isinstance(answer, bool) or not isinstance(answer, (int, str)):
            raise ValueError(f"Question {index} correctAnswer must be an option index.")
        try:
            answer = int(answer)
        except ValueError:
            raise ValueError(f"Question {index} correctAnswer must be an option index.") from None
        if not 0 <= answer < len(options):
            raise ValueError(f"Question {index} correctAnswer is out of range.")

        question = {"question": text, "options": options, "correctAnswer": answer}
        explanation = _clean_string(entry.get("explanation"))
        if explanation:
            question["explanation"] = explanation
        questions.append(question)
    return questions


def _check_answers(value: Any) -> List[int | None]:
    if not isinstance(value, list):
        raise ValueError("Answers must be a list of option indexes.")
    answers: List[int | None] = []
    for answer in value:
        if answer is None or answer == "":
            answers.append(None)
            continue
        if isinstance(answer, bool):
            raise ValueError("Answers must be a list of option indexes.")
        try:
            answers.append(int(answer))
        except (TypeError, ValueError):
            raise ValueError("Answers must be a list of option indexes.") from None
    return answers


TEACHER_SCHEMA = (
    Field("name", "Name", required=True, min_length=2, max_length=50),
    Field("email", "Email", required=True, kind="email"),
    Field("contactNumber", "Contact number", required=True, min_length=10, max_length=15),
    Field("address", "Address", required=True, min_length=5, max_length=200),
    Field("city", "City", required=True, min_length=2, max_length=50),
    Field("state", "State", required=True, min_length=2, max_length=50),
    Field("country", "Country", required=True, min_length=2, max_length=50),
    Field("zipCode", "Zip code", required=True, min_length=3, max_length=10),
    Field("gender", "Gender", required=True, choices=TEACHER_GENDERS),
    Field("dateOfBirth", "Date of birth", required=True, kind="date"),
    Field("qualification", "Qualification", required=True, min_length=2, max_length=100),
    Field("subject", "Subject", required=True, min_length=2, max_length=50),
    Field("expertAt", "Expert at", required=True, min_length=5, max_length=200),
    Field("appliedFor", "Applied for", required=True, choices=TEACHER_SUBJECTS),
    Field("whyFitForJob", "Why you fit for this job", required=True, min_length=10, max_length=1000),
    Field("status", "Status", choices=TEACHER_STATUSES, default="pending"),
)

STUDENT_SCHEMA = (
    Field("name", "Name", required=True, min_length=2, max_length=50),
    Field("email", "Email", required=True, kind="email"),
    Field("phone", "Phone", required=True, min_length=10, max_length=15),
    Field("city", "City", required=True, min_length=2, max_length=50),
    Field("qualifications", "Qualifications", required=True, min_length=2, max_length=100),
    Field("course", "Course", max_length=100),
)

CONTACT_SCHEMA = (
    Field("fullName", "Full name", required=True, max_length=100),
    Field("emailAddress", "Email address", required=True, kind="email"),
    Field("subject", "Subject", required=True, max_length=200),
    Field("message", "Message", required=True, max_length=5000),
)

CLUB_SCHEMA = (
    Field("name", "Club name", required=True, min_length=2, max_length=100),
    Field("description", "Description", required=True, min_length=10, max_length=1000),
    Field("category", "Category", max_length=50),
    Field("coordinator", "Coordinator", max_length=100),
    Field("meetingSchedule", "Meeting schedule", max_length=200),
    Field("isActive", "Active flag", kind="bool", default=True),
)

COURSE_SCHEMA = (
    Field("title", "Title", required=True, min_length=3, max_length=200),
    Field("description", "Description", required=True, min_length=10, max_length=5000),
    Field("category", "Category", required=True, choices=COURSE_CATEGORIES),
    Field("syllabus", "Syllabus", required=True),
    Field("instructorName", "Instructor name", required=True, min_length=2, max_length=100),
    Field("duration", "Duration", required=True, kind="json", check=_check_duration),
    Field("video", "Video"),
    Field("image", "Image"),
    Field("status", "Status", choices=COURSE_STATUSES, default="active"),
    Field("level", "Level", choices=COURSE_LEVELS, default="beginner"),
    Field("features", "Features", kind="list", default=list),
    Field("tags", "Tags", kind="list", default=list),
    Field("requirements", "Requirements", kind="list", default=list),
    Field("learningOutcomes", "Learning outcomes", kind="list", default=list),
)

BLOG_SCHEMA = (
    Field("title", "Title", required=True, min_length=3, max_length=200),
    Field("content", "Content", required=True, min_length=10),
    Field("excerpt", "Excerpt", required=True, max_length=500),
    Field("category", "Category", required=True, max_length=50),
    Field("tags", "Tags", kind="list", default=list),
    Field("author", "Author", max_length=100, default="Admin"),
    Field("status", "Status", choices=BLOG_STATUSES, default="draft"),
    Field("featuredImage", "Featured image"),
    Field("metaTitle", "Meta title", max_length=200),
    Field("metaDescription", "Meta description", max_length=300),
    Field("featured", "Featured flag", kind="bool", default=False),
    Field("allowComments", "Allow comments flag", kind="bool", default=True),
)

COMMENT_SCHEMA = (
    Field("blogId", "Blog id", required=True),
    Field("content", "Content", required=True, min_length=1, max_length=1000),
    Field("parentCommentId", "Parent comment id"),
    Field(
        "author",
        "Author",
        required=True,
        kind="json",
        check=lambda value: _check_person(value, label="Author"),
    ),
)

COMMENT_STATUS_SCHEMA = (
    Field("status", "Status", required=True, choices=COMMENT_STATUSES),
)

LIKE_SCHEMA = (Field("userEmail", "User email", required=True, kind="email"),)

NOTE_SCHEMA = (
    Field("title", "Title", required=True, min_length=3, max_length=200),
    Field("description", "Description", required=True, max_length=2000),
    Field("subject", "Subject", required=True, max_length=100),
    Field("category", "Category", required=True, max_length=100),
    Field("difficulty", "Difficulty", choices=NOTE_DIFFICULTIES, default="Beginner"),
    Field("status", "Status", choices=NOTE_STATUSES, default="active"),
    Field("tags", "Tags", kind="list", default=list),
    Field("isPublic", "Public flag", kind="bool", default=True),
    Field(
        "createdBy",
        "Created by",
        kind="json",
        check=lambda value: _check_person(value, label="Created by"),
    ),
)

QUIZ_SCHEMA = (
    Field("title", "Title", required=True, min_length=3, max_length=200),
    Field("description", "Description", required=True, max_length=2000),
    Field("questions", "Questions", required=True, kind="json", check=_check_questions),
    Field("passingScore", "Passing score", kind="int", minimum=0, maximum=100, default=70),
    Field("timeLimit", "Time limit", kind="int", minimum=1, maximum=300, default=30),
    Field("category", "Category", max_length=100, default="General"),
    Field("difficulty", "Difficulty", choices=QUIZ_DIFFICULTIES, default="medium"),
    Field("isActive", "Active flag", kind="bool", default=True),
)

QUIZ_SUBMISSION_SCHEMA = (
    Field("studentId", "Student id", max_length=100),
    Field("studentName", "Student name", required=True, min_length=2, max_length=100),
    Field("studentEmail", "Student email", required=True, kind="email"),
    Field("answers", "Answers", required=True, kind="json", check=_check_answers),
    Field("timeTaken", "Time taken", kind="int", minimum=0, default=0),
)


__all__ = [
    "BLOG_SCHEMA",
    "CLUB_SCHEMA",
    "COMMENT_SCHEMA",
    "COMMENT_STATUS_SCHEMA",
    "CONTACT_SCHEMA",
    "COURSE_SCHEMA",
    "Field",
    "LIKE_SCHEMA",
    "NOTE_SCHEMA",
    "QUIZ_SCHEMA",
    "QUIZ_SUBMISSION_SCHEMA",
    "STUDENT_SCHEMA",
    "TEACHER_SCHEMA",
    "parse_datetime",
    "request_payload",
    "validate_payload",
]
