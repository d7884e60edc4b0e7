"""Quiz endpoints: authoring, public play, scoring and results."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Sequence

from bson.errors import InvalidId
from flask import Blueprint, request
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from ..config import ConfigError
from ..db import (
    get_quiz_results_collection,
    get_quizzes_collection,
    parse_object_id,
    serialize_document,
    serialize_quiz,
    utcnow,
)
from ..utils.paging import PagingParamError, paginate, parse_paging_params
from ..utils.query import clean_string, exact_ci, parse_bool_arg
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
    QUIZ_DIFFICULTIES,
    QUIZ_SCHEMA,
    QUIZ_SUBMISSION_SCHEMA,
    request_payload,
    validate_payload,
)

quizzes_bp = Blueprint("quizzes", __name__, url_prefix="/api/quizzes")

logger = logging.getLogger(__name__)

SORT_FIELDS = {"createdAt": "createdAt", "title": "title"}
RESULT_SORT_FIELDS = {"createdAt": "createdAt", "score": "score", "timeTaken": "timeTaken"}


def score_answers(
    questions: Sequence[Dict[str, Any]], answers: Sequence[int | None]
) -> Dict[str, Any]:
    """Grade ``answers`` against ``questions``.

    Missing or unanswered entries count as wrong. The score is the rounded
    percentage of correct answers.
    """

    graded: List[Dict[str, Any]] = []
    correct = 0
    for index, question in enumerate(questions):
        selected = answers[index] if index < len(answers) else None
        is_correct = selected is not None and selected == question.get("correctAnswer")
        if is_correct:
            correct += 1
        graded.append(
            {
                "questionIndex": index,
                "selectedAnswer": selected,
                "correctAnswer": question.get("correctAnswer"),
                "isCorrect": is_correct,
            }
        )

    total = len(questions)
    score = round(correct / total * 100) if total else 0
    return {
        "correctAnswers": correct,
        "totalQuestions": total,
        "score": score,
        "answers": graded,
    }


@quizzes_bp.get("")
def list_quizzes():
    try:
        paging = parse_paging_params(request.args, allowed_sort_fields=SORT_FIELDS)
    except PagingParamError as exc:
        return json_error(str(exc), 400)

    filters: Dict[str, Any] = {}
    is_active = parse_bool_arg(request.args.get("isActive"))
    if is_active is not None:
        filters["isActive"] = is_active

    category = clean_string(request.args.get("category"))
    if category and category != "all":
        filters["category"] = exact_ci(category)

    difficulty = clean_string(request.args.get("difficulty"))
    if difficulty and difficulty != "all":
        if difficulty not in QUIZ_DIFFICULTIES:
            return json_error(
                f"difficulty must be one of: {', '.join(QUIZ_DIFFICULTIES)}.", 400
            )
        filters["difficulty"] = difficulty

    try:
        documents, pagination = paginate(get_quizzes_collection(), filters, paging)
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to list quizzes", exc)

    return json_success(
        data=[serialize_quiz(doc, include_answers=True) for doc in documents],
        pagination=pagination,
    )


@quizzes_bp.get("/active")
def list_active_quizzes():
    filters: Dict[str, Any] = {"isActive": True}
    category = clean_string(request.args.get("category"))
    if category and category != "all":
        filters["category"] = exact_ci(category)

    try:
        cursor = get_quizzes_collection().find(filters, sort=[("createdAt", DESCENDING)])
        quizzes = [serialize_quiz(doc) for doc in cursor]
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to list quizzes", exc)

    return json_success(count=len(quizzes), data=quizzes)


@quizzes_bp.get("/all-results")
def list_all_results():
    try:
        paging = parse_paging_params(request.args, allowed_sort_fields=RESULT_SORT_FIELDS)
    except PagingParamError as exc:
        return json_error(str(exc), 400)

    filters: Dict[str, Any] = {}
    passed = parse_bool_arg(request.args.get("passed"))
    if passed is not None:
        filters["passed"] = passed

    try:
        documents, pagination = paginate(get_quiz_results_collection(), filters, paging)
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to list quiz results", exc)

    return json_success(
        data=[serialize_document(doc) for doc in documents], pagination=pagination
    )


@quizzes_bp.get("/<quiz_id>")
def get_quiz(quiz_id: str):
    try:
        object_id = parse_object_id(quiz_id)
    except InvalidId:
        return invalid_id("Quiz")

    include_answers = parse_bool_arg(request.args.get("includeAnswers")) is True
    try:
        quiz = get_quizzes_collection().find_one({"_id": object_id})
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to load quiz", exc)

    if quiz is None:
        return not_found("Quiz")
    return json_success(data=serialize_quiz(quiz, include_answers=include_answers))


@quizzes_bp.post("")
def create_quiz():
    cleaned, errors = validate_payload(QUIZ_SCHEMA, request_payload(), require_all=True)
    if errors:
        return validation_failed(errors)

    now = utcnow()
    document = dict(cleaned, createdAt=now, updatedAt=now)
    try:
        result = get_quizzes_collection().insert_one(document)
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to create quiz", exc)

    document["_id"] = result.inserted_id
    return json_success(
        201,
        message="Quiz created successfully",
        data=serialize_quiz(document, include_answers=True),
    )


@quizzes_bp.put("/<quiz_id>")
def update_quiz(quiz_id: str):
    try:
        object_id = parse_object_id(quiz_id)
    except InvalidId:
        return invalid_id("Quiz")

    cleaned, errors = validate_payload(QUIZ_SCHEMA, request_payload(), require_all=False)
    if errors:
        return validation_failed(errors)
    if not cleaned:
        return json_error("No changes supplied.", 400)

    cleaned["updatedAt"] = utcnow()
    try:
        quiz = get_quizzes_collection().find_one_and_update(
            {"_id": object_id},
            {"$set": cleaned},
            return_document=ReturnDocument.AFTER,
        )
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to update quiz", exc)

    if quiz is None:
        return not_found("Quiz")
    return json_success(
        message="Quiz updated successfully", data=serialize_quiz(quiz, include_answers=True)
    )


@quizzes_bp.delete("/<quiz_id>")
def delete_quiz(quiz_id: str):
    try:
        object_id = parse_object_id(quiz_id)
    except InvalidId:
        return invalid_id("Quiz")

    try:
        result = get_quizzes_collection().delete_one({"_id": object_id})
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to delete quiz", exc)

    if result.deleted_count == 0:
        return not_found("Quiz")
    logger.info("Deleted quiz %s", quiz_id)
    return json_success(message="Quiz deleted successfully")


@quizzes_bp.post("/<quiz_id>/submit")
def submit_quiz(quiz_id: str):
    try:
        object_id = parse_object_id(quiz_id)
    except InvalidId:
        return invalid_id("Quiz")

    cleaned, errors = validate_payload(
        QUIZ_SUBMISSION_SCHEMA, request_payload(), require_all=True
    )
    if errors:
        return validation_failed(errors)

    try:
        quiz = get_quizzes_collection().find_one({"_id": object_id})
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to load quiz", exc)

    if quiz is None:
        return not_found("Quiz")
    if not quiz.get("isActive", True):
        return json_error("This quiz is not currently active.", 400)

    outcome = score_answers(quiz.get("questions") or [], cleaned["answers"])
    passing_score = quiz.get("passingScore", 70)
    document: Dict[str, Any] = {
        "quizId": object_id,
        "quizTitle": quiz.get("title"),
        "studentId": cleaned.get("studentId"),
        "studentName": cleaned["studentName"],
        "studentEmail": cleaned["studentEmail"],
        "timeTaken": cleaned.get("timeTaken", 0),
        "passingScore": passing_score,
        "passed": outcome["score"] >= passing_score,
        "createdAt": utcnow(),
    }
    document.update(outcome)

    try:
        result = get_quiz_results_collection().insert_one(document)
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to save quiz result", exc)

    document["_id"] = result.inserted_id
    return json_success(
        201, message="Quiz submitted successfully", data=serialize_document(document)
    )


@quizzes_bp.get("/<quiz_id>/results")
def list_quiz_results(quiz_id: str):
    try:
        object_id = parse_object_id(quiz_id)
    except InvalidId:
        return invalid_id("Quiz")

    try:
        paging = parse_paging_params(request.args, allowed_sort_fields=RESULT_SORT_FIELDS)
    except PagingParamError as exc:
        return json_error(str(exc), 400)

    try:
        documents, pagination = paginate(
            get_quiz_results_collection(), {"quizId": object_id}, paging
        )
    except ConfigError as exc:
        return handle_config_error(exc)
    except PyMongoError as exc:
        return handle_db_error("Failed to list quiz results", exc)

    return json_success(
        data=[serialize_document(doc) for doc in documents], pagination=pagination
    )
