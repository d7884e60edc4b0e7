"""Quiz authoring, answer hiding and scoring."""

from __future__ import annotations

import unittest

from bson import ObjectId

from support import OBJECT_ID, ApiTestCase
from tutorweb.routes.quizzes import score_answers

QUIZZES = "tutorweb.routes.quizzes.get_quizzes_collection"
RESULTS = "tutorweb.routes.quizzes.get_quiz_results_collection"

QUESTIONS = [
    {"question": "2 + 2?", "options": ["3", "4"], "correctAnswer": 1, "explanation": "Sum."},
    {"question": "Capital of France?", "options": ["Paris", "Rome", "Oslo"], "correctAnswer": 0},
    {"question": "Plural of child?", "options": ["childs", "children"], "correctAnswer": 1},
]

QUIZ = {
    "_id": ObjectId(OBJECT_ID),
    "title": "General Knowledge",
    "description": "Warm-up questions.",
    "questions": QUESTIONS,
    "passingScore": 60,
    "isActive": True,
}


class ScoreAnswersTestCase(unittest.TestCase):
    def test_score_is_rounded_percentage(self) -> None:
        outcome = score_answers(QUESTIONS, [1, 2, 1])
        self.assertEqual(2, outcome["correctAnswers"])
        self.assertEqual(3, outcome["totalQuestions"])
        self.assertEqual(67, outcome["score"])
        self.assertEqual([True, False, True], [a["isCorrect"] for a in outcome["answers"]])

    def test_missing_answers_count_as_wrong(self) -> None:
        outcome = score_answers(QUESTIONS, [1])
        self.assertEqual(33, outcome["score"])
        self.assertIsNone(outcome["answers"][2]["selectedAnswer"])

    def test_empty_quiz_scores_zero(self) -> None:
        self.assertEqual(0, score_answers([], [])["score"])


class QuizApiTestCase(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.quizzes = self.patch_collection(QUIZZES)
        self.results = self.patch_collection(RESULTS)
        self.results.insert_one.return_value.inserted_id = ObjectId()

    def test_public_read_hides_answers(self) -> None:
        self.quizzes.find_one.return_value = dict(QUIZ)

        response = self.client.get(f"/api/quizzes/{OBJECT_ID}")

        data = response.get_json()["data"]
        self.assertEqual(3, data["questionCount"])
        for question in data["questions"]:
            self.assertNotIn("correctAnswer", question)
            self.assertNotIn("explanation", question)

    def test_include_answers_flag(self) -> None:
        self.quizzes.find_one.return_value = dict(QUIZ)

        response = self.client.get(f"/api/quizzes/{OBJECT_ID}?includeAnswers=true")

        self.assertEqual(1, response.get_json()["data"]["questions"][0]["correctAnswer"])

    def test_active_listing_hides_answers(self) -> None:
        self.quizzes.find.return_value = iter([dict(QUIZ)])

        response = self.client.get("/api/quizzes/active")

        body = response.get_json()
        self.assertEqual(1, body["count"])
        self.assertNotIn("correctAnswer", body["data"][0]["questions"][0])
        self.assertEqual({"isActive": True}, self.quizzes.find.call_args.args[0])

    def test_submit_scores_and_stores_result(self) -> None:
        self.quizzes.find_one.return_value = dict(QUIZ)

        response = self.client.post(
            f"/api/quizzes/{OBJECT_ID}/submit",
            json={
                "studentName": "Bilal",
                "studentEmail": "bilal@example.com",
                "answers": [1, 0, 0],
                "timeTaken": 95,
            },
        )

        self.assertEqual(201, response.status_code)
        data = response.get_json()["data"]
        self.assertEqual(67, data["score"])
        self.assertTrue(data["passed"])
        self.assertEqual("General Knowledge", data["quizTitle"])
        self.assertEqual(OBJECT_ID, data["quizId"])
        stored = self.results.insert_one.call_args.args[0]
        self.assertEqual(95, stored["timeTaken"])

    def test_submit_below_passing_score_fails(self) -> None:
        self.quizzes.find_one.return_value = dict(QUIZ, passingScore=70)

        response = self.client.post(
            f"/api/quizzes/{OBJECT_ID}/submit",
            json={"studentName": "Bilal", "studentEmail": "bilal@example.com", "answers": [1, 0]},
        )

        self.assertFalse(response.get_json()["data"]["passed"])

    def test_submit_to_inactive_quiz_is_rejected(self) -> None:
        self.quizzes.find_one.return_value = dict(QUIZ, isActive=False)

        response = self.client.post(
            f"/api/quizzes/{OBJECT_ID}/submit",
            json={"studentName": "Bilal", "studentEmail": "bilal@example.com", "answers": [1]},
        )

        self.assertEqual(400, response.status_code)
        self.results.insert_one.assert_not_called()

    def test_submit_to_missing_quiz(self) -> None:
        response = self.client.post(
            f"/api/quizzes/{OBJECT_ID}/submit",
            json={"studentName": "Bilal", "studentEmail": "bilal@example.com", "answers": [1]},
        )
        self.assertEqual(404, response.status_code)

    def test_create_returns_answers_to_author(self) -> None:
        self.quizzes.insert_one.return_value.inserted_id = ObjectId(OBJECT_ID)

        response = self.client.post(
            "/api/quizzes",
            json={
                "title": "Tenses",
                "description": "Present simple",
                "questions": [{"question": "I ___", "options": ["go", "goes"], "correctAnswer": 0}],
            },
        )

        self.assertEqual(201, response.status_code)
        data = response.get_json()["data"]
        self.assertEqual(0, data["questions"][0]["correctAnswer"])
        self.assertEqual(30, data["timeLimit"])

    def test_delete_missing_quiz(self) -> None:
        self.quizzes.delete_one.return_value.deleted_count = 0

        response = self.client.delete(f"/api/quizzes/{OBJECT_ID}")

        self.assertEqual(404, response.status_code)
        self.assertEqual("Quiz not found", response.get_json()["message"])

    def test_results_are_paginated(self) -> None:
        self.results.count_documents.return_value = 0

        response = self.client.get(f"/api/quizzes/{OBJECT_ID}/results")

        body = response.get_json()
        self.assertEqual([], body["data"])
        self.assertEqual(0, body["pagination"]["totalPages"])
        self.assertEqual(
            {"quizId": ObjectId(OBJECT_ID)}, self.results.count_documents.call_args.args[0]
        )


if __name__ == "__main__":
    unittest.main()
