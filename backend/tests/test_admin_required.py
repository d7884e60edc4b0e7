"""Admin session handling and app-level responses."""

from __future__ import annotations

import io
import unittest
from unittest import mock

from support import ApiTestCase, app, make_collection
from tutorweb import config
from tutorweb.uploads import FILE_TOO_LARGE_MESSAGE


class AdminSessionTestCase(ApiTestCase):
    def _login(self, password: str = config.ADMIN_PASSWORD):
        return self.client.post(
            "/api/auth/admin-login",
            json={"email": config.ADMIN_EMAIL, "password": password},
        )

    def test_dashboard_requires_admin(self) -> None:
        response = self.client.get("/api/dashboard/stats")

        self.assertEqual(403, response.status_code)
        self.assertEqual(
            {"success": False, "message": "Admin access required."}, response.get_json()
        )

    def test_wrong_password_is_rejected(self) -> None:
        response = self._login(password="wrong")

        self.assertEqual(401, response.status_code)
        self.assertFalse(self.client.get("/api/auth/me").get_json()["isAdmin"])

    def test_non_ascii_password_is_rejected(self) -> None:
        response = self._login(password="pässwörd")

        self.assertEqual(401, response.status_code)
        self.assertEqual("Invalid admin credentials.", response.get_json()["message"])

    def test_login_me_logout_cycle(self) -> None:
        self.assertEqual(200, self._login().status_code)
        me = self.client.get("/api/auth/me").get_json()
        self.assertTrue(me["isAdmin"])
        self.assertEqual(config.ADMIN_EMAIL, me["user"]["email"])

        self.client.post("/api/auth/logout")
        self.assertFalse(self.client.get("/api/auth/me").get_json()["isAdmin"])

    def test_dashboard_stats_for_admin(self) -> None:
        collection = make_collection()
        collection.count_documents.return_value = 3
        collection.aggregate.return_value = [{"appliedFor": "IELTS", "count": 3}]
        collection.find.return_value.limit.return_value = []

        self._login()
        with mock.patch("tutorweb.db._get_collection", return_value=collection):
            response = self.client.get("/api/dashboard/stats")

        self.assertEqual(200, response.status_code)
        data = response.get_json()["data"]
        self.assertEqual(3, data["totals"]["teachers"])
        self.assertEqual(3, data["totals"]["quizResults"])
        self.assertEqual([{"appliedFor": "IELTS", "count": 3}], data["teachersBySubject"])
        self.assertEqual([], data["recentQuizResults"])


class AppResponsesTestCase(ApiTestCase):
    def test_health(self) -> None:
        response = self.client.get("/api/health")
        self.assertEqual(200, response.status_code)
        self.assertTrue(response.get_json()["success"])

    def test_oversize_request_body_is_a_client_error(self) -> None:
        with mock.patch.dict(app.config, {"MAX_CONTENT_LENGTH": 1024}):
            response = self.client.post(
                "/api/blogs/upload-image",
                data={"image": (io.BytesIO(b"x" * 4096), "big.png", "image/png")},
                content_type="multipart/form-data",
            )

        self.assertEqual(400, response.status_code)
        self.assertEqual(
            {"success": False, "message": FILE_TOO_LARGE_MESSAGE}, response.get_json()
        )
        self.assertEqual([], self.stored_files("images"))

    def test_unknown_route_uses_envelope(self) -> None:
        response = self.client.get("/api/does-not-exist")
        self.assertEqual(404, response.status_code)
        self.assertEqual({"success": False, "message": "Route not found"}, response.get_json())


if __name__ == "__main__":
    unittest.main()
