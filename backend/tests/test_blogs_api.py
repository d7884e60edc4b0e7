"""Blog endpoints: slugs, reading time, likes and image uploads."""

from __future__ import annotations

import io
import unittest
from unittest import mock

from bson import ObjectId
from werkzeug.datastructures import FileStorage, MultiDict

from support import OBJECT_ID, ApiTestCase
from tutorweb.routes.blogs import reading_time, slugify
from tutorweb.uploads import IMAGE_UPLOAD, RESUME_UPLOAD, save_uploads

COLLECTION = "tutorweb.routes.blogs.get_blogs_collection"

BLOG_PAYLOAD = {
    "title": "Ten Tips for IELTS Writing!",
    "content": "<p>" + " ".join(["word"] * 450) + "</p>",
    "excerpt": "Improve your band score.",
    "category": "IELTS",
    "status": "published",
}


class BlogHelpersTestCase(unittest.TestCase):
    def test_slugify(self) -> None:
        self.assertEqual("ten-tips-for-ielts-writing", slugify("Ten Tips for IELTS Writing!"))
        self.assertEqual("post", slugify("???"))

    def test_reading_time_ignores_markup_and_rounds_up(self) -> None:
        self.assertEqual(1, reading_time(""))
        self.assertEqual(1, reading_time("<b>one</b> two"))
        self.assertEqual(3, reading_time(" ".join(["word"] * 401)))


class BlogApiTestCase(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.collection = self.patch_collection(COLLECTION)
        self.collection.insert_one.return_value.inserted_id = ObjectId(OBJECT_ID)

    def test_create_derives_slug_reading_time_and_publish_date(self) -> None:
        response = self.client.post("/api/blogs", json=BLOG_PAYLOAD)

        self.assertEqual(201, response.status_code)
        data = response.get_json()["data"]
        self.assertEqual("ten-tips-for-ielts-writing", data["slug"])
        self.assertEqual(3, data["readingTime"])
        self.assertEqual(0, data["views"])
        self.assertEqual(0, data["likeCount"])
        self.assertIsNotNone(data["publishedAt"])

    def test_create_suffixes_taken_slug(self) -> None:
        self.collection.find_one.side_effect = [{"_id": ObjectId()}, None]

        response = self.client.post("/api/blogs", json=BLOG_PAYLOAD)

        self.assertEqual("ten-tips-for-ielts-writing-2", response.get_json()["data"]["slug"])

    def test_draft_has_no_publish_date(self) -> None:
        response = self.client.post("/api/blogs", json=dict(BLOG_PAYLOAD, status="draft"))
        self.assertIsNone(response.get_json()["data"]["publishedAt"])

    def test_slug_lookup_only_finds_published_posts(self) -> None:
        self.collection.find_one_and_update.return_value = None

        response = self.client.get("/api/blogs/slug/Some-Draft")

        self.assertEqual(404, response.status_code)
        query, update = self.collection.find_one_and_update.call_args.args
        self.assertEqual({"slug": "some-draft", "status": "published"}, query)
        self.assertEqual({"$inc": {"views": 1}}, update)

    def test_like_toggles(self) -> None:
        self.collection.update_one.return_value = mock.Mock(modified_count=1, matched_count=1)
        self.collection.find_one.return_value = {
            "_id": ObjectId(OBJECT_ID),
            "likes": [{"userEmail": "reader@example.com"}],
        }

        response = self.client.post(
            f"/api/blogs/{OBJECT_ID}/like", json={"userEmail": "Reader@Example.com"}
        )

        self.assertEqual(200, response.status_code)
        self.assertEqual({"liked": True, "likeCount": 1}, response.get_json()["data"])

    def test_unlike_pulls_existing_like(self) -> None:
        self.collection.update_one.side_effect = [
            mock.Mock(modified_count=0, matched_count=0),
            mock.Mock(modified_count=1, matched_count=1),
        ]
        self.collection.find_one.return_value = {"_id": ObjectId(OBJECT_ID), "likes": []}

        response = self.client.post(
            f"/api/blogs/{OBJECT_ID}/like", json={"userEmail": "reader@example.com"}
        )

        self.assertEqual({"liked": False, "likeCount": 0}, response.get_json()["data"])
        pull = self.collection.update_one.call_args_list[1].args[1]
        self.assertEqual({"$pull": {"likes": {"userEmail": "reader@example.com"}}}, pull)

    def test_like_on_missing_blog_is_not_found(self) -> None:
        self.collection.update_one.return_value = mock.Mock(modified_count=0, matched_count=0)

        response = self.client.post(
            f"/api/blogs/{OBJECT_ID}/like", json={"userEmail": "reader@example.com"}
        )

        self.assertEqual(404, response.status_code)

    def test_list_returns_pagination(self) -> None:
        self.collection.count_documents.return_value = 25
        self.collection.find.return_value.limit.return_value = [
            {"_id": ObjectId(OBJECT_ID), "title": "Hello", "likes": None}
        ]

        response = self.client.get("/api/blogs/published?page=2&limit=10")

        body = response.get_json()
        self.assertEqual(200, response.status_code)
        self.assertEqual(
            {
                "currentPage": 2,
                "totalPages": 3,
                "totalItems": 25,
                "itemsPerPage": 10,
                "hasNextPage": True,
                "hasPrevPage": True,
            },
            body["pagination"],
        )
        self.assertEqual({"status": "published"}, self.collection.count_documents.call_args.args[0])
        self.assertEqual([], body["data"][0]["likes"])

    def test_invalid_paging_is_rejected(self) -> None:
        response = self.client.get("/api/blogs?limit=500")
        self.assertEqual(400, response.status_code)

    def test_update_regenerates_slug_and_sets_first_publish_date(self) -> None:
        draft = {"_id": ObjectId(OBJECT_ID), "title": "Old title", "status": "draft"}
        self.collection.find_one.side_effect = [draft, None]
        self.collection.find_one_and_update.return_value = dict(draft, title="Study Plan for May")

        response = self.client.put(
            f"/api/blogs/{OBJECT_ID}", json={"title": "Study Plan for May", "status": "published"}
        )

        self.assertEqual(200, response.status_code)
        changes = self.collection.find_one_and_update.call_args.args[1]["$set"]
        self.assertEqual("study-plan-for-may", changes["slug"])
        self.assertIsNotNone(changes["publishedAt"])
        self.assertEqual(
            {"slug": "study-plan-for-may", "_id": {"$ne": ObjectId(OBJECT_ID)}},
            self.collection.find_one.call_args.args[0],
        )

    def test_update_keeps_original_publish_date(self) -> None:
        published = {
            "_id": ObjectId(OBJECT_ID),
            "title": "Same",
            "status": "published",
            "publishedAt": "2026-01-01T00:00:00Z",
        }
        self.collection.find_one.return_value = published
        self.collection.find_one_and_update.return_value = published

        self.client.put(f"/api/blogs/{OBJECT_ID}", json={"title": "Same", "status": "published"})

        changes = self.collection.find_one_and_update.call_args.args[1]["$set"]
        self.assertNotIn("publishedAt", changes)
        self.assertNotIn("slug", changes)

    def test_delete_missing_blog_is_not_found(self) -> None:
        self.collection.find_one_and_delete.return_value = None

        response = self.client.delete(f"/api/blogs/{OBJECT_ID}")

        self.assertEqual(404, response.status_code)
        self.assertEqual("Blog not found", response.get_json()["message"])

    def test_delete_removes_featured_image(self) -> None:
        stored = save_uploads(
            MultiDict([("image", FileStorage(io.BytesIO(b"png"), "cover.png", "image", "image/png"))]),
            IMAGE_UPLOAD,
        )
        self.collection.find_one_and_delete.return_value = {
            "_id": ObjectId(OBJECT_ID),
            "featuredImage": stored["image"].url,
        }

        response = self.client.delete(f"/api/blogs/{OBJECT_ID}")

        self.assertEqual(200, response.status_code)
        self.assertEqual([], self.stored_files("images"))

    def test_delete_leaves_files_of_other_kinds_alone(self) -> None:
        stored = save_uploads(
            MultiDict(
                [("resume", FileStorage(io.BytesIO(b"pdf"), "cv.pdf", "resume", "application/pdf"))]
            ),
            RESUME_UPLOAD,
        )
        self.collection.find_one_and_delete.return_value = {
            "_id": ObjectId(OBJECT_ID),
            "featuredImage": stored["resume"].url,
        }

        response = self.client.delete(f"/api/blogs/{OBJECT_ID}")

        self.assertEqual(200, response.status_code)
        self.assertEqual([stored["resume"].filename], self.stored_files("resumes"))

    def test_upload_image_requires_file(self) -> None:
        response = self.client.post(
            "/api/blogs/upload-image", data={}, content_type="multipart/form-data"
        )
        self.assertEqual(400, response.status_code)
        self.assertEqual("No image file provided.", response.get_json()["message"])

    def test_upload_image_stores_file(self) -> None:
        response = self.client.post(
            "/api/blogs/upload-image",
            data={"image": (io.BytesIO(b"gif"), "cover.gif", "image/gif")},
            content_type="multipart/form-data",
        )

        self.assertEqual(201, response.status_code)
        data = response.get_json()["data"]
        self.assertEqual(3, data["size"])
        self.assertEqual([data["filename"]], self.stored_files("images"))

        served = self.client.get(data["imageUrl"])
        self.assertEqual(200, served.status_code)
        self.assertEqual(b"gif", served.data)
        served.close()


if __name__ == "__main__":
    unittest.main()
