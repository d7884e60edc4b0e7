"""Upload kinds, profiles and on-disk storage."""

from __future__ import annotations

import io
import os
import re
import shutil
import tempfile
import unittest
from unittest import mock

from werkzeug.datastructures import FileStorage, MultiDict

import support  # noqa: F401
from tutorweb.uploads import (
    FILE_TOO_LARGE_MESSAGE,
    IMAGE,
    IMAGE_UPLOAD,
    MIB,
    NOTE_UPLOAD,
    RESUME,
    RESUME_UPLOAD,
    TEACHER_FILES_UPLOAD,
    UNEXPECTED_FIELD_MESSAGE,
    UploadError,
    collect_uploads,
    generate_filename,
    init_upload_dirs,
    remove_upload,
    resolve_upload_path,
    save_uploads,
)


def _file(field: str, filename: str, content_type: str, payload: bytes = b"data"):
    return field, FileStorage(
        stream=io.BytesIO(payload), filename=filename, name=field, content_type=content_type
    )


def _files(*entries) -> MultiDict:
    return MultiDict(list(entries))


class UploadKindTestCase(unittest.TestCase):
    def test_image_kind_requires_extension_and_type(self) -> None:
        cases = [
            ("photo.png", "image/png", True),
            ("photo.JPG", "image/jpeg", True),
            ("photo.jpg", "image/jpg", True),
            ("anim.gif", "image/gif", True),
            ("pic.webp", "image/webp", True),
            ("photo.png", "application/pdf", False),
            ("photo.svg", "image/svg+xml", False),
            ("photo", "image/png", False),
        ]
        for filename, content_type, expected in cases:
            with self.subTest(filename=filename, content_type=content_type):
                self.assertEqual(expected, IMAGE.accepts(filename, content_type))

    def test_resume_kind_rejects_spoofed_content_type(self) -> None:
        self.assertTrue(RESUME.accepts("cv.pdf", "application/pdf"))
        self.assertTrue(
            RESUME.accepts(
                "cv.docx",
                "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            )
        )
        self.assertFalse(RESUME.accepts("cv.pdf", "text/plain"))
        self.assertFalse(RESUME.accepts("cv.exe", "application/pdf"))


class CollectUploadsTestCase(unittest.TestCase):
    def test_unknown_field_is_unexpected(self) -> None:
        files = _files(_file("avatar", "a.png", "image/png"))
        with self.assertRaises(UploadError) as ctx:
            collect_uploads(files, IMAGE_UPLOAD)
        self.assertEqual(UNEXPECTED_FIELD_MESSAGE, ctx.exception.message)
        self.assertEqual("avatar", ctx.exception.field)

    def test_second_file_in_a_field_is_unexpected(self) -> None:
        files = _files(
            _file("image", "a.png", "image/png"),
            _file("image", "b.png", "image/png"),
        )
        with self.assertRaises(UploadError) as ctx:
            collect_uploads(files, IMAGE_UPLOAD)
        self.assertEqual(UNEXPECTED_FIELD_MESSAGE, ctx.exception.message)

    def test_wrong_type_uses_kind_message(self) -> None:
        files = _files(_file("resume", "cv.png", "image/png"))
        with self.assertRaises(UploadError) as ctx:
            collect_uploads(files, TEACHER_FILES_UPLOAD)
        self.assertEqual(RESUME.error_message, ctx.exception.message)

    def test_size_limit_is_per_profile(self) -> None:
        payload = b"x" * (5 * MIB + 1)
        with self.assertRaises(UploadError) as ctx:
            collect_uploads(_files(_file("image", "big.png", "image/png", payload)), IMAGE_UPLOAD)
        self.assertEqual(FILE_TOO_LARGE_MESSAGE, ctx.exception.message)

        accepted = collect_uploads(
            _files(_file("image", "big.png", "image/png", payload)), TEACHER_FILES_UPLOAD
        )
        self.assertIn("image", accepted)

    def test_empty_file_inputs_are_skipped(self) -> None:
        files = _files(("image", FileStorage(stream=io.BytesIO(b""), filename="", name="image")))
        self.assertEqual({}, collect_uploads(files, IMAGE_UPLOAD))


class SaveUploadsTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.root = tempfile.mkdtemp(prefix="tutorweb-test-")
        self.addCleanup(shutil.rmtree, self.root, True)
        init_upload_dirs(self.root)

    def test_init_upload_dirs_is_idempotent(self) -> None:
        first = init_upload_dirs(self.root)
        second = init_upload_dirs(self.root)
        self.assertEqual(first, second)
        for name in ("images", "resumes", "notes"):
            self.assertTrue(os.path.isdir(os.path.join(self.root, name)))

    def test_files_land_in_their_kind_directory(self) -> None:
        files = _files(
            _file("image", "me.png", "image/png", b"png-bytes"),
            _file("resume", "cv.pdf", "application/pdf", b"pdf-bytes"),
        )
        stored = save_uploads(files, TEACHER_FILES_UPLOAD, root=self.root)

        self.assertRegex(stored["image"].filename, r"^image-\d+-\d+\.png$")
        self.assertRegex(stored["resume"].filename, r"^resume-\d+-\d+\.pdf$")
        self.assertEqual(f"/uploads/images/{stored['image'].filename}", stored["image"].url)
        self.assertEqual(9, stored["resume"].size)
        self.assertEqual("me.png", stored["image"].original_name)
        self.assertEqual([stored["image"].filename], os.listdir(os.path.join(self.root, "images")))

    def test_rejected_request_writes_nothing(self) -> None:
        files = _files(
            _file("image", "me.png", "image/png"),
            _file("resume", "cv.txt", "text/plain"),
        )
        with self.assertRaises(UploadError):
            save_uploads(files, TEACHER_FILES_UPLOAD, root=self.root)
        self.assertEqual([], os.listdir(os.path.join(self.root, "images")))
        self.assertEqual([], os.listdir(os.path.join(self.root, "resumes")))

    def test_same_original_name_gets_distinct_stored_names(self) -> None:
        names = set()
        for _ in range(5):
            stored = save_uploads(
                _files(_file("file", "notes.pdf", "application/pdf")), NOTE_UPLOAD, root=self.root
            )
            names.add(stored["file"].filename)
        self.assertEqual(5, len(names))
        self.assertEqual(5, len(os.listdir(os.path.join(self.root, "notes"))))

    def test_remove_upload_stays_inside_root(self) -> None:
        stored = save_uploads(
            _files(_file("image", "me.png", "image/png")), IMAGE_UPLOAD, root=self.root
        )
        self.assertIsNone(resolve_upload_path("/uploads/../../etc/passwd", IMAGE, self.root))
        self.assertFalse(remove_upload("/uploads/../../etc/passwd", IMAGE, self.root))
        self.assertTrue(remove_upload(stored["image"].url, IMAGE, self.root))
        self.assertFalse(os.path.exists(stored["image"].path))

    def test_remove_upload_is_scoped_to_its_kind(self) -> None:
        stored = save_uploads(
            _files(_file("resume", "cv.pdf", "application/pdf")), RESUME_UPLOAD, root=self.root
        )
        url = stored["resume"].url
        traversal = "/uploads/images/../resumes/" + stored["resume"].filename

        self.assertIsNone(resolve_upload_path(url, IMAGE, self.root))
        self.assertFalse(remove_upload(url, IMAGE, self.root))
        self.assertFalse(remove_upload(traversal, IMAGE, self.root))
        self.assertFalse(remove_upload("/uploads/images", IMAGE, self.root))
        self.assertTrue(os.path.exists(stored["resume"].path))

        self.assertTrue(remove_upload(url, RESUME, self.root))
        self.assertFalse(os.path.exists(stored["resume"].path))

    def test_failed_write_leaves_no_partial_file(self) -> None:
        files = _files(_file("file", "notes.pdf", "application/pdf"))
        with mock.patch.object(FileStorage, "save", side_effect=OSError("disk full")):
            with self.assertRaises(OSError):
                save_uploads(files, NOTE_UPLOAD, root=self.root)
        self.assertEqual([], os.listdir(os.path.join(self.root, "notes")))


class GenerateFilenameTestCase(unittest.TestCase):
    def test_keeps_original_extension(self) -> None:
        name = generate_filename("resume", "My CV.docx")
        self.assertTrue(re.fullmatch(r"resume-\d+-\d+\.docx", name))


if __name__ == "__main__":
    unittest.main()
