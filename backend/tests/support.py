"""Shared fixtures for the API test cases."""

from __future__ import annotations

import os
import shutil
import sys
import tempfile
import unittest
from pathlib import Path
from unittest import mock

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from app import app  # noqa: E402
from tutorweb.uploads import init_upload_dirs  # noqa: E402

OBJECT_ID = "507f1f77bcf86cd799439011"


def make_collection(**overrides) -> mock.MagicMock:
    """A stand-in for a pymongo collection whose cursors are plain lists."""

    collection = mock.MagicMock(name="collection")
    collection.find_one.return_value = None
    collection.count_documents.return_value = 0
    cursor = collection.find.return_value
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = []
    for name, value in overrides.items():
        setattr(collection, name, value)
    return collection


class ApiTestCase(unittest.TestCase):
    """Flask test client with an isolated, throwaway upload root."""

    def setUp(self) -> None:
        app.config["TESTING"] = True
        self.client = app.test_client()

        self.upload_root = tempfile.mkdtemp(prefix="tutorweb-uploads-")
        self.addCleanup(shutil.rmtree, self.upload_root, True)
        env_patch = mock.patch.dict(os.environ, {"UPLOAD_ROOT": self.upload_root})
        env_patch.start()
        self.addCleanup(env_patch.stop)
        init_upload_dirs(self.upload_root)

    def patch_collection(self, target: str, collection=None) -> mock.MagicMock:
        collection = collection if collection is not None else make_collection()
        patcher = mock.patch(target, return_value=collection)
        patcher.start()
        self.addCleanup(patcher.stop)
        return collection

    def stored_files(self, directory: str):
        return sorted(os.listdir(os.path.join(self.upload_root, directory)))
