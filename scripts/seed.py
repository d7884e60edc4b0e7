"""Seed helper that loads sample clubs, courses, blogs and quizzes into MongoDB."""

from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from dotenv import load_dotenv
from pymongo import MongoClient
from pymongo.errors import PyMongoError

ROOT_DIR = Path(__file__).resolve().parent.parent
BACKEND_DIR = ROOT_DIR / "backend"
ENV_PATH = BACKEND_DIR / ".env"
SEED_PATH = Path(__file__).resolve().parent / "seed.json"

if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from tutorweb.config import ConfigError, get_db_name, get_mongo_uri  # noqa: E402
from tutorweb.validation import parse_datetime  # noqa: E402

DATE_FIELDS = ("startDate", "endDate", "publishedAt")


def load_env() -> None:
    if ENV_PATH.exists():
        load_dotenv(ENV_PATH)


def read_seed_file() -> Dict[str, List[Dict[str, Any]]]:
    with SEED_PATH.open("r", encoding="utf-8") as seed_file:
        data = json.load(seed_file)
    if not isinstance(data, dict):
        raise ValueError("Seed file must contain an object of collections")
    return data


def _convert_dates(document: Dict[str, Any]) -> Dict[str, Any]:
    converted: Dict[str, Any] = {}
    for key, value in document.items():
        if isinstance(value, dict):
            value = _convert_dates(value)
        elif key in DATE_FIELDS and isinstance(value, str):
            value = parse_datetime(value)
        converted[key] = value
    return converted


def prepare_document(document: Dict[str, Any], now: datetime) -> Dict[str, Any]:
    """Turn ISO date strings into datetimes and stamp creation times."""

    prepared = _convert_dates(document)
    prepared.setdefault("createdAt", now)
    prepared.setdefault("updatedAt", now)
    return prepared


def main() -> None:
    load_env()
    try:
        uri = get_mongo_uri()
        db_name = get_db_name()
    except ConfigError as exc:  # pragma: no cover - simple CLI utility
        print(f"Configuration error: {exc}")
        raise SystemExit(1)

    client = MongoClient(uri, serverSelectionTimeoutMS=5000)
    database = client[db_name]
    now = datetime.now(timezone.utc)

    try:
        seed_data = read_seed_file()

        for collection_name, documents in seed_data.items():
            if not isinstance(documents, list):
                raise ValueError(
                    f"Seed data for collection '{collection_name}' must be a list"
                )

            collection = database[collection_name]
            collection.delete_many({})
            if documents:
                collection.insert_many([prepare_document(doc, now) for doc in documents])

            print(
                f"Loaded {len(documents)} document(s) into '{collection_name}' collection"
            )

        print(f"Seeding complete for database '{db_name}'.")
    except PyMongoError as exc:  # pragma: no cover - requires Mongo connection
        print(f"MongoDB error: {exc}")
        raise SystemExit(1)
    finally:
        client.close()


if __name__ == "__main__":
    main()
