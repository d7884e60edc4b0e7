"""Application configuration helpers."""

import os

from dotenv import load_dotenv

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_DOTENV_PATH = os.path.join(_BASE_DIR, ".env")

if os.path.exists(_DOTENV_PATH):
    load_dotenv(_DOTENV_PATH)

DEFAULT_MONGO_URI = "mongodb://localhost:27017/tutor_web"
DEFAULT_PORT = 8000
DEFAULT_UPLOAD_ROOT = os.path.join(_BASE_DIR, "uploads")

# Hard ceiling for a whole request body; per-kind limits live in uploads.py.
MAX_CONTENT_LENGTH = 25 * 1024 * 1024

SECRET_KEY = os.getenv("SECRET_KEY", "tutor-web-dev-secret")
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "tutorweb_session")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@tutor.com").strip().lower()
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "Admin123")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


class ConfigError(RuntimeError):
    """Raised when configuration values are missing or invalid."""


_MONGO_URI_CACHE = None
_DB_NAME_CACHE = None


def get_mongo_uri():
    """Return the MongoDB connection string, falling back to a local default."""

    global _MONGO_URI_CACHE

    if _MONGO_URI_CACHE:
        return _MONGO_URI_CACHE

    uri = os.getenv("MONGODB_URI") or os.getenv("MONGO_URI") or DEFAULT_MONGO_URI
    _MONGO_URI_CACHE = uri.strip()
    return _MONGO_URI_CACHE


def get_db_name():
    """Return the database name derived from the MongoDB URI or env var."""

    global _DB_NAME_CACHE

    if _DB_NAME_CACHE:
        return _DB_NAME_CACHE

    db_name = os.getenv("MONGODB_DB")
    if db_name:
        _DB_NAME_CACHE = db_name
        return db_name

    uri = get_mongo_uri()
    main = uri.split("?", 1)[0].rstrip("/")
    if not main:
        raise ConfigError(
            "Database name not found. Provide it via MONGODB_URI or MONGODB_DB."
        )

    if "://" in main:
        after_scheme = main.split("://", 1)[1]
    else:
        after_scheme = main

    if "/" not in after_scheme:
        raise ConfigError(
            "Database name not found. Provide it via MONGODB_URI or MONGODB_DB."
        )

    candidate = after_scheme.split("/", 1)[1]
    if not candidate:
        raise ConfigError(
            "Database name not found. Provide it via MONGODB_URI or MONGODB_DB."
        )

    _DB_NAME_CACHE = candidate
    return candidate


def get_port():
    """Return the TCP port the development server listens on."""

    raw = os.getenv("PORT")
    if not raw:
        return DEFAULT_PORT
    try:
        port = int(raw)
    except ValueError:
        raise ConfigError(f"PORT must be an integer, got {raw!r}.") from None
    if not 0 < port < 65536:
        raise ConfigError(f"PORT must be between 1 and 65535, got {port}.")
    return port


def get_upload_root():
    """Return the directory that holds uploaded images, resumes and notes."""

    return os.path.abspath(os.getenv("UPLOAD_ROOT") or DEFAULT_UPLOAD_ROOT)


def get_cors_origins():
    """Return the list of allowed CORS origins (``["*"]`` when unset)."""

    raw = os.getenv("CORS_ORIGINS", "")
    origins = [part.strip() for part in raw.split(",") if part.strip()]
    return origins or ["*"]


__all__ = [
    "ADMIN_EMAIL",
    "ADMIN_PASSWORD",
    "ConfigError",
    "LOG_LEVEL",
    "MAX_CONTENT_LENGTH",
    "SECRET_KEY",
    "SESSION_COOKIE_NAME",
    "get_cors_origins",
    "get_db_name",
    "get_mongo_uri",
    "get_port",
    "get_upload_root",
]
