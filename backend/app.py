from __future__ import annotations

import logging

from flask import Flask, send_from_directory
from flask_cors import CORS
from pymongo.errors import PyMongoError
from werkzeug.exceptions import MethodNotAllowed, NotFound, RequestEntityTooLarge

from tutorweb import config
from tutorweb.config import ConfigError
from tutorweb.db import ping_database
from tutorweb.routes import BLUEPRINTS
from tutorweb.uploads import FILE_TOO_LARGE_MESSAGE, UploadError, init_upload_dirs
from tutorweb.utils.responses import json_error, json_success

app = Flask(__name__, static_folder=None)
app.secret_key = config.SECRET_KEY
app.config["SESSION_COOKIE_NAME"] = config.SESSION_COOKIE_NAME
app.config["MAX_CONTENT_LENGTH"] = config.MAX_CONTENT_LENGTH

CORS(app, origins=config.get_cors_origins(), supports_credentials=True)

for blueprint in BLUEPRINTS:
    app.register_blueprint(blueprint)

logger = logging.getLogger(__name__)

STARTUP_HINTS = (
    "Create backend/.env with MONGODB_URI=mongodb://localhost:27017/tutor_web",
    "Make sure the MongoDB server is running and reachable",
    "If you use a hosted cluster, check that your IP address is allowed",
)


@app.errorhandler(UploadError)
def handle_upload_error(exc: UploadError):
    logger.info("Rejected upload on field %s: %s", exc.field, exc.message)
    return json_error(exc.message, exc.status_code)


@app.errorhandler(RequestEntityTooLarge)
def handle_request_too_large(exc: RequestEntityTooLarge):
    return json_error(FILE_TOO_LARGE_MESSAGE, 400)


@app.errorhandler(NotFound)
def handle_not_found(exc: NotFound):
    return json_error("Route not found", 404)


@app.errorhandler(MethodNotAllowed)
def handle_method_not_allowed(exc: MethodNotAllowed):
    return json_error("Method not allowed", 405)


@app.get("/api/health")
def health():
    return json_success(message="Server is running")


@app.get("/uploads/<path:filename>")
def uploaded_file(filename: str):
    return send_from_directory(config.get_upload_root(), filename)


def main() -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        address = ping_database()
        logger.info("MongoDB connected: %s (database %s)", address, config.get_db_name())
        server_port = config.get_port()
    except (ConfigError, PyMongoError) as exc:
        logger.error("Database connection error: %s", exc)
        for hint in STARTUP_HINTS:
            logger.error("  - %s", hint)
        raise SystemExit(1)

    init_upload_dirs()
    app.run(host="0.0.0.0", port=server_port, debug=config.LOG_LEVEL == "DEBUG")


if __name__ == "__main__":
    main()
