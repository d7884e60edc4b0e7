"""Application route blueprints and helpers."""

from .auth_simple import auth_simple_bp, require_admin
from .blogs import blogs_bp
from .clubs import clubs_bp
from .comments import comments_bp
from .contacts import contacts_bp
from .courses import courses_bp
from .dashboard import dashboard_bp
from .notes import notes_bp
from .quizzes import quizzes_bp
from .students import students_bp
from .teachers import teachers_bp

BLUEPRINTS = (
    teachers_bp,
    students_bp,
    contacts_bp,
    clubs_bp,
    courses_bp,
    blogs_bp,
    comments_bp,
    notes_bp,
    quizzes_bp,
    auth_simple_bp,
    dashboard_bp,
)

__all__ = [
    "BLUEPRINTS",
    "auth_simple_bp",
    "blogs_bp",
    "clubs_bp",
    "comments_bp",
    "contacts_bp",
    "courses_bp",
    "dashboard_bp",
    "notes_bp",
    "quizzes_bp",
    "require_admin",
    "students_bp",
    "teachers_bp",
]
