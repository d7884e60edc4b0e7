"""Small helpers for building MongoDB filters from query-string values."""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable


def clean_string(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def search_filter(query: str, fields: Iterable[str]) -> Dict[str, Any]:
    """Case-insensitive substring match of ``query`` on any of ``fields``."""

    pattern = re.escape(query)
    return {"$or": [{field: {"$regex": pattern, "$options": "i"}} for field in fields]}


def exact_ci(value: str) -> Dict[str, Any]:
    """Case-insensitive whole-value match."""

    return {"$regex": f"^{re.escape(value)}$", "$options": "i"}


def parse_bool_arg(value: str | None) -> bool | None:
    text = clean_string(value).lower()
    if text in ("true", "1", "yes"):
        return True
    if text in ("false", "0", "no"):
        return False
    return None


__all__ = ["clean_string", "exact_ci", "parse_bool_arg", "search_filter"]
