from __future__ import annotations

import re
from typing import Any


_LEADING_DIGITS = re.compile(r"^\s*(\d+)")


def field(obj: Any, name: str, default: Any = None) -> Any:
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def to_float(value: Any, default: float = 0.0) -> float:
    if value is None:
        return default
    return float(value)


def as_list(value: Any) -> list:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def as_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    return {}


def leading_int(course_number: Any) -> int | None:
    match = _LEADING_DIGITS.match(str(course_number or ""))
    if not match:
        return None
    return int(match.group(1))


def course_code(course: Any) -> str:
    subject = str(field(course, "subject_code") or "").strip()
    number = str(field(course, "course_number") or "").strip()
    if not subject and not number:
        return ""
    return f"{subject} {number}".strip()


def course_identifiers(course: Any) -> set[str]:
    """Every string a rule or constraint may use to name this course."""
    ids = {course_code(course)}
    for name in ("course_id", "class_id"):
        value = field(course, name)
        if value:
            ids.add(str(value))
    ids.discard("")
    return ids


def course_credits(course: Any) -> float:
    credits = field(course, "credits")
    if credits is None:
        credits = field(course, "credits_min")
    return to_float(credits, 0.0)
