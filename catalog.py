from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from course_filter import PLACEHOLDER_TYPES, evaluate_course_filter, validate_filter
from helpers import as_list
from models import Course


_SUBJECT_SCOPED_TYPES = {"subject_number", "course_number_suffix", "number_attribute"}


def find_courses_by_filter(db: Session, course_filter: dict[str, Any], academic_year: int | None = None) -> list[Course]:
    """
    Catalog courses accepted by a filter, ordered by subject and number.

    The query is narrowed in SQL where the filter allows it (course lists,
    subject scopes); the filter itself is then applied in Python so results
    always agree with ``evaluate_course_filter``.
    """
    error = validate_filter(course_filter)
    if error:
        raise ValueError(f"Invalid course filter: {error}")

    stmt = select(Course).where(Course.is_catalog_course.is_(True))
    if academic_year is not None:
        stmt = stmt.where(Course.academic_year == academic_year)

    filter_type = course_filter.get("type")
    if filter_type == "course_list":
        stmt = stmt.where(Course.course_id.in_([str(c) for c in as_list(course_filter.get("courses"))]))
    elif filter_type in _SUBJECT_SCOPED_TYPES and as_list(course_filter.get("subjects")):
        stmt = stmt.where(Course.subject_code.in_(as_list(course_filter.get("subjects"))))

    courses = db.scalars(stmt.order_by(Course.subject_code, Course.course_number)).all()
    if filter_type in PLACEHOLDER_TYPES:
        return list(courses)
    return [course for course in courses if evaluate_course_filter(course, course_filter)]
