from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from assigner import resolve_course
from constraints import (
    ConstraintValidation,
    FulfillmentRecord,
    structured,
    validate_program_constraints,
    validate_requirement_constraints,
    validate_section_constraints,
)
from course_filter import evaluate_course_filter
from errors import NotFoundError
from helpers import as_list, course_code, course_credits, course_identifiers, field, to_float
from models import PlannedCourse, PlanProgram, RequirementFulfillment
from rules import course_in_list


NOT_STARTED = "not_started"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"


def _status(fulfilled: float, required: float) -> str:
    if fulfilled <= 0:
        return NOT_STARTED
    if fulfilled >= required:
        return COMPLETED
    return IN_PROGRESS


def _percentage(fulfilled: float, required: float) -> float:
    if required <= 0:
        return 100.0
    return min(100.0, fulfilled / required * 100)


def _course_label(course: Any) -> str:
    return str(field(course, "course_id") or field(course, "class_id") or course_code(course))


def _take_courses_progress(rule: dict[str, Any], courses: list[Any]) -> dict[str, Any]:
    required = [str(c) for c in as_list(rule.get("courses"))]
    taken_ids: set[str] = set()
    for course in courses:
        taken_ids |= course_identifiers(course)
    taken = [c for c in required if c in taken_ids]
    missing = [c for c in required if c not in taken_ids]

    if not required or len(taken) == len(required):
        status = COMPLETED
    elif not taken:
        status = NOT_STARTED
    else:
        status = IN_PROGRESS

    return {
        "type": "take_courses",
        "status": status,
        "percentage": _percentage(len(taken), len(required)),
        "details": {
            "required_courses": required,
            "taken_courses": taken,
            "missing_courses": missing,
            "courses_required": len(required),
            "courses_taken": len(taken),
        },
    }


def _take_from_list_progress(rule: dict[str, Any], courses: list[Any]) -> dict[str, Any]:
    matching = [c for c in courses if course_in_list(c, rule.get("courses"))]
    count_type = rule.get("countType") or "courses"
    if count_type == "credits":
        fulfilled = sum(course_credits(c) for c in matching)
    else:
        fulfilled = len(matching)
    required = to_float(rule.get("count"))

    return {
        "type": "take_from_list",
        "status": COMPLETED if required <= 0 else _status(fulfilled, required),
        "percentage": _percentage(fulfilled, required),
        "details": {
            "count_type": count_type,
            "required": required,
            "fulfilled": fulfilled,
            "available_courses": [str(c) for c in as_list(rule.get("courses"))],
            "taken_courses": [_course_label(c) for c in matching],
        },
    }


def _take_any_courses_progress(rule: dict[str, Any], courses: list[Any]) -> dict[str, Any]:
    course_filter = rule.get("filter")
    matching = [c for c in courses if evaluate_course_filter(c, course_filter)]
    fulfilled = sum(course_credits(c) for c in matching)
    required = to_float(rule.get("credits"))

    return {
        "type": "take_any_courses",
        "status": COMPLETED if required <= 0 else _status(fulfilled, required),
        "percentage": _percentage(fulfilled, required),
        "details": {
            "credits_required": required,
            "credits_fulfilled": fulfilled,
            "matching_courses": [
                {"course_id": _course_label(c), "title": field(c, "title") or "", "credits": course_credits(c)}
                for c in matching
            ],
            "filter": course_filter,
        },
    }


def _group_progress(rule: dict[str, Any], courses: list[Any]) -> dict[str, Any]:
    operator = rule.get("operator") or "AND"
    sub_progress = [evaluate_rule_progress(sub_rule, courses) for sub_rule in as_list(rule.get("rules"))]
    statuses = [p["status"] for p in sub_progress]
    details: dict[str, Any] = {"operator": operator, "sub_rule_progress": sub_progress}

    if operator == "AND":
        if not sub_progress:
            percentage = 100.0
        else:
            percentage = sum(p["percentage"] for p in sub_progress) / len(sub_progress)
        if all(s == COMPLETED for s in statuses):
            status = COMPLETED
        elif all(s == NOT_STARTED for s in statuses):
            status = NOT_STARTED
        else:
            status = IN_PROGRESS
    else:
        percentage = max((p["percentage"] for p in sub_progress), default=0.0)
        if sub_progress:
            # First option at the maximum is the one the student is pursuing.
            details["active_option_index"] = next(i for i, p in enumerate(sub_progress) if p["percentage"] == percentage)
        if any(s == COMPLETED for s in statuses):
            status = COMPLETED
        elif any(s != NOT_STARTED for s in statuses):
            status = IN_PROGRESS
        else:
            status = NOT_STARTED

    return {"type": "group", "status": status, "percentage": percentage, "details": details}


_EVALUATORS = {
    "take_courses": _take_courses_progress,
    "take_from_list": _take_from_list_progress,
    "take_any_courses": _take_any_courses_progress,
    "group": _group_progress,
}


def evaluate_rule_progress(rule: Any, courses: list[Any]) -> dict[str, Any]:
    """
    Progress of one rule given the courses already counted toward it.

    Returns ``{"type", "status", "percentage", "details"}`` where status is
    one of not_started / in_progress / completed and percentage is 0-100.
    Unknown or malformed rules report not_started at 0%.
    """
    rule_type = rule.get("type") if isinstance(rule, dict) else None
    evaluator = _EVALUATORS.get(rule_type)
    if evaluator is None:
        return {"type": rule_type, "status": NOT_STARTED, "percentage": 0.0, "details": {}}
    return evaluator(rule, list(courses or []))


def term_label(semester_number: int, start_year: int) -> str:
    season = "Fall" if semester_number % 2 == 1 else "Spring"
    return f"{season} {start_year + semester_number // 2}"


def _validation_dict(validation: ConstraintValidation) -> dict[str, Any]:
    return {
        "results": [
            {"constraint": r.constraint, "satisfied": r.satisfied, "message": r.message}
            for r in validation.results
        ],
        "all_satisfied": validation.all_satisfied,
    }


def _course_snapshot(planned_course: PlannedCourse) -> dict[str, Any]:
    course = resolve_course(planned_course)
    return {
        "course_id": field(course, "course_id") or planned_course.course_code,
        "class_id": field(course, "class_id"),
        "subject_code": field(course, "subject_code"),
        "course_number": field(course, "course_number"),
        "title": field(course, "title") or "",
        "attributes": field(course, "attributes"),
        "credits": planned_course.credits,
    }


def _requirement_progress(
    section: dict[str, Any],
    requirement: dict[str, Any],
    entries: list[tuple[FulfillmentRecord, int]],
    records: list[FulfillmentRecord],
    start_year: int,
) -> dict[str, Any]:
    section_id = str(section.get("id"))
    full_id = f"{section_id}.{requirement.get('id')}"
    own = [(record, semester) for record, semester in entries if record.requirement_id == full_id]
    fulfilled = sum(record.credits_applied for record, _ in own)
    required = to_float(requirement.get("creditsRequired"))

    return {
        "requirement_id": full_id,
        "section_id": section_id,
        "title": requirement.get("title") or "",
        "description": requirement.get("description") or "",
        "status": _status(fulfilled, required),
        "credits_required": required,
        "credits_fulfilled": fulfilled,
        "percentage": _percentage(fulfilled, required),
        "rule_progress": evaluate_rule_progress(requirement.get("rule"), [record.course for record, _ in own]),
        "fulfilling_courses": [
            {
                "course_id": record.course["course_id"],
                "title": record.course["title"],
                "credits": record.course["credits"],
                "credits_applied": record.credits_applied,
                "semester_number": semester,
                "term_label": term_label(semester, start_year),
            }
            for record, semester in own
        ],
        "constraint_validation": (
            _validation_dict(validate_requirement_constraints(requirement, full_id, records))
            if structured(requirement)
            else None
        ),
    }


def _section_progress(
    section: dict[str, Any],
    entries: list[tuple[FulfillmentRecord, int]],
    records: list[FulfillmentRecord],
    start_year: int,
) -> dict[str, Any]:
    requirement_progress = [
        _requirement_progress(section, requirement, entries, records, start_year)
        for requirement in as_list(section.get("requirements"))
    ]
    fulfilled = sum(r["credits_fulfilled"] for r in requirement_progress)
    required = to_float(section.get("creditsRequired"))
    return {
        "section_id": str(section.get("id")),
        "title": section.get("title") or "",
        "status": _status(fulfilled, required),
        "credits_required": required,
        "credits_fulfilled": fulfilled,
        "percentage": _percentage(fulfilled, required),
        "requirement_progress": requirement_progress,
        "constraint_validation": (
            _validation_dict(validate_section_constraints(section, records)) if structured(section) else None
        ),
    }


def calculate_program_progress(db: Session, plan_program_id: int) -> dict[str, Any]:
    """
    Roll fulfillment rows up into requirement, section and program progress.

    Credits come from the stored fulfillment rows, so this reflects the last
    assignment run. Raises NotFoundError for an unknown plan program.
    """
    plan_program = db.scalar(
        select(PlanProgram)
        .where(PlanProgram.id == plan_program_id)
        .options(
            selectinload(PlanProgram.program),
            selectinload(PlanProgram.plan),
            selectinload(PlanProgram.fulfillments)
            .selectinload(RequirementFulfillment.planned_course)
            .selectinload(PlannedCourse.course),
            selectinload(PlanProgram.fulfillments)
            .selectinload(RequirementFulfillment.planned_course)
            .selectinload(PlannedCourse.class_offering),
        )
        .execution_options(populate_existing=True)
    )
    if plan_program is None:
        raise NotFoundError(f"Plan program {plan_program_id} not found")

    program = plan_program.program
    requirements = program.requirements or {}
    start_year = plan_program.plan.start_year

    entries: list[tuple[FulfillmentRecord, int]] = []
    for fulfillment in sorted(plan_program.fulfillments, key=lambda f: f.id):
        planned_course = fulfillment.planned_course
        record = FulfillmentRecord(
            requirement_id=fulfillment.requirement_id,
            section_id=fulfillment.requirement_id.split(".")[0],
            course=_course_snapshot(planned_course),
            credits_applied=fulfillment.credits_applied,
        )
        entries.append((record, planned_course.semester_number))
    records = [record for record, _ in entries]

    section_progress = [
        _section_progress(section, entries, records, start_year) for section in as_list(requirements.get("sections"))
    ]
    fulfilled = sum(s["credits_fulfilled"] for s in section_progress)
    required = to_float(program.total_credits)

    return {
        "plan_program_id": plan_program.id,
        "program_id": program.program_id,
        "program_name": program.name,
        "program_type": program.type,
        "status": _status(fulfilled, required),
        "total_credits_required": required,
        "total_credits_fulfilled": fulfilled,
        "percentage": _percentage(fulfilled, required),
        "section_progress": section_progress,
        "constraint_validation": (
            _validation_dict(validate_program_constraints(requirements, records)) if structured(requirements) else None
        ),
    }


def aggregate_plan_progress(db: Session, plan_id: int) -> dict[str, Any]:
    plan_program_ids = db.scalars(
        select(PlanProgram.id).where(PlanProgram.plan_id == plan_id).order_by(PlanProgram.id)
    ).all()
    programs = [calculate_program_progress(db, pp_id) for pp_id in plan_program_ids]

    completed = sum(1 for p in programs if p["status"] == COMPLETED)
    if programs and completed == len(programs):
        overall = COMPLETED
    elif any(p["status"] != NOT_STARTED for p in programs):
        overall = IN_PROGRESS
    else:
        overall = NOT_STARTED

    return {
        "plan_id": plan_id,
        "programs": [
            {
                "plan_program_id": p["plan_program_id"],
                "program_id": p["program_id"],
                "program_name": p["program_name"],
                "program_type": p["program_type"],
                "status": p["status"],
                "percentage": p["percentage"],
                "credits_fulfilled": p["total_credits_fulfilled"],
                "credits_required": p["total_credits_required"],
            }
            for p in programs
        ],
        "overall_status": overall,
        "total_programs": len(programs),
        "completed_programs": completed,
    }
