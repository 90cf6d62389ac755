from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from constraints import AUDIT_TYPES, ENFORCEMENT_TYPES, iter_constraints
from course_filter import validate_filter
from errors import NotFoundError
from helpers import as_list
from matcher import iter_requirements
from models import ClassOffering, Course, Plan, PlannedCourse, PlanProgram, Program
from rules import RULE_TYPES


REQUIRED_COURSE_KEYS = {"courseId", "subjectCode", "courseNumber"}
REQUIRED_PROGRAM_KEYS = {"programId", "name", "type", "requirements"}
PROGRAM_TYPES = {"major", "minor", "certificate", "core"}


def load_json_file(path: str | Path) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _parse_attributes(value: Any) -> dict[str, list[str]] | None:
    if not value:
        return None
    if isinstance(value, dict):
        return {str(k): [str(v) for v in as_list(items)] for k, items in value.items()}
    # A bare tag list is stored under a generic category.
    return {"tags": [str(v) for v in as_list(value)]}


def load_courses(raw: list[dict[str, Any]], academic_year: int) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    for index, item in enumerate(raw):
        missing = sorted(REQUIRED_COURSE_KEYS - set(item))
        if missing:
            raise ValueError(f"Course #{index} is missing keys: {missing}")
        credits_min = int(item.get("creditsMin", item.get("credits", 0)) or 0)
        credits_max = int(item.get("creditsMax", credits_min) or credits_min)
        rows.append(
            {
                "course_id": str(item["courseId"]).strip(),
                "academic_year": int(item.get("academicYear", academic_year)),
                "subject_code": str(item["subjectCode"]).strip(),
                "course_number": str(item["courseNumber"]).strip(),
                "title": item.get("title") or "",
                "credits_min": credits_min,
                "credits_max": max(credits_min, credits_max),
                "attributes": _parse_attributes(item.get("attributes")),
                "description": item.get("description"),
                "is_catalog_course": bool(item.get("isCatalogCourse", True)),
            }
        )
    return rows


def upsert_courses(db: Session, rows: list[dict[str, Any]]) -> dict[str, int]:
    existing_map = {
        (c.course_id, c.academic_year): c
        for c in db.scalars(select(Course).where(Course.course_id.in_([row["course_id"] for row in rows]))).all()
    }

    inserted = 0
    updated = 0
    for row in rows:
        existing = existing_map.get((row["course_id"], row["academic_year"]))
        if existing:
            for key, value in row.items():
                setattr(existing, key, value)
            updated += 1
        else:
            course = Course(**row)
            db.add(course)
            existing_map[(row["course_id"], row["academic_year"])] = course
            inserted += 1
    return {"inserted": inserted, "updated": updated}


def _validate_rule(rule: Any, where: str) -> list[str]:
    if not isinstance(rule, dict):
        return [f"{where}: rule must be an object"]
    rule_type = rule.get("type")
    if rule_type not in RULE_TYPES:
        return [f"{where}: unknown rule type {rule_type!r}"]

    errors: list[str] = []
    if rule_type in {"take_courses", "take_from_list"} and not as_list(rule.get("courses")):
        errors.append(f"{where}: {rule_type} rule must list at least one course")
    if rule_type == "take_from_list" and rule.get("countType", "courses") not in {"courses", "credits"}:
        errors.append(f"{where}: countType must be 'courses' or 'credits'")
    if rule_type == "take_any_courses":
        filter_error = validate_filter(rule.get("filter"))
        if filter_error:
            errors.append(f"{where}: {filter_error}")
    if rule_type == "group":
        if rule.get("operator") not in {"AND", "OR"}:
            errors.append(f"{where}: group operator must be AND or OR")
        for index, sub_rule in enumerate(as_list(rule.get("rules"))):
            errors.extend(_validate_rule(sub_rule, f"{where}.rules[{index}]"))
    return errors


def _validate_constraint(constraint: dict[str, Any], full_ids: set[str], section_ids: set[str]) -> list[str]:
    constraint_type = constraint.get("type")
    if constraint_type not in ENFORCEMENT_TYPES | AUDIT_TYPES:
        return [f"unknown constraint type {constraint_type!r}"]

    errors: list[str] = []
    if constraint_type == "allow_double_count":
        if not constraint.get("courseId"):
            errors.append("allow_double_count needs a courseId")
        unknown = [r for r in as_list(constraint.get("requirementIds")) if r not in full_ids]
        if unknown:
            errors.append(f"allow_double_count references unknown requirements: {unknown}")
    elif constraint_type == "require_course_from_sections":
        unknown = [s for s in as_list(constraint.get("allowedSectionIds")) if str(s) not in section_ids]
        if unknown:
            errors.append(f"require_course_from_sections references unknown sections: {unknown}")
        if constraint.get("operator", "OR") not in {"AND", "OR"}:
            errors.append("require_course_from_sections operator must be AND or OR")
    elif constraint_type in {"min_course_count", "max_course_count"}:
        filter_error = validate_filter(constraint.get("filter"))
        if filter_error:
            errors.append(f"{constraint_type}: {filter_error}")
    return errors


def validate_program_requirements(requirements: Any) -> tuple[bool, list[str]]:
    """Check a requirement tree before it is stored. Returns (valid, errors)."""
    if not isinstance(requirements, dict):
        return False, ["requirements must be an object"]

    errors: list[str] = []
    section_ids: set[str] = set()
    full_ids: set[str] = set()
    for section in as_list(requirements.get("sections")):
        section_id = str(section.get("id") or "")
        if not section_id:
            errors.append("section without id")
        elif section_id in section_ids:
            errors.append(f"duplicate section id {section_id!r}")
        section_ids.add(section_id)

    for section, requirement in iter_requirements(requirements):
        full_id = f"{section.get('id')}.{requirement.get('id')}"
        if not requirement.get("id"):
            errors.append(f"requirement without id in section {section.get('id')!r}")
        elif full_id in full_ids:
            errors.append(f"duplicate requirement id {full_id!r}")
        full_ids.add(full_id)
        errors.extend(_validate_rule(requirement.get("rule"), full_id))

    for constraint in iter_constraints(requirements):
        errors.extend(_validate_constraint(constraint, full_ids, section_ids))
    return len(errors) == 0, errors


def upsert_program(db: Session, data: dict[str, Any], academic_year: int) -> Program:
    missing = sorted(REQUIRED_PROGRAM_KEYS - set(data))
    if missing:
        raise ValueError(f"Program is missing keys: {missing}")
    if data["type"] not in PROGRAM_TYPES:
        raise ValueError(f"Program {data['programId']}: unknown type {data['type']!r}")
    valid, errors = validate_program_requirements(data["requirements"])
    if not valid:
        raise ValueError(f"Program {data['programId']} has invalid requirements: {'; '.join(errors)}")

    year = int(data.get("academicYear", academic_year))
    values = {
        "name": data["name"],
        "type": data["type"],
        "total_credits": int(data.get("totalCredits") or 0),
        "requirements": data["requirements"],
    }
    program = db.scalar(select(Program).where(Program.program_id == data["programId"], Program.academic_year == year))
    if program:
        for key, value in values.items():
            setattr(program, key, value)
    else:
        program = Program(program_id=data["programId"], academic_year=year, **values)
        db.add(program)
    db.flush()
    return program


def seed_catalog(db: Session, courses_path: str | Path, programs_dir: str | Path, academic_year: int) -> dict[str, int]:
    course_stats = upsert_courses(db, load_courses(load_json_file(courses_path), academic_year))
    programs = 0
    for path in sorted(Path(programs_dir).glob("*.json")):
        upsert_program(db, load_json_file(path), academic_year)
        programs += 1
    return {**course_stats, "programs": programs}


def create_plan(db: Session, name: str, start_year: int) -> Plan:
    plan = Plan(name=name, start_year=start_year)
    db.add(plan)
    db.flush()
    return plan


def add_program_to_plan(db: Session, plan_id: int, program_id: int) -> PlanProgram:
    link = db.scalar(select(PlanProgram).where(PlanProgram.plan_id == plan_id, PlanProgram.program_id == program_id))
    if link:
        return link
    if db.get(Program, program_id) is None:
        raise NotFoundError(f"Program {program_id} not found")
    link = PlanProgram(plan_id=plan_id, program_id=program_id)
    db.add(link)
    db.flush()
    return link


def add_planned_course(
    db: Session,
    plan_id: int,
    semester_number: int,
    course_id: str | None = None,
    class_id: str | None = None,
    credits: int | None = None,
    academic_year: int | None = None,
) -> PlannedCourse:
    if db.get(Plan, plan_id) is None:
        raise NotFoundError(f"Plan {plan_id} not found")

    offering = None
    course = None
    if class_id:
        offering = db.scalar(select(ClassOffering).where(ClassOffering.class_id == class_id))
        if offering is None:
            raise NotFoundError(f"Class {class_id} not found")
        course_id = course_id or offering.course_id
    if course_id:
        stmt = select(Course).where(Course.course_id == course_id)
        if academic_year is not None:
            stmt = stmt.where(Course.academic_year == academic_year)
        course = db.scalars(stmt.order_by(Course.academic_year.desc())).first()
    if course is None and offering is None:
        raise NotFoundError(f"Course {course_id} not found")

    source = offering or course
    position = db.scalar(
        select(func.count())
        .select_from(PlannedCourse)
        .where(PlannedCourse.plan_id == plan_id, PlannedCourse.semester_number == semester_number)
    ) or 0
    planned = PlannedCourse(
        plan_id=plan_id,
        catalog_course_id=course.id if course else None,
        class_offering_id=offering.id if offering else None,
        course_code=course.course_id if course else f"{source.subject_code} {source.course_number}",
        semester_number=semester_number,
        position=position,
        credits=credits if credits is not None else source.credits_min,
    )
    db.add(planned)
    db.flush()
    return planned
