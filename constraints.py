from __future__ import annotations

import logging
from dataclasses import dataclass, field as dc_field
from typing import Any, Iterable

from course_filter import evaluate_course_filter
from helpers import as_list, course_identifiers, field, leading_int
from matcher import RequirementMatch


logger = logging.getLogger(__name__)

ENFORCEMENT_TYPES = {"allow_double_count", "require_course_from_sections"}
AUDIT_TYPES = {
    "min_course_count",
    "max_course_count",
    "max_credits_from_courses",
    "min_credits_from_courses",
    "course_number_range",
}


@dataclass
class FulfillmentRecord:
    requirement_id: str  # "sectionId.requirementId"
    section_id: str
    course: Any
    credits_applied: float


@dataclass
class ConstraintResult:
    constraint: dict[str, Any]
    satisfied: bool
    message: str


@dataclass
class ConstraintValidation:
    results: list[ConstraintResult] = dc_field(default_factory=list)

    @property
    def all_satisfied(self) -> bool:
        return all(r.satisfied for r in self.results)


def structured(node: Any) -> list[dict[str, Any]]:
    return [c for c in as_list(field(node, "constraintsStructured")) if isinstance(c, dict)]


def iter_constraints(program_requirements: dict[str, Any] | None) -> Iterable[dict[str, Any]]:
    program_requirements = program_requirements or {}
    yield from structured(program_requirements)
    for section in as_list(program_requirements.get("sections")):
        yield from structured(section)
        for requirement in as_list(section.get("requirements")):
            yield from structured(requirement)


def build_double_count_map(program_requirements: dict[str, Any] | None) -> dict[str, list[str]]:
    """Course identifier -> requirement ids it may fulfil at the same time, merged across every level."""
    double_counts: dict[str, list[str]] = {}
    for constraint in iter_constraints(program_requirements):
        if constraint.get("type") != "allow_double_count":
            continue
        course_id = str(constraint.get("courseId") or "")
        if not course_id:
            continue
        allowed = double_counts.setdefault(course_id, [])
        for requirement_id in as_list(constraint.get("requirementIds")):
            if requirement_id not in allowed:
                allowed.append(requirement_id)
    return double_counts


def double_count_targets(course: Any, double_counts: dict[str, list[str]]) -> list[str]:
    targets: list[str] = []
    for identifier in sorted(course_identifiers(course)):
        for requirement_id in double_counts.get(identifier, []):
            if requirement_id not in targets:
                targets.append(requirement_id)
    return targets


def can_double_count(course: Any, requirement_id: str, double_counts: dict[str, list[str]]) -> bool:
    return requirement_id in double_count_targets(course, double_counts)


def section_restrictions(program_requirements: dict[str, Any] | None, section_id: str, requirement_id: str) -> list[dict[str, Any]]:
    restrictions: list[dict[str, Any]] = []
    for section in as_list((program_requirements or {}).get("sections")):
        if str(section.get("id")) != section_id:
            continue
        for requirement in as_list(section.get("requirements")):
            if str(requirement.get("id")) == requirement_id:
                restrictions.extend(c for c in structured(requirement) if c.get("type") == "require_course_from_sections")
        restrictions.extend(c for c in structured(section) if c.get("type") == "require_course_from_sections")
    return restrictions


def check_section_restriction(constraint: dict[str, Any], fulfilled_sections: set[str]) -> tuple[bool, str | None]:
    allowed = [str(s) for s in as_list(constraint.get("allowedSectionIds"))]
    if constraint.get("operator") == "AND":
        if all(s in fulfilled_sections for s in allowed):
            return True, None
        return False, f"Course must also fulfill all of: {', '.join(allowed)}"
    if any(s in fulfilled_sections for s in allowed):
        return True, None
    return False, f"Course must also fulfill at least one of: {', '.join(allowed)}"


def is_restricted(match: RequirementMatch, program_requirements: dict[str, Any] | None) -> bool:
    return bool(section_restrictions(program_requirements, match.section_id, match.requirement_id))


def prune_restricted_matches(
    matches: list[RequirementMatch],
    program_requirements: dict[str, Any] | None,
    committed_sections: set[str] | None = None,
) -> list[RequirementMatch]:
    """
    Drop candidates whose section restrictions are not yet met.

    Only sections the course has actually been committed to count; matching
    an allowed section is not enough. Order of the surviving matches is
    unchanged.
    """
    committed = set(committed_sections or ())
    kept: list[RequirementMatch] = []
    for match in matches:
        allowed = True
        for constraint in section_restrictions(program_requirements, match.section_id, match.requirement_id):
            ok, reason = check_section_restriction(constraint, committed)
            if not ok:
                logger.debug("Deferring %s: %s", match.full_requirement_id, reason)
                allowed = False
                break
        if allowed:
            kept.append(match)
    return kept


def _label(constraint: dict[str, Any], fallback: str) -> str:
    return str(constraint.get("description") or fallback)


def _records_for_courses(records: list[FulfillmentRecord], course_ids: Any) -> list[FulfillmentRecord]:
    wanted = {str(c) for c in as_list(course_ids)}
    return [r for r in records if course_identifiers(r.course) & wanted]


def _validate_min_course_count(constraint: dict[str, Any], records: list[FulfillmentRecord]) -> ConstraintResult:
    required = int(constraint.get("count") or 0)
    found = sum(1 for r in records if evaluate_course_filter(r.course, constraint.get("filter")))
    label = _label(constraint, f"At least {required} matching course(s)")
    return ConstraintResult(constraint, found >= required, f"{label}: {found}/{required}")


def _validate_max_course_count(constraint: dict[str, Any], records: list[FulfillmentRecord]) -> ConstraintResult:
    limit = int(constraint.get("count") or 0)
    found = sum(1 for r in records if evaluate_course_filter(r.course, constraint.get("filter")))
    label = _label(constraint, f"At most {limit} matching course(s)")
    return ConstraintResult(constraint, found <= limit, f"{label}: {found}/{limit}")


def _validate_max_credits(constraint: dict[str, Any], records: list[FulfillmentRecord]) -> ConstraintResult:
    limit = constraint.get("maxCredits") or 0
    total = sum(r.credits_applied for r in _records_for_courses(records, constraint.get("courseIds")))
    label = _label(constraint, f"At most {limit} credits from {', '.join(as_list(constraint.get('courseIds')))}")
    return ConstraintResult(constraint, total <= limit, f"{label}: {total:g}/{limit} credits")


def _validate_min_credits(constraint: dict[str, Any], records: list[FulfillmentRecord]) -> ConstraintResult:
    required = constraint.get("minCredits") or 0
    total = sum(r.credits_applied for r in _records_for_courses(records, constraint.get("courseIds")))
    label = _label(constraint, f"At least {required} credits from {', '.join(as_list(constraint.get('courseIds')))}")
    return ConstraintResult(constraint, total >= required, f"{label}: {total:g}/{required} credits")


def _in_number_range(number: int, constraint: dict[str, Any]) -> bool:
    low = constraint.get("minNumber") or 0
    operator = constraint.get("operator", "above")
    if operator == "above":
        return number > low
    if operator == "below":
        return number < low
    high = constraint.get("maxNumber")
    return number >= low and (high is None or number <= high)


def _validate_number_range(constraint: dict[str, Any], records: list[FulfillmentRecord]) -> ConstraintResult:
    subject = constraint.get("subjectCode")
    required = int(constraint.get("minCount") or 0)
    found = 0
    for record in records:
        if field(record.course, "subject_code") != subject:
            continue
        number = leading_int(field(record.course, "course_number"))
        if number is not None and _in_number_range(number, constraint):
            found += 1
    label = _label(constraint, f"At least {required} {subject} course(s) {constraint.get('operator', 'above')} {constraint.get('minNumber')}")
    return ConstraintResult(constraint, found >= required, f"{label}: {found}/{required}")


_VALIDATORS = {
    "min_course_count": _validate_min_course_count,
    "max_course_count": _validate_max_course_count,
    "max_credits_from_courses": _validate_max_credits,
    "min_credits_from_courses": _validate_min_credits,
    "course_number_range": _validate_number_range,
}


def validate_constraint(constraint: dict[str, Any], records: list[FulfillmentRecord]) -> ConstraintResult | None:
    constraint_type = constraint.get("type")
    if constraint_type in ENFORCEMENT_TYPES:
        return None
    validator = _VALIDATORS.get(constraint_type)
    if validator is None:
        logger.warning("Unknown constraint type: %s", constraint_type)
        return None
    return validator(constraint, records)


def _validate_all(constraints: list[dict[str, Any]], records: list[FulfillmentRecord]) -> ConstraintValidation:
    validation = ConstraintValidation()
    for constraint in constraints:
        result = validate_constraint(constraint, records)
        if result is not None:
            validation.results.append(result)
    return validation


def validate_requirement_constraints(requirement: dict[str, Any], full_requirement_id: str, records: list[FulfillmentRecord]) -> ConstraintValidation:
    scoped = [r for r in records if r.requirement_id == full_requirement_id]
    return _validate_all(structured(requirement), scoped)


def validate_section_constraints(section: dict[str, Any], records: list[FulfillmentRecord]) -> ConstraintValidation:
    section_id = str(section.get("id"))
    scoped = [r for r in records if r.section_id == section_id]
    return _validate_all(structured(section), scoped)


def validate_program_constraints(program_requirements: dict[str, Any] | None, records: list[FulfillmentRecord]) -> ConstraintValidation:
    return _validate_all(structured(program_requirements or {}), records)
