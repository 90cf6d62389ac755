from __future__ import annotations

import logging
from dataclasses import dataclass, field as dc_field
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from constraints import build_double_count_map, can_double_count, is_restricted, prune_restricted_matches
from helpers import course_code, field, to_float
from matcher import RequirementMatch, find_matching_requirements, iter_requirements
from models import Plan, PlannedCourse, PlanProgram, RequirementFulfillment


logger = logging.getLogger(__name__)


@dataclass
class FulfillmentDraft:
    plan_program_id: int
    requirement_id: str  # "sectionId.requirementId"
    planned_course_id: int
    credits_applied: int
    section_id: str
    specificity_score: float
    double_counted: bool = False


@dataclass
class _ProgramContext:
    plan_program_id: int
    name: str
    requirements: dict[str, Any]
    double_counts: dict[str, list[str]]
    capacities: dict[str, float]
    committed: dict[str, float] = dc_field(default_factory=dict)

    def has_room(self, match: RequirementMatch) -> bool:
        key = match.full_requirement_id
        return self.committed.get(key, 0) < self.capacities.get(key, 0)

    def commit(self, match: RequirementMatch, credits: float) -> None:
        key = match.full_requirement_id
        self.committed[key] = self.committed.get(key, 0) + credits


def resolve_course(planned_course: Any) -> Any:
    """The term offering when one is linked, otherwise the catalog course."""
    return field(planned_course, "class_offering") or field(planned_course, "course")


def _program_context(plan_program: Any) -> _ProgramContext:
    program = field(plan_program, "program")
    requirements = field(program, "requirements") or field(plan_program, "requirements") or {}
    capacities = {
        f"{section.get('id')}.{requirement.get('id')}": to_float(requirement.get("creditsRequired"))
        for section, requirement in iter_requirements(requirements)
    }
    return _ProgramContext(
        plan_program_id=field(plan_program, "id"),
        name=str(field(program, "name") or field(plan_program, "id")),
        requirements=requirements,
        double_counts=build_double_count_map(requirements),
        capacities=capacities,
    )


def _select(course: Any, matches: list[RequirementMatch], ctx: _ProgramContext) -> tuple[list[RequirementMatch], bool]:
    free = [m for m in matches if not is_restricted(m, ctx.requirements)]
    deferred = [m for m in matches if is_restricted(m, ctx.requirements)]

    listed = [m for m in free if can_double_count(course, m.full_requirement_id, ctx.double_counts)]
    if len(listed) >= 2:
        chosen, double_counted = listed, True
    elif not free:
        chosen, double_counted = [], False
    else:
        chosen, double_counted = [next((m for m in free if ctx.has_room(m)), free[0])], False
        if not ctx.has_room(chosen[0]):
            logger.debug("All candidates full in %s, overflowing to %s", ctx.name, chosen[0].full_requirement_id)

    # Restricted requirements only see sections this course was committed to,
    # and joining a second requirement still needs double-count permission.
    for match in prune_restricted_matches(deferred, ctx.requirements, {m.section_id for m in chosen}):
        if chosen and not can_double_count(course, match.full_requirement_id, ctx.double_counts):
            logger.debug(
                "Skipping %s for %s: double counting not allowed", course_code(course), match.full_requirement_id
            )
            continue
        chosen.append(match)
        double_counted = len(chosen) > 1
    return chosen, double_counted


def _sort_key(planned_course: Any) -> tuple[int, int]:
    return (field(planned_course, "semester_number") or 0, field(planned_course, "position") or 0)


def plan_fulfillments(planned_courses: list[Any], plan_programs: list[Any]) -> list[FulfillmentDraft]:
    """
    Decide which requirement(s) each planned course fulfils in each program.

    Courses are visited in (semester_number, position) order and each program
    is handled independently, so a course may count once per program. Within
    a program the most specific candidate with remaining credit capacity wins;
    when every candidate is already full the most specific one takes the
    overflow. A double-count constraint naming the course lets it land on
    every listed requirement that it matches. Requirements restricted to
    other sections are only considered once the course has been committed
    to one of those sections in the same program.

    Inputs may be ORM rows or plain dicts with the same field names.
    """
    contexts = [_program_context(pp) for pp in plan_programs]
    drafts: list[FulfillmentDraft] = []

    for planned_course in sorted(planned_courses, key=_sort_key):
        course = resolve_course(planned_course)
        if course is None:
            logger.debug("Planned course %s has no catalog course or offering", field(planned_course, "id"))
            continue
        credits = int(field(planned_course, "credits") or 0)

        for ctx in contexts:
            matches = find_matching_requirements(course, ctx.requirements)
            if not matches:
                logger.debug("No matches for %s in %s", course_code(course), ctx.name)
                continue

            chosen, double_counted = _select(course, matches, ctx)
            if not chosen:
                logger.debug("%s only matches restricted requirements in %s", course_code(course), ctx.name)
                continue
            for match in chosen:
                ctx.commit(match, credits)
                drafts.append(
                    FulfillmentDraft(
                        plan_program_id=ctx.plan_program_id,
                        requirement_id=match.full_requirement_id,
                        planned_course_id=field(planned_course, "id"),
                        credits_applied=credits,
                        section_id=match.section_id,
                        specificity_score=match.specificity_score,
                        double_counted=double_counted,
                    )
                )
                logger.debug(
                    "%s -> %s in %s (score %s%s)",
                    course_code(course),
                    match.full_requirement_id,
                    ctx.name,
                    match.specificity_score,
                    ", double counted" if double_counted else "",
                )

    return drafts


def auto_assign_fulfillments(db: Session, plan_id: int) -> list[RequirementFulfillment]:
    """
    Regenerate every fulfillment row of a plan.

    Existing rows for the plan's programs are deleted first, so running this
    twice on unchanged data leaves the same rows. The session is flushed but
    not committed; wrap the call in ``db_session()`` to commit.
    """
    logger.info("Auto-assigning fulfillments for plan %s", plan_id)
    db.flush()
    plan = db.scalar(
        select(Plan)
        .where(Plan.id == plan_id)
        .options(
            selectinload(Plan.planned_courses).selectinload(PlannedCourse.course),
            selectinload(Plan.planned_courses).selectinload(PlannedCourse.class_offering),
            selectinload(Plan.plan_programs).selectinload(PlanProgram.program),
        )
        .execution_options(populate_existing=True)
    )
    if plan is None:
        logger.warning("Plan %s not found for auto-assignment", plan_id)
        return []

    plan_program_ids = [pp.id for pp in plan.plan_programs]
    if plan_program_ids:
        db.execute(delete(RequirementFulfillment).where(RequirementFulfillment.plan_program_id.in_(plan_program_ids)))
    logger.info("Cleared existing fulfillments for plan %s", plan_id)

    if not plan.planned_courses or not plan.plan_programs:
        db.flush()
        return []

    rows = [
        RequirementFulfillment(
            plan_program_id=draft.plan_program_id,
            requirement_id=draft.requirement_id,
            planned_course_id=draft.planned_course_id,
            credits_applied=draft.credits_applied,
        )
        for draft in plan_fulfillments(plan.planned_courses, plan.plan_programs)
    ]
    db.add_all(rows)
    db.flush()
    logger.info(
        "Assigned %d fulfillments for plan %s across %d programs",
        len(rows),
        plan_id,
        len(plan.plan_programs),
    )
    return rows
