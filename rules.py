from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import scoring
from course_filter import evaluate_course_filter, filter_specificity
from helpers import as_list, course_identifiers


RULE_TYPES = {"take_courses", "take_from_list", "take_any_courses", "group"}


@dataclass(frozen=True)
class RuleEvaluation:
    matches: bool
    specificity_score: float


NO_MATCH = RuleEvaluation(False, 0)


def course_in_list(course: Any, identifiers: Any) -> bool:
    return bool(course_identifiers(course) & {str(item) for item in as_list(identifiers)})


def _eval_take_courses(rule: dict[str, Any], course: Any) -> RuleEvaluation:
    if course_in_list(course, rule.get("courses")):
        return RuleEvaluation(True, scoring.TAKE_COURSES_SCORE)
    return NO_MATCH


def _eval_take_from_list(rule: dict[str, Any], course: Any) -> RuleEvaluation:
    # Membership only; how many items are needed is a progress concern.
    if course_in_list(course, rule.get("courses")):
        return RuleEvaluation(True, scoring.TAKE_FROM_LIST_SCORE)
    return NO_MATCH


def _eval_take_any_courses(rule: dict[str, Any], course: Any) -> RuleEvaluation:
    course_filter = rule.get("filter")
    if not evaluate_course_filter(course, course_filter):
        return NO_MATCH
    return RuleEvaluation(True, filter_specificity(course_filter))


def _eval_group(rule: dict[str, Any], course: Any) -> RuleEvaluation:
    evaluations = [evaluate_rule(sub_rule, course) for sub_rule in as_list(rule.get("rules"))]

    if rule.get("operator") == "AND":
        if not evaluations:
            return RuleEvaluation(True, scoring.MAX_SPECIFICITY)
        if not all(e.matches for e in evaluations):
            return NO_MATCH
        return RuleEvaluation(True, min(e.specificity_score for e in evaluations))

    matched = [e.specificity_score for e in evaluations if e.matches]
    if not matched:
        return NO_MATCH
    return RuleEvaluation(True, max(matched))


_EVALUATORS = {
    "take_courses": _eval_take_courses,
    "take_from_list": _eval_take_from_list,
    "take_any_courses": _eval_take_any_courses,
    "group": _eval_group,
}


def evaluate_rule(rule: Any, course: Any) -> RuleEvaluation:
    """Match one course against one requirement rule. Never raises on malformed rules."""
    if not isinstance(rule, dict):
        return NO_MATCH
    evaluator = _EVALUATORS.get(rule.get("type"))
    if evaluator is None:
        return NO_MATCH
    return evaluator(rule, course)
