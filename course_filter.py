from __future__ import annotations

from typing import Any

import scoring
from helpers import as_dict, as_list, course_identifiers, field, leading_int


PLACEHOLDER_TYPES = {"placeholder", "any"}
FILTER_TYPES = PLACEHOLDER_TYPES | {
    "subject_number",
    "attribute",
    "course_list",
    "course_number_suffix",
    "number_attribute",
    "composite",
}


def get_course_attributes(course: Any, attribute_type: str | None = None) -> list[str]:
    raw = field(course, "attributes")
    if not raw:
        return []
    if isinstance(raw, list):
        return [str(item) for item in raw]
    attrs = as_dict(raw)
    if attribute_type:
        return [str(item) for item in as_list(attrs.get(attribute_type))]
    values: list[str] = []
    for items in attrs.values():
        values.extend(str(item) for item in as_list(items))
    return values


def matches_number_constraints(course_number: Any, constraints: list[dict[str, Any]]) -> bool:
    number_text = str(course_number or "")
    number = leading_int(number_text)
    for constraint in constraints:
        if constraint.get("type") == "specific":
            if number_text in [str(v) for v in as_list(constraint.get("values"))]:
                return True
            continue
        if number is None:
            continue
        low = constraint.get("min") or 0
        high = constraint.get("max")
        if number >= low and (high is None or number <= high):
            return True
    return False


def _is_excluded(course: Any, excluded: Any) -> bool:
    return bool(course_identifiers(course) & {str(item) for item in as_list(excluded)})


def _eval_subject_number(course: Any, course_filter: dict[str, Any]) -> bool:
    if field(course, "subject_code") not in as_list(course_filter.get("subjects")):
        return False
    numbers = course_filter.get("numbers")
    if numbers and not matches_number_constraints(field(course, "course_number"), numbers):
        return False
    return not _is_excluded(course, course_filter.get("exclude"))


def _eval_attribute(course: Any, course_filter: dict[str, Any]) -> bool:
    exclude = as_dict(course_filter.get("exclude"))
    if field(course, "subject_code") in as_list(exclude.get("subjects")):
        return False
    attrs = get_course_attributes(course, course_filter.get("attributeType"))
    if not attrs:
        return False
    return any(attr in attrs for attr in as_list(course_filter.get("attributes")))


def _eval_course_list(course: Any, course_filter: dict[str, Any]) -> bool:
    return bool(course_identifiers(course) & {str(c) for c in as_list(course_filter.get("courses"))})


def _eval_suffix(course: Any, course_filter: dict[str, Any]) -> bool:
    subjects = course_filter.get("subjects")
    if subjects and field(course, "subject_code") not in subjects:
        return False
    if _is_excluded(course, course_filter.get("exclude")):
        return False
    number = str(field(course, "course_number") or "")
    return any(number.endswith(str(suffix)) for suffix in as_list(course_filter.get("suffixes")))


def _eval_number_attribute(course: Any, course_filter: dict[str, Any]) -> bool:
    subjects = course_filter.get("subjects")
    if subjects and field(course, "subject_code") not in subjects:
        return False
    exclude = as_dict(course_filter.get("exclude"))
    if field(course, "subject_code") in as_list(exclude.get("subjects")):
        return False
    if _is_excluded(course, exclude.get("courses")):
        return False
    if not matches_number_constraints(field(course, "course_number"), as_list(course_filter.get("numbers"))):
        return False
    attrs = get_course_attributes(course, course_filter.get("attributeType"))
    if not attrs:
        return False
    return any(attr in attrs for attr in as_list(course_filter.get("attributes")))


def _eval_composite(course: Any, course_filter: dict[str, Any]) -> bool:
    sub_filters = as_list(course_filter.get("filters"))
    if course_filter.get("operator") == "AND":
        return all(evaluate_course_filter(course, sub) for sub in sub_filters)
    return any(evaluate_course_filter(course, sub) for sub in sub_filters)


_EVALUATORS = {
    "subject_number": _eval_subject_number,
    "attribute": _eval_attribute,
    "course_list": _eval_course_list,
    "course_number_suffix": _eval_suffix,
    "number_attribute": _eval_number_attribute,
    "composite": _eval_composite,
}


def evaluate_course_filter(course: Any, course_filter: dict[str, Any] | None) -> bool:
    if not isinstance(course_filter, dict):
        return False
    filter_type = course_filter.get("type")
    if filter_type in PLACEHOLDER_TYPES:
        return True
    evaluator = _EVALUATORS.get(filter_type)
    if evaluator is None:
        return False
    return evaluator(course, course_filter)


def filter_specificity(course_filter: dict[str, Any] | None) -> float:
    """
    Score how narrowly a filter targets courses.

    Broad filters (placeholder, many attributes, OR composites) score low;
    explicit course lists score highest. An OR composite is capped so that it
    never outranks a single highly specific filter, and an AND composite is
    the mean of its two most specific parts.
    """
    if not isinstance(course_filter, dict):
        return 0
    filter_type = course_filter.get("type")

    if filter_type in PLACEHOLDER_TYPES:
        return scoring.PLACEHOLDER_SCORE

    if filter_type == "subject_number":
        score = scoring.SUBJECT_NUMBER_BASE
        numbers = as_list(course_filter.get("numbers"))
        if any(c.get("type") == "specific" for c in numbers):
            score += scoring.SUBJECT_NUMBER_SPECIFIC_BONUS
        elif any(c.get("type") == "range" for c in numbers):
            score += scoring.SUBJECT_NUMBER_RANGE_BONUS
        if len(as_list(course_filter.get("subjects"))) == 1:
            score += scoring.SUBJECT_NUMBER_SINGLE_SUBJECT_BONUS
        return score

    if filter_type == "attribute":
        count = len(as_list(course_filter.get("attributes")))
        penalty = min(scoring.ATTRIBUTE_MAX_PENALTY, max(0, count - 1) * scoring.ATTRIBUTE_PENALTY_PER_EXTRA)
        bonus = scoring.ATTRIBUTE_EXCLUSION_BONUS if as_dict(course_filter.get("exclude")).get("subjects") else 0
        return scoring.ATTRIBUTE_BASE + bonus - penalty

    if filter_type == "course_list":
        size = len(as_list(course_filter.get("courses")))
        if size == 1:
            return scoring.COURSE_LIST_BASE + scoring.COURSE_LIST_SINGLE_BONUS
        if size <= scoring.COURSE_LIST_SHORT_SIZE:
            return scoring.COURSE_LIST_BASE + scoring.COURSE_LIST_SHORT_BONUS
        return scoring.COURSE_LIST_BASE

    if filter_type == "course_number_suffix":
        score = scoring.SUFFIX_BASE
        subjects = as_list(course_filter.get("subjects"))
        if subjects and len(subjects) <= scoring.SUFFIX_SUBJECT_SCOPE_MAX:
            score += scoring.SUFFIX_SUBJECT_SCOPE_BONUS
        if len(as_list(course_filter.get("suffixes"))) == 1:
            score += scoring.SUFFIX_SINGLE_BONUS
        return min(scoring.SUFFIX_CAP, score)

    if filter_type == "number_attribute":
        score = scoring.NUMBER_ATTRIBUTE_BASE
        subjects = as_list(course_filter.get("subjects"))
        if subjects and len(subjects) <= 2:
            score += scoring.NUMBER_ATTRIBUTE_SUBJECT_SCOPE_BONUS
        count = len(as_list(course_filter.get("attributes")))
        score -= min(
            scoring.NUMBER_ATTRIBUTE_MAX_PENALTY,
            max(0, count - 1) * scoring.NUMBER_ATTRIBUTE_PENALTY_PER_EXTRA,
        )
        if any(c.get("type") == "specific" for c in as_list(course_filter.get("numbers"))):
            score += scoring.NUMBER_ATTRIBUTE_SPECIFIC_BONUS
        return min(scoring.NUMBER_ATTRIBUTE_CAP, score)

    if filter_type == "composite":
        sub_scores = sorted((filter_specificity(sub) for sub in as_list(course_filter.get("filters"))), reverse=True)
        if not sub_scores:
            return 0
        if course_filter.get("operator") == "AND":
            if len(sub_scores) == 1:
                return sub_scores[0]
            return (sub_scores[0] + sub_scores[1]) / 2
        return min(scoring.COMPOSITE_OR_CAP, sub_scores[0])

    return 0


def _validate_numbers(numbers: Any) -> str | None:
    for constraint in as_list(numbers):
        if constraint.get("type") == "specific" and not as_list(constraint.get("values")):
            return "specific number constraint must have at least one value"
        if constraint.get("type") == "range" and (constraint.get("min") or 0) < 0:
            return "range min must be non-negative"
    return None


def validate_filter(course_filter: Any) -> str | None:
    """Return the first problem found in a filter, or None when it is well formed."""
    if not isinstance(course_filter, dict):
        return "filter must be an object"
    filter_type = course_filter.get("type")

    if filter_type in PLACEHOLDER_TYPES:
        return None

    if filter_type == "subject_number":
        if not as_list(course_filter.get("subjects")):
            return "subject_number filter must have at least one subject"
        return _validate_numbers(course_filter.get("numbers"))

    if filter_type == "attribute":
        if not as_list(course_filter.get("attributes")):
            return "attribute filter must have at least one attribute"
        return None

    if filter_type == "course_list":
        if not as_list(course_filter.get("courses")):
            return "course_list filter must have at least one course"
        return None

    if filter_type == "course_number_suffix":
        if not as_list(course_filter.get("suffixes")):
            return "course_number_suffix filter must have at least one suffix"
        return None

    if filter_type == "number_attribute":
        if not as_list(course_filter.get("numbers")):
            return "number_attribute filter must have at least one number constraint"
        if not as_list(course_filter.get("attributes")):
            return "number_attribute filter must have at least one attribute"
        return _validate_numbers(course_filter.get("numbers"))

    if filter_type == "composite":
        sub_filters = as_list(course_filter.get("filters"))
        if len(sub_filters) < 2:
            return "composite filter must have at least two sub-filters"
        for sub in sub_filters:
            error = validate_filter(sub)
            if error:
                return error
        return None

    return "unknown filter type"
