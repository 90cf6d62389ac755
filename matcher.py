from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from helpers import as_list
from rules import evaluate_rule


@dataclass(frozen=True)
class RequirementMatch:
    section_id: str
    requirement_id: str
    specificity_score: float

    @property
    def full_requirement_id(self) -> str:
        return f"{self.section_id}.{self.requirement_id}"


def iter_requirements(program_requirements: dict[str, Any] | None):
    for section in as_list((program_requirements or {}).get("sections")):
        for requirement in as_list(section.get("requirements")):
            yield section, requirement


def find_matching_requirements(course: Any, program_requirements: dict[str, Any] | None) -> list[RequirementMatch]:
    """
    Every requirement in the program whose rule accepts the course, most specific first.

    Equal scores keep section/requirement declaration order, so the order in
    which a program lists its requirements is the tie-break priority.
    """
    matches: list[RequirementMatch] = []
    for section, requirement in iter_requirements(program_requirements):
        evaluation = evaluate_rule(requirement.get("rule"), course)
        if evaluation.matches:
            matches.append(RequirementMatch(str(section.get("id")), str(requirement.get("id")), evaluation.specificity_score))

    matches.sort(key=lambda m: m.specificity_score, reverse=True)
    return matches
