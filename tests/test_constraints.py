from constraints import (
    ConstraintValidation,
    FulfillmentRecord,
    build_double_count_map,
    can_double_count,
    check_section_restriction,
    double_count_targets,
    is_restricted,
    prune_restricted_matches,
    validate_constraint,
    validate_program_constraints,
    validate_requirement_constraints,
    validate_section_constraints,
)
from matcher import RequirementMatch


def course(subject: str, number: str) -> dict:
    return {"course_id": f"{subject} {number}", "subject_code": subject, "course_number": number, "credits_min": 3}


def record(requirement_id: str, subject: str, number: str, credits: float = 3) -> FulfillmentRecord:
    return FulfillmentRecord(requirement_id, requirement_id.split(".")[0], course(subject, number), credits)


def restricted_program(operator: str = "OR") -> dict:
    return {
        "sections": [
            {"id": "core", "requirements": [{"id": "writing", "rule": {"type": "take_any_courses", "filter": {"type": "placeholder"}}}]},
            {"id": "major", "requirements": [{"id": "depth", "rule": {"type": "take_any_courses", "filter": {"type": "placeholder"}}}]},
            {
                "id": "upper",
                "requirements": [
                    {
                        "id": "seminar",
                        "rule": {"type": "take_courses", "courses": ["CS 3281W"]},
                        "constraintsStructured": [
                            {
                                "type": "require_course_from_sections",
                                "allowedSectionIds": ["core", "major"],
                                "operator": operator,
                            }
                        ],
                    }
                ],
            },
        ]
    }


def test_double_count_map_merges_all_levels() -> None:
    program = {
        "constraintsStructured": [
            {"type": "allow_double_count", "courseId": "CS 1151", "requirementIds": ["core.ethics", "core.liberal_arts_core"]}
        ],
        "sections": [
            {
                "id": "major",
                "requirements": [
                    {
                        "id": "ethics_elective",
                        "constraintsStructured": [
                            {"type": "allow_double_count", "courseId": "CS 1151", "requirementIds": ["core.ethics", "major.ethics_elective"]},
                            {"type": "min_course_count", "count": 1, "filter": {"type": "placeholder"}},
                        ],
                    }
                ],
            }
        ],
    }
    double_counts = build_double_count_map(program)
    assert double_counts == {"CS 1151": ["core.ethics", "core.liberal_arts_core", "major.ethics_elective"]}

    assert double_count_targets(course("CS", "1151"), double_counts) == [
        "core.ethics",
        "core.liberal_arts_core",
        "major.ethics_elective",
    ]
    assert can_double_count(course("CS", "1151"), "core.liberal_arts_core", double_counts)
    assert not can_double_count(course("CS", "1151"), "major.depth", double_counts)
    assert double_count_targets(course("CS", "1101"), double_counts) == []


def test_check_section_restriction() -> None:
    either = {"type": "require_course_from_sections", "allowedSectionIds": ["core", "major"], "operator": "OR"}
    both = {**either, "operator": "AND"}
    assert check_section_restriction(either, {"major"}) == (True, None)
    assert check_section_restriction(both, {"core", "major"}) == (True, None)

    ok, reason = check_section_restriction(both, {"core"})
    assert not ok
    assert reason == "Course must also fulfill all of: core, major"
    ok, reason = check_section_restriction(either, set())
    assert not ok
    assert reason == "Course must also fulfill at least one of: core, major"


def test_prune_only_counts_committed_sections() -> None:
    program = restricted_program()
    seminar = RequirementMatch("upper", "seminar", 100)
    writing = RequirementMatch("core", "writing", 10)
    assert is_restricted(seminar, program)
    assert not is_restricted(writing, program)

    assert prune_restricted_matches([seminar], program) == []
    # Matching an allowed section is not the same as being committed to it.
    assert prune_restricted_matches([seminar, writing], program) == [writing]
    assert prune_restricted_matches([seminar, writing], program, committed_sections={"major"}) == [seminar, writing]


def test_prune_and_operator_needs_every_section() -> None:
    program = restricted_program("AND")
    seminar = RequirementMatch("upper", "seminar", 100)
    assert prune_restricted_matches([seminar], program, committed_sections={"core"}) == []
    assert prune_restricted_matches([seminar], program, committed_sections={"core", "major"}) == [seminar]


def test_section_level_restriction_applies_to_every_requirement() -> None:
    program = restricted_program()
    upper = program["sections"][2]
    upper["constraintsStructured"] = upper["requirements"][0].pop("constraintsStructured")
    assert prune_restricted_matches([RequirementMatch("upper", "seminar", 100)], program) == []


def test_course_number_range_constraint() -> None:
    records = [record("major.electives", "CS", "3251"), record("major.electives", "CS", "2201"), record("major.electives", "CS", "4260")]
    constraint = {"type": "course_number_range", "subjectCode": "CS", "operator": "above", "minNumber": 3000, "minCount": 2}
    result = validate_constraint(constraint, records)
    assert result.satisfied
    assert result.message.endswith(": 2/2")

    between = {**constraint, "operator": "between", "minNumber": 2000, "maxNumber": 2999, "minCount": 2}
    assert not validate_constraint(between, records).satisfied


def test_credit_constraints() -> None:
    records = [record("major.electives", "CS", "2201"), record("major.electives", "CS", "3251"), record("major.electives", "CS", "4260")]
    max_credits = {"type": "max_credits_from_courses", "courseIds": ["CS 2201", "CS 3251"], "maxCredits": 3}
    result = validate_constraint(max_credits, records)
    assert not result.satisfied
    assert result.message == "At most 3 credits from CS 2201, CS 3251: 6/3 credits"

    min_credits = {"type": "min_credits_from_courses", "courseIds": ["CS 4260"], "minCredits": 3, "description": "Capstone"}
    result = validate_constraint(min_credits, records)
    assert result.satisfied
    assert result.message == "Capstone: 3/3 credits"


def test_course_count_constraints() -> None:
    records = [record("major.electives", "CS", "3251"), record("major.electives", "CS", "4260")]
    upper = {"type": "subject_number", "subjects": ["CS"], "numbers": [{"type": "range", "min": 4000}]}
    assert not validate_constraint({"type": "min_course_count", "count": 2, "filter": upper}, records).satisfied
    assert validate_constraint({"type": "max_course_count", "count": 1, "filter": upper}, records).satisfied


def test_enforcement_and_unknown_constraints_are_skipped() -> None:
    assert validate_constraint({"type": "allow_double_count", "courseId": "CS 1151", "requirementIds": []}, []) is None
    assert validate_constraint({"type": "require_course_from_sections", "allowedSectionIds": ["core"]}, []) is None
    assert validate_constraint({"type": "bring_snacks"}, []) is None


def test_requirement_and_section_scoping() -> None:
    requirement = {
        "id": "electives",
        "constraintsStructured": [{"type": "max_course_count", "count": 1, "filter": {"type": "placeholder"}}],
    }
    records = [record("major.electives", "CS", "3251"), record("major.depth", "CS", "4260")]
    validation = validate_requirement_constraints(requirement, "major.electives", records)
    assert validation.all_satisfied
    assert len(validation.results) == 1

    section = {
        "id": "major",
        "constraintsStructured": [{"type": "max_course_count", "count": 1, "filter": {"type": "placeholder"}}],
    }
    assert not validate_section_constraints(section, records).all_satisfied
    assert validate_program_constraints({}, records) == ConstraintValidation()
    assert ConstraintValidation().all_satisfied
