from matcher import RequirementMatch, find_matching_requirements


def course(subject: str, number: str) -> dict:
    return {"course_id": f"{subject} {number}", "subject_code": subject, "course_number": number}


def math_program() -> dict:
    return {
        "sections": [
            {
                "id": "math",
                "requirements": [
                    {"id": "any_elective", "rule": {"type": "take_any_courses", "filter": {"type": "placeholder"}}},
                    {"id": "math_elective", "rule": {"type": "take_from_list", "count": 2, "courses": ["MATH 1300", "MATH 2300"]}},
                    {"id": "calculus", "rule": {"type": "take_courses", "courses": ["MATH 1300"]}},
                ],
            },
            {
                "id": "science",
                "requirements": [{"id": "lab", "rule": {"type": "take_courses", "courses": ["BSCI 1510L"]}}],
            },
        ]
    }


def test_matches_sorted_most_specific_first() -> None:
    matches = find_matching_requirements(course("MATH", "1300"), math_program())
    assert [m.full_requirement_id for m in matches] == ["math.calculus", "math.math_elective", "math.any_elective"]
    assert [m.specificity_score for m in matches] == [100, 80, 10]


def test_equal_scores_keep_declaration_order() -> None:
    program = {
        "sections": [
            {"id": "core", "requirements": [{"id": "first", "rule": {"type": "take_courses", "courses": ["CS 1101"]}}]},
            {"id": "major", "requirements": [{"id": "second", "rule": {"type": "take_courses", "courses": ["CS 1101"]}}]},
        ]
    }
    matches = find_matching_requirements(course("CS", "1101"), program)
    assert matches == [RequirementMatch("core", "first", 100), RequirementMatch("major", "second", 100)]

    program["sections"].reverse()
    matches = find_matching_requirements(course("CS", "1101"), program)
    assert [m.full_requirement_id for m in matches] == ["major.second", "core.first"]


def test_no_matches() -> None:
    program = {"sections": [{"id": "science", "requirements": [{"id": "lab", "rule": {"type": "take_courses", "courses": ["BSCI 1510L"]}}]}]}
    assert find_matching_requirements(course("ART", "1000"), program) == []
    assert find_matching_requirements(course("ART", "1000"), {}) == []
    assert find_matching_requirements(course("ART", "1000"), None) == []
