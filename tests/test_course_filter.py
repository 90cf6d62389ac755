from course_filter import (
    evaluate_course_filter,
    filter_specificity,
    get_course_attributes,
    matches_number_constraints,
    validate_filter,
)


def course(subject: str, number: str, attributes: dict | None = None) -> dict:
    return {
        "course_id": f"{subject} {number}",
        "subject_code": subject,
        "course_number": number,
        "title": f"{subject} {number}",
        "credits_min": 3,
        "attributes": attributes,
    }


def test_placeholder_and_any_match_everything() -> None:
    assert evaluate_course_filter(course("CS", "1101"), {"type": "placeholder"})
    assert evaluate_course_filter(course("HIST", "1010"), {"type": "any"})
    assert filter_specificity({"type": "placeholder"}) == 10
    assert filter_specificity({"type": "any"}) == 10


def test_subject_number_range_uses_leading_integer() -> None:
    upper_cs = {"type": "subject_number", "subjects": ["CS"], "numbers": [{"type": "range", "min": 3000}]}
    assert evaluate_course_filter(course("CS", "3251"), upper_cs)
    assert not evaluate_course_filter(course("CS", "2201"), upper_cs)
    assert not evaluate_course_filter(course("MATH", "3100"), upper_cs)

    lab = {"type": "subject_number", "subjects": ["BSCI"], "numbers": [{"type": "range", "min": 1000, "max": 1999}]}
    assert evaluate_course_filter(course("BSCI", "1510L"), lab)
    assert not evaluate_course_filter(course("BSCI", "2210"), lab)


def test_range_with_null_bound_is_open() -> None:
    assert matches_number_constraints("2201", [{"type": "range", "min": None, "max": 3000}])
    assert not matches_number_constraints("3251", [{"type": "range", "min": None, "max": 3000}])
    assert matches_number_constraints("4260", [{"type": "range", "min": 3000, "max": None}])


def test_subject_number_specific_values_and_exclusions() -> None:
    specific = {
        "type": "subject_number",
        "subjects": ["CS", "MATH"],
        "numbers": [{"type": "specific", "values": ["1101", "2300"]}],
        "exclude": ["MATH 2300"],
    }
    assert evaluate_course_filter(course("CS", "1101"), specific)
    assert not evaluate_course_filter(course("MATH", "2300"), specific)
    assert not evaluate_course_filter(course("CS", "1104"), specific)


def test_subject_number_specificity() -> None:
    assert filter_specificity({"type": "subject_number", "subjects": ["CS"], "numbers": [{"type": "range", "min": 3000}]}) == 70
    assert (
        filter_specificity(
            {"type": "subject_number", "subjects": ["CS", "MATH"], "numbers": [{"type": "specific", "values": ["1101"]}]}
        )
        == 75
    )
    assert filter_specificity({"type": "subject_number", "subjects": ["CS", "MATH"]}) == 50


def test_attribute_filter_by_category_and_exclusion() -> None:
    humanities = course("HIST", "1010", {"axle": ["HCA", "INT"], "core": ["DIV"]})
    assert evaluate_course_filter(humanities, {"type": "attribute", "attributeType": "axle", "attributes": ["HCA"]})
    assert not evaluate_course_filter(humanities, {"type": "attribute", "attributeType": "core", "attributes": ["HCA"]})
    assert evaluate_course_filter(humanities, {"type": "attribute", "attributes": ["DIV"]})
    assert not evaluate_course_filter(
        humanities,
        {"type": "attribute", "attributes": ["HCA"], "exclude": {"subjects": ["HIST"]}},
    )
    assert not evaluate_course_filter(course("CS", "1101"), {"type": "attribute", "attributes": ["HCA"]})


def test_get_course_attributes_accepts_flat_lists() -> None:
    assert get_course_attributes({"attributes": ["QR", "W"]}) == ["QR", "W"]
    assert get_course_attributes({"attributes": None}, "axle") == []
    assert sorted(get_course_attributes({"attributes": {"axle": ["HCA"], "core": ["QR"]}})) == ["HCA", "QR"]


def test_attribute_specificity_penalises_broad_lists() -> None:
    assert filter_specificity({"type": "attribute", "attributes": ["HCA"]}) == 40
    assert filter_specificity({"type": "attribute", "attributes": ["HCA", "INT", "P"]}) == 34
    assert filter_specificity({"type": "attribute", "attributes": ["A", "B", "C", "D", "E", "F", "G", "H"]}) == 25
    assert filter_specificity({"type": "attribute", "attributes": ["HCA"], "exclude": {"subjects": ["CS"]}}) == 50


def test_course_list_matching_and_specificity() -> None:
    short_list = {"type": "course_list", "courses": ["CS 1101", "CS 2201", "CS 2212"]}
    assert evaluate_course_filter(course("CS", "2201"), short_list)
    assert not evaluate_course_filter(course("CS", "3251"), short_list)

    assert filter_specificity({"type": "course_list", "courses": ["CS 1101"]}) == 90
    assert filter_specificity(short_list) == 88
    assert filter_specificity({"type": "course_list", "courses": [f"CS {n}" for n in range(1000, 1011)]}) == 85


def test_course_number_suffix() -> None:
    writing = {"type": "course_number_suffix", "subjects": ["CS"], "suffixes": ["W"]}
    assert evaluate_course_filter(course("CS", "3281W"), writing)
    assert not evaluate_course_filter(course("CS", "3281"), writing)
    assert not evaluate_course_filter(course("ENGL", "1100W"), writing)
    assert filter_specificity(writing) == 55
    assert filter_specificity({"type": "course_number_suffix", "suffixes": ["W", "L"]}) == 45


def test_number_attribute_needs_number_and_tag() -> None:
    upper_quant = {
        "type": "number_attribute",
        "subjects": ["MATH"],
        "numbers": [{"type": "range", "min": 2000}],
        "attributeType": "core",
        "attributes": ["QR"],
    }
    assert evaluate_course_filter(course("MATH", "2300", {"core": ["QR"]}), upper_quant)
    assert not evaluate_course_filter(course("MATH", "1100", {"core": ["QR"]}), upper_quant)
    assert not evaluate_course_filter(course("MATH", "2300", {"core": ["W"]}), upper_quant)
    assert filter_specificity(upper_quant) == 60
    assert (
        filter_specificity(
            {
                "type": "number_attribute",
                "numbers": [{"type": "specific", "values": ["2300"]}],
                "attributes": ["QR", "W", "P"],
            }
        )
        == 61
    )


def test_composite_or_is_capped() -> None:
    either = {
        "type": "composite",
        "operator": "OR",
        "filters": [{"type": "course_list", "courses": ["CS 1101"]}, {"type": "placeholder"}],
    }
    assert evaluate_course_filter(course("ART", "1000"), either)
    assert filter_specificity(either) == 70


def test_composite_and_averages_top_two() -> None:
    both = {
        "type": "composite",
        "operator": "AND",
        "filters": [
            {"type": "course_list", "courses": ["CS 3251", "CS 3270", "CS 4260"]},
            {"type": "subject_number", "subjects": ["CS"], "numbers": [{"type": "range", "min": 3000}]},
            {"type": "placeholder"},
        ],
    }
    assert evaluate_course_filter(course("CS", "3251"), both)
    assert not evaluate_course_filter(course("CS", "2201"), both)
    assert filter_specificity(both) == (88 + 70) / 2


def test_unknown_filter_never_matches() -> None:
    assert not evaluate_course_filter(course("CS", "1101"), {"type": "vibes"})
    assert not evaluate_course_filter(course("CS", "1101"), None)
    assert filter_specificity({"type": "vibes"}) == 0


def test_validate_filter_messages() -> None:
    assert validate_filter({"type": "subject_number", "subjects": ["CS"]}) is None
    assert validate_filter({"type": "placeholder"}) is None
    assert validate_filter({"type": "subject_number", "subjects": []}) == "subject_number filter must have at least one subject"
    assert (
        validate_filter({"type": "subject_number", "subjects": ["CS"], "numbers": [{"type": "specific", "values": []}]})
        == "specific number constraint must have at least one value"
    )
    assert validate_filter({"type": "attribute", "attributes": []}) == "attribute filter must have at least one attribute"
    assert validate_filter({"type": "composite", "operator": "OR", "filters": [{"type": "placeholder"}]}) == (
        "composite filter must have at least two sub-filters"
    )
    assert (
        validate_filter(
            {
                "type": "composite",
                "operator": "AND",
                "filters": [{"type": "placeholder"}, {"type": "course_list", "courses": []}],
            }
        )
        == "course_list filter must have at least one course"
    )
    assert validate_filter({"type": "vibes"}) == "unknown filter type"
    assert validate_filter("placeholder") == "filter must be an object"
