"""Specificity weights used to rank requirement matches.

Higher scores mean a rule or filter targets a narrower set of courses. The
numbers only matter relative to each other: when one course matches several
requirements, the assigner prefers the highest score.
"""

# Rule scores
TAKE_COURSES_SCORE = 100
TAKE_FROM_LIST_SCORE = 80
MAX_SPECIFICITY = 100  # score given to an AND group with no sub-rules

# placeholder / any
PLACEHOLDER_SCORE = 10

# subject_number
SUBJECT_NUMBER_BASE = 50
SUBJECT_NUMBER_SPECIFIC_BONUS = 25
SUBJECT_NUMBER_RANGE_BONUS = 15
SUBJECT_NUMBER_SINGLE_SUBJECT_BONUS = 5

# attribute
ATTRIBUTE_BASE = 40
ATTRIBUTE_EXCLUSION_BONUS = 10
ATTRIBUTE_PENALTY_PER_EXTRA = 3
ATTRIBUTE_MAX_PENALTY = 15

# course_list
COURSE_LIST_BASE = 85
COURSE_LIST_SINGLE_BONUS = 5
COURSE_LIST_SHORT_BONUS = 3
COURSE_LIST_SHORT_SIZE = 10

# course_number_suffix
SUFFIX_BASE = 45
SUFFIX_SUBJECT_SCOPE_BONUS = 5
SUFFIX_SUBJECT_SCOPE_MAX = 2
SUFFIX_SINGLE_BONUS = 5
SUFFIX_CAP = 60

# number_attribute
NUMBER_ATTRIBUTE_BASE = 55
NUMBER_ATTRIBUTE_SUBJECT_SCOPE_BONUS = 5
NUMBER_ATTRIBUTE_PENALTY_PER_EXTRA = 2
NUMBER_ATTRIBUTE_MAX_PENALTY = 10
NUMBER_ATTRIBUTE_SPECIFIC_BONUS = 10
NUMBER_ATTRIBUTE_CAP = 75

# composite
COMPOSITE_OR_CAP = 70
