"""
Eligibility Engine Constants

Grade scores, point tables, default lender configuration and watch-lists used
by the scoring engine. All values are deterministic; policy values that admins
or deployments tune live in LenderConfig / EngineSettings instead.
"""

from enum import Enum
from typing import Dict, List, Tuple

ENGINE_VERSION = "1.0.0"

HUMAN_REVIEW_BELOW = 70
LOW_CONFIDENCE_RATIONALE = "Low confidence - human review recommended"

# =============================================================================
# ENUMS
# =============================================================================

class UniversityGrade(str, Enum):
    """Reputation grade a university maps to."""
    S = "S"
    A = "A"
    B = "B"
    C = "C"
    D = "D"


class RateTierName(str, Enum):
    """Closed set of interest-rate tier names, best first."""
    EXCELLENT = "excellent"
    GOOD = "good"
    AVERAGE = "average"
    BELOW_AVERAGE = "below_average"


class ApprovalStatus(str, Enum):
    APPROVED = "approved"
    CONDITIONAL = "conditional"
    REJECTED = "rejected"


class InsightVariant(str, Enum):
    EXCELLENT = "excellent"
    STRONG = "strong"
    GOOD = "good"
    EXPLORE = "explore"


# Ordinal used for "N steps higher" gap reasons
RATE_TIER_ORDER: Dict[str, int] = {tier.value: i for i, tier in enumerate(RateTierName)}

# =============================================================================
# UNIVERSITY SCORING
# =============================================================================

UNIVERSITY_GRADE_SCORES: Dict[str, int] = {
    "S": 95,
    "A": 80,
    "B": 65,
    "C": 50,
    "D": 35,
}

# (max global rank inclusive, grade) - checked in order
GLOBAL_RANK_GRADES: List[Tuple[int, str]] = [
    (20, "S"),
    (100, "A"),
    (300, "B"),
    (500, "C"),
]

# Unranked, custom or unknown universities
DEFAULT_UNIVERSITY_GRADE = "D"

# =============================================================================
# STUDENT SCORING
# =============================================================================

# marks per 10 percentage points, capped
TENTH_POINTS_PER_10_PERCENT = 1.0
TWELFTH_POINTS_PER_10_PERCENT = 1.5
BACHELORS_POINTS_PER_10_PERCENT = 1.5
MAX_TENTH_POINTS = 10
MAX_TWELFTH_POINTS = 15
MAX_BACHELORS_POINTS = 15

# CGPA on a 10-point scale -> percentage
CGPA_TO_PERCENT_FACTOR = 9.5

HIGHEST_QUALIFICATION_POINTS: Dict[str, int] = {
    "phd": 20,
    "masters": 16,
    "bachelors": 12,
    "diploma": 8,
}

PIN_CODE_TIER_POINTS: Dict[str, int] = {
    "tier1": 10,
    "tier2": 7,
    "tier3": 4,
}

# test type -> [(minimum score, points)], best band first
TEST_SCORE_BANDS: Dict[str, List[Tuple[float, int]]] = {
    "ielts": [(7.0, 10), (6.5, 7), (6.0, 5)],
    "toefl": [(100, 10), (80, 7), (60, 5)],
    "pte": [(65, 10), (58, 7), (50, 5)],
    "gre": [(320, 10), (300, 7), (280, 5)],
    "gmat": [(700, 10), (650, 7), (600, 5)],
}
MAX_TEST_POINTS = 10

STUDENT_MAX_POINTS = (
    MAX_TENTH_POINTS
    + MAX_TWELFTH_POINTS
    + MAX_BACHELORS_POINTS
    + max(HIGHEST_QUALIFICATION_POINTS.values())
    + max(PIN_CODE_TIER_POINTS.values())
    + MAX_TEST_POINTS
)

# =============================================================================
# CO-APPLICANT SCORING
# =============================================================================

# (minimum monthly salary, points), best band first
SALARY_BAND_POINTS: List[Tuple[float, int, str]] = [
    (100000, 40, "above_1_lakh"),
    (75000, 30, "75k_to_1_lakh"),
    (50000, 20, "50k_to_75k"),
    (0, 10, "below_50k"),
]

# (minimum annual income / loan amount, points)
INCOME_TO_LOAN_POINTS: List[Tuple[float, int]] = [
    (1.0, 20),
    (0.5, 15),
    (0.25, 10),
    (0.0, 5),
]

EMPLOYMENT_TYPE_POINTS: Dict[str, int] = {
    "salaried": 25,
    "government": 25,
    "self_employed": 20,
}
DEFAULT_EMPLOYMENT_POINTS = 10

# (minimum years in current employment, points)
EMPLOYMENT_DURATION_POINTS: List[Tuple[float, int]] = [
    (5, 15),
    (2, 10),
]
SOME_EMPLOYMENT_POINTS = 5

CO_APPLICANT_RELATIONSHIP_POINTS: Dict[str, int] = {
    "father": 25,
    "mother": 25,
    "parent": 25,
    "brother": 20,
    "sister": 20,
    "sibling": 20,
    "spouse": 15,
    "guardian": 10,
    "other": 10,
}
DEFAULT_RELATIONSHIP_POINTS = 10

CO_APPLICANT_MAX_POINTS = (
    SALARY_BAND_POINTS[0][1]
    + INCOME_TO_LOAN_POINTS[0][1]
    + max(EMPLOYMENT_TYPE_POINTS.values())
    + EMPLOYMENT_DURATION_POINTS[0][1]
    + max(CO_APPLICANT_RELATIONSHIP_POINTS.values())
)

STRONG_INCOME_MONTHLY = 75000

# preferred_rank at or below this is tagged as a priority lender
PRIORITY_LENDER_MAX_RANK = 3

# =============================================================================
# DEFAULT LENDER CONFIGURATION
# =============================================================================

DEFAULT_MAX_LOAN_AMOUNT = 5000000

DEFAULT_LOAN_BANDS = [
    {"label": "90-100", "score_min": 90, "score_max": 100, "min_percent": 90, "max_percent": 100},
    {"label": "75-89", "score_min": 75, "score_max": 89, "min_percent": 75, "max_percent": 89},
    {"label": "60-74", "score_min": 60, "score_max": 74, "min_percent": 60, "max_percent": 74},
    {"label": "0-59", "score_min": 0, "score_max": 59, "min_percent": 0, "max_percent": 59},
]

DEFAULT_RATE_CONFIG = [
    {"tier": "excellent", "min_rate": 11.0, "max_rate": 12.0, "score_threshold": 90},
    {"tier": "good", "min_rate": 12.0, "max_rate": 13.5, "score_threshold": 75},
    {"tier": "average", "min_rate": 13.5, "max_rate": 15.0, "score_threshold": 60},
    {"tier": "below_average", "min_rate": 15.0, "max_rate": 16.0, "score_threshold": 0},
]

DEFAULT_SCORE_WEIGHTS = {
    "university_weight": 30,
    "student_weight": 40,
    "co_applicant_weight": 30,
}

SCORE_MIN = 0
SCORE_MAX = 100

# =============================================================================
# TRIGGER & BATCH
# =============================================================================

RECOMMENDATION_TRIGGER_FIELDS = (
    "loan_amount",
    "study_destination",
    "loan_type",
    "loan_classification",
    "intake_month",
    "intake_year",
)

TERMINAL_LEAD_STATUSES = ("disbursed", "rejected", "withdrawn")

ENGINE_ASSIGNMENT_REASON = "engine_recommendation"
