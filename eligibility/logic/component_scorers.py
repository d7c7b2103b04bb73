"""
Component Scorers

Independent scoring functions for the three eligibility components.
Each scorer produces an integer score between 0 and 100 plus a breakdown of
the raw signals behind it. Scorers are pure: no I/O, no dependency on each
other. Missing optional data lowers the score; only a missing required field
(university selection, loan amount) yields an invalid marker.
"""

import math
from typing import Dict, Optional, Tuple

from .contracts import (
    LeadProfile,
    LenderConfig,
    ComponentScore,
    ComponentScores,
    CoApplicantFinancials,
    StudentAcademics,
)
from .constants import (
    UNIVERSITY_GRADE_SCORES,
    GLOBAL_RANK_GRADES,
    DEFAULT_UNIVERSITY_GRADE,
    TENTH_POINTS_PER_10_PERCENT,
    TWELFTH_POINTS_PER_10_PERCENT,
    BACHELORS_POINTS_PER_10_PERCENT,
    MAX_TENTH_POINTS,
    MAX_TWELFTH_POINTS,
    MAX_BACHELORS_POINTS,
    CGPA_TO_PERCENT_FACTOR,
    HIGHEST_QUALIFICATION_POINTS,
    PIN_CODE_TIER_POINTS,
    TEST_SCORE_BANDS,
    STUDENT_MAX_POINTS,
    SALARY_BAND_POINTS,
    INCOME_TO_LOAN_POINTS,
    EMPLOYMENT_TYPE_POINTS,
    DEFAULT_EMPLOYMENT_POINTS,
    EMPLOYMENT_DURATION_POINTS,
    SOME_EMPLOYMENT_POINTS,
    CO_APPLICANT_RELATIONSHIP_POINTS,
    DEFAULT_RELATIONSHIP_POINTS,
    CO_APPLICANT_MAX_POINTS,
    SCORE_MAX,
)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for non-negative values."""
    return int(math.floor(value + 0.5))


def _clamp(score: float) -> int:
    return max(0, min(SCORE_MAX, round_half_up(score)))


# =============================================================================
# UNIVERSITY
# =============================================================================

def grade_for_rank(global_rank: Optional[int]) -> Optional[str]:
    """Map a global ranking position to a grade, None when unranked."""
    if not global_rank:
        return None
    for max_rank, grade in GLOBAL_RANK_GRADES:
        if global_rank <= max_rank:
            return grade
    return DEFAULT_UNIVERSITY_GRADE


def resolve_university_grade(
    profile: LeadProfile,
    config: Optional[LenderConfig] = None
) -> Tuple[Optional[str], str]:
    """
    Resolve the primary university's grade.

    Returns:
        (grade, source) where source is "lender_mapping", "global_rank" or
        "default". grade is None only when the lead lists no university.
    """
    primary = profile.primary_university
    if primary is None:
        return None, "missing"

    mapping = config.university_grade_mapping if config else {}
    if primary.university_id and primary.university_id in mapping:
        return mapping[primary.university_id], "lender_mapping"

    ranked_grade = grade_for_rank(primary.global_rank)
    if ranked_grade:
        return ranked_grade, "global_rank"

    return DEFAULT_UNIVERSITY_GRADE, "default"


def score_university(
    profile: LeadProfile,
    config: Optional[LenderConfig] = None
) -> ComponentScore:
    """
    Score the primary university's reputation tier.

    The lender's university_grade_mapping overrides the rank-derived grade,
    so this component can differ between lenders for the same lead.
    """
    grade, source = resolve_university_grade(profile, config)
    if grade is None:
        return ComponentScore(
            component="university",
            invalid_reason="No university selected for this lead",
        )

    primary = profile.primary_university
    return ComponentScore(
        component="university",
        score=UNIVERSITY_GRADE_SCORES[grade],
        breakdown={
            "university_id": primary.university_id,
            "university_name": primary.name,
            "global_rank": primary.global_rank,
            "grade": grade,
            "grade_source": source,
            "grade_score": UNIVERSITY_GRADE_SCORES[grade],
        },
    )


# =============================================================================
# STUDENT
# =============================================================================

def _percentage_points(percentage: Optional[float], per_10_percent: float, cap: int) -> float:
    if not percentage:
        return 0.0
    return min(cap, (percentage / 10.0) * per_10_percent)


def _best_test_points(student: StudentAcademics) -> Tuple[int, Optional[str]]:
    best_points, best_test = 0, None
    for test in student.tests:
        bands = TEST_SCORE_BANDS.get(test.test_type.strip().lower())
        if not bands:
            continue
        for minimum, points in bands:
            if test.score >= minimum:
                if points > best_points:
                    best_points, best_test = points, test.test_type
                break
    return best_points, best_test


def score_student(profile: LeadProfile) -> ComponentScore:
    """
    Score academic strength from marks, qualification, pin-code tier and tests.

    Every signal is optional. Raw points are normalized against the maximum
    attainable, so a complete top profile scores 100.
    """
    student = profile.student

    bachelors_percentage = student.bachelors_percentage
    if bachelors_percentage is None and student.bachelors_cgpa:
        bachelors_percentage = min(100.0, student.bachelors_cgpa * CGPA_TO_PERCENT_FACTOR)

    qualification = (student.highest_qualification or "").strip().lower()
    pin_tier = (student.pin_code_tier or "").strip().lower().replace(" ", "")
    test_points, best_test = _best_test_points(student)

    points: Dict[str, float] = {
        "tenth": _percentage_points(student.tenth_percentage, TENTH_POINTS_PER_10_PERCENT, MAX_TENTH_POINTS),
        "twelfth": _percentage_points(student.twelfth_percentage, TWELFTH_POINTS_PER_10_PERCENT, MAX_TWELFTH_POINTS),
        "bachelors": _percentage_points(bachelors_percentage, BACHELORS_POINTS_PER_10_PERCENT, MAX_BACHELORS_POINTS),
        "qualification": HIGHEST_QUALIFICATION_POINTS.get(qualification, 0),
        "pin_code": PIN_CODE_TIER_POINTS.get(pin_tier, 0),
        "test_bonus": test_points,
    }
    raw_points = sum(points.values())

    return ComponentScore(
        component="student",
        score=_clamp(raw_points * 100.0 / STUDENT_MAX_POINTS),
        breakdown={
            "academic": round(points["tenth"] + points["twelfth"] + points["bachelors"], 2),
            "qualification": points["qualification"],
            "pin_code": points["pin_code"],
            "test_bonus": points["test_bonus"],
            "best_test": best_test,
            "raw_points": round(raw_points, 2),
            "max_points": STUDENT_MAX_POINTS,
        },
    )


# =============================================================================
# CO-APPLICANT
# =============================================================================

def _monthly_salary(co_applicant: Optional[CoApplicantFinancials]) -> float:
    if co_applicant is None:
        return 0.0
    if co_applicant.monthly_salary:
        return co_applicant.monthly_salary
    if co_applicant.annual_salary:
        return co_applicant.annual_salary / 12.0
    return 0.0


def score_co_applicant(profile: LeadProfile) -> ComponentScore:
    """
    Score co-applicant financial strength.

    Combines salary band, annual-income-to-loan ratio, employment type,
    employment duration and relationship to the student, normalized to 0-100
    against the maximum raw points. No salary scores 0 (the component is not skipped).
    A missing loan amount is an invalid marker since the ratio is undefined.
    """
    if not profile.loan_amount:
        return ComponentScore(
            component="co_applicant",
            invalid_reason="Loan amount is missing",
        )

    co_applicant = profile.co_applicant
    monthly = _monthly_salary(co_applicant)
    if monthly <= 0:
        return ComponentScore(
            component="co_applicant",
            score=0,
            breakdown={"salary": 0, "reason": "co-applicant salary missing"},
        )

    salary_points, salary_band = 0, None
    for minimum, points, band in SALARY_BAND_POINTS:
        if monthly >= minimum:
            salary_points, salary_band = points, band
            break

    ratio = (monthly * 12.0) / profile.loan_amount
    ratio_points = 0
    for minimum, points in INCOME_TO_LOAN_POINTS:
        if ratio >= minimum:
            ratio_points = points
            break

    employment_type = (co_applicant.employment_type or "").strip().lower().replace("-", "_")
    employment_points = EMPLOYMENT_TYPE_POINTS.get(employment_type, DEFAULT_EMPLOYMENT_POINTS)

    years = co_applicant.employment_duration_years or 0
    duration_points = 0
    for minimum, points in EMPLOYMENT_DURATION_POINTS:
        if years >= minimum:
            duration_points = points
            break
    else:
        if years > 0:
            duration_points = SOME_EMPLOYMENT_POINTS

    relationship = (co_applicant.relationship or "").strip().lower()
    relationship_points = 0
    if relationship:
        relationship_points = CO_APPLICANT_RELATIONSHIP_POINTS.get(relationship, DEFAULT_RELATIONSHIP_POINTS)

    total = salary_points + ratio_points + employment_points + duration_points + relationship_points

    return ComponentScore(
        component="co_applicant",
        score=_clamp(total * 100.0 / CO_APPLICANT_MAX_POINTS),
        breakdown={
            "relationship": co_applicant.relationship,
            "relationship_points": relationship_points,
            "monthly_salary": monthly,
            "salary_band": salary_band,
            "salary": salary_points,
            "income_to_loan_ratio": round(ratio, 4),
            "income_ratio": ratio_points,
            "employment": employment_points,
            "employment_duration": duration_points,
            "raw_points": total,
            "max_points": CO_APPLICANT_MAX_POINTS,
        },
    )


def score_components(
    profile: LeadProfile,
    config: Optional[LenderConfig] = None
) -> ComponentScores:
    """Run all three scorers for one lead against one lender's configuration."""
    return ComponentScores(
        university=score_university(profile, config),
        student=score_student(profile),
        co_applicant=score_co_applicant(profile),
    )
