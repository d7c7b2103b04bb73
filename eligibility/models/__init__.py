# Export all eligibility models for easy imports
from .base import Base
from .applicant import University, Student, StudentTest, CoApplicant
from .lead import Lead, LeadUniversity
from .lender import Lender, LenderConfigRecord, ScoreWeightsRecord
from .scoring import EligibilityScore, LenderRecommendation, LenderAssignmentHistory

__all__ = [
    "Base",
    "University",
    "Student",
    "StudentTest",
    "CoApplicant",
    "Lead",
    "LeadUniversity",
    "Lender",
    "LenderConfigRecord",
    "ScoreWeightsRecord",
    "EligibilityScore",
    "LenderRecommendation",
    "LenderAssignmentHistory",
]
