from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, JSON, Text

from .base import Base, new_id


class EligibilityScore(Base):
    __tablename__ = "eligibility_scores"

    id = Column(String(36), primary_key=True, default=new_id)
    lead_id = Column(String(36), ForeignKey("leads.id"), nullable=False, unique=True)
    lender_id = Column(String(36), ForeignKey("lenders.id"), nullable=True)

    # Component & overall scores
    university_score = Column(Integer)
    student_score = Column(Integer)
    co_applicant_score = Column(Integer)
    overall_score = Column(Integer, nullable=False)

    # Decision
    approval_status = Column(String, nullable=False)  # approved/conditional/rejected
    rejection_reason = Column(Text)

    # Band & tier
    loan_band_percentage = Column(String)
    eligible_loan_min = Column(Float)
    eligible_loan_max = Column(Float)
    rate_tier = Column(String)
    interest_rate_min = Column(Float)
    interest_rate_max = Column(Float)

    # Explainability
    university_breakdown = Column(JSON)
    student_breakdown = Column(JSON)
    co_applicant_breakdown = Column(JSON)

    # Governance
    calculation_version = Column(String)
    config_fingerprint = Column(String(64))
    calculated_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class LenderRecommendation(Base):
    __tablename__ = "lender_recommendations"

    id = Column(String(36), primary_key=True, default=new_id)
    lead_id = Column(String(36), ForeignKey("leads.id"), nullable=False, index=True)
    recommended_lender_id = Column(String(36), ForeignKey("lenders.id"), nullable=True)
    evaluations = Column(JSON, nullable=False)
    inputs_snapshot = Column(JSON)
    confidence_score = Column(Integer)
    needs_human_review = Column(Boolean, default=False, nullable=False)
    rationale = Column(Text)
    engine_version = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class LenderAssignmentHistory(Base):
    __tablename__ = "lender_assignment_history"

    id = Column(String(36), primary_key=True, default=new_id)
    lead_id = Column(String(36), ForeignKey("leads.id"), nullable=False, index=True)
    old_lender_id = Column(String(36), nullable=True)
    new_lender_id = Column(String(36), nullable=True)
    changed_by = Column(String(36), nullable=True)  # None = engine
    change_reason = Column(String)
    assignment_notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
