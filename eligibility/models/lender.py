from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, JSON

from .base import Base, new_id


class Lender(Base):
    __tablename__ = "lenders"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    code = Column(String, unique=True)
    is_active = Column(Boolean, default=True, nullable=False)
    preferred_rank = Column(Integer)
    loan_amount_min = Column(Float)
    supported_destinations = Column(JSON)  # list of destinations, empty/null = all
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class LenderConfigRecord(Base):
    __tablename__ = "lender_config"

    id = Column(String(36), primary_key=True, default=new_id)
    lender_id = Column(String(36), ForeignKey("lenders.id"), nullable=False, unique=True)

    max_loan_amount = Column(Float, nullable=False)
    loan_bands = Column(JSON, nullable=False)
    rate_config = Column(JSON, nullable=False)
    university_grade_mapping = Column(JSON)
    score_weights = Column(JSON)  # optional per-lender override
    allow_default_university_grade = Column(Boolean, default=True, nullable=False)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    updated_by = Column(String(36))


class ScoreWeightsRecord(Base):
    __tablename__ = "score_weights"

    # singleton row
    id = Column(Integer, primary_key=True, default=1)
    university_weight = Column(Integer, nullable=False)
    student_weight = Column(Integer, nullable=False)
    co_applicant_weight = Column(Integer, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    updated_by = Column(String(36))
