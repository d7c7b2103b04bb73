from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey

from .base import Base, new_id


class Lead(Base):
    __tablename__ = "leads"

    id = Column(String(36), primary_key=True, default=new_id)
    case_id = Column(String, index=True)
    student_id = Column(String(36), ForeignKey("students.id"))
    co_applicant_id = Column(String(36), ForeignKey("co_applicants.id"))
    lender_id = Column(String(36), ForeignKey("lenders.id"), nullable=True)

    # Loan request
    loan_amount = Column(Float)
    loan_type = Column(String)  # secured/unsecured
    loan_classification = Column(String)
    study_destination = Column(String)
    intake_month = Column(Integer)
    intake_year = Column(Integer)

    status = Column(String, nullable=False, default="new")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class LeadUniversity(Base):
    __tablename__ = "lead_universities"

    id = Column(String(36), primary_key=True, default=new_id)
    lead_id = Column(String(36), ForeignKey("leads.id"), nullable=False, index=True)
    university_id = Column(String(36), ForeignKey("universities.id"), nullable=True)
    custom_university_name = Column(String)  # free-text entry, never graded
    position = Column(Integer, nullable=False, default=0)  # 0 = primary
