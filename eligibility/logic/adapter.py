"""
Data Adapter for the Eligibility Engine

Reads a lead and its collaborators (student, tests, co-applicant, selected
universities) and the active lenders from the production tables, and turns
them into the LeadProfile / LenderProfile contracts the engine consumes.

This is a pure READ + TRANSFORM layer:
- NO scoring logic
- NO DB writes
"""

import logging
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from eligibility.models import (
    Lead,
    LeadUniversity,
    University,
    Student,
    StudentTest,
    CoApplicant,
    Lender,
)
from .contracts import (
    LeadProfile,
    LenderProfile,
    UniversityChoice,
    StudentAcademics,
    ExamScore,
    CoApplicantFinancials,
)
from .config_store import load_lender_config
from .errors import LeadNotFoundError, MalformedLeadError

logger = logging.getLogger(__name__)


def _university_choices(db: Session, lead_id: str) -> List[UniversityChoice]:
    rows = db.execute(
        select(LeadUniversity, University)
        .outerjoin(University, LeadUniversity.university_id == University.id)
        .where(LeadUniversity.lead_id == lead_id)
        .order_by(LeadUniversity.position, LeadUniversity.id)
    ).all()

    choices = []
    for link, university in rows:
        if university is not None:
            choices.append(UniversityChoice(
                university_id=university.id,
                name=university.name,
                global_rank=university.global_rank,
            ))
        else:
            # custom entry: no id, no rank
            choices.append(UniversityChoice(name=link.custom_university_name))
    return choices


def _student_academics(db: Session, student_id: Optional[str]) -> StudentAcademics:
    if not student_id:
        return StudentAcademics()
    student = db.get(Student, student_id)
    if student is None:
        return StudentAcademics()

    tests = db.execute(
        select(StudentTest).where(StudentTest.student_id == student_id)
    ).scalars().all()

    return StudentAcademics(
        highest_qualification=student.highest_qualification,
        tenth_percentage=student.tenth_percentage,
        twelfth_percentage=student.twelfth_percentage,
        bachelors_percentage=student.bachelors_percentage,
        bachelors_cgpa=student.bachelors_cgpa,
        pin_code_tier=student.pin_code_tier,
        tests=[ExamScore(test_type=t.test_type, score=t.score) for t in tests],
    )


def _co_applicant(db: Session, co_applicant_id: Optional[str]) -> Optional[CoApplicantFinancials]:
    if not co_applicant_id:
        return None
    co = db.get(CoApplicant, co_applicant_id)
    if co is None:
        return None
    return CoApplicantFinancials(
        relationship=co.relationship,
        employment_type=co.employment_type,
        monthly_salary=co.monthly_salary,
        annual_salary=co.salary,
        employment_duration_years=co.employment_duration_years,
    )


def load_lead_profile(db: Session, lead_id: str) -> LeadProfile:
    """
    Build the scoring snapshot for one lead.

    Raises:
        LeadNotFoundError: no such lead
        MalformedLeadError: stored values do not fit the profile contract
            (e.g. an unknown study destination)
    """
    lead = db.get(Lead, lead_id)
    if lead is None:
        raise LeadNotFoundError(f"Lead {lead_id} not found")

    try:
        return LeadProfile(
            lead_id=lead.id,
            loan_amount=lead.loan_amount,
            study_destination=lead.study_destination,
            loan_type=lead.loan_type,
            loan_classification=lead.loan_classification,
            intake_month=lead.intake_month,
            intake_year=lead.intake_year,
            universities=_university_choices(db, lead.id),
            student=_student_academics(db, lead.student_id),
            co_applicant=_co_applicant(db, lead.co_applicant_id),
            bound_lender_id=lead.lender_id,
            status=lead.status,
        )
    except ValidationError as e:
        logger.warning(f"⚠️ Lead {lead_id} has malformed data: {e}")
        raise MalformedLeadError(f"Lead {lead_id} has malformed data: {e.errors()[0].get('msg')}") from e


def load_lender_profile(db: Session, lender: Lender) -> LenderProfile:
    return LenderProfile(
        lender_id=lender.id,
        name=lender.name,
        code=lender.code,
        loan_amount_min=lender.loan_amount_min,
        supported_destinations=lender.supported_destinations or [],
        preferred_rank=lender.preferred_rank,
        created_at=lender.created_at,
        config=load_lender_config(db, lender.id),
    )


def load_active_lenders(db: Session) -> List[LenderProfile]:
    """Active lenders with configuration read fresh for this computation."""
    lenders = db.execute(
        select(Lender)
        .where(Lender.is_active.is_(True))
        .order_by(Lender.created_at, Lender.id)
    ).scalars().all()
    return [load_lender_profile(db, lender) for lender in lenders]
