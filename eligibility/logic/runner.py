"""
Engine Runner

Orchestrates one lead's eligibility pipeline:
1. Loads the lead profile, global weights and active lenders (fresh)
2. Ranks lenders via the pure engine
3. Upserts the lead's EligibilityScore
4. Appends the recommendation snapshot
5. Rebinds the lead to the top lender and records the assignment

Also hosts the admin reassignment path and the read-side staleness check.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db import session_scope
from eligibility.config import EngineSettings, load_settings
from eligibility.models import (
    Lead,
    Lender,
    EligibilityScore,
    LenderRecommendation,
    LenderAssignmentHistory,
)
from .adapter import load_lead_profile, load_active_lenders
from .aggregator import aggregate_scores
from .component_scorers import score_components
from .config_store import (
    load_score_weights,
    load_lender_config,
    approval_policy_from_settings,
    default_lender_config,
)
from .contracts import (
    LeadProfile,
    ScoreWeights,
    ApprovalPolicy,
    ComponentScores,
    LenderEvaluation,
    RecommendationResult,
    config_fingerprint,
)
from .constants import ApprovalStatus, ENGINE_VERSION, ENGINE_ASSIGNMENT_REASON
from .errors import (
    EngineError,
    LeadNotFoundError,
    LenderNotFoundError,
    NoActiveLendersError,
    TransientError,
)
from .ranker import rank_lenders, best_scored_evaluation

logger = logging.getLogger(__name__)


# =============================================================================
# PERSISTENCE HELPERS
# =============================================================================

def _upsert_score(db: Session, lead_id: str, values: Dict[str, Any]) -> EligibilityScore:
    row = db.execute(
        select(EligibilityScore).where(EligibilityScore.lead_id == lead_id)
    ).scalar_one_or_none()
    if row is None:
        row = EligibilityScore(lead_id=lead_id)
        db.add(row)
    for key, value in values.items():
        setattr(row, key, value)
    return row


def _component_columns(components: ComponentScores) -> Dict[str, Any]:
    return {
        "university_score": components.university.score,
        "student_score": components.student.score,
        "co_applicant_score": components.co_applicant.score,
        "university_breakdown": components.university.breakdown or {"invalid_reason": components.university.invalid_reason},
        "student_breakdown": components.student.breakdown,
        "co_applicant_breakdown": components.co_applicant.breakdown or {"invalid_reason": components.co_applicant.invalid_reason},
    }


def _score_from_evaluation(evaluation: LenderEvaluation) -> Dict[str, Any]:
    values = _component_columns(evaluation.components)
    values.update({
        "lender_id": evaluation.lender_id,
        "overall_score": evaluation.score,
        "approval_status": evaluation.approval_status,
        "rejection_reason": evaluation.rejection_reason,
        "loan_band_percentage": evaluation.loan_band,
        "eligible_loan_min": evaluation.eligible_loan_min,
        "eligible_loan_max": evaluation.eligible_loan_max,
        "rate_tier": evaluation.rate_tier,
        "interest_rate_min": evaluation.interest_rate_min,
        "interest_rate_max": evaluation.interest_rate_max,
        "config_fingerprint": evaluation.config_fingerprint,
    })
    return values


def _baseline_score(
    profile: LeadProfile,
    result: RecommendationResult,
    weights: ScoreWeights,
    policy: ApprovalPolicy
) -> Dict[str, Any]:
    """Rejected record for a lead every lender excluded at the gates."""
    components = score_components(profile, None)
    aggregate = aggregate_scores(components, weights, policy)
    reasons = [e.rejection_reason for e in result.evaluations if e.rejection_reason]
    reason = "No eligible lender: " + "; ".join(reasons) if reasons else "No eligible lender"

    values = _component_columns(components)
    values.update({
        "lender_id": None,
        "overall_score": aggregate.overall_score,
        "approval_status": ApprovalStatus.REJECTED.value,
        "rejection_reason": reason,
        "loan_band_percentage": None,
        "eligible_loan_min": None,
        "eligible_loan_max": None,
        "rate_tier": None,
        "interest_rate_min": None,
        "interest_rate_max": None,
        "config_fingerprint": config_fingerprint(default_lender_config(), weights, policy),
    })
    return values


def _inputs_snapshot(profile: LeadProfile) -> Dict[str, Any]:
    co = profile.co_applicant
    return {
        "loan_amount": profile.loan_amount,
        "study_destination": profile.study_destination,
        "loan_type": profile.loan_type,
        "loan_classification": profile.loan_classification,
        "intake_month": profile.intake_month,
        "intake_year": profile.intake_year,
        "co_applicant_salary": (co.monthly_salary or co.annual_salary) if co else None,
        "timestamp": datetime.utcnow().isoformat(),
    }


def _record_assignment(
    db: Session,
    lead: Lead,
    new_lender_id: Optional[str],
    changed_by: Optional[str],
    reason: str,
    notes: Optional[str] = None
) -> LenderAssignmentHistory:
    history = LenderAssignmentHistory(
        lead_id=lead.id,
        old_lender_id=lead.lender_id,
        new_lender_id=new_lender_id,
        changed_by=changed_by,
        change_reason=reason,
        assignment_notes=notes,
    )
    db.add(history)
    lead.lender_id = new_lender_id
    lead.updated_at = datetime.utcnow()
    return history


# =============================================================================
# PIPELINE
# =============================================================================

def compute_recommendation(
    db: Session,
    lead_id: str,
    settings: Optional[EngineSettings] = None
) -> RecommendationResult:
    """
    Run the full pipeline for one lead and persist its outcome.

    Args:
        db: Open session; the caller owns commit/rollback
        lead_id: Lead to score
        settings: Engine policy; read from the environment when omitted

    Returns:
        RecommendationResult with every evaluated lender

    Raises:
        LeadNotFoundError: no such lead
        MalformedLeadError: lead data fails the profile contract
        NoActiveLendersError: nothing to rank against
        ConfigurationError: weights or a lender's stored config are invalid
        TransientError: database failure while loading or persisting
    """
    settings = settings or load_settings()
    policy = approval_policy_from_settings(settings)

    try:
        profile = load_lead_profile(db, lead_id)
        weights = load_score_weights(db)
        lenders = load_active_lenders(db)
    except SQLAlchemyError as e:
        raise TransientError(f"Failed to load data for lead {lead_id}: {e}") from e

    if not lenders:
        raise NoActiveLendersError("No active lenders to evaluate")

    logger.info(f"🚀 Computing eligibility for lead {lead_id} against {len(lenders)} lenders")
    result = rank_lenders(profile, lenders, weights, policy, settings.human_review_below)

    best = best_scored_evaluation(result)
    if best is not None:
        score_values = _score_from_evaluation(best)
    else:
        score_values = _baseline_score(profile, result, weights, policy)
    score_values.update({
        "calculation_version": ENGINE_VERSION,
        "calculated_at": result.computed_at,
    })

    try:
        _upsert_score(db, lead_id, score_values)

        db.add(LenderRecommendation(
            lead_id=lead_id,
            recommended_lender_id=result.top_lender_id,
            evaluations=[e.model_dump(mode="json") for e in result.evaluations],
            inputs_snapshot=_inputs_snapshot(profile),
            confidence_score=result.confidence_score,
            needs_human_review=result.needs_human_review,
            rationale=result.rationale,
            engine_version=result.engine_version,
        ))

        if result.top_lender_id and result.top_lender_id != profile.bound_lender_id:
            lead = db.get(Lead, lead_id)
            _record_assignment(db, lead, result.top_lender_id, None, ENGINE_ASSIGNMENT_REASON)
            logger.info(f"🔁 Lead {lead_id} rebound: {profile.bound_lender_id} -> {result.top_lender_id}")

        db.flush()
    except SQLAlchemyError as e:
        raise TransientError(f"Failed to persist eligibility for lead {lead_id}: {e}") from e

    top = result.top
    if top:
        logger.info(f"🏆 Lead {lead_id}: top lender {top.lender_name} score={top.score} tier={top.rate_tier}")
    else:
        logger.info(f"🚫 Lead {lead_id}: no eligible lender ({score_values['rejection_reason']})")

    return result


def recompute_lead(
    lead_id: str,
    session_factory: Optional[Callable[[], Session]] = None,
    settings: Optional[EngineSettings] = None
) -> Optional[RecommendationResult]:
    """
    Fire-and-forget recompute in its own session.

    Failures are logged and swallowed; the caller never sees them.
    """
    try:
        with session_scope(session_factory) as db:
            return compute_recommendation(db, lead_id, settings)
    except EngineError as e:
        logger.error(f"❌ Background recompute failed for lead {lead_id}: {e}")
    except SQLAlchemyError as e:
        logger.error(f"❌ Background recompute failed for lead {lead_id} (database): {e}")
    return None


# =============================================================================
# ADMIN REASSIGNMENT
# =============================================================================

def reassign_lender(
    db: Session,
    lead_id: str,
    new_lender_id: str,
    changed_by: str,
    change_reason: Optional[str] = None,
    assignment_notes: Optional[str] = None
) -> LenderAssignmentHistory:
    """
    Manually bind a lead to a lender and append the assignment history.

    Raises:
        LeadNotFoundError / LenderNotFoundError
    """
    lead = db.get(Lead, lead_id)
    if lead is None:
        raise LeadNotFoundError(f"Lead {lead_id} not found")
    lender = db.get(Lender, new_lender_id)
    if lender is None or not lender.is_active:
        raise LenderNotFoundError(f"Lender {new_lender_id} not found or inactive")

    history = _record_assignment(
        db, lead, new_lender_id, changed_by, change_reason or "manual_reassignment", assignment_notes
    )
    db.flush()
    logger.info(f"👤 Lead {lead_id} reassigned to lender {lender.name} by {changed_by}")
    return history


def assignment_history(db: Session, lead_id: str) -> List[LenderAssignmentHistory]:
    return db.execute(
        select(LenderAssignmentHistory)
        .where(LenderAssignmentHistory.lead_id == lead_id)
        .order_by(LenderAssignmentHistory.created_at, LenderAssignmentHistory.id)
    ).scalars().all()


# =============================================================================
# READ SIDE
# =============================================================================

def get_current_eligibility(
    db: Session,
    lead_id: str,
    settings: Optional[EngineSettings] = None
) -> Optional[Dict[str, Any]]:
    """
    The stored EligibilityScore for a lead plus a staleness flag.

    A score is stale when it was computed by another engine version or when
    the configuration it was computed under (lender config, effective
    weights, approval policy) has changed since. Stored values are returned
    as computed.

    Returns:
        Serialized score with ``stale``, or None when the lead was never scored
    """
    if db.get(Lead, lead_id) is None:
        raise LeadNotFoundError(f"Lead {lead_id} not found")

    row = db.execute(
        select(EligibilityScore).where(EligibilityScore.lead_id == lead_id)
    ).scalar_one_or_none()
    if row is None:
        return None

    policy = approval_policy_from_settings(settings)
    weights = load_score_weights(db)
    if row.lender_id:
        config = load_lender_config(db, row.lender_id)
        current = config_fingerprint(config, config.score_weights or weights, policy)
    else:
        current = config_fingerprint(default_lender_config(), weights, policy)

    stale = row.calculation_version != ENGINE_VERSION or row.config_fingerprint != current

    return {
        "lead_id": row.lead_id,
        "lender_id": row.lender_id,
        "university_score": row.university_score,
        "student_score": row.student_score,
        "co_applicant_score": row.co_applicant_score,
        "overall_score": row.overall_score,
        "approval_status": row.approval_status,
        "rejection_reason": row.rejection_reason,
        "loan_band_percentage": row.loan_band_percentage,
        "eligible_loan_min": row.eligible_loan_min,
        "eligible_loan_max": row.eligible_loan_max,
        "rate_tier": row.rate_tier,
        "interest_rate_min": row.interest_rate_min,
        "interest_rate_max": row.interest_rate_max,
        "university_breakdown": row.university_breakdown,
        "student_breakdown": row.student_breakdown,
        "co_applicant_breakdown": row.co_applicant_breakdown,
        "calculation_version": row.calculation_version,
        "calculated_at": row.calculated_at.isoformat() if row.calculated_at else None,
        "stale": stale,
    }
