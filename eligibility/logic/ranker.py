"""
Lender Ranker

Evaluates every active lender for a lead, excludes lenders that fail a hard
gate (with a recorded reason), scores the rest per lender, ranks them and
explains the gap between each runner-up and the top pick.
"""

from datetime import datetime
from typing import Dict, List, Optional, Tuple

from .contracts import (
    LeadProfile,
    LenderProfile,
    ScoreWeights,
    ApprovalPolicy,
    ComponentScores,
    LenderEvaluation,
    RecommendationResult,
    config_fingerprint,
)
from .component_scorers import score_components, resolve_university_grade
from .aggregator import aggregate_scores
from .resolver import resolve_band, resolve_rate_tier
from .constants import (
    ApprovalStatus,
    RateTierName,
    RATE_TIER_ORDER,
    STRONG_INCOME_MONTHLY,
    PRIORITY_LENDER_MAX_RANK,
    HUMAN_REVIEW_BELOW,
    LOW_CONFIDENCE_RATIONALE,
)

_STEP_WORDS = {1: "one step", 2: "two steps", 3: "three steps"}


# =============================================================================
# HARD GATES
# =============================================================================

def check_gates(profile: LeadProfile, lender: LenderProfile) -> Optional[Tuple[str, str]]:
    """
    Return (code, message) for the first hard gate the lead fails, else None.

    Gates: loan amount within the lender's range, study destination
    supported, university graded (or default grading allowed).
    """
    config = lender.config
    amount = profile.loan_amount

    if amount:
        if amount > config.max_loan_amount:
            return (
                "LOAN_AMOUNT_EXCEEDS_MAX",
                f"Requested amount {amount:,.0f} exceeds {lender.name}'s maximum of {config.max_loan_amount:,.0f}",
            )
        if lender.loan_amount_min and amount < lender.loan_amount_min:
            return (
                "LOAN_AMOUNT_BELOW_MIN",
                f"Requested amount {amount:,.0f} is below {lender.name}'s minimum of {lender.loan_amount_min:,.0f}",
            )

    if lender.supported_destinations and profile.study_destination:
        supported = {d.lower() for d in lender.supported_destinations}
        if profile.study_destination.lower() not in supported:
            return (
                "DESTINATION_NOT_SUPPORTED",
                f"{lender.name} does not fund study in {profile.study_destination}",
            )

    if not config.allow_default_university_grade:
        _, source = resolve_university_grade(profile, config)
        if source == "default":
            return (
                "UNIVERSITY_NOT_GRADED",
                f"{lender.name} has no grade for the selected university",
            )

    return None


# =============================================================================
# FACTORS
# =============================================================================

def collect_factors(
    profile: LeadProfile,
    lender: LenderProfile,
    components: ComponentScores,
    rate_tier: Optional[str]
) -> Tuple[List[str], List[str]]:
    """Raw factor tags (matched rules, risk flags) for the humanizer."""
    factors: List[str] = []
    risks: List[str] = []
    config = lender.config

    if profile.loan_amount:
        factors.append("Loan amount within range")
        if profile.loan_amount <= config.max_loan_amount * 0.5:
            factors.append("Good loan headroom available")
        else:
            factors.append("Sufficient loan capacity")

    if not lender.supported_destinations:
        factors.append("DESTINATION_PREFERENCES_NONE")
    elif profile.study_destination:
        factors.append("Preferred destination")

    uni = components.university.breakdown
    if uni.get("grade") in ("S", "A"):
        factors.append("UNIVERSITY_TIER_1_PREFERRED")
    elif uni.get("grade_source") == "lender_mapping":
        factors.append("UNIVERSITY_ACCEPTED")
    if uni.get("grade_source") == "default":
        risks.append("UNIVERSITY_NOT_RANKED")

    if components.student.value >= 70:
        factors.append("Strong academic profile")
    elif components.student.value < 40:
        risks.append("Academic profile below expectations")

    co = components.co_applicant
    if not co.is_invalid:
        monthly = co.breakdown.get("monthly_salary") or 0
        if not monthly:
            risks.append("Co-applicant income missing")
        elif monthly >= STRONG_INCOME_MONTHLY:
            factors.append("Strong income profile")
        elif co.breakdown.get("income_ratio", 0) >= 15:
            factors.append("Income meets expectations")
        else:
            risks.append("Income below expectations")

    employment = ((profile.co_applicant.employment_type if profile.co_applicant else None) or "").lower()
    if employment == "salaried":
        factors.append("Salaried employment")
    elif employment == "government":
        factors.append("Government employment")
    elif employment in ("self_employed", "self-employed"):
        factors.append("Self-employed")

    if lender.preferred_rank is not None and lender.preferred_rank <= PRIORITY_LENDER_MAX_RANK:
        factors.append("PRIORITY_LENDER")

    if rate_tier == RateTierName.EXCELLENT.value:
        factors.append("Competitive interest rate")
    elif rate_tier == RateTierName.BELOW_AVERAGE.value:
        risks.append("Higher interest rate")

    return factors, risks


# =============================================================================
# EVALUATION
# =============================================================================

def evaluate_lender(
    profile: LeadProfile,
    lender: LenderProfile,
    weights: ScoreWeights,
    policy: ApprovalPolicy
) -> LenderEvaluation:
    """
    Gate, score and resolve one lender for one lead.

    Scoring is per lender: the university grade mapping and weight override
    may differ between lenders.
    """
    gate = check_gates(profile, lender)
    if gate:
        code, message = gate
        return LenderEvaluation(
            lender_id=lender.lender_id,
            lender_name=lender.name,
            eligible=False,
            exclusion_code=code,
            rejection_reason=message,
            max_loan_amount=lender.config.max_loan_amount,
            risk_flags=[code],
        )

    config = lender.config
    effective_weights = config.score_weights or weights

    components = score_components(profile, config)
    aggregate = aggregate_scores(components, effective_weights, policy)
    band = resolve_band(config, aggregate.overall_score, profile.loan_amount)
    tier = resolve_rate_tier(config, aggregate.overall_score)
    factors, risks = collect_factors(profile, lender, components, tier.tier)

    return LenderEvaluation(
        lender_id=lender.lender_id,
        lender_name=lender.name,
        eligible=aggregate.approval_status != ApprovalStatus.REJECTED.value,
        score=aggregate.overall_score,
        approval_status=aggregate.approval_status,
        rejection_reason=aggregate.rejection_reason,
        loan_band=band.label,
        eligible_loan_min=band.eligible_loan_min,
        eligible_loan_max=band.eligible_loan_max,
        rate_tier=tier.tier,
        interest_rate_min=tier.min_rate,
        interest_rate_max=tier.max_rate,
        max_loan_amount=config.max_loan_amount,
        factors=factors,
        risk_flags=risks,
        components=components,
        config_fingerprint=config_fingerprint(config, effective_weights, policy),
    )


# =============================================================================
# RANKING
# =============================================================================

def _lender_order(lender: LenderProfile) -> Tuple[float, datetime]:
    """Lender preference: preferred_rank (unranked last), then creation time."""
    rank = lender.preferred_rank if lender.preferred_rank is not None else float("inf")
    return rank, lender.created_at or datetime.max


def _ranking_key(evaluation: LenderEvaluation, order: Dict[str, Tuple[float, datetime]]):
    return (
        -(evaluation.score or 0),
        evaluation.rate_midpoint if evaluation.rate_midpoint is not None else float("inf"),
        order.get(evaluation.lender_id, (float("inf"), datetime.max)),
        evaluation.lender_id,
    )


def _tier_steps(top_tier: Optional[str], tier: Optional[str]) -> int:
    if top_tier is None or tier is None:
        return 0
    return RATE_TIER_ORDER.get(tier, 0) - RATE_TIER_ORDER.get(top_tier, 0)


def gap_reason(top: LenderEvaluation, evaluation: LenderEvaluation) -> str:
    """
    Short reason why an evaluated lender ranks below the top pick.

    Eligible runners-up are diffed against the winner's score and rate tier;
    excluded or rejected lenders carry their exclusion reason.
    """
    if not evaluation.eligible:
        return evaluation.rejection_reason or "Not eligible"

    parts = []
    score_gap = (top.score or 0) - (evaluation.score or 0)
    if score_gap > 0:
        parts.append(f"score {score_gap} point{'s' if score_gap != 1 else ''} below top pick")

    steps = _tier_steps(top.rate_tier, evaluation.rate_tier)
    if steps > 0:
        parts.append(f"rate tier {_STEP_WORDS.get(steps, f'{steps} steps')} higher")
    elif score_gap == 0:
        midpoint_gap = (evaluation.rate_midpoint or 0) - (top.rate_midpoint or 0)
        if midpoint_gap > 0:
            parts.append(f"rate midpoint {midpoint_gap:.2f}% higher")

    return "; ".join(parts) if parts else "equal terms, ranked after top pick by lender order"


def rank_evaluations(
    evaluations: List[LenderEvaluation],
    lenders: List[LenderProfile]
) -> List[LenderEvaluation]:
    """
    Order evaluations: eligible lenders ranked by score desc, rate midpoint
    asc, then preferred rank, lender creation order and id; then
    scored-but-rejected lenders; then gated lenders. Only eligible lenders
    receive a rank.
    """
    order = {lender.lender_id: _lender_order(lender) for lender in lenders}

    eligible = sorted((e for e in evaluations if e.eligible), key=lambda e: _ranking_key(e, order))
    rejected = sorted(
        (e for e in evaluations if not e.eligible and e.score is not None),
        key=lambda e: _ranking_key(e, order),
    )
    gated = sorted(
        (e for e in evaluations if not e.eligible and e.score is None),
        key=lambda e: (order.get(e.lender_id, (float("inf"), datetime.max)), e.lender_id),
    )

    for position, evaluation in enumerate(eligible, start=1):
        evaluation.rank = position

    return eligible + rejected + gated


def rank_lenders(
    profile: LeadProfile,
    lenders: List[LenderProfile],
    weights: ScoreWeights,
    policy: Optional[ApprovalPolicy] = None,
    human_review_below: int = HUMAN_REVIEW_BELOW
) -> RecommendationResult:
    """
    Evaluate and rank all candidate lenders for a lead.

    Args:
        profile: Lead snapshot
        lenders: Active lenders with freshly loaded configuration
        weights: Global score weights (a lender override wins)
        policy: Approval floor / conditional band
        human_review_below: Top scores under this (or no eligible lender)
            flag the recommendation for human review

    Returns:
        RecommendationResult with every evaluated lender and the top pick
    """
    policy = policy or ApprovalPolicy()
    evaluations = [evaluate_lender(profile, lender, weights, policy) for lender in lenders]
    ordered = rank_evaluations(evaluations, lenders)

    top = ordered[0] if ordered and ordered[0].eligible else None
    for evaluation in ordered:
        if top is not None and evaluation is not top:
            evaluation.gap_reason = gap_reason(top, evaluation)
        elif top is None:
            evaluation.gap_reason = evaluation.rejection_reason

    best = next((e for e in ordered if e.score is not None), None)
    confidence = best.score if best else 0
    needs_review = top is None or confidence < human_review_below

    return RecommendationResult(
        lead_id=profile.lead_id,
        top_lender_id=top.lender_id if top else None,
        evaluations=ordered,
        loan_amount=profile.loan_amount,
        loan_type=profile.loan_type,
        confidence_score=confidence,
        needs_human_review=needs_review,
        rationale=(
            LOW_CONFIDENCE_RATIONALE if needs_review
            else f"Recommends {top.lender_name} with {confidence}% confidence"
        ),
    )


def best_scored_evaluation(result: RecommendationResult) -> Optional[LenderEvaluation]:
    """The top pick, else the highest scored (rejected) lender, else None."""
    if result.top is not None:
        return result.top
    for evaluation in result.evaluations:
        if evaluation.score is not None:
            return evaluation
    return None
