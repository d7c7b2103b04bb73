"""
Score Aggregator

Combines the three component scores with the configured weights into one
overall score and an approval decision.
"""

from typing import Optional

from .contracts import (
    ScoreWeights,
    ComponentScores,
    AggregateResult,
    ApprovalPolicy,
)
from .constants import ApprovalStatus
from .component_scorers import round_half_up
from .errors import ConfigurationError


def check_weights(weights: ScoreWeights) -> None:
    """Fail fast on weights that do not total 100. Weights are never rescaled."""
    if weights.total != 100:
        raise ConfigurationError(
            f"Score weights must sum to 100, got {weights.total}",
            details=[weights.model_dump()],
        )


def weighted_overall(components: ComponentScores, weights: ScoreWeights) -> int:
    check_weights(weights)
    overall = (
        components.university.value * weights.university_weight / 100
        + components.student.value * weights.student_weight / 100
        + components.co_applicant.value * weights.co_applicant_weight / 100
    )
    return max(0, min(100, round_half_up(overall)))


def decide(overall_score: int, policy: ApprovalPolicy, hard_fail_reason: Optional[str] = None) -> AggregateResult:
    """Map an overall score to approved / conditional / rejected."""
    if hard_fail_reason:
        status, reason = ApprovalStatus.REJECTED, hard_fail_reason
    elif overall_score < policy.min_eligibility_score:
        status = ApprovalStatus.REJECTED
        reason = f"Overall score {overall_score} is below the minimum eligibility score of {policy.min_eligibility_score}"
    elif overall_score < policy.min_eligibility_score + policy.conditional_band_width:
        status, reason = ApprovalStatus.CONDITIONAL, None
    else:
        status, reason = ApprovalStatus.APPROVED, None

    return AggregateResult(
        overall_score=overall_score,
        approval_status=status,
        rejection_reason=reason,
    )


def aggregate_scores(
    components: ComponentScores,
    weights: ScoreWeights,
    policy: Optional[ApprovalPolicy] = None
) -> AggregateResult:
    """
    Compute the weighted overall score and the approval decision.

    Args:
        components: Output of the three scorers
        weights: Effective weights for this computation (global or lender override)
        policy: Eligibility floor and conditional band

    Returns:
        AggregateResult

    Raises:
        ConfigurationError: weights do not sum to 100
    """
    policy = policy or ApprovalPolicy()
    overall = weighted_overall(components, weights)

    invalid = components.invalid()
    hard_fail_reason = "; ".join(c.invalid_reason for c in invalid) if invalid else None

    return decide(overall, policy, hard_fail_reason)
