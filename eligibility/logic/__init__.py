"""
Eligibility Logic Module

Deterministic lender eligibility scoring, band/tier resolution, lender
ranking and the recompute paths (debounced trigger, admin batch).
"""

from .contracts import (
    ScoreWeights,
    LenderConfig,
    LoanBand,
    RateTier,
    ApprovalPolicy,
    LeadProfile,
    LenderProfile,
    ComponentScore,
    ComponentScores,
    LenderEvaluation,
    RecommendationResult,
    BatchResult,
    ScoreInsight,
)
from .component_scorers import score_components
from .aggregator import aggregate_scores
from .resolver import resolve_band, resolve_rate_tier
from .ranker import rank_lenders
from .humanizer import explain_score, humanize_factor, group_factors, generate_pro_tip
from .trigger import RecomputeQueue, TriggerState, should_trigger_recompute, trigger_recompute_on_change
from .runner import compute_recommendation, recompute_lead, reassign_lender, get_current_eligibility
from .batch import batch_recompute
from .errors import (
    EngineError,
    ConfigurationError,
    BandResolutionError,
    DataError,
    MalformedLeadError,
    TransientError,
    LeadNotFoundError,
    LenderNotFoundError,
    NoActiveLendersError,
)

__all__ = [
    # Pipeline
    "compute_recommendation",
    "recompute_lead",
    "reassign_lender",
    "get_current_eligibility",
    "batch_recompute",
    "trigger_recompute_on_change",
    "should_trigger_recompute",
    "RecomputeQueue",
    "TriggerState",

    # Pure engine
    "score_components",
    "aggregate_scores",
    "resolve_band",
    "resolve_rate_tier",
    "rank_lenders",
    "explain_score",
    "humanize_factor",
    "group_factors",
    "generate_pro_tip",

    # Contracts
    "ScoreWeights",
    "LenderConfig",
    "LoanBand",
    "RateTier",
    "ApprovalPolicy",
    "LeadProfile",
    "LenderProfile",
    "ComponentScore",
    "ComponentScores",
    "LenderEvaluation",
    "RecommendationResult",
    "BatchResult",
    "ScoreInsight",

    # Errors
    "EngineError",
    "ConfigurationError",
    "BandResolutionError",
    "DataError",
    "MalformedLeadError",
    "TransientError",
    "LeadNotFoundError",
    "LenderNotFoundError",
    "NoActiveLendersError",
]
