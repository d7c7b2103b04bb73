"""
Data Contracts for the Eligibility Engine

Pydantic models for configuration (ScoreWeights, LenderConfig), the lead
profile the scorers read, and the results the engine produces.
Configuration invariants are enforced here so that a config that loads is a
config the resolver can always use.
"""

import hashlib
import json
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator
from enum import Enum

from .constants import (
    ApprovalStatus,
    InsightVariant,
    RateTierName,
    UniversityGrade,
    ENGINE_VERSION,
    SCORE_MIN,
    SCORE_MAX,
)


# =============================================================================
# CONFIGURATION CONTRACTS
# =============================================================================

class ScoreWeights(BaseModel):
    """Percentage-point weights of the three components. Must total exactly 100."""
    university_weight: int = Field(ge=0, le=100)
    student_weight: int = Field(ge=0, le=100)
    co_applicant_weight: int = Field(ge=0, le=100)

    @property
    def total(self) -> int:
        return self.university_weight + self.student_weight + self.co_applicant_weight

    @model_validator(mode="after")
    def check_total(self):
        if self.total != 100:
            raise ValueError(f"score weights must sum to 100, got {self.total}")
        return self


class LoanBand(BaseModel):
    """Score range [score_min, score_max] mapped to an approvable share of the requested amount."""
    label: str = ""
    score_min: int = Field(ge=SCORE_MIN, le=SCORE_MAX)
    score_max: int = Field(ge=SCORE_MIN, le=SCORE_MAX)
    min_percent: float = Field(ge=0, le=100)
    max_percent: float = Field(ge=0, le=100)

    @model_validator(mode="after")
    def check_ranges(self):
        if self.score_min > self.score_max:
            raise ValueError(f"band {self.label or '?'}: score_min > score_max")
        if self.min_percent > self.max_percent:
            raise ValueError(f"band {self.label or '?'}: min_percent > max_percent")
        if not self.label:
            self.label = f"{self.score_min}-{self.score_max}"
        return self

    def contains(self, score: int) -> bool:
        return self.score_min <= score <= self.score_max


class RateTier(BaseModel):
    """Interest-rate range unlocked at score_threshold and above."""
    tier: RateTierName
    min_rate: float = Field(ge=0)
    max_rate: float = Field(ge=0)
    score_threshold: int = Field(ge=SCORE_MIN, le=SCORE_MAX)

    class Config:
        use_enum_values = True

    @model_validator(mode="after")
    def check_rates(self):
        if self.min_rate > self.max_rate:
            raise ValueError(f"rate tier {self.tier}: min_rate > max_rate")
        return self

    @property
    def midpoint(self) -> float:
        return (self.min_rate + self.max_rate) / 2


def _bands_from_mapping(raw: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Accept the legacy ``{"90-100": {min_percent, max_percent}}`` shape."""
    bands = []
    for label, band in raw.items():
        if not isinstance(band, dict):
            raise ValueError(f"loan band {label}: expected an object, got {type(band).__name__}")
        low, _, high = str(label).partition("-")
        bands.append({
            "label": label,
            "score_min": int(low),
            "score_max": int(high or low),
            "min_percent": band.get("min_percent"),
            "max_percent": band.get("max_percent"),
        })
    return bands


def _tiers_from_mapping(raw: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Accept the legacy ``{"excellent": {min, max, score_threshold}}`` shape."""
    tiers = []
    for name, tier in raw.items():
        if not isinstance(tier, dict):
            raise ValueError(f"rate tier {name}: expected an object, got {type(tier).__name__}")
        tiers.append({
            "tier": name,
            "min_rate": tier.get("min_rate", tier.get("min")),
            "max_rate": tier.get("max_rate", tier.get("max")),
            "score_threshold": tier.get("score_threshold"),
        })
    return tiers


class LenderConfig(BaseModel):
    """
    Per-lender rule configuration.

    Invariants checked on construction:
    - loan_bands partition the integer scores 0..100 with no gaps or overlaps
    - rate tiers have distinct thresholds, the lowest is 0, and both min and
      max rate strictly drop as the threshold rises
    - university grades come from the closed S/A/B/C/D set
    """
    max_loan_amount: float = Field(gt=0)
    loan_bands: List[LoanBand] = Field(min_length=1)
    rate_config: List[RateTier] = Field(min_length=1)
    university_grade_mapping: Dict[str, UniversityGrade] = Field(default_factory=dict)
    score_weights: Optional[ScoreWeights] = None
    allow_default_university_grade: bool = True

    class Config:
        use_enum_values = True

    @field_validator("loan_bands", mode="before")
    @classmethod
    def coerce_band_mapping(cls, value):
        if isinstance(value, dict):
            return _bands_from_mapping(value)
        return value

    @field_validator("rate_config", mode="before")
    @classmethod
    def coerce_tier_mapping(cls, value):
        if isinstance(value, dict):
            return _tiers_from_mapping(value)
        return value

    @model_validator(mode="after")
    def check_partition(self):
        ordered = sorted(self.loan_bands, key=lambda b: b.score_min)
        if ordered[0].score_min != SCORE_MIN:
            raise ValueError(f"loan bands must start at {SCORE_MIN}, first band starts at {ordered[0].score_min}")
        if ordered[-1].score_max != SCORE_MAX:
            raise ValueError(f"loan bands must end at {SCORE_MAX}, last band ends at {ordered[-1].score_max}")
        for prev, band in zip(ordered, ordered[1:]):
            if band.score_min <= prev.score_max:
                raise ValueError(f"loan bands {prev.label} and {band.label} overlap")
            if band.score_min != prev.score_max + 1:
                raise ValueError(f"gap between loan bands {prev.label} and {band.label}")
        labels = [b.label for b in ordered]
        if len(set(labels)) != len(labels):
            raise ValueError("loan band labels must be unique")
        # highest band first
        self.loan_bands = list(reversed(ordered))
        return self

    @model_validator(mode="after")
    def check_rate_tiers(self):
        tiers = sorted(self.rate_config, key=lambda t: t.score_threshold, reverse=True)
        names = [t.tier for t in tiers]
        if len(set(names)) != len(names):
            raise ValueError("rate tier names must be unique")
        thresholds = [t.score_threshold for t in tiers]
        if len(set(thresholds)) != len(thresholds):
            raise ValueError("rate tier score thresholds must be distinct")
        if thresholds[-1] != SCORE_MIN:
            raise ValueError(f"lowest rate tier threshold must be {SCORE_MIN} so every score resolves")
        for better, worse in zip(tiers, tiers[1:]):
            if not (better.min_rate < worse.min_rate and better.max_rate < worse.max_rate):
                raise ValueError(
                    f"rate tier {better.tier} (threshold {better.score_threshold}) must have "
                    f"lower rates than {worse.tier} (threshold {worse.score_threshold})"
                )
        self.rate_config = tiers
        return self


class ApprovalPolicy(BaseModel):
    min_eligibility_score: int = Field(default=40, ge=SCORE_MIN, le=SCORE_MAX)
    conditional_band_width: int = Field(default=5, ge=0, le=SCORE_MAX)


# =============================================================================
# INPUT CONTRACTS
# =============================================================================

class StudyDestination(str, Enum):
    AUSTRALIA = "Australia"
    CANADA = "Canada"
    GERMANY = "Germany"
    IRELAND = "Ireland"
    NEW_ZEALAND = "New Zealand"
    UK = "UK"
    USA = "USA"
    OTHER = "Other"


class UniversityChoice(BaseModel):
    university_id: Optional[str] = None
    name: Optional[str] = None
    global_rank: Optional[int] = Field(default=None, ge=1)


class ExamScore(BaseModel):
    test_type: str
    score: float = Field(ge=0)


class StudentAcademics(BaseModel):
    highest_qualification: Optional[str] = None
    tenth_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    twelfth_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    bachelors_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    bachelors_cgpa: Optional[float] = Field(default=None, ge=0, le=10)
    pin_code_tier: Optional[str] = None
    tests: List[ExamScore] = Field(default_factory=list)


class CoApplicantFinancials(BaseModel):
    relationship: Optional[str] = None
    employment_type: Optional[str] = None
    monthly_salary: Optional[float] = Field(default=None, ge=0)
    annual_salary: Optional[float] = Field(default=None, ge=0)
    employment_duration_years: Optional[float] = Field(default=None, ge=0)


class LeadProfile(BaseModel):
    """Snapshot of everything the scorers and gates read for one lead."""
    lead_id: str
    loan_amount: Optional[float] = Field(default=None, ge=0)
    study_destination: Optional[StudyDestination] = None
    loan_type: Optional[str] = None
    loan_classification: Optional[str] = None
    intake_month: Optional[int] = Field(default=None, ge=1, le=12)
    intake_year: Optional[int] = None
    universities: List[UniversityChoice] = Field(default_factory=list)
    student: StudentAcademics = Field(default_factory=StudentAcademics)
    co_applicant: Optional[CoApplicantFinancials] = None
    bound_lender_id: Optional[str] = None
    status: Optional[str] = None

    class Config:
        use_enum_values = True

    @property
    def primary_university(self) -> Optional[UniversityChoice]:
        return self.universities[0] if self.universities else None


class LenderProfile(BaseModel):
    lender_id: str
    name: str
    code: Optional[str] = None
    loan_amount_min: Optional[float] = None
    supported_destinations: List[str] = Field(default_factory=list)  # empty = all
    preferred_rank: Optional[int] = Field(default=None, ge=1)  # 1 = most preferred
    created_at: Optional[datetime] = None
    config: LenderConfig


# =============================================================================
# OUTPUT CONTRACTS
# =============================================================================

class ComponentScore(BaseModel):
    """One component's 0-100 score, or an invalid marker when a required field is absent."""
    component: str
    score: Optional[int] = Field(default=None, ge=SCORE_MIN, le=SCORE_MAX)
    invalid_reason: Optional[str] = None
    breakdown: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_invalid(self) -> bool:
        return self.invalid_reason is not None

    @property
    def value(self) -> int:
        return 0 if self.score is None else self.score


class ComponentScores(BaseModel):
    university: ComponentScore
    student: ComponentScore
    co_applicant: ComponentScore

    def invalid(self) -> List[ComponentScore]:
        return [c for c in (self.university, self.student, self.co_applicant) if c.is_invalid]


class AggregateResult(BaseModel):
    overall_score: int = Field(ge=SCORE_MIN, le=SCORE_MAX)
    approval_status: ApprovalStatus
    rejection_reason: Optional[str] = None

    class Config:
        use_enum_values = True


class BandResolution(BaseModel):
    label: str
    min_percent: float
    max_percent: float
    eligible_loan_min: Optional[float] = None
    eligible_loan_max: Optional[float] = None


class TierResolution(BaseModel):
    tier: str
    min_rate: float
    max_rate: float

    @property
    def midpoint(self) -> float:
        return (self.min_rate + self.max_rate) / 2


class LenderEvaluation(BaseModel):
    """Outcome of evaluating one lender for one lead."""
    lender_id: str
    lender_name: str
    eligible: bool = False
    rank: Optional[int] = None
    score: Optional[int] = None
    approval_status: Optional[str] = None
    rejection_reason: Optional[str] = None
    exclusion_code: Optional[str] = None
    loan_band: Optional[str] = None
    eligible_loan_min: Optional[float] = None
    eligible_loan_max: Optional[float] = None
    rate_tier: Optional[str] = None
    interest_rate_min: Optional[float] = None
    interest_rate_max: Optional[float] = None
    max_loan_amount: Optional[float] = None
    gap_reason: Optional[str] = None
    factors: List[str] = Field(default_factory=list)
    risk_flags: List[str] = Field(default_factory=list)

    # Internal detail needed to persist the winning evaluation
    components: Optional[ComponentScores] = Field(default=None, exclude=True)
    config_fingerprint: Optional[str] = Field(default=None, exclude=True)

    @property
    def rate_midpoint(self) -> Optional[float]:
        if self.interest_rate_min is None or self.interest_rate_max is None:
            return None
        return (self.interest_rate_min + self.interest_rate_max) / 2


class RecommendationResult(BaseModel):
    lead_id: str
    top_lender_id: Optional[str] = None
    loan_amount: Optional[float] = None
    loan_type: Optional[str] = None
    evaluations: List[LenderEvaluation] = Field(default_factory=list)
    confidence_score: int = 0
    needs_human_review: bool = False
    rationale: Optional[str] = None
    engine_version: str = ENGINE_VERSION
    computed_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def top(self) -> Optional[LenderEvaluation]:
        for evaluation in self.evaluations:
            if evaluation.lender_id == self.top_lender_id:
                return evaluation
        return None


class BatchError(BaseModel):
    lead_id: str
    error: str


class BatchResult(BaseModel):
    total: int = 0
    processed: int = 0
    failed: int = 0
    errors: List[BatchError] = Field(default_factory=list)


class ScoreInsight(BaseModel):
    variant: InsightVariant
    label: str
    message: str

    class Config:
        use_enum_values = True


class HumanizedFactor(BaseModel):
    label: str
    description: str
    impact: str  # high/medium/low
    category: str  # strength/eligibility/consideration
    icon: Optional[str] = None


class GroupedFactors(BaseModel):
    big_wins: List[HumanizedFactor] = Field(default_factory=list)
    eligibility_met: List[HumanizedFactor] = Field(default_factory=list)
    considerations: List[HumanizedFactor] = Field(default_factory=list)


class ProTip(BaseModel):
    title: str
    message: str
    type: str  # opportunity/info/action


def config_fingerprint(
    config: LenderConfig,
    weights: ScoreWeights,
    policy: ApprovalPolicy
) -> str:
    """SHA-256 of the canonical JSON of everything that shaped a stored score."""
    payload = {
        "config": config.model_dump(mode="json"),
        "weights": weights.model_dump(mode="json"),
        "policy": policy.model_dump(mode="json"),
    }
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
