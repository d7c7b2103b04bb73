"""
Configuration Store

Reads and writes ScoreWeights and per-lender LenderConfig rows. Every value is
validated through the pydantic contracts both on save and on load, so an
invalid configuration is rejected at the door and a corrupted row surfaces as
ConfigurationError instead of a silent mis-score.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from eligibility.config import EngineSettings, load_settings
from eligibility.models import Lender, LenderConfigRecord, ScoreWeightsRecord
from .contracts import ScoreWeights, LenderConfig, ApprovalPolicy
from .constants import (
    DEFAULT_SCORE_WEIGHTS,
    DEFAULT_MAX_LOAN_AMOUNT,
    DEFAULT_LOAN_BANDS,
    DEFAULT_RATE_CONFIG,
)
from .errors import ConfigurationError, LenderNotFoundError

logger = logging.getLogger(__name__)


def _validation_details(exc: ValidationError) -> List[Dict[str, Any]]:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


def approval_policy_from_settings(settings: Optional[EngineSettings] = None) -> ApprovalPolicy:
    settings = settings or load_settings()
    return ApprovalPolicy(
        min_eligibility_score=settings.min_eligibility_score,
        conditional_band_width=settings.conditional_band_width,
    )


def default_lender_config() -> LenderConfig:
    return LenderConfig(
        max_loan_amount=DEFAULT_MAX_LOAN_AMOUNT,
        loan_bands=DEFAULT_LOAN_BANDS,
        rate_config=DEFAULT_RATE_CONFIG,
    )


# =============================================================================
# SCORE WEIGHTS
# =============================================================================

def load_score_weights(db: Session) -> ScoreWeights:
    """Current global weights; the defaults when none have been saved yet."""
    row = db.get(ScoreWeightsRecord, 1)
    if row is None:
        return ScoreWeights(**DEFAULT_SCORE_WEIGHTS)
    try:
        return ScoreWeights(
            university_weight=row.university_weight,
            student_weight=row.student_weight,
            co_applicant_weight=row.co_applicant_weight,
        )
    except ValidationError as e:
        logger.error(f"❌ Stored score weights are invalid: {e}")
        raise ConfigurationError("Stored score weights are invalid", details=_validation_details(e))


def save_score_weights(db: Session, payload: Dict[str, Any], updated_by: Optional[str] = None) -> ScoreWeights:
    """
    Validate and store the global weights.

    Raises:
        ConfigurationError: weights do not sum to 100 (nothing is written)
    """
    try:
        weights = ScoreWeights(**payload)
    except ValidationError as e:
        raise ConfigurationError("Invalid score weights", details=_validation_details(e))

    row = db.get(ScoreWeightsRecord, 1)
    if row is None:
        row = ScoreWeightsRecord(id=1)
        db.add(row)
    row.university_weight = weights.university_weight
    row.student_weight = weights.student_weight
    row.co_applicant_weight = weights.co_applicant_weight
    row.updated_at = datetime.utcnow()
    row.updated_by = updated_by
    db.flush()

    logger.info(
        f"⚖️ Score weights saved: university={weights.university_weight} "
        f"student={weights.student_weight} co_applicant={weights.co_applicant_weight}"
    )
    return weights


# =============================================================================
# LENDER CONFIG
# =============================================================================

def _record_to_config(row: LenderConfigRecord) -> LenderConfig:
    return LenderConfig(
        max_loan_amount=row.max_loan_amount,
        loan_bands=row.loan_bands,
        rate_config=row.rate_config,
        university_grade_mapping=row.university_grade_mapping or {},
        score_weights=row.score_weights,
        allow_default_university_grade=row.allow_default_university_grade,
    )


def get_lender_config_record(db: Session, lender_id: str) -> Optional[LenderConfigRecord]:
    return db.execute(
        select(LenderConfigRecord).where(LenderConfigRecord.lender_id == lender_id)
    ).scalar_one_or_none()


def load_lender_config(db: Session, lender_id: str) -> LenderConfig:
    """
    Load and validate one lender's configuration.

    A lender without a stored row uses the default configuration.

    Raises:
        ConfigurationError: the stored row no longer validates
    """
    row = get_lender_config_record(db, lender_id)
    if row is None:
        logger.warning(f"⚠️ Lender {lender_id} has no stored configuration, using defaults")
        return default_lender_config()
    try:
        return _record_to_config(row)
    except ValidationError as e:
        logger.error(f"❌ Stored configuration for lender {lender_id} is invalid: {e}")
        raise ConfigurationError(
            f"Stored configuration for lender {lender_id} is invalid",
            details=_validation_details(e),
        )


def save_lender_config(
    db: Session,
    lender_id: str,
    payload: Dict[str, Any],
    updated_by: Optional[str] = None
) -> LenderConfig:
    """
    Validate and upsert a lender's configuration.

    Band partition, rate monotonicity and the closed grade set are checked
    before anything is written.

    Raises:
        LenderNotFoundError: unknown lender
        ConfigurationError: payload fails validation, with per-field details
    """
    if db.get(Lender, lender_id) is None:
        raise LenderNotFoundError(f"Lender {lender_id} not found")

    try:
        config = LenderConfig(**payload)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration for lender {lender_id}", details=_validation_details(e))

    data = config.model_dump(mode="json")
    row = get_lender_config_record(db, lender_id)
    if row is None:
        row = LenderConfigRecord(lender_id=lender_id)
        db.add(row)
    row.max_loan_amount = data["max_loan_amount"]
    row.loan_bands = data["loan_bands"]
    row.rate_config = data["rate_config"]
    row.university_grade_mapping = data["university_grade_mapping"]
    row.score_weights = data["score_weights"]
    row.allow_default_university_grade = data["allow_default_university_grade"]
    row.updated_at = datetime.utcnow()
    row.updated_by = updated_by
    db.flush()

    logger.info(f"🏦 Configuration saved for lender {lender_id} ({len(config.loan_bands)} bands, "
                f"{len(config.rate_config)} rate tiers)")
    return config


def onboard_lender(
    db: Session,
    name: str,
    code: Optional[str] = None,
    loan_amount_min: Optional[float] = None,
    supported_destinations: Optional[List[str]] = None,
    preferred_rank: Optional[int] = None,
    config: Optional[Dict[str, Any]] = None,
    updated_by: Optional[str] = None
) -> Lender:
    """Create an active lender together with its configuration (defaults unless given)."""
    lender = Lender(
        name=name,
        code=code,
        loan_amount_min=loan_amount_min,
        supported_destinations=supported_destinations or [],
        preferred_rank=preferred_rank,
        is_active=True,
    )
    db.add(lender)
    db.flush()

    payload = config if config is not None else default_lender_config().model_dump(mode="json")
    save_lender_config(db, lender.id, payload, updated_by=updated_by)

    logger.info(f"✅ Lender onboarded: {name} ({lender.id})")
    return lender
