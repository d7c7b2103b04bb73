"""
Eligibility API Routes

Exposes the eligibility engine via REST API: per-lead recommendation and
eligibility lookups, the field-change trigger, admin configuration, manual
lender reassignment and batch recompute.
"""

import logging
from typing import Optional, List, Dict, Any

import jwt
from fastapi import APIRouter, Depends, HTTPException, Header
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from db import get_db, SessionLocal, session_scope
from models.schemas_user import UserOut
from utils.auth_utils import bearer_token, decode_token
from utils.crud_user import get_user_by_id
from eligibility.config import EngineSettings, load_settings
from eligibility.models import Lead
from .logic.contracts import RecommendationResult
from .logic.constants import ENGINE_VERSION
from .logic.config_store import save_score_weights, save_lender_config, onboard_lender
from .logic.errors import (
    EngineError,
    ConfigurationError,
    LeadNotFoundError,
    LenderNotFoundError,
)
from .logic.adapter import load_lead_profile
from .logic.humanizer import explain_score, group_factors, generate_pro_tip
from .logic.runner import compute_recommendation, recompute_lead, reassign_lender, get_current_eligibility
from .logic.trigger import RecomputeQueue, trigger_recompute_on_change
from .logic.batch import batch_recompute
from .ai.explainer import explainer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/eligibility", tags=["eligibility"])


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_engine_settings() -> EngineSettings:
    return load_settings()


def get_session_factory():
    return SessionLocal


recompute_queue = RecomputeQueue(recompute_lead, debounce_seconds=load_settings().debounce_seconds)


def get_recompute_queue() -> RecomputeQueue:
    return recompute_queue


def require_admin(
    authorization: Optional[str] = Header(default=None),
    session_factory=Depends(get_session_factory)
) -> UserOut:
    """Resolve the bearer token to an active admin / super_admin user."""
    token = bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Missing token")
    try:
        data = decode_token(token)
    except jwt.PyJWTError as e:
        logger.error(f"Token decode failed: {e}")
        raise HTTPException(status_code=401, detail=f"Invalid token: {e}")

    user_id = data.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid token: missing subject")

    # own session; the route opens its get_db session separately
    with session_scope(session_factory) as db:
        user = get_user_by_id(db, user_id)
        if not user:
            raise HTTPException(status_code=401, detail="User not found")
        if not user.is_admin:
            raise HTTPException(status_code=403, detail="Forbidden: Admin access required")
        return UserOut.model_validate(user)


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class RecommendationRequest(BaseModel):
    explain: bool = Field(default=False, description="Include AI-generated explanation")


class FieldChangeRequest(BaseModel):
    field: str
    old_value: Any = None
    new_value: Any = None


class ReassignLenderRequest(BaseModel):
    lender_id: str
    change_reason: Optional[str] = None
    assignment_notes: Optional[str] = None


class BatchRecomputeRequest(BaseModel):
    lead_ids: Optional[List[str]] = None
    limit: Optional[int] = Field(default=None, ge=1)


class ExplainRequest(BaseModel):
    score: int = Field(ge=0, le=100)
    lender_name: str
    top_lender_name: Optional[str] = None
    gap_reason: Optional[str] = None


class LenderCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    code: Optional[str] = None
    loan_amount_min: Optional[float] = Field(default=None, ge=0)
    supported_destinations: List[str] = Field(default_factory=list)
    preferred_rank: Optional[int] = Field(default=None, ge=1)
    config: Optional[Dict[str, Any]] = None


# =============================================================================
# HELPERS
# =============================================================================

def _error_response(e: Exception) -> JSONResponse:
    """Map engine errors to HTTP responses."""
    if isinstance(e, (LeadNotFoundError, LenderNotFoundError)):
        return JSONResponse(status_code=404, content={"error": str(e)})
    if isinstance(e, ConfigurationError):
        return JSONResponse(status_code=422, content={"error": str(e), "details": e.details})
    if isinstance(e, EngineError):
        return JSONResponse(status_code=400, content={"error": str(e)})
    logger.exception(f"❌ Unexpected eligibility error: {e}")
    return JSONResponse(status_code=500, content={"error": str(e)})


def _serialize_result(result: RecommendationResult, settings: EngineSettings) -> Dict[str, Any]:
    """RecommendationResult plus display insights per evaluated lender."""
    top = result.top
    data = result.model_dump(mode="json")

    for evaluation, payload in zip(result.evaluations, data["evaluations"]):
        if evaluation.score is not None:
            payload["insight"] = explain_score(
                evaluation.score,
                evaluation.lender_name,
                top_lender_name=top.lender_name if top else None,
                gap_reason=evaluation.gap_reason if evaluation is not top else None,
                excellent=settings.insight_excellent,
                strong=settings.insight_strong,
                good=settings.insight_good,
            ).model_dump(mode="json")
        payload["grouped_factors"] = group_factors(evaluation.factors, evaluation.risk_flags).model_dump()
        tip = generate_pro_tip(
            evaluation.factors + evaluation.risk_flags,
            loan_amount=result.loan_amount,
            max_loan_amount=evaluation.max_loan_amount,
            has_collateral=(result.loan_type or "").lower() == "secured",
        )
        payload["pro_tip"] = tip.model_dump() if tip else None

    return data


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/leads/{lead_id}/recommendation", summary="Compute lender recommendation for a lead")
def compute_lead_recommendation(
    lead_id: str,
    request: Optional[RecommendationRequest] = None,
    db_session=Depends(get_db),
    settings: EngineSettings = Depends(get_engine_settings)
):
    """
    Score the lead against every active lender, persist the outcome and
    return the ranked lenders with insights.
    """
    request = request or RecommendationRequest()
    try:
        lead_inputs = None
        with db_session as db:
            result = compute_recommendation(db, lead_id, settings)
            if request.explain:
                lead_inputs = load_lead_profile(db, lead_id).model_dump(
                    mode="json", exclude={"bound_lender_id", "status"}
                )
        response_data = _serialize_result(result, settings)

        if request.explain:
            explanation = explainer.get_explanation(
                cache_key=f"{lead_id}:{result.computed_at.isoformat()}",
                lead_inputs=lead_inputs,
                recommendation=response_data,
            )
            if explanation:
                response_data["ai_explanation"] = explanation

        return response_data
    except Exception as e:
        return _error_response(e)


@router.get("/leads/{lead_id}/eligibility", summary="Current eligibility score for a lead")
def read_lead_eligibility(
    lead_id: str,
    db_session=Depends(get_db),
    settings: EngineSettings = Depends(get_engine_settings)
):
    try:
        with db_session as db:
            eligibility = get_current_eligibility(db, lead_id, settings)
        if eligibility is None:
            return JSONResponse(status_code=404, content={"error": f"Lead {lead_id} has not been scored yet"})
        return eligibility
    except Exception as e:
        return _error_response(e)


@router.post("/leads/{lead_id}/field-change", summary="Report a lead field change")
def lead_field_change(
    lead_id: str,
    request: FieldChangeRequest,
    db_session=Depends(get_db),
    queue: RecomputeQueue = Depends(get_recompute_queue),
    settings: EngineSettings = Depends(get_engine_settings)
):
    """Schedule a debounced recompute when the changed field affects the recommendation."""
    try:
        with db_session as db:
            if db.get(Lead, lead_id) is None:
                raise LeadNotFoundError(f"Lead {lead_id} not found")
        scheduled = trigger_recompute_on_change(
            queue, lead_id, request.field, request.old_value, request.new_value,
            change_percent=settings.loan_amount_change_percent,
        )
        return {"lead_id": lead_id, "scheduled": scheduled, "state": queue.state(lead_id).value}
    except Exception as e:
        return _error_response(e)


@router.post("/leads/{lead_id}/lender", summary="Reassign a lead's lender (admin)")
def reassign_lead_lender(
    lead_id: str,
    request: ReassignLenderRequest,
    admin: UserOut = Depends(require_admin),
    db_session=Depends(get_db)
):
    try:
        with db_session as db:
            history = reassign_lender(
                db, lead_id, request.lender_id, admin.id,
                change_reason=request.change_reason,
                assignment_notes=request.assignment_notes,
            )
            return {
                "success": True,
                "lead_id": lead_id,
                "old_lender_id": history.old_lender_id,
                "new_lender_id": history.new_lender_id,
            }
    except Exception as e:
        return _error_response(e)


@router.post("/batch-recompute", summary="Recompute recommendations in bulk (admin)")
def batch_recompute_leads(
    request: Optional[BatchRecomputeRequest] = None,
    admin: UserOut = Depends(require_admin),
    session_factory=Depends(get_session_factory),
    settings: EngineSettings = Depends(get_engine_settings)
):
    request = request or BatchRecomputeRequest()
    logger.info(f"📦 Batch recompute requested by {admin.email}")
    try:
        result = batch_recompute(
            session_factory,
            lead_ids=request.lead_ids,
            limit=request.limit,
            settings=settings,
        )
        return result.model_dump()
    except Exception as e:
        return _error_response(e)


@router.post("/explain", summary="Human-readable insight for a lender score")
def explain(request: ExplainRequest, settings: EngineSettings = Depends(get_engine_settings)):
    insight = explain_score(
        request.score,
        request.lender_name,
        top_lender_name=request.top_lender_name,
        gap_reason=request.gap_reason,
        excellent=settings.insight_excellent,
        strong=settings.insight_strong,
        good=settings.insight_good,
    )
    return insight.model_dump(mode="json")


@router.put("/config/score-weights", summary="Update global score weights (admin)")
def update_score_weights(
    payload: Dict[str, Any],
    admin: UserOut = Depends(require_admin),
    db_session=Depends(get_db)
):
    try:
        with db_session as db:
            weights = save_score_weights(db, payload, updated_by=admin.id)
        return weights.model_dump()
    except Exception as e:
        return _error_response(e)


@router.put("/lenders/{lender_id}/config", summary="Update a lender's configuration (admin)")
def update_lender_config(
    lender_id: str,
    payload: Dict[str, Any],
    admin: UserOut = Depends(require_admin),
    db_session=Depends(get_db)
):
    try:
        with db_session as db:
            config = save_lender_config(db, lender_id, payload, updated_by=admin.id)
        return config.model_dump(mode="json")
    except Exception as e:
        return _error_response(e)


@router.post("/lenders", status_code=201, summary="Onboard a lender (admin)")
def create_lender(
    request: LenderCreateRequest,
    admin: UserOut = Depends(require_admin),
    db_session=Depends(get_db)
):
    try:
        with db_session as db:
            lender = onboard_lender(
                db,
                name=request.name,
                code=request.code,
                loan_amount_min=request.loan_amount_min,
                supported_destinations=request.supported_destinations,
                preferred_rank=request.preferred_rank,
                config=request.config,
                updated_by=admin.id,
            )
            return {"id": lender.id, "name": lender.name, "code": lender.code, "is_active": lender.is_active}
    except Exception as e:
        return _error_response(e)


# =============================================================================
# HEALTH CHECK
# =============================================================================

@router.get("/health", summary="Eligibility engine health check")
def health_check():
    """Check if eligibility engine is operational."""
    return {"status": "ok", "engine": "eligibility", "version": ENGINE_VERSION}
