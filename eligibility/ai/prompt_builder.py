from typing import Dict, Any, List
import json
from .safety_rules import SAFETY_RULES, SYSTEM_ROLE_DEFINITION, JSON_OUTPUT_FORMAT_INSTRUCTION

def build_system_prompt() -> str:
    """Constructs the static system prompt."""
    rules_str = "\n".join([f"- {rule}" for rule in SAFETY_RULES])

    return f"""{SYSTEM_ROLE_DEFINITION}

SAFETY RULES (NON-NEGOTIABLE):
{rules_str}

OUTPUT FORMAT:
{JSON_OUTPUT_FORMAT_INSTRUCTION}
"""

def build_user_prompt(lead_inputs: Dict[str, Any], recommendation: Dict[str, Any], limit: int = 5) -> str:
    """
    Constructs the user prompt from the lead inputs and the ranked lenders.
    Only the first few evaluations are sent to save tokens.
    """
    evaluations = recommendation.get("evaluations", [])[:limit]
    minimized = _minimize_evaluations(evaluations)

    return f"""
LEAD PROFILE:
{json.dumps(lead_inputs, indent=2, default=str)}

ENGINE OUTPUT SUMMARY:
- Lenders Evaluated: {len(recommendation.get("evaluations", []))}
- Top Lender: {recommendation.get("top_lender_id")}
- Engine Version: {recommendation.get("engine_version")}

RANKED LENDERS:
{json.dumps(minimized, indent=2)}

TASK:
Explain these lender recommendations to the student. Adhere strictly to the safety rules.
"""

def _minimize_evaluations(evaluations: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Helper to reduce evaluation dict size for prompt."""
    return [
        {
            "lender_id": e.get("lender_id"),
            "lender": e.get("lender_name"),
            "rank": e.get("rank"),
            "score": e.get("score"),
            "status": e.get("approval_status"),
            "rate_tier": e.get("rate_tier"),
            "rate": [e.get("interest_rate_min"), e.get("interest_rate_max")],
            "gap_reason": e.get("gap_reason"),
            "factors": e.get("factors"),
            "risks": e.get("risk_flags"),
        }
        for e in evaluations
    ]
