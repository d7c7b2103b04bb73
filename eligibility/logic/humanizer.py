"""
Insight Humanizer

Turns engine output into display text: a score insight per lender and
human-friendly descriptions of the raw factor tags the ranker emits.
Pure functions, no I/O.
"""

import re
from typing import Dict, List, Optional

from .contracts import ScoreInsight, HumanizedFactor, GroupedFactors, ProTip
from .constants import InsightVariant

# =============================================================================
# FACTOR TRANSLATIONS
# =============================================================================

def _factor(label: str, description: str, impact: str, category: str, icon: str) -> HumanizedFactor:
    return HumanizedFactor(label=label, description=description, impact=impact, category=category, icon=icon)


FACTOR_TRANSLATIONS: Dict[str, HumanizedFactor] = {
    # Destination
    "DESTINATION_PREFERENCES_NONE": _factor(
        "Global Destination Support",
        "No country restrictions, your study plans fit perfectly.",
        "medium", "eligibility", "check"),
    "Preferred destination": _factor(
        "Preferred Study Destination",
        "This lender specializes in your chosen country.",
        "high", "strength", "star"),
    "Non-preferred destination": _factor(
        "Destination Consideration",
        "Your destination isn't their primary focus, but still supported.",
        "low", "consideration", "info"),
    "DESTINATION_NOT_SUPPORTED": _factor(
        "Destination Not Supported",
        "This lender does not fund study in your chosen country.",
        "high", "consideration", "alert"),

    # Academics
    "Strong academic profile": _factor(
        "Strong Academic Profile",
        "Your marks and test scores stand out to this lender.",
        "high", "strength", "star"),
    "Academic profile below expectations": _factor(
        "Academic Consideration",
        "Academic scores are below what this lender usually sees.",
        "medium", "consideration", "alert"),

    # Income / financial
    "Income meets expectations": _factor(
        "Income Requirements Met",
        "The financial backing matches what this lender looks for.",
        "high", "strength", "star"),
    "Strong income profile": _factor(
        "Excellent Financial Profile",
        "Strong income significantly improves approval chances.",
        "high", "strength", "star"),
    "Income below expectations": _factor(
        "Income Consideration",
        "Income is slightly below their typical expectation.",
        "medium", "consideration", "alert"),
    "Co-applicant income missing": _factor(
        "Co-applicant Income Needed",
        "Adding the co-applicant's income details will improve this assessment.",
        "high", "consideration", "alert"),
    "Salaried employment": _factor(
        "Stable Employment Verified",
        "Salaried income is preferred by this lender.",
        "medium", "eligibility", "check"),
    "Government employment": _factor(
        "Government Employment Bonus",
        "Government employees receive preferential treatment.",
        "high", "strength", "star"),
    "Self-employed": _factor(
        "Self-Employment Accepted",
        "This lender works with self-employed applicants.",
        "low", "eligibility", "check"),

    # Loan amount
    "Loan amount within range": _factor(
        "Loan Amount Approved",
        "The amount you need is well within their offering.",
        "medium", "eligibility", "check"),
    "Good loan headroom available": _factor(
        "Room for Flexibility",
        "They can offer more if your needs change.",
        "medium", "strength", "star"),
    "Sufficient loan capacity": _factor(
        "Adequate Loan Capacity",
        "They can cover your loan requirement.",
        "medium", "eligibility", "check"),
    "LOAN_AMOUNT_EXCEEDS_MAX": _factor(
        "Loan Amount Exceeds Limit",
        "Your requested amount exceeds this lender's maximum limit. Consider splitting "
        "between lenders or adding collateral.",
        "high", "consideration", "alert"),
    "LOAN_AMOUNT_BELOW_MIN": _factor(
        "Below Minimum Amount",
        "Your loan amount is below this lender's minimum threshold.",
        "high", "consideration", "alert"),

    # Lender
    "PRIORITY_LENDER": _factor(
        "Priority Lender",
        "One of our preferred lending partners, with a smoother process.",
        "medium", "strength", "star"),

    # Rates
    "Competitive interest rate": _factor(
        "Competitive Rates",
        "One of the best interest rates in the market.",
        "high", "strength", "star"),
    "Higher interest rate": _factor(
        "Rate Consideration",
        "Interest rates are on the higher side.",
        "medium", "consideration", "info"),

    # University
    "UNIVERSITY_TIER_1_PREFERRED": _factor(
        "Top University Match",
        "Your university ranking is highly favored.",
        "high", "strength", "star"),
    "UNIVERSITY_ACCEPTED": _factor(
        "University Approved",
        "Your university is on their approved list.",
        "medium", "eligibility", "check"),
    "UNIVERSITY_NOT_RANKED": _factor(
        "University Not Ranked",
        "Your university is assessed with a conservative default grade.",
        "low", "consideration", "info"),
    "UNIVERSITY_NOT_GRADED": _factor(
        "University Not on List",
        "This lender only funds universities it has graded.",
        "high", "consideration", "alert"),
}

# (substrings that must all appear, translation key) for fuzzy matching
_FUZZY_RULES = [
    (("income", "meet"), "Income meets expectations"),
    (("loan", "range"), "Loan amount within range"),
    (("salaried",), "Salaried employment"),
    (("interest", "competitive"), "Competitive interest rate"),
    (("academic", "strong"), "Strong academic profile"),
]


def _generic_factor(raw: str) -> HumanizedFactor:
    cleaned = raw.replace("_", " ")
    cleaned = re.sub(r"([a-z])([A-Z])", r"\1 \2", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    label = " ".join(word[:1].upper() + word[1:].lower() for word in cleaned.split(" "))
    return _factor(label, "This criteria has been evaluated for your profile.", "low", "eligibility", "check")


def humanize_factor(raw: str) -> HumanizedFactor:
    """Translate a raw factor tag: exact match, then fuzzy match, then a title-cased generic."""
    if raw in FACTOR_TRANSLATIONS:
        return FACTOR_TRANSLATIONS[raw].model_copy()

    lowered = raw.lower()
    if "destination" in lowered and "non-preferred" not in lowered and "not" not in lowered:
        return FACTOR_TRANSLATIONS["DESTINATION_PREFERENCES_NONE"].model_copy()
    for needles, key in _FUZZY_RULES:
        if all(n in lowered for n in needles):
            return FACTOR_TRANSLATIONS[key].model_copy()

    return _generic_factor(raw)


def group_factors(matched: List[str], risk_flags: Optional[List[str]] = None) -> GroupedFactors:
    """
    Split humanized factors into big wins, eligibility met and considerations.

    Risk flags are always considerations. Lists are capped at 3 / 5 / 3.
    """
    humanized = [humanize_factor(f) for f in matched]
    risks = []
    for flag in risk_flags or []:
        factor = humanize_factor(flag)
        factor.category = "consideration"
        factor.icon = "alert"
        risks.append(factor)

    big_wins = [f for f in humanized if f.impact == "high" and f.category == "strength"][:3]
    eligibility_met = [
        f for f in humanized
        if f.category == "eligibility" or (f.category == "strength" and f.impact != "high")
    ][:5]
    considerations = ([f for f in humanized if f.category == "consideration"] + risks)[:3]

    return GroupedFactors(big_wins=big_wins, eligibility_met=eligibility_met, considerations=considerations)


# =============================================================================
# SCORE INSIGHT
# =============================================================================

def explain_score(
    score: int,
    lender_name: str,
    top_lender_name: Optional[str] = None,
    gap_reason: Optional[str] = None,
    excellent: int = 85,
    strong: int = 70,
    good: int = 55
) -> ScoreInsight:
    """
    Map a lender score to a display variant, label and message.

    Thresholds default to 85 / 70 / 55 and can be tuned per deployment.
    """
    if score >= excellent:
        return ScoreInsight(
            variant=InsightVariant.EXCELLENT,
            label="Excellent Match",
            message=f"Your profile aligns perfectly with {lender_name}'s preferred borrower profile. "
                    f"High approval likelihood.",
        )

    if score >= strong:
        if gap_reason:
            gap_text = f" {gap_reason[:1].upper()}{gap_reason[1:]}."
        elif top_lender_name and top_lender_name != lender_name:
            gap_text = f" {top_lender_name} may offer faster processing for your profile."
        else:
            gap_text = ""
        return ScoreInsight(
            variant=InsightVariant.STRONG,
            label="Strong Option",
            message=f"You meet all key criteria for {lender_name}.{gap_text}",
        )

    if score >= good:
        return ScoreInsight(
            variant=InsightVariant.GOOD,
            label="Good Backup",
            message=f"A solid option to consider. {lender_name} works well for your destination and course type.",
        )

    return ScoreInsight(
        variant=InsightVariant.EXPLORE,
        label="Worth Exploring",
        message=f"Some conditions may apply. Review the details to see if {lender_name} works for your situation.",
    )


# =============================================================================
# PRO TIPS
# =============================================================================

def generate_pro_tip(
    factors: List[str],
    loan_amount: Optional[float] = None,
    max_loan_amount: Optional[float] = None,
    has_collateral: bool = False
) -> Optional[ProTip]:
    """One actionable tip for a lender card, or None."""
    if loan_amount and max_loan_amount and loan_amount >= max_loan_amount * 0.85 and not has_collateral:
        return ProTip(
            title="Interest Rate Opportunity",
            message="You're near this lender's limit. Adding property as collateral could reduce your "
                    "interest rate by 1-1.5%.",
            type="opportunity",
        )

    if "Strong income profile" in factors:
        return ProTip(
            title="Negotiation Leverage",
            message="Your strong financial profile may give you room to negotiate better terms or faster processing.",
            type="opportunity",
        )

    if "Competitive interest rate" in factors:
        return ProTip(
            title="Cost Savings",
            message="This lender offers one of the most competitive rates, which could save you lakhs over the "
                    "loan tenure.",
            type="opportunity",
        )

    if "Co-applicant income missing" in factors:
        return ProTip(
            title="Complete Co-applicant Details",
            message="Adding the co-applicant's salary usually moves the score and the rate tier up.",
            type="action",
        )

    return None
