"""
Insight humanizer: score insight variants, factor translation and grouping.
"""

import pytest

from eligibility.logic.humanizer import explain_score, humanize_factor, group_factors, generate_pro_tip


@pytest.mark.parametrize("score,variant,label", [
    (100, "excellent", "Excellent Match"),
    (85, "excellent", "Excellent Match"),
    (84, "strong", "Strong Option"),
    (70, "strong", "Strong Option"),
    (69, "good", "Good Backup"),
    (55, "good", "Good Backup"),
    (54, "explore", "Worth Exploring"),
    (0, "explore", "Worth Exploring"),
])
def test_variant_thresholds(score, variant, label):
    insight = explain_score(score, "HDFC Credila")
    assert insight.variant == variant
    assert insight.label == label
    assert "HDFC Credila" in insight.message


def test_excellent_message():
    insight = explain_score(90, "Avanse")
    assert insight.message == (
        "Your profile aligns perfectly with Avanse's preferred borrower profile. High approval likelihood."
    )


def test_strong_message_uses_gap_reason():
    insight = explain_score(75, "Avanse", top_lender_name="Credila", gap_reason="score 9 points below top pick")
    assert insight.message == "You meet all key criteria for Avanse. Score 9 points below top pick."


def test_strong_message_points_to_top_lender():
    insight = explain_score(75, "Avanse", top_lender_name="Credila")
    assert insight.message == "You meet all key criteria for Avanse. Credila may offer faster processing for your profile."


def test_strong_message_for_top_lender_itself():
    insight = explain_score(75, "Avanse", top_lender_name="Avanse")
    assert insight.message == "You meet all key criteria for Avanse."


def test_thresholds_are_configurable():
    assert explain_score(80, "X", excellent=80).variant == "excellent"
    assert explain_score(50, "X", good=50).variant == "good"


class TestHumanizeFactor:

    def test_direct_translation(self):
        factor = humanize_factor("LOAN_AMOUNT_EXCEEDS_MAX")
        assert factor.label == "Loan Amount Exceeds Limit"
        assert factor.category == "consideration"
        assert factor.impact == "high"

    def test_fuzzy_match(self):
        factor = humanize_factor("Applicant income meets lender expectations")
        assert factor.label == "Income Requirements Met"

    def test_generic_fallback_title_cases(self):
        factor = humanize_factor("CREDIT_HISTORY_CHECKED")
        assert factor.label == "Credit History Checked"
        assert factor.description == "This criteria has been evaluated for your profile."
        assert factor.impact == "low"
        assert factor.category == "eligibility"

    def test_camel_case_fallback(self):
        assert humanize_factor("collateralNotRequired").label == "Collateral Not Required"

    def test_translation_table_is_not_mutated(self):
        factor = humanize_factor("Salaried employment")
        factor.category = "consideration"
        assert humanize_factor("Salaried employment").category == "eligibility"


def test_group_factors_buckets_and_caps():
    matched = [
        "Preferred destination",
        "Strong income profile",
        "Competitive interest rate",
        "Government employment",
        "Loan amount within range",
        "Good loan headroom available",
        "Salaried employment",
    ]
    grouped = group_factors(matched, ["Higher interest rate", "UNIVERSITY_NOT_RANKED"])
    assert [f.label for f in grouped.big_wins] == [
        "Preferred Study Destination",
        "Excellent Financial Profile",
        "Competitive Rates",
    ]
    assert [f.label for f in grouped.eligibility_met] == [
        "Loan Amount Approved",
        "Room for Flexibility",
        "Stable Employment Verified",
    ]
    assert [f.label for f in grouped.considerations] == ["Rate Consideration", "University Not Ranked"]
    assert all(f.category == "consideration" for f in grouped.considerations)


def test_group_factors_caps_considerations():
    risks = ["Income below expectations", "Higher interest rate", "UNIVERSITY_NOT_RANKED", "Co-applicant income missing"]
    assert len(group_factors([], risks).considerations) == 3


class TestProTip:

    def test_near_limit_suggests_collateral(self):
        tip = generate_pro_tip([], loan_amount=4500000, max_loan_amount=5000000)
        assert tip.title == "Interest Rate Opportunity"

    def test_strong_income(self):
        assert generate_pro_tip(["Strong income profile"]).title == "Negotiation Leverage"

    def test_missing_income(self):
        assert generate_pro_tip(["Co-applicant income missing"]).type == "action"

    def test_nothing_to_say(self):
        assert generate_pro_tip(["Loan amount within range"]) is None
