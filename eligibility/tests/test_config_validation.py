"""
Configuration contracts: score weights, loan band partition, rate tier
monotonicity and the closed university grade set.
"""

import pytest
from pydantic import ValidationError

from eligibility.logic.contracts import ScoreWeights, LenderConfig
from eligibility.logic.constants import DEFAULT_LOAN_BANDS, DEFAULT_RATE_CONFIG
from eligibility.logic.config_store import save_lender_config
from eligibility.logic.errors import ConfigurationError


def _config(**overrides):
    values = {
        "max_loan_amount": 5000000,
        "loan_bands": DEFAULT_LOAN_BANDS,
        "rate_config": DEFAULT_RATE_CONFIG,
    }
    values.update(overrides)
    return LenderConfig(**values)


def test_weights_must_sum_to_100():
    assert ScoreWeights(university_weight=30, student_weight=40, co_applicant_weight=30).total == 100
    with pytest.raises(ValidationError):
        ScoreWeights(university_weight=30, student_weight=40, co_applicant_weight=31)
    with pytest.raises(ValidationError):
        ScoreWeights(university_weight=20, student_weight=40, co_applicant_weight=30)


def test_default_config_is_valid_and_ordered_best_first():
    config = _config()
    assert [b.label for b in config.loan_bands] == ["90-100", "75-89", "60-74", "0-59"]
    assert [t.tier for t in config.rate_config] == ["excellent", "good", "average", "below_average"]


def test_bands_in_any_order_are_accepted():
    config = _config(loan_bands=list(reversed(DEFAULT_LOAN_BANDS)))
    assert config.loan_bands[0].label == "90-100"


@pytest.mark.parametrize("bands", [
    # gap at 60
    [
        {"score_min": 0, "score_max": 59, "min_percent": 0, "max_percent": 59},
        {"score_min": 61, "score_max": 100, "min_percent": 60, "max_percent": 100},
    ],
    # overlap at 60
    [
        {"score_min": 0, "score_max": 60, "min_percent": 0, "max_percent": 59},
        {"score_min": 60, "score_max": 100, "min_percent": 60, "max_percent": 100},
    ],
    # does not reach 100
    [
        {"score_min": 0, "score_max": 59, "min_percent": 0, "max_percent": 59},
        {"score_min": 60, "score_max": 99, "min_percent": 60, "max_percent": 100},
    ],
    # does not start at 0
    [
        {"score_min": 1, "score_max": 100, "min_percent": 0, "max_percent": 100},
    ],
])
def test_bands_must_partition_scores(bands):
    with pytest.raises(ValidationError):
        _config(loan_bands=bands)


def test_band_without_label_gets_range_label():
    config = _config(loan_bands=[
        {"score_min": 0, "score_max": 49, "min_percent": 0, "max_percent": 40},
        {"score_min": 50, "score_max": 100, "min_percent": 60, "max_percent": 100},
    ])
    assert [b.label for b in config.loan_bands] == ["50-100", "0-49"]


def test_legacy_mapping_shapes_are_accepted():
    config = _config(
        loan_bands={
            "90-100": {"min_percent": 90, "max_percent": 100},
            "0-89": {"min_percent": 0, "max_percent": 89},
        },
        rate_config={
            "excellent": {"min": 10.5, "max": 11.5, "score_threshold": 90},
            "below_average": {"min": 14, "max": 15, "score_threshold": 0},
        },
    )
    assert config.loan_bands[0].score_min == 90
    assert config.rate_config[0].min_rate == 10.5


@pytest.mark.parametrize("overrides", [
    {"loan_bands": {"0-100": 5}},
    {"rate_config": {"below_average": 15}},
])
def test_legacy_mapping_with_scalar_values_is_a_validation_error(overrides):
    with pytest.raises(ValidationError):
        _config(**overrides)


def test_saving_scalar_legacy_bands_is_a_configuration_error(db, seed):
    lender_id = seed.lender("Alpha")
    payload = {
        "max_loan_amount": 5000000,
        "loan_bands": {"0-100": 5},
        "rate_config": DEFAULT_RATE_CONFIG,
    }
    with pytest.raises(ConfigurationError) as exc:
        save_lender_config(db, lender_id, payload)
    assert exc.value.details


def test_rates_must_drop_as_threshold_rises():
    tiers = [
        {"tier": "excellent", "min_rate": 12.0, "max_rate": 13.0, "score_threshold": 90},
        {"tier": "good", "min_rate": 12.0, "max_rate": 13.5, "score_threshold": 75},
        {"tier": "below_average", "min_rate": 15.0, "max_rate": 16.0, "score_threshold": 0},
    ]
    with pytest.raises(ValidationError):
        _config(rate_config=tiers)


def test_lowest_tier_threshold_must_be_zero():
    tiers = [
        {"tier": "excellent", "min_rate": 11.0, "max_rate": 12.0, "score_threshold": 90},
        {"tier": "good", "min_rate": 12.0, "max_rate": 13.5, "score_threshold": 40},
    ]
    with pytest.raises(ValidationError):
        _config(rate_config=tiers)


def test_tier_names_are_a_closed_set():
    tiers = [{"tier": "platinum", "min_rate": 9.0, "max_rate": 10.0, "score_threshold": 0}]
    with pytest.raises(ValidationError):
        _config(rate_config=tiers)


def test_duplicate_thresholds_rejected():
    tiers = [
        {"tier": "excellent", "min_rate": 11.0, "max_rate": 12.0, "score_threshold": 0},
        {"tier": "good", "min_rate": 12.0, "max_rate": 13.5, "score_threshold": 0},
    ]
    with pytest.raises(ValidationError):
        _config(rate_config=tiers)


def test_university_grades_are_a_closed_set():
    assert _config(university_grade_mapping={"uni-1": "S"}).university_grade_mapping == {"uni-1": "S"}
    with pytest.raises(ValidationError):
        _config(university_grade_mapping={"uni-1": "Z"})


def test_lender_weight_override_is_validated():
    with pytest.raises(ValidationError):
        _config(score_weights={"university_weight": 50, "student_weight": 50, "co_applicant_weight": 10})
