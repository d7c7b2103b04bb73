"""
Band & tier resolver: exactly one band per score, monotonic tiers and
loan amount capping.
"""

import pytest

from eligibility.logic.contracts import LenderConfig, LoanBand
from eligibility.logic.constants import DEFAULT_LOAN_BANDS, DEFAULT_RATE_CONFIG
from eligibility.logic.errors import BandResolutionError, ConfigurationError
from eligibility.logic.resolver import find_band, resolve_band, resolve_rate_tier

DEFAULT_CONFIG = LenderConfig(
    max_loan_amount=5000000,
    loan_bands=DEFAULT_LOAN_BANDS,
    rate_config=DEFAULT_RATE_CONFIG,
)

CUSTOM_CONFIG = LenderConfig(
    max_loan_amount=5000000,
    loan_bands=[
        {"label": "90-100", "score_min": 90, "score_max": 100, "min_percent": 90, "max_percent": 100},
        {"label": "75-89", "score_min": 75, "score_max": 89, "min_percent": 75, "max_percent": 90},
        {"label": "60-74", "score_min": 60, "score_max": 74, "min_percent": 50, "max_percent": 75},
        {"label": "0-59", "score_min": 0, "score_max": 59, "min_percent": 0, "max_percent": 40},
    ],
    rate_config=DEFAULT_RATE_CONFIG,
)


@pytest.mark.parametrize("config", [DEFAULT_CONFIG, CUSTOM_CONFIG])
def test_every_score_has_exactly_one_band(config):
    for score in range(0, 101):
        matches = [band for band in config.loan_bands if band.contains(score)]
        assert len(matches) == 1, score
        assert find_band(config, score) is matches[0]


def test_tiers_never_get_worse_as_score_rises():
    previous = None
    for score in range(0, 101):
        tier = resolve_rate_tier(DEFAULT_CONFIG, score)
        if previous is not None:
            assert tier.min_rate <= previous.min_rate
            assert tier.max_rate <= previous.max_rate
        previous = tier


def test_score_71_example():
    band = resolve_band(CUSTOM_CONFIG, 71, 1000000)
    assert band.label == "60-74"
    assert band.eligible_loan_min == 500000
    assert band.eligible_loan_max == 750000
    assert resolve_rate_tier(CUSTOM_CONFIG, 71).tier == "average"


@pytest.mark.parametrize("score,tier", [(100, "excellent"), (90, "excellent"), (89, "good"), (75, "good"), (74, "average"), (60, "average"), (59, "below_average"), (0, "below_average")])
def test_tier_thresholds(score, tier):
    assert resolve_rate_tier(DEFAULT_CONFIG, score).tier == tier


def test_eligible_amount_never_exceeds_lender_max():
    band = resolve_band(DEFAULT_CONFIG, 95, 6000000)
    assert band.eligible_loan_max == 5000000
    assert band.eligible_loan_min == 5000000
    for amount in (100000, 2500000, 5000000, 9000000):
        for score in (0, 59, 60, 89, 100):
            assert resolve_band(DEFAULT_CONFIG, score, amount).eligible_loan_max <= DEFAULT_CONFIG.max_loan_amount


def test_band_without_requested_amount():
    band = resolve_band(DEFAULT_CONFIG, 80, None)
    assert band.label == "75-89"
    assert band.eligible_loan_min is None and band.eligible_loan_max is None


def test_corrupt_bands_raise():
    corrupt = LenderConfig.model_construct(
        max_loan_amount=5000000,
        loan_bands=[LoanBand(score_min=0, score_max=50, min_percent=0, max_percent=50)],
        rate_config=DEFAULT_CONFIG.rate_config,
    )
    with pytest.raises(BandResolutionError):
        resolve_band(corrupt, 70, 1000000)
    # BandResolutionError is a configuration problem
    with pytest.raises(ConfigurationError):
        find_band(corrupt, 70)
