"""
Band & Tier Resolver

Resolves a lender's loan band and interest-rate tier for an overall score.
Configurations are validated when saved, so resolution always finds a band;
a miss means stored configuration is corrupt and is raised loudly.
"""

import logging
from typing import Optional

from .contracts import LenderConfig, LoanBand, BandResolution, TierResolution
from .errors import BandResolutionError, ConfigurationError

logger = logging.getLogger(__name__)


def find_band(config: LenderConfig, score: int) -> LoanBand:
    matches = [band for band in config.loan_bands if band.contains(score)]
    if len(matches) != 1:
        logger.error(f"❌ Loan band integrity failure: score {score} matched {len(matches)} bands")
        raise BandResolutionError(
            f"Score {score} matched {len(matches)} loan bands; lender configuration is corrupt",
            details=[b.label for b in matches],
        )
    return matches[0]


def resolve_band(
    config: LenderConfig,
    score: int,
    requested_amount: Optional[float]
) -> BandResolution:
    """
    Find the loan band for a score and the approvable amount range.

    Both ends of the range are capped at the lender's max_loan_amount.
    Without a requested amount only the band itself is returned.
    """
    band = find_band(config, score)

    loan_min = loan_max = None
    if requested_amount:
        loan_min = min(requested_amount * band.min_percent / 100, config.max_loan_amount)
        loan_max = min(requested_amount * band.max_percent / 100, config.max_loan_amount)

    return BandResolution(
        label=band.label,
        min_percent=band.min_percent,
        max_percent=band.max_percent,
        eligible_loan_min=round(loan_min, 2) if loan_min is not None else None,
        eligible_loan_max=round(loan_max, 2) if loan_max is not None else None,
    )


def resolve_rate_tier(config: LenderConfig, score: int) -> TierResolution:
    """
    Pick the tier with the highest threshold the score reaches.

    rate_config is kept sorted by descending threshold with strictly lower
    rates at higher thresholds, so a higher score never lands on a worse tier.
    """
    for tier in config.rate_config:
        if tier.score_threshold <= score:
            return TierResolution(tier=tier.tier, min_rate=tier.min_rate, max_rate=tier.max_rate)

    logger.error(f"❌ No rate tier for score {score}; lowest threshold is {config.rate_config[-1].score_threshold}")
    raise ConfigurationError(f"No rate tier covers score {score}")
