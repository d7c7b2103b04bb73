"""
Engine Settings

Policy values for the eligibility engine, read from the environment
(``.env`` is loaded first). Settings are built on demand so that a changed
environment takes effect on the next computation.
"""

import os
from typing import Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class EngineSettings(BaseModel):
    # Approval policy
    min_eligibility_score: int = Field(default=40, ge=0, le=100)
    conditional_band_width: int = Field(default=5, ge=0, le=100)

    # Insight thresholds (excellent / strong / good; anything lower is "explore")
    insight_excellent: int = 85
    insight_strong: int = 70
    insight_good: int = 55

    # Recommendations whose top score is below this are flagged for human review
    human_review_below: int = Field(default=70, ge=0, le=100)

    # Trigger
    debounce_seconds: float = Field(default=2.0, ge=0)
    loan_amount_change_percent: float = Field(default=10.0, ge=0)

    # Batch
    batch_default_limit: int = Field(default=100, ge=1)
    batch_max_limit: int = Field(default=500, ge=1)
    batch_delay_seconds: float = Field(default=0.1, ge=0)


def _env(name: str) -> Optional[str]:
    value = os.getenv(name)
    return value if value not in (None, "") else None


def load_settings() -> EngineSettings:
    """Build settings from ``BRE_*`` environment variables, falling back to defaults."""
    overrides = {}
    for field_name in EngineSettings.model_fields:
        raw = _env(f"BRE_{field_name.upper()}")
        if raw is not None:
            overrides[field_name] = raw
    return EngineSettings(**overrides)
