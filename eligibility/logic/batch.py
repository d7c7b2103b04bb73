"""
Batch Recompute Orchestrator

Re-runs the eligibility pipeline over many leads, sequentially, one session
per lead, with a fixed pause between leads. A failing lead is recorded and
the batch moves on.
"""

import logging
import time
from typing import Callable, List, Optional

from sqlalchemy import select, or_
from sqlalchemy.orm import Session

from db import session_scope
from eligibility.config import EngineSettings, load_settings
from eligibility.models import Lead
from .contracts import BatchResult, BatchError
from .constants import TERMINAL_LEAD_STATUSES
from .runner import compute_recommendation

logger = logging.getLogger(__name__)


def select_lead_ids(db: Session, lead_ids: Optional[List[str]], limit: int) -> List[str]:
    """
    Explicit ids (deduplicated, order kept) or the newest non-terminal leads.
    Terminal leads are skipped either way; unknown explicit ids are kept so
    they surface as failures. At most ``limit`` ids.
    """
    if lead_ids:
        terminal = set(db.execute(
            select(Lead.id)
            .where(Lead.id.in_(lead_ids), Lead.status.in_(TERMINAL_LEAD_STATUSES))
        ).scalars().all())
        seen = []
        for lead_id in lead_ids:
            if lead_id in terminal:
                logger.info(f"⏭️ Skipping lead {lead_id}: terminal status")
            elif lead_id not in seen:
                seen.append(lead_id)
        return seen[:limit]

    return list(db.execute(
        select(Lead.id)
        .where(or_(Lead.status.is_(None), Lead.status.not_in(TERMINAL_LEAD_STATUSES)))
        .order_by(Lead.created_at.desc(), Lead.id)
        .limit(limit)
    ).scalars().all())


def batch_recompute(
    session_factory: Optional[Callable[[], Session]] = None,
    lead_ids: Optional[List[str]] = None,
    limit: Optional[int] = None,
    delay_seconds: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
    settings: Optional[EngineSettings] = None
) -> BatchResult:
    """
    Recompute recommendations for a set of leads.

    Args:
        session_factory: Session maker; the application's SessionLocal when omitted
        lead_ids: Explicit leads; otherwise non-terminal leads, newest first
        limit: Max leads (default and hard cap from settings)
        delay_seconds: Pause between leads (settings default)
        sleep: Sleep function (injectable for tests)
        settings: Engine policy

    Returns:
        BatchResult {total, processed, failed, errors}
    """
    settings = settings or load_settings()
    limit = min(limit or settings.batch_default_limit, settings.batch_max_limit)
    delay = settings.batch_delay_seconds if delay_seconds is None else delay_seconds

    with session_scope(session_factory) as db:
        selected = select_lead_ids(db, lead_ids, limit)

    result = BatchResult(total=len(selected))
    logger.info(f"📦 Batch recompute started for {result.total} leads")

    for position, lead_id in enumerate(selected):
        try:
            with session_scope(session_factory) as db:
                compute_recommendation(db, lead_id, settings)
            result.processed += 1
        except Exception as e:
            logger.error(f"❌ Batch recompute failed for lead {lead_id}: {e}")
            result.failed += 1
            result.errors.append(BatchError(lead_id=lead_id, error=str(e)))

        if delay and position < len(selected) - 1:
            sleep(delay)

    logger.info(f"✨ Batch recompute complete: {result.processed} processed, {result.failed} failed")
    return result
