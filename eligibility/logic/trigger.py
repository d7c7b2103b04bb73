"""
Recommendation Trigger

Decides whether a lead field change warrants a recompute, and runs those
recomputes off the request path through a debounced per-lead queue.

Per lead the queue moves idle -> pending -> running -> idle. Enqueueing a
pending lead pushes its due time back (bursts collapse into one run); a
trigger that lands while the lead is running schedules exactly one follow-up
run. Jobs read the lead's latest state when they fire.
"""

import logging
import threading
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

from .constants import RECOMMENDATION_TRIGGER_FIELDS

logger = logging.getLogger(__name__)


class TriggerState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    RUNNING = "running"


def _as_number(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def should_trigger_recompute(field: str, old_value: Any, new_value: Any, change_percent: float = 10.0) -> bool:
    """
    True when a change to ``field`` should recompute the recommendation.

    Only watched fields count and equal values never trigger. A loan amount
    change must move the amount by at least ``change_percent`` percent of the
    previous value; a previously empty amount always triggers.
    """
    if field not in RECOMMENDATION_TRIGGER_FIELDS:
        return False
    if old_value == new_value:
        return False

    if field == "loan_amount":
        old_amount, new_amount = _as_number(old_value), _as_number(new_value)
        if old_amount == new_amount:
            return False
        if not old_amount:
            return True
        if new_amount is None:
            return True
        return abs(new_amount - old_amount) / old_amount * 100 >= change_percent

    return True


class RecomputeQueue:
    """
    Debounced, per-lead recompute queue served by one daemon worker thread.

    Args:
        job: Called with a lead id when its debounce window has elapsed.
            Exceptions are logged and swallowed.
        debounce_seconds: Quiet period after the last trigger
        clock: Monotonic time source (injectable for tests)
    """

    def __init__(
        self,
        job: Callable[[str], Any],
        debounce_seconds: float = 2.0,
        clock: Callable[[], float] = time.monotonic
    ):
        self._job = job
        self._debounce = debounce_seconds
        self._clock = clock
        self._cond = threading.Condition()
        self._due: Dict[str, float] = {}
        self._running: Set[str] = set()
        self._follow_up: Set[str] = set()
        self._thread: Optional[threading.Thread] = None
        self._stopping = False

    # -------------------------------------------------------------------------
    # Producer side
    # -------------------------------------------------------------------------

    def enqueue(self, lead_id: str) -> None:
        with self._cond:
            if lead_id in self._running:
                self._follow_up.add(lead_id)
            else:
                self._due[lead_id] = self._clock() + self._debounce
            self._cond.notify()

    def state(self, lead_id: str) -> TriggerState:
        with self._cond:
            if lead_id in self._running:
                return TriggerState.RUNNING
            if lead_id in self._due:
                return TriggerState.PENDING
            return TriggerState.IDLE

    def pending(self) -> List[str]:
        with self._cond:
            return sorted(self._due, key=self._due.get)

    # -------------------------------------------------------------------------
    # Consumer side
    # -------------------------------------------------------------------------

    def _take_due(self) -> List[str]:
        now = self._clock()
        ready = sorted((due, lead_id) for lead_id, due in self._due.items() if due <= now)
        lead_ids = [lead_id for _, lead_id in ready]
        for lead_id in lead_ids:
            del self._due[lead_id]
            self._running.add(lead_id)
        return lead_ids

    def _run(self, lead_id: str) -> None:
        try:
            self._job(lead_id)
        except Exception as e:
            logger.error(f"❌ Recompute job failed for lead {lead_id}: {e}")
        finally:
            with self._cond:
                self._running.discard(lead_id)
                if lead_id in self._follow_up:
                    self._follow_up.discard(lead_id)
                    self._due[lead_id] = self._clock() + self._debounce
                self._cond.notify()

    def run_due(self) -> int:
        """Run every job whose window has elapsed, on the calling thread. Returns the count."""
        with self._cond:
            lead_ids = self._take_due()
        for lead_id in lead_ids:
            self._run(lead_id)
        return len(lead_ids)

    def _worker(self) -> None:
        while True:
            lead_ids: List[str] = []
            with self._cond:
                while not self._stopping:
                    lead_ids = self._take_due()
                    if lead_ids:
                        break
                    timeout = None
                    if self._due:
                        timeout = max(0.0, min(self._due.values()) - self._clock())
                    self._cond.wait(timeout)
                if self._stopping:
                    return
            for lead_id in lead_ids:
                self._run(lead_id)

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stopping = False
        self._thread = threading.Thread(target=self._worker, name="recompute-queue", daemon=True)
        self._thread.start()
        logger.info(f"🧵 Recompute queue started (debounce {self._debounce}s)")

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        with self._cond:
            self._stopping = True
            self._cond.notify_all()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("🛑 Recompute queue stopped")


def trigger_recompute_on_change(
    queue: RecomputeQueue,
    lead_id: str,
    field: str,
    old_value: Any,
    new_value: Any,
    change_percent: float = 10.0
) -> bool:
    """Enqueue a recompute when the change is relevant. Returns whether it was enqueued."""
    if not should_trigger_recompute(field, old_value, new_value, change_percent):
        logger.debug(f"Change to {field} on lead {lead_id} ignored")
        return False
    queue.enqueue(lead_id)
    logger.info(f"⏳ Recompute scheduled for lead {lead_id} ({field} changed)")
    return True
