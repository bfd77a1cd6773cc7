"""
Auto-approval sweep: completes results nobody reviewed within 24 hours.

Background worker that polls every ``AUTO_APPROVAL_SWEEP_SECONDS`` (default
5 minutes). Each due match is approved through ``auto_approve``, which is
safe to run from several workers at once: the first one wins, the rest
see a completed match and do nothing. A failure on one match is logged and
left for the next pass.
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional

from sqlmodel import Session

from app.models.match import Match
from app.services.auto_approval import AUTO_APPROVAL_WINDOW
from app.services.match_events import MatchEventPublisher
from app.services.match_status import MatchStatus, canonical_status
from app.services.match_store import MatchStore
from app.services.result_workflow import auto_approve
from app.utils.clock import get_clock

logger = logging.getLogger(__name__)

# How often the worker looks for due matches (seconds)
POLL_INTERVAL_SECONDS = int(os.getenv("AUTO_APPROVAL_SWEEP_SECONDS", "300"))

SWEEP_ENABLED = os.getenv("AUTO_APPROVAL_SWEEP_ENABLED", "true").lower() in ("true", "1", "yes")


@dataclass
class SweepResult:
    checked: int = 0
    approved: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)


def evaluate_auto_approval(
    session: Session,
    match_id: int,
    now: datetime,
    publisher: Optional[MatchEventPublisher] = None,
) -> Match:
    """Lazy single-match check. Returns the match, approved if it was due."""
    return auto_approve(session, match_id, now, publisher=publisher)


def sweep_auto_approvals(
    session: Session,
    now: datetime,
    publisher: Optional[MatchEventPublisher] = None,
) -> SweepResult:
    result = SweepResult()
    due_ids = MatchStore(session).pending_auto_approval_ids(now - AUTO_APPROVAL_WINDOW)
    if not due_ids:
        return result

    logger.info(f"Found {len(due_ids)} match result(s) due for auto-approval")
    for match_id in due_ids:
        result.checked += 1
        try:
            match = auto_approve(session, match_id, now, publisher=publisher)
        except Exception as e:
            logger.error(f"Error auto-approving match {match_id}: {e}", exc_info=True)
            session.rollback()
            result.failed.append(match_id)
            continue
        if canonical_status(match.status) == MatchStatus.COMPLETED and match.auto_approved:
            result.approved.append(match_id)
    return result


class AutoApprovalWorker:
    """Background service that runs the auto-approval sweep on a timer."""

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        self._session_factory = session_factory
        self._worker_task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    def _new_session(self) -> Session:
        if self._session_factory is not None:
            return self._session_factory()
        from app.database import engine

        return Session(engine)

    def start(self) -> None:
        """Start the background sweep worker."""
        if not SWEEP_ENABLED:
            logger.info("Auto-approval sweep disabled")
            return
        if self._worker_task is None or self._worker_task.done():
            self._stop_event.clear()
            self._worker_task = asyncio.create_task(self._poll_loop())
            logger.info("Auto-approval sweep worker started")

    def stop(self) -> None:
        """Stop the background sweep worker."""
        self._stop_event.set()
        if self._worker_task and not self._worker_task.done():
            self._worker_task.cancel()
            logger.info("Auto-approval sweep worker stopped")

    def run_once(self) -> SweepResult:
        with self._new_session() as session:
            return sweep_auto_approvals(session, get_clock().now())

    async def _poll_loop(self) -> None:
        """Main loop: sweep, then sleep. Repeats until stopped."""
        while not self._stop_event.is_set():
            try:
                result = await asyncio.to_thread(self.run_once)
                if result.approved:
                    logger.info(f"Auto-approved {len(result.approved)} match(es): {result.approved}")
            except Exception as e:
                logger.error(f"Error in auto-approval sweep worker: {e}", exc_info=True)

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=POLL_INTERVAL_SECONDS)
                break
            except asyncio.TimeoutError:
                pass


# Global singleton
_worker: Optional[AutoApprovalWorker] = None


def get_auto_approval_worker() -> AutoApprovalWorker:
    """Get the global auto-approval worker, created on first use inside the event loop."""
    global _worker
    if _worker is None:
        _worker = AutoApprovalWorker()
    return _worker
