"""
Push-event channel for match invalidation hints.

Clients re-fetch canonical state when they see an event; events are never
a source of truth for a transition. Delivery transport lives outside this
service, so the default publisher only logs.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

MATCH_UPDATED = "match_updated"
MATCH_PARTICIPANT_JOINED = "match_participant_joined"


class MatchEventPublisher:
    """Logs events. Subclass and override ``deliver`` to attach a transport."""

    def publish(self, event: str, match_id: int, payload: Optional[Dict[str, Any]] = None) -> None:
        body = {"match_id": match_id, **(payload or {})}
        try:
            self.deliver(event, body)
        except Exception as e:
            # Invalidation hints are best-effort; the transition is already committed
            logger.warning(f"Failed to publish {event} for match {match_id}: {e}")

    def deliver(self, event: str, body: Dict[str, Any]) -> None:
        logger.info(f"[EVENT] {event}: {body}")


class RecordingEventPublisher(MatchEventPublisher):
    """Keeps published events in memory (tests, local tooling)."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def deliver(self, event: str, body: Dict[str, Any]) -> None:
        self.events.append((event, body))


_publisher: MatchEventPublisher = MatchEventPublisher()


def get_event_publisher() -> MatchEventPublisher:
    """FastAPI dependency for the process-wide publisher."""
    return _publisher
