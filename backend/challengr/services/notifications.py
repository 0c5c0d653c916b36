from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import UUID
import structlog
from redis import Redis
from rq import Queue

from challengr.config import settings

log = structlog.get_logger()

# ---------- domain events ----------

@dataclass(frozen=True)
class SubmissionCreated:
    submission_id: UUID
    challenge_id: UUID
    submitter_id: UUID
    validator_ids: list[UUID] = field(default_factory=list)

@dataclass(frozen=True)
class SubmissionResolved:
    submission_id: UUID
    challenge_id: UUID
    submitter_id: UUID
    validator_id: UUID
    status: str  # approved|rejected
    points_awarded: int = 0
    reason: str | None = None

# ---------- emitter ----------

class NotificationEmitter(Protocol):
    def notify(self, user_id: UUID, kind: str, payload: dict[str, Any]) -> None: ...


class RQNotificationEmitter:
    """Enqueues delivery on Redis; the job writes the inbox row."""

    def __init__(self, redis_url: str | None = None, queue_name: str | None = None):
        self._redis_url = redis_url or settings.redis_url
        self._queue_name = queue_name or settings.notification_queue
        self._queue: Queue | None = None

    def _q(self) -> Queue:
        if self._queue is None:
            self._queue = Queue(self._queue_name, connection=Redis.from_url(self._redis_url))
        return self._queue

    def notify(self, user_id: UUID, kind: str, payload: dict[str, Any]) -> None:
        self._q().enqueue(
            "challengr.jobs.deliver_notification.deliver_notification",
            str(user_id), kind, payload,
        )


_default_emitter: NotificationEmitter | None = None

def get_notification_emitter() -> NotificationEmitter:
    global _default_emitter
    if _default_emitter is None:
        _default_emitter = RQNotificationEmitter()
    return _default_emitter

# ---------- dispatch ----------

def _notifications_for(event) -> list[tuple[UUID, str, dict[str, Any]]]:
    if isinstance(event, SubmissionCreated):
        payload = {
            "submission_id": str(event.submission_id),
            "challenge_id": str(event.challenge_id),
            "submitter_id": str(event.submitter_id),
        }
        return [(vid, "new_submission", payload) for vid in event.validator_ids]
    if isinstance(event, SubmissionResolved):
        payload = {
            "submission_id": str(event.submission_id),
            "challenge_id": str(event.challenge_id),
            "validator_id": str(event.validator_id),
            "points_awarded": event.points_awarded,
        }
        if event.reason:
            payload["reason"] = event.reason
        return [(event.submitter_id, f"submission_{event.status}", payload)]
    return []


def dispatch_events(emitter: NotificationEmitter, events: list) -> int:
    """
    Fire-and-forget fan-out, called only after the transition committed.
    Delivery errors are logged and dropped. Returns how many were handed off.
    """
    sent = 0
    for event in events:
        for user_id, kind, payload in _notifications_for(event):
            try:
                emitter.notify(user_id, kind, payload)
                sent += 1
            except Exception as e:
                log.warning("notification.dispatch_failed", user_id=str(user_id), kind=kind, error=str(e))
    return sent
