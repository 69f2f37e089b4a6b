import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from .models import AuditRecord, RewardsClaimed, TipRecorded, UpvoteRecorded


logger = logging.getLogger(__name__)

Subscriber = Callable[[AuditRecord], None]


class AuditEmitter:
    """
    Append-only event log for accepted transitions.

    Emission is fire-and-forget: subscribers run after the record is appended
    and a subscriber that raises is logged and skipped, never propagated.
    """

    def __init__(self):
        self._records: list[AuditRecord] = []
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def emit(self, event: Union[TipRecorded, UpvoteRecorded, RewardsClaimed]) -> AuditRecord:
        with self._lock:
            record = AuditRecord(
                sequence=len(self._records) + 1,
                emitted_at=datetime.now(timezone.utc),
                event=event,
            )
            self._records.append(record)
        for subscriber in list(self._subscribers):
            try:
                subscriber(record)
            except Exception:
                logger.warning(
                    "audit subscriber %r failed for event #%d", subscriber, record.sequence, exc_info=True
                )
        return record

    def records(self, user: Optional[str] = None, limit: int = 50, offset: int = 0) -> list[AuditRecord]:
        records = [r for r in self._records if user is None or r.event.user == user]
        return records[offset:offset + limit]

    def count(self, user: Optional[str] = None) -> int:
        if user is None:
            return len(self._records)
        return sum(1 for r in self._records if r.event.user == user)
