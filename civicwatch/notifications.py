"""
Notifications emitted by the ledger.

A notification describes one committed change. Notifications are appended
to a NotificationLog and never modified; consumers (indexers, UIs) either
subscribe for live delivery or read the log afterwards.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterator, Sequence

from .errors import NotificationSinkError

logger = logging.getLogger(__name__)

# Notification type constants
REPORT_SUBMITTED = "report.submitted"
REPORT_VOTED = "report.voted"
REPORT_STATUS_UPDATED = "report.status_updated"
POINTS_UPDATED = "points.updated"

NOTIFICATION_TYPES = frozenset({
    REPORT_SUBMITTED,
    REPORT_VOTED,
    REPORT_STATUS_UPDATED,
    POINTS_UPDATED,
})

# Required payload fields for each notification type
NOTIFICATION_PAYLOAD_FIELDS = {
    REPORT_SUBMITTED: {
        "report_id": "Identifier of the new report",
        "reporter": "Identity that submitted it",
    },
    REPORT_VOTED: {
        "report_id": "Identifier of the voted report",
        "voter": "Identity that voted",
        "is_upvote": "True for an upvote, False for a downvote",
    },
    REPORT_STATUS_UPDATED: {
        "report_id": "Identifier of the report",
        "new_status": "solved | flagged",
    },
    POINTS_UPDATED: {
        "identity": "Identity whose balance changed",
        "new_total": "Balance after the change (not the delta)",
        "reason": "Human-readable label for the change",
    },
}


@dataclass(frozen=True)
class Notification:
    """Immutable record of one committed change."""

    event_type: str  # One of NOTIFICATION_TYPES
    payload: dict[str, Any] = field(default_factory=dict)
    sequence: int = 0  # Position in the log, assigned on append

    def __post_init__(self) -> None:
        if self.event_type not in NOTIFICATION_TYPES:
            raise ValueError(f"Invalid event_type: {self.event_type}")
        missing = sorted(set(NOTIFICATION_PAYLOAD_FIELDS[self.event_type]) - set(self.payload))
        if missing:
            raise ValueError(f"{self.event_type} payload missing: {', '.join(missing)}")

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {
            "sequence": self.sequence,
            "event_type": self.event_type,
            "payload": self.payload,
        }

    def to_json(self) -> str:
        """Serialize to JSON string (single line)."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Notification:
        return cls(
            event_type=data["event_type"],
            payload=data.get("payload", {}),
            sequence=int(data.get("sequence", 0)),
        )

    @classmethod
    def from_json(cls, line: str) -> Notification:
        return cls.from_dict(json.loads(line))


def report_submitted(report_id: int, reporter: str) -> Notification:
    return Notification(REPORT_SUBMITTED, {"report_id": report_id, "reporter": reporter})


def report_voted(report_id: int, voter: str, is_upvote: bool) -> Notification:
    return Notification(
        REPORT_VOTED,
        {"report_id": report_id, "voter": voter, "is_upvote": bool(is_upvote)},
    )


def report_status_updated(report_id: int, new_status: str) -> Notification:
    return Notification(REPORT_STATUS_UPDATED, {"report_id": report_id, "new_status": new_status})


def points_updated(identity: str, new_total: int, reason: str) -> Notification:
    return Notification(
        POINTS_UPDATED,
        {"identity": identity, "new_total": new_total, "reason": reason},
    )


Subscriber = Callable[[Notification], None]


class NotificationLog:
    """
    Append-only notification log.

    INVARIANT: entries are never modified or removed. The only write
    operation is record(); append_many() is record() followed by deliver().

    When `path` is given, every batch is written there as JSON Lines before
    it enters the in-memory log.
    """

    def __init__(self, path: Path | None = None):
        self.path = path
        self._entries: list[Notification] = []
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a live consumer. Returns a callable that unsubscribes it."""
        self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return unsubscribe

    def record(self, notifications: Sequence[Notification]) -> list[Notification]:
        """
        Stamp sequence numbers and write one operation's batch.

        The file write happens first. If it fails, NotificationSinkError is
        raised and the log is unchanged.
        """
        if not notifications:
            return []

        start = len(self._entries) + 1
        stamped = [
            Notification(n.event_type, dict(n.payload), sequence=start + i)
            for i, n in enumerate(notifications)
        ]

        if self.path is not None:
            lines = "".join(n.to_json() + "\n" for n in stamped)
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8") as f:
                    f.write(lines)
            except OSError as e:
                raise NotificationSinkError(f"Cannot write notifications to {self.path}: {e}") from e

        self._entries.extend(stamped)
        return stamped

    def deliver(self, stamped: Sequence[Notification]) -> None:
        """Hand recorded notifications to subscribers. Failures are logged only."""
        for n in stamped:
            for subscriber in list(self._subscribers):
                try:
                    subscriber(n)
                except Exception:
                    logger.exception("Notification subscriber failed on %s #%d", n.event_type, n.sequence)

    def append_many(self, notifications: Sequence[Notification]) -> list[Notification]:
        """Record a batch and deliver it."""
        stamped = self.record(notifications)
        self.deliver(stamped)
        return stamped

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Notification]:
        return iter(list(self._entries))

    def query(
        self,
        *,
        event_type: str | None = None,
        report_id: int | None = None,
        identity: str | None = None,
        limit: int | None = None,
    ) -> list[Notification]:
        """
        Filter notifications in append order.

        `identity` matches reporter, voter or points identity fields.
        `limit` keeps the most recent matches.
        """
        results: list[Notification] = []
        for n in self._entries:
            if event_type is not None and n.event_type != event_type:
                continue
            if report_id is not None and n.payload.get("report_id") != report_id:
                continue
            if identity is not None and identity not in (
                n.payload.get("reporter"),
                n.payload.get("voter"),
                n.payload.get("identity"),
            ):
                continue
            results.append(n)

        if limit is not None:
            results = results[-limit:] if limit > 0 else []
        return results


def read_notifications(path: Path) -> Iterator[Notification]:
    """Iterate over a JSON Lines notification file in append order."""
    if not path.exists():
        return

    with path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if line:
                yield Notification.from_json(line)
