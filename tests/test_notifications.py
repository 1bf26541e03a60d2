from __future__ import annotations

import logging
from pathlib import Path

import pytest

from civicwatch.errors import NotificationSinkError
from civicwatch.ledger import IncidentLedger
from civicwatch.notifications import (
    POINTS_UPDATED,
    REPORT_SUBMITTED,
    REPORT_VOTED,
    Notification,
    NotificationLog,
    points_updated,
    read_notifications,
    report_submitted,
)


def test_notification_rejects_unknown_type() -> None:
    with pytest.raises(ValueError, match="Invalid event_type"):
        Notification("report.deleted", {})


def test_notification_requires_payload_fields() -> None:
    with pytest.raises(ValueError, match="report.voted payload missing: is_upvote, voter"):
        Notification(REPORT_VOTED, {"report_id": 1})


def test_notification_json_roundtrip() -> None:
    n = Notification(REPORT_VOTED, {"report_id": 3, "voter": "human:bob", "is_upvote": False}, sequence=7)
    assert Notification.from_json(n.to_json()) == n
    assert "\n" not in n.to_json()


def test_append_many_assigns_sequence() -> None:
    log = NotificationLog()
    log.append_many([report_submitted(1, "human:alice"), points_updated("human:alice", 100, "r")])
    log.append_many([report_submitted(2, "human:bob")])

    assert [n.sequence for n in log] == [1, 2, 3]
    assert len(log) == 3
    assert log.append_many([]) == []


def test_record_failure_leaves_log_unchanged(tmp_path: Path) -> None:
    log = NotificationLog()
    log.append_many([report_submitted(1, "human:alice")])
    log.path = tmp_path

    delivered: list[Notification] = []
    log.subscribe(delivered.append)
    with pytest.raises(NotificationSinkError):
        log.append_many([report_submitted(2, "human:bob")])

    assert len(log) == 1
    assert delivered == []


def test_subscribers_receive_batches_in_order(ledger: IncidentLedger, submit) -> None:
    seen: list[str] = []
    unsubscribe = ledger.notifications.subscribe(lambda n: seen.append(n.event_type))

    report_id = submit("human:alice")
    ledger.vote_report(report_id, True, voter="human:bob", now=0)
    unsubscribe()
    ledger.vote_report(report_id, True, voter="human:carol", now=0)

    assert seen == [REPORT_SUBMITTED, POINTS_UPDATED, POINTS_UPDATED, REPORT_VOTED]


def test_failing_subscriber_does_not_undo_operation(
    ledger: IncidentLedger, submit, caplog: pytest.LogCaptureFixture
) -> None:
    def broken(_n: Notification) -> None:
        raise RuntimeError("indexer offline")

    ledger.notifications.subscribe(broken)
    with caplog.at_level(logging.ERROR, logger="civicwatch.notifications"):
        report_id = submit("human:alice")

    assert ledger.get_report(report_id).id == 1
    assert len(ledger.notifications) == 2
    assert "Notification subscriber failed" in caplog.text


def test_query_filters(ledger: IncidentLedger, submit) -> None:
    first = submit("human:alice", now=0)
    submit("human:bob", now=0)
    ledger.vote_report(first, True, voter="human:bob", now=0)

    assert len(ledger.notifications.query(report_id=first)) == 2
    by_bob = ledger.notifications.query(identity="human:bob")
    assert [n.event_type for n in by_bob] == [REPORT_SUBMITTED, POINTS_UPDATED, REPORT_VOTED]
    latest = ledger.notifications.query(limit=1)
    assert latest[0].event_type == REPORT_VOTED
    assert ledger.notifications.query(limit=0) == []


def test_jsonl_sink(tmp_path: Path) -> None:
    path = tmp_path / "out" / "notifications.jsonl"
    ledger = IncidentLedger(notifications_path=path)
    ledger.submit_report("d", "l", "m", "c", 2, reporter="human:alice", now=0)
    ledger.mark_report_solved(1, caller="human:alice")

    written = list(read_notifications(path))
    assert [n.sequence for n in written] == [1, 2, 3, 4]
    assert written[-1].payload == {"report_id": 1, "new_status": "solved"}
    assert list(read_notifications(tmp_path / "missing.jsonl")) == []
