from __future__ import annotations

from pathlib import Path

import pytest

from civicwatch.errors import AlreadyVoted, CooldownActive, JournalError
from civicwatch.journal import (
    ACTION_FLAG,
    ACTION_SOLVE,
    ACTION_SUBMIT,
    ACTION_VOTE,
    ActionJournal,
    JournalEntry,
    open_ledger,
)
from civicwatch.ledger import IncidentLedger
from civicwatch.notifications import read_notifications


def _submit_entry(actor: str, now: int, **overrides) -> JournalEntry:
    args = {
        "details": "Flooded underpass",
        "location": "Rt 9 bridge",
        "media_ref": "vid-77",
        "category": "flooding",
        "priority": 4,
    }
    args.update(overrides)
    return JournalEntry(ACTION_SUBMIT, actor, args, now=now)


def _state(ledger: IncidentLedger) -> tuple:
    reports, _ = ledger.get_all_reports(0, 1000)
    profiles = {i: ledger.get_user_profile(i) for i in sorted(ledger.reputation.identities())}
    return reports, profiles, [n.to_dict() for n in ledger.notifications]


def test_entry_rejects_unknown_action() -> None:
    with pytest.raises(JournalError, match="Invalid action"):
        JournalEntry("delete", "human:alice")


def test_apply_records_only_accepted_actions(home: Path) -> None:
    journal = ActionJournal(home / "actions.jsonl")
    ledger = IncidentLedger()

    assert journal.apply(ledger, _submit_entry("human:alice", 0)) == 1
    with pytest.raises(CooldownActive):
        journal.apply(ledger, _submit_entry("human:alice", 10))

    entries = list(journal.iter_entries())
    assert len(entries) == 1
    assert entries[0].action == ACTION_SUBMIT
    assert entries[0].now == 0


def test_replay_rebuilds_identical_state(home: Path) -> None:
    journal = ActionJournal(home / "actions.jsonl")
    live = IncidentLedger()

    journal.apply(live, _submit_entry("human:alice", 0))
    journal.apply(live, _submit_entry("human:bob", 5, category="power"))
    journal.apply(live, JournalEntry(ACTION_VOTE, "human:bob", {"report_id": 1, "is_upvote": True}, now=6))
    journal.apply(live, JournalEntry(ACTION_VOTE, "human:carol", {"report_id": 2, "is_upvote": False}, now=7))
    journal.apply(live, JournalEntry(ACTION_SOLVE, "human:alice", {"report_id": 1}))
    journal.apply(live, JournalEntry(ACTION_FLAG, "human:bob", {"report_id": 2}))

    rebuilt = IncidentLedger()
    assert journal.replay(rebuilt) == 6
    assert _state(rebuilt) == _state(live)


def test_replay_missing_journal_is_empty(home: Path) -> None:
    ledger = IncidentLedger()
    assert ActionJournal(home / "actions.jsonl").replay(ledger) == 0
    assert ledger.reports.count() == 0


def test_replay_rejects_malformed_line(home: Path) -> None:
    path = home / "actions.jsonl"
    path.parent.mkdir(parents=True)
    path.write_text('{"action": "submit"}\n', encoding="utf-8")

    with pytest.raises(JournalError, match=":1: malformed entry"):
        ActionJournal(path).replay(IncidentLedger())


def test_replay_rejects_entry_that_no_longer_applies(home: Path) -> None:
    path = home / "actions.jsonl"
    path.parent.mkdir(parents=True)
    lines = [
        _submit_entry("human:alice", 0).to_json(),
        _submit_entry("human:alice", 1).to_json(),
    ]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    with pytest.raises(JournalError, match="entry 2"):
        ActionJournal(path).replay(IncidentLedger())


def test_open_ledger_does_not_rewrite_notifications(home: Path) -> None:
    journal = ActionJournal(home / "actions.jsonl")
    notifications_path = home / "notifications.jsonl"

    first = open_ledger(journal, notifications_path=notifications_path)
    journal.apply(first, _submit_entry("human:alice", 0))
    assert len(list(read_notifications(notifications_path))) == 2

    second = open_ledger(journal, notifications_path=notifications_path)
    assert second.reports.count() == 1
    assert len(list(read_notifications(notifications_path))) == 2

    journal.apply(second, JournalEntry(ACTION_SOLVE, "human:alice", {"report_id": 1}))
    sequences = [n.sequence for n in read_notifications(notifications_path)]
    assert sequences == [1, 2, 3, 4]


@pytest.mark.parametrize(
    "line",
    [
        "[1, 2, 3]",
        '"submit"',
        "null",
        '{"action": "vote", "actor": "human:bob", "args": [1]}',
    ],
)
def test_replay_rejects_entries_of_the_wrong_shape(home: Path, line: str) -> None:
    path = home / "actions.jsonl"
    path.parent.mkdir(parents=True)
    path.write_text(line + "\n", encoding="utf-8")

    with pytest.raises(JournalError, match="actions.jsonl"):
        ActionJournal(path).replay(IncidentLedger())


def test_replay_rejects_non_integer_priority(home: Path) -> None:
    path = home / "actions.jsonl"
    path.parent.mkdir(parents=True)
    path.write_text(_submit_entry("human:alice", 0, priority="x").to_json() + "\n", encoding="utf-8")

    with pytest.raises(JournalError, match="entry 1 \\(submit\\) no longer applies"):
        ActionJournal(path).replay(IncidentLedger())


def test_two_handles_on_one_journal_stay_consistent(home: Path) -> None:
    journal = ActionJournal(home / "actions.jsonl")
    notifications_path = home / "notifications.jsonl"
    journal.apply(open_ledger(journal), _submit_entry("human:alice", 0))

    a = open_ledger(journal, notifications_path=notifications_path)
    b = open_ledger(journal, notifications_path=notifications_path)
    vote = JournalEntry(ACTION_VOTE, "human:bob", {"report_id": 1, "is_upvote": True}, now=1)

    journal.apply(a, vote)
    # b folds in a's vote before executing, so the duplicate is rejected
    with pytest.raises(AlreadyVoted):
        journal.apply(b, vote)
    assert b.get_report(1).upvotes == 1

    journal.apply(b, JournalEntry(ACTION_SOLVE, "human:alice", {"report_id": 1}))
    assert len(list(journal.iter_entries())) == 3

    reopened = open_ledger(journal)
    assert reopened.get_report(1).upvotes == 1
    assert reopened.get_report(1).is_solved
    assert _state(reopened)[:2] == _state(b)[:2]

    # a's vote batch and b's solve batch, each written once
    written = [n.event_type for n in read_notifications(notifications_path)]
    assert written == [
        "points.updated",
        "report.voted",
        "points.updated",
        "report.status_updated",
    ]


def test_locked_is_reentrant_and_leaves_lock_file(home: Path) -> None:
    journal = ActionJournal(home / "actions.jsonl")
    ledger = IncidentLedger()

    with journal.locked():
        with journal.locked():
            journal.apply(ledger, _submit_entry("human:alice", 0))

    assert journal.lock_path == home / "actions.jsonl.lock"
    assert journal.lock_path.exists()
    assert ledger.journal_position == 1
