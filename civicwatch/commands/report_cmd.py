"""Report ledger CLI commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..config import LedgerConfig
from ..errors import JournalError, LedgerError
from ..journal import (
    ACTION_FLAG,
    ACTION_SOLVE,
    ACTION_SUBMIT,
    ACTION_VOTE,
    ActionJournal,
    JournalEntry,
    open_ledger,
)
from ..ledger import IncidentLedger
from ..models import ReportStatus, ReportView
from ..notifications import NotificationLog

JOURNAL_FILENAME = "actions.jsonl"
NOTIFICATIONS_FILENAME = "notifications.jsonl"

_STATUS_STYLE = {
    ReportStatus.ACTIVE: "green",
    ReportStatus.SOLVED: "cyan",
    ReportStatus.FLAGGED: "red",
}


def _open(home: Path, config: LedgerConfig) -> IncidentLedger:
    journal = ActionJournal(home / JOURNAL_FILENAME)
    return open_ledger(journal, config=config, notifications_path=home / NOTIFICATIONS_FILENAME)


def _fail(e: LedgerError | JournalError) -> int:
    Console(stderr=True, soft_wrap=True).print(f"[{e.code}] {e}", style="bold red", markup=False)
    return 1


def _apply(home: Path, config: LedgerConfig, entry: JournalEntry) -> tuple[int, Any]:
    journal = ActionJournal(home / JOURNAL_FILENAME)
    try:
        # One lock spans replay, execution and the journal append
        with journal.locked():
            ledger = open_ledger(journal, config=config, notifications_path=home / NOTIFICATIONS_FILENAME)
            return 0, journal.apply(ledger, entry)
    except (LedgerError, JournalError) as e:
        return _fail(e), None


def _report_table(title: str, reports: list[ReportView]) -> Table:
    table = Table(title=title)
    table.add_column("id", justify="right", style="cyan", no_wrap=True)
    table.add_column("status")
    table.add_column("pri", justify="right")
    table.add_column("category", style="magenta")
    table.add_column("location")
    table.add_column("reporter")
    table.add_column("+", justify="right")
    table.add_column("-", justify="right")
    for r in reports:
        table.add_row(
            str(r.id),
            f"[{_STATUS_STYLE[r.status]}]{r.status.value}[/]",
            str(r.priority),
            escape(r.category),
            escape(r.location),
            escape(r.reporter),
            str(r.upvotes),
            str(r.downvotes),
        )
    return table


def run_submit(
    home: Path,
    config: LedgerConfig,
    *,
    details: str,
    location: str,
    media_ref: str,
    category: str,
    priority: int,
    reporter: str,
    now: int,
) -> int:
    entry = JournalEntry(
        ACTION_SUBMIT,
        reporter,
        {
            "details": details,
            "location": location,
            "media_ref": media_ref,
            "category": category,
            "priority": priority,
        },
        now=now,
    )
    code, report_id = _apply(home, config, entry)
    if code == 0:
        Console().print(f"Report #{report_id} submitted by {reporter}", style="green", markup=False)
    return code


def run_vote(home: Path, config: LedgerConfig, report_id: int, *, is_upvote: bool, voter: str, now: int) -> int:
    entry = JournalEntry(ACTION_VOTE, voter, {"report_id": report_id, "is_upvote": is_upvote}, now=now)
    code, _ = _apply(home, config, entry)
    if code == 0:
        direction = "upvote" if is_upvote else "downvote"
        Console().print(f"Recorded {direction} on report #{report_id} from {voter}", markup=False)
    return code


def run_solve(home: Path, config: LedgerConfig, report_id: int, *, caller: str) -> int:
    code, _ = _apply(home, config, JournalEntry(ACTION_SOLVE, caller, {"report_id": report_id}))
    if code == 0:
        Console().print(f"Report #{report_id} marked solved", style="cyan")
    return code


def run_flag(home: Path, config: LedgerConfig, report_id: int, *, caller: str) -> int:
    code, _ = _apply(home, config, JournalEntry(ACTION_FLAG, caller, {"report_id": report_id}))
    if code == 0:
        Console().print(f"Report #{report_id} marked flagged", style="red")
    return code


def run_show(home: Path, config: LedgerConfig, report_id: int, *, output_json: bool = False) -> int:
    try:
        ledger = _open(home, config)
        view = ledger.get_report(report_id)
    except (LedgerError, JournalError) as e:
        return _fail(e)

    if output_json:
        print(json.dumps(view.to_dict(), indent=2, sort_keys=True))
        return 0

    console = Console()
    console.print(f"Report #{view.id}  [{_STATUS_STYLE[view.status]}]{view.status.value}[/]")
    console.print(f"reporter: {view.reporter}  priority: {view.priority}  created_at: {view.created_at}", markup=False)
    console.print(f"category: {view.category}  location: {view.location}", markup=False)
    console.print(f"media: {view.media_ref}", markup=False)
    console.print(f"votes: +{view.upvotes} / -{view.downvotes}")
    console.print(f"fingerprint: {view.content_fingerprint}", style="dim")
    console.print(view.details, markup=False)
    return 0


def run_list(
    home: Path,
    config: LedgerConfig,
    *,
    offset: int = 0,
    limit: int = 20,
    reporter: str | None = None,
    output_json: bool = False,
) -> int:
    try:
        ledger = _open(home, config)
        if reporter is None:
            page, total = ledger.get_all_reports(offset, limit)
        else:
            page, total = ledger.get_user_reports(reporter, offset, limit)
    except (LedgerError, JournalError) as e:
        return _fail(e)

    if output_json:
        print(json.dumps({"items": [r.to_dict() for r in page], "total": total}, indent=2))
        return 0

    title = f"Reports by {escape(reporter)}" if reporter else "Reports"
    console = Console()
    console.print(_report_table(title, page))
    console.print(f"Showing {len(page)} of {total} (offset {offset})", style="dim")
    return 0


def run_profile(home: Path, config: LedgerConfig, identity: str, *, output_json: bool = False) -> int:
    try:
        ledger = _open(home, config)
    except JournalError as e:
        return _fail(e)

    profile = ledger.get_user_profile(identity)
    if output_json:
        print(json.dumps({"identity": identity, **profile.to_dict()}, indent=2))
        return 0

    table = Table(title=f"Profile: {escape(identity)}")
    table.add_column("field")
    table.add_column("value", justify="right")
    for key, value in profile.to_dict().items():
        table.add_row(key, str(value))
    Console().print(table)
    return 0


def run_voted(home: Path, config: LedgerConfig, report_id: int, identity: str) -> int:
    """Print yes/no. Exit code 0 if `identity` voted on the report, else 1."""
    try:
        ledger = _open(home, config)
    except JournalError as e:
        return _fail(e)

    voted = ledger.has_voted(report_id, identity)
    Console().print("yes" if voted else "no")
    return 0 if voted else 1


def run_events(
    home: Path,
    config: LedgerConfig,
    *,
    event_type: str | None = None,
    report_id: int | None = None,
    limit: int | None = None,
    output_json: bool = False,
) -> int:
    try:
        ledger = _open(home, config)
    except JournalError as e:
        return _fail(e)

    log: NotificationLog = ledger.notifications
    events = log.query(event_type=event_type, report_id=report_id, limit=limit)

    if output_json:
        print(json.dumps([n.to_dict() for n in events], indent=2))
        return 0

    table = Table(title="Notifications")
    table.add_column("#", justify="right", style="dim")
    table.add_column("event_type", style="cyan")
    table.add_column("payload")
    for n in events:
        table.add_row(str(n.sequence), n.event_type, escape(json.dumps(n.payload, sort_keys=True)))
    console = Console()
    console.print(table)
    console.print(f"Events: {len(events)} total")
    return 0


def run_summary(home: Path, config: LedgerConfig) -> int:
    try:
        ledger = _open(home, config)
    except JournalError as e:
        return _fail(e)

    counts = ledger.status_counts()
    console = Console()
    console.print(f"Reports: {sum(counts.values())} total")
    for status, count in counts.items():
        console.print(f"  {status.value}: {count}", style=_STATUS_STYLE[status])
    console.print(f"Votes: {len(ledger.votes)}", style="dim")
    return 0
