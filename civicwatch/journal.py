"""
Append-only journal of accepted ledger actions.

Storage format: JSON Lines, one accepted action per line. Rejected actions
are never written. Ledger state is the fold of the journal: replaying every
entry in order through a fresh IncidentLedger rebuilds it exactly.

Sessions sharing a journal are serialized by an exclusive lock on
`<journal>.lock`. A ledger remembers how many entries it has folded in
(`journal_position`); apply() first folds in any entries another session
appended since, so two handles on one journal never record conflicting
actions.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator

from .config import LedgerConfig
from .errors import JournalError, LedgerError
from .ledger import IncidentLedger

logger = logging.getLogger(__name__)

ACTION_SUBMIT = "submit"
ACTION_VOTE = "vote"
ACTION_SOLVE = "solve"
ACTION_FLAG = "flag"

ACTIONS = frozenset({ACTION_SUBMIT, ACTION_VOTE, ACTION_SOLVE, ACTION_FLAG})


@dataclass(frozen=True)
class JournalEntry:
    action: str  # One of ACTIONS
    actor: str
    args: dict[str, Any] = field(default_factory=dict)
    now: int | None = None  # Only submit and vote carry a timestamp

    def __post_init__(self) -> None:
        if self.action not in ACTIONS:
            raise JournalError(f"Invalid action: {self.action}")

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"action": self.action, "actor": self.actor, "args": self.args}
        if self.now is not None:
            result["now"] = self.now
        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JournalEntry:
        return cls(
            action=data["action"],
            actor=data["actor"],
            args=data.get("args", {}),
            now=data.get("now"),
        )

    @classmethod
    def from_json(cls, line: str) -> JournalEntry:
        return cls.from_dict(json.loads(line))


def execute(ledger: IncidentLedger, entry: JournalEntry) -> Any:
    """Run one entry against the ledger. Returns the report id for submissions."""
    args = entry.args
    if entry.action == ACTION_SUBMIT:
        return ledger.submit_report(
            args["details"],
            args["location"],
            args["media_ref"],
            args["category"],
            args["priority"],
            reporter=entry.actor,
            now=int(entry.now or 0),
        )
    if entry.action == ACTION_VOTE:
        ledger.vote_report(
            int(args["report_id"]),
            bool(args["is_upvote"]),
            voter=entry.actor,
            now=int(entry.now or 0),
        )
        return None
    if entry.action == ACTION_SOLVE:
        ledger.mark_report_solved(int(args["report_id"]), caller=entry.actor)
        return None
    ledger.mark_report_flagged(int(args["report_id"]), caller=entry.actor)
    return None


class ActionJournal:
    """
    INVARIANT: lines are never rewritten. The only write is appending an
    entry that the ledger has just accepted, while holding the lock.
    """

    def __init__(self, path: Path):
        self.path = path
        self.lock_path = path.with_name(path.name + ".lock")
        self._thread_lock = threading.RLock()
        self._depth = 0

    def _ensure_dir(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def locked(self) -> Iterator[None]:
        """
        Hold the journal lock. Re-entrant within this ActionJournal.

        Blocks until any other session holding the lock releases it.
        """
        with self._thread_lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            self._ensure_dir()
            with self.lock_path.open("a") as fd:
                if sys.platform == "win32":
                    import msvcrt

                    msvcrt.locking(fd.fileno(), msvcrt.LK_LOCK, 1)
                else:
                    import fcntl

                    fcntl.flock(fd.fileno(), fcntl.LOCK_EX)
                self._depth = 1
                try:
                    yield
                finally:
                    self._depth = 0
                    if sys.platform == "win32":
                        import msvcrt

                        msvcrt.locking(fd.fileno(), msvcrt.LK_UNLCK, 1)
                    else:
                        import fcntl

                        fcntl.flock(fd.fileno(), fcntl.LOCK_UN)

    def iter_entries(self) -> Iterator[JournalEntry]:
        if not self.path.exists():
            return

        with self.path.open("r", encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    yield JournalEntry.from_json(line)
                except (KeyError, TypeError, ValueError) as e:
                    raise JournalError(f"{self.path}:{lineno}: malformed entry ({e})") from e

    def replay(self, ledger: IncidentLedger) -> int:
        """
        Fold every entry `ledger` has not seen yet into it, in order.

        Replayed notifications are not written to the notification file a
        second time. Returns the number of entries applied by this call.
        """
        applied = 0
        sink, ledger.notifications.path = ledger.notifications.path, None
        try:
            with self.locked():
                for position, entry in enumerate(self.iter_entries(), start=1):
                    if position <= ledger.journal_position:
                        continue
                    try:
                        execute(ledger, entry)
                    except (KeyError, TypeError, ValueError) as e:
                        raise JournalError(
                            f"{self.path}: entry {position} ({entry.action}) no longer applies: {e}"
                        ) from e
                    ledger.journal_position = position
                    applied += 1
        finally:
            ledger.notifications.path = sink
        logger.debug("Replayed %d journal entries from %s", applied, self.path)
        return applied

    def apply(self, ledger: IncidentLedger, entry: JournalEntry) -> Any:
        """
        Execute `entry` and record it only if the ledger accepted it.

        Entries appended by other sessions are folded in first. Ledger errors
        propagate unchanged and leave the journal as it was.
        """
        with self.locked():
            self.replay(ledger)
            result = execute(ledger, entry)
            try:
                with self.path.open("a", encoding="utf-8") as f:
                    f.write(entry.to_json() + "\n")
            except OSError as e:
                raise JournalError(f"Cannot append to {self.path}: {e}") from e
            ledger.journal_position += 1
            return result


def open_ledger(
    journal: ActionJournal,
    *,
    config: LedgerConfig | None = None,
    notifications_path: Path | None = None,
) -> IncidentLedger:
    """
    Build a ledger and rebuild its state from the journal.

    Notifications of replayed entries are not written to `notifications_path`
    again; only actions applied afterwards reach it.
    """
    ledger = IncidentLedger(config=config, notifications_path=notifications_path)
    journal.replay(ledger)
    return ledger
