"""
IncidentLedger: the single entry point for callers.

Owns the three stores, the notification log, and the lock that serializes
every write. Mutations go to the state machine; reads go to the query
service. Caller identity and time are always passed in explicitly.
"""

from __future__ import annotations

import threading
from pathlib import Path

from .config import LedgerConfig
from .machine import ReportStateMachine
from .models import ReportFields, ReportStatus, ReportView, UserProfile
from .notifications import NotificationLog
from .queries import QueryService
from .reports import ReportStore
from .reputation import ReputationLedger
from .votes import VoteLedger


class IncidentLedger:
    def __init__(
        self,
        *,
        config: LedgerConfig | None = None,
        notifications_path: Path | None = None,
    ):
        self.config = config or LedgerConfig()
        self.lock = threading.RLock()
        self.reports = ReportStore()
        self.votes = VoteLedger()
        self.reputation = ReputationLedger()
        self.notifications = NotificationLog(notifications_path)
        self.machine = ReportStateMachine(
            self.reports,
            self.votes,
            self.reputation,
            self.notifications,
            config=self.config,
            lock=self.lock,
        )
        self.queries = QueryService(self.reports, self.votes, self.reputation, lock=self.lock)
        # Number of journal entries folded into this ledger (see journal.py)
        self.journal_position = 0

    # --- Mutations ---------------------------------------------------------

    def submit_report(
        self,
        details: str,
        location: str,
        media_ref: str,
        category: str,
        priority: int,
        *,
        reporter: str,
        now: int,
    ) -> int:
        fields = ReportFields(
            details=details,
            location=location,
            media_ref=media_ref,
            category=category,
            priority=priority,
        )
        return self.machine.submit_report(fields, reporter, now)

    def vote_report(self, report_id: int, is_upvote: bool, *, voter: str, now: int) -> None:
        self.machine.vote_report(report_id, voter, is_upvote, now)

    def mark_report_solved(self, report_id: int, *, caller: str) -> None:
        self.machine.mark_report_solved(report_id, caller)

    def mark_report_flagged(self, report_id: int, *, caller: str) -> None:
        self.machine.mark_report_flagged(report_id, caller)

    # --- Queries -----------------------------------------------------------

    def get_report(self, report_id: int) -> ReportView:
        return self.queries.get_report(report_id)

    def get_user_profile(self, identity: str) -> UserProfile:
        return self.queries.get_user_profile(identity)

    def has_voted(self, report_id: int, identity: str) -> bool:
        return self.queries.has_voted(report_id, identity)

    def get_all_reports(self, offset: int, limit: int) -> tuple[list[ReportView], int]:
        return self.queries.get_all_reports(offset, limit)

    def get_user_reports(self, identity: str, offset: int, limit: int) -> tuple[list[ReportView], int]:
        return self.queries.get_user_reports(identity, offset, limit)

    def status_counts(self) -> dict[ReportStatus, int]:
        return self.queries.status_counts()
