"""
Read-only views over the ledger stores.

Every result is a copy taken under the ledger lock, so a reader never sees
a report halfway through a write.
"""

from __future__ import annotations

import threading

from .errors import OffsetOutOfBounds
from .models import ReportStatus, ReportView, UserProfile
from .reports import ReportStore
from .reputation import ReputationLedger
from .votes import VoteLedger


def _check_bounds(offset: int, limit: int, total: int) -> None:
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")
    if offset < 0 or offset > total:
        raise OffsetOutOfBounds(f"Offset {offset} is outside 0..{total}")


class QueryService:
    def __init__(
        self,
        reports: ReportStore,
        votes: VoteLedger,
        reputation: ReputationLedger,
        *,
        lock: threading.RLock | None = None,
    ):
        self.reports = reports
        self.votes = votes
        self.reputation = reputation
        self.lock = lock or threading.RLock()

    def get_report(self, report_id: int) -> ReportView:
        with self.lock:
            return self.reports.get(report_id).view()

    def get_user_profile(self, identity: str) -> UserProfile:
        with self.lock:
            return self.reputation.get_profile(identity)

    def has_voted(self, report_id: int, identity: str) -> bool:
        with self.lock:
            return self.votes.has_voted(report_id, identity)

    def get_all_reports(self, offset: int, limit: int) -> tuple[list[ReportView], int]:
        """
        Page through every report in identifier order.

        `offset` is 0-based: the first item returned has identifier offset + 1.
        An offset equal to the total yields an empty page.
        """
        with self.lock:
            total = self.reports.count()
            _check_bounds(offset, limit, total)
            page: list[ReportView] = []
            for report in self.reports.iter_reports(start=offset + 1):
                if len(page) >= limit:
                    break
                page.append(report.view())
            return page, total

    def get_user_reports(self, identity: str, offset: int, limit: int) -> tuple[list[ReportView], int]:
        """
        Page through the reports submitted by `identity`, in creation order.

        Scans every report; the total is the identity's report count.
        """
        with self.lock:
            owned = [r for r in self.reports.iter_reports() if r.reporter == identity]
            total = len(owned)
            _check_bounds(offset, limit, total)
            return [r.view() for r in owned[offset : offset + limit]], total

    def status_counts(self) -> dict[ReportStatus, int]:
        with self.lock:
            counts = {status: 0 for status in ReportStatus}
            for report in self.reports.iter_reports():
                counts[report.status] += 1
            return counts
