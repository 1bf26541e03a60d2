"""
Report lifecycle state machine.

All mutating operations pass through here: submit, vote, mark solved, mark
flagged. Each operation runs in three steps:

1. check every precondition and compute the outcome,
2. record the notification batch (written to the notification file first),
3. apply the mutations and deliver the batch to subscribers.

A failure in step 1 or 2 leaves the stores and the notification log
untouched.

Transitions:

    ACTIVE --solve--> SOLVED
    ACTIVE --flag / downvote threshold--> FLAGGED

SOLVED and FLAGGED are terminal.
"""

from __future__ import annotations

import logging
import threading

from .config import LedgerConfig
from .errors import (
    AlreadySolved,
    AlreadyVoted,
    CooldownActive,
    InvalidPriority,
    NotActive,
    NotReporter,
    ReportTerminal,
    SelfVoteForbidden,
)
from .models import Report, ReportFields, ReportStatus
from .notifications import (
    Notification,
    NotificationLog,
    points_updated,
    report_status_updated,
    report_submitted,
    report_voted,
)
from .reports import ReportStore
from .reputation import ReputationLedger
from .votes import VoteLedger

logger = logging.getLogger(__name__)

# Reason labels carried by points.updated notifications
REASON_SUBMISSION = "Report submission"
REASON_UPVOTE = "Received upvote"
REASON_DOWNVOTE = "Received downvote"
REASON_SOLVED = "Report solved"
REASON_FLAGGED = "Report is Flagged"


class ReportStateMachine:
    def __init__(
        self,
        reports: ReportStore,
        votes: VoteLedger,
        reputation: ReputationLedger,
        notifications: NotificationLog,
        *,
        config: LedgerConfig | None = None,
        lock: threading.RLock | None = None,
    ):
        self.reports = reports
        self.votes = votes
        self.reputation = reputation
        self.notifications = notifications
        self.config = config or LedgerConfig()
        self.lock = lock or threading.RLock()

    def submit_report(self, fields: ReportFields, reporter: str, now: int) -> int:
        cfg = self.config
        with self.lock:
            self._require_priority(fields.priority, reporter)

            profile = self.reputation.get_profile(reporter)
            if profile.reports_submitted > 0:
                retry_at = profile.last_report_time + cfg.cooldown
                if now < retry_at:
                    logger.debug("Rejected submission from %s: cooldown until %d", reporter, retry_at)
                    raise CooldownActive(
                        f"{reporter} must wait until {retry_at} to submit again (now={now})",
                        retry_at=retry_at,
                    )

            report_id = self.reports.next_id
            total = self.reputation.points_after(reporter, True, cfg.report_points)
            stamped = self.notifications.record(
                [report_submitted(report_id, reporter), points_updated(reporter, total, REASON_SUBMISSION)]
            )

            self.reports.create(fields, reporter, now)
            self.reputation.touch_submission(reporter, now)
            self.reputation.update_points(reporter, True, cfg.report_points, REASON_SUBMISSION)

            self.notifications.deliver(stamped)
            logger.info("Report %d submitted by %s", report_id, reporter)
            return report_id

    def vote_report(self, report_id: int, voter: str, is_upvote: bool, now: int) -> None:
        # `now` is accepted for interface symmetry; voting has no time rule.
        cfg = self.config
        with self.lock:
            report = self.reports.get(report_id)
            if self.votes.has_voted(report_id, voter):
                raise AlreadyVoted(f"{voter} already voted on report {report_id}")
            if voter == report.reporter:
                raise SelfVoteForbidden(f"{voter} cannot vote on their own report {report_id}")
            if report.status.is_terminal:
                raise ReportTerminal(f"Report {report_id} is {report.status.value}; voting is closed")

            upvotes = report.upvotes + (1 if is_upvote else 0)
            downvotes = report.downvotes + (0 if is_upvote else 1)
            if is_upvote:
                amount, reason = cfg.upvote_points, REASON_UPVOTE
            else:
                amount, reason = cfg.downvote_penalty, REASON_DOWNVOTE
            flagged = not is_upvote and self._crosses_flag_threshold(downvotes, upvotes)

            total = self.reputation.points_after(report.reporter, is_upvote, amount)
            batch: list[Notification] = [points_updated(report.reporter, total, reason)]
            if flagged:
                batch.append(report_status_updated(report_id, ReportStatus.FLAGGED.value))
            batch.append(report_voted(report_id, voter, is_upvote))
            stamped = self.notifications.record(batch)

            report.upvotes, report.downvotes = upvotes, downvotes
            self.reputation.update_points(report.reporter, is_upvote, amount, reason)
            if flagged:
                report.status = ReportStatus.FLAGGED
                logger.info("Report %d flagged by vote (%d down / %d up)", report_id, downvotes, upvotes)
            self.votes.record_vote(report_id, voter)

            self.notifications.deliver(stamped)

    def _crosses_flag_threshold(self, downvotes: int, upvotes: int) -> bool:
        cfg = self.config
        return downvotes >= cfg.flag_min_downvotes and downvotes > cfg.flag_ratio * upvotes

    def mark_report_solved(self, report_id: int, caller: str) -> None:
        cfg = self.config
        with self.lock:
            report = self.reports.get(report_id)
            self._require_reporter(report, caller)
            if report.is_solved:
                raise AlreadySolved(f"Report {report_id} is already solved")
            self._require_active(report)

            total = self.reputation.points_after(caller, True, cfg.solve_points)
            stamped = self.notifications.record(
                [
                    points_updated(caller, total, REASON_SOLVED),
                    report_status_updated(report_id, ReportStatus.SOLVED.value),
                ]
            )

            report.status = ReportStatus.SOLVED
            self.reputation.touch_success(caller)
            self.reputation.update_points(caller, True, cfg.solve_points, REASON_SOLVED)

            self.notifications.deliver(stamped)
            logger.info("Report %d solved by %s", report_id, caller)

    def mark_report_flagged(self, report_id: int, caller: str) -> None:
        cfg = self.config
        with self.lock:
            report = self.reports.get(report_id)
            self._require_reporter(report, caller)
            self._require_active(report)

            total = self.reputation.points_after(caller, False, cfg.downvote_penalty)
            stamped = self.notifications.record(
                [
                    points_updated(caller, total, REASON_FLAGGED),
                    report_status_updated(report_id, ReportStatus.FLAGGED.value),
                ]
            )

            report.status = ReportStatus.FLAGGED
            self.reputation.update_points(caller, False, cfg.downvote_penalty, REASON_FLAGGED)

            self.notifications.deliver(stamped)
            logger.info("Report %d flagged by its reporter %s", report_id, caller)

    def _require_priority(self, priority: int, reporter: str) -> None:
        cfg = self.config
        if isinstance(priority, bool) or not isinstance(priority, int):
            logger.debug("Rejected submission from %s: priority %r", reporter, priority)
            raise InvalidPriority(f"Priority must be an integer, got {priority!r}")
        if not (cfg.min_priority <= priority <= cfg.max_priority):
            logger.debug("Rejected submission from %s: priority %s", reporter, priority)
            raise InvalidPriority(
                f"Priority must be between {cfg.min_priority} and {cfg.max_priority}, got {priority}"
            )

    @staticmethod
    def _require_reporter(report: Report, caller: str) -> None:
        if caller != report.reporter:
            raise NotReporter(f"Only the reporter of report {report.id} may change its status")

    @staticmethod
    def _require_active(report: Report) -> None:
        if report.status is not ReportStatus.ACTIVE:
            raise NotActive(f"Report {report.id} is {report.status.value}")
