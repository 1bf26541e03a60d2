"""
Entities held by the ledger stores.

`Report` and `UserProfile` are mutable and owned by their stores. Callers
only ever see `ReportView` and copied `UserProfile` values.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any


class ReportStatus(str, Enum):
    ACTIVE = "active"
    SOLVED = "solved"  # Terminal
    FLAGGED = "flagged"  # Terminal

    @property
    def is_terminal(self) -> bool:
        return self is not ReportStatus.ACTIVE


@dataclass(frozen=True)
class ReportFields:
    """Caller-supplied content of a new report."""

    details: str
    location: str
    media_ref: str
    category: str
    priority: int


@dataclass
class Report:
    id: int
    content_fingerprint: str
    details: str
    location: str
    media_ref: str
    category: str
    priority: int
    created_at: int
    reporter: str
    status: ReportStatus = ReportStatus.ACTIVE
    upvotes: int = 0
    downvotes: int = 0

    @property
    def is_solved(self) -> bool:
        return self.status is ReportStatus.SOLVED

    def view(self) -> ReportView:
        return ReportView(
            id=self.id,
            content_fingerprint=self.content_fingerprint,
            details=self.details,
            location=self.location,
            media_ref=self.media_ref,
            category=self.category,
            priority=self.priority,
            created_at=self.created_at,
            reporter=self.reporter,
            status=self.status,
            upvotes=self.upvotes,
            downvotes=self.downvotes,
        )


@dataclass(frozen=True)
class ReportView:
    """Point-in-time copy of a report."""

    id: int
    content_fingerprint: str
    details: str
    location: str
    media_ref: str
    category: str
    priority: int
    created_at: int
    reporter: str
    status: ReportStatus
    upvotes: int
    downvotes: int

    @property
    def is_solved(self) -> bool:
        return self.status is ReportStatus.SOLVED

    def to_dict(self) -> dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        data = asdict(self)
        data["status"] = self.status.value
        data["is_solved"] = self.is_solved
        return data


@dataclass
class UserProfile:
    points: int = 0
    reports_submitted: int = 0
    successful_reports: int = 0
    last_report_time: int = 0

    def copy(self) -> UserProfile:
        return replace(self)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
