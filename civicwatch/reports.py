"""
Report storage with sequential identifier allocation.

Identifiers start at 1 and are never reused, so the report count is always
the highest identifier handed out.
"""

from __future__ import annotations

import hashlib
from typing import Iterator

from .errors import NotFound
from .models import Report, ReportFields


def compute_fingerprint(location: str, media_ref: str, category: str) -> str:
    """
    Compute the content fingerprint of a report.

    sha256 over location + media_ref + category, in that order. The
    fingerprint is stored for consumers; the ledger never compares them.
    """
    content = (location + media_ref + category).encode("utf-8")
    return hashlib.sha256(content).hexdigest()


class ReportStore:
    """Owns every report. Mutated only by the state machine."""

    def __init__(self) -> None:
        self._reports: dict[int, Report] = {}
        self._next_id = 1

    def create(self, fields: ReportFields, reporter: str, now: int) -> int:
        report_id = self._next_id
        self._reports[report_id] = Report(
            id=report_id,
            content_fingerprint=compute_fingerprint(fields.location, fields.media_ref, fields.category),
            details=fields.details,
            location=fields.location,
            media_ref=fields.media_ref,
            category=fields.category,
            priority=fields.priority,
            created_at=now,
            reporter=reporter,
        )
        self._next_id += 1
        return report_id

    def get(self, report_id: int) -> Report:
        report = self._reports.get(report_id)
        if report is None:
            raise NotFound(f"Report not found: {report_id}")
        return report

    @property
    def next_id(self) -> int:
        """Identifier the next create() will hand out."""
        return self._next_id

    def count(self) -> int:
        return self._next_id - 1

    def iter_reports(self, start: int = 1) -> Iterator[Report]:
        """Reports in identifier order, beginning at identifier `start`."""
        for report_id in range(max(start, 1), self._next_id):
            yield self._reports[report_id]
