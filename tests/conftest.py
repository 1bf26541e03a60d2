"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from civicwatch.ledger import IncidentLedger


@pytest.fixture
def ledger() -> IncidentLedger:
    """A fresh ledger with default parameters."""
    return IncidentLedger()


@pytest.fixture
def submit(ledger: IncidentLedger):
    """Submit a report with sensible defaults; override any field by keyword."""

    def _submit(reporter: str = "human:alice", now: int = 0, **overrides) -> int:
        fields = {
            "details": "Streetlight out on the corner",
            "location": "5th & Main",
            "media_ref": "ipfs://bafy-light",
            "category": "infrastructure",
            "priority": 3,
        }
        fields.update(overrides)
        return ledger.submit_report(**fields, reporter=reporter, now=now)

    return _submit


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """Ledger home directory for CLI and journal tests."""
    return tmp_path / ".civicwatch"
