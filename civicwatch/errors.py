"""
Error types for the incident ledger.

Every ledger error is a precondition failure: it is raised before any state
is touched, so a caller can correct the input and retry.
"""

from __future__ import annotations


class LedgerError(ValueError):
    """Base class for rejected ledger operations."""

    code = "ledger_error"


class InvalidPriority(LedgerError):
    code = "invalid_priority"


class CooldownActive(LedgerError):
    code = "cooldown_active"

    def __init__(self, message: str, *, retry_at: int):
        super().__init__(message)
        self.retry_at = retry_at


class NotFound(LedgerError):
    code = "not_found"


class AlreadyVoted(LedgerError):
    code = "already_voted"


class SelfVoteForbidden(LedgerError):
    code = "self_vote_forbidden"


class ReportTerminal(LedgerError):
    code = "report_terminal"


class NotReporter(LedgerError):
    code = "not_reporter"


class NotActive(LedgerError):
    code = "not_active"


class AlreadySolved(LedgerError):
    code = "already_solved"


class OffsetOutOfBounds(LedgerError):
    code = "offset_out_of_bounds"


class NotificationSinkError(LedgerError):
    """The notification file could not be written; nothing was committed."""

    code = "notification_sink"


class ConfigError(ValueError):
    """Raised when a configuration file cannot be used."""

    code = "config_error"


class JournalError(ValueError):
    """Raised when a journal entry cannot be replayed."""

    code = "journal_error"
