"""
civicwatch - Community incident-reporting ledger.

Participants submit incident reports, other participants vote on them, and
the ledger tracks each report's status and a reputation score per identity.

Components:
- reports: ReportStore, sequential identifiers and content fingerprints
- votes: VoteLedger, one vote per (report, voter)
- reputation: ReputationLedger, saturating point accounting
- machine: ReportStateMachine, every mutating operation
- queries: QueryService, paginated read-only views
- ledger: IncidentLedger, the facade callers use
- journal: ActionJournal, append-only action record for replay
"""

__version__ = "0.1.0"

from .config import LedgerConfig, load_config
from .errors import (
    AlreadySolved,
    AlreadyVoted,
    ConfigError,
    CooldownActive,
    InvalidPriority,
    JournalError,
    LedgerError,
    NotActive,
    NotFound,
    NotReporter,
    NotificationSinkError,
    OffsetOutOfBounds,
    ReportTerminal,
    SelfVoteForbidden,
)
from .ledger import IncidentLedger
from .models import ReportStatus, ReportView, UserProfile
from .notifications import Notification, NotificationLog

__all__ = [
    "__version__",
    # Facade
    "IncidentLedger",
    # Config
    "LedgerConfig",
    "load_config",
    # Models
    "ReportStatus",
    "ReportView",
    "UserProfile",
    # Notifications
    "Notification",
    "NotificationLog",
    # Errors
    "LedgerError",
    "InvalidPriority",
    "CooldownActive",
    "NotFound",
    "AlreadyVoted",
    "SelfVoteForbidden",
    "ReportTerminal",
    "NotReporter",
    "NotActive",
    "AlreadySolved",
    "NotificationSinkError",
    "OffsetOutOfBounds",
    "ConfigError",
    "JournalError",
]
