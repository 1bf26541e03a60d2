"""Write-once record of who voted on which report."""

from __future__ import annotations


class VoteLedger:
    """
    One presence flag per (report_id, voter).

    record_vote() does not check for an existing vote; the state machine
    calls has_voted() first while holding the ledger lock.
    """

    def __init__(self) -> None:
        self._votes: set[tuple[int, str]] = set()

    def has_voted(self, report_id: int, voter: str) -> bool:
        return (report_id, voter) in self._votes

    def record_vote(self, report_id: int, voter: str) -> None:
        self._votes.add((report_id, voter))

    def __len__(self) -> int:
        return len(self._votes)
