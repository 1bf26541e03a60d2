"""
Per-identity reputation accounting.

Profiles are created on first write with every field at zero. Reading an
unknown identity returns a zero profile without creating one.
"""

from __future__ import annotations

from .models import UserProfile
from .notifications import Notification, points_updated


class ReputationLedger:
    def __init__(self) -> None:
        self._profiles: dict[str, UserProfile] = {}

    def _profile(self, identity: str) -> UserProfile:
        profile = self._profiles.get(identity)
        if profile is None:
            profile = UserProfile()
            self._profiles[identity] = profile
        return profile

    def points_after(self, identity: str, credit: bool, amount: int) -> int:
        """Balance `identity` would hold after the change. Debits saturate at zero."""
        current = self._profiles[identity].points if identity in self._profiles else 0
        return current + amount if credit else max(0, current - amount)

    def update_points(self, identity: str, credit: bool, amount: int, reason: str) -> Notification:
        """
        Credit or debit `amount` points.

        Returns the PointsUpdated notification, which carries the resulting
        total rather than the delta.
        """
        total = self.points_after(identity, credit, amount)
        self._profile(identity).points = total
        return points_updated(identity, total, reason)

    def touch_submission(self, identity: str, now: int) -> None:
        profile = self._profile(identity)
        profile.reports_submitted += 1
        profile.last_report_time = now

    def touch_success(self, identity: str) -> None:
        self._profile(identity).successful_reports += 1

    def get_profile(self, identity: str) -> UserProfile:
        profile = self._profiles.get(identity)
        return profile.copy() if profile is not None else UserProfile()

    def identities(self) -> list[str]:
        return list(self._profiles)
